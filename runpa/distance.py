import math
from typing import Any, Optional, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0


def parse_latlng(value: Any) -> Optional[Tuple[float, float]]:
    """Devuelve (lat, lng) si value es un par numérico finito; si no, None."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    pair = []
    for v in value:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        v = float(v)
        if not math.isfinite(v):
            return None
        pair.append(v)
    return pair[0], pair[1]


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Distancia de círculo máximo en km entre dos puntos (lat, lon) en grados."""
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # cerca de las antípodas h puede pasarse de 1 por redondeo
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

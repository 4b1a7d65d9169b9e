import logging
from typing import Any, Dict, Optional

import httpx

from .config import GEOCODER_URL, GEOCODER_USER_AGENT, GEOCODER_TIMEOUT

logger = logging.getLogger(__name__)

# orden de preferencia para el nombre de la localidad
CITY_KEYS = ("city", "town", "village")


def empty_location() -> Dict[str, Optional[str]]:
    return {"city": None, "state": None, "country": None}


def _location_from_address(address: Dict[str, Any]) -> Dict[str, Optional[str]]:
    city = None
    for key in CITY_KEYS:
        if address.get(key):
            city = address[key]
            break
    return {
        "city": city,
        "state": address.get("state") or None,
        "country": address.get("country") or None,
    }


def reverse_geocode(lat: float, lon: float, client: Optional[httpx.Client] = None) -> Dict[str, Optional[str]]:
    """
    Geocodificación inversa best-effort: un único intento, sin reintentos.
    Nunca lanza; si algo falla devuelve city/state/country a None.
    """
    own_client = client is None
    if own_client:
        client = httpx.Client(
            base_url=GEOCODER_URL,
            headers={"User-Agent": GEOCODER_USER_AGENT},
            timeout=GEOCODER_TIMEOUT,
        )
    try:
        res = client.get(
            "/reverse",
            params={"format": "jsonv2", "lat": lat, "lon": lon, "addressdetails": 1},
        )
        res.raise_for_status()
        data = res.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Geocodificación inversa fallida para (%s, %s): %s", lat, lon, exc)
        return empty_location()
    finally:
        if own_client:
            client.close()

    address = data.get("address") if isinstance(data, dict) else None
    if not isinstance(address, dict):
        logger.warning("Respuesta de geocodificación sin 'address' para (%s, %s)", lat, lon)
        return empty_location()
    return _location_from_address(address)

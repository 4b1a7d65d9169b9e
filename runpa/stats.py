from typing import Any, Dict, List, Optional, Sequence, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .distance import haversine_km
from .models import Athlete, Activity


# Punto de referencia para la actividad más lejana
REFERENCE_POINT: Tuple[float, float] = (45.7585, 8.5569)
LEADERBOARD_SIZE = 5


class AnalyticsError(RuntimeError):
    """Fallo de la BD al calcular una vista; no hay resultado parcial."""


def meters_to_km(meters: Optional[float]) -> float:
    return round((meters or 0) / 1000.0, 2)


def mask_lastname(name: Optional[str]) -> Optional[str]:
    """'Ng' -> 'N*', 'Smith' -> 'S***h'. Vacío o None se devuelve tal cual."""
    if not name:
        return name
    if len(name) <= 2:
        return name[0] + "*"
    return name[0] + "*" * (len(name) - 2) + name[-1]


def _activity_summary(act: Activity) -> Dict[str, Any]:
    return {
        "id": act.id,
        "name": act.name,
        "type": act.type,
        "start_date": act.start_date,
        "distance": act.distance,
        "moving_time": act.moving_time,
        "location": act.location,
    }


def _athletes(db: Session) -> Sequence[Athlete]:
    return db.execute(sa.select(Athlete).order_by(Athlete.id)).scalars().all()

# --- Vistas -----------------------------------------------------------------

def athlete_rollups(db: Session) -> List[Dict[str, Any]]:
    """Por atleta: distancia total en km y última actividad (por start_date, empate -> id mayor)."""
    try:
        result = []
        for athlete in _athletes(db):
            latest = db.execute(
                sa.select(Activity)
                .where(Activity.athlete_id == athlete.id)
                .order_by(Activity.start_date.desc().nulls_last(), Activity.id.desc())
                .limit(1)
            ).scalars().first()
            total_m = db.execute(
                sa.select(sa.func.coalesce(sa.func.sum(Activity.distance), 0))
                .where(Activity.athlete_id == athlete.id, Activity.distance.is_not(None))
            ).scalar_one()

            last_latlng = None
            if latest is not None and latest.start_latlng:
                last_latlng = {"lat": latest.start_lat, "lng": latest.start_lng}

            result.append({
                "athlete": athlete.to_dict(),
                "total_distance_km": meters_to_km(total_m),
                "latest_activity": _activity_summary(latest) if latest is not None else None,
                "last_latlng": last_latlng,
            })
        return result
    except SQLAlchemyError as exc:
        raise AnalyticsError("Error calculando los resúmenes por atleta") from exc


def farthest_activities(db: Session, reference: Tuple[float, float] = REFERENCE_POINT) -> List[Dict[str, Any]]:
    """
    Por atleta, la actividad cuyo punto de salida está más lejos de `reference`.
    Se recorre por id ascendente y se compara con '>' estricto: en empate gana la primera.
    """
    try:
        result = []
        for athlete in _athletes(db):
            activities = db.execute(
                sa.select(Activity)
                .where(
                    Activity.athlete_id == athlete.id,
                    Activity.start_lat.is_not(None),
                    Activity.start_lng.is_not(None),
                )
                .order_by(Activity.id)
            ).scalars().all()

            best, best_km = None, -1.0
            for act in activities:
                km = haversine_km(reference, (act.start_lat, act.start_lng))
                if km > best_km:
                    best, best_km = act, km

            farthest = None
            if best is not None:
                farthest = _activity_summary(best)
                farthest["start_latlng"] = best.start_latlng
                farthest["distance_from_reference_km"] = best_km

            result.append({
                "athlete": {
                    "id": athlete.id,
                    "firstname": athlete.firstname,
                    "lastname": athlete.lastname,
                },
                "farthest_activity": farthest,
            })
        return result
    except SQLAlchemyError as exc:
        raise AnalyticsError("Error calculando las actividades más lejanas") from exc


def _ranking(db: Session, metric, limit: int, only_with_distance: bool) -> List[Tuple[int, Any]]:
    value = metric.label("value")
    q = sa.select(Activity.athlete_id, value).group_by(Activity.athlete_id)
    if only_with_distance:
        q = q.where(Activity.distance.is_not(None))
    q = q.order_by(value.desc(), Activity.athlete_id).limit(limit)
    return [(row.athlete_id, row.value) for row in db.execute(q)]


def _public_identities(db: Session, athlete_ids: set) -> Dict[int, Dict[str, Any]]:
    identities: Dict[int, Dict[str, Any]] = {}
    if not athlete_ids:
        return identities
    for athlete in db.execute(sa.select(Athlete).where(Athlete.id.in_(athlete_ids))).scalars():
        identities[athlete.id] = {
            "firstname": athlete.firstname,
            "lastname": mask_lastname(athlete.lastname),
            "profile": athlete.profile,
        }
    # atletas sin perfil guardado: se usa la copia de la actividad
    for athlete_id in athlete_ids - identities.keys():
        snapshot = db.execute(
            sa.select(Activity.athlete_firstname, Activity.athlete_lastname)
            .where(Activity.athlete_id == athlete_id)
            .order_by(Activity.id.desc())
            .limit(1)
        ).first()
        identities[athlete_id] = {
            "firstname": snapshot.athlete_firstname if snapshot else None,
            "lastname": mask_lastname(snapshot.athlete_lastname) if snapshot else None,
            "profile": None,
        }
    return identities


def leaderboards(db: Session, limit: int = LEADERBOARD_SIZE) -> Dict[str, List[Dict[str, Any]]]:
    """Top por distancia total, por actividad más larga y por número de actividades."""
    try:
        by_total = _ranking(db, sa.func.sum(Activity.distance), limit, True)
        by_longest = _ranking(db, sa.func.max(Activity.distance), limit, True)
        by_count = _ranking(db, sa.func.count(Activity.id), limit, False)

        ids = {aid for aid, _ in by_total} | {aid for aid, _ in by_longest} | {aid for aid, _ in by_count}
        identities = _public_identities(db, ids)
    except SQLAlchemyError as exc:
        raise AnalyticsError("Error calculando las clasificaciones") from exc

    return {
        "by_total_distance": [
            {"athlete": identities[aid], "total_distance_km": meters_to_km(v)} for aid, v in by_total
        ],
        "by_longest_activity": [
            {"athlete": identities[aid], "longest_distance_km": meters_to_km(v)} for aid, v in by_longest
        ],
        "by_activity_count": [
            {"athlete": identities[aid], "activity_count": int(v)} for aid, v in by_count
        ],
    }

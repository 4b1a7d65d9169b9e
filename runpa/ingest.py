import logging
from typing import Any, Callable, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .distance import parse_latlng
from .geo import reverse_geocode
from .models import Activity, Athlete
from .storage import upsert_athlete, upsert_activity

logger = logging.getLogger(__name__)

Geocoder = Callable[[float, float], Dict[str, Optional[str]]]


class IngestionError(RuntimeError):
    """La ingesta se abortó entera; no se ha guardado nada de la llamada."""


def _upstream_location(act: Dict[str, Any]) -> Dict[str, Optional[str]]:
    # cadenas vacías cuentan como ausentes
    return {
        "city": act.get("location_city") or None,
        "state": act.get("location_state") or None,
        "country": act.get("location_country") or None,
    }


def resolve_location(act: Dict[str, Any], geocode: Geocoder = reverse_geocode) -> Dict[str, Optional[str]]:
    """
    Location de la actividad: la de Strava si trae ciudad; si no, y hay
    start_latlng válido, la del geocoder entera (no se mezcla campo a campo).
    """
    location = _upstream_location(act)
    if location["city"]:
        return location
    latlng = parse_latlng(act.get("start_latlng"))
    if latlng is None:
        return location
    return geocode(latlng[0], latlng[1])


def _refresh_last_latlng(db: Session, athlete: Athlete) -> None:
    # misma regla que la última actividad del resumen, sobre todo lo guardado
    latest = db.execute(
        sa.select(Activity)
        .where(
            Activity.athlete_id == athlete.id,
            Activity.start_lat.is_not(None),
            Activity.start_lng.is_not(None),
        )
        .order_by(Activity.start_date.desc().nulls_last(), Activity.id.desc())
        .limit(1)
    ).scalars().first()
    if latest is not None:
        athlete.last_lat, athlete.last_lng = latest.start_lat, latest.start_lng
        db.flush()


def ingest_activities(
    db: Session,
    athlete_profile: Dict[str, Any],
    raw_activities: List[Dict[str, Any]],
    geocode: Geocoder = reverse_geocode,
) -> List[Dict[str, Any]]:
    """
    Reconcilia el perfil y las actividades crudas de Strava con la BD.

    Todo va en una transacción: si falla un registro se hace rollback
    de la llamada entera y se lanza IngestionError.
    """
    # la geocodificación va antes de abrir la transacción de escritura
    locations = [resolve_location(act, geocode) for act in raw_activities]
    try:
        athlete = upsert_athlete(db, athlete_profile)
        stored = [
            upsert_activity(db, act, athlete, location)
            for act, location in zip(raw_activities, locations)
        ]
        _refresh_last_latlng(db, athlete)
        db.commit()
    except (SQLAlchemyError, ValueError, TypeError) as exc:
        db.rollback()
        raise IngestionError(f"Ingesta abortada para athlete_id={athlete_profile.get('id')}: {exc}") from exc

    logger.info("Ingestadas %d actividades de athlete_id=%s", len(stored), athlete.id)
    return [a.to_dict() for a in stored]

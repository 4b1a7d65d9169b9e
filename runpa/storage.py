# runpa/storage.py

from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker, Session

from .config import DATABASE_URL
from .distance import parse_latlng
from .models import Base, Athlete, Activity

# --- Config DB --------------------------------------------------------------

# Normaliza el URI para psycopg3 si viene en formato 'postgres://'
_db_url = DATABASE_URL
if _db_url.startswith("postgres://"):
    _db_url = _db_url.replace("postgres://", "postgresql+psycopg://", 1)

# SQLite: FastAPI ejecuta los endpoints sync en un threadpool
_connect_args = {"check_same_thread": False} if _db_url.startswith("sqlite") else {}

engine = sa.create_engine(
    _db_url,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

# Crea las tablas si no existen (no migra tipos existentes)
Base.metadata.create_all(bind=engine)

# Claves aceptadas de los payloads de Strava (el resto se ignora)
ATHLETE_FIELDS = ("firstname", "lastname", "city", "state", "country", "profile", "email")
ACTIVITY_SCALAR_FIELDS = (
    "name", "type", "start_date",
    "distance", "moving_time", "elapsed_time", "total_elevation_gain",
)

# --- Helpers ----------------------------------------------------------------

def get_db_dep():
    """
    Dependencia para FastAPI (cierre automático).
    Úsala como: db=Depends(get_db_dep)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _as_id(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"id inválido: {value!r}")
    return int(value)

# --- API de acceso ----------------------------------------------------------

def upsert_athlete(db: Session, profile: Dict[str, Any]) -> Athlete:
    """
    Guarda/actualiza el atleta por id. Merge: solo se pisan los campos
    que vienen en el perfil, los ausentes conservan su valor.
    No hace commit.
    """
    athlete_id = _as_id(profile.get("id"))
    athlete = db.get(Athlete, athlete_id)
    if athlete is None:
        athlete = Athlete(id=athlete_id)
        db.add(athlete)
    for field in ATHLETE_FIELDS:
        if field in profile:
            setattr(athlete, field, profile[field])
    db.flush()
    return athlete


def upsert_activity(
    db: Session,
    act: Dict[str, Any],
    athlete: Athlete,
    location: Dict[str, Optional[str]],
) -> Activity:
    """
    Guarda/actualiza una actividad Strava por id. Reemplazo completo:
    todas las columnas se reescriben, lo que no venga queda a None.
    No hace commit.
    """
    activity_id = _as_id(act.get("id"))
    latlng = parse_latlng(act.get("start_latlng"))

    values = {field: act.get(field) for field in ACTIVITY_SCALAR_FIELDS}
    values.update(
        athlete_id=athlete.id,
        athlete_firstname=athlete.firstname,
        athlete_lastname=athlete.lastname,
        start_lat=latlng[0] if latlng else None,
        start_lng=latlng[1] if latlng else None,
        location_city=location.get("city"),
        location_state=location.get("state"),
        location_country=location.get("country"),
    )

    existing = db.get(Activity, activity_id)
    if existing:
        for key, value in values.items():
            setattr(existing, key, value)
        db.flush()
        return existing

    activity = Activity(id=activity_id, **values)
    db.add(activity)
    # flush para que un id repetido en el mismo lote se encuentre con db.get
    db.flush()
    return activity


def ping(db: Session) -> bool:
    list(db.execute(sa.text("SELECT 1")))
    return True

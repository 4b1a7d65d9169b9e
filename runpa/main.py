import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import FastAPI, Request, HTTPException, Depends
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from . import geo, strava
from .config import APP_REDIRECT_URI, LOG_LEVEL
from .ingest import ingest_activities, IngestionError
from .stats import athlete_rollups, farthest_activities, leaderboards, AnalyticsError
from .storage import get_db_dep, ping

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI()


class CodeIn(BaseModel):
    code: Optional[str] = None


class RefreshIn(BaseModel):
    refresh_token: Optional[str] = None


# ---------- util ----------
def _bearer_or_401(request: Request) -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Falta o es inválida la cabecera Authorization")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Falta o es inválida la cabecera Authorization")
    return token


# ---------- OAuth ----------
@app.get("/strava/callback")
def strava_callback(code: Optional[str] = None):
    if not code:
        raise HTTPException(status_code=400, detail="Falta 'code' en el callback")
    logger.info("Reenviando el code de Strava a la app")
    return RedirectResponse(f"{APP_REDIRECT_URI}?{urlencode({'code': code})}", status_code=307)


@app.post("/strava/exchange_token")
def exchange_token(body: CodeIn):
    if not body.code:
        raise HTTPException(status_code=400, detail="Falta 'code'")
    try:
        return strava.exchange_code_for_token(body.code)
    except (httpx.HTTPError, ValueError):
        logger.exception("Error intercambiando el code por token")
        raise HTTPException(status_code=502, detail="No se pudo obtener el token")


@app.post("/strava/refresh_token")
def refresh_token(body: RefreshIn):
    if not body.refresh_token:
        raise HTTPException(status_code=400, detail="Falta 'refresh_token'")
    try:
        return strava.refresh_access_token(body.refresh_token)
    except (httpx.HTTPError, ValueError):
        logger.exception("Error refrescando el token")
        raise HTTPException(status_code=502, detail="No se pudo refrescar el token")


# ---------- Importar actividades ----------
@app.get("/strava/activities")
def import_activities(request: Request, after: Optional[int] = None, db: Session = Depends(get_db_dep)):
    access_token = _bearer_or_401(request)
    try:
        profile = strava.get_authenticated_athlete(access_token)
        raw = strava.list_activities(access_token, after=after)
    except (httpx.HTTPError, ValueError):
        logger.exception("Error recuperando las actividades de Strava")
        raise HTTPException(status_code=502, detail="Error recuperando las actividades")

    try:
        return ingest_activities(db, profile, raw, geocode=geo.reverse_geocode)
    except IngestionError:
        logger.exception("Error guardando las actividades")
        raise HTTPException(status_code=500, detail="Error guardando las actividades")


# ---------- Consultas de datos ----------
@app.get("/athletes")
def list_athletes(db: Session = Depends(get_db_dep)):
    try:
        return athlete_rollups(db)
    except AnalyticsError:
        logger.exception("Error en /athletes")
        raise HTTPException(status_code=500, detail="Error calculando las estadísticas")


@app.get("/athletes/farthest")
def athletes_farthest(db: Session = Depends(get_db_dep)):
    try:
        return farthest_activities(db)
    except AnalyticsError:
        logger.exception("Error en /athletes/farthest")
        raise HTTPException(status_code=500, detail="Error calculando las estadísticas")


@app.get("/leaderboards")
def get_leaderboards(db: Session = Depends(get_db_dep)):
    try:
        return leaderboards(db)
    except AnalyticsError:
        logger.exception("Error en /leaderboards")
        raise HTTPException(status_code=500, detail="Error calculando las clasificaciones")


@app.get("/admin/health")
def admin_health(db: Session = Depends(get_db_dep)):
    try:
        # simple ping a la DB
        return {"ok": ping(db), "db": True}
    except Exception:
        logger.exception("La BD no responde")
        return {"ok": False, "db": False}

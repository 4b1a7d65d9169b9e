import os
from dotenv import load_dotenv

load_dotenv()

STRAVA_CLIENT_ID = os.getenv("STRAVA_CLIENT_ID", "")
STRAVA_CLIENT_SECRET = os.getenv("STRAVA_CLIENT_SECRET", "")

# Deep link de la app móvil al que se reenvía el 'code' del callback OAuth
APP_REDIRECT_URI = os.getenv("APP_REDIRECT_URI", "com.adaldosso.runpa://oauthredirect")

# Dónde guardamos la DB (SQLite por defecto, Postgres en producción)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data.db")

# Geocodificación inversa (Nominatim o compatible). Nominatim exige User-Agent propio.
GEOCODER_URL = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "runpa-backend/0.1")
GEOCODER_TIMEOUT = float(os.getenv("GEOCODER_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

from typing import Any, Dict, List, Optional

import httpx

from .config import STRAVA_CLIENT_ID, STRAVA_CLIENT_SECRET

STRAVA_API = "https://www.strava.com/api/v3"
STRAVA_AUTH = "https://www.strava.com/oauth"
PER_PAGE = 200


def _get_strava_client(access_token: str) -> httpx.Client:
    headers = {"Authorization": f"Bearer {access_token}"}
    return httpx.Client(base_url=STRAVA_API, headers=headers, timeout=30)


def exchange_code_for_token(code: str) -> Dict[str, Any]:
    with httpx.Client(timeout=30) as c:
        r = c.post(f"{STRAVA_AUTH}/token", data={
            "client_id": STRAVA_CLIENT_ID,
            "client_secret": STRAVA_CLIENT_SECRET,
            "code": code,
            "grant_type": "authorization_code",
        })
        r.raise_for_status()
        return r.json()


def refresh_access_token(refresh_token: str) -> Dict[str, Any]:
    with httpx.Client(timeout=30) as c:
        r = c.post(f"{STRAVA_AUTH}/token", data={
            "client_id": STRAVA_CLIENT_ID,
            "client_secret": STRAVA_CLIENT_SECRET,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        r.raise_for_status()
        return r.json()


def get_authenticated_athlete(access_token: str) -> Dict[str, Any]:
    with _get_strava_client(access_token) as c:
        r = c.get("/athlete")
        r.raise_for_status()
        return r.json()


def list_activities(access_token: str, after: Optional[int] = None, per_page: int = PER_PAGE) -> List[Dict[str, Any]]:
    """Todas las actividades del atleta (paginando hasta una página incompleta)."""
    activities: List[Dict[str, Any]] = []
    with _get_strava_client(access_token) as c:
        page = 1
        while True:
            params = {"page": page, "per_page": per_page}
            if after:
                params["after"] = after
            r = c.get("/athlete/activities", params=params)
            r.raise_for_status()
            items: List[Dict[str, Any]] = r.json()
            if not items:
                break
            activities.extend(items)
            if len(items) < per_page:
                break
            page += 1
    return activities

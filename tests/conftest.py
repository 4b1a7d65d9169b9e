import os
import tempfile

import pytest

# La BD se configura al importar runpa.storage: hay que fijarla antes
_tmpdir = tempfile.mkdtemp(prefix="runpa-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"

from fastapi.testclient import TestClient  # noqa: E402

from runpa.main import app  # noqa: E402
from runpa.models import Activity, Athlete  # noqa: E402
from runpa.storage import SessionLocal  # noqa: E402


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.query(Activity).delete()
        session.query(Athlete).delete()
        session.commit()
        session.close()


@pytest.fixture
def client(db):
    return TestClient(app)


def no_geocode(lat, lon):
    raise AssertionError(f"no se esperaba geocodificar ({lat}, {lon})")


def make_activity(activity_id, **overrides):
    act = {
        "id": activity_id,
        "name": f"Run {activity_id}",
        "distance": 1000.0,
        "moving_time": 300,
        "elapsed_time": 320,
        "total_elevation_gain": 10.0,
        "type": "Run",
        "start_date": "2024-05-01T07:00:00Z",
        "start_latlng": [],
    }
    act.update(overrides)
    return act

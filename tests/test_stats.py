import pytest
from sqlalchemy.exc import SQLAlchemyError

from runpa.ingest import ingest_activities
from runpa.stats import (
    REFERENCE_POINT, AnalyticsError, athlete_rollups, farthest_activities, leaderboards, mask_lastname,
)

from conftest import make_activity, no_geocode

ANTIPODE = [-45.7585, 8.5569 - 180]


def _profile(athlete_id, lastname="Smith"):
    return {"id": athlete_id, "firstname": f"Name{athlete_id}", "lastname": lastname,
            "profile": f"https://example.com/{athlete_id}.jpg", "email": f"{athlete_id}@example.com"}


@pytest.mark.parametrize("name, masked", [
    ("Ng", "N*"),
    ("Smith", "S***h"),
    ("", ""),
    ("N", "N*"),
    ("Lee", "L*e"),
    (None, None),
])
def test_mask_lastname(name, masked):
    assert mask_lastname(name) == masked


def test_rollup_total_distance_and_latest(db):
    ingest_activities(db, _profile(1), [
        make_activity(10, distance=1000.0, start_date="2024-05-01T07:00:00Z", start_latlng=[1.0, 2.0]),
        make_activity(11, distance=2500.0, start_date="2024-06-01T07:00:00Z", start_latlng=[3.0, 4.0]),
        make_activity(12, distance=None, start_date="2024-04-01T07:00:00Z"),
    ], geocode=lambda lat, lon: {"city": None, "state": None, "country": None})

    [row] = athlete_rollups(db)
    assert row["athlete"]["id"] == 1
    assert row["total_distance_km"] == 3.5
    assert row["latest_activity"]["id"] == 11
    assert row["last_latlng"] == {"lat": 3.0, "lng": 4.0}


def test_rollup_latest_tie_goes_to_higher_id(db):
    ingest_activities(db, _profile(1), [
        make_activity(20, start_date="2024-05-01T07:00:00Z"),
        make_activity(21, start_date="2024-05-01T07:00:00Z"),
    ], geocode=no_geocode)

    [row] = athlete_rollups(db)
    assert row["latest_activity"]["id"] == 21
    assert row["last_latlng"] is None


def test_rollup_athlete_without_activities(db):
    ingest_activities(db, _profile(1), [], geocode=no_geocode)

    [row] = athlete_rollups(db)
    assert row["total_distance_km"] == 0.0
    assert row["latest_activity"] is None


def test_farthest_from_reference(db):
    ingest_activities(db, _profile(1), [
        make_activity(1, start_latlng=list(REFERENCE_POINT), location_city="Biella"),
        make_activity(2, start_latlng=ANTIPODE, location_city="Chatham"),
        make_activity(3, start_latlng=None),
    ], geocode=no_geocode)

    [row] = farthest_activities(db)
    farthest = row["farthest_activity"]
    assert farthest["id"] == 2
    assert farthest["distance_from_reference_km"] == pytest.approx(20015, abs=1)
    assert farthest["location"]["city"] == "Chatham"


def test_farthest_at_reference_is_zero(db):
    ingest_activities(db, _profile(1), [
        make_activity(1, start_latlng=list(REFERENCE_POINT), location_city="Biella"),
    ], geocode=no_geocode)

    [row] = farthest_activities(db)
    assert row["farthest_activity"]["distance_from_reference_km"] == 0


def test_farthest_tie_keeps_first(db):
    ingest_activities(db, _profile(1), [
        make_activity(5, start_latlng=[10.0, 10.0], location_city="A"),
        make_activity(6, start_latlng=[10.0, 10.0], location_city="B"),
    ], geocode=no_geocode)

    [row] = farthest_activities(db)
    assert row["farthest_activity"]["id"] == 5


def test_farthest_without_coordinates(db):
    ingest_activities(db, _profile(1), [make_activity(1, start_latlng=None)], geocode=no_geocode)

    [row] = farthest_activities(db)
    assert row["farthest_activity"] is None


def _seed_leaderboard(db, athletes=6):
    # el atleta i tiene i actividades de i km cada una
    next_id = 1
    for i in range(1, athletes + 1):
        acts = []
        for _ in range(i):
            acts.append(make_activity(next_id, distance=1000.0 * i))
            next_id += 1
        ingest_activities(db, _profile(i), acts, geocode=no_geocode)


def test_leaderboards_top_five_sorted_descending(db):
    _seed_leaderboard(db)

    boards = leaderboards(db)

    totals = [e["total_distance_km"] for e in boards["by_total_distance"]]
    longest = [e["longest_distance_km"] for e in boards["by_longest_activity"]]
    counts = [e["activity_count"] for e in boards["by_activity_count"]]

    assert totals == [36.0, 25.0, 16.0, 9.0, 4.0]
    assert longest == [6.0, 5.0, 4.0, 3.0, 2.0]
    assert counts == [6, 5, 4, 3, 2]
    for values in (totals, longest, counts):
        assert len(values) <= 5
        assert all(a > b for a, b in zip(values, values[1:]))


def test_leaderboards_mask_identity(db):
    _seed_leaderboard(db, athletes=1)

    entry = leaderboards(db)["by_total_distance"][0]
    assert entry["athlete"] == {
        "firstname": "Name1",
        "lastname": "S***h",
        "profile": "https://example.com/1.jpg",
    }


def test_leaderboards_skip_missing_distance(db):
    ingest_activities(db, _profile(1), [make_activity(1, distance=None)], geocode=no_geocode)

    boards = leaderboards(db)
    assert boards["by_total_distance"] == []
    assert boards["by_longest_activity"] == []
    assert boards["by_activity_count"][0]["activity_count"] == 1


def test_leaderboards_empty(db):
    assert leaderboards(db) == {"by_total_distance": [], "by_longest_activity": [], "by_activity_count": []}


def test_store_failure_aborts_view(db, monkeypatch):
    def broken(*args, **kwargs):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db, "execute", broken)
    with pytest.raises(AnalyticsError):
        leaderboards(db)
    with pytest.raises(AnalyticsError):
        athlete_rollups(db)


def test_rollup_does_not_expose_email(db):
    ingest_activities(db, _profile(1), [], geocode=no_geocode)

    [row] = athlete_rollups(db)
    assert "email" not in row["athlete"]
    assert row["athlete"]["profile"] == "https://example.com/1.jpg"

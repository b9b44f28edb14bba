import os
import tempfile

# Settings are read at import time; point them at a throwaway database first.
_TMP_DIR = tempfile.mkdtemp(prefix="trip_planner_tests_")
os.environ["DB_PATH"] = os.path.join(_TMP_DIR, "test.sqlite3")
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from trip_planner.core.security import create_access_token
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.planner.persistence import PlanPersistenceGateway
from trip_planner.planner.sessions import sessions
from trip_planner.services.place_service import PlaceService
from trip_planner.services.realtime_service import PlaceRatingFeed


CATALOG = [
    # place_id, name, region, lat, lng, rating, reviews, favorites
    ("p1", "Gyeongbokgung", "Seoul", 37.5796, 126.9770, 4.5, 5, 10),
    ("p2", "Namsan Tower", "Seoul", 37.5512, 126.9882, 4.0, 2, 30),
    ("p3", "Bukchon Village", "Seoul", None, None, 4.8, 9, 20),
    ("p4", "Haeundae Beach", "Busan", 35.1587, 129.1604, 3.9, 1, 50),
    ("p5", "Gamcheon Village", "Busan", 35.0975, 129.0106, None, None, 5),
]


class FakeGeocoder:
    def __init__(self, coords=None):
        self.coords = coords
        self.queries = []

    def find_coordinates(self, query):
        self.queries.append(query)
        return self.coords


@pytest.fixture
def store():
    db = SQLiteStore()
    with db.conn:
        for table in ("trip_plan_detail", "trip_plan", "place", "region"):
            db.conn.execute(f"DELETE FROM {table}")
    yield db
    for session_id in list(sessions._sessions):
        sessions.discard(session_id)
    db.conn.close()


@pytest.fixture
def catalog(store):
    for place_id, name, region, lat, lng, rating, reviews, favorites in CATALOG:
        store.upsert_place(
            place_id, name, region_name=region, latitude=lat, longitude=lng,
            average_rating=rating, review_count=reviews, favorite_count=favorites,
        )
    return store


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def feed():
    return PlaceRatingFeed()


@pytest.fixture
def place_service(catalog, geocoder, feed):
    return PlaceService(store=catalog, geocoder=geocoder, feed=feed)


@pytest.fixture
def gateway(catalog):
    return PlanPersistenceGateway(store=catalog)


@pytest.fixture
def client(catalog):
    from main import app

    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {create_access_token('user-2')}"}

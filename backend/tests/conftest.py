import os
import tempfile

# Settings are read at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PURGE_ENABLED"] = "false"
os.environ["PHOTO_STORAGE_DIR"] = tempfile.mkdtemp(prefix="travel-planner-photos-")

import pytest
from fastapi.testclient import TestClient

from seed_data import seed_lookups
from travel_planner.auth.jwt_manager import jwt_manager
from travel_planner.auth.password import password_manager
from travel_planner.auth.rate_limiter import rate_limiter
from travel_planner.core.database import Base, SessionLocal, engine
from travel_planner.main import app
from travel_planner.models import Country, DestinationType, TravellerType, User
from travel_planner.models.user import ROLE_ADMIN, ROLE_TRAVELLER
from travel_planner.store.entity_store import EntityStore

PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_lookups(db)
    finally:
        db.close()
    rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return EntityStore(db)


@pytest.fixture(scope="session")
def password_hash():
    return password_manager.hash_password(PASSWORD)


@pytest.fixture
def users(db, password_hash):
    """Two travellers and an admin, keyed by role in the tests."""
    created = {
        "traveller": User(email="traveller@example.com", first_name="Tess", last_name="Traveller",
                          hashed_password=password_hash, role=ROLE_TRAVELLER),
        "other": User(email="other@example.com", first_name="Otto", last_name="Other",
                      hashed_password=password_hash, role=ROLE_TRAVELLER),
        "third": User(email="third@example.com", first_name="Thea", last_name="Third",
                      hashed_password=password_hash, role=ROLE_TRAVELLER),
        "admin": User(email="admin@example.com", first_name="Ada", last_name="Admin",
                      hashed_password=password_hash, role=ROLE_ADMIN),
    }
    db.add_all(created.values())
    db.commit()
    return {key: user.id for key, user in created.items()}


@pytest.fixture
def headers(users):
    """Bearer headers for each seeded user."""
    roles = {"admin": ROLE_ADMIN}
    return {
        key: {"Authorization": f"Bearer {jwt_manager.create_access_token(user_id, roles.get(key, ROLE_TRAVELLER))}"}
        for key, user_id in users.items()
    }


@pytest.fixture
def lookups(db):
    """Ids of the seeded lookup rows, by name."""
    return {
        "types": {row.name: row.id for row in db.query(DestinationType).all()},
        "countries": {row.name: row.id for row in db.query(Country).all()},
        "traveller_types": {row.name: row.id for row in db.query(TravellerType).all()},
    }


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def destination_payload(lookups):
    def build(name="Test City", country="Peru", type_name="City", is_public=False, **extra):
        payload = {
            "name": name,
            "type_id": lookups["types"][type_name],
            "country_id": lookups["countries"][country],
            "district": "Lima",
            "latitude": -12.04,
            "longitude": -77.03,
            "is_public": is_public,
        }
        payload.update(extra)
        return payload
    return build


@pytest.fixture
def create_destination(client, headers, users, destination_payload):
    """Create a destination through the API and return its JSON."""
    def create(owner="traveller", **kwargs):
        response = client.post(
            f"/users/{users[owner]}/destinations",
            json=destination_payload(**kwargs),
            headers=headers[owner],
        )
        assert response.status_code == 201, response.text
        return response.json()
    return create


@pytest.fixture
def upload_photo(client, headers, users):
    def upload(owner="traveller", is_public=True, content=b"\x89PNG fake image bytes"):
        response = client.post(
            f"/users/{users[owner]}/photos",
            files={"file": ("holiday.png", content, "image/png")},
            data={"is_public": str(is_public).lower()},
            headers=headers[owner],
        )
        assert response.status_code == 201, response.text
        return response.json()
    return upload


@pytest.fixture
def password():
    return PASSWORD

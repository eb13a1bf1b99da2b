import os

# Must be set before the application modules are imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient

from carebook.main import app
from carebook.core.database import Base, get_db, get_redis, get_session_factory
from carebook.services.auth_service import AuthService

from .utils import (
    ADMIN_EMAIL, PASSWORD, FakeRedis, TestingSessionLocal, auth_headers, engine,
    login, provision_doctor, register_patient,
)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal


@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(test_db, fake_redis):
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def admin(client):
    db = TestingSessionLocal()
    try:
        user = AuthService(db).ensure_admin(ADMIN_EMAIL, PASSWORD, "Ada Admin")
        user_id = user.id
    finally:
        db.close()
    tokens = login(client, ADMIN_EMAIL)
    return {"id": user_id, "headers": auth_headers(tokens["access_token"])}


@pytest.fixture
def department(client, admin):
    response = client.post(
        "/api/v1/departments",
        json={"name": "Cardiology", "description": "Heart and cardiovascular care"},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def doctor(client, admin, department):
    return provision_doctor(client, admin["headers"], department["id"])


@pytest.fixture
def patient(client):
    return register_patient(client, "patient@example.com")

"""Shared fixtures: in-memory database, API client and user factories."""
import os

# Settings are read once and cached, so the environment must be in place
# before anything from amp_core is imported.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_SCHEMA"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENCRYPTION_KEY"] = "0123456789abcdef0123456789abcdef"
os.environ["EXIT_ON_ASYNC_ERROR"] = "false"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = "admin@example.com"
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = "admin-password"

import pytest
from fastapi.testclient import TestClient

from amp_core import crud
from amp_core.config import Settings
from amp_core.database import SessionLocal, create_schema, dispose_engine, init_engine
from amp_core.models import UserRole, UserStatus

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"
DEFAULT_PASSWORD = "password123"


@pytest.fixture
def db():
    """A session on a fresh in-memory database."""
    init_engine(Settings(database_url="sqlite://"))
    create_schema()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        dispose_engine()


@pytest.fixture
def make_db_user(db):
    """Create users directly through the store."""
    counter = {"n": 0}

    def _make(role=UserRole.OWNER, status=UserStatus.ACTIVE, email=None, password=DEFAULT_PASSWORD):
        counter["n"] += 1
        email = email or f"{role.value}{counter['n']}@example.com"
        return crud.create_user(db, email, password, role=role, status=status)

    return _make


@pytest.fixture
def client():
    """API client. Each client gets its own database and bootstrap admin."""
    from amp_core.api.main import app

    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


@pytest.fixture
def make_user(client, admin_token):
    """
    Register a user over HTTP, activate it as the admin and log in.

    Returns (user dict, token).
    """
    counter = {"n": 0}

    def _make(role="owner", email=None, password=DEFAULT_PASSWORD, activate=True):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@example.com"
        response = client.post("/api/auth/register", json={"email": email, "password": password, "role": role})
        assert response.status_code == 201, response.text
        user = response.json()["data"]["user"]

        if not activate:
            return user, response.json()["data"]["token"]

        response = client.put(
            f"/api/auth/users/{user['id']}",
            json={"status": "active"},
            headers=auth_headers(admin_token),
        )
        assert response.status_code == 200, response.text

        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["data"]["user"], response.json()["data"]["token"]

    return _make


@pytest.fixture
def auth():
    """Build an Authorization header for a token."""
    return auth_headers

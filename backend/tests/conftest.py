"""Shared test fixtures."""

import os
import uuid

import pytest

# Settings are read at import time, so configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("INVITATION_RATE_LIMIT", "1000/minute")

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.config import settings  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402
from app.db import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Profile  # noqa: E402

API = settings.API_V1_STR
PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as db:
        yield db


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_profile(session):
    """Insert a profile directly, bypassing the register endpoint."""

    def _make(email=None, full_name=None):
        profile = Profile(
            email=email or f"user-{uuid.uuid4().hex[:8]}@tripstitch.io",
            full_name=full_name,
            hashed_password=get_password_hash(PASSWORD),
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def register(client):
    """Register through the API and return (profile json, auth headers)."""

    def _register(email=None, full_name=None):
        email = email or f"user-{uuid.uuid4().hex[:8]}@tripstitch.io"
        resp = client.post(
            f"{API}/auth/register",
            json={"email": email, "password": PASSWORD, "full_name": full_name},
        )
        assert resp.status_code == 201, resp.text
        login = client.post(
            f"{API}/auth/login", json={"email": email, "password": PASSWORD}
        )
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return resp.json(), {"Authorization": f"Bearer {token}"}

    return _register


@pytest.fixture
def create_calendar(client):
    def _create(headers, name="Trip A", **extra):
        resp = client.post(
            f"{API}/calendars/", json={"name": name, **extra}, headers=headers
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create

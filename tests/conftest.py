"""Shared fixtures: isolated database, app client, users and trips."""

import os
import secrets
import tempfile
from typing import Optional

# Setup environment for testing (before anything imports tripshare.config)
os.environ["TRIPSHARE_DATA_DIR"] = tempfile.mkdtemp()
os.environ["TRIPSHARE_DB_PATH"] = os.path.join(os.environ["TRIPSHARE_DATA_DIR"], "test.db")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from tripshare.database import engine, init_db
from tripshare.main import app
from tripshare.models.user import Trip, User
from tripshare.services.rate_limiter import rate_limiter
from tripshare.utils.security import create_access_token


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate all tables and clear rate-limit state for every test."""
    SQLModel.metadata.drop_all(engine)
    init_db()
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(session):
    def _make(is_admin: bool = False, email: Optional[str] = None) -> User:
        user = User(
            email=email or f"user-{secrets.token_hex(4)}@example.com",
            is_admin=is_admin,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_trip(session):
    def _make(title: str = "Trip") -> Trip:
        trip = Trip(slug=f"trip-{secrets.token_hex(4)}", title=title)
        session.add(trip)
        session.commit()
        session.refresh(trip)
        return trip

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(is_admin=True, email="admin@example.com")


@pytest.fixture
def member(make_user):
    return make_user(email="member@example.com")


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers

# tests/conftest.py
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

# Settings are read at import time, so the environment is fixed first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret-for-onetrack"
os.environ["PROFILE_INSERT_BACKOFF_SECONDS"] = "0"
for _key in ("SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_SERVICE_ROLE_KEY"):
    os.environ.pop(_key, None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from onetrack.core.identity_gateway import (
    IdentityProviderError,
    IdentityRecord,
    get_identity_gateway,
)
from onetrack.core.realtime import feed
from onetrack.database import get_session, get_session_factory
from onetrack.main import app
from onetrack.models.profile import Profile
from onetrack.models.role import Role

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
ROLES = ("admin", "technician", "customer")


class FakeIdentityGateway:
    """In-memory stand-in for Supabase Auth."""

    def __init__(self):
        self.users: dict[uuid.UUID, IdentityRecord] = {}
        self.passwords: dict[uuid.UUID, str] = {}
        self.admin_verdict: bool | None = None
        self.fail_create: IdentityProviderError | None = None

    def add(self, email: str, user_id: uuid.UUID | None = None) -> IdentityRecord:
        record = IdentityRecord(id=user_id or uuid.uuid4(), email=email)
        self.users[record.id] = record
        return record

    def get_user(self, user_id: uuid.UUID) -> IdentityRecord | None:
        return self.users.get(user_id)

    def create_user(self, email: str, password: str, metadata: dict[str, Any]) -> IdentityRecord:
        if self.fail_create is not None:
            raise self.fail_create
        if any(u.email == email for u in self.users.values()):
            raise IdentityProviderError(
                "A user with this email address has already been registered",
                status_code=422,
            )
        record = IdentityRecord(id=uuid.uuid4(), email=email, metadata=metadata)
        self.users[record.id] = record
        self.passwords[record.id] = password
        return record

    def update_user(self, user_id, password=None, email=None, metadata=None) -> None:
        record = self.users.get(user_id)
        if record is None:
            raise IdentityProviderError("User not found", status_code=404)
        if password is not None:
            self.passwords[user_id] = password
        if email is not None:
            record.email = email
        if metadata is not None:
            record.metadata = metadata

    def delete_user(self, user_id: uuid.UUID) -> None:
        if user_id not in self.users:
            raise IdentityProviderError("User not found", status_code=404)
        del self.users[user_id]
        self.passwords.pop(user_id, None)

    def is_admin(self, token: str) -> bool | None:
        return self.admin_verdict


def make_jwt(user_id: uuid.UUID, email: str | None = None, secret: str = JWT_SECRET) -> str:
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enforce foreign keys the way Postgres does
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        for name in ROLES:
            session.add(Role(name=name))
        session.commit()
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeIdentityGateway()


@pytest.fixture
def client(engine, gateway):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_session_factory] = lambda: (lambda: Session(engine))
    app.dependency_overrides[get_identity_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_feed():
    yield
    feed._listeners.clear()


@pytest.fixture
def make_user(session, gateway):
    """Create identity + profile and return (profile, token)."""

    def _make(role: str, email: str | None = None, **fields) -> tuple[Profile, str]:
        email = email or f"{role}-{uuid.uuid4().hex[:6]}@example.com"
        record = gateway.add(email)
        profile = Profile(id=record.id, email=email, role=role, **fields)
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile, make_jwt(record.id, email)

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", "admin@example.com", first_name="Ana", last_name="Admin")


@pytest.fixture
def technician(make_user):
    return make_user("technician", "tech@example.com", first_name="Tono")

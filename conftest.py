"""
Shared pytest fixtures: an in-memory record store, fake Firebase services and
a controllable clock, wired into the real FastAPI app.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from core.context import AppContext
from core.errors import StorageFailure
from db.session import create_db_engine, create_tables
from main import create_app
from models.user import UserProfile, UserRole
from services.session_repository import SqlSessionRepository
from services.shift_session import ShiftSessionService
from utils.geolocation import LocationPolicy

ADMIN_EMAIL = "boss@example.com"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeUserStore:
    def __init__(self):
        self.profiles: Dict[str, UserProfile] = {}

    def get(self, uid: str) -> Optional[UserProfile]:
        return self.profiles.get(uid)

    def create(self, profile: UserProfile) -> None:
        self.profiles[profile.id] = profile

    def update(self, uid: str, fields: Dict[str, Any]) -> None:
        self.profiles[uid] = self.profiles[uid].model_copy(update=fields)

    def delete(self, uid: str) -> None:
        self.profiles.pop(uid, None)

    def list_all(self) -> List[UserProfile]:
        return list(self.profiles.values())


class FakeEvidenceStore:
    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail = False

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        if self.fail:
            raise StorageFailure("bucket unreachable")
        self.objects[path] = data
        return f"https://storage.test/{path}"

    def delete(self, path: str) -> None:
        self.objects.pop(path, None)


def fake_verify_id_token(token: str) -> dict:
    # Test tokens are "<uid>" or "<uid>|<email>"
    if not token or token == "invalid":
        raise ValueError("Invalid ID token")
    uid, _, email = token.partition("|")
    return {"uid": uid, "email": email or f"{uid}@example.com", "name": uid.title()}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return SqlSessionRepository(engine)


@pytest.fixture
def evidence_store():
    return FakeEvidenceStore()


@pytest.fixture
def user_store():
    store = FakeUserStore()
    store.create(UserProfile(id="worker-1", name="Ann Worker", email="worker-1@example.com"))
    store.create(UserProfile(id="worker-2", name="Bob Worker", email="worker-2@example.com"))
    store.create(UserProfile(id="admin-1", name="Cara Admin", email=ADMIN_EMAIL, role=UserRole.ADMIN))
    return store


@pytest.fixture
def service(repository, evidence_store, clock):
    return ShiftSessionService(
        repository=repository,
        evidence_store=evidence_store,
        location_policy=LocationPolicy.BEST_EFFORT,
        clock=clock,
    )


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        location_policy=LocationPolicy.BEST_EFFORT,
        admin_email=ADMIN_EMAIL,
        report_timezone="UTC",
    )


@pytest.fixture
def revoked():
    return []


@pytest.fixture
def context(settings, engine, user_store, evidence_store, clock, revoked):
    return AppContext(
        settings=settings,
        engine=engine,
        user_store=user_store,
        evidence_store=evidence_store,
        verify_id_token=fake_verify_id_token,
        revoke_refresh_tokens=revoked.append,
        clock=clock,
    )


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as client:
        yield client

"""Pytest fixtures: своя in-memory SQLite на каждый тест, серверные часы под контролем."""
import logging
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logging.getLogger("sqlalchemy").setLevel(logging.ERROR)

# до импорта wordsync: Settings() читает окружение при импорте
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ["DATABASE_URL"] = "sqlite://"

from wordsync.api.routes.sync import get_conflict_policy, get_server_clock  # noqa: E402
from wordsync.core.enums import ConflictPolicy  # noqa: E402
from wordsync.core.security import hash_password  # noqa: E402
from wordsync.db.base import Base  # noqa: E402
from wordsync.db.session import get_db  # noqa: E402
from wordsync.device.card_service import LocalCardService  # noqa: E402
from wordsync.device.store import RecordStore  # noqa: E402
from wordsync.main import app  # noqa: E402
from wordsync.models.user import User  # noqa: E402

T0 = 1_700_000_000_000


class FakeClock:
    """Часы в мс, которые двигаются только руками."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture(scope="function")
def server_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def conflict_policy():
    """Тест может поменять policy["value"] до запроса."""
    return {"value": ConflictPolicy.last_write_wins}


@pytest.fixture(scope="function")
def client(session_factory, server_clock, conflict_policy):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_server_clock] = lambda: server_clock
    app.dependency_overrides[get_conflict_policy] = lambda: conflict_policy["value"]

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_user(db):
    user = User(username="testuser", password_hash=hash_password("password123"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def auth_token(client: TestClient, test_user: User):
    response = client.post(
        "/auth/login",
        json={"username": test_user.username, "password": "password123"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def register_user(client: TestClient):
    """Регистрирует пользователя и возвращает его токен."""

    def _register(username: str, password: str = "password123") -> str:
        response = client.post("/auth/register", json={"username": username, "password": password})
        assert response.status_code == 201
        return response.json()["access_token"]

    return _register


# -----------------------------
# Device side
# -----------------------------

@pytest.fixture(scope="function")
def device_clock() -> FakeClock:
    # часы устройства убежали на час вперёд от серверных
    return FakeClock(T0 + 3_600_000)


@pytest.fixture(scope="function")
def store():
    store = RecordStore("sqlite://")
    yield store
    store.close()


@pytest.fixture(scope="function")
def cards(store, device_clock) -> LocalCardService:
    return LocalCardService(store, clock=device_clock)

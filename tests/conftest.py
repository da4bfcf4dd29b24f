"""
Shared pytest fixtures.

Each test gets its own SQLite file database so no Postgres is required and
no rows leak between tests.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from app.core.dependencies import get_user_repository
from app.db.base import ensure_schema
from app.main import create_app
from app.repositories.user_repository import UserRepository


class SpyRepository:
    """Stand-in repository that records every call and never finds a row."""

    def __init__(self):
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name, args))
        return None

    def list(self):
        self._record("list")
        return []

    def get_by_id(self, user_id):
        return self._record("get_by_id", user_id)

    def create(self, data):
        return self._record("create", data)

    def update(self, user_id, data):
        return self._record("update", user_id, data)

    def remove(self, user_id):
        return self._record("remove", user_id)


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test_users.db'}",
        connect_args={"check_same_thread": False},
    )
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def repo(engine):
    return UserRepository(engine)


@pytest.fixture()
def app(engine):
    return create_app(engine=engine)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def spy():
    return SpyRepository()


@pytest.fixture()
def spy_client(app, spy):
    app.dependency_overrides[get_user_repository] = lambda: spy
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def ann(client):
    r = client.post("/api/users", json={"name": "Ann", "email": "ann@x.com", "age": 30})
    assert r.status_code == 201
    return r.json()["data"]

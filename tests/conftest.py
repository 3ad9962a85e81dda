"""
Task Guardian Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

Stores and the API run against in-memory SQLite; no external services.
"""

from __future__ import annotations

from typing import Dict

import pytest

from taskguardian.engine.config import (
    DatabaseConfig,
    LoggingConfig,
    PlatformConfig,
    SecurityConfig,
)

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def _isolate_log_queue():
    """Reset the global log queue between tests."""
    from taskguardian.engine.logging import shutdown_logging

    shutdown_logging()
    yield
    shutdown_logging()


@pytest.fixture
def config() -> PlatformConfig:
    return PlatformConfig(
        database=DatabaseConfig(url="sqlite://"),
        security=SecurityConfig(jwt_secret=TEST_SECRET, bcrypt_rounds=4),
        logging=LoggingConfig(enabled=False),
    )


@pytest.fixture
def db(config):
    from taskguardian.db.session import Database

    database = Database(config.database)
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def user_store(db):
    from taskguardian.stores.users import UserStore

    return UserStore(db, bcrypt_rounds=4)


@pytest.fixture
def task_store(db):
    from taskguardian.stores.tasks import TaskStore

    return TaskStore(db)


@pytest.fixture
def sessions(config):
    from taskguardian.engine.security import SessionManager

    return SessionManager(config.security)


@pytest.fixture
def app(config, db):
    from taskguardian.api.app import create_app

    return create_app(config, db=db)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def make_context():
    """Build a RequestContext for a role."""
    from taskguardian.engine.context import RequestContext

    def _make(role: str, user_id: str = "u1") -> RequestContext:
        return RequestContext(user_id=user_id, role=role, username=f"{role.lower()}_{user_id}")

    return _make


class ApiUser:
    """A signed-up user as seen by the HTTP tests."""

    def __init__(self, user_id: str, username: str, role: str, token: str):
        self.id = user_id
        self.username = username
        self.role = role
        self.token = token

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def signup(client, sessions):
    """Sign up through the API and return an ApiUser."""

    def _signup(username: str, role: str, password: str = "pass12345") -> ApiUser:
        resp = client.post(
            "/api/auth/signup",
            json={"username": username, "password": password, "role": role},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["session"]
        identity = sessions.validate(token)
        return ApiUser(identity.user_id, username, role, token)

    return _signup


@pytest.fixture
def admin(signup):
    return signup("admin_user", "ADMIN")


@pytest.fixture
def manager(signup):
    return signup("manager_user", "MANAGER")


@pytest.fixture
def regular(signup):
    return signup("regular_user", "REGULAR")


@pytest.fixture
def create_task(client):
    def _create(user: ApiUser, title: str = "Write report", description: str = "Quarterly numbers") -> dict:
        resp = client.post(
            "/api/task",
            json={"title": title, "description": description},
            headers=user.headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["task"]

    return _create

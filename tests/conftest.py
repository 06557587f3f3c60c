from __future__ import annotations

import os

# Settings are read once at import time; configure the test environment first.
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-equiptrack"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["EMAIL_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from equiptrack import models  # noqa: F401  (register tables)
from equiptrack.auth import hash_password
from equiptrack.database import Base, get_db
from equiptrack.models import Equipment, User


class RedisStub:
    """In-memory subset of the redis client API used by the app."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = int(ex)
        return True

    def get(self, key: str):
        return self.store.get(key)

    def getdel(self, key: str):
        self.ttls.pop(key, None)
        return self.store.pop(key, None)

    def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key: str, ttl: int) -> bool:
        self.ttls[key] = int(ttl)
        return True

    def ttl(self, key: str) -> int:
        return self.ttls.get(key, -1)


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def redis_stub(monkeypatch):
    from equiptrack import redis_client

    stub = RedisStub()
    monkeypatch.setattr(redis_client, "_redis_client", stub)
    return stub


@pytest.fixture()
def make_user(db_session):
    def _make_user(
        email: str = "alice@example.com",
        password: str = "Secret123",
        role: str = "USER",
        is_active: bool = True,
        first_name: str = "Alice",
        last_name: str = "Martin",
    ) -> User:
        user = User(
            email=email.lower(),
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_equipment(db_session):
    def _make_equipment(creator: User, **fields) -> Equipment:
        values = {"name": "Drill", "category": "Tools", "status": "IN_SERVICE"}
        values.update(fields)
        equipment = Equipment(created_by=creator.id, **values)
        db_session.add(equipment)
        db_session.commit()
        db_session.refresh(equipment)
        return equipment

    return _make_equipment


@pytest.fixture()
def client(db_session):
    from equiptrack.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

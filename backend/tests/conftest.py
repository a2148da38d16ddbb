"""Shared fixtures: an isolated SQLite database per test."""
import os
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("SESSION_SWEEP_INTERVAL_SECONDS", "0")

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from garage_ui.database import Base, enable_sqlite_foreign_keys
from garage_ui.models.user import User
from garage_ui.services.hashing import get_password_hash


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email: str = "admin@example.com", password: str = "TestPass123!") -> User:
    user = User(email=email, name=email.split("@")[0], password_hash=get_password_hash(password))
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def user_factory(db):
    def factory(email: str, password: str = "TestPass123!") -> User:
        return make_user(db, email, password)

    return factory


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin ``clock.now()``; call the returned setter to move time."""
    from garage_ui.services import clock

    current = {"now": 1_700_000_000}
    monkeypatch.setattr(clock, "now", lambda: current["now"])

    def set_now(value: int) -> int:
        current["now"] = value
        return value

    return set_now

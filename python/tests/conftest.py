"""Pytest configuration and fixtures for miniX tests.

Test isolation strategy:
- Every test gets its own engine with a freshly created schema
- Without DATABASE_URL the engine is in-memory SQLite on a single shared
  connection (StaticPool), so the test session and request sessions see
  each other's commits
- The app's get_db dependency is overridden to use the test engine
"""

import os
from collections.abc import Generator

# Settings are read lazily, but must resolve before the first create_app().
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("MINIX_ENV", "test")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from minix.app import create_app
from minix.config import Settings, clear_settings_cache, get_settings
from minix.db.models import Base
from minix.db.session import create_session_factory, get_db


def get_test_database_url() -> str:
    return os.environ["DATABASE_URL"]


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create an engine with the full schema for one test."""
    database_url = get_test_database_url()
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the test engine."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def app(engine: Engine) -> FastAPI:
    """Provide the application with get_db bound to the test engine."""
    session_factory = create_session_factory(engine)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()

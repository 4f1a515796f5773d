"""Pytest configuration and fixtures for tests."""

import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from propcrawl.database import Base, get_db, make_engine  # noqa: E402
from propcrawl.services.storage_service import StorageManager, get_storage  # noqa: E402


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database, shared across threads via StaticPool."""
    engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    # Import all models so they're registered
    import propcrawl.models  # noqa: F401

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Provide a database session for each test."""
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def storage(tmp_path) -> StorageManager:
    manager = StorageManager(str(tmp_path / "uploads"), max_storage_mb=1)
    manager.ensure_directories()
    return manager


@pytest.fixture
def client(db, storage):
    """API client bound to the test database and upload directory."""
    from propcrawl.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

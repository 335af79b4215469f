"""
Shared fixtures: an in-memory SQLite database rebuilt for every test
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.db import Base, get_db
from app.services.guest_service import GuestService
from app.services.repositories import GuestRepository
from main import app as fastapi_app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repository(db_session):
    return GuestRepository(db_session)


@pytest.fixture
def service(repository):
    return GuestService(repository)


@pytest.fixture
def client(db_session):
    fastapi_app.dependency_overrides[get_db] = lambda: db_session
    # Lifespan is not started, so the process-wide engine is never created
    yield TestClient(fastapi_app, raise_server_exceptions=False)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_guest(service):
    """Create a guest through the service with sensible defaults"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "guest_id": f"G{counter['n']:03d}",
            "english_name": f"Guest {counter['n']}",
            "guest_of": "Bride",
        }
        payload.update(overrides)
        return service.create_guest(payload)

    return _make

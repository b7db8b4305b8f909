"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are read once and cached; set test values before any import
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_DSN"] = "sqlite://"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENABLE_BACKGROUND_TASKS"] = "false"
os.environ["MAX_FREE_GENERATIONS"] = "5"
os.environ["TOGETHER_API_KEY"] = "test-together-key"
os.environ["METAL_API_KEY"] = "test-metal-key"
os.environ["METAL_BASE_CURRENCY"] = "PKR"

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from halal_tools.core.database import build_engine
from halal_tools.models import Base


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every session of one test"""
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Session:
    """Create a database session for testing"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """Create test client with database dependency override"""
    from fastapi.testclient import TestClient

    from halal_tools.core.database import get_db
    from halal_tools.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register a user through the API and return (user, token)"""
    def _signup(email="user@example.com", password="s3cret-pass", name="Test User"):
        response = client.post(
            "/api/auth/signup",
            json={"email": email, "name": name, "password": password},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return body["user"], body["token"]
    return _signup

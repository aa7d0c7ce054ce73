"""Test configuration and fixtures."""

import os
import sys
import tempfile

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Keep test runs away from the real database and log directory
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="nuggets-test-logs-"))

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from nuggets.core.db import Base  # noqa: E402
from nuggets.models import schema  # noqa: E402, F401


@pytest.fixture
def test_db():
    """Create a test database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(test_db):
    """Session factory bound to the test database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db)


@pytest.fixture
def db_session(session_factory):
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session, session_factory):
    """Create a test client with database and enrichment overrides."""
    from fastapi.testclient import TestClient

    from nuggets.core.db import get_db_session
    from nuggets.main import app
    from nuggets.routers.articles import get_media_enricher
    from nuggets.routers.tags import get_tag_session_factory

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def passthrough_enricher(media):
        return media

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_tag_session_factory] = lambda: session_factory
    app.dependency_overrides[get_media_enricher] = lambda: passthrough_enricher

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

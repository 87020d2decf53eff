"""
Writify API - test configuration and fixtures
"""
import os
import itertools
from datetime import datetime

# Set testing environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["RETENTION_SCHEDULER_ENABLED"] = "false"
os.environ["MAINTENANCE_TOKEN"] = "test-maintenance-token"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from writify.main import app
from writify.core.security import create_access_token
from writify.db.base import Base
from writify.db.sessions import get_db
from writify.models import User
from writify.models.user import ROLE_STUDENT, WRITER_INACTIVE
from writify.routes.maintenance import get_sweep
from writify.services.retention import RetentionSweep

_ids = itertools.count(1)


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """Test client wired to the test database"""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sweep] = lambda: RetentionSweep(session_factory)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory creating committed users"""
    def _make_user(
        name: str = "Student",
        role: str = ROLE_STUDENT,
        writer_status: str = WRITER_INACTIVE,
        whatsapp_number: str = None,
        created_at: datetime = None,
    ) -> User:
        n = next(_ids)
        user = User(
            google_id=f"google-{n}",
            email=f"user{n}@student.iul.ac.in",
            name=name,
            role=role,
            writer_status=writer_status,
            whatsapp_number=whatsapp_number,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers(user: User) -> dict:
    """Bearer header for ``user``"""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers

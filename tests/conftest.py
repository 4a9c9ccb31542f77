"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time; these must be in place before any app import.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="inkpost-uploads-")
os.environ["APP_ENV"] = "development"
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.blog import Blog  # noqa: E402, F401
from app.models.user import ROLE_ADMIN, User  # noqa: E402, F401
from app.services.jwt import get_jwt_service  # noqa: E402
from app.services.users import get_user_store  # noqa: E402


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def make_user(
    db: Session,
    email: str,
    password: str = "password123",
    first_name: str = "Test",
    last_name: str = "User",
    role: str = "user",
) -> dict:
    """Create a user directly through the store and return (user data, token)."""
    user = get_user_store().create(
        db, first_name=first_name, last_name=last_name, email=email, password=password, role=role
    )
    token = get_jwt_service().create_token(user_id=user.id, role=user.role)
    return {"user_id": user.id, "email": user.email, "password": password, "token": token}


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user and return its data and token."""
    return make_user(db_session, "test@example.com")


@pytest.fixture(name="other_user")
def other_user_fixture(db_session: Session):
    """A second, unrelated regular user."""
    return make_user(db_session, "other@example.com", first_name="Other", last_name="Person")


@pytest.fixture(name="admin_user")
def admin_user_fixture(db_session: Session):
    """An administrator."""
    return make_user(db_session, "admin@example.com", first_name="Ada", last_name="Admin", role=ROLE_ADMIN)

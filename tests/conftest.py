import os
from typing import Generator

# Point the app at a private in-memory database before it is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from dormdash.database import Base, SessionLocal, engine  # noqa: E402
from dormdash.main import app  # noqa: E402
from dormdash.models import User  # noqa: E402


@pytest.fixture(autouse=True)
def clean_db():
    """Reset schema for each test for isolation."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client(clean_db) -> Generator[TestClient, None, None]:
    """FastAPI test client that also triggers startup/shutdown hooks."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db_session(clean_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user_factory(db_session):
    """Create users directly in the test database, bypassing the API."""

    def _create_user(user_id: str, email: str, user_name=None) -> User:
        user = User(id=user_id, email=email, user_name=user_name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user

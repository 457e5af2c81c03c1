import os
import tempfile
import uuid
from pathlib import Path

# Point the app at a throwaway SQLite file before `quizhub` is imported
_DB_DIR = Path(tempfile.mkdtemp(prefix="quizhub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"

import pytest
from sqlmodel import Session

from quizhub.database import engine, create_db_and_tables
from quizhub import services


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Ensure a fresh SQLite database for tests."""
    create_db_and_tables()
    yield
    engine.dispose()


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(session):
    """Create a user with a unique name; password equals the username."""
    def _make(role="student"):
        name = f"{role}-{uuid.uuid4().hex[:8]}"
        return services.AuthService(session).register(name, name, role=role)
    return _make


@pytest.fixture
def make_problem(session, make_user):
    """Create a problem owned by a fresh company user with the given quiz."""
    def _make(quiz):
        company = make_user("company")
        return services.ProblemService(session).create(
            posted_by=company.id, title="Bridge design", company="Acme", quiz=quiz,
        )
    return _make

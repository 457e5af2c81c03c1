"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `app.db` at the repository
root by default) and provides small helpers used by the application,
scripts and tests.
"""

from sqlmodel import SQLModel, create_engine, Session
from .config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=_connect_args(settings.DATABASE_URL))


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; the unique constraint on
    `(problem_id, student_id)` that the response ledger relies on is part
    of the table metadata, so it is created here as well.
    """
    from . import models  # noqa: F401  (register tables on the metadata)
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session

"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides the
helpers the application lifespan and the tests use to create and tear
down the schema.
"""

from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across FastAPI worker threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=_connect_args(settings.DATABASE_URL))


def create_db_and_tables():
    """Create the `users`, `courses` and `study_groups` tables.

    Intended for local development and tests; existing tables are left
    untouched.
    """
    # registers the table classes on SQLModel.metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table known to the metadata."""
    from . import models  # noqa: F401

    SQLModel.metadata.drop_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session

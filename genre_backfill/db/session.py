"""Database session management for the album catalogue."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import sqlalchemy.engine
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker

from genre_backfill.db.models import Base
from genre_backfill.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    DatabaseNotFoundError,
)

log = logging.getLogger(__name__)

# Required tables for schema validation
REQUIRED_TABLES = {"albums", "artists"}


def get_engine(db_path: Path, *, create: bool = False) -> sqlalchemy.engine.Engine:
    """Create SQLAlchemy engine for the catalogue database.

    Args:
        db_path: Path to the SQLite file.
        create: Create the file and tables if they don't exist yet.

    Raises:
        DatabaseNotFoundError: If the file doesn't exist and ``create`` is False.
    """
    db_path = db_path.expanduser().resolve()

    if not db_path.exists() and not create:
        raise DatabaseNotFoundError(db_path)

    if create:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={
            "timeout": 30,
            "check_same_thread": False,
        },
    )
    if create:
        Base.metadata.create_all(engine)
        log.debug("Ensured catalogue schema in %s", db_path)
    return engine


def validate_schema(engine: sqlalchemy.engine.Engine) -> None:
    """Check that the catalogue tables exist.

    Raises:
        DatabaseError: If required tables are missing.
    """
    existing_tables = set(inspect(engine).get_table_names())
    missing = REQUIRED_TABLES - existing_tables
    if missing:
        raise DatabaseError(
            f"Missing required tables: {', '.join(sorted(missing))}. "
            f"Is this an album catalogue database?"
        )


@contextmanager
def get_session(db_path: Path, *, create: bool = False) -> Generator[Session, None, None]:
    """Open a session on the catalogue database.

    Commits on success, rolls back on error, always closes.

    Raises:
        DatabaseNotFoundError: If database file doesn't exist.
        DatabaseError: If the schema is not a catalogue schema.
        DatabaseConnectionError: If connection fails.

    Example:
        with get_session(Path("albums.sqlite")) as session:
            store = SqlRecordStore(session)
    """
    try:
        engine = get_engine(db_path, create=create)
        validate_schema(engine)
    except DatabaseError:
        raise
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to connect: {e}") from e

    session_factory = sessionmaker(bind=engine)
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()

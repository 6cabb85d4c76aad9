# fibersync/db/engine_sync.py
"""
Synchronous engine used by every service, router and scheduled job.
SQLite runs in WAL mode to avoid "database is locked" between the API and
the scheduler process.
"""
import os
from typing import Generator

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

DATABASE_URL = os.getenv("DATABASE_URL_SYNC")

if DATABASE_URL is None:
    DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")
    DATABASE_FILE = os.path.join(DATA_DIR, "db", "fibersync.sqlite")
    os.makedirs(os.path.dirname(DATABASE_FILE), exist_ok=True)
    DATABASE_URL = f"sqlite:///{DATABASE_FILE}"

_is_sqlite = DATABASE_URL.startswith("sqlite")

sync_engine = create_engine(
    DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)


if _is_sqlite:
    @event.listens_for(sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.close()


def get_sync_session() -> Generator[Session, None, None]:
    """
    Dependency for sync session injection.
    Usage: session: Session = Depends(get_sync_session)
    """
    with Session(sync_engine) as session:
        yield session


def create_sync_db_and_tables():
    """Create all tables. Models must be imported first (see fibersync.models)."""
    import fibersync.models  # noqa: F401

    SQLModel.metadata.create_all(sync_engine)

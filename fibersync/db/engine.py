# fibersync/db/engine.py
"""
Async SQLModel engine used by fastapi-users (fastapi-users-db-sqlalchemy
needs an AsyncSession). SQLite by default, any async URL via DATABASE_URL.
"""

import os
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

DATABASE_URL = os.getenv("DATABASE_URL")

if DATABASE_URL is None:
    DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")
    DATABASE_FILE = os.path.join(DATA_DIR, "db", "fibersync.sqlite")
    os.makedirs(os.path.dirname(DATABASE_FILE), exist_ok=True)
    DATABASE_URL = f"sqlite+aiosqlite:///{DATABASE_FILE}"

_is_sqlite = DATABASE_URL.startswith("sqlite")

_connect_args = {"check_same_thread": False} if _is_sqlite else {}
engine = create_async_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.close()

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for async session injection (authentication only).
    Usage: session: AsyncSession = Depends(get_session)
    """
    async with async_session_maker() as session:
        yield session

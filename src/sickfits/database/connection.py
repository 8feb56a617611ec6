"""
Async engine and session management
"""

import os
import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..config import settings
from ..logging import get_logger

logger = get_logger(__name__)

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

# (substring of the driver error, hint shown to the operator)
_CONNECTION_HINTS = (
    ("Connection refused", "The database server appears to be down or unreachable."),
    ("could not connect", "The database server appears to be down or unreachable."),
    ("password authentication failed", "Check the credentials in SICKFITS_DATABASE_URL."),
    ("does not exist", "Create the database, then run `sickfits db upgrade`."),
    ("no such table", "Run `sickfits db upgrade` to create the schema."),
)

_async_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_init_lock = threading.Lock()


def get_database_url() -> str:
    """Configured database URL; the environment wins over settings loaded at import."""
    return os.getenv("SICKFITS_DATABASE_URL") or settings.database_url


def to_async_url(db_url: str) -> str:
    """Swap a plain ``postgresql://`` or ``sqlite://`` URL onto its async driver."""
    scheme, sep, rest = db_url.partition("://")
    if not sep:
        return db_url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


def _engine_options(async_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.sql_echo}
    if make_url(async_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
        options["pool_pre_ping"] = True
    return options


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    _ = connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def reset_database() -> None:
    """Forget the current engine so the next use re-initialises (for tests)."""
    global _async_engine, _session_factory
    _async_engine = None
    _session_factory = None


def init_database(database_url: str | None = None, force_reinit: bool = False) -> None:
    """Create the shared engine and session factory.

    A no-op once initialised, unless an explicit URL or ``force_reinit`` is given.
    """
    global _async_engine, _session_factory

    with _init_lock:
        if _async_engine is not None and not force_reinit and database_url is None:
            return

        async_url = to_async_url(database_url or get_database_url())
        engine = create_async_engine(async_url, **_engine_options(async_url))
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        _async_engine = engine
        _session_factory = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)

        logger.info(
            "Database initialized",
            dialect=engine.dialect.name,
            database=engine.url.database,
        )


def get_async_engine() -> AsyncEngine:
    if _async_engine is None:
        init_database()
    assert _async_engine is not None
    return _async_engine


async def test_database_connection() -> tuple[bool, str | None]:
    """Run ``SELECT 1`` against the shared engine.

    Returns:
        ``(True, None)`` on success, otherwise ``(False, message)`` with a hint
        for the most common misconfigurations
    """
    if _async_engine is None:
        return False, "Database engine not initialized"

    try:
        async with _async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        detail = f"{type(e).__name__}: {e}"
        for needle, hint in _CONNECTION_HINTS:
            if needle in str(e):
                return False, f"{detail}\n{hint}"
        return False, detail

    return True, None


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Unit of work: commits when the block exits cleanly, rolls back otherwise.

    Objects stay usable after the block because commits do not expire them.
    """
    if _session_factory is None:
        init_database()
    if _session_factory is None:
        raise RuntimeError("Database not initialized")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

"""Engine and session factory for the document store.

One engine per process, built lazily from ``Settings.database_url``.
Sync tasks run concurrently and each store call opens its own session,
so SQLite files are opened without pooling and in WAL mode, which lets
readers proceed while a merge is being committed.
"""

from typing import Any

from sqlalchemy import event, pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orchid_sync.config import get_settings
from orchid_sync.db.models import Base

SQLITE_BUSY_TIMEOUT_MS = 5000

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _set_sqlite_pragmas(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine for ``database_url``.

    SQLite gets ``NullPool`` (a connection per session) and WAL pragmas;
    other backends keep SQLAlchemy's default pool.
    """
    if make_url(database_url).get_backend_name() != "sqlite":
        return create_async_engine(database_url)

    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
    return engine


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to ``SqlDocumentStore``."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def create_tables() -> None:
    """Create the ``documents`` table if it does not exist."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all connections and forget the engine.

    The next ``get_engine`` call builds a fresh one, which is how the CLI
    and the tests pick up a changed ``DATABASE_URL``.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

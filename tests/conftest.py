"""Pytest configuration and shared fixtures.

Usage Guide:
- For document store tests: use the ``store`` fixture (fresh SQLite file per test)
- For worker/engine tests: combine ``store`` with ``FakeGitHubClient`` (tests.fixtures)
- For local records: import factories from tests.factories
"""

from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orchid_sync.config import GitHubConfig
from orchid_sync.db.models import Base
from orchid_sync.documents import SqlDocumentStore
from orchid_sync.github.sync import BackoffPolicy

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Documents store epoch milliseconds; GitHub payloads carry ISO strings.
# -----------------------------------------------------------------------------
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
JAN_15_MS = int(JAN_15.timestamp() * 1000)
JAN_15_ISO = "2024-01-15T10:00:00.000Z"

TEST_REPO = "orchid-test/rift"


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine(tmp_path):
    """Create a file-backed SQLite engine for tests.

    Each test gets a fresh database with all tables created. A file (not
    ``:memory:``) lets every store call open its own connection, the way
    concurrently dispatched sync tasks do.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        echo=False,
        poolclass=pool.NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create an async session with auto-rollback."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session_factory) -> SqlDocumentStore:
    """Document store over the test database."""
    return SqlDocumentStore(session_factory)


# -----------------------------------------------------------------------------
# Config Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def github_config() -> GitHubConfig:
    """GitHub config pointing at the test repository (no credentials)."""
    return GitHubConfig(repo=TEST_REPO)


@pytest.fixture
def no_delay_policy() -> BackoffPolicy:
    """Backoff policy with zero delays and the production attempt ceiling."""
    return BackoffPolicy(base_delay_ms=0, max_delay_ms=0, jitter_ms=0, max_attempts=30)


async def no_sleep(_seconds: float) -> None:
    """Sleep replacement that only yields to the event loop."""
    return None


# -----------------------------------------------------------------------------
# Sample Data Fixtures (Dict-based)
# -----------------------------------------------------------------------------
@pytest.fixture
def sample_issue_document() -> dict[str, Any]:
    """Issue document fields as stored (camelCase)."""
    return {
        "id": "i1",
        "title": "Bug",
        "body": "desc",
        "status": "todo",
        "createdAt": JAN_15_MS,
        "updatedAt": JAN_15_MS,
        "createdBy": {"name": "Ada", "color": "#ff6600"},
    }


@pytest.fixture
def sample_reply_document() -> dict[str, Any]:
    """Reply document fields as stored (camelCase)."""
    return {
        "id": "r1",
        "issueId": "i1",
        "type": "reply",
        "body": "Seeing this too on 1.4.2",
        "createdAt": JAN_15_MS + 60_000,
        "author": {"name": "Grace", "color": "#0066ff"},
    }

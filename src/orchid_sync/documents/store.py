"""Document store capability consumed by the sync engine.

The engine treats the replicated store as a black box behind
``get_state``/``apply_delta`` (plus a materialized read). ``SqlDocumentStore``
is the SQLAlchemy-backed implementation used by the CLI and the tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchid_sync.db.repositories import DocumentRepository
from orchid_sync.logging import get_logger

from .delta import build_delta, initial_document, merge_updates, read_fields

logger = get_logger(__name__)

ISSUES = "issues"
REPLIES = "issueMessages"


class DocumentNotFoundError(LookupError):
    """Raised when patching a document that does not exist."""

    pass


class DocumentExistsError(ValueError):
    """Raised when inserting a document id that is already taken."""

    pass


@dataclass(frozen=True)
class DocumentState:
    """Last known merged state of a document."""

    bytes: bytes
    seq: int


class DocumentStore(Protocol):
    """Replicated document store capability."""

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Return the materialized projection, or None if not visible yet."""
        ...

    async def get_state(self, collection: str, document_id: str) -> DocumentState | None:
        """Return the opaque CRDT state and its sequence number."""
        ...

    async def apply_delta(
        self,
        collection: str,
        document_id: str,
        delta: bytes,
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge an incremental update and return the new projection."""
        ...

    async def patch(
        self,
        collection: str,
        document_id: str,
        set_fields: Mapping[str, Any],
        delete_fields: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Apply field changes against the store's own latest state."""
        ...


class SqlDocumentStore:
    """DocumentStore backed by the ``documents`` table.

    Every call runs in its own session, so concurrently dispatched sync
    tasks never share a transaction. Calls are serialized by one lock,
    which keeps read-merge-write of a document atomic within the process.

    Usage:
        store = SqlDocumentStore(get_session_factory())
        await store.insert("issues", issue_id, fields)
        material = await store.get("issues", issue_id)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        async with self._lock, self._session_factory() as session:
            document = await DocumentRepository(session).get_by_key(collection, document_id)
            if document is None:
                return None
            return dict(document.material)

    async def get_state(self, collection: str, document_id: str) -> DocumentState | None:
        async with self._lock, self._session_factory() as session:
            document = await DocumentRepository(session).get_by_key(collection, document_id)
            if document is None:
                return None
            return DocumentState(bytes=document.state, seq=document.seq)

    async def list_by_field(
        self,
        collection: str,
        field_name: str,
        value: str,
    ) -> list[dict[str, Any]]:
        """Return projections of documents whose field equals value."""
        async with self._lock, self._session_factory() as session:
            documents = await DocumentRepository(session).list_by_field(
                collection, field_name, value
            )
            return [dict(document.material) for document in documents]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    async def insert(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Create a document from its initial fields.

        Raises:
            DocumentExistsError: If the id is already present in the collection
        """
        state = initial_document(fields)
        material = read_fields(state)
        async with self._lock, self._session_factory() as session:
            repository = DocumentRepository(session)
            if await repository.get_by_key(collection, document_id) is not None:
                raise DocumentExistsError(f"{collection}/{document_id} already exists")
            await repository.create(collection, document_id, state, material)
            await session.commit()
        logger.debug("Inserted {}/{}", collection, document_id)
        return material

    async def apply_delta(
        self,
        collection: str,
        document_id: str,
        delta: bytes,
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with self._lock, self._session_factory() as session:
            material = await self._merge(session, collection, document_id, delta, projection)
            await session.commit()
            return material

    async def patch(
        self,
        collection: str,
        document_id: str,
        set_fields: Mapping[str, Any],
        delete_fields: Iterable[str] = (),
    ) -> dict[str, Any]:
        async with self._lock, self._session_factory() as session:
            document = await DocumentRepository(session).get_by_key(collection, document_id)
            if document is None:
                raise DocumentNotFoundError(f"{collection}/{document_id} not found")
            delta = build_delta(document.state, set_fields, delete_fields)
            material = await self._merge(session, collection, document_id, delta, None)
            await session.commit()
            return material

    async def _merge(
        self,
        session: AsyncSession,
        collection: str,
        document_id: str,
        delta: bytes,
        projection: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        """Merge a delta into the stored state and re-materialize.

        The stored projection is read from the merged CRDT state alone. Keys
        of the caller projection missing from it were removed concurrently
        and are dropped.
        """
        repository = DocumentRepository(session)
        document = await repository.get_by_key(collection, document_id)

        base = document.state if document is not None else None
        merged = merge_updates(base, delta)
        material = read_fields(merged)
        if projection is not None:
            stale = sorted(key for key in projection if key not in material)
            if stale:
                logger.debug(
                    "Dropped {} from {}/{} projection (removed concurrently)",
                    stale,
                    collection,
                    document_id,
                )

        if document is None:
            await repository.create(collection, document_id, merged, material)
            logger.debug("Created {}/{} from delta", collection, document_id)
        else:
            await repository.update_state(document, merged, material)
            logger.debug("Merged delta into {}/{} (seq={})", collection, document_id, document.seq)
        return material

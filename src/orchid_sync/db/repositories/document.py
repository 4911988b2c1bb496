"""Repository for Document model CRUD operations."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orchid_sync.db.models import Document

from .base import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Repository for replicated document rows.

    Rows are addressed by (collection, document_id); the surrogate
    primary key is never exposed outside the db package.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session
        """
        super().__init__(session, Document)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_key(self, collection: str, document_id: str) -> Document | None:
        """Get a document by collection and document id.

        Args:
            collection: Collection name (e.g., "issues")
            document_id: Record id

        Returns:
            Document or None if not found
        """
        stmt = select(Document).where(
            Document.collection == collection,
            Document.document_id == document_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_field(
        self,
        collection: str,
        field_name: str,
        value: str,
    ) -> list[Document]:
        """List documents whose materialized ``field_name`` equals ``value``.

        Args:
            collection: Collection name
            field_name: Top-level document field (e.g., "issueId")
            value: String value to match

        Returns:
            Matching documents in insertion order
        """
        stmt = (
            select(Document)
            .where(
                Document.collection == collection,
                Document.material[field_name].as_string() == value,
            )
            .order_by(Document.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def create(
        self,
        collection: str,
        document_id: str,
        state: bytes,
        material: dict[str, Any],
    ) -> Document:
        """Insert a new document row with sequence number 1.

        Args:
            collection: Collection name
            document_id: Record id
            state: Full CRDT state
            material: Materialized projection

        Returns:
            The new document (flushed)
        """
        document = Document(
            collection=collection,
            document_id=document_id,
            state=state,
            seq=1,
            material=material,
        )
        self.add(document)
        await self.flush()
        return document

    async def update_state(
        self,
        document: Document,
        state: bytes,
        material: dict[str, Any],
    ) -> Document:
        """Replace a document's merged state and bump its sequence number.

        Args:
            document: Existing row
            state: New full CRDT state
            material: New materialized projection

        Returns:
            The updated document (flushed)
        """
        document.state = state
        document.material = material
        document.seq += 1
        await self.flush()
        return document

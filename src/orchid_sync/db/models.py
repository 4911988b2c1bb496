"""SQLAlchemy ORM models for the replicated document store."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, LargeBinary, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ------------------------------------------------------------------------------
# Document model
# ------------------------------------------------------------------------------
class Document(Base):
    """One replicated record: CRDT state plus its materialized projection.

    ``state`` is the full merged Yjs update; ``material`` is the plain
    projection of its ``fields`` map that reads are served from.
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True)

    collection: Mapped[str] = mapped_column(String(100))  # e.g., "issues"
    document_id: Mapped[str] = mapped_column(String(200))  # the record's "id" field

    state: Mapped[bytes] = mapped_column(LargeBinary)
    seq: Mapped[int] = mapped_column(default=0)
    material: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("collection", "document_id", name="uq_collection_document"),
    )

    def __repr__(self) -> str:
        return (
            f"<Document(collection='{self.collection}', "
            f"document_id='{self.document_id}', seq={self.seq})>"
        )

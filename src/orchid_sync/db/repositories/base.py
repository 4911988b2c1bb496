"""Base repository pattern implementation for async SQLAlchemy.

Provides common session handling and CRUD operations that can be
shared across all repositories.
"""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orchid_sync.db.models import Base

# Generic type variable for model classes
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    All repositories should inherit from this class to get
    consistent session management and common query patterns.

    Usage:
        class DocumentRepository(BaseRepository[Document]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Document)
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
        """
        self._session = session
        self._model_class = model_class

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    # -------------------------------------------------------------------------
    # Common Read Operations
    # -------------------------------------------------------------------------

    async def get_by_id(self, id: int) -> ModelT | None:
        """Get an entity by its primary key ID.

        Args:
            id: Primary key ID

        Returns:
            Entity or None if not found
        """
        return await self._session.get(self._model_class, id)

    async def count(self) -> int:
        """Count total entities of this type."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Common Write Operations
    # -------------------------------------------------------------------------

    def add(self, entity: ModelT) -> ModelT:
        """Add an entity to the session (does not flush).

        Args:
            entity: Entity to add

        Returns:
            The same entity (for chaining)
        """
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        await self._session.flush()

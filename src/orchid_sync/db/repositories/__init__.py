"""Repository pattern implementation for database access."""

from .base import BaseRepository
from .document import DocumentRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
]

"""Database module for the replicated document store."""

from orchid_sync.db.engine import (
    build_engine,
    create_tables,
    dispose_engine,
    get_engine,
    get_session_factory,
)
from orchid_sync.db.models import Base, Document
from orchid_sync.db.repositories import BaseRepository, DocumentRepository

__all__ = [
    # Models
    "Base",
    "Document",
    # Engine
    "build_engine",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "DocumentRepository",
]

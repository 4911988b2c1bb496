"""Pydantic schemas for Orchid GitHub Sync.

This module provides the local document models and GitHub payload models.
"""

from .base import SchemaBase
from .enums import (
    GithubSyncStatus,
    InvalidSyncTransition,
    IssueStatus,
    ReplyType,
    Severity,
)
from .github_api import GitHubComment, GitHubIssueRef, GitHubLabel, ManagedLabel
from .issue import Author, Issue, Reply

__all__ = [
    # Base
    "SchemaBase",
    # Enums
    "GithubSyncStatus",
    "InvalidSyncTransition",
    "IssueStatus",
    "ReplyType",
    "Severity",
    # GitHub API
    "GitHubComment",
    "GitHubIssueRef",
    "GitHubLabel",
    "ManagedLabel",
    # Documents
    "Author",
    "Issue",
    "Reply",
]

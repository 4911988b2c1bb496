"""Test fixtures for Orchid GitHub Sync."""

from .fake_github import FakeGitHubClient, FakeIssue
from .github_responses import (
    GITHUB_COMMENT_RESPONSE,
    GITHUB_CREATED_ISSUE_RESPONSE,
    GITHUB_INSTALLATION_TOKEN_RESPONSE,
    GITHUB_LABEL_RESPONSE,
    GITHUB_SEARCH_EMPTY_RESPONSE,
    GITHUB_SEARCH_RESPONSE,
)

__all__ = [
    # In-memory GitHub
    "FakeGitHubClient",
    "FakeIssue",
    # Mock GitHub API responses
    "GITHUB_COMMENT_RESPONSE",
    "GITHUB_CREATED_ISSUE_RESPONSE",
    "GITHUB_INSTALLATION_TOKEN_RESPONSE",
    "GITHUB_LABEL_RESPONSE",
    "GITHUB_SEARCH_EMPTY_RESPONSE",
    "GITHUB_SEARCH_RESPONSE",
]

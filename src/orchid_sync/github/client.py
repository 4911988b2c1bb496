"""Async GitHub REST client wrapper using githubkit.

This module provides the typed issue/label/comment surface the sync
workers need, authenticated with a GitHub App installation token.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from githubkit import GitHub
from githubkit.exception import GitHubException, RequestFailed

from orchid_sync.config import GitHubConfig, get_settings
from orchid_sync.logging import get_logger
from orchid_sync.schemas import GitHubComment, GitHubIssueRef, GitHubLabel, ManagedLabel

from .exceptions import GithubApiError

if TYPE_CHECKING:
    from .auth import GitHubAppTokenProvider

logger = get_logger(__name__)


class TokenProvider(Protocol):
    """Anything that can hand out a bearer token."""

    async def get_token(self) -> str: ...


class GitHubClient:
    """Async GitHub API client scoped to one repository.

    Every call fetches a token from the provider (cached there), attaches
    the configured API version header, and translates non-2xx responses
    into GithubApiError. A 404 from ``get_label`` means "absent".

    Usage:
        async with GitHubClient() as client:
            found = await client.search_issues('repo:o/r is:issue in:body "marker"')
    """

    def __init__(
        self,
        token_provider: TokenProvider | GitHubAppTokenProvider | None = None,
        config: GitHubConfig | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token_provider: Source of bearer tokens. Defaults to the
                process-wide GitHub App token provider.
            config: GitHub configuration. Defaults to settings.github.
        """
        if token_provider is None:
            from .auth import get_token_provider

            token_provider = get_token_provider()
        self._token_provider = token_provider
        self._config = config or get_settings().github
        self._owner, self._repo = self._config.owner_and_name
        self._headers = {"X-GitHub-Api-Version": self._config.api_version}
        self._client: GitHub[Any] | None = None
        self._client_token: str | None = None

    @property
    def repo(self) -> str:
        """Repository this client targets (owner/name)."""
        return self._config.repo

    async def _github(self) -> GitHub[Any]:
        """Get the githubkit instance for the current token, rebuilding on rotation."""
        token = await self._token_provider.get_token()
        if self._client is None or token != self._client_token:
            self._client = GitHub(
                token,
                base_url=self._config.api_url,
                user_agent=self._config.user_agent,
                timeout=self._config.request_timeout_seconds,
                auto_retry=False,
            )
            self._client_token = token
        return self._client

    async def close(self) -> None:
        """Drop the underlying githubkit client."""
        self._client = None
        self._client_token = None

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------
    async def search_issues(self, query: str) -> list[GitHubIssueRef]:
        """Search issues with GitHub's issue search syntax.

        Args:
            query: Full search query (callers add ``repo:`` and ``is:issue``)

        Returns:
            Matching issues as (number, url) references
        """
        github = await self._github()
        try:
            resp = await github.rest.search.async_issues_and_pull_requests(
                q=query,
                headers=self._headers,
            )
        except GitHubException as e:
            raise self._handle_error(e) from e
        return [
            GitHubIssueRef(number=item.number, url=item.html_url)
            for item in resp.parsed_data.items
        ]

    async def create_issue(self, title: str, body: str, labels: list[str]) -> GitHubIssueRef:
        """Create an issue in the target repository."""
        github = await self._github()
        try:
            resp = await github.rest.issues.async_create(
                self._owner,
                self._repo,
                headers=self._headers,
                title=title,
                body=body,
                labels=labels,
            )
        except GitHubException as e:
            raise self._handle_error(e) from e
        return GitHubIssueRef(number=resp.parsed_data.number, url=resp.parsed_data.html_url)

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------
    async def get_label(self, name: str) -> GitHubLabel | None:
        """Get a repository label, or None if it does not exist."""
        github = await self._github()
        try:
            resp = await github.rest.issues.async_get_label(
                self._owner,
                self._repo,
                name,
                headers=self._headers,
            )
        except RequestFailed as e:
            if e.response.status_code == 404:
                return None
            raise self._handle_error(e) from e
        except GitHubException as e:
            raise self._handle_error(e) from e
        return self._to_label(resp.parsed_data)

    async def create_label(self, label: ManagedLabel) -> GitHubLabel:
        """Create a repository label."""
        github = await self._github()
        try:
            resp = await github.rest.issues.async_create_label(
                self._owner,
                self._repo,
                headers=self._headers,
                name=label.name,
                color=label.color,
                description=label.description,
            )
        except GitHubException as e:
            raise self._handle_error(e) from e
        logger.info("Created label {!r} in {}", label.name, self.repo)
        return self._to_label(resp.parsed_data)

    async def get_issue_labels(self, number: int) -> list[GitHubLabel]:
        """List the labels currently on an issue."""
        github = await self._github()
        labels: list[GitHubLabel] = []
        try:
            label_data: Any
            async for label_data in github.paginate(
                github.rest.issues.async_list_labels_on_issue,
                owner=self._owner,
                repo=self._repo,
                issue_number=number,
                per_page=100,
                headers=self._headers,
            ):
                labels.append(self._to_label(label_data))
        except GitHubException as e:
            raise self._handle_error(e) from e
        return labels

    async def set_issue_labels(self, number: int, names: list[str]) -> None:
        """Replace the full label set of an issue."""
        github = await self._github()
        try:
            await github.rest.issues.async_set_labels(
                self._owner,
                self._repo,
                number,
                headers=self._headers,
                labels=names,
            )
        except GitHubException as e:
            raise self._handle_error(e) from e

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------
    async def list_issue_comments(self, number: int) -> list[GitHubComment]:
        """List all comments on an issue (oldest first)."""
        github = await self._github()
        comments: list[GitHubComment] = []
        try:
            comment_data: Any
            async for comment_data in github.paginate(
                github.rest.issues.async_list_comments,
                owner=self._owner,
                repo=self._repo,
                issue_number=number,
                per_page=100,
                headers=self._headers,
            ):
                comments.append(
                    GitHubComment(
                        id=comment_data.id,
                        url=comment_data.html_url,
                        body=comment_data.body,
                    )
                )
        except GitHubException as e:
            raise self._handle_error(e) from e
        return comments

    async def create_issue_comment(self, number: int, body: str) -> GitHubComment:
        """Post a comment on an issue."""
        github = await self._github()
        try:
            resp = await github.rest.issues.async_create_comment(
                self._owner,
                self._repo,
                number,
                headers=self._headers,
                body=body,
            )
        except GitHubException as e:
            raise self._handle_error(e) from e
        return GitHubComment(id=resp.parsed_data.id, url=resp.parsed_data.html_url, body=body)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    @staticmethod
    def _to_label(data: Any) -> GitHubLabel:
        return GitHubLabel(
            name=data.name,
            color=getattr(data, "color", None),
            description=getattr(data, "description", None),
        )

    def _handle_error(self, error: GitHubException) -> GithubApiError:
        """Convert githubkit exceptions to GithubApiError."""
        if isinstance(error, RequestFailed):
            response = error.response
            try:
                body = str(response.text)
            except Exception:
                body = str(error)
            return GithubApiError(response.status_code, body)
        # Transport failures and timeouts carry no status
        return GithubApiError(None, str(error) or type(error).__name__)

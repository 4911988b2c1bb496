"""Pydantic schemas for the locally-authored Issue and Reply records."""

from pydantic import Field

from .base import SchemaBase
from .enums import GithubSyncStatus, IssueStatus, ReplyType, Severity


class Author(SchemaBase):
    """Display identity attached to an issue or reply."""

    name: str = Field(description="Display name")
    color: str = Field(description="Avatar color")
    avatar: str | None = Field(default=None, description="Optional avatar URL")


class Issue(SchemaBase):
    """Local issue record as materialized from the ``issues`` collection."""

    id: str = Field(description="Stable document id (merge key)")
    title: str = Field(description="Issue title")
    body: str = Field(default="", description="Markdown body")
    status: IssueStatus = Field(default=IssueStatus.BACKLOG, description="Workflow status")
    severity: Severity | None = Field(default=None, description="Explicit severity")
    created_at: int = Field(description="Creation time (epoch ms)")
    updated_at: int = Field(description="Last update time (epoch ms)")
    created_by: Author = Field(description="Author of the issue")

    # GitHub sync fields (worker-owned)
    github_repo: str | None = Field(default=None, description="Target repository (owner/name)")
    github_issue_url: str | None = Field(default=None, description="Linked GitHub issue URL")
    github_issue_number: int | None = Field(default=None, description="Linked GitHub issue number")
    github_sync_status: GithubSyncStatus | None = Field(default=None, description="Sync state")
    github_sync_error: str | None = Field(default=None, description="Last sync error")
    github_synced_at: int | None = Field(default=None, description="Last successful sync (epoch ms)")

    @property
    def is_linked(self) -> bool:
        """Check if the issue already points at a GitHub issue."""
        return bool(self.github_issue_url)


class Reply(SchemaBase):
    """Reply in an issue thread, from the ``issueMessages`` collection."""

    id: str = Field(description="Stable document id")
    issue_id: str = Field(description="Parent issue id (may not resolve yet)")
    type: ReplyType = Field(default=ReplyType.REPLY, description="Message kind")
    body: str = Field(default="", description="Markdown body")
    created_at: int = Field(description="Creation time (epoch ms)")
    author: Author = Field(description="Author of the reply")

    # GitHub sync fields (worker-owned)
    github_comment_id: int | None = Field(default=None, description="Linked GitHub comment id")
    github_comment_url: str | None = Field(default=None, description="Linked GitHub comment URL")
    github_sync_status: GithubSyncStatus | None = Field(default=None, description="Sync state")
    github_sync_error: str | None = Field(default=None, description="Last sync error")
    github_synced_at: int | None = Field(default=None, description="Last successful sync (epoch ms)")

    @property
    def is_linked(self) -> bool:
        """Check if the reply already has a GitHub comment."""
        return self.github_comment_id is not None

"""Pydantic schemas for the GitHub REST payloads the engine reads.

Only the fields the engine acts on are modelled.
See: https://docs.github.com/en/rest/issues
"""

from pydantic import BaseModel, Field


class GitHubLabel(BaseModel):
    """GitHub label object from API responses."""

    name: str = Field(description="Label name")
    color: str | None = Field(default=None, description="Label color (hex without #)")
    description: str | None = Field(default=None, description="Label description")


class GitHubIssueRef(BaseModel):
    """A GitHub issue identified by number and web URL."""

    number: int = Field(description="Issue number")
    url: str = Field(description="Issue html_url")


class GitHubComment(BaseModel):
    """GitHub issue comment."""

    id: int = Field(description="Comment id")
    url: str = Field(description="Comment html_url")
    body: str | None = Field(default=None, description="Comment body")


class ManagedLabel(BaseModel):
    """A label the engine owns (status or severity family)."""

    name: str = Field(description="Label name")
    color: str = Field(description="Label color (hex without #)")
    description: str = Field(description="Label description")

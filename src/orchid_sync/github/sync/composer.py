"""GitHub-facing text for synced issues and replies.

Builds the marker that makes issue creation idempotent, the search query
that finds it again, and the issue/comment bodies. Also holds the legacy
``## Severity`` body section handling.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from orchid_sync.schemas import Issue, Reply, Severity

ISSUE_MARKER_PREFIX = "Orchid issue id: "
"""Prefix of the marker line embedded in every created GitHub issue body."""

SEVERITY_HEADING = "Severity"

MAX_ERROR_LENGTH = 2000

UNKNOWN_AUTHOR = "Unknown"

_SECTION_HEADING = re.compile(r"^##\s+(?P<title>.+?)\s*#*\s*$")


def issue_marker(issue_id: str) -> str:
    """Marker string for a local issue id."""
    return f"{ISSUE_MARKER_PREFIX}{issue_id}"


def build_search_query(repo: str, issue_id: str) -> str:
    """Search query finding the GitHub issue created for ``issue_id``.

    GitHub search requires ``is:issue`` (or ``is:pull-request``).
    """
    return f'repo:{repo} is:issue in:body "{issue_marker(issue_id)}"'


def _find_section(lines: list[str], heading: str) -> tuple[int, int] | None:
    """Locate a level-2 section as (heading index, end index exclusive)."""
    start: int | None = None
    for index, line in enumerate(lines):
        match = _SECTION_HEADING.match(line.strip())
        if start is None:
            if match and match.group("title").lower() == heading.lower():
                start = index
        elif match:
            return start, index
    if start is None:
        return None
    return start, len(lines)


def parse_severity_section(body: str | None) -> Severity | None:
    """Read the severity out of a ``## Severity`` section.

    The first non-empty line after the heading is matched
    case-insensitively against the severity names. Anything else yields None.
    """
    if not body:
        return None
    lines = body.splitlines()
    section = _find_section(lines, SEVERITY_HEADING)
    if section is None:
        return None
    start, end = section
    for line in lines[start + 1 : end]:
        if line.strip():
            return Severity.parse(line)
    return None


def strip_severity_section(body: str | None) -> str:
    """Remove the ``## Severity`` section (heading and content) and trim."""
    if not body:
        return ""
    lines = body.splitlines()
    section = _find_section(lines, SEVERITY_HEADING)
    if section is None:
        return body.strip()
    start, end = section
    return "\n".join(lines[:start] + lines[end:]).strip()


def resolve_severity(issue: Issue) -> Severity | None:
    """Explicit severity if set, else the legacy body section."""
    if issue.severity is not None:
        return issue.severity
    return parse_severity_section(issue.body)


def format_timestamp(epoch_ms: int) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compose_issue_body(issue: Issue) -> str:
    """GitHub issue body: cleaned local body followed by the marker footer."""
    footer = [
        "---",
        issue_marker(issue.id),
        f"Orchid createdAt: {format_timestamp(issue.created_at)}",
        f"Orchid createdBy: {issue.created_by.name or UNKNOWN_AUTHOR}",
    ]
    cleaned = strip_severity_section(issue.body)
    # Blank line keeps the body from being read as a setext heading over "---"
    parts = [cleaned, ""] if cleaned else []
    return "\n".join(parts + footer)


def compose_reply_body(reply: Reply) -> str:
    """GitHub comment body for a reply (author prefix, then the text)."""
    name = reply.author.name or UNKNOWN_AUTHOR
    return f"**{name}:**\n\n{reply.body}"


def truncate_error(message: str, limit: int = MAX_ERROR_LENGTH) -> str:
    """Clip an error message to what is stored in ``githubSyncError``."""
    return message[:limit]


def describe_error(error: BaseException) -> str:
    """Error message as recorded on the entity."""
    return truncate_error(str(error) or type(error).__name__)

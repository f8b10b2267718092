"""Build GitHub issue, comment and issue-update requests from Jira issue data."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Any

from .exceptions import UnmappedKeyError
from .markup import render_html
from .references import rewrite_references

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .models import Comment, Issue

# Separates the migration header from the migrated content in every body we create
BODY_SEPARATOR = "\n---\n\n"


def format_timestamp(timestamp: dt.datetime | None) -> str:
    """Format a timestamp to human-readable format.

    Args:
        timestamp: Timezone-aware or naive datetime

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns an empty string for a missing timestamp.
    """
    if timestamp is None:
        return ""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(dt.UTC)
    formatted = timestamp.isoformat(sep=" ", timespec="seconds")
    return formatted.replace("+00:00", "Z")


def jira_issue_url(jira_url: str, key: str) -> str:
    """Return the browse URL of a Jira issue."""
    return f"{jira_url.rstrip('/')}/browse/{key}"


def build_create_payload(
    issue: Issue,
    jira_url: str,
    *,
    render: Callable[[str], str] = render_html,
) -> dict[str, Any]:
    """Build the GitHub issue creation request.

    The description is not reference-resolved here: most GitHub numbers are
    unknown during the first pass. build_update_payload() fixes them later.

    Args:
        issue: Normalized Jira issue
        jira_url: Base URL of the Jira instance, used for the link back
        render: Converter from Jira HTML to Markdown

    Returns:
        Request payload with "title" and "body"
    """
    body = f"**Migrated from Jira issue [{issue.key}]({jira_issue_url(jira_url, issue.key)})**\n"
    if issue.issue_type:
        body += f"**Type:** {issue.issue_type}\n"
    body += f"**Original Author:** @{issue.created_by}\n"
    body += f"**Created:** {format_timestamp(issue.created)}\n"
    body += f"**Updated:** {format_timestamp(issue.updated)}\n"
    if issue.resolved is not None:
        body += f"**Resolved:** {format_timestamp(issue.resolved)}\n"
    body += BODY_SEPARATOR
    body += render(issue.description)
    return {"title": issue.summary, "body": body}


def build_comment_payload(
    issue: Issue,
    comment: Comment,
    mapping: Mapping[str, int],
    *,
    render: Callable[[str], str] = render_html,
) -> dict[str, Any]:
    """Build the GitHub comment creation request for a comment of `issue`.

    References are resolved with whatever part of the mapping exists now.
    Comments are not revisited later, so forward references stay as Jira keys.

    Raises:
        UnmappedKeyError: If the issue itself has not been created yet
    """
    if mapping.get(issue.key) is None:
        raise UnmappedKeyError(issue.key)

    body = f"**Comment by** @{comment.author} **on** {format_timestamp(comment.created)}\n"
    body += BODY_SEPARATOR
    body += rewrite_references(render(comment.body), mapping)
    return {"body": body}


def build_update_payload(issue: Issue, original_body: str, mapping: Mapping[str, int]) -> dict[str, Any]:
    """Build the second-pass update request that fixes issue references.

    The stored body is replayed rather than rebuilt, so the result only
    depends on it and on the mapping. The migration header is kept verbatim,
    which preserves the link back to the Jira issue.

    Raises:
        UnmappedKeyError: If the issue itself has not been created yet
    """
    if mapping.get(issue.key) is None:
        raise UnmappedKeyError(issue.key)

    header, separator, content = original_body.partition(BODY_SEPARATOR)
    if not separator:
        return {"body": rewrite_references(original_body, mapping)}
    return {"body": header + separator + rewrite_references(content, mapping)}

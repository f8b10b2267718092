"""
Pytest configuration and fixtures.

Provides Jira issue JSON documents shaped like the responses of the
Jira REST API issue detail endpoint.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable


def make_jira_user(name: str, display_name: str | None = None) -> dict[str, Any]:
    return {
        "key": f"JIRAUSER-{name}",
        "name": name,
        "displayName": display_name or name.title(),
        "active": True,
    }


def make_jira_issue(
    key: str = "PROJ-1",
    *,
    summary: str = "Something is broken",
    description: str | None = "<p>It fails.</p>",
    comments: list[dict[str, Any]] | None = None,
    **field_overrides: Any,  # noqa: ANN401
) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "summary": summary,
        "description": description,
        "created": "2024-01-15T10:30:45.123+0000",
        "updated": "2024-01-16T08:00:00.000+0000",
        "reporter": make_jira_user("alice"),
        "creator": make_jira_user("alice"),
        "assignee": make_jira_user("bob"),
        "issuetype": {"id": "1", "name": "Bug", "description": "A problem"},
        "comment": {"comments": comments or []},
    }
    fields.update(field_overrides)
    return {"id": "10001", "key": key, "fields": fields}


def make_jira_comment(author: str, body: str, created: str = "2024-01-17T09:15:00.000+0000") -> dict[str, Any]:
    return {
        "id": f"{abs(hash((author, body, created))) % 100000}",
        "author": make_jira_user(author),
        "updateAuthor": make_jira_user(author),
        "created": created,
        "updated": created,
        "body": body,
    }


@pytest.fixture
def jira_issue() -> Callable[..., dict[str, Any]]:
    """Factory for Jira issue detail JSON."""
    return make_jira_issue


@pytest.fixture
def jira_comment() -> Callable[..., dict[str, Any]]:
    """Factory for Jira comment JSON."""
    return make_jira_comment

"""Data models for migration between Jira and GitHub.

These models represent the normalized data exchanged between the Jira fetch
pipeline, the request builders and the Migrator orchestrator. Usernames in
these models are already GitHub logins; bodies still hold Jira's HTML markup.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

IssueStatus = Literal["open", "closed"]
StatusReason = Literal["completed", "not_planned", "reopened"]


@dataclass(frozen=True)
class JiraUser:
    """A user record as embedded in Jira issue JSON."""

    key: str | None
    name: str
    display_name: str = ""
    active: bool = True


@dataclass(frozen=True)
class Comment:
    """A comment on an issue.

    Comments have no identity of their own beyond their position in the
    parent issue. They are created once and never updated.
    """

    author: str
    created: datetime
    body: str = ""


@dataclass(frozen=True)
class Issue:
    """An issue fetched from Jira.

    The description and comment bodies may contain Jira issue keys
    (e.g. "PROJ-42") and links to the Jira instance. The Migrator rewrites
    these once the GitHub numbers are known.
    """

    key: str
    summary: str
    description: str
    created_by: str
    created: datetime
    updated: datetime
    assignee: str | None = None
    status: IssueStatus = "open"
    status_reason: StatusReason | None = None
    resolved: datetime | None = None
    issue_type: str | None = None
    comments: tuple[Comment, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.key:
            msg = "Issue key must not be empty"
            raise ValueError(msg)
        # Snapshot the comments so callers cannot mutate them through a shared list
        comments: Iterable[Comment] = self.comments
        object.__setattr__(self, "comments", tuple(comments))

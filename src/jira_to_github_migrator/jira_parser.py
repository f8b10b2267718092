"""Parse Jira issue JSON into the normalized issue model."""

from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Final

from .exceptions import ParseError
from .models import Comment, Issue, IssueStatus, JiraUser, StatusReason
from .user_mapper import UserMapper

logger: logging.Logger = logging.getLogger(__name__)

JIRA_TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%S.%f%z"

# Resolutions that mean the work was never done
NOT_PLANNED_RESOLUTIONS: Final[frozenset[str]] = frozenset(
    {"won't fix", "won't do", "duplicate", "cannot reproduce", "rejected", "obsolete"}
)


def parse_timestamp(value: str) -> dt.datetime:
    """Parse a Jira timestamp such as "2024-01-15T10:30:45.123+0000".

    Falls back to ISO 8601 for data that was not produced by the Jira REST API.

    Raises:
        ValueError: If the value matches neither format
    """
    try:
        return dt.datetime.strptime(value, JIRA_TIMESTAMP_FORMAT)
    except ValueError:
        return dt.datetime.fromisoformat(value)


def parse_user(data: dict[str, Any] | None) -> JiraUser | None:
    """Parse an embedded Jira user record; returns None for unset users."""
    if not data:
        return None
    name = data.get("name") or data.get("accountId") or data.get("key")
    if not name:
        return None
    return JiraUser(
        key=data.get("key"),
        name=name,
        display_name=data.get("displayName", ""),
        active=data.get("active", True),
    )


class JiraIssueParser:
    """Turns Jira issue JSON documents into Issue objects.

    Usernames are mapped to GitHub logins while parsing, so everything
    downstream only sees GitHub usernames.
    """

    user_mapper: UserMapper

    def __init__(self, user_mapper: UserMapper | None = None) -> None:
        self.user_mapper = user_mapper or UserMapper()

    def parse(self, data: dict[str, Any]) -> Issue:
        """Build an Issue from the JSON of the Jira issue detail endpoint.

        Raises:
            ParseError: If a required field is missing or has an invalid value
        """
        key = data.get("key")
        fields = data.get("fields")
        if not key or not isinstance(fields, dict):
            msg = "Jira issue JSON lacks 'key' or 'fields'"
            raise ParseError(msg)

        rendered: dict[str, Any] = data.get("renderedFields") or {}

        try:
            summary = fields["summary"]
            created = parse_timestamp(fields["created"])
            updated = parse_timestamp(fields["updated"])
            resolved = parse_timestamp(fields["resolutiondate"]) if fields.get("resolutiondate") else None
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Invalid or missing field in Jira issue {key}: {e}"
            raise ParseError(msg) from e

        creator = parse_user(fields.get("reporter")) or parse_user(fields.get("creator"))
        if creator is None:
            msg = f"Jira issue {key} has neither reporter nor creator"
            raise ParseError(msg)
        assignee = parse_user(fields.get("assignee"))

        status, status_reason = self._parse_status(fields)
        issue_type = (fields.get("issuetype") or {}).get("name")

        return Issue(
            key=key,
            summary=summary,
            description=rendered.get("description") or fields.get("description") or "",
            created_by=self.user_mapper.map(creator),
            assignee=self.user_mapper.map(assignee) if assignee else None,
            status=status,
            status_reason=status_reason,
            created=created,
            updated=updated,
            resolved=resolved,
            issue_type=issue_type,
            comments=self._parse_comments(key, fields, rendered),
        )

    def _parse_status(self, fields: dict[str, Any]) -> tuple[IssueStatus, StatusReason | None]:
        status_category = ((fields.get("status") or {}).get("statusCategory") or {}).get("key")
        if status_category != "done":
            return "open", None
        resolution = ((fields.get("resolution") or {}).get("name") or "").lower()
        if resolution in NOT_PLANNED_RESOLUTIONS:
            return "closed", "not_planned"
        return "closed", "completed"

    def _parse_comments(self, key: str, fields: dict[str, Any], rendered: dict[str, Any]) -> list[Comment]:
        raw_comments: list[dict[str, Any]] = (fields.get("comment") or {}).get("comments") or []
        rendered_comments: list[dict[str, Any]] = (rendered.get("comment") or {}).get("comments") or []
        rendered_bodies = {c.get("id"): c.get("body") for c in rendered_comments if c.get("id")}

        comments: list[Comment] = []
        for index, raw in enumerate(raw_comments):
            author = parse_user(raw.get("author")) or parse_user(raw.get("updateAuthor"))
            try:
                created = parse_timestamp(raw["created"])
            except (KeyError, TypeError, ValueError) as e:
                msg = f"Invalid or missing created timestamp on comment {index} of Jira issue {key}: {e}"
                raise ParseError(msg) from e

            body = rendered_bodies.get(raw.get("id")) or raw.get("body") or ""
            comments.append(
                Comment(
                    author=self.user_mapper.map(author) if author else "unknown",
                    created=created,
                    body=body,
                )
            )
        return comments

    def parse_file(self, path: Path) -> Issue:
        """Parse a single cached Jira issue JSON file.

        Raises:
            ParseError: Naming the file, if it cannot be read or parsed
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            msg = f"Failed to process file {path}: {e}"
            raise ParseError(msg, path=path) from e

        if not isinstance(data, dict):
            msg = f"Failed to process file {path}: expected a JSON object"
            raise ParseError(msg, path=path)

        try:
            return self.parse(data)
        except ParseError as e:
            msg = f"Failed to process file {path}: {e}"
            raise ParseError(msg, path=path) from e

    def parse_from_files(self, path: str | Path) -> list[Issue]:
        """Parse cached issues from a directory of *.json files or a single file.

        Files in a directory are read in sorted path order. Issues with a key
        that was already seen are skipped.
        """
        input_path = Path(path)
        if not input_path.is_dir():
            return [self.parse_file(input_path)]

        issues: dict[str, Issue] = {}
        for json_file in sorted(input_path.rglob("*.json")):
            issue = self.parse_file(json_file)
            if issue.key in issues:
                logger.warning(f"Skipping duplicate Jira issue {issue.key} in {json_file}")
                continue
            issues[issue.key] = issue

        logger.info(f"Parsed {len(issues)} issues from {input_path}")
        return list(issues.values())

"""Tests for the two-pass Migrator, driven against an in-memory target."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from typing import Any

import pytest

from jira_to_github_migrator.exceptions import (
    ConfigurationError,
    CreateFailedError,
    MigrationError,
    UnmappedKeyError,
    UpdateFailedError,
)
from jira_to_github_migrator.issue_builder import BODY_SEPARATOR
from jira_to_github_migrator.jira_parser import JiraIssueParser
from jira_to_github_migrator.models import Comment, Issue
from jira_to_github_migrator.orchestrator import IssueRecord, IssueState, Migrator

JIRA_URL = "https://issues.example.com"
CREATED = dt.datetime(2024, 1, 15, 10, 30, tzinfo=dt.UTC)


def _identity(text: str) -> str:
    return text


def _issue(key: str, description: str = "", comments: tuple[Comment, ...] = ()) -> Issue:
    return Issue(
        key=key,
        summary=f"Summary of {key}",
        description=description,
        created_by="alice",
        created=CREATED,
        updated=CREATED,
        comments=comments,
    )


def _comment(body: str, author: str = "bob") -> Comment:
    return Comment(author=author, created=CREATED, body=body)


def _content(body: str) -> str:
    return body.partition(BODY_SEPARATOR)[2]


class FakeTarget:
    """In-memory GitHub stand-in that hands out numbers from `next_number`."""

    def __init__(self, next_number: int = 1) -> None:
        self.next_number = next_number
        self.issues: dict[int, dict[str, Any]] = {}
        self.comments: dict[int, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, int | None]] = []
        self.fail_create: set[str] = set()
        self.fail_comment: set[str] = set()
        self.fail_update: set[int] = set()

    def create_issue(self, payload: dict[str, Any], *, author: str) -> int:
        if payload["title"] in self.fail_create:
            raise CreateFailedError("Failed to create issue", status=422, response_message="Validation Failed")
        number = self.next_number
        self.next_number += 1
        self.issues[number] = dict(payload)
        self.comments[number] = []
        self.calls.append(("create_issue", number))
        return number

    def create_comment(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        if any(marker in payload["body"] for marker in self.fail_comment):
            raise CreateFailedError("Failed to create comment", status=500, response_message="Server Error")
        self.comments[issue_number].append(dict(payload))
        self.calls.append(("create_comment", issue_number))

    def update_issue(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        if issue_number in self.fail_update:
            raise UpdateFailedError("Failed to update issue", status=502, response_message="Bad Gateway")
        self.issues[issue_number].update(payload)
        self.calls.append(("update_issue", issue_number))


@pytest.mark.unit
class TestMigratorHappyPath:
    def test_single_issue_mapping(self) -> None:
        target = FakeTarget(next_number=42)
        result = Migrator(target, JIRA_URL, render=_identity).migrate([_issue("PROJ-7")])

        assert result.success
        assert result.number_map == {"PROJ-7": 42}
        assert result.states == {"PROJ-7": IssueState.CORRECTED}
        assert result.stats.issues_created == 1
        assert result.stats.issues_corrected == 1

    def test_forward_and_backward_references_fixed(self) -> None:
        target = FakeTarget()
        issues = [
            _issue("PROJ-1", "Blocked by PROJ-2"),
            _issue("PROJ-2", "Blocks https://issues.example.com/browse/PROJ-1"),
        ]

        result = Migrator(target, JIRA_URL, render=_identity).migrate(issues)

        assert result.success
        assert _content(target.issues[1]["body"]) == "Blocked by #2"
        assert _content(target.issues[2]["body"]) == "Blocks #1"

    def test_link_back_to_jira_survives_correction(self) -> None:
        target = FakeTarget()
        _ = Migrator(target, JIRA_URL, render=_identity).migrate([_issue("PROJ-1")])
        assert "[PROJ-1](https://issues.example.com/browse/PROJ-1)" in target.issues[1]["body"]

    def test_unknown_reference_left_alone(self) -> None:
        target = FakeTarget()
        _ = Migrator(target, JIRA_URL, render=_identity).migrate([_issue("PROJ-1", "Upstream OTHER-5")])
        assert _content(target.issues[1]["body"]) == "Upstream OTHER-5"

    def test_call_order(self) -> None:
        target = FakeTarget()
        issues = [
            _issue("PROJ-1", comments=(_comment("first"), _comment("second"))),
            _issue("PROJ-2", comments=(_comment("third"),)),
        ]

        _ = Migrator(target, JIRA_URL, render=_identity).migrate(issues)

        # Each issue's comments directly follow it; all updates come after all creates
        assert target.calls == [
            ("create_issue", 1),
            ("create_comment", 1),
            ("create_comment", 1),
            ("create_issue", 2),
            ("create_comment", 2),
            ("update_issue", 1),
            ("update_issue", 2),
        ]
        assert [_content(c["body"]) for c in target.comments[1]] == ["first", "second"]

    def test_comment_references_use_mapping_so_far(self) -> None:
        target = FakeTarget()
        issues = [
            _issue("PROJ-1"),
            _issue("PROJ-2", comments=(_comment("Dup of PROJ-1, see PROJ-3"),)),
            _issue("PROJ-3"),
        ]

        result = Migrator(target, JIRA_URL, render=_identity).migrate(issues)

        assert result.success
        # PROJ-3 did not exist yet when the comment was posted
        assert _content(target.comments[2][0]["body"]) == "Dup of #1 see PROJ-3"

    def test_duplicate_issues_migrated_once(self) -> None:
        target = FakeTarget()
        result = Migrator(target, JIRA_URL, render=_identity).migrate([_issue("PROJ-1"), _issue("PROJ-1")])
        assert result.stats.issues_created == 1
        assert len(target.issues) == 1

    def test_empty_input(self) -> None:
        result = Migrator(FakeTarget(), JIRA_URL).migrate([])
        assert result.success
        assert result.number_map == {}

    def test_default_render_converts_html(self) -> None:
        target = FakeTarget()
        _ = Migrator(target, JIRA_URL).migrate([_issue("PROJ-1", "<p>See <i>also</i> PROJ-1</p>")])
        assert _content(target.issues[1]["body"]) == "See *also* #1"


@pytest.mark.unit
class TestMigratorFailures:
    def test_create_failure_aborts_by_default(self) -> None:
        target = FakeTarget()
        target.fail_create.add("Summary of PROJ-2")
        migrator = Migrator(target, JIRA_URL, render=_identity)

        with pytest.raises(MigrationError, match="PROJ-2 during create"):
            _ = migrator.migrate([_issue("PROJ-1"), _issue("PROJ-2"), _issue("PROJ-3")])

        assert migrator.records["PROJ-1"].state is IssueState.CREATED
        assert migrator.records["PROJ-2"].state is IssueState.FAILED
        assert migrator.records["PROJ-3"].state is IssueState.PENDING
        # Nothing was updated, pass 2 never started
        assert not any(op == "update_issue" for op, _ in target.calls)

    def test_create_failure_with_continue(self) -> None:
        target = FakeTarget()
        target.fail_create.add("Summary of PROJ-2")
        issues = [_issue("PROJ-1", "See PROJ-2 and PROJ-3"), _issue("PROJ-2"), _issue("PROJ-3")]

        result = Migrator(target, JIRA_URL, continue_on_error=True, render=_identity).migrate(issues)

        assert not result.success
        assert result.states == {
            "PROJ-1": IssueState.CORRECTED,
            "PROJ-2": IssueState.FAILED,
            "PROJ-3": IssueState.CORRECTED,
        }
        assert result.number_map == {"PROJ-1": 1, "PROJ-3": 2}
        assert result.stats.issues_failed == 1
        assert result.stats.errors[0].startswith("PROJ-2 (create)")
        assert _content(target.issues[1]["body"]) == "See PROJ-2 and #2"

    def test_comment_failure_keeps_issue(self) -> None:
        target = FakeTarget()
        target.fail_comment.add("broken")
        issue = _issue("PROJ-1", comments=(_comment("ok"), _comment("broken"), _comment("never sent")))

        result = Migrator(target, JIRA_URL, continue_on_error=True, render=_identity).migrate([issue])

        assert not result.success
        assert result.states["PROJ-1"] is IssueState.CORRECTED
        assert result.stats.comments_created == 1
        assert result.stats.comments_failed == 1
        assert [_content(c["body"]) for c in target.comments[1]] == ["ok"]
        assert result.stats.errors == ["PROJ-1 (comment 2): Failed to create comment: 500 - Server Error"]

    def test_comment_failure_aborts_by_default(self) -> None:
        target = FakeTarget()
        target.fail_comment.add("broken")
        migrator = Migrator(target, JIRA_URL, render=_identity)

        with pytest.raises(MigrationError, match="during comment 1"):
            _ = migrator.migrate([_issue("PROJ-1", comments=(_comment("broken"),)), _issue("PROJ-2")])

        assert "PROJ-2" not in migrator.number_map

    def test_update_failure_leaves_issue_created(self) -> None:
        target = FakeTarget()
        target.fail_update.add(1)
        migrator = Migrator(target, JIRA_URL, continue_on_error=True, render=_identity)

        result = migrator.migrate([_issue("PROJ-1", "See PROJ-2"), _issue("PROJ-2", "See PROJ-1")])

        assert not result.success
        assert result.states == {"PROJ-1": IssueState.CREATED, "PROJ-2": IssueState.CORRECTED}
        assert migrator.records["PROJ-1"].error is not None
        assert _content(target.issues[1]["body"]) == "See PROJ-2"

    def test_update_failure_aborts_by_default(self) -> None:
        target = FakeTarget()
        target.fail_update.add(1)
        migrator = Migrator(target, JIRA_URL, render=_identity)

        with pytest.raises(MigrationError, match="PROJ-1 during update"):
            _ = migrator.migrate([_issue("PROJ-1"), _issue("PROJ-2")])

        assert migrator.records["PROJ-2"].state is IssueState.CREATED


@pytest.mark.unit
class TestMigratorCorrect:
    def test_retry_after_update_failure(self) -> None:
        target = FakeTarget()
        target.fail_update.add(1)
        migrator = Migrator(target, JIRA_URL, continue_on_error=True, render=_identity)
        _ = migrator.migrate([_issue("PROJ-1", "See PROJ-2"), _issue("PROJ-2")])

        target.fail_update.clear()
        result = migrator.correct(["PROJ-1"])

        assert result.states["PROJ-1"] is IssueState.CORRECTED
        assert _content(target.issues[1]["body"]) == "See #2"
        assert result.stats.issues_corrected == 2
        assert result.success
        # The failure of the first attempt stays in the error log
        assert result.stats.errors[0].startswith("PROJ-1 (update)")

    def test_correct_is_idempotent(self) -> None:
        target = FakeTarget()
        migrator = Migrator(target, JIRA_URL, render=_identity)
        _ = migrator.migrate([_issue("PROJ-1", "See PROJ-2"), _issue("PROJ-2")])
        body_after_migrate = target.issues[1]["body"]

        result = migrator.correct()

        assert target.issues[1]["body"] == body_after_migrate
        assert result.stats.issues_corrected == 2
        assert result.success

    def test_correct_skips_failed_issues(self) -> None:
        target = FakeTarget()
        target.fail_create.add("Summary of PROJ-1")
        migrator = Migrator(target, JIRA_URL, continue_on_error=True, render=_identity)
        _ = migrator.migrate([_issue("PROJ-1")])

        result = migrator.correct()

        assert result.states["PROJ-1"] is IssueState.FAILED
        assert not any(op == "update_issue" for op, _ in target.calls)

    def test_correct_unknown_key(self) -> None:
        migrator = Migrator(FakeTarget(), JIRA_URL, render=_identity)
        _ = migrator.migrate([_issue("PROJ-1")])

        with pytest.raises(MigrationError, match="UNKNOWN-1 is not part of this migration"):
            _ = migrator.correct(["UNKNOWN-1"])


def _issue_link(key: str, summary: str) -> str:
    return (
        f'<a href="https://issues.example.com/browse/{key}" title="{summary}" '
        f'class="issue-link" data-issue-key="{key}">{key}</a>'
    )


@pytest.mark.unit
class TestMigratorRenderedJiraHtml:
    def test_issue_links_become_github_references(self) -> None:
        target = FakeTarget()
        issues = [
            _issue("PROJ-1", f"<p>Blocked by {_issue_link('PROJ-2', 'Second issue')} for now.</p>"),
            _issue("PROJ-2", f"<p>Blocks <b>{_issue_link('PROJ-1', 'First issue')}</b> as well</p>"),
        ]

        result = Migrator(target, JIRA_URL).migrate(issues)

        assert result.success
        assert _content(target.issues[1]["body"]) == "Blocked by #2 for now."
        assert _content(target.issues[2]["body"]) == "Blocks #1 as well"

    def test_rendered_fields_from_jira(self, jira_issue: Callable[..., dict[str, Any]]) -> None:
        first = jira_issue("PROJ-1", description="Blocked by PROJ-2")
        first["renderedFields"] = {"description": f"<p>Blocked by {_issue_link('PROJ-2', 'Second')}</p>"}
        second = jira_issue("PROJ-2", description="Plain text")
        parser = JiraIssueParser()
        target = FakeTarget()

        _ = Migrator(target, JIRA_URL).migrate([parser.parse(first), parser.parse(second)])

        assert _content(target.issues[1]["body"]) == "Blocked by #2"

    def test_other_links_kept(self) -> None:
        target = FakeTarget()
        html = '<p>Docs at <a href="https://docs.example.com/guide">the guide</a>, see PROJ-1</p>'

        _ = Migrator(target, JIRA_URL).migrate([_issue("PROJ-1", html)])

        assert _content(target.issues[1]["body"]) == "Docs at [the guide](https://docs.example.com/guide), see #1"


@pytest.mark.unit
class TestMigratorConfiguration:
    @pytest.mark.parametrize("jira_url", ["issues.example.com", "/browse", "ftp://issues.example.com", ""])
    def test_relative_jira_url_rejected(self, jira_url: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid Jira URL"):
            _ = Migrator(FakeTarget(), jira_url)

    def test_trailing_slash_accepted(self) -> None:
        target = FakeTarget()
        _ = Migrator(target, JIRA_URL + "/", render=_identity).migrate([_issue("PROJ-1")])
        assert "(https://issues.example.com/browse/PROJ-1)" in target.issues[1]["body"]

    def test_comment_for_unmapped_issue_sends_nothing(self) -> None:
        target = FakeTarget()
        migrator = Migrator(target, JIRA_URL, render=_identity)

        with pytest.raises(UnmappedKeyError):
            migrator._create_comments(IssueRecord(_issue("PROJ-7", comments=(_comment("hi"),))))  # pyright: ignore[reportPrivateUsage]

        assert target.calls == []

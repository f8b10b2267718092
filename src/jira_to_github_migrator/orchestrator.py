"""Migration orchestrator that drives the target system in two passes.

The Migrator class is the central coordinator for migration. It:
1. Creates issues and their comments in the target (first pass)
2. Builds and owns the Jira key -> GitHub number mapping
3. Rewrites issue references in every created issue body (second pass)
4. Handles per-issue failures and reporting

Why Two Passes
--------------
GitHub assigns issue numbers at creation time. An issue that mentions
"PROJ-42" may be created before PROJ-42 itself, so its number is unknown
when the referencing body is sent. Therefore:

Pass 1: Create
    For each issue (in input order):
        a. Build the create payload (references left as Jira keys)
        b. Create the issue, record its number in the mapping
        c. Keep the created body for pass 2
        d. Create its comments, resolving references with the mapping so far

    ──── barrier: pass 2 starts only after pass 1 covered every issue ────

Pass 2: Correct
    For each created issue:
        a. Replay the stored body through rewrite_references() with the
           now complete mapping
        b. Update the issue body in the target

Issue States
------------
    PENDING ──► CREATED ──► CORRECTED
       │           │
       └───────────┴──► FAILED (issue creation failed)

A failed update in pass 2 leaves the issue CREATED. Pass 2 is deterministic
for a given stored body and mapping, so correct() can simply be run again.

Error Handling
--------------
- continue_on_error=False (default): the first failure raises MigrationError
  naming the Jira key and the phase. Everything created so far stays.
- continue_on_error=True: the failure is recorded in MigrationStats.errors
  and the migration moves on to the next issue.
- Comments are never revisited: forward references inside comments remain
  Jira keys.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from . import issue_builder, jira_utils
from .exceptions import MigrationError, UnmappedKeyError
from .markup import render_html
from .number_map import IssueNumberMap

if TYPE_CHECKING:
    from .models import Issue
    from .protocols import TargetSystem

logger = logging.getLogger(__name__)


class IssueState(enum.Enum):
    """Migration state of a single issue."""

    PENDING = "pending"
    CREATED = "created"
    CORRECTED = "corrected"
    FAILED = "failed"


@dataclass
class IssueRecord:
    """Book-keeping for one issue during a migration run."""

    issue: Issue
    state: IssueState = IssueState.PENDING
    original_body: str | None = None
    error: str | None = None


@dataclass
class MigrationStats:
    """Statistics collected during migration."""

    issues_created: int = 0
    comments_created: int = 0
    issues_corrected: int = 0
    issues_failed: int = 0
    comments_failed: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class MigrationResult:
    """Result of a migration run."""

    success: bool
    stats: MigrationStats
    number_map: dict[str, int]  # Jira key -> GitHub issue number
    states: dict[str, IssueState]


class Migrator:
    """Orchestrates the two-pass migration of Jira issues into a target system.

    Usage:
        target = GitHubTarget("owner/repo", token)
        migrator = Migrator(target, "https://issues.example.com")
        result = migrator.migrate(fetcher.fetch("PROJ"))

    The number map and the per-issue records live on the instance for the
    duration of the run, so a failed second pass can be retried with correct().
    """

    _target: TargetSystem
    _jira_url: str
    _continue_on_error: bool
    _render: Callable[[str], str]
    number_map: IssueNumberMap
    records: dict[str, IssueRecord]
    stats: MigrationStats

    def __init__(
        self,
        target: TargetSystem,
        jira_url: str,
        *,
        continue_on_error: bool = False,
        render: Callable[[str], str] = render_html,
    ) -> None:
        """Initialize the migrator.

        Args:
            target: Target system to migrate to
            jira_url: Absolute base URL of the Jira instance, for links back to the source
            continue_on_error: Skip failed issues instead of aborting the run
            render: Converter from Jira HTML to Markdown
        """
        self._target = target
        self._jira_url = jira_utils.validate_jira_url(jira_url)
        self._continue_on_error = continue_on_error
        self._render = render
        self.number_map = IssueNumberMap()
        self.records = {}
        self.stats = MigrationStats()

    def migrate(self, issues: Iterable[Issue]) -> MigrationResult:
        """Execute both passes over the given issues.

        Returns:
            MigrationResult with statistics, mapping and final issue states

        Raises:
            MigrationError: On the first failure, unless continue_on_error is set
        """
        for issue in issues:
            if issue.key in self.records:
                logger.warning(f"Skipping duplicate Jira issue {issue.key}")
                continue
            self.records[issue.key] = IssueRecord(issue)

        logger.info(f"Pass 1: creating {len(self.records)} issues")
        self._create_pass()

        logger.info("Pass 2: correcting issue references")
        self._correct_pass(self.records.values())

        return self.result()

    def correct(self, keys: Iterable[str] | None = None) -> MigrationResult:
        """Run the second pass again, for the given keys or for every created issue.

        Safe to repeat: the stored bodies and the mapping do not change.

        Raises:
            MigrationError: If a key was never handed to migrate()
        """
        if keys is None:
            records = list(self.records.values())
        else:
            records = []
            for key in keys:
                record = self.records.get(key)
                if record is None:
                    msg = f"Jira issue {key} is not part of this migration"
                    raise MigrationError(msg)
                records.append(record)
        self._correct_pass(records)
        return self.result()

    def result(self) -> MigrationResult:
        return MigrationResult(
            success=self.stats.comments_failed == 0
            and all(record.state is IssueState.CORRECTED for record in self.records.values()),
            stats=self.stats,
            number_map=self.number_map.as_dict(),
            states={key: record.state for key, record in self.records.items()},
        )

    def _fail(self, record: IssueRecord, phase: str, error: MigrationError) -> None:
        """Record a failure and abort the run unless configured to continue."""
        message = f"{record.issue.key} ({phase}): {error}"
        record.error = str(error)
        self.stats.errors.append(message)
        logger.error(f"Failed to migrate {message}")
        if not self._continue_on_error:
            msg = f"Migration aborted at Jira issue {record.issue.key} during {phase}: {error}"
            raise MigrationError(msg) from error

    def _create_pass(self) -> None:
        for record in self.records.values():
            if record.state is not IssueState.PENDING:
                continue
            if self._create_issue(record):
                self._create_comments(record)
        logger.info(
            f"Created {self.stats.issues_created} issues and {self.stats.comments_created} comments"
        )

    def _create_issue(self, record: IssueRecord) -> bool:
        issue = record.issue
        try:
            payload = issue_builder.build_create_payload(issue, self._jira_url, render=self._render)
            number = self._target.create_issue(payload, author=issue.created_by)
            self.number_map.record(issue.key, number)
        except MigrationError as e:
            record.state = IssueState.FAILED
            self.stats.issues_failed += 1
            self._fail(record, "create", e)
            return False

        record.original_body = payload["body"]
        record.state = IssueState.CREATED
        self.stats.issues_created += 1
        logger.debug(f"Created {issue.key} as #{number}: {issue.summary}")
        return True

    def _create_comments(self, record: IssueRecord) -> None:
        issue = record.issue
        number = self.number_map.require(issue.key)
        for index, comment in enumerate(issue.comments):
            try:
                payload = issue_builder.build_comment_payload(issue, comment, self.number_map, render=self._render)
                self._target.create_comment(number, payload, author=comment.author)
            except UnmappedKeyError:
                raise
            except MigrationError as e:
                # The issue exists, so its body is still corrected in pass 2
                self.stats.comments_failed += 1
                self._fail(record, f"comment {index + 1}", e)
                return
            self.stats.comments_created += 1
        logger.debug(f"Migrated {len(issue.comments)} comments of {issue.key}")

    def _correct_pass(self, records: Iterable[IssueRecord]) -> None:
        for record in records:
            if record.state not in (IssueState.CREATED, IssueState.CORRECTED):
                continue
            self._correct_issue(record)
        logger.info(f"Corrected {self.stats.issues_corrected} issues")

    def _correct_issue(self, record: IssueRecord) -> None:
        issue = record.issue
        if record.original_body is None:
            msg = f"No stored body for created Jira issue {issue.key}"
            raise MigrationError(msg)

        try:
            number = self.number_map.require(issue.key)
            payload = issue_builder.build_update_payload(issue, record.original_body, self.number_map)
            self._target.update_issue(number, payload, author=issue.created_by)
        except UnmappedKeyError:
            raise
        except MigrationError as e:
            self._fail(record, "update", e)
            return

        if record.state is not IssueState.CORRECTED:
            self.stats.issues_corrected += 1
        record.state = IssueState.CORRECTED
        record.error = None
        logger.debug(f"Corrected references in {issue.key} (#{number})")

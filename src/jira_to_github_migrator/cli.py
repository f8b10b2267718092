"""
Command-line interface for the Jira to GitHub migration tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

from . import github_utils as ghu
from . import jira_utils
from . import utils
from .github_target import DryRunTarget, GitHubTarget
from .jira_fetcher import JiraIssueFetcher
from .jira_parser import JiraIssueParser
from .orchestrator import Migrator
from .user_mapper import UserMapper, load_user_mapping
from .utils import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Issue
    from .orchestrator import MigrationResult
    from .protocols import TargetSystem

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Migrate Jira issues to GitHub, preserving cross-issue references")
    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console verbosity (-v info, -vv debug)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser("migrate", help="Migrate issues into a GitHub repository")
    _ = migrate_parser.add_argument("--jira-url", required=True, help="Base URL of the Jira instance")
    source_group = migrate_parser.add_mutually_exclusive_group(required=True)
    _ = source_group.add_argument("--project", help="Jira project key to fetch issues from")
    _ = source_group.add_argument("--input", help="Cached Jira issue JSON file or directory of <KEY>.json files")
    _ = migrate_parser.add_argument("--github", help="GitHub repository path (owner/repo)")
    _ = migrate_parser.add_argument(
        "--dry-run", action="store_true", help="Log what would be created without writing to GitHub"
    )
    _ = migrate_parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Skip issues that fail instead of aborting the migration",
    )
    _ = migrate_parser.add_argument("--user-mapping", help="JSON file mapping Jira usernames to GitHub logins")
    _ = migrate_parser.add_argument(
        "--author-token",
        action="append",
        help='Token of a GitHub user (format: "login:pass_path"). Can be specified multiple times.',
    )
    _ = migrate_parser.add_argument(
        "--github-pass-token", help="Path for the default GitHub token in pass utility (default: github/cli/token)"
    )
    _ = migrate_parser.add_argument(
        "--jira-pass-token", help="Path for Jira token in pass utility (default: jira/cli/token)"
    )

    download_parser = subparsers.add_parser("download", help="Save Jira issues as JSON files for later migration")
    _ = download_parser.add_argument("--jira-url", required=True, help="Base URL of the Jira instance")
    _ = download_parser.add_argument("--project", required=True, help="Jira project key to fetch issues from")
    _ = download_parser.add_argument("--output", required=True, help="Directory to write <KEY>.json files to")
    _ = download_parser.add_argument(
        "--jira-pass-token", help="Path for Jira token in pass utility (default: jira/cli/token)"
    )

    args = parser.parse_args(argv)
    if args.command == "migrate" and not args.dry_run and not args.github:
        parser.error("--github is required unless --dry-run is given")
    return args


def parse_author_tokens(patterns: Sequence[str] | None) -> dict[str, str]:
    """Resolve "login:pass_path" patterns into a GitHub login -> token mapping."""
    tokens: dict[str, str] = {}
    for pattern in patterns or []:
        if ":" not in pattern:
            msg = f"Invalid author token format: {pattern}"
            raise ValueError(msg)
        login, pass_path = pattern.split(":", 1)
        tokens[login] = utils.get_pass_value(pass_path)
    return tokens


def _print_report(result: MigrationResult) -> None:
    """Print a human-readable summary of the migration."""
    stats = result.stats
    print("\nMigration report")
    print("================")
    print(f"Status: {'PASSED' if result.success else 'FAILED'}")
    print(f"Issues created: {stats.issues_created}")
    print(f"Issues corrected: {stats.issues_corrected}")
    print(f"Issues failed: {stats.issues_failed}")
    print(f"Comments created: {stats.comments_created}")
    print(f"Comments failed: {stats.comments_failed}")

    if result.number_map:
        print("\nIssue mapping:")
        for key, number in result.number_map.items():
            print(f"  {key} -> #{number} ({result.states[key].value})")

    if stats.errors:
        print("\nErrors:")
        for error in stats.errors:
            print(f"  - {error}")


def _load_issues(args: argparse.Namespace, user_mapper: UserMapper) -> list[Issue]:
    if args.input:
        return JiraIssueParser(user_mapper).parse_from_files(args.input)

    session = jira_utils.get_session(jira_utils.get_token(args.jira_pass_token))
    fetcher = JiraIssueFetcher(args.jira_url, session=session, user_mapper=user_mapper)
    return fetcher.fetch(args.project)


def _create_target(args: argparse.Namespace) -> TargetSystem:
    if args.dry_run:
        return DryRunTarget()

    target = GitHubTarget(
        args.github,
        ghu.get_token(args.github_pass_token),
        author_tokens=parse_author_tokens(args.author_token),
    )
    target.validate_access()
    return target


def run_migrate(args: argparse.Namespace) -> int:
    """Run the migrate command and return the exit code."""
    _ = jira_utils.validate_jira_url(args.jira_url)
    user_mapping = load_user_mapping(args.user_mapping) if args.user_mapping else None
    issues = _load_issues(args, UserMapper(user_mapping))
    if not issues:
        source = args.input or f"Jira project {args.project}"
        print(f"No issues found in {source}")
        return 1

    migrator = Migrator(_create_target(args), args.jira_url, continue_on_error=args.continue_on_error)
    result = migrator.migrate(issues)
    _print_report(result)
    return 0 if result.success else 1


def run_download(args: argparse.Namespace) -> int:
    """Run the download command and return the exit code."""
    session = jira_utils.get_session(jira_utils.get_token(args.jira_pass_token))
    fetcher = JiraIssueFetcher(args.jira_url, session=session)
    files = fetcher.download(args.project, args.output)
    if not files:
        print(f"No issues found in Jira project {args.project}")
        return 1
    print(f"Downloaded {len(files)} issues to {args.output}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(verbosity=args.verbose)

    try:
        exit_code = run_download(args) if args.command == "download" else run_migrate(args)
    except Exception:
        logger.exception("Migration failed")
        sys.exit(1)

    sys.exit(exit_code)

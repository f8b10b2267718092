"""
Jira to GitHub Migration Tool

Migrates the issues of a Jira project to a GitHub repository, including
comments, authorship and timestamps, and rewrites cross-issue references
to the GitHub issue numbers.
"""

from __future__ import annotations

from .cli import main
from .exceptions import (
    CreateFailedError,
    FetchError,
    MigrationError,
    ParseError,
    UnmappedKeyError,
    UpdateFailedError,
)
from .github_target import DryRunTarget, GitHubTarget
from .jira_fetcher import JiraIssueFetcher
from .jira_parser import JiraIssueParser
from .models import Comment, Issue
from .orchestrator import Migrator, MigrationResult, IssueState
from .references import rewrite_references
from .user_mapper import UserMapper
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "Comment",
    "CreateFailedError",
    "DryRunTarget",
    "FetchError",
    "GitHubTarget",
    "Issue",
    "IssueState",
    "JiraIssueFetcher",
    "JiraIssueParser",
    "MigrationError",
    "MigrationResult",
    "Migrator",
    "ParseError",
    "UnmappedKeyError",
    "UpdateFailedError",
    "UserMapper",
    "main",
    "rewrite_references",
    "setup_logging",
]

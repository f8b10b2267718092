"""
Custom exception classes for the Jira to GitHub migration tool.
"""

from __future__ import annotations

from pathlib import Path


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised when user mapping or token configuration is invalid."""


class FetchError(MigrationError):
    """Raised when listing or fetching issues from Jira fails.

    The raw HTTP status and response body are kept for diagnostics.
    """

    status: int | None
    body: str | None

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ParseError(MigrationError):
    """Raised when Jira issue JSON is malformed or lacks a required field."""

    path: Path | None

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class UnmappedKeyError(MigrationError):
    """Raised when an operation needs the GitHub number of a Jira key that was never created."""

    key: str

    def __init__(self, key: str) -> None:
        super().__init__(f"Jira issue {key} has no GitHub issue number")
        self.key = key


class MappingConflictError(MigrationError):
    """Raised when a key or an issue number would be mapped twice."""


class TargetError(MigrationError):
    """Raised when a write request to GitHub fails.

    `status` is None when no HTTP response was received at all.
    """

    status: int | None
    response_message: str

    def __init__(self, message: str, *, status: int | None, response_message: str) -> None:
        super().__init__(f"{message}: {status} - {response_message}")
        self.status = status
        self.response_message = response_message


class CreateFailedError(TargetError):
    """Raised when creating an issue or a comment fails."""


class UpdateFailedError(TargetError):
    """Raised when updating an issue body fails."""

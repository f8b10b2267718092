"""Protocol defining the contract for the target system.

The migration architecture separates concerns into three components:

1. JiraIssueFetcher / JiraIssueParser: produce normalized issues from Jira
2. TargetSystem: creates and updates data in the target (GitHub)
3. Migrator: orchestrates the two passes and owns the issue number mapping

This separation allows testing the Migrator with in-memory targets and running
a dry run without touching GitHub.
"""

from __future__ import annotations

from typing import Any, Protocol


class TargetSystem(Protocol):
    """Protocol for writing issues into a target system.

    The Migrator calls methods in a specific order:
    1. create_issue() - once per issue, first pass
    2. create_comment() - for each comment, right after its issue
    3. update_issue() - once per created issue, second pass

    Each call names the (already mapped) author so the implementation can act
    with that user's credentials.

    Example implementations:
        - GitHubTarget: Uses PyGithub's requester against the REST API
        - DryRunTarget: Logs payloads and hands out sequential numbers
    """

    def create_issue(self, payload: dict[str, Any], *, author: str) -> int:
        """Create an issue and return the number the target assigned to it.

        Raises:
            CreateFailedError: If the target rejected the request
        """
        ...

    def create_comment(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        """Add a comment to an existing issue.

        Raises:
            CreateFailedError: If the target rejected the request
        """
        ...

    def update_issue(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        """Update an existing issue.

        Raises:
            UpdateFailedError: If the target rejected the request
        """
        ...

"""GitHub as the target system of a migration."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Final

import requests
from github import Github, GithubException

from . import github_utils as ghu
from .exceptions import CreateFailedError, MigrationError, TargetError, UpdateFailedError

logger: logging.Logger = logging.getLogger(__name__)

_HTTP_CREATED: Final[int] = 201
_HTTP_OK: Final[int] = 200


def _response_message(data: Any) -> str:  # noqa: ANN401 - raw JSON value
    """Pull GitHub's error message out of a decoded response body."""
    if isinstance(data, dict):
        message = data.get("message")  # pyright: ignore[reportUnknownVariableType,reportUnknownMemberType]
        if message:
            return str(message)  # pyright: ignore[reportUnknownArgumentType]
    return "<no message>"


class GitHubTarget:
    """Creates and updates issues in a GitHub repository.

    Every request is sent with the token of the GitHub user that authored the
    content in Jira when one is configured, falling back to the default token.
    Requests go through PyGithub's requester, which keeps authentication and
    rate limiting consistent with the rest of PyGithub.
    """

    repo_path: str
    _owner: str
    _repo: str
    _default_token: str
    _author_tokens: dict[str, str]
    _client_factory: Callable[[str], Github]
    _clients: dict[str, Github]

    def __init__(
        self,
        repo_path: str,
        default_token: str,
        *,
        author_tokens: Mapping[str, str] | None = None,
        client_factory: Callable[[str], Github] = ghu.get_client,
    ) -> None:
        self._owner, self._repo = ghu.split_repo_path(repo_path)
        self.repo_path = repo_path
        self._default_token = default_token
        self._author_tokens = dict(author_tokens or {})
        self._client_factory = client_factory
        self._clients = {}

    def _client_for(self, author: str | None) -> Github:
        token = self._author_tokens.get(author, self._default_token) if author else self._default_token
        client = self._clients.get(token)
        if client is None:
            client = self._client_factory(token)
            self._clients[token] = client
        return client

    def _request(
        self,
        verb: str,
        endpoint: str,
        payload: dict[str, Any],
        *,
        author: str | None,
        expected_status: int,
        error_class: type[TargetError],
        context: str,
    ) -> Any:  # noqa: ANN401 - decoded JSON body
        client = self._client_for(author)
        try:
            status, _, raw = client.requester.requestJson(verb, endpoint, input=payload)
        except (GithubException, requests.RequestException) as e:
            raise error_class(f"Failed to {context}", status=None, response_message=str(e)) from e

        try:
            data = json.loads(raw) if raw else None
        except ValueError:
            data = None

        if status != expected_status:
            raise error_class(f"Failed to {context}", status=status, response_message=_response_message(data))
        return data

    def validate_access(self) -> None:
        """Check that the default token can see the repository.

        Raises:
            MigrationError: If the repository cannot be accessed
        """
        if ghu.get_repo(self._client_for(None), self.repo_path) is None:
            msg = f"GitHub repository {self.repo_path} not found or not accessible"
            raise MigrationError(msg)
        logger.info("GitHub API access validated")

    def create_issue(self, payload: dict[str, Any], *, author: str) -> int:
        data = self._request(
            "POST",
            f"/repos/{self._owner}/{self._repo}/issues",
            payload,
            author=author,
            expected_status=_HTTP_CREATED,
            error_class=CreateFailedError,
            context=f"create issue '{payload.get('title', '')}'",
        )
        if not isinstance(data, dict) or not isinstance(data.get("number"), int):  # pyright: ignore[reportUnknownMemberType]
            raise CreateFailedError(
                "Issue creation response has no issue number",
                status=_HTTP_CREATED,
                response_message=str(data),
            )
        number: int = data["number"]  # pyright: ignore[reportUnknownVariableType]
        logger.debug(f"Created GitHub issue #{number}")
        return number

    def create_comment(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        _ = self._request(
            "POST",
            f"/repos/{self._owner}/{self._repo}/issues/{issue_number}/comments",
            payload,
            author=author,
            expected_status=_HTTP_CREATED,
            error_class=CreateFailedError,
            context=f"create comment on issue #{issue_number}",
        )
        logger.debug(f"Created comment on GitHub issue #{issue_number}")

    def update_issue(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        _ = self._request(
            "PATCH",
            f"/repos/{self._owner}/{self._repo}/issues/{issue_number}",
            payload,
            author=author,
            expected_status=_HTTP_OK,
            error_class=UpdateFailedError,
            context=f"update issue #{issue_number}",
        )
        logger.debug(f"Updated GitHub issue #{issue_number}")


class DryRunTarget:
    """Target that only logs what would be sent to GitHub.

    Issue numbers are handed out sequentially starting at `first_number`.
    """

    _next_number: int
    requests: list[tuple[str, int | None, dict[str, Any]]]

    def __init__(self, first_number: int = 1) -> None:
        self._next_number = first_number
        self.requests = []

    def create_issue(self, payload: dict[str, Any], *, author: str) -> int:
        number = self._next_number
        self._next_number += 1
        self.requests.append(("create_issue", number, payload))
        logger.info(f"[dry run] Would create issue #{number} as @{author}: {payload.get('title', '')}")
        return number

    def create_comment(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        self.requests.append(("create_comment", issue_number, payload))
        logger.info(f"[dry run] Would comment on issue #{issue_number} as @{author}")

    def update_issue(self, issue_number: int, payload: dict[str, Any], *, author: str) -> None:
        self.requests.append(("update_issue", issue_number, payload))
        logger.info(f"[dry run] Would update issue #{issue_number} as @{author}")

from __future__ import annotations

import logging
from typing import Final

from github import Auth, Github, GithubException, UnknownObjectException
from github.Repository import Repository

from . import utils
from .exceptions import ConfigurationError, MigrationError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    token = utils.resolve_token(pass_path, _TOKEN_ENV_VAR, _DEFAULT_TOKEN_PASS_PATH)
    if token is None:
        msg = f"No GitHub token found. Set {_TOKEN_ENV_VAR} or store one in pass at {_DEFAULT_TOKEN_PASS_PATH}"
        raise ConfigurationError(msg)
    return token


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token."""
    if token is None:
        return Github()
    return Github(auth=Auth.Token(token))


def split_repo_path(repo_path: str) -> tuple[str, str]:
    """Split "owner/repo" into its parts."""
    parts = repo_path.strip().split("/")
    if len(parts) != 2 or not all(parts):
        msg = f"Invalid GitHub repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise ConfigurationError(msg)
    return parts[0], parts[1]


def get_repo(client: Github, repo_path: str) -> Repository | None:
    try:
        return client.get_repo(repo_path)
    except UnknownObjectException as e:
        if e.status == 404:
            return None
        msg = f"Error checking repository existence: {e}"
        raise MigrationError(msg) from e
    except GithubException as e:
        msg = f"Error checking repository existence: {e}"
        raise MigrationError(msg) from e

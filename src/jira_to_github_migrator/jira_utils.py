from __future__ import annotations

import logging
from typing import Final
from urllib.parse import urlsplit

import requests

from . import utils
from .exceptions import ConfigurationError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "JIRA_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "jira/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get Jira token from pass path, env var JIRA_TOKEN, or default pass location."""
    token = utils.resolve_token(pass_path, _TOKEN_ENV_VAR, _DEFAULT_TOKEN_PASS_PATH)
    if token is None:
        logger.warning("No Jira token specified nor found, using anonymous access")
    return token


def get_session(token: str | None = None) -> requests.Session:
    """Get a requests session for the Jira REST API. Anonymous if no token is given."""
    session = requests.Session()
    session.headers.update({"Accept": "application/json"})
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


def validate_jira_url(jira_url: str) -> str:
    """Check that the Jira base URL is absolute and return it without a trailing slash.

    Raises:
        ConfigurationError: If the URL has no http(s) scheme or no host
    """
    parts = urlsplit(jira_url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Invalid Jira URL '{jira_url}'. Expected an absolute URL such as 'https://issues.example.com'"
        raise ConfigurationError(msg)
    return jira_url.strip().rstrip("/")

"""
User mapping from Jira usernames to GitHub logins.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError
from .models import JiraUser

if TYPE_CHECKING:
    from collections.abc import Mapping

logger: logging.Logger = logging.getLogger(__name__)


def load_user_mapping(path: str | Path) -> dict[str, str]:
    """Load a Jira username -> GitHub login table from a JSON object file."""
    mapping_path = Path(path)
    try:
        data: object = json.loads(mapping_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Failed to read user mapping from {mapping_path}: {e}"
        raise ConfigurationError(msg) from e

    if not isinstance(data, dict):
        msg = f"User mapping in {mapping_path} must be a JSON object"
        raise ConfigurationError(msg)

    mapping: dict[str, str] = {}
    for jira_name, github_login in data.items():  # pyright: ignore[reportUnknownVariableType]
        if not isinstance(github_login, str):
            msg = f"User mapping for '{jira_name}' in {mapping_path} must be a string"
            raise ConfigurationError(msg)
        mapping[str(jira_name)] = github_login  # pyright: ignore[reportUnknownArgumentType]

    logger.info(f"Loaded {len(mapping)} user mappings from {mapping_path}")
    return mapping


class UserMapper:
    """Maps Jira users to GitHub logins, falling back to the Jira name."""

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        self.mapping: dict[str, str] = dict(mapping or {})

    def lookup(self, jira_name: str) -> str | None:
        """Return the GitHub login configured for a Jira name, if any."""
        return self.mapping.get(jira_name)

    def map(self, user: JiraUser | str) -> str:
        """Map a Jira user (or plain Jira username) to a GitHub login."""
        jira_name = user.name if isinstance(user, JiraUser) else user
        github_login = self.lookup(jira_name)
        if github_login is None:
            return jira_name
        return github_login

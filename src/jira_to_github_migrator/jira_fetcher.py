"""Fetch issues of a Jira project through the Jira REST API."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

import requests

from . import jira_utils
from .exceptions import FetchError
from .jira_parser import JiraIssueParser

if TYPE_CHECKING:
    from .models import Issue
    from .user_mapper import UserMapper

logger: logging.Logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS: Final[int] = 60
DEFAULT_PAGE_SIZE: Final[int] = 50


def build_jql(project_id: str) -> str:
    """Return the JQL selecting the unresolved issues of a project, most important first."""
    return f"project = {project_id} AND resolution = Unresolved ORDER BY priority DESC, updated DESC"


class JiraIssueFetcher:
    """Lists and fetches the issues of a Jira project.

    All requests are made one after the other. Any failure aborts the whole
    fetch, so a partial issue set never reaches the migration.
    """

    base_url: str
    session: requests.Session
    parser: JiraIssueParser
    page_size: int

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        user_mapper: UserMapper | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.base_url = jira_utils.validate_jira_url(base_url)
        self.session = session or jira_utils.get_session()
        self.parser = JiraIssueParser(user_mapper)
        self.page_size = page_size

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        except requests.RequestException as e:
            msg = f"Failed to fetch {url}: {e}"
            raise FetchError(msg) from e

        if response.status_code != 200:
            msg = f"Failed to fetch {url}\n{response.status_code}: {response.text}"
            raise FetchError(msg, status=response.status_code, body=response.text)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Malformed JSON response from {url}"
            raise FetchError(msg, status=response.status_code, body=response.text) from e

        if not isinstance(data, dict):
            msg = f"Unexpected JSON response from {url}: expected an object"
            raise FetchError(msg, status=response.status_code, body=response.text)
        return data

    def list_issue_keys(self, project_id: str) -> list[str]:
        """List the keys of all unresolved issues of a project, following pagination.

        Raises:
            FetchError: On transport failure, non-200 status or malformed response
        """
        url = f"{self.base_url}/rest/api/2/search"
        keys: list[str] = []
        start_at = 0

        while True:
            params = {
                "jql": build_jql(project_id),
                "fields": "key",
                "startAt": start_at,
                "maxResults": self.page_size,
            }
            data = self._get_json(url, params)
            try:
                page_keys = [issue["key"] for issue in data["issues"]]
                total = int(data.get("total", 0))
            except (KeyError, TypeError, ValueError) as e:
                msg = f"Malformed search response from {url}: {e}"
                raise FetchError(msg, status=200, body=json.dumps(data)) from e

            keys.extend(page_keys)
            start_at += len(page_keys)
            logger.debug(f"Listed {len(keys)} of {total} issue keys for project {project_id}")
            if not page_keys or start_at >= total:
                break

        logger.info(f"Found {len(keys)} unresolved issues in Jira project {project_id}")
        return keys

    def fetch_issue_json(self, key: str) -> dict[str, Any]:
        """Fetch the raw JSON of one issue, including the HTML-rendered fields."""
        return self._get_json(f"{self.base_url}/rest/api/2/issue/{key}", {"expand": "renderedFields"})

    def fetch_issue_detail(self, key: str) -> Issue:
        """Fetch one issue and parse it into the normalized model."""
        issue = self.parser.parse(self.fetch_issue_json(key))
        logger.debug(f"Fetched Jira issue {key} with {len(issue.comments)} comments")
        return issue

    def fetch(self, project_id: str) -> list[Issue]:
        """Fetch every unresolved issue of a project, in search order.

        The first failure propagates and nothing is returned.
        """
        issues = [self.fetch_issue_detail(key) for key in self.list_issue_keys(project_id)]
        logger.info(f"Fetched {len(issues)} issues from Jira project {project_id}")
        return issues

    def download(self, project_id: str, directory: str | Path) -> list[Path]:
        """Save the raw JSON of every unresolved issue of a project as <KEY>.json files.

        The resulting directory can be read back with JiraIssueParser.parse_from_files().
        """
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)

        downloaded: list[Path] = []
        for key in self.list_issue_keys(project_id):
            json_file = target_dir / f"{key}.json"
            _ = json_file.write_text(json.dumps(self.fetch_issue_json(key), indent=2), encoding="utf-8")
            downloaded.append(json_file)
            logger.debug(f"Downloaded Jira issue {key} to {json_file}")

        logger.info(f"Downloaded {len(downloaded)} issues to {target_dir}")
        return downloaded

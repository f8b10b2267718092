"""Rewrite Jira issue references into GitHub issue references."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

# Optional "https://host/some/path/" prefix, a Jira key like "PROJ-42", then any trailing non-whitespace.
# The prefix has to end with "/" right before the key, so it can never swallow part of the key.
ISSUE_REFERENCE_PATTERN: re.Pattern[str] = re.compile(
    r"(?:https?://[^\s/]+/(?:[^\s/]+/)*?)?(?P<key>[A-Z0-9]+-\d+)\S*"
)


def rewrite_references(text: str, mapping: Mapping[str, int]) -> str:
    """Replace every Jira issue reference whose key is mapped with "#<number>".

    Matches are scanned left to right without overlapping. A match whose key
    is not (yet) mapped is kept exactly as it was, which is expected for
    forward references during the first migration pass.

    Args:
        text: Text that may contain Jira keys or Jira issue URLs
        mapping: Jira issue key -> GitHub issue number

    Returns:
        The text with resolvable references replaced, all other text unchanged
    """
    if not text:
        return text

    def _replace(match: re.Match[str]) -> str:
        number = mapping.get(match.group("key"))
        if number is None:
            return match.group(0)
        return f"#{number}"

    return ISSUE_REFERENCE_PATTERN.sub(_replace, text)

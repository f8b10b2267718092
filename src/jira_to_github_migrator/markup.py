"""Conversion of Jira's rendered HTML markup into GitHub Markdown."""

from __future__ import annotations

import re
from typing import Any

from typing_extensions import override

from markdownify import ATX, MarkdownConverter

_ISSUE_KEY = re.compile(r"[A-Z0-9]+-\d+")


class JiraMarkdownConverter(MarkdownConverter):
    """Markdown converter that leaves Jira issue references as bare keys.

    Jira renders every issue key as an anchor to its browse page. A Markdown
    link (or emphasis) around the key would be cut in half when the key is
    later rewritten to "#<number>", so those wrappers are dropped.
    """

    @override
    def convert_a(self, el: Any, text: str, parent_tags: set[str]) -> str:  # noqa: ANN401
        issue_key = el.get("data-issue-key")
        if not issue_key and "issue-link" in (el.get("class") or []):
            issue_key = text.strip()
        if issue_key:
            return self._keep_spacing(text, issue_key)
        return super().convert_a(el, text, parent_tags)

    @override
    def convert_b(self, el: Any, text: str, parent_tags: set[str]) -> str:  # noqa: ANN401
        if _ISSUE_KEY.fullmatch(text.strip()):
            return text
        return super().convert_b(el, text, parent_tags)

    @override
    def convert_em(self, el: Any, text: str, parent_tags: set[str]) -> str:  # noqa: ANN401
        if _ISSUE_KEY.fullmatch(text.strip()):
            return text
        return super().convert_em(el, text, parent_tags)

    convert_strong = convert_b
    convert_i = convert_em

    @staticmethod
    def _keep_spacing(text: str, replacement: str) -> str:
        prefix = " " if text.startswith(" ") else ""
        suffix = " " if text.endswith(" ") else ""
        return f"{prefix}{replacement}{suffix}"


def render_html(html: str | None) -> str:
    """Convert an HTML fragment to Markdown.

    Returns an empty string for missing or empty input.
    """
    if not html:
        return ""
    return JiraMarkdownConverter(heading_style=ATX).convert(html).strip()

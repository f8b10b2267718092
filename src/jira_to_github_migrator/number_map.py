"""Registry of Jira issue keys to the GitHub issue numbers they were created as."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping

from typing_extensions import override

from .exceptions import MappingConflictError, UnmappedKeyError

logger: logging.Logger = logging.getLogger(__name__)


class IssueNumberMap(Mapping[str, int]):
    """Grow-only mapping from Jira key to GitHub issue number.

    An entry exists only once the GitHub issue was created. Entries are never
    changed or removed, and no two keys share a number. Writes are serialized
    with a lock; reads go through the read-only Mapping interface so the
    registry can be passed straight to rewrite_references().
    """

    _numbers: dict[str, int]
    _keys_by_number: dict[int, str]
    _lock: threading.Lock

    def __init__(self) -> None:
        self._numbers = {}
        self._keys_by_number = {}
        self._lock = threading.Lock()

    @override
    def __getitem__(self, key: str) -> int:
        return self._numbers[key]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._numbers)

    @override
    def __len__(self) -> int:
        return len(self._numbers)

    def require(self, key: str) -> int:
        """Return the GitHub number for a key that must already be created."""
        number = self.get(key)
        if number is None:
            raise UnmappedKeyError(key)
        return number

    def record(self, key: str, number: int) -> None:
        """Record that the issue for `key` was created as GitHub issue `number`.

        Recording the same pair again is a no-op.

        Raises:
            MappingConflictError: If the key already has another number, or the
                number already belongs to another key
        """
        with self._lock:
            existing_number = self._numbers.get(key)
            if existing_number == number:
                return
            if existing_number is not None:
                msg = f"Jira issue {key} is already mapped to #{existing_number}, refusing to remap to #{number}"
                raise MappingConflictError(msg)

            existing_key = self._keys_by_number.get(number)
            if existing_key is not None:
                msg = f"GitHub issue #{number} is already mapped to {existing_key}, refusing to map {key}"
                raise MappingConflictError(msg)

            self._numbers[key] = number
            self._keys_by_number[number] = key

        logger.debug(f"Mapped {key} -> #{number}")

    def as_dict(self) -> dict[str, int]:
        """Return a snapshot copy of the mapping."""
        with self._lock:
            return dict(self._numbers)

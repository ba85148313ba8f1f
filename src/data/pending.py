"""
VoiceTasks — In-memory pending state.

Process-local implementation of PendingStore. Two instances live for the
lifetime of the server: staged media awaiting a prompt, and task titles
awaiting a deletion choice.
"""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryPendingStore(Generic[T]):
    """Dict-backed PendingStore. Not shared across processes."""

    def __init__(self, name: str = "pending") -> None:
        self._name = name
        self._entries: dict[str, T] = {}

    def get(self, sender_id: str) -> T | None:
        return self._entries.get(sender_id)

    def set(self, sender_id: str, entry: T) -> None:
        self._entries[sender_id] = entry
        logger.debug("%s: stored entry for %s", self._name, sender_id)

    def pop(self, sender_id: str) -> T | None:
        entry = self._entries.pop(sender_id, None)
        if entry is not None:
            logger.debug("%s: consumed entry for %s", self._name, sender_id)
        return entry

    def clear(self, sender_id: str) -> None:
        self._entries.pop(sender_id, None)

    def __contains__(self, sender_id: object) -> bool:
        return sender_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

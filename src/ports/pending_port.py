"""Pending-state port — per-sender state awaiting the sender's next message.

The conversation engine depends on this protocol, never on a concrete store.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

T = TypeVar("T")


class PendingStore(Protocol[T]):
    """Keyed by sender id; at most one entry per sender."""

    def get(self, sender_id: str) -> T | None: ...

    def set(self, sender_id: str, entry: T) -> None: ...

    def pop(self, sender_id: str) -> T | None: ...

    def clear(self, sender_id: str) -> None: ...

    def __contains__(self, sender_id: object) -> bool: ...

"""Task provider port — abstract interface for the task-list backend.

Core modules depend on this protocol, never on a specific provider.
Every call either succeeds with data or returns a string that can be
shown to the user as-is; implementations do not raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


class TaskProviderError(Exception):
    """Raised inside a provider implementation when an API call fails."""


@dataclass
class NewTask:
    title: str
    notes: str = ""
    due: datetime | None = None


class TaskProviderPort(Protocol):
    """Abstract task-list interface used by core modules."""

    def is_authenticated(self, sender_id: str) -> bool: ...

    async def create_task(self, sender_id: str, task: NewTask) -> dict | str: ...

    async def list_tasks_formatted(self, sender_id: str) -> str: ...

    async def list_task_titles(self, sender_id: str) -> list[str] | str | None: ...

    async def delete_task_by_title(self, sender_id: str, title: str) -> str: ...

    async def list_task_lists(self, sender_id: str) -> list[dict] | str: ...

"""
VoiceTasks — Action Service.

Turns a classified model reply into side effects on the task provider and
a reply for the user:

    model reply -> extract_action -> auth check -> create / list / delete
                -> ServiceResponse

Ambiguous deletions (no title given) park the sender's task titles in the
pending-deletion store; the next message is resolved by
`resolve_pending_deletion`.

Returns structured response objects — never sends messages directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

from src.bot import messages
from src.core.due_date import format_due, task_due_datetime
from src.core.parser import (
    IdentifiedTask,
    PlainChat,
    TaskCreate,
    TaskDeleteRequest,
    TaskListRequest,
    extract_action,
    find_task_from_reply,
)
from src.ports.task_port import NewTask

if TYPE_CHECKING:
    from src.core.llm import ChatReply
    from src.ports.pending_port import PendingStore
    from src.ports.task_port import TaskProviderPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    AUTH_REQUIRED = "auth_required"
    DELETION_PROMPT = "deletion_prompt"
    QUERY_RESULT = "query_result"
    NO_MATCH = "no_match"
    CHAT = "chat"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


def format_chat_reply(text: str, used_search: bool = False) -> str:
    """Brand a plain chat reply; strip one pair of stray surrounding quotes."""
    trimmed = text.strip()
    if trimmed.startswith('"'):
        trimmed = trimmed[1:]
    if trimmed.endswith('"'):
        trimmed = trimmed[:-1]
    prefix = messages.CHAT_PREFIX_WITH_SEARCH if used_search else messages.CHAT_PREFIX
    return f"{prefix} {trimmed}"


# ---------------------------------------------------------------------------
# ActionService
# ---------------------------------------------------------------------------


class ActionService:
    """Dispatches identified actions against the task provider."""

    def __init__(
        self,
        tasks: TaskProviderPort,
        pending_deletions: PendingStore[list[str]],
        due_hour: int = 9,
        timezone: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tasks = tasks
        self._pending_deletions = pending_deletions
        self._due_hour = due_hour
        self._timezone = timezone
        self._clock = clock

    # ------------------------------------------------------------------
    # Public: model reply -> response
    # ------------------------------------------------------------------

    async def handle_model_reply(self, sender_id: str, reply: ChatReply) -> ServiceResponse:
        """Classify a model reply and dispatch it."""
        if not reply.text or not reply.text.strip():
            logger.warning("Empty model reply for %s", sender_id)
            return ServiceResponse(ResponseKind.ERROR, messages.MODEL_EMPTY_RESPONSE)

        action = extract_action(reply.text, used_external_tool=reply.used_search)
        return await self.dispatch(sender_id, action)

    async def dispatch(self, sender_id: str, action: IdentifiedTask) -> ServiceResponse:
        """Run one identified action and describe the outcome."""
        if isinstance(action, PlainChat):
            return ServiceResponse(
                ResponseKind.CHAT,
                format_chat_reply(action.text, action.used_external_tool),
            )

        if isinstance(action, TaskCreate):
            if not self._tasks.is_authenticated(sender_id):
                return ServiceResponse(ResponseKind.AUTH_REQUIRED, messages.TASK_CREATION_AUTH_REQUIRED)
            return await self._create(sender_id, action)

        if isinstance(action, TaskListRequest):
            if not self._tasks.is_authenticated(sender_id):
                return ServiceResponse(ResponseKind.AUTH_REQUIRED, messages.TASK_LISTING_AUTH_REQUIRED)
            formatted = await self._tasks.list_tasks_formatted(sender_id)
            return ServiceResponse(ResponseKind.QUERY_RESULT, formatted)

        if isinstance(action, TaskDeleteRequest):
            if not self._tasks.is_authenticated(sender_id):
                return ServiceResponse(ResponseKind.AUTH_REQUIRED, messages.TASK_DELETION_AUTH_REQUIRED)
            if action.task_title:
                result = await self._tasks.delete_task_by_title(sender_id, action.task_title)
                return ServiceResponse(ResponseKind.SUCCESS, result)
            return await self._prompt_for_deletion(sender_id)

        raise TypeError(f"Unknown action type: {type(action).__name__}")

    # ------------------------------------------------------------------
    # Public: pending deletion follow-up
    # ------------------------------------------------------------------

    def has_pending_deletion(self, sender_id: str) -> bool:
        return sender_id in self._pending_deletions

    async def resolve_pending_deletion(self, sender_id: str, reply: str) -> ServiceResponse:
        """Match a reply against the list shown earlier and delete the pick.

        The pending list is consumed whether or not the reply matches.
        """
        titles = self._pending_deletions.pop(sender_id) or []
        chosen = find_task_from_reply(reply, titles)
        if chosen is None:
            logger.info("Deletion reply from %s matched nothing: %r", sender_id, reply)
            return ServiceResponse(ResponseKind.NO_MATCH, messages.DELETION_NO_MATCH)

        logger.info("User %s selected task '%s' for deletion", sender_id, chosen)
        result = await self._tasks.delete_task_by_title(sender_id, chosen)
        return ServiceResponse(ResponseKind.SUCCESS, result)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _create(self, sender_id: str, action: TaskCreate) -> ServiceResponse:
        now = self._clock() if self._clock else None
        due = task_due_datetime(now, hour=self._due_hour, timezone=self._timezone)
        result = await self._tasks.create_task(
            sender_id,
            NewTask(title=action.objective, notes=action.notes(), due=due),
        )
        if isinstance(result, str):
            return ServiceResponse(ResponseKind.ERROR, result)

        title = result.get("title") or action.objective
        logger.info("Task '%s' created for %s, due %s", title, sender_id, due.date())
        return ServiceResponse(ResponseKind.SUCCESS, messages.task_created(title, format_due(due)))

    async def _prompt_for_deletion(self, sender_id: str) -> ServiceResponse:
        titles = await self._tasks.list_task_titles(sender_id)
        if isinstance(titles, str):
            return ServiceResponse(ResponseKind.ERROR, titles)
        if titles is None:
            return ServiceResponse(ResponseKind.ERROR, messages.TASK_LIST_FAILED)
        if not titles:
            return ServiceResponse(ResponseKind.SUCCESS, messages.DELETION_NO_TASKS)

        self._pending_deletions.set(sender_id, list(titles))
        return ServiceResponse(ResponseKind.DELETION_PROMPT, messages.deletion_prompt(titles))

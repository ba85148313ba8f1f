"""Tests for src.core.action_service — UI-agnostic action dispatch.

Tests the ActionService in isolation with a mocked TaskProviderPort.
No Gemini, Google or Twilio dependency anywhere in this file.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bot import messages
from src.core.action_service import ActionService, ResponseKind, format_chat_reply
from src.core.llm import ChatReply
from src.core.parser import PlainChat, TaskCreate, TaskDeleteRequest, TaskListRequest
from src.data.pending import InMemoryPendingStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_service(authenticated=True, clock=None):
    """Create an ActionService with a mock task provider."""
    tasks = MagicMock()
    tasks.is_authenticated = MagicMock(return_value=authenticated)
    tasks.create_task = AsyncMock(return_value={"id": "t1", "title": "Buy milk"})
    tasks.list_tasks_formatted = AsyncMock(return_value="*Your tasks*")
    tasks.list_task_titles = AsyncMock(return_value=["A", "B"])
    tasks.delete_task_by_title = AsyncMock(return_value="🗑️ Task 'A' was deleted.")
    pending = InMemoryPendingStore("pending_deletions")
    service = ActionService(
        tasks,
        pending,
        due_hour=9,
        timezone="America/Sao_Paulo",
        clock=clock or (lambda: datetime(2026, 10, 23, 15, 0)),  # Friday
    )
    return service, tasks, pending


_CREATE = TaskCreate(
    objective="Buy milk",
    description="Two litres",
    expected_result="Milk in the fridge",
    user_benefit="Breakfast sorted",
)


# ---------------------------------------------------------------------------
# format_chat_reply
# ---------------------------------------------------------------------------


class TestFormatChatReply:
    def test_plain_prefix(self):
        assert format_chat_reply("Hello") == f"{messages.CHAT_PREFIX} Hello"

    def test_search_prefix(self):
        assert format_chat_reply("25°C", used_search=True) == f"{messages.CHAT_PREFIX_WITH_SEARCH} 25°C"

    def test_strips_surrounding_quotes(self):
        assert format_chat_reply('  "Hello there"  ') == f"{messages.CHAT_PREFIX} Hello there"


# ---------------------------------------------------------------------------
# handle_model_reply
# ---------------------------------------------------------------------------


class TestHandleModelReply:
    @pytest.mark.asyncio
    async def test_empty_reply(self):
        service, tasks, _ = _make_service()
        response = await service.handle_model_reply("U1", ChatReply(text="   "))
        assert response.kind == ResponseKind.ERROR
        assert response.message == messages.MODEL_EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_chat_reply_with_search(self):
        service, tasks, _ = _make_service()
        response = await service.handle_model_reply("U1", ChatReply(text="Sunny", used_search=True))
        assert response.kind == ResponseKind.CHAT
        assert response.message.startswith(messages.CHAT_PREFIX_WITH_SEARCH)
        tasks.create_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_json_never_surfaces_as_task(self):
        service, tasks, _ = _make_service()
        response = await service.handle_model_reply("U1", ChatReply(text='{"foo": 1}'))
        assert response.kind == ResponseKind.CHAT
        tasks.is_authenticated.assert_not_called()

    @pytest.mark.asyncio
    async def test_task_json_is_dispatched(self):
        service, tasks, _ = _make_service()
        raw = '{"isTask": true, "details": {"objective": "Buy milk"}}'
        response = await service.handle_model_reply("U1", ChatReply(text=raw))
        assert response.kind == ResponseKind.SUCCESS
        tasks.create_task.assert_awaited_once()


# ---------------------------------------------------------------------------
# dispatch: create
# ---------------------------------------------------------------------------


class TestDispatchCreate:
    @pytest.mark.asyncio
    async def test_unauthenticated(self):
        service, tasks, _ = _make_service(authenticated=False)
        response = await service.dispatch("U1", _CREATE)
        assert response.kind == ResponseKind.AUTH_REQUIRED
        assert response.message == messages.TASK_CREATION_AUTH_REQUIRED
        tasks.create_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_created_on_friday_is_due_monday(self):
        service, tasks, _ = _make_service()
        response = await service.dispatch("U1", _CREATE)

        assert response.kind == ResponseKind.SUCCESS
        assert "Buy milk" in response.message
        assert "Monday, 2026-10-26 at 09:00" in response.message

        sender_id, new_task = tasks.create_task.await_args.args
        assert sender_id == "U1"
        assert new_task.title == "Buy milk"
        assert new_task.notes == _CREATE.notes()
        assert new_task.due.date().isoformat() == "2026-10-26"
        assert new_task.due.hour == 9

    @pytest.mark.asyncio
    async def test_created_on_wednesday_is_due_thursday(self):
        service, tasks, _ = _make_service(clock=lambda: datetime(2026, 10, 21, 10, 0))
        await service.dispatch("U1", _CREATE)
        new_task = tasks.create_task.await_args.args[1]
        assert new_task.due.date().isoformat() == "2026-10-22"

    @pytest.mark.asyncio
    async def test_provider_error_string_passed_through(self):
        service, tasks, _ = _make_service()
        tasks.create_task = AsyncMock(return_value="Google is down")
        response = await service.dispatch("U1", _CREATE)
        assert response.kind == ResponseKind.ERROR
        assert response.message == "Google is down"


# ---------------------------------------------------------------------------
# dispatch: list
# ---------------------------------------------------------------------------


class TestDispatchList:
    @pytest.mark.asyncio
    async def test_unauthenticated(self):
        service, tasks, _ = _make_service(authenticated=False)
        response = await service.dispatch("U1", TaskListRequest())
        assert response.kind == ResponseKind.AUTH_REQUIRED
        assert response.message == messages.TASK_LISTING_AUTH_REQUIRED
        tasks.list_tasks_formatted.assert_not_called()

    @pytest.mark.asyncio
    async def test_lists(self):
        service, tasks, _ = _make_service()
        response = await service.dispatch("U1", TaskListRequest())
        assert response.kind == ResponseKind.QUERY_RESULT
        assert response.message == "*Your tasks*"


# ---------------------------------------------------------------------------
# dispatch: delete
# ---------------------------------------------------------------------------


class TestDispatchDelete:
    @pytest.mark.asyncio
    async def test_unauthenticated(self):
        service, tasks, pending = _make_service(authenticated=False)
        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))
        assert response.kind == ResponseKind.AUTH_REQUIRED
        assert response.message == messages.TASK_DELETION_AUTH_REQUIRED
        assert "U1" not in pending

    @pytest.mark.asyncio
    async def test_with_title(self):
        service, tasks, pending = _make_service()
        response = await service.dispatch("U1", TaskDeleteRequest(task_title="A"))
        assert response.kind == ResponseKind.SUCCESS
        tasks.delete_task_by_title.assert_awaited_once_with("U1", "A")
        assert "U1" not in pending

    @pytest.mark.asyncio
    async def test_without_title_prompts_and_stores(self):
        service, tasks, pending = _make_service()
        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))
        assert response.kind == ResponseKind.DELETION_PROMPT
        assert "1. A\n2. B" in response.message
        assert pending.get("U1") == ["A", "B"]
        assert service.has_pending_deletion("U1") is True

    @pytest.mark.asyncio
    async def test_without_title_nothing_to_delete(self):
        service, tasks, pending = _make_service()
        tasks.list_task_titles = AsyncMock(return_value=[])
        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))
        assert response.message == messages.DELETION_NO_TASKS
        assert "U1" not in pending

    @pytest.mark.asyncio
    async def test_without_title_expired_credentials_asks_to_reconnect(self):
        service, tasks, pending = _make_service()
        tasks.list_task_titles = AsyncMock(return_value=messages.AUTH_EXPIRED)
        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))
        assert response.kind == ResponseKind.ERROR
        assert response.message == messages.AUTH_EXPIRED
        assert "U1" not in pending

    @pytest.mark.asyncio
    async def test_without_title_listing_failure_is_not_empty_list(self):
        service, tasks, pending = _make_service()
        tasks.list_task_titles = AsyncMock(return_value=None)
        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))
        assert response.kind == ResponseKind.ERROR
        assert response.message == messages.TASK_LIST_FAILED
        assert response.message != messages.DELETION_NO_TASKS
        assert "U1" not in pending


class TestDispatchChat:
    @pytest.mark.asyncio
    async def test_chat_needs_no_auth(self):
        service, tasks, _ = _make_service(authenticated=False)
        response = await service.dispatch("U1", PlainChat(text="Hi!"))
        assert response.kind == ResponseKind.CHAT
        assert response.message == f"{messages.CHAT_PREFIX} Hi!"


# ---------------------------------------------------------------------------
# resolve_pending_deletion
# ---------------------------------------------------------------------------


class TestResolvePendingDeletion:
    @pytest.mark.asyncio
    async def test_number_reply_deletes_and_clears(self):
        service, tasks, pending = _make_service()
        pending.set("U1", ["A", "B"])
        response = await service.resolve_pending_deletion("U1", "1")
        assert response.kind == ResponseKind.SUCCESS
        tasks.delete_task_by_title.assert_awaited_once_with("U1", "A")
        assert "U1" not in pending

    @pytest.mark.asyncio
    async def test_title_reply(self):
        service, tasks, pending = _make_service()
        pending.set("U1", ["Buy milk", "Call Alice"])
        await service.resolve_pending_deletion("U1", "call alice")
        tasks.delete_task_by_title.assert_awaited_once_with("U1", "Call Alice")

    @pytest.mark.asyncio
    async def test_no_match_clears(self):
        service, tasks, pending = _make_service()
        pending.set("U1", ["A", "B"])
        response = await service.resolve_pending_deletion("U1", "xyz")
        assert response.kind == ResponseKind.NO_MATCH
        assert response.message == messages.DELETION_NO_MATCH
        tasks.delete_task_by_title.assert_not_called()
        assert "U1" not in pending

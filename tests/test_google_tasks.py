"""Tests for src.adapters.google_tasks — Google Tasks API mocked."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from src.adapters.google_tasks import GoogleTasksAdapter
from src.bot import messages
from src.core.action_service import ActionService, ResponseKind
from src.core.parser import TaskDeleteRequest
from src.data.pending import InMemoryPendingStore
from src.integrations.google_auth import GoogleAuthError
from src.ports.task_port import NewTask

_LIST = {"id": "list-1", "title": "VoiceTasks"}


def _service(task_lists=None, tasks=None):
    """MagicMock shaped like build('tasks', 'v1')."""
    service = MagicMock()
    service.tasklists.return_value.list.return_value.execute.return_value = {"items": task_lists or []}
    service.tasklists.return_value.insert.return_value.execute.return_value = {"id": "list-new"}
    service.tasks.return_value.list.return_value.execute.return_value = {"items": tasks or []}
    service.tasks.return_value.insert.return_value.execute.return_value = {"id": "t1", "title": "Buy milk"}
    return service


def _adapter():
    auth = MagicMock()
    auth.get_credentials.return_value = MagicMock()
    auth.is_authenticated.return_value = True
    return GoogleTasksAdapter(auth, "VoiceTasks"), auth


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_creates_in_existing_list(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[{"id": "other", "title": "My Tasks"}, _LIST])
        task = NewTask(title="Buy milk", notes="Description: x", due=datetime(2026, 10, 26, 9, 0))

        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.create_task("U1", task)

        assert result == {"id": "t1", "title": "Buy milk"}
        service.tasklists.return_value.insert.assert_not_called()
        service.tasks.return_value.insert.assert_called_once_with(
            tasklist="list-1",
            body={"title": "Buy milk", "notes": "Description: x", "due": "2026-10-26T00:00:00.000Z"},
        )

    @pytest.mark.asyncio
    async def test_creates_list_on_first_use(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[])
        with patch("src.adapters.google_tasks.build", return_value=service):
            await adapter.create_task("U1", NewTask(title="Buy milk"))

        service.tasklists.return_value.insert.assert_called_once_with(body={"title": "VoiceTasks"})
        assert service.tasks.return_value.insert.call_args.kwargs["tasklist"] == "list-new"
        assert "due" not in service.tasks.return_value.insert.call_args.kwargs["body"]

    @pytest.mark.asyncio
    async def test_auth_error_becomes_text(self):
        adapter, auth = _adapter()
        auth.get_credentials.side_effect = GoogleAuthError("expired")
        result = await adapter.create_task("U1", NewTask(title="x"))
        assert result == messages.AUTH_EXPIRED

    @pytest.mark.asyncio
    async def test_api_error_becomes_text(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST])
        service.tasks.return_value.insert.return_value.execute.side_effect = RuntimeError("500")
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.create_task("U1", NewTask(title="x"))
        assert result == messages.TASK_CREATE_FAILED


class TestListTasksFormatted:
    @pytest.mark.asyncio
    async def test_no_list_means_no_tasks(self):
        adapter, _ = _adapter()
        with patch("src.adapters.google_tasks.build", return_value=_service()):
            result = await adapter.list_tasks_formatted("U1")
        assert result == messages.no_tasks_in_list("VoiceTasks")

    @pytest.mark.asyncio
    async def test_formats_tasks(self):
        adapter, _ = _adapter()
        service = _service(
            task_lists=[_LIST],
            tasks=[
                {"id": "t1", "title": "Buy milk", "notes": "Description: two litres\nFinal Result: milk",
                 "due": "2026-10-26T00:00:00.000Z"},
                {"id": "t2", "title": "Call Alice"},
            ],
        )
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.list_tasks_formatted("U1")

        assert result.startswith(messages.tasks_header("VoiceTasks"))
        assert "1. *Buy milk*" in result
        assert "   Description: two litres" in result
        assert "   - Due: 2026-10-26" in result
        assert "2. *Call Alice*" in result
        assert result.endswith(messages.DUE_DATE_FOOTER)
        service.tasks.return_value.list.assert_called_once_with(
            tasklist="list-1", showCompleted=False, maxResults=100,
        )

    @pytest.mark.asyncio
    async def test_no_footer_without_due_dates(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST], tasks=[{"id": "t1", "title": "A"}])
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.list_tasks_formatted("U1")
        assert messages.DUE_DATE_FOOTER not in result


class TestListTaskTitles:
    @pytest.mark.asyncio
    async def test_titles(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST], tasks=[{"id": "t1", "title": "A"}, {"id": "t2"}])
        with patch("src.adapters.google_tasks.build", return_value=service):
            assert await adapter.list_task_titles("U1") == ["A", "Untitled Task"]

    @pytest.mark.asyncio
    async def test_auth_error_returns_reconnect_message(self):
        adapter, auth = _adapter()
        auth.get_credentials.side_effect = GoogleAuthError("expired")
        assert await adapter.list_task_titles("U1") == messages.AUTH_EXPIRED

    @pytest.mark.asyncio
    async def test_api_error_returns_none(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST])
        service.tasks.return_value.list.return_value.execute.side_effect = RuntimeError("503")
        with patch("src.adapters.google_tasks.build", return_value=service):
            assert await adapter.list_task_titles("U1") is None


class TestDeleteTaskByTitle:
    @pytest.mark.asyncio
    async def test_deletes_single_match(self):
        adapter, _ = _adapter()
        service = _service(
            task_lists=[_LIST],
            tasks=[{"id": "t1", "title": "Buy milk"}, {"id": "t2", "title": "Call Alice"}],
        )
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.delete_task_by_title("U1", "  BUY MILK ")

        assert result == messages.task_deleted("Buy milk")
        service.tasks.return_value.delete.assert_called_once_with(tasklist="list-1", task="t1")
        service.tasklists.return_value.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_last_task_removes_list(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST], tasks=[{"id": "t1", "title": "Buy milk"}])
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.delete_task_by_title("U1", "Buy milk")

        assert result == messages.task_deleted("Buy milk", list_removed=True)
        service.tasklists.return_value.delete.assert_called_once_with(tasklist="list-1")

    @pytest.mark.asyncio
    async def test_not_found(self):
        adapter, _ = _adapter()
        service = _service(task_lists=[_LIST], tasks=[{"id": "t1", "title": "A"}])
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.delete_task_by_title("U1", "Z")
        assert result == messages.task_not_found("Z")
        service.tasks.return_value.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_list_is_not_found(self):
        adapter, _ = _adapter()
        with patch("src.adapters.google_tasks.build", return_value=_service()):
            result = await adapter.delete_task_by_title("U1", "A")
        assert result == messages.task_not_found("A")

    @pytest.mark.asyncio
    async def test_duplicate_titles_refused(self):
        adapter, _ = _adapter()
        service = _service(
            task_lists=[_LIST],
            tasks=[{"id": "t1", "title": "Pay bill"}, {"id": "t2", "title": "pay bill"}],
        )
        with patch("src.adapters.google_tasks.build", return_value=service):
            result = await adapter.delete_task_by_title("U1", "Pay bill")
        assert result == messages.task_ambiguous("Pay bill", 2)
        service.tasks.return_value.delete.assert_not_called()


class TestListTaskLists:
    @pytest.mark.asyncio
    async def test_returns_lists(self):
        adapter, _ = _adapter()
        with patch("src.adapters.google_tasks.build", return_value=_service(task_lists=[_LIST])):
            assert await adapter.list_task_lists("U1") == [_LIST]

    @pytest.mark.asyncio
    async def test_api_error(self):
        adapter, _ = _adapter()
        service = _service()
        service.tasklists.return_value.list.return_value.execute.side_effect = RuntimeError("500")
        with patch("src.adapters.google_tasks.build", return_value=service):
            assert await adapter.list_task_lists("U1") == messages.TASK_LISTS_FAILED


class TestIsAuthenticated:
    def test_delegates_to_auth(self):
        adapter, auth = _adapter()
        auth.is_authenticated.return_value = False
        assert adapter.is_authenticated("U1") is False
        auth.is_authenticated.assert_called_once_with("U1")


class TestUntitledDeletionWithExpiredCredentials:
    """Adapter and dispatcher together: a refresh failure must not read as 'no tasks'."""

    @pytest.mark.asyncio
    async def test_asks_user_to_reconnect(self):
        adapter, auth = _adapter()
        auth.get_credentials.side_effect = GoogleAuthError("refresh failed")
        pending = InMemoryPendingStore("pending_deletions")
        service = ActionService(adapter, pending, due_hour=9, timezone="America/Sao_Paulo")

        response = await service.dispatch("U1", TaskDeleteRequest(task_title=None))

        assert response.kind == ResponseKind.ERROR
        assert response.message == messages.AUTH_EXPIRED
        assert "U1" not in pending

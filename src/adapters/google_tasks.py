"""Google Tasks adapter — implements TaskProviderPort for the Google Tasks API.

All Google-specific logic lives here. Core modules never import this directly;
they depend on the TaskProviderPort protocol.

Every task the bot creates goes into one dedicated task list (TASK_LIST_NAME).
The list is created on first use; listing and deleting treat a missing list
as "no tasks". Public methods never raise: failures come back as text the
user can read.
"""

from __future__ import annotations

import logging

from googleapiclient.discovery import build

from src.bot import messages
from src.integrations.google_auth import GoogleAuth, GoogleAuthError
from src.ports.task_port import NewTask, TaskProviderError

logger = logging.getLogger(__name__)

_MAX_RESULTS = 100
_UNTITLED = "Untitled Task"


def _format_due(task: NewTask) -> str | None:
    """RFC 3339 with the date only; Google Tasks drops the time of day."""
    if task.due is None:
        return None
    return f"{task.due.date().isoformat()}T00:00:00.000Z"


def _format_task_list(list_name: str, items: list[dict]) -> str:
    lines = [messages.tasks_header(list_name), ""]
    has_due = False
    for i, item in enumerate(items, start=1):
        lines.append(f"{i}. *{item.get('title') or _UNTITLED}*")
        notes = (item.get("notes") or "").strip()
        for note_line in notes.splitlines():
            lines.append(f"   {note_line}")
        due = item.get("due")
        if due:
            has_due = True
            lines.append(f"   - Due: {due[:10]}")
        lines.append("")

    if has_due:
        lines.append(messages.DUE_DATE_FOOTER)
    return "\n".join(lines).rstrip()


class GoogleTasksAdapter:
    """Google Tasks implementation of TaskProviderPort."""

    def __init__(self, auth: GoogleAuth, list_name: str | None = None) -> None:
        if list_name is None:
            from src.config import settings
            list_name = settings.TASK_LIST_NAME

        self._auth = auth
        self._list_name = list_name

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _service(self, sender_id: str):
        creds = self._auth.get_credentials(sender_id)
        return build("tasks", "v1", credentials=creds, cache_discovery=False)

    def _all_task_lists(self, service) -> list[dict]:
        result = service.tasklists().list(maxResults=_MAX_RESULTS).execute()
        return result.get("items", [])

    def _find_list_id(self, service) -> str | None:
        for task_list in self._all_task_lists(service):
            if task_list.get("title") == self._list_name:
                return task_list["id"]
        return None

    def _ensure_list_id(self, service) -> str:
        list_id = self._find_list_id(service)
        if list_id:
            return list_id

        created = service.tasklists().insert(body={"title": self._list_name}).execute()
        if not created.get("id"):
            raise TaskProviderError(f"Google did not return an id for list '{self._list_name}'")
        logger.info("Created task list '%s' (%s)", self._list_name, created["id"])
        return created["id"]

    def _open_tasks(self, service, list_id: str) -> list[dict]:
        result = (
            service.tasks()
            .list(tasklist=list_id, showCompleted=False, maxResults=_MAX_RESULTS)
            .execute()
        )
        return result.get("items", [])

    # ------------------------------------------------------------------
    # TaskProviderPort
    # ------------------------------------------------------------------

    def is_authenticated(self, sender_id: str) -> bool:
        return self._auth.is_authenticated(sender_id)

    async def create_task(self, sender_id: str, task: NewTask) -> dict | str:
        body: dict = {"title": task.title, "notes": task.notes}
        due = _format_due(task)
        if due:
            body["due"] = due

        try:
            service = self._service(sender_id)
            list_id = self._ensure_list_id(service)
            created = service.tasks().insert(tasklist=list_id, body=body).execute()
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("Failed to create task '%s' for %s: %s", task.title, sender_id, exc)
            return messages.TASK_CREATE_FAILED

        logger.info("Task created for %s: '%s' due %s", sender_id, task.title, due)
        return created

    async def list_tasks_formatted(self, sender_id: str) -> str:
        try:
            service = self._service(sender_id)
            list_id = self._find_list_id(service)
            items = self._open_tasks(service, list_id) if list_id else []
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("Failed to list tasks for %s: %s", sender_id, exc)
            return messages.TASK_LIST_FAILED

        if not items:
            return messages.no_tasks_in_list(self._list_name)
        return _format_task_list(self._list_name, items)

    async def list_task_titles(self, sender_id: str) -> list[str] | str | None:
        try:
            service = self._service(sender_id)
            list_id = self._find_list_id(service)
            items = self._open_tasks(service, list_id) if list_id else []
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("Failed to fetch task titles for %s: %s", sender_id, exc)
            return None
        return [item.get("title") or _UNTITLED for item in items]

    async def delete_task_by_title(self, sender_id: str, title: str) -> str:
        wanted = title.strip().lower()
        try:
            service = self._service(sender_id)
            list_id = self._find_list_id(service)
            if list_id is None:
                return messages.task_not_found(title)

            items = self._open_tasks(service, list_id)
            matches = [
                item for item in items
                if (item.get("title") or "").strip().lower() == wanted
            ]
            if not matches:
                return messages.task_not_found(title)
            if len(matches) > 1:
                logger.info("Refusing ambiguous deletion of '%s' for %s (%d matches)",
                            title, sender_id, len(matches))
                return messages.task_ambiguous(title, len(matches))

            target = matches[0]
            service.tasks().delete(tasklist=list_id, task=target["id"]).execute()
            logger.info("Task '%s' deleted for %s", target.get("title"), sender_id)

            list_removed = False
            if len(items) == 1:
                service.tasklists().delete(tasklist=list_id).execute()
                list_removed = True
                logger.info("Deleted empty task list '%s' for %s", self._list_name, sender_id)
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("Failed to delete task '%s' for %s: %s", title, sender_id, exc)
            return messages.TASK_DELETE_FAILED

        return messages.task_deleted(target.get("title") or title, list_removed)

    async def list_task_lists(self, sender_id: str) -> list[dict] | str:
        try:
            service = self._service(sender_id)
            return self._all_task_lists(service)
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("Failed to fetch task lists for %s: %s", sender_id, exc)
            return messages.TASK_LISTS_FAILED

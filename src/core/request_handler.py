"""
VoiceTasks — Request Handler.

Entry point for every inbound WhatsApp message. Owns the per-sender
conversation state and decides what the message means:

    media message  -> one attachment only -> download -> supported type?
                   -> caption? process now : stage and ask for a prompt
    text message   -> pending media? -> pending deletion? -> new user?
                   -> slash command? -> Gemini (+ task gate) -> ActionService

The first matching rule wins. Every turn produces at least one reply part;
unexpected exceptions become a generic apology.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

from src.bot import messages
from src.core import llm
from src.core.media_store import MediaDownloadError, MediaStore
from src.core.parser import is_task_management_request
from src.data.models import InboundMessage, PendingMedia

if TYPE_CHECKING:
    from src.core.action_service import ActionService
    from src.data.db import UserDB
    from src.integrations.google_auth import GoogleAuth
    from src.ports.pending_port import PendingStore
    from src.ports.task_port import TaskProviderPort

logger = logging.getLogger(__name__)


class RequestHandler:
    """Turns one InboundMessage into the reply parts to send back."""

    def __init__(
        self,
        users: UserDB,
        pending_media: PendingStore[PendingMedia],
        actions: ActionService,
        media: MediaStore,
        tasks: TaskProviderPort,
        auth: GoogleAuth,
        server_base_url: str,
    ) -> None:
        self._users = users
        self._pending_media = pending_media
        self._actions = actions
        self._media = media
        self._tasks = tasks
        self._auth = auth
        self._server_base_url = server_base_url.rstrip("/")

        self._commands = {
            "/start": self._cmd_help,
            "/help": self._cmd_help,
            "/connect_google_tasks": self._cmd_connect,
            "/disconnect_google_tasks": self._cmd_disconnect,
            "/status_google_tasks": self._cmd_status,
            "/list_task_lists": self._cmd_list_task_lists,
            "/get_tasks": self._cmd_get_tasks,
        }

    async def handle(self, msg: InboundMessage) -> list[str]:
        try:
            if msg.has_media:
                return await self._handle_media(msg)
            return await self._handle_text(msg)
        except Exception:
            logger.exception("Unhandled error while handling message from %s", msg.sender_id)
            return [messages.GENERIC_ERROR]

    # ------------------------------------------------------------------
    # Media messages
    # ------------------------------------------------------------------

    async def _handle_media(self, msg: InboundMessage) -> list[str]:
        sender_id = msg.sender_id

        if msg.media_count > 1:
            logger.info("Rejected %d attachments from %s", msg.media_count, sender_id)
            return [messages.ERROR_MULTIPLE_MEDIA]

        if not msg.media_url or not msg.media_content_type:
            logger.warning("Media message from %s without URL or content type", sender_id)
            return [messages.ERROR_RECEIVING_MEDIA]

        mime_type = msg.media_content_type
        try:
            file_path = await self._media.download(msg.media_url, mime_type, sender_id)
        except MediaDownloadError:
            return [messages.ERROR_RECEIVING_MEDIA]

        if llm.classify_mime_type(mime_type) is None:
            logger.info("Unsupported media type %s from %s", mime_type, sender_id)
            self._media.discard(file_path)
            return [messages.UNSUPPORTED_MEDIA_TYPE]

        prompt = msg.stripped_text
        if not prompt:
            previous = self._pending_media.pop(sender_id)
            if previous is not None:
                logger.info("Replacing pending media for %s", sender_id)
                self._media.discard(previous.file_path)
            self._pending_media.set(sender_id, PendingMedia(file_path=file_path, mime_type=mime_type))
            logger.info("Staged %s for %s, waiting for a prompt", mime_type, sender_id)
            return [messages.PROMPT_FOR_MEDIA]

        try:
            return [await self._ask_about_media(sender_id, file_path, mime_type, prompt)]
        except Exception:
            logger.exception("Failed to process media from %s", sender_id)
            return [messages.ERROR_RECEIVING_MEDIA]
        finally:
            self._media.discard(file_path)

    async def _ask_about_media(
        self, sender_id: str, file_path: str, mime_type: str, prompt: str,
    ) -> str:
        reply = await llm.process_media(
            sender_id,
            file_path,
            mime_type,
            prompt,
            use_task_instruction=is_task_management_request(prompt),
        )
        if reply is None:
            return messages.UNSUPPORTED_MEDIA_TYPE
        response = await self._actions.handle_model_reply(sender_id, reply)
        return response.message

    # ------------------------------------------------------------------
    # Text messages
    # ------------------------------------------------------------------

    async def _handle_text(self, msg: InboundMessage) -> list[str]:
        sender_id = msg.sender_id
        text = msg.stripped_text
        if not text:
            return [messages.EMPTY_MESSAGE_BODY]

        pending = self._pending_media.pop(sender_id)
        if pending is not None:
            return [await self._resolve_pending_media(sender_id, pending, text)]

        if self._actions.has_pending_deletion(sender_id):
            response = await self._actions.resolve_pending_deletion(sender_id, text)
            return [response.message]

        if not self._users.has(sender_id):
            self._users.add(sender_id)
            logger.info("Welcomed new user %s", sender_id)
            return [messages.WELCOME_MESSAGE]

        if text.startswith("/"):
            return await self._run_command(sender_id, text)

        reply = await llm.generate_chat_response(
            sender_id, text, use_task_instruction=is_task_management_request(text),
        )
        response = await self._actions.handle_model_reply(sender_id, reply)
        return [response.message]

    async def _resolve_pending_media(
        self, sender_id: str, pending: PendingMedia, prompt: str,
    ) -> str:
        logger.info("Using message from %s as prompt for staged %s", sender_id, pending.mime_type)
        try:
            return await self._ask_about_media(sender_id, pending.file_path, pending.mime_type, prompt)
        except Exception:
            logger.exception("Failed to process pending media for %s", sender_id)
            return messages.ERROR_PROCESSING_PENDING_MEDIA
        finally:
            self._media.discard(pending.file_path)

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    async def _run_command(self, sender_id: str, text: str) -> list[str]:
        command = text.lower()
        handler = self._commands.get(command)
        if handler is None:
            logger.info("Unknown command %r from %s", command, sender_id)
            return [messages.INVALID_COMMAND_MESSAGE]
        logger.info("Running %s for %s", command, sender_id)
        return await handler(sender_id)

    async def _cmd_help(self, sender_id: str) -> list[str]:
        return [messages.WELCOME_MESSAGE]

    async def _cmd_connect(self, sender_id: str) -> list[str]:
        if self._auth.is_authenticated(sender_id):
            return [messages.ALREADY_AUTHENTICATED]
        url = f"{self._server_base_url}/auth/google/initiate?senderId={quote(sender_id, safe='')}"
        return [messages.CONNECT_INSTRUCTIONS, url]

    async def _cmd_disconnect(self, sender_id: str) -> list[str]:
        if self._auth.clear_credentials(sender_id):
            return [messages.DISCONNECT_SUCCESS]
        return [messages.DISCONNECT_FAILURE]

    async def _cmd_status(self, sender_id: str) -> list[str]:
        return [await self._auth.auth_status_message(sender_id)]

    async def _cmd_list_task_lists(self, sender_id: str) -> list[str]:
        if not self._tasks.is_authenticated(sender_id):
            return [messages.TASK_LISTING_AUTH_REQUIRED]
        result = await self._tasks.list_task_lists(sender_id)
        if isinstance(result, str):
            return [result]
        if not result:
            return [messages.NO_TASK_LISTS]
        return [messages.task_lists([item.get("title") or "Untitled list" for item in result])]

    async def _cmd_get_tasks(self, sender_id: str) -> list[str]:
        if not self._tasks.is_authenticated(sender_id):
            return [messages.TASK_LISTING_AUTH_REQUIRED]
        return [await self._tasks.list_tasks_formatted(sender_id)]

"""
VoiceTasks — Gemini collaborator.

Every model call goes through here: plain text turns and media turns
(audio, image, video, document). Each returns a ChatReply carrying the
raw text and whether the model grounded its answer with Google Search.

When the keyword gate fired, the task-structuring system instruction is
used so the model answers task intents with bare JSON; otherwise a short
chat instruction keeps replies WhatsApp-sized.

Raises on API errors — callers should handle exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

TASK_SYSTEM_INSTRUCTION = """\
Your primary role is to be a world-class assistant for identifying and structuring tasks from user messages.

You have four modes of operation:
1. "Task Creation Mode": If the user's message implies they want to create a task, a to-do, a reminder, or any actionable item.
2. "Task Listing Mode": If the user's message implies they want to see, list, or check their existing tasks.
3. "Task Deletion Mode": If the user's message implies they want to delete, remove, or complete a task.
4. "Normal Chat Mode": For any other type of conversation.

**Rules for Task Creation Mode:**
- Respond ONLY with a valid JSON object. No text before or after the JSON.
- The JSON object must have exactly this structure:
  {
    "isTask": true,
    "details": {
      "objective": "A concise, clear title for the task.",
      "description": "A detailed breakdown of the task requirements.",
      "final_result": "The expected outcome when the task is complete.",
      "user_experience": "How this task benefits the user."
    }
  }
- Infer and populate all four fields. If the user is vague, reason out a logical structure from what they provided.

**Rules for Task Listing Mode:**
- Respond ONLY with: {"isTaskListRequest": true}
- Examples: "list my tasks", "what are my reminders?", "liste minhas tarefas", "o que eu tenho pra fazer?".

**Rules for Task Deletion Mode:**
- Respond ONLY with:
  {"isTaskDeletionRequest": true, "taskTitle": "The exact title of the task to delete, or null if not specified"}
- Examples: "delete my task 'buy milk'", "remove the reminder to call John", "exclua a tarefa 'pagar a conta de luz'".
- "delete one of my tasks" or "I need to remove a to-do" must produce "taskTitle": null.

**Rules for Normal Chat Mode:**
- Answer as a friendly, helpful assistant with a simple string. Do NOT use JSON.

**Response Style (Normal Chat Mode):**
- You are a WhatsApp bot: be concise and to the point, use line breaks instead of long paragraphs,
  but never drop important information.

**Language:**
- Respond in the exact language the user uses (Portuguese -> Portuguese, English -> English),
  including the content of the JSON fields.

**Tool Usage:**
- You have a Google Search tool. Use it ONLY for real-time information or facts you would not know otherwise.
"""

CHAT_SYSTEM_INSTRUCTION = """\
You are VoiceTasks, a friendly assistant on WhatsApp.
Keep answers concise, use line breaks instead of long paragraphs, and always reply in the user's language.
Use the Google Search tool only when the question needs real-time or very specific facts.
"""


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass
class ChatReply:
    text: str
    used_search: bool = False


class MediaCategory(Enum):
    AUDIO = "audio"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


_DOCUMENT_MIME_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})


def classify_mime_type(mime_type: str) -> MediaCategory | None:
    """Map a MIME type to the media category the model can handle, or None."""
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime.startswith("audio/"):
        return MediaCategory.AUDIO
    if mime.startswith("image/"):
        return MediaCategory.IMAGE
    if mime.startswith("video/"):
        return MediaCategory.VIDEO
    if mime in _DOCUMENT_MIME_TYPES:
        return MediaCategory.DOCUMENT
    return None


# ---------------------------------------------------------------------------
# Gemini plumbing
# ---------------------------------------------------------------------------

_FILE_POLL_SECONDS = 2.0
_FILE_POLL_ATTEMPTS = 30

# Lazy singleton, configured on first call
_configured = False


def _ensure_configured() -> None:
    global _configured
    if _configured:
        return

    import google.generativeai as genai

    from src.config import settings

    genai.configure(api_key=settings.GEMINI_API_KEY)
    _configured = True
    logger.info("Gemini configured, model: %s", settings.GEMINI_MODEL)


def _build_model(use_task_instruction: bool):
    import google.generativeai as genai

    from src.config import settings

    tools = None
    if settings.GEMINI_ENABLE_SEARCH:
        tools = [genai.protos.Tool(google_search=genai.protos.Tool.GoogleSearch())]

    return genai.GenerativeModel(
        model_name=settings.GEMINI_MODEL,
        system_instruction=TASK_SYSTEM_INSTRUCTION if use_task_instruction else CHAT_SYSTEM_INSTRUCTION,
        tools=tools,
    )


def _used_search(response) -> bool:
    """True when the first candidate carries grounding supports."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return False
    metadata = getattr(candidates[0], "grounding_metadata", None)
    supports = getattr(metadata, "grounding_supports", None) if metadata is not None else None
    return bool(supports)


def _response_text(response) -> str:
    try:
        return (response.text or "").strip()
    except ValueError:
        # .text raises when the candidate has no text parts (e.g. blocked)
        logger.warning("Gemini response has no text parts")
        return ""


async def _generate(sender_id: str, contents, use_task_instruction: bool) -> ChatReply:
    _ensure_configured()
    model = _build_model(use_task_instruction)
    logger.info(
        "Sending %s turn to Gemini for %s (task instruction: %s)",
        "text" if isinstance(contents, str) else "multimodal",
        sender_id,
        use_task_instruction,
    )
    response = await model.generate_content_async(contents)

    text = _response_text(response)
    used_search = _used_search(response)
    if used_search:
        logger.info("Gemini used Google Search for %s", sender_id)
    if not text:
        logger.warning("Gemini returned empty text for %s", sender_id)
    return ChatReply(text=text, used_search=used_search)


async def _upload(file_path: str, mime_type: str):
    """Upload a local file and wait until Gemini finishes processing it."""
    import google.generativeai as genai

    uploaded = await asyncio.to_thread(genai.upload_file, path=file_path, mime_type=mime_type)
    logger.info("Uploaded %s to Gemini as %s", file_path, uploaded.name)

    attempts = 0
    while uploaded.state.name == "PROCESSING":
        attempts += 1
        if attempts > _FILE_POLL_ATTEMPTS:
            raise TimeoutError(f"Gemini is still processing {uploaded.name}")
        await asyncio.sleep(_FILE_POLL_SECONDS)
        uploaded = await asyncio.to_thread(genai.get_file, uploaded.name)

    if uploaded.state.name == "FAILED":
        raise RuntimeError(f"Gemini failed to process {uploaded.name}")
    return uploaded


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def generate_chat_response(
    sender_id: str, text: str, use_task_instruction: bool,
) -> ChatReply:
    """One text turn. No history: every message is evaluated on its own."""
    _ensure_configured()
    return await _generate(sender_id, text, use_task_instruction)


async def _process_media(
    category: MediaCategory,
    sender_id: str,
    file_path: str,
    mime_type: str,
    prompt: str,
    use_task_instruction: bool,
) -> ChatReply:
    _ensure_configured()
    logger.info("Processing %s for %s: %s (%s)", category.value, sender_id, file_path, mime_type)
    uploaded = await _upload(file_path, mime_type)
    return await _generate(sender_id, [uploaded, prompt], use_task_instruction)


async def process_audio(sender_id, file_path, mime_type, prompt, use_task_instruction) -> ChatReply:
    return await _process_media(MediaCategory.AUDIO, sender_id, file_path, mime_type, prompt, use_task_instruction)


async def process_image(sender_id, file_path, mime_type, prompt, use_task_instruction) -> ChatReply:
    return await _process_media(MediaCategory.IMAGE, sender_id, file_path, mime_type, prompt, use_task_instruction)


async def process_video(sender_id, file_path, mime_type, prompt, use_task_instruction) -> ChatReply:
    return await _process_media(MediaCategory.VIDEO, sender_id, file_path, mime_type, prompt, use_task_instruction)


async def process_document(sender_id, file_path, mime_type, prompt, use_task_instruction) -> ChatReply:
    return await _process_media(MediaCategory.DOCUMENT, sender_id, file_path, mime_type, prompt, use_task_instruction)


_MEDIA_ENTRY_POINTS = {
    MediaCategory.AUDIO: process_audio,
    MediaCategory.IMAGE: process_image,
    MediaCategory.VIDEO: process_video,
    MediaCategory.DOCUMENT: process_document,
}


async def process_media(
    sender_id: str,
    file_path: str,
    mime_type: str,
    prompt: str,
    use_task_instruction: bool,
) -> ChatReply | None:
    """Route a staged file to the entry point for its category.

    Returns None for MIME types the model cannot handle.
    """
    category = classify_mime_type(mime_type)
    if category is None:
        logger.warning("Unsupported media type %s from %s", mime_type, sender_id)
        return None
    entry_point = _MEDIA_ENTRY_POINTS[category]
    return await entry_point(sender_id, file_path, mime_type, prompt, use_task_instruction)

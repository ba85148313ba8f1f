"""
VoiceTasks — Intent Classifier.

Two jobs, both pure:

1. A cheap keyword gate that decides whether a message should be sent to
   the model with the task-structuring system instruction.
2. Turning the model's free-text reply into one structured action. The
   model is asked to answer with bare JSON for task intents, but it often
   wraps the object in prose or a code fence, so the first `{` to the last
   `}` is cut out and parsed strictly. Anything that does not parse, or
   parses into an unknown shape, is plain chat.

Also home to the reply matcher used when a user picks a task to delete
from a numbered list.
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Identified actions: exactly one per classified model reply
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Structured task extracted by the model.

    JSON example:
    {
        "isTask": true,
        "details": {
            "objective": "Buy milk",
            "description": "Buy two litres of milk on the way home.",
            "final_result": "Milk in the fridge.",
            "user_experience": "Breakfast is sorted for the week."
        }
    }
    """
    objective: str
    description: str = ""
    expected_result: str = ""
    user_benefit: str = ""

    @field_validator("objective")
    @classmethod
    def objective_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("objective must not be empty")
        return v.strip()

    def notes(self) -> str:
        """Render the task body stored alongside the title."""
        return (
            f"Description: {self.description}\n"
            f"Final Result: {self.expected_result}\n"
            f"User Experience: {self.user_benefit}"
        )


class TaskListRequest(BaseModel):
    """JSON example: {"isTaskListRequest": true}"""


class TaskDeleteRequest(BaseModel):
    """JSON example: {"isTaskDeletionRequest": true, "taskTitle": "Buy milk"}

    `task_title` is None when the user wants to delete something but did
    not say what.
    """
    task_title: str | None = None


class PlainChat(BaseModel):
    """Anything that is not a task action; shown to the user as-is."""
    text: str
    used_external_tool: bool = False


IdentifiedTask = TaskCreate | TaskListRequest | TaskDeleteRequest | PlainChat


# ---------------------------------------------------------------------------
# Task-relevance gate
# ---------------------------------------------------------------------------

_TASK_KEYWORDS: tuple[str, ...] = (
    # Creation
    "task", "reminder", "remind me", "create task", "create reminder",
    "create a task", "create a reminder",
    "tarefa", "lembrete", "criar tarefa", "criar lembrete",
    # Listing
    "list", "show", "what are my", "see my",
    "listar", "mostrar", "quais são", "ver minhas",
    # Deletion
    "delete", "remove", "complete",
    "deletar", "remover", "excluir", "completar",
)


def is_task_management_request(text: str) -> bool:
    """Return True if the message mentions creating, listing or deleting tasks.

    Substring match on the lowercased text; a pre-filter, not a classifier.
    """
    lowered = text.lower()
    return any(keyword in lowered for keyword in _TASK_KEYWORDS)


# ---------------------------------------------------------------------------
# Model reply parsing
# ---------------------------------------------------------------------------

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _extract_json_object(raw_text: str) -> dict | None:
    """Cut out the greedy `{...}` span and parse it, or return None."""
    match = _JSON_OBJECT_RE.search(raw_text)
    if match is None:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.debug("Model reply has braces but is not JSON: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    return data


def _to_task_create(data: dict) -> TaskCreate | None:
    details = data.get("details")
    if not isinstance(details, dict):
        logger.warning("isTask reply without a details object: %s", data)
        return None
    try:
        return TaskCreate(
            objective=details["objective"],
            description=details.get("description") or "",
            expected_result=details.get("final_result") or "",
            user_benefit=details.get("user_experience") or "",
        )
    except (KeyError, ValidationError) as exc:
        logger.warning("isTask reply with unusable details (%s): %s", exc, details)
        return None


def extract_action(raw_text: str, used_external_tool: bool = False) -> IdentifiedTask:
    """Classify a model reply into exactly one IdentifiedTask.

    Discriminators are checked in a fixed order: isTask, isTaskListRequest,
    isTaskDeletionRequest. Never raises.
    """
    fallback = PlainChat(text=raw_text, used_external_tool=used_external_tool)

    data = _extract_json_object(raw_text)
    if data is None:
        return fallback

    if data.get("isTask") is True:
        parsed = _to_task_create(data)
        if parsed is not None:
            logger.info("Classified model reply as task creation: %s", parsed.objective)
            return parsed
        return fallback

    if data.get("isTaskListRequest") is True:
        logger.info("Classified model reply as task listing")
        return TaskListRequest()

    if data.get("isTaskDeletionRequest") is True:
        title = data.get("taskTitle")
        if not isinstance(title, str) or not title.strip():
            title = None
        logger.info("Classified model reply as task deletion (title=%r)", title)
        return TaskDeleteRequest(task_title=title.strip() if title else None)

    logger.warning("Model returned valid JSON with no known intent; treating as chat")
    return fallback


# ---------------------------------------------------------------------------
# Deletion reply matching
# ---------------------------------------------------------------------------

_DIGITS_RE = re.compile(r"\d+")


def find_task_from_reply(reply: str, task_titles: list[str]) -> str | None:
    """Match a user's reply against the numbered list they were shown.

    1. Exact case-insensitive title match.
    2. First run of digits as a 1-based position.
    Returns the matched title or None.
    """
    normalized = reply.strip().lower()

    for title in task_titles:
        if title.strip().lower() == normalized:
            return title

    digits = _DIGITS_RE.search(normalized)
    if digits:
        position = int(digits.group(0))
        if 1 <= position <= len(task_titles):
            return task_titles[position - 1]

    return None

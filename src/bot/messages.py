"""
VoiceTasks — User-facing text.

Every fixed string the bot sends lives here so wording can change without
touching the conversation logic. WhatsApp renders *bold* and `monospace`.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Welcome & help
# ---------------------------------------------------------------------------

WELCOME_MESSAGE = (
    "👋 Hello! I'm *VoiceTasks*, your personal assistant for Google Tasks! 📝\n\n"
    "With me, you can turn your ideas into tasks, whether by text, audio, or even "
    "images, directly here on WhatsApp. Just describe what you need, and I'll handle the rest.\n\n"
    "*Here are the main commands:*\n\n"
    "🤖 *General Conversation:*\n"
    "- Any message that doesn't start with `/` begins a conversation with the AI. "
    "Just chat naturally!\n\n"
    "🔗 *Connecting to Google Tasks:*\n"
    "- `/connect_google_tasks`: Connect your Google Tasks account.\n"
    "- `/disconnect_google_tasks`: Disconnect your account.\n"
    "- `/status_google_tasks`: Check your connection status.\n"
    "- `/get_tasks`: Show your tasks.\n"
    "- `/list_task_lists`: Show all your Google task lists.\n"
    "- `/help` or `/start`: Show this welcome message again.\n\n"
    "💡 *How can I help you today?*\n"
    "Send an idea or an audio message, and let's get it done!"
)

INVALID_COMMAND_MESSAGE = (
    "Invalid command. Please use one of the available commands:\n\n"
    "• */connect_google_tasks* - Connect your Google Tasks account.\n"
    "• */disconnect_google_tasks* - Disconnect your Google Tasks account.\n"
    "• */status_google_tasks* - Check the status of your connection.\n"
    "• */get_tasks* - Show your tasks.\n"
    "• */list_task_lists* - Show all your Google task lists.\n"
    "• */help* or */start* - Show the welcome message again.\n\n"
    "Any other message (not starting with /) will be treated as a conversation with the AI."
)

# ---------------------------------------------------------------------------
# Google authentication
# ---------------------------------------------------------------------------

ALREADY_AUTHENTICATED = (
    "You are already connected to Google Tasks. Try `/get_tasks` or just ask me "
    "to create a task.\n\n"
    "If you want to connect a different account, first disconnect the current one "
    "using the command: /disconnect_google_tasks"
)
CONNECT_INSTRUCTIONS = "To connect your Google Tasks account, please open this link in your browser:"
DISCONNECT_SUCCESS = "Your Google Tasks account has been disconnected. Your tokens have been cleared."
DISCONNECT_FAILURE = "No active Google Tasks connection found to disconnect."
AUTH_SUCCESS_PROACTIVE_MESSAGE = (
    "✅ Authentication with Google Tasks was successful! You can now create, list and delete tasks."
)
TASK_CREATION_AUTH_REQUIRED = (
    "I've structured your task, but you need to connect your Google account first. "
    "Please use the command `/connect_google_tasks` and then send your task request again."
)
TASK_LISTING_AUTH_REQUIRED = (
    "To see your tasks, you need to connect your Google account first. "
    "Please use the command `/connect_google_tasks`."
)
TASK_DELETION_AUTH_REQUIRED = (
    "To delete a task, you need to connect your Google account first. "
    "Please use the command `/connect_google_tasks`."
)
AUTH_EXPIRED = "Your Google connection has expired. Please reconnect with `/connect_google_tasks`."
NOT_CONNECTED_STATUS = "You are not connected to Google. Please use the `/connect_google_tasks` command."
CONNECTED_LOOKUP_FAILED = (
    "You are connected to Google Tasks, but I couldn't fetch your account details right now."
)


def connected_status(name: str, email: str) -> str:
    return f"✅ You are connected to Google Tasks as *{name}* ({email})."

# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

ERROR_MULTIPLE_MEDIA = "Please send only one media file at a time."
ERROR_RECEIVING_MEDIA = "There was an issue receiving your media file. Please try again."
UNSUPPORTED_MEDIA_TYPE = (
    "The media file type you sent is not currently supported. Please try an image, audio, "
    "video, or a common document format (PDF, DOCX, PPTX, XLSX)."
)
PROMPT_FOR_MEDIA = "I received your file. What would you like me to do with it?"
ERROR_PROCESSING_PENDING_MEDIA = "Sorry, I encountered an error with your file. Please try sending it again."

# ---------------------------------------------------------------------------
# General & fallback
# ---------------------------------------------------------------------------

EMPTY_MESSAGE_BODY = (
    "Thanks for your message! If you meant to send text, please try again, "
    "or send an audio message."
)
MODEL_EMPTY_RESPONSE = "I'm having a little trouble thinking right now. Please try again in a moment!"
GENERIC_ERROR = "Sorry, something went wrong while handling your message. Please try again."

CHAT_PREFIX = "*Gemini* ✨:"
CHAT_PREFIX_WITH_SEARCH = "*Gemini* ✨ (with Google Search):"

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

DELETION_PROMPT = "Which task would you like to delete? Reply with its number or its exact title:"
DELETION_NO_TASKS = "You have no tasks to delete."
DELETION_NO_MATCH = (
    "I couldn't find a task matching your reply. Please try starting the deletion process again."
)
NO_TASK_LISTS = "You have no Google Task lists."
TASK_CREATE_FAILED = "Sorry, I couldn't create the task in Google Tasks. Please try again."
TASK_LIST_FAILED = "Sorry, I couldn't fetch your tasks from Google Tasks. Please try again."
TASK_DELETE_FAILED = "Sorry, I couldn't delete the task in Google Tasks. Please try again."
TASK_LISTS_FAILED = "Sorry, I couldn't fetch your Google Task lists. Please try again."
DUE_DATE_FOOTER = "_Due dates are shown as YYYY-MM-DD._"


def no_tasks_in_list(list_name: str) -> str:
    return f"You have no tasks in your '{list_name}' list."


def tasks_header(list_name: str) -> str:
    return f"*Your tasks in '{list_name}':*"


def task_not_found(title: str) -> str:
    return f"I couldn't find a task named '{title}'."


def task_ambiguous(title: str, count: int) -> str:
    return (
        f"I found {count} tasks named '{title}'. Please rename one of them in Google Tasks "
        "or tell me which one to delete more precisely."
    )


def task_deleted(title: str, list_removed: bool = False) -> str:
    text = f"🗑️ Task '{title}' was deleted."
    if list_removed:
        text += "\nThat was your last task, so the now-empty list was removed too."
    return text


def task_created(title: str, due: str) -> str:
    return (
        f"✅ Task created successfully!\n\n"
        f"*{title}* has been added to your Google Tasks and is due {due}."
    )


def deletion_prompt(titles: list[str]) -> str:
    numbered = "\n".join(f"{i}. {title}" for i, title in enumerate(titles, start=1))
    return f"{DELETION_PROMPT}\n\n{numbered}"


def task_lists(titles: list[str]) -> str:
    bullets = "\n".join(f"• {title}" for title in titles)
    return f"*Your Google Task Lists:*\n{bullets}"

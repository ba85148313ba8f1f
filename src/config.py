"""
VoiceTasks — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_REQUIRED_KEYS = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "GEMINI_API_KEY",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Twilio (WhatsApp transport)
    TWILIO_ACCOUNT_SID: str
    TWILIO_AUTH_TOKEN: str
    TWILIO_FROM_NUMBER: str
    TWILIO_VALIDATE_SIGNATURE: bool = False

    # Gemini
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_ENABLE_SEARCH: bool = True

    # Google OAuth (Google Tasks)
    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str
    GOOGLE_REDIRECT_URI: str

    # Google Tasks
    TASK_LIST_NAME: str = "VoiceTasks"
    TASK_DUE_HOUR: int = 9
    TIMEZONE: str = "America/Sao_Paulo"

    # Storage
    DATABASE_PATH: str = "data/voicetasks.db"
    MEDIA_DIR: str = "/tmp/media"

    # HTTP server
    PORT: int = 3000

    @field_validator("TWILIO_VALIDATE_SIGNATURE", "GEMINI_ENABLE_SEARCH", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("TASK_DUE_HOUR", "PORT", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("TASK_DUE_HOUR")
    @classmethod
    def check_due_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"TASK_DUE_HOUR must be between 0 and 23, got {v}")
        return v

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"TIMEZONE is not a known IANA zone: {v!r}") from exc
        return v

    @field_validator("GOOGLE_REDIRECT_URI")
    @classmethod
    def check_redirect_uri(cls, v: str) -> str:
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"GOOGLE_REDIRECT_URI is not a valid URL: {v!r}")
        return v

    @property
    def SERVER_BASE_URL(self) -> str:
        """Public origin of this server, derived from the OAuth redirect URI."""
        parsed = urlparse(self.GOOGLE_REDIRECT_URI)
        return f"{parsed.scheme}://{parsed.netloc}"


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    missing = [
        key for key in _REQUIRED_KEYS
        if not os.getenv(key, "") or os.getenv(key, "").startswith("your-")
    ]
    if missing:
        print(
            f"ERROR: missing required environment variables: {', '.join(missing)}",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        return Settings(
            TWILIO_ACCOUNT_SID=os.environ["TWILIO_ACCOUNT_SID"],
            TWILIO_AUTH_TOKEN=os.environ["TWILIO_AUTH_TOKEN"],
            TWILIO_FROM_NUMBER=os.environ["TWILIO_FROM_NUMBER"],
            TWILIO_VALIDATE_SIGNATURE=os.getenv("TWILIO_VALIDATE_SIGNATURE", "false"),
            GEMINI_API_KEY=os.environ["GEMINI_API_KEY"],
            GEMINI_MODEL=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            GEMINI_ENABLE_SEARCH=os.getenv("GEMINI_ENABLE_SEARCH", "true"),
            GOOGLE_CLIENT_ID=os.environ["GOOGLE_CLIENT_ID"],
            GOOGLE_CLIENT_SECRET=os.environ["GOOGLE_CLIENT_SECRET"],
            GOOGLE_REDIRECT_URI=os.environ["GOOGLE_REDIRECT_URI"],
            TASK_LIST_NAME=os.getenv("TASK_LIST_NAME", "VoiceTasks"),
            TASK_DUE_HOUR=os.getenv("TASK_DUE_HOUR", "9"),
            TIMEZONE=os.getenv("TIMEZONE", "America/Sao_Paulo"),
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/voicetasks.db"),
            MEDIA_DIR=os.getenv("MEDIA_DIR", "/tmp/media"),
            PORT=os.getenv("PORT", "3000"),
        )
    except ValueError as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()

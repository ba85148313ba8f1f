"""
VoiceTasks — Data Models.

Records that cross the boundary between the WhatsApp transport, the
conversation engine and the SQLite stores.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, field_validator


class InboundMessage(BaseModel):
    """One inbound WhatsApp message, validated once at the webhook boundary.

    Twilio posts form-encoded fields where everything is optional except
    the sender; `media_count` comes from NumMedia.
    """

    sender_id: str
    text: str | None = None
    media_url: str | None = None
    media_content_type: str | None = None
    media_count: int = 0

    @field_validator("sender_id")
    @classmethod
    def sender_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("sender_id must not be empty")
        return v.strip()

    @field_validator("media_count", mode="before")
    @classmethod
    def parse_media_count(cls, v: str | int | None) -> int:
        if v in (None, ""):
            return 0
        return int(v)

    @property
    def has_media(self) -> bool:
        return self.media_count > 0

    @property
    def stripped_text(self) -> str:
        return (self.text or "").strip()

    @classmethod
    def from_twilio_form(cls, form: dict) -> InboundMessage:
        """Build from a Twilio webhook form (already a flat dict)."""
        return cls(
            sender_id=form.get("From", ""),
            text=form.get("Body"),
            media_url=form.get("MediaUrl0"),
            media_content_type=form.get("MediaContentType0"),
            media_count=form.get("NumMedia", 0),
        )


@dataclass
class PendingMedia:
    """A staged attachment waiting for the sender's next text message."""

    file_path: str
    mime_type: str


@dataclass
class StoredToken:
    """Google OAuth credentials for one sender (authorized-user JSON)."""

    sender_id: str
    token_json: str
    updated_at: str = ""

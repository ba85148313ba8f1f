"""
VoiceTasks — Media Store.

Ephemeral on-disk staging for one WhatsApp attachment. A staged file lives
for one request, or until the sender's next text message when it arrives
without a caption. Whoever stages a file is responsible for `discard`.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 60


class MediaDownloadError(Exception):
    """Raised when an attachment cannot be fetched or written to disk."""


class MediaStore:
    """Downloads Twilio media URLs into a local staging directory."""

    def __init__(self, media_dir: str, auth: tuple[str, str] | None = None) -> None:
        self._media_dir = Path(media_dir)
        self._auth = auth

    def _target_path(self, sender_id: str, content_type: str) -> Path:
        extension = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""
        safe_sender = "".join(ch for ch in sender_id if ch.isalnum()) or "sender"
        return self._media_dir / f"{safe_sender}-{uuid.uuid4().hex}{extension}"

    async def download(self, url: str, content_type: str, sender_id: str) -> str:
        """Fetch `url` and return the local path of the staged file."""
        self._media_dir.mkdir(parents=True, exist_ok=True)
        target = self._target_path(sender_id, content_type)

        try:
            async with httpx.AsyncClient(
                timeout=_TIMEOUT_SECONDS, follow_redirects=True, auth=self._auth,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
            target.write_bytes(resp.content)
        except (httpx.HTTPError, OSError) as exc:
            logger.error("Media download failed for %s: %s", sender_id, exc)
            self.discard(str(target))
            raise MediaDownloadError(f"Could not download media from {url}") from exc

        logger.info("Staged %s (%d bytes) for %s", target, len(resp.content), sender_id)
        return str(target)

    def discard(self, file_path: str) -> None:
        """Delete a staged file. Failures are logged, never raised."""
        try:
            Path(file_path).unlink(missing_ok=True)
            logger.debug("Deleted staged file %s", file_path)
        except OSError as exc:
            logger.error("Could not delete staged file %s: %s", file_path, exc)

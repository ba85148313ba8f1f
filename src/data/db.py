"""
VoiceTasks — SQLite stores.

Durable state that must survive restarts: which senders have already been
welcomed, and their Google OAuth credentials.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from src.data.models import StoredToken

logger = logging.getLogger(__name__)


class _SQLiteStore:
    """Shared connection handling for the SQLite-backed stores."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class UserDB(_SQLiteStore):
    """Registry of senders that have interacted before."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS returning_users (
                    sender_id  TEXT PRIMARY KEY,
                    joined_at  TEXT NOT NULL
                )
            """)
        logger.debug("Returning users table initialized at %s", self._db_path)

    def has(self, sender_id: str) -> bool:
        """Check whether a sender has been seen before."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM returning_users WHERE sender_id = ?",
                (sender_id,),
            ).fetchone()
        return row is not None

    def add(self, sender_id: str) -> None:
        """Mark a sender as returning. Calling it twice is a no-op."""
        now = datetime.now().isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO returning_users (sender_id, joined_at) VALUES (?, ?)",
                (sender_id, now),
            )
        if cursor.rowcount > 0:
            logger.info("Registered new user %s", sender_id)

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM returning_users").fetchone()
        return row[0]


class TokenDB(_SQLiteStore):
    """Per-sender Google OAuth credentials."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS google_tokens (
                    sender_id   TEXT PRIMARY KEY,
                    token_json  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                )
            """)
        logger.debug("Google tokens table initialized at %s", self._db_path)

    def save(self, sender_id: str, token_json: str) -> None:
        """Insert or replace the credentials for a sender."""
        now = datetime.now().isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO google_tokens (sender_id, token_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(sender_id) DO UPDATE SET
                    token_json = excluded.token_json,
                    updated_at = excluded.updated_at
                """,
                (sender_id, token_json, now),
            )
        logger.info("Google token saved for %s", sender_id)

    def load(self, sender_id: str) -> StoredToken | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM google_tokens WHERE sender_id = ?",
                (sender_id,),
            ).fetchone()
        if row is None:
            return None
        return StoredToken(
            sender_id=row["sender_id"],
            token_json=row["token_json"],
            updated_at=row["updated_at"],
        )

    def delete(self, sender_id: str) -> bool:
        """Remove a sender's credentials. Returns True if anything was deleted."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM google_tokens WHERE sender_id = ?", (sender_id,),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Google token deleted for %s", sender_id)
        return deleted

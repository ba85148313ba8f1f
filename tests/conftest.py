"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp-file SQLite stores.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACfake-sid-for-tests")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "fake-twilio-token")
os.environ.setdefault("TWILIO_FROM_NUMBER", "whatsapp:+14155238886")
os.environ.setdefault("GEMINI_API_KEY", "fake-gemini-key-for-tests")
os.environ.setdefault("GEMINI_ENABLE_SEARCH", "true")
os.environ.setdefault("GOOGLE_CLIENT_ID", "fake-client-id.apps.googleusercontent.com")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "fake-client-secret")
os.environ.setdefault("GOOGLE_REDIRECT_URI", "https://voicetasks.example.com/auth/google/callback")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("MEDIA_DIR", "/tmp/voicetasks-test-media")
os.environ.setdefault("TWILIO_VALIDATE_SIGNATURE", "false")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_voicetasks.db")


@pytest.fixture
def user_db(tmp_db_path):
    """Return a UserDB instance backed by a temp file."""
    from src.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def token_db(tmp_db_path):
    """Return a TokenDB instance backed by a temp file."""
    from src.data.db import TokenDB
    return TokenDB(db_path=tmp_db_path)


@pytest.fixture
def pending_deletions():
    from src.data.pending import InMemoryPendingStore
    return InMemoryPendingStore("pending_deletions")


@pytest.fixture
def pending_media():
    from src.data.pending import InMemoryPendingStore
    return InMemoryPendingStore("pending_media")

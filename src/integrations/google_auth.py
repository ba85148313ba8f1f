"""
VoiceTasks — Google OAuth lifecycle.

Per-sender web-server OAuth for Google Tasks. The consent URL carries the
sender id in `state`, so the callback knows whose credentials it received.
Credentials are stored as authorized-user JSON in TokenDB.

A refresh failure is terminal: the stored credential is deleted and the
user has to reconnect. Nothing here retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from src.bot import messages
from src.data.db import TokenDB

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/tasks",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Google adds "openid" to the granted scopes when userinfo scopes are requested
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")


class GoogleAuthError(Exception):
    """Stored credentials are missing, revoked or could not be refreshed."""


class GoogleAuth:
    """Builds consent URLs, exchanges codes and hands out fresh credentials."""

    def __init__(
        self,
        token_db: TokenDB,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
    ) -> None:
        if client_id is None or client_secret is None or redirect_uri is None:
            from src.config import settings
            client_id = client_id or settings.GOOGLE_CLIENT_ID
            client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
            redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI

        self._token_db = token_db
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def _flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self._redirect_uri],
            }
        }
        # No PKCE: the callback runs on a fresh Flow with no shared verifier
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self._redirect_uri,
            autogenerate_code_verifier=False,
        )

    # ------------------------------------------------------------------
    # Consent
    # ------------------------------------------------------------------

    def build_auth_url(self, sender_id: str) -> str:
        """Google consent URL; the sender id round-trips in `state`."""
        auth_url, _ = self._flow().authorization_url(
            access_type="offline",
            prompt="consent",
            state=sender_id,
        )
        return auth_url

    def exchange_code_for_token(self, code: str, sender_id: str) -> None:
        """Exchange an authorization code and persist the credentials."""
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except Exception as exc:
            logger.error("Token exchange failed for %s: %s", sender_id, exc)
            raise GoogleAuthError("Could not exchange the authorization code") from exc

        self._token_db.save(sender_id, flow.credentials.to_json())
        logger.info("Google account connected for %s", sender_id)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def _load_info(self, sender_id: str) -> dict | None:
        stored = self._token_db.load(sender_id)
        if stored is None:
            return None
        try:
            return json.loads(stored.token_json)
        except json.JSONDecodeError:
            logger.error("Stored Google token for %s is not valid JSON", sender_id)
            return None

    def is_authenticated(self, sender_id: str) -> bool:
        """A stored credential exists and carries a refresh token."""
        info = self._load_info(sender_id)
        return bool(info and info.get("refresh_token"))

    def get_credentials(self, sender_id: str) -> Credentials:
        """Return valid credentials, refreshing once if expired.

        Raises GoogleAuthError when nothing usable is stored or the refresh
        fails; in the latter case the stored credential is deleted.
        """
        info = self._load_info(sender_id)
        if not info:
            raise GoogleAuthError(messages.AUTH_EXPIRED)

        creds = Credentials.from_authorized_user_info(info, SCOPES)
        if creds.valid:
            return creds

        if not creds.refresh_token:
            self.clear_credentials(sender_id)
            raise GoogleAuthError(messages.AUTH_EXPIRED)

        try:
            creds.refresh(Request())
        except RefreshError as exc:
            logger.warning("Token refresh failed for %s (%s), clearing credentials", sender_id, exc)
            self.clear_credentials(sender_id)
            raise GoogleAuthError(messages.AUTH_EXPIRED) from exc

        self._token_db.save(sender_id, creds.to_json())
        logger.info("Google token refreshed for %s", sender_id)
        return creds

    def clear_credentials(self, sender_id: str) -> bool:
        return self._token_db.delete(sender_id)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _fetch_user_info(self, sender_id: str) -> dict:
        creds = self.get_credentials(sender_id)
        service = build("oauth2", "v2", credentials=creds)
        return service.userinfo().get().execute()

    async def auth_status_message(self, sender_id: str) -> str:
        if not self.is_authenticated(sender_id):
            return messages.NOT_CONNECTED_STATUS

        try:
            info = await asyncio.to_thread(self._fetch_user_info, sender_id)
        except GoogleAuthError:
            return messages.AUTH_EXPIRED
        except Exception as exc:
            logger.error("User info lookup failed for %s: %s", sender_id, exc)
            return messages.CONNECTED_LOOKUP_FAILED

        name = info.get("name") or "Unknown"
        email = info.get("email") or "unknown email"
        return messages.connected_status(name, email)

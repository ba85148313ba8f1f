"""
VoiceTasks — WhatsApp webhook.

WhatsApp (via Twilio) is the only user interface. Every inbound message
arrives as a form-encoded POST, runs through the RequestHandler, and is
answered inline with TwiML. The Google OAuth consent round-trip also
lands here, followed by a proactive WhatsApp confirmation.

Flask views are sync; the async core is driven with asyncio.run().
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import TYPE_CHECKING

from flask import Flask, Response, jsonify, redirect, request
from pydantic import ValidationError
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from src.bot import messages
from src.config import settings
from src.data.models import InboundMessage
from src.integrations.google_auth import GoogleAuthError

if TYPE_CHECKING:
    from src.core.request_handler import RequestHandler
    from src.integrations.google_auth import GoogleAuth
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_AUTH_SUCCESS_PAGE = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>VoiceTasks - Connected</title></head>
<body style="font-family: sans-serif; text-align: center; padding-top: 3em;">
  <h1>&#9989; Authentication successful!</h1>
  <p>Your Google Tasks account is now connected to VoiceTasks.</p>
  <p>You can close this window and return to WhatsApp.</p>
</body>
</html>
"""

_AUTH_FAILURE_PAGE = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>VoiceTasks - Authentication failed</title></head>
<body style="font-family: sans-serif; text-align: center; padding-top: 3em;">
  <h1>&#10060; Authentication failed</h1>
  <p>{reason}</p>
  <p>Please return to WhatsApp and try <code>/connect_google_tasks</code> again.</p>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def render_twiml(parts: list[str]) -> Response:
    """One <Message> per reply part."""
    twiml = MessagingResponse()
    for part in parts:
        twiml.message(part)
    return Response(str(twiml), status=200, mimetype="text/xml")


def _failure_page(reason: str, status: int) -> Response:
    body = _AUTH_FAILURE_PAGE.format(reason=html.escape(reason))
    return Response(body, status=status, mimetype="text/html")


def _signature_is_valid(validator: RequestValidator) -> bool:
    signature = request.headers.get("X-Twilio-Signature", "")
    return validator.validate(request.url, request.form.to_dict(), signature)


def build_request_handler(auth: GoogleAuth) -> RequestHandler:
    """Wire the production object graph around an existing GoogleAuth."""
    from src.adapters.google_tasks import GoogleTasksAdapter
    from src.core.action_service import ActionService
    from src.core.media_store import MediaStore
    from src.core.request_handler import RequestHandler
    from src.data.db import UserDB
    from src.data.pending import InMemoryPendingStore

    tasks = GoogleTasksAdapter(auth, settings.TASK_LIST_NAME)
    actions = ActionService(
        tasks,
        InMemoryPendingStore("pending_deletions"),
        due_hour=settings.TASK_DUE_HOUR,
        timezone=settings.TIMEZONE,
    )
    media = MediaStore(
        settings.MEDIA_DIR,
        auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
    )
    return RequestHandler(
        users=UserDB(),
        pending_media=InMemoryPendingStore("pending_media"),
        actions=actions,
        media=media,
        tasks=tasks,
        auth=auth,
        server_base_url=settings.SERVER_BASE_URL,
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def build_app(
    handler: RequestHandler | None = None,
    auth: GoogleAuth | None = None,
    notifier: NotificationPort | None = None,
    validate_signature: bool | None = None,
) -> Flask:
    """Build the Flask app with all routes.

    Args:
        handler: Conversation engine. Defaults to the production wiring.
        auth: Google OAuth lifecycle. Defaults to GoogleAuth over TokenDB.
        notifier: Proactive sender. Defaults to TwilioNotifier.
        validate_signature: Overrides TWILIO_VALIDATE_SIGNATURE.
    """
    if auth is None:
        from src.data.db import TokenDB
        from src.integrations.google_auth import GoogleAuth
        auth = GoogleAuth(TokenDB())

    if handler is None:
        handler = build_request_handler(auth)

    if notifier is None:
        from twilio.rest import Client

        from src.adapters.twilio_notifier import TwilioNotifier
        notifier = TwilioNotifier(
            Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            settings.TWILIO_FROM_NUMBER,
        )

    if validate_signature is None:
        validate_signature = settings.TWILIO_VALIDATE_SIGNATURE
    validator = RequestValidator(settings.TWILIO_AUTH_TOKEN) if validate_signature else None

    app = Flask(__name__)

    @app.get("/")
    def health():
        return jsonify({"status": "ok"})

    @app.post("/webhook/twilio")
    def twilio_webhook():
        if validator is not None and not _signature_is_valid(validator):
            logger.warning("Rejected webhook with invalid Twilio signature")
            return Response("Invalid signature.", status=403)

        form = request.form.to_dict()
        if not form.get("From", "").strip():
            logger.warning("Webhook without a sender id")
            return Response("Sender ID missing.", status=400)

        try:
            msg = InboundMessage.from_twilio_form(form)
        except ValidationError as exc:
            logger.warning("Malformed webhook payload: %s", exc)
            return Response("Malformed request.", status=400)

        logger.info("Message from %s (media: %d)", msg.sender_id, msg.media_count)
        try:
            parts = asyncio.run(handler.handle(msg))
        except Exception:
            logger.exception("Webhook failed for %s", msg.sender_id)
            parts = [messages.GENERIC_ERROR]
        return render_twiml(parts)

    @app.get("/auth/google/initiate")
    def auth_initiate():
        sender_id = request.args.get("senderId", "").strip()
        if not sender_id:
            return Response("Sender ID is required.", status=400)

        try:
            auth_url = auth.build_auth_url(sender_id)
        except Exception:
            logger.exception("Could not build auth URL for %s", sender_id)
            return Response("Could not start Google authentication.", status=500)

        logger.info("Redirecting %s to Google consent", sender_id)
        return redirect(auth_url, code=302)

    @app.get("/auth/google/callback")
    def auth_callback():
        error = request.args.get("error")
        if error:
            logger.warning("Google returned an OAuth error: %s", error)
            return _failure_page(f"Google reported: {error}", 400)

        code = request.args.get("code")
        sender_id = request.args.get("state")
        if not code or not sender_id:
            return _failure_page("The authorization code or sender id is missing.", 400)

        try:
            auth.exchange_code_for_token(code, sender_id)
        except GoogleAuthError:
            return _failure_page("Could not complete the connection with Google.", 500)
        except Exception:
            logger.exception("Unexpected error during OAuth callback for %s", sender_id)
            return _failure_page("Could not complete the connection with Google.", 500)

        try:
            asyncio.run(notifier.send_message(sender_id, messages.AUTH_SUCCESS_PROACTIVE_MESSAGE))
        except Exception as exc:
            logger.error("Could not notify %s about the new connection: %s", sender_id, exc)

        return Response(_AUTH_SUCCESS_PAGE, status=200, mimetype="text/html")

    logger.info("WhatsApp webhook app built (signature validation: %s)", validate_signature)
    return app


def main() -> None:
    """Entry point: build the app and start serving."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting VoiceTasks on port %d...", settings.PORT)
    app = build_app()
    app.run(host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()

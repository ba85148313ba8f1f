"""Twilio WhatsApp notification adapter — implements NotificationPort.

Wraps a twilio.rest.Client to satisfy the NotificationPort protocol. Used
for messages that are not a reply to an inbound webhook, e.g. the
confirmation after the Google OAuth callback.
"""

from __future__ import annotations

import asyncio
import logging

from twilio.rest import Client

logger = logging.getLogger(__name__)


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class TwilioNotifier:
    """Twilio implementation of NotificationPort."""

    def __init__(self, client: Client, from_number: str) -> None:
        self._client = client
        self._from = _whatsapp_address(from_number)

    async def send_message(self, sender_id: str, text: str) -> None:
        message = await asyncio.to_thread(
            self._client.messages.create,
            body=text,
            from_=self._from,
            to=_whatsapp_address(sender_id),
        )
        logger.info("Proactive message %s sent to %s", message.sid, sender_id)

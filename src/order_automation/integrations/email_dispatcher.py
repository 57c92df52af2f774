"""Outbound email dispatchers.

The automation engine only sees ``NotificationDispatcher.send``; provider
selection happens once at startup in ``build_dispatcher``.
"""

import asyncio
import html
import random
import string
import time
from abc import ABC, abstractmethod
from typing import Optional

from postmarker.core import PostmarkClient

from order_automation.core.exceptions import DispatchError
from order_automation.core.logger import setup_logger

logger = setup_logger(__name__)

MESSAGE_STREAM = "outbound"


class NotificationDispatcher(ABC):
    """Sends one message and returns the provider-assigned id."""

    provider = "unknown"

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> str:
        """Send a plain-text email.

        Raises:
            DispatchError: If the provider rejected or failed the send
        """
        pass


class PostmarkDispatcher(NotificationDispatcher):
    """Send emails through Postmark."""

    provider = "postmark"

    def __init__(self, server_token: str, sender: str, sender_name: Optional[str] = None):
        """
        Initialize Postmark dispatcher.

        Args:
            server_token: Postmark server API token
            sender: Verified sender address
            sender_name: Optional display name for the From header
        """
        self.client = PostmarkClient(server_token=server_token)
        self.sender = f'"{sender_name}" <{sender}>' if sender_name else sender
        logger.info("Postmark email client initialized")

    def _send_sync(self, to: str, subject: str, body: str) -> str:
        response = self.client.emails.send(
            From=self.sender,
            To=to,
            Subject=subject,
            TextBody=body,
            HtmlBody=html.escape(body).replace("\n", "<br>"),
            MessageStream=MESSAGE_STREAM,
        )
        return response["MessageID"]

    async def send(self, to: str, subject: str, body: str) -> str:
        try:
            # postmarker is blocking; keep the event loop free
            message_id = await asyncio.to_thread(self._send_sync, to, subject, body)
        except Exception as e:
            logger.error(f"Postmark send to {to} failed: {e}")
            raise DispatchError(f"Postmark send failed: {e}") from e

        logger.info(f"Email sent via Postmark to {to} (id={message_id})")
        return message_id


class LoggingDispatcher(NotificationDispatcher):
    """Log emails instead of sending them (no provider configured)."""

    provider = "logging"

    async def send(self, to: str, subject: str, body: str) -> str:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        message_id = f"mock_email_{int(time.time() * 1000)}_{suffix}"
        logger.info(
            f"Mock email sent (no provider configured): to={to}, subject={subject!r}, id={message_id}"
        )
        return message_id


def build_dispatcher(settings) -> NotificationDispatcher:
    """Pick the dispatcher for the configured provider."""
    if settings.postmark_server_token:
        return PostmarkDispatcher(
            server_token=settings.postmark_server_token,
            sender=settings.email_sender,
            sender_name=settings.email_sender_name,
        )

    logger.warning("POSTMARK_SERVER_TOKEN not set - emails will be logged but not sent")
    return LoggingDispatcher()

"""Outbound email notifiers.

Every engine talks to a ``Notifier``: ``send(to_address, subject, body)``
returns a provider message id or raises ``NotifierError``. ``GmailNotifier``
sends through the Gmail API; ``LogNotifier`` is used when no credentials are
configured and only logs what would have been sent.
"""
import logging
from typing import Protocol
from uuid import uuid4

from googleapiclient.errors import HttpError

from app.core.config import settings
from app.mail.client import (
    MailCredentialsError,
    encode_message,
    has_valid_credentials,
    send_raw,
)

logger = logging.getLogger(__name__)


class NotifierError(Exception):
    """Raised when a message could not be handed to the mail provider."""


class Notifier(Protocol):
    def send(self, to_address: str, subject: str, body: str) -> str: ...


class GmailNotifier:
    """Send HTML email through the Gmail API."""

    def __init__(self, sender: str | None = None):
        self.sender = sender or settings.mail_sender

    def send(self, to_address: str, subject: str, body: str) -> str:
        if not to_address:
            raise NotifierError("Missing recipient address")

        raw = encode_message(to_address, self.sender, subject, body)
        try:
            result = send_raw(raw)
        except MailCredentialsError as e:
            raise NotifierError(f"Mail credentials unavailable: {e}") from e
        except HttpError as e:
            raise NotifierError(f"Failed to send to {to_address}: {e}") from e

        logger.info(f"Sent '{subject}' to {to_address} (id={result.get('id')})")
        return result.get("id", "")


class LogNotifier:
    """Development notifier: logs instead of sending."""

    def send(self, to_address: str, subject: str, body: str) -> str:
        if not to_address:
            raise NotifierError("Missing recipient address")
        message_id = f"dev-{uuid4()}"
        logger.info(f"[DEV] would send '{subject}' to {to_address} ({message_id})")
        return message_id


_notifier: Notifier | None = None


def build_notifier() -> Notifier:
    """Pick the Gmail notifier when credentials exist, the logging one otherwise."""
    if has_valid_credentials():
        return GmailNotifier()
    logger.warning("No mail credentials configured, emails will only be logged")
    return LogNotifier()


def get_notifier() -> Notifier:
    """Dependency for getting the shared notifier."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier

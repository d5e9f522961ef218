"""Release pending check-in messages for a user judged absent.

Each message is sent at most once: its status is re-read right before the
send and flipped ``scheduled -> delivered`` with a conditional update right
after it. Messages that cannot be sent stay ``scheduled`` and are retried by
the next release for the same user.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.security import create_media_token
from app.mail.notifier import Notifier
from app.mail.render import render_message_delivery
from app.models import Message, MessageStatus, MessageType
from app.store import messages as message_store

logger = logging.getLogger(__name__)

MEDIA_TYPES = {MessageType.AUDIO, MessageType.VIDEO}


def build_media_url(message_id: UUID, media_path: str, now: datetime | None = None) -> str:
    """Time-limited link to an audio or video recording."""
    token = create_media_token(message_id, media_path, now)
    return f"{settings.app_url.rstrip('/')}/media/{message_id}?token={token}"


def _recipient_address(message: Message) -> str | None:
    for recipient in message.recipients:
        if recipient.email and recipient.email.strip():
            return recipient.email.strip()
    return None


def deliver_message(
    session: Session,
    message: Message,
    notifier: Notifier,
    now: datetime,
    results: dict,
) -> bool:
    """
    Send one scheduled message and mark it delivered.

    Updates ``results`` in place ("processed", "sent", "errors"). Returns True
    only when this call both sent the message and won the status flip.
    """
    message_id = message.id

    current = message_store.get_message_status(session, message_id)
    if current != MessageStatus.SCHEDULED:
        logger.info(f"Skipping message {message_id}: status is {current}")
        return False

    results["processed"] += 1

    address = _recipient_address(message)
    if not address:
        results["errors"].append(f"Message {message_id}: No recipient")
        return False

    media_url = None
    if message.type in MEDIA_TYPES and message.media_path:
        media_url = build_media_url(message_id, message.media_path, now)

    subject, body = render_message_delivery(
        message.type, message.text_content, media_url, settings.media_link_ttl_days
    )

    try:
        notifier.send(address, subject, body)
    except Exception as e:
        logger.error(f"Error sending message {message_id}: {e}")
        results["errors"].append(f"Message {message_id}: {e}")
        return False

    try:
        flipped = message_store.set_message_status(
            session, message_id, MessageStatus.SCHEDULED, MessageStatus.DELIVERED
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Message {message_id} sent but not marked delivered: {e}")
        results["errors"].append(f"Message {message_id}: Failed to update status after sending.")
        return False

    if not flipped:
        logger.warning(f"Message {message_id} was delivered concurrently")
        results["errors"].append(f"Message {message_id}: Status changed during delivery.")
        return False

    results["sent"] += 1
    return True


def release_checkin_messages(
    session: Session,
    user_id: UUID,
    notifier: Notifier,
    now: datetime | None = None,
) -> dict:
    """
    Deliver every scheduled check-in message owned by ``user_id``.

    Failures for a single message are recorded and the loop continues; a
    failure to load the message list propagates.

    Returns:
        dict with "processed", "sent" and "errors".
    """
    now = now or utcnow()
    results = {"processed": 0, "sent": 0, "errors": []}

    messages = message_store.find_checkin_messages(session, user_id)
    if not messages:
        logger.info(f"No check-in messages to release for user {user_id}")
        return results

    for message in messages:
        message_id = message.id
        try:
            deliver_message(session, message, notifier, now, results)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error releasing message {message_id}: {e}")
            results["errors"].append(f"Message {message_id}: {e}")

    logger.info(f"Released check-in messages for user {user_id}: {results}")
    return results

"""Date-mode delivery: send scheduled messages whose delivery time has come."""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.checkin.release import deliver_message
from app.core.clock import utcnow
from app.mail.notifier import Notifier
from app.store import messages as message_store

logger = logging.getLogger(__name__)


def deliver_due_messages(
    session: Session,
    notifier: Notifier,
    now: datetime | None = None,
) -> dict:
    """
    Deliver every scheduled date-mode message with ``deliver_at <= now``.

    Uses the same guarded send as check-in releases, so overlapping runs
    deliver each message once.

    Returns:
        dict with "processed", "sent" and "errors".
    """
    now = now or utcnow()
    results = {"processed": 0, "sent": 0, "errors": []}

    messages = message_store.find_due_date_messages(session, now)
    if not messages:
        logger.info("No date-mode messages due")
        return results

    for message in messages:
        message_id = message.id
        try:
            deliver_message(session, message, notifier, now, results)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error delivering message {message_id}: {e}")
            results["errors"].append(f"Message {message_id}: {e}")

    logger.info(f"Date-mode delivery completed: {results}")
    return results

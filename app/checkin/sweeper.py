"""Expiry sweep: unanswered verification requests release the messages.

Policy: when a trusted contact does not answer before the token expires,
the silence is taken as confirmation that the user is absent, and the
user's check-in messages are released. Nobody decided, so the recorded
events carry no decision.
"""
import logging
from datetime import datetime

from sqlmodel import Session

from app.checkin.release import release_checkin_messages
from app.core.clock import utcnow
from app.mail.notifier import Notifier
from app.store import tokens as token_store
from app.store.events import MESSAGES_RELEASED_AUTO, TOKEN_EXPIRED, EventLog

logger = logging.getLogger(__name__)


def process_expired_tokens(
    session: Session,
    notifier: Notifier,
    now: datetime | None = None,
) -> dict:
    """
    Claim all expired, unanswered tokens and release each owner's messages.

    The claim is one conditional batch update, so a token is processed by
    exactly one sweep and never by both a sweep and a human decision.

    Returns:
        dict with "processed", "released" and "errors".
    """
    now = now or utcnow()
    results = {"processed": 0, "released": 0, "errors": []}

    claimed = [
        (t.id, t.user_id, t.contact_email)
        for t in token_store.claim_all_expired(session, now)
    ]
    if not claimed:
        logger.info("No expired tokens found")
        return results

    events = EventLog.for_session(session)

    for token_id, user_id, contact_email in claimed:
        results["processed"] += 1
        try:
            events.confirmation(
                TOKEN_EXPIRED, user_id, contact_email=contact_email, token_id=token_id
            )

            release = release_checkin_messages(session, user_id, notifier, now)
            if release["sent"] > 0:
                results["released"] += 1
                events.confirmation(
                    MESSAGES_RELEASED_AUTO,
                    user_id,
                    contact_email=contact_email,
                    token_id=token_id,
                )
            results["errors"].extend(release["errors"])
        except Exception as e:
            session.rollback()
            logger.error(f"Error processing expired token {token_id}: {e}")
            results["errors"].append(f"Token {token_id}: {e}")

    logger.info(f"Expired token sweep completed: {results}")
    return results

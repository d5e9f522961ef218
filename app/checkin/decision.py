"""Trusted-contact decisions on verify-status tokens.

A decision is acted on at most once per token: the token is claimed with a
conditional update before anything else happens, and every later attempt
(retries, other tabs, the expiry sweeper) sees the claim and is rejected.
"""
import logging
from datetime import datetime

from sqlmodel import Session

from app.checkin.errors import (
    ConcurrentClaimError,
    InvalidDecisionError,
    InvalidTokenError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from app.checkin.liveness import reset_after_denial
from app.checkin.release import release_checkin_messages
from app.core.clock import ensure_utc, utcnow
from app.core.security import hash_verification_token
from app.mail.notifier import Notifier
from app.store import tokens as token_store
from app.store.events import EventLog

logger = logging.getLogger(__name__)

CONFIRM = "confirm"
DENY = "deny"
DECISIONS = (CONFIRM, DENY)


def apply_decision(
    session: Session,
    raw_token: str | None,
    decision: str | None,
    notifier: Notifier,
    ip: str | None = None,
    user_agent: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Apply a trusted contact's confirm/deny decision.

    Confirm releases the user's check-in messages (first responder wins when
    several contacts were asked). Deny resets the check-in with a grace
    period.

    Raises:
        InvalidDecisionError: missing token or unknown decision (400).
        InvalidTokenError: no token with that secret (400).
        TokenAlreadyUsedError: token was already claimed (409).
        TokenExpiredError: deadline passed before the sweeper ran (410).
        ConcurrentClaimError: another request claimed it first (409).
    """
    if not raw_token or decision not in DECISIONS:
        raise InvalidDecisionError("Invalid request")

    now = now or utcnow()
    token = token_store.find_by_hash(session, hash_verification_token(raw_token))
    if token is None:
        raise InvalidTokenError("Invalid or expired token")
    if token.used_at is not None:
        raise TokenAlreadyUsedError("Token already used")
    if ensure_utc(token.expires_at) < now:
        raise TokenExpiredError("Token expired")

    token_id, user_id, contact_email = token.id, token.user_id, token.contact_email
    ip = ip or "unknown"
    user_agent = user_agent or "unknown"

    claimed = token_store.claim_token(
        session, token_id, now, token_store.USER_ACTION, ip, user_agent
    )
    if not claimed:
        session.rollback()
        raise ConcurrentClaimError("Token already used (concurrent)")
    session.commit()

    logger.info(f"Token {token_id} claimed by {contact_email}: {decision}")
    EventLog.for_session(session).confirmation(
        f"decision_{decision}",
        user_id,
        contact_email=contact_email,
        token_id=token_id,
        decision=decision,
        ip_address=ip,
        user_agent=user_agent,
    )

    if decision == CONFIRM:
        details = release_checkin_messages(session, user_id, notifier, now)
        return {"success": True, "action": "released", "details": details}

    reset_after_denial(session, user_id, now)
    return {"success": True, "action": "reset"}

"""Token store: persistence and atomic claiming of verification tokens.

Both claim paths are single conditional UPDATE statements on
``used_at IS NULL``. Callers must commit the session for a claim to become
visible to competing writers.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from app.models import VERIFY_STATUS_ACTION, VerificationToken

logger = logging.getLogger(__name__)

USER_ACTION = "user_action"
EXPIRED_AUTO = "expired_auto"
SWEEPER_IP = "system_cron"
SWEEPER_AGENT = "process-expired-tokens"
CHECKIN_CONFIRMED = "checkin_confirmed"
DENIED_BY_CONTACT = "denied_by_contact"


def create_token(
    session: Session,
    user_id: UUID,
    contact_email: str,
    token_hash: str,
    expires_at: datetime,
    action: str = VERIFY_STATUS_ACTION,
) -> VerificationToken:
    """Persist a new unclaimed token. Flushes so the id is available."""
    token = VerificationToken(
        user_id=user_id,
        contact_email=contact_email,
        token_hash=token_hash,
        action=action,
        expires_at=expires_at,
    )
    session.add(token)
    session.flush()
    return token


def find_by_hash(session: Session, token_hash: str) -> VerificationToken | None:
    statement = (
        select(VerificationToken)
        .where(VerificationToken.token_hash == token_hash)
        .execution_options(populate_existing=True)
    )
    return session.exec(statement).first()


def claim_token(
    session: Session,
    token_id: UUID,
    now: datetime,
    reason: str = USER_ACTION,
    ip: str | None = None,
    user_agent: str | None = None,
) -> bool:
    """
    Mark a token used if nobody has yet.

    Returns False when the conditional update matched no row, i.e. another
    request or the expiry sweeper claimed the token first.
    """
    statement = (
        update(VerificationToken)
        .where(VerificationToken.id == token_id)
        .where(VerificationToken.used_at.is_(None))
        .values(used_at=now, used_reason=reason, used_ip=ip, used_user_agent=user_agent)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(statement)
    return result.rowcount == 1


def claim_all_expired(session: Session, now: datetime) -> list[VerificationToken]:
    """
    Claim every expired, unused verify-status token in one statement.

    The UPDATE ... RETURNING both claims and reports the rows, so overlapping
    sweeps (or a sweep racing the decision endpoint) never claim the same
    token twice. Commits before loading the claimed rows.
    """
    table = VerificationToken.__table__
    statement = (
        update(table)
        .where(table.c.expires_at < now)
        .where(table.c.used_at.is_(None))
        .where(table.c.action == VERIFY_STATUS_ACTION)
        .values(
            used_at=now,
            used_reason=EXPIRED_AUTO,
            used_ip=SWEEPER_IP,
            used_user_agent=SWEEPER_AGENT,
        )
        .returning(table.c.id)
    )
    claimed_ids = list(session.exec(statement).scalars())
    session.commit()

    if not claimed_ids:
        return []

    logger.info(f"Claimed {len(claimed_ids)} expired verification token(s)")
    tokens = session.exec(
        select(VerificationToken)
        .where(VerificationToken.id.in_(claimed_ids))
        .order_by(VerificationToken.expires_at)
    ).all()
    return list(tokens)


def recent_tokens(session: Session, user_id: UUID, limit: int) -> list[VerificationToken]:
    statement = (
        select(VerificationToken)
        .where(VerificationToken.user_id == user_id)
        .order_by(VerificationToken.created_at.desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())


def revoke_open_tokens(session: Session, user_id: UUID, now: datetime, reason: str) -> int:
    """
    Close every unclaimed verify-status token of a user.

    Used once the user is known to be alive (own confirmation or a contact's
    denial), so neither a sibling contact nor the expiry sweeper can release
    messages afterwards. Returns the number of tokens closed.
    """
    statement = (
        update(VerificationToken)
        .where(VerificationToken.user_id == user_id)
        .where(VerificationToken.used_at.is_(None))
        .where(VerificationToken.action == VERIFY_STATUS_ACTION)
        .values(used_at=now, used_reason=reason, used_ip=None, used_user_agent=None)
        .execution_options(synchronize_session=False)
    )
    return session.exec(statement).rowcount

"""User-side check-in lifecycle: enrolment, confirmation, denial resets."""
import logging
import math
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.checkin.errors import (
    CheckinNotFoundError,
    IntervalNotAllowedError,
    ProfileNotFoundError,
)
from app.core.clock import ensure_utc, utcnow
from app.core.config import settings
from app.core.plans import is_checkin_interval_allowed
from app.models import Checkin, CheckinStatus, Profile
from app.store import checkins as checkin_store
from app.store import messages as message_store
from app.store import tokens as token_store
from app.store.events import CHECKIN_CONFIRMED, CHECKIN_STARTED, EventLog

logger = logging.getLogger(__name__)

# Attempts at the conditional confirmation update before giving up
CONFIRM_RETRIES = 3


def start_checkin(
    session: Session,
    user_id: UUID,
    interval_days: int | None = None,
    now: datetime | None = None,
) -> Checkin:
    """
    Create the user's check-in the first time check-in delivery is chosen.

    Idempotent: an existing check-in is returned untouched.

    Raises:
        ProfileNotFoundError: unknown user.
        IntervalNotAllowedError: interval not offered on the user's plan.
    """
    now = now or utcnow()
    profile = session.get(Profile, user_id)
    if profile is None:
        raise ProfileNotFoundError(f"No profile {user_id}")

    interval = interval_days or settings.default_checkin_interval_days
    if not is_checkin_interval_allowed(profile.plan, interval):
        raise IntervalNotAllowedError(
            f"A {interval} day interval is not available on the {profile.plan} plan"
        )

    existing = checkin_store.get_checkin(session, user_id)
    if existing:
        return existing

    next_due = now + timedelta(days=interval)
    checkin = Checkin(
        user_id=user_id,
        status=CheckinStatus.ACTIVE,
        last_confirmed_at=now,
        next_due_at=next_due,
        attempts=0,
    )
    session.add(checkin)
    try:
        session.commit()
    except IntegrityError:
        # Another request enrolled the same user first
        session.rollback()
        return checkin_store.get_checkin(session, user_id)

    EventLog.for_session(session).activity(
        CHECKIN_STARTED, user_id, interval_days=interval, next_due_at=next_due.isoformat()
    )
    logger.info(f"Check-in started for user {user_id}, every {interval} days")
    return checkin


def checkin_interval_days(session: Session, user_id: UUID) -> int:
    """The shortest interval among the user's check-in messages governs the timer."""
    intervals = message_store.find_checkin_intervals(session, user_id)
    return min(intervals) if intervals else settings.default_checkin_interval_days


def confirm_checkin(session: Session, user_id: UUID, now: datetime | None = None) -> Checkin:
    """
    The user confirms they are alive.

    Resets attempts and status, pushes the due date one interval ahead, and
    closes any verification tokens still waiting on trusted contacts.

    Raises:
        CheckinNotFoundError: the user never enabled check-in delivery.
    """
    now = now or utcnow()
    interval = checkin_interval_days(session, user_id)
    next_due = now + timedelta(days=interval)

    for _ in range(CONFIRM_RETRIES):
        checkin = checkin_store.get_checkin(session, user_id)
        if checkin is None:
            raise CheckinNotFoundError(f"No check-in for user {user_id}")
        session.refresh(checkin)

        updated = checkin_store.advance_checkin(
            session,
            user_id,
            expected={"status": checkin.status, "attempts": checkin.attempts},
            status=CheckinStatus.ACTIVE,
            attempts=0,
            last_confirmed_at=now,
            next_due_at=next_due,
        )
        if updated:
            break
        session.rollback()
    else:
        raise RuntimeError(f"Check-in for user {user_id} kept changing during confirmation")

    revoked = token_store.revoke_open_tokens(
        session, user_id, now, token_store.CHECKIN_CONFIRMED
    )
    session.commit()

    if revoked:
        logger.info(f"Closed {revoked} open verification token(s) for user {user_id}")
    EventLog.for_session(session).activity(
        CHECKIN_CONFIRMED,
        user_id,
        confirmed_at=now.isoformat(),
        next_due_at=next_due.isoformat(),
    )

    checkin = checkin_store.get_checkin(session, user_id)
    session.refresh(checkin)
    return checkin


def reset_after_denial(session: Session, user_id: UUID, now: datetime | None = None) -> bool:
    """
    A trusted contact says the user is fine: treat the escalation as a false alarm.

    Only a check-in that is currently ``confirmed_absent`` is reset; a user
    who already confirmed keeps their own schedule. Sibling tokens sent to
    other contacts are closed either way. Commits.
    """
    now = now or utcnow()
    reset = checkin_store.advance_checkin(
        session,
        user_id,
        expected={"status": CheckinStatus.CONFIRMED_ABSENT},
        status=CheckinStatus.ACTIVE,
        attempts=0,
        last_confirmed_at=now,
        next_due_at=now + timedelta(hours=settings.deny_grace_hours),
    )
    token_store.revoke_open_tokens(session, user_id, now, token_store.DENIED_BY_CONTACT)
    session.commit()

    if not reset:
        logger.info(f"Check-in for user {user_id} was not awaiting verification, left as is")
    return reset


def checkin_status(checkin: Checkin, now: datetime | None = None) -> dict:
    """Summary of a check-in for display."""
    now = now or utcnow()
    next_due = ensure_utc(checkin.next_due_at)
    last_confirmed = ensure_utc(checkin.last_confirmed_at)
    is_overdue = now > next_due
    return {
        "has_checkin": True,
        "status": checkin.status,
        "last_confirmed_at": last_confirmed.isoformat() if last_confirmed else None,
        "next_due_at": next_due.isoformat(),
        "attempts": checkin.attempts,
        "is_overdue": is_overdue,
        "days_remaining": 0 if is_overdue else math.ceil((next_due - now).total_seconds() / 86400),
    }

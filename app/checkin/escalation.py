"""Check-in escalation: remind overdue users, then ask their trusted contacts.

This is a stateless batch job. Each overdue check-in is updated
conditionally on the attempts and status that were read, so overlapping
runs never act on the same step twice.

Reminders: the attempt is recorded, the email sent, and only then is the
transaction committed. A failed send rolls the row back so the next run
retries the same reminder.

Escalation: the status flip and every contact's token are committed first,
then the contacts are emailed one by one. A failed send is reported in
"errors" and leaves the other contacts' links usable.
"""
import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlmodel import Session

from app.checkin.contacts import resolve_trusted_contacts
from app.checkin.issuer import issue_verification_token
from app.core.clock import utcnow
from app.core.config import settings
from app.core.plans import get_max_reminders, get_plan_limits
from app.mail.notifier import Notifier, NotifierError
from app.mail.render import render_checkin_reminder, render_trusted_contact_verify
from app.models import CheckinStatus, Profile
from app.store import checkins as checkin_store
from app.store.events import CHECKIN_REMINDER_SENT, TRUSTED_CONTACT_NOTIFIED, EventLog

logger = logging.getLogger(__name__)


def confirm_url(user_id: UUID) -> str:
    return f"{settings.app_url.rstrip('/')}/checkins/{user_id}/confirm"


def process_checkins(
    session: Session,
    notifier: Notifier,
    now: datetime | None = None,
) -> dict:
    """
    Run one escalation pass over every overdue check-in.

    Per-user failures are recorded in "errors" and do not stop the batch;
    failing to load the overdue list propagates.

    Returns:
        dict with "processed", "reminders_sent", "trusted_contact_notified"
        and "errors".
    """
    now = now or utcnow()
    results = {
        "processed": 0,
        "reminders_sent": 0,
        "trusted_contact_notified": 0,
        "errors": [],
    }

    overdue = [
        (c.user_id, c.attempts or 0, c.status)
        for c in checkin_store.find_overdue_checkins(session, now)
    ]
    if not overdue:
        logger.info("No overdue check-ins")
        return results

    events = EventLog.for_session(session)

    for user_id, attempts, status in overdue:
        results["processed"] += 1
        try:
            profile = session.get(Profile, user_id)
            max_reminders = get_max_reminders(profile.plan if profile else None)

            if attempts < max_reminders:
                _send_reminder(
                    session, notifier, events, profile, user_id,
                    attempts, status, max_reminders, now, results,
                )
            else:
                _escalate(session, notifier, events, profile, user_id, attempts, status, now, results)
        except Exception as e:
            session.rollback()
            logger.error(f"Error processing check-in for user {user_id}: {e}")
            results["errors"].append(f"User {user_id}: {e}")

    logger.info(f"Check-in escalation completed: {results}")
    return results


def _send_reminder(
    session: Session,
    notifier: Notifier,
    events: EventLog,
    profile: Profile | None,
    user_id: UUID,
    attempts: int,
    status: str,
    max_reminders: int,
    now: datetime,
    results: dict,
) -> None:
    """Retry path: one more reminder and a one-day extension."""
    email = profile.email if profile else None
    if not email:
        raise NotifierError("No email address on file")

    advanced = checkin_store.advance_checkin(
        session,
        user_id,
        expected={"attempts": attempts, "status": status},
        attempts=attempts + 1,
        next_due_at=now + timedelta(hours=settings.reminder_retry_hours),
        status=CheckinStatus.PENDING,
    )
    if not advanced:
        session.rollback()
        logger.info(f"Check-in for user {user_id} changed since it was read, skipping")
        return

    subject, body = render_checkin_reminder(attempts + 1, max_reminders, confirm_url(user_id))
    notifier.send(email, subject, body)
    session.commit()

    results["reminders_sent"] += 1
    events.activity(CHECKIN_REMINDER_SENT, user_id, attempt=attempts + 1)


def _escalate(
    session: Session,
    notifier: Notifier,
    events: EventLog,
    profile: Profile | None,
    user_id: UUID,
    attempts: int,
    status: str,
    now: datetime,
    results: dict,
) -> None:
    """
    Reminder budget spent: mark absent and send each contact a verification link.

    Every token and the status flip are committed before the first email
    goes out, so a link that reaches a contact always refers to a stored
    token. A failed send is recorded per contact and does not undo the
    escalation; the other contacts' links stay valid.
    """
    plan = profile.plan if profile else None
    contacts = resolve_trusted_contacts(
        session, user_id, limit=get_plan_limits(plan).max_trusted_contacts
    )
    contacts = [(c.name, c.email) for c in contacts]

    flipped = checkin_store.advance_checkin(
        session,
        user_id,
        expected={"attempts": attempts, "status": status},
        status=CheckinStatus.CONFIRMED_ABSENT,
    )
    if not flipped:
        session.rollback()
        logger.info(f"Check-in for user {user_id} changed since it was read, skipping")
        return

    outbox = []
    for name, email in contacts:
        _, verify_url = issue_verification_token(session, user_id, email, now)
        outbox.append((name, email, verify_url))
    session.commit()

    if not outbox:
        logger.warning(f"User {user_id} marked absent but has no trusted contact to verify")

    user_label = (profile.display_name or profile.email) if profile else None
    user_label = user_label or "Someone close to you"

    notified = []
    for name, email, verify_url in outbox:
        subject, body = render_trusted_contact_verify(
            name, user_label, verify_url, settings.token_validity_hours
        )
        try:
            notifier.send(email, subject, body)
        except Exception as e:
            logger.error(f"Failed to send verification request for user {user_id} to {email}: {e}")
            results["errors"].append(f"User {user_id}: contact {email}: {e}")
            continue
        notified.append(email)

    results["trusted_contact_notified"] += len(notified)
    events.activity(
        TRUSTED_CONTACT_NOTIFIED,
        user_id,
        contact_count=len(notified),
        contacts=notified,
        failed=[email for _, email, _ in outbox if email not in notified],
    )

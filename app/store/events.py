"""Event log: append-only audit rows written outside the caller's transaction.

Appends run in their own short session on the caller's engine, after the
caller has committed the state transition being recorded. A failed append
is logged and swallowed; it never undoes or blocks the main flow.
"""
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from app.models import ActivityEvent, ConfirmationEvent

logger = logging.getLogger(__name__)

# ConfirmationEvent types
TOKEN_EXPIRED = "token_expired"
DECISION_CONFIRM = "decision_confirm"
DECISION_DENY = "decision_deny"
MESSAGES_RELEASED_AUTO = "messages_released_auto"

# ActivityEvent types
CHECKIN_REMINDER_SENT = "checkin_reminder_sent"
TRUSTED_CONTACT_NOTIFIED = "trusted_contact_notified"
CHECKIN_CONFIRMED = "checkin_confirmed"
CHECKIN_STARTED = "checkin_started"


class EventLog:
    """Fire-and-forget writer for ConfirmationEvent and ActivityEvent rows."""

    def __init__(self, bind):
        self.bind = bind

    @classmethod
    def for_session(cls, session: Session) -> "EventLog":
        return cls(session.get_bind())

    def append(self, event: SQLModel) -> None:
        try:
            with Session(self.bind) as session:
                session.add(event)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to append {type(event).__name__} event: {e}")

    def confirmation(
        self,
        type: str,
        user_id: UUID,
        contact_email: str | None = None,
        token_id: UUID | None = None,
        decision: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.append(
            ConfirmationEvent(
                type=type,
                user_id=user_id,
                contact_email=contact_email,
                token_id=token_id,
                decision=decision,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )

    def activity(self, type: str, user_id: UUID, **details: Any) -> None:
        self.append(ActivityEvent(type=type, user_id=user_id, details=details or None))


def recent_confirmation_events(
    session: Session, user_id: UUID, limit: int
) -> list[ConfirmationEvent]:
    statement = (
        select(ConfirmationEvent)
        .where(ConfirmationEvent.user_id == user_id)
        .order_by(ConfirmationEvent.created_at.desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())

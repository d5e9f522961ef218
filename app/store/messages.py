"""Message store: check-in message lookups and guarded status flips."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from app.models import (
    DeliveryMode,
    DeliveryRule,
    Message,
    MessageStatus,
    MessageTrustedContact,
    TrustedContact,
)


def find_checkin_messages(session: Session, user_id: UUID) -> list[Message]:
    """Scheduled check-in-mode messages owned by ``user_id``."""
    statement = (
        select(Message)
        .join(DeliveryRule, DeliveryRule.message_id == Message.id)
        .where(Message.owner_id == user_id)
        .where(Message.status == MessageStatus.SCHEDULED)
        .where(DeliveryRule.mode == DeliveryMode.CHECKIN)
        .order_by(Message.created_at)
    )
    return list(session.exec(statement).all())


def find_due_date_messages(session: Session, now: datetime) -> list[Message]:
    """Scheduled date-mode messages whose delivery time has passed."""
    statement = (
        select(Message)
        .join(DeliveryRule, DeliveryRule.message_id == Message.id)
        .where(Message.status == MessageStatus.SCHEDULED)
        .where(DeliveryRule.mode == DeliveryMode.DATE)
        .where(DeliveryRule.deliver_at <= now)
        .order_by(DeliveryRule.deliver_at)
    )
    return list(session.exec(statement).all())


def find_checkin_intervals(session: Session, user_id: UUID) -> list[int]:
    """Configured check-in intervals across all of a user's check-in messages."""
    statement = (
        select(DeliveryRule.checkin_interval_days)
        .join(Message, Message.id == DeliveryRule.message_id)
        .where(Message.owner_id == user_id)
        .where(DeliveryRule.mode == DeliveryMode.CHECKIN)
        .where(DeliveryRule.checkin_interval_days.is_not(None))
    )
    return list(session.exec(statement).all())


def find_message_contacts(session: Session, user_id: UUID) -> list[TrustedContact]:
    """Contacts linked to any of the user's check-in-mode messages, any status."""
    statement = (
        select(TrustedContact)
        .join(MessageTrustedContact, MessageTrustedContact.contact_id == TrustedContact.id)
        .join(Message, Message.id == MessageTrustedContact.message_id)
        .join(DeliveryRule, DeliveryRule.message_id == Message.id)
        .where(Message.owner_id == user_id)
        .where(DeliveryRule.mode == DeliveryMode.CHECKIN)
        .order_by(Message.created_at, TrustedContact.created_at)
    )
    return list(session.exec(statement).all())


def find_fallback_contact(session: Session, user_id: UUID) -> TrustedContact | None:
    """The user's earliest trusted contact on file."""
    statement = (
        select(TrustedContact)
        .where(TrustedContact.user_id == user_id)
        .order_by(TrustedContact.created_at)
        .limit(1)
    )
    return session.exec(statement).first()


def get_message_status(session: Session, message_id: UUID) -> str | None:
    """Current status straight from the database, bypassing the identity map."""
    return session.exec(select(Message.status).where(Message.id == message_id)).first()


def set_message_status(
    session: Session, message_id: UUID, from_status: str, to_status: str
) -> bool:
    """Move a message between statuses only if it is still in ``from_status``."""
    statement = (
        update(Message)
        .where(Message.id == message_id)
        .where(Message.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    return session.exec(statement).rowcount == 1

"""Check-in store: overdue scans and conditional check-in updates."""
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from app.models import Checkin, CheckinStatus


def get_checkin(session: Session, user_id: UUID) -> Checkin | None:
    return session.exec(select(Checkin).where(Checkin.user_id == user_id)).first()


def find_overdue_checkins(session: Session, now: datetime) -> list[Checkin]:
    """Check-ins past due that have not already been escalated."""
    statement = (
        select(Checkin)
        .where(Checkin.next_due_at < now)
        .where(Checkin.status != CheckinStatus.CONFIRMED_ABSENT)
        .order_by(Checkin.next_due_at)
    )
    return list(session.exec(statement).all())


def advance_checkin(
    session: Session,
    user_id: UUID,
    expected: dict[str, Any],
    **fields: Any,
) -> bool:
    """
    Update a user's check-in only if it still matches ``expected``.

    ``expected`` maps column names to the values the caller read, e.g.
    ``{"attempts": 2, "status": "pending"}``. Returns False when another
    writer changed the row first; nothing is written in that case.
    """
    statement = update(Checkin).where(Checkin.user_id == user_id)
    for column, value in expected.items():
        statement = statement.where(getattr(Checkin, column) == value)
    statement = statement.values(**fields).execution_options(synchronize_session=False)
    return session.exec(statement).rowcount == 1

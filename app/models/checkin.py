"""Check-in model: one liveness timer per user.

This module defines the Checkin model which tracks whether a user is still
confirming activity. A single Checkin governs every check-in-mode message
the user owns.
"""

from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class CheckinStatus(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    CONFIRMED_ABSENT = "confirmed_absent"


class Checkin(SQLModel, table=True):
    """A user's liveness record.

    The escalation job advances overdue check-ins: while reminders remain it
    bumps ``attempts`` and moves ``next_due_at`` one day ahead; once the
    reminder budget is spent the status flips to ``confirmed_absent`` and
    trusted contacts are asked to verify.

    ``attempts`` returns to 0 and ``status`` to ``active`` whenever the user
    confirms liveness or a trusted contact denies the absence claim. Rows are
    never deleted.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Owning profile; one Checkin per user.
        status: One of "active", "pending" or "confirmed_absent".
        last_confirmed_at: When liveness was last confirmed.
        next_due_at: When the next confirmation is due.
        attempts: Reminders sent since the last confirmation.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="profile.id", unique=True, index=True)
    status: str = Field(default=CheckinStatus.ACTIVE, index=True)
    last_confirmed_at: datetime | None = None
    next_due_at: datetime = Field(index=True)
    attempts: int = Field(default=0)


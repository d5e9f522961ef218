"""Append-only event models for audit.

ConfirmationEvent rows record what happened to verification tokens
(decisions, expiries, automatic releases). ActivityEvent rows record the
rest of the check-in lifecycle (reminders, escalations, confirmations).
Neither is ever updated.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class ConfirmationEvent(SQLModel, table=True):
    """A record of a trusted-contact decision or a system substitute for one.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Profile the decision concerns.
        contact_email: Trusted contact the token was issued to.
        token_id: Token that was claimed.
        type: "decision_confirm", "decision_deny", "token_expired" or
            "messages_released_auto".
        decision: "confirm" or "deny" for human decisions; None for
            system-driven events.
        ip_address: Client address of the request, if any.
        user_agent: Client user agent of the request, if any.
        created_at: When the event was recorded.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    contact_email: str | None = None
    token_id: UUID | None = Field(default=None, index=True)
    type: str
    decision: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


class ActivityEvent(SQLModel, table=True):
    """A check-in lifecycle event.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Profile the event concerns.
        type: e.g. "checkin_reminder_sent", "trusted_contact_notified",
            "checkin_confirmed", "checkin_started".
        details: Free-form JSON payload (attempt number, contact list, ...).
        created_at: When the event was recorded.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID | None = Field(default=None, index=True)
    type: str = Field(index=True)
    details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)

"""Profile model for account owners.

Profiles are owned by the account service (sign-up, billing, profile
editing). The check-in core only reads them: the email address receives
reminders and the plan decides how many reminders are sent before trusted
contacts are asked.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class Profile(SQLModel, table=True):
    """An account owner who authors messages.

    Attributes:
        id: Unique identifier (UUID), used as ``user_id`` everywhere else.
        email: Address that receives check-in reminders.
        display_name: Human-readable name used in emails to trusted contacts.
        plan: Billing plan, either "free" or "pro".
        created_at: When the account was created.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str | None = Field(default=None, index=True)
    display_name: str | None = None
    plan: str = Field(default="free")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

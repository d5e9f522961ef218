"""Trusted contact models.

A trusted contact is a third party nominated by a user to confirm or deny
the user's absence. Contacts may be scoped to specific messages through the
MessageTrustedContact link table; the escalation job falls back to any
contact on file when no message-scoped contact exists.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.message import Message


class MessageTrustedContact(SQLModel, table=True):
    """Link between a message and a trusted contact who may release it."""
    message_id: UUID = Field(foreign_key="message.id", primary_key=True)
    contact_id: UUID = Field(foreign_key="trustedcontact.id", primary_key=True)


class TrustedContact(SQLModel, table=True):
    """A person nominated to verify the user's incapacity.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Profile that nominated this contact.
        name: Contact's name, used in the greeting of the verification email.
        email: Address the verification link is sent to.
        created_at: When the contact was added; the earliest contact is the
            fallback when no message names a contact.
        messages: Check-in messages this contact is scoped to.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="profile.id", index=True)
    name: str | None = None
    email: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationship
    messages: list["Message"] = Relationship(
        back_populates="trusted_contacts", link_model=MessageTrustedContact
    )

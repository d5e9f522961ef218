"""Message, recipient and delivery rule models.

Messages are authored elsewhere; the check-in core only reads them and
flips ``status`` from "scheduled" to "delivered" once a message has
actually been sent.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

from app.models.contact import MessageTrustedContact

if TYPE_CHECKING:
    from app.models.contact import TrustedContact


class MessageStatus(StrEnum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    DELIVERED = "delivered"


class MessageType(StrEnum):
    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"


class DeliveryMode(StrEnum):
    DATE = "date"
    CHECKIN = "checkin"


class Message(SQLModel, table=True):
    """Pre-authored content waiting for delivery.

    Attributes:
        id: Unique identifier (UUID).
        owner_id: Profile that wrote the message.
        type: "text", "audio" or "video".
        status: "draft", "scheduled" or "delivered". Moves to "delivered" at
            most once, and only after a successful send.
        text_content: Body of a text message.
        media_path: Storage path of the audio/video recording.
        created_at: When the message was created.
        recipients: Who receives the message.
        delivery_rule: When the message is delivered.
        trusted_contacts: Contacts allowed to release a check-in message.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(foreign_key="profile.id", index=True)
    type: str = Field(default=MessageType.TEXT)
    status: str = Field(default=MessageStatus.DRAFT, index=True)
    text_content: str | None = None
    media_path: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationships
    recipients: list["Recipient"] = Relationship(back_populates="message")
    delivery_rule: Optional["DeliveryRule"] = Relationship(
        back_populates="message", sa_relationship_kwargs={"uselist": False}
    )
    trusted_contacts: list["TrustedContact"] = Relationship(
        back_populates="messages", link_model=MessageTrustedContact
    )


class Recipient(SQLModel, table=True):
    """Addressee of a message."""
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    message_id: UUID = Field(foreign_key="message.id", index=True)
    name: str | None = None
    email: str | None = None

    # Relationship
    message: Optional[Message] = Relationship(back_populates="recipients")


class DeliveryRule(SQLModel, table=True):
    """How a message is released.

    Attributes:
        id: Unique identifier (UUID).
        message_id: The message this rule governs (one rule per message).
        mode: "date" (send at ``deliver_at``) or "checkin" (send when the
            owner is judged absent).
        deliver_at: Delivery time for date mode.
        checkin_interval_days: Confirmation interval for check-in mode; one
            of 30, 60 or 90 depending on plan.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    message_id: UUID = Field(foreign_key="message.id", unique=True, index=True)
    mode: str = Field(index=True)
    deliver_at: datetime | None = None
    checkin_interval_days: int | None = None

    # Relationship
    message: Optional[Message] = Relationship(back_populates="delivery_rule")

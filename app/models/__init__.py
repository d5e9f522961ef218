from app.models.checkin import Checkin, CheckinStatus
from app.models.contact import MessageTrustedContact, TrustedContact
from app.models.event import ActivityEvent, ConfirmationEvent
from app.models.message import (
    DeliveryMode,
    DeliveryRule,
    Message,
    MessageStatus,
    MessageType,
    Recipient,
)
from app.models.profile import Profile
from app.models.token import VERIFY_STATUS_ACTION, VerificationToken

__all__ = [
    "ActivityEvent",
    "Checkin",
    "CheckinStatus",
    "ConfirmationEvent",
    "DeliveryMode",
    "DeliveryRule",
    "Message",
    "MessageStatus",
    "MessageTrustedContact",
    "MessageType",
    "Profile",
    "Recipient",
    "TrustedContact",
    "VERIFY_STATUS_ACTION",
    "VerificationToken",
]

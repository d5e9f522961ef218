"""Verification token model.

This module defines the VerificationToken model: a single-use, time-boxed
secret that lets one trusted contact register one decision about one
escalation. Only the SHA-256 hash of the secret is stored.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

VERIFY_STATUS_ACTION = "verify-status"


class VerificationToken(SQLModel, table=True):
    """A single-use verification request sent to a trusted contact.

    ``used_at`` goes from null to a timestamp at most once. Every writer
    (the decision endpoint and the expiry sweeper) claims the token with a
    conditional update on ``used_at IS NULL``, so whichever writer commits
    first wins and the other observes zero affected rows.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Profile whose absence is being verified.
        contact_email: Trusted contact the token was sent to.
        token_hash: SHA-256 hex digest of the raw secret.
        action: What the token authorises; only "verify-status" exists.
        expires_at: Deadline for a human decision.
        created_at: When the token was issued.
        used_at: When the token was claimed, or None while unclaimed.
        used_reason: "user_action" or "expired_auto".
        used_ip: Client address of the claim ("system_cron" for the sweeper).
        used_user_agent: Client user agent of the claim.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="profile.id", index=True)
    contact_email: str
    token_hash: str = Field(unique=True, index=True)
    action: str = Field(default=VERIFY_STATUS_ACTION)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    used_at: datetime | None = Field(default=None, index=True)
    used_reason: str | None = None
    used_ip: str | None = None
    used_user_agent: str | None = None

"""Issue single-use verification tokens to trusted contacts."""
import logging
from datetime import datetime, timedelta
from urllib.parse import urlencode
from uuid import UUID

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.security import hash_verification_token, make_verification_token
from app.models import VerificationToken
from app.store import tokens as token_store

logger = logging.getLogger(__name__)


def build_verify_url(raw_token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/verify-status?{urlencode({'token': raw_token})}"


def issue_verification_token(
    session: Session,
    user_id: UUID,
    contact_email: str,
    now: datetime | None = None,
) -> tuple[VerificationToken, str]:
    """
    Mint a verify-status token for one contact.

    Only the hash is persisted; the returned URL carries the raw secret and
    is the only place it exists. The token is flushed, not committed, so it
    shares the caller's transaction.

    Returns:
        The persisted token and the URL to email to the contact.
    """
    now = now or utcnow()
    raw_token = make_verification_token()
    token = token_store.create_token(
        session,
        user_id=user_id,
        contact_email=contact_email,
        token_hash=hash_verification_token(raw_token),
        expires_at=now + timedelta(hours=settings.token_validity_hours),
    )
    logger.info(f"Issued verification token {token.id} for user {user_id} to {contact_email}")
    return token, build_verify_url(raw_token)

"""Secrets, hashes and request guards."""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import Header, HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.clock import utcnow
from app.core.config import settings

ALGORITHM = "HS256"
MEDIA_SCOPE = "media"


def make_verification_token() -> str:
    """Random secret sent to a trusted contact; never stored."""
    return secrets.token_hex(32)


def hash_verification_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def require_cron_secret(
    x_cron_secret: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> None:
    """
    Guard for scheduler-facing endpoints.

    Accepts either ``X-Cron-Secret: <secret>`` or ``Authorization: Bearer
    <secret>``. In production the secret is mandatory; elsewhere the guard is
    open until a secret is configured.
    """
    secret = settings.cron_secret
    if not secret and not settings.is_production:
        return

    candidates = [x_cron_secret]
    if authorization and authorization.startswith("Bearer "):
        candidates.append(authorization.removeprefix("Bearer "))

    if not secret or not any(
        c is not None and hmac.compare_digest(c, secret) for c in candidates
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


class MediaLinkError(Exception):
    """Raised when a media link token cannot be honoured."""


class MediaLinkExpired(MediaLinkError):
    pass


def create_media_token(message_id: UUID, media_path: str, now: datetime | None = None) -> str:
    """Signed token granting time-limited access to one message's media."""
    now = now or utcnow()
    payload = {
        "sub": str(message_id),
        "path": media_path,
        "scp": MEDIA_SCOPE,
        "exp": now + timedelta(days=settings.media_link_ttl_days),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def read_media_token(token: str, message_id: UUID) -> str:
    """Return the media path encoded in ``token`` for ``message_id``."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError as e:
        raise MediaLinkExpired("Media link expired") from e
    except JWTError as e:
        raise MediaLinkError("Invalid media link") from e

    if payload.get("scp") != MEDIA_SCOPE or payload.get("sub") != str(message_id):
        raise MediaLinkError("Invalid media link")
    return payload["path"]

"""Gmail API access for outbound mail.

Credentials come from a refresh token obtained once with
``scripts/get_token.py``. A rejected or unreachable refresh surfaces as
``MailCredentialsError`` so callers can report it like any other failed
send.
"""
import base64
import logging
from email.mime.text import MIMEText

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Send-only; the service never reads the mailbox
SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

_credentials: Credentials | None = None
_service = None
_service_credentials: Credentials | None = None


class MailCredentialsError(Exception):
    """Gmail credentials are missing, revoked, or could not be refreshed."""


def get_credentials() -> Credentials:
    """Access credentials for the sending account, refreshed when stale."""
    global _credentials

    if not settings.google_refresh_token:
        raise MailCredentialsError(
            "No GOOGLE_REFRESH_TOKEN configured. Run 'python scripts/get_token.py'."
        )

    if _credentials and _credentials.valid:
        return _credentials

    creds = Credentials(
        token=None,
        refresh_token=settings.google_refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        scopes=SCOPES,
    )
    try:
        creds.refresh(Request())
    except RefreshError as e:
        # invalid_grant: token revoked or issued for another client
        reset_gmail_service()
        raise MailCredentialsError(f"Gmail refresh token rejected: {e}") from e
    except TransportError as e:
        raise MailCredentialsError(f"Could not reach Google token endpoint: {e}") from e

    _credentials = creds
    logger.info("Refreshed Gmail credentials")
    return creds


def get_gmail_service():
    """Authenticated Gmail service, rebuilt whenever the credentials change."""
    global _service, _service_credentials

    creds = get_credentials()
    if _service is None or _service_credentials is not creds:
        _service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        _service_credentials = creds
    return _service


def reset_gmail_service():
    """Drop cached credentials and service so the next call re-authenticates."""
    global _credentials, _service, _service_credentials
    _credentials = None
    _service = None
    _service_credentials = None


def encode_message(to_address: str, sender: str, subject: str, html: str) -> str:
    """RFC 2822 HTML message, base64url-encoded for ``users.messages.send``."""
    mime = MIMEText(html, "html", "utf-8")
    mime["to"] = to_address
    mime["from"] = sender
    mime["subject"] = subject
    return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")


def send_raw(raw: str) -> dict:
    """
    Send an encoded message as the authorised account.

    An access token revoked between refreshes comes back as HTTP 401; the
    send is retried once with freshly refreshed credentials.
    """
    try:
        return get_gmail_service().users().messages().send(userId="me", body={"raw": raw}).execute()
    except HttpError as e:
        if e.resp.status != 401:
            raise
        logger.warning("Gmail rejected the access token, re-authenticating")
        reset_gmail_service()
        return get_gmail_service().users().messages().send(userId="me", body={"raw": raw}).execute()


def has_valid_credentials() -> bool:
    """Check if mail credentials are configured."""
    return bool(settings.google_refresh_token)

"""Time-limited media links for released audio and video messages."""
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, HTTPException
from fastapi.responses import RedirectResponse

from app.core.config import settings
from app.core.security import MediaLinkError, MediaLinkExpired, read_media_token

router = APIRouter(prefix="/media", tags=["media"])


@router.get("/{message_id}")
async def open_media(message_id: UUID, token: str):
    """
    Redirect a valid media link to the stored recording.

    Returns 410 once the link has expired and 401 for a forged or
    mismatched link.
    """
    try:
        path = read_media_token(token, message_id)
    except MediaLinkExpired:
        raise HTTPException(status_code=410, detail="Media link expired")
    except MediaLinkError:
        raise HTTPException(status_code=401, detail="Invalid media link")

    return RedirectResponse(f"{settings.media_base_url.rstrip('/')}/{quote(path)}", status_code=307)

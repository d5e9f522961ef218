"""Verify-status route for trusted contacts.

Trusted contacts have no account; the emailed token is their only
credential. Every outcome maps to a distinct status code:
200 applied, 400 invalid, 409 already used, 410 expired.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlmodel import Session

from app.checkin.decision import apply_decision
from app.checkin.errors import VerificationError
from app.core.database import get_session
from app.mail.notifier import Notifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verify-status", tags=["verify-status"])


class DecisionRequest(BaseModel):
    # Missing fields are rejected by the decision handler with a 400
    token: str | None = None
    decision: str | None = None


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("")
def submit_decision(
    payload: DecisionRequest,
    request: Request,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Confirm or deny a user's absence.

    "confirm" releases the user's check-in messages; "deny" resets their
    check-in with a grace period. A token can be used once.
    """
    try:
        return apply_decision(
            session,
            payload.token,
            payload.decision,
            notifier,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except VerificationError as e:
        logger.info(f"Rejected verify-status request: {e}")
        raise HTTPException(status_code=e.status_code, detail=str(e))


async def invalid_body_handler(request: Request, exc: RequestValidationError):
    """
    Answer malformed verify-status bodies with 400.

    Contacts only ever see 200/400/409/410 from this endpoint; a body that is
    not JSON or has non-string fields is just another invalid request. Other
    routes keep FastAPI's default 422.
    """
    if request.url.path.rstrip("/") == router.prefix:
        logger.info(f"Rejected malformed verify-status body: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": "Invalid request"})
    return await request_validation_exception_handler(request, exc)

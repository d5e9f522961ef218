"""Check-in routes for the account owner.

Session authentication happens upstream; these routes trust the user id in
the path.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.checkin.errors import (
    CheckinNotFoundError,
    IntervalNotAllowedError,
    ProfileNotFoundError,
)
from app.checkin.liveness import checkin_status, confirm_checkin, start_checkin
from app.core.database import get_session
from app.store.checkins import get_checkin

router = APIRouter(prefix="/checkins", tags=["checkins"])


class StartCheckinRequest(BaseModel):
    interval_days: int | None = None


@router.post("/{user_id}")
def enable_checkin(
    user_id: UUID,
    payload: StartCheckinRequest | None = None,
    session: Session = Depends(get_session),
):
    """
    Enable check-in delivery for a user.

    Creates the user's check-in the first time; later calls return the
    existing one. Returns 400 if the interval is not on the user's plan.
    """
    interval = payload.interval_days if payload else None
    try:
        checkin = start_checkin(session, user_id, interval)
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except IntervalNotAllowedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return checkin_status(checkin)


@router.post("/{user_id}/confirm")
def confirm(user_id: UUID, session: Session = Depends(get_session)):
    """
    Confirm the user is still active.

    Resets reminders and pushes the next due date one interval ahead.
    """
    try:
        checkin = confirm_checkin(session, user_id)
    except CheckinNotFoundError:
        raise HTTPException(status_code=404, detail="No active check-in found")

    status = checkin_status(checkin)
    return {
        "success": True,
        "next_due_at": status["next_due_at"],
        "message": f"Check-in confirmed. Next reminder in {status['days_remaining']} days.",
    }


@router.get("/{user_id}")
def get_status(user_id: UUID, session: Session = Depends(get_session)):
    """Current check-in status for the user."""
    checkin = get_checkin(session, user_id)
    if checkin is None:
        return {"has_checkin": False}
    return checkin_status(checkin)

"""Scheduler-facing routes: run the batch jobs on demand.

Each endpoint is safe to call repeatedly and concurrently. They are
authenticated with the shared cron secret, not a user session.
"""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.checkin.delivery import deliver_due_messages
from app.checkin.escalation import process_checkins
from app.checkin.sweeper import process_expired_tokens
from app.core.database import get_session
from app.core.security import require_cron_secret
from app.mail.notifier import Notifier, get_notifier

router = APIRouter(
    prefix="/api/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)


@router.api_route("/process-checkins", methods=["GET", "POST"])
def run_process_checkins(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Escalate overdue check-ins.

    Sends reminders to users with reminders left and verification requests
    to the trusted contacts of users without.
    """
    results = process_checkins(session, notifier)
    return {"success": True, "results": results}


@router.api_route("/process-expired-tokens", methods=["GET", "POST"])
def run_process_expired_tokens(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Claim expired verification tokens and release the owners' messages.
    """
    results = process_expired_tokens(session, notifier)
    return {"success": True, "results": results}


@router.api_route("/process-messages", methods=["GET", "POST"])
def run_process_messages(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Deliver date-mode messages that are due.
    """
    results = deliver_due_messages(session, notifier)
    return {"success": True, "results": results}

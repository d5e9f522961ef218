"""Confirmation audit for operators."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.core.database import get_session
from app.core.security import require_cron_secret
from app.store.events import recent_confirmation_events
from app.store.tokens import recent_tokens

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_cron_secret)],
)


@router.get("/confirmation-audit")
def confirmation_audit(
    user_id: UUID | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """
    Recent verification tokens and confirmation events for a user.

    Token hashes are never returned. Up to twice as many events as tokens
    are fetched (capped at 100) so each token's history is visible.
    """
    if user_id is None:
        raise HTTPException(status_code=400, detail="user_id is required")

    tokens = recent_tokens(session, user_id, limit)
    events = recent_confirmation_events(session, user_id, min(limit * 2, 100))
    return {
        "target_user_id": str(user_id),
        "tokens": [t.model_dump(exclude={"token_hash"}) for t in tokens],
        "events": [e.model_dump() for e in events],
    }

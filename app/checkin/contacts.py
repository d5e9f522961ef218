"""Resolve which trusted contacts to ask when a user is presumed absent."""
from uuid import UUID

from sqlmodel import Session

from app.models import TrustedContact
from app.store import messages as message_store


def resolve_trusted_contacts(
    session: Session, user_id: UUID, limit: int | None = None
) -> list[TrustedContact]:
    """
    Contacts to notify for an escalation, one per unique email.

    Tier 1 is every contact linked to any of the user's check-in messages.
    Tier 2, used only when tier 1 is empty, is the earliest contact on file.
    Emails are compared case-insensitively; the first occurrence wins.
    ``limit`` caps the result at the plan's trusted-contact allowance, keeping
    contacts in the order they were resolved.
    """
    contacts = message_store.find_message_contacts(session, user_id)
    if not contacts:
        fallback = message_store.find_fallback_contact(session, user_id)
        contacts = [fallback] if fallback else []

    unique: dict[str, TrustedContact] = {}
    for contact in contacts:
        key = (contact.email or "").strip().lower()
        if key and key not in unique:
            unique[key] = contact

    resolved = list(unique.values())
    return resolved if limit is None else resolved[:limit]

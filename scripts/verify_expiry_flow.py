#!/usr/bin/env python3
"""
Exercise the expired-token flow against the configured database.

Seeds a throwaway user with one scheduled check-in message and an already
expired verification token, runs the expiry sweep twice, and prints the
resulting token, event and message state. The second sweep must claim
nothing.

Emails go through the configured notifier; without Gmail credentials they
are only logged.

Usage:
    python scripts/verify_expiry_flow.py [--keep]

Options:
    --keep    Leave the seeded rows in place afterwards
"""
import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session, delete, select

from app.checkin.sweeper import process_expired_tokens
from app.core.clock import utcnow
from app.core.database import create_db_and_tables, engine
from app.core.security import hash_verification_token, make_verification_token
from app.mail.notifier import get_notifier
from app.models import (
    ConfirmationEvent,
    DeliveryMode,
    DeliveryRule,
    Message,
    MessageStatus,
    Profile,
    Recipient,
    VerificationToken,
)
from app.store.tokens import create_token

CONTACT_EMAIL = "expired_contact_verify@example.com"


def seed(session: Session) -> tuple[Profile, Message, VerificationToken]:
    now = utcnow()
    profile = Profile(email="verify-flow@example.com", display_name="Verify Flow")
    session.add(profile)
    session.flush()

    message = Message(
        owner_id=profile.id,
        text_content="VERIFY_FLOW: auto release message",
        status=MessageStatus.SCHEDULED,
    )
    session.add(message)
    session.flush()
    session.add(DeliveryRule(message_id=message.id, mode=DeliveryMode.CHECKIN))
    session.add(Recipient(message_id=message.id, name="Recipient", email="recipient@example.com"))

    token = create_token(
        session,
        profile.id,
        CONTACT_EMAIL,
        hash_verification_token(make_verification_token()),
        expires_at=now - timedelta(hours=1),
    )
    session.commit()
    return profile, message, token


def cleanup(session: Session, profile: Profile, message: Message):
    session.exec(delete(ConfirmationEvent).where(ConfirmationEvent.user_id == profile.id))
    session.exec(delete(VerificationToken).where(VerificationToken.user_id == profile.id))
    session.exec(delete(Recipient).where(Recipient.message_id == message.id))
    session.exec(delete(DeliveryRule).where(DeliveryRule.message_id == message.id))
    session.exec(delete(Message).where(Message.id == message.id))
    session.exec(delete(Profile).where(Profile.id == profile.id))
    session.commit()


def main(keep: bool = False):
    create_db_and_tables()
    notifier = get_notifier()

    with Session(engine) as session:
        profile, message, token = seed(session)
        print(f"Seeded user {profile.id}, message {message.id}, token {token.id}")

        print("\nSweep 1:", process_expired_tokens(session, notifier))
        print("Sweep 2 (must be empty):", process_expired_tokens(session, notifier))

        session.refresh(token)
        session.refresh(message)
        print("\n[Token]")
        print(f"  expires_at={token.expires_at} used_at={token.used_at} used_reason={token.used_reason}")
        print("\n[Message]")
        print(f"  status={message.status}")

        print("\n[Events]")
        events = session.exec(
            select(ConfirmationEvent)
            .where(ConfirmationEvent.user_id == profile.id)
            .order_by(ConfirmationEvent.created_at)
        ).all()
        for event in events:
            print(f"  {event.created_at} {event.type} token={event.token_id} decision={event.decision}")

        ok = (
            token.used_reason == "expired_auto"
            and message.status == MessageStatus.DELIVERED
            and [e.type for e in events] == ["token_expired", "messages_released_auto"]
        )
        print("\nResult:", "OK" if ok else "UNEXPECTED STATE")

        if not keep:
            cleanup(session, profile, message)
            print("Seeded rows removed")

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify the expired-token release flow")
    parser.add_argument("--keep", action="store_true", help="Keep the seeded rows")
    args = parser.parse_args()
    main(keep=args.keep)

"""Tests for trusted-contact decisions."""

from datetime import timedelta

import pytest
from sqlmodel import Session, select

from app.checkin.decision import apply_decision
from app.checkin.errors import (
    ConcurrentClaimError,
    InvalidDecisionError,
    InvalidTokenError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from app.core.clock import ensure_utc
from app.models import CheckinStatus, ConfirmationEvent, Message, MessageStatus
from app.store import tokens as token_store
from app.store.checkins import get_checkin


@pytest.fixture(name="absent_user")
def absent_user_fixture(make_profile, make_checkin, make_contact, make_message):
    """A user marked absent with two check-in messages and one contact."""
    profile = make_profile()
    contact = make_contact(profile)
    make_message(profile, recipient_email="one@example.com", contacts=[contact])
    make_message(profile, recipient_email="two@example.com", contacts=[contact])
    make_checkin(profile, attempts=3, status=CheckinStatus.CONFIRMED_ABSENT)
    return profile


def statuses(session: Session, user_id) -> list[str]:
    session.expire_all()
    return [m.status for m in session.exec(select(Message).where(Message.owner_id == user_id)).all()]


class TestConfirm:
    """Tests for the confirm decision."""

    def test_confirm_releases_messages(self, session: Session, notifier, absent_user, make_token, now):
        raw, token = make_token(absent_user)

        result = apply_decision(session, raw, "confirm", notifier, ip="10.0.0.1", user_agent="browser", now=now)

        assert result["success"] is True
        assert result["action"] == "released"
        assert result["details"]["sent"] == 2
        assert statuses(session, absent_user.id) == [MessageStatus.DELIVERED] * 2
        assert {s[0] for s in notifier.sent} == {"one@example.com", "two@example.com"}

        session.refresh(token)
        assert ensure_utc(token.used_at) == now
        assert token.used_reason == "user_action"
        assert token.used_ip == "10.0.0.1"
        assert token.used_user_agent == "browser"

    def test_confirm_records_one_event(self, session: Session, notifier, absent_user, make_token, now):
        raw, token = make_token(absent_user)

        apply_decision(session, raw, "confirm", notifier, now=now)

        events = session.exec(select(ConfirmationEvent)).all()
        assert len(events) == 1
        assert events[0].type == "decision_confirm"
        assert events[0].decision == "confirm"
        assert events[0].token_id == token.id
        assert events[0].ip_address == "unknown"

    def test_second_use_is_rejected(self, session: Session, notifier, absent_user, make_token, now):
        """Test the same link submitted twice releases once."""
        raw, _ = make_token(absent_user)
        apply_decision(session, raw, "confirm", notifier, now=now)

        with pytest.raises(TokenAlreadyUsedError) as exc_info:
            apply_decision(session, raw, "confirm", notifier, now=now)

        assert exc_info.value.status_code == 409
        assert len(notifier.sent) == 2

    def test_lost_claim_is_a_conflict(self, session: Session, notifier, absent_user, make_token, now, monkeypatch):
        """Test a claim that matches no row surfaces as a concurrent-use conflict."""
        raw, _ = make_token(absent_user)
        monkeypatch.setattr(token_store, "claim_token", lambda *args, **kwargs: False)

        with pytest.raises(ConcurrentClaimError) as exc_info:
            apply_decision(session, raw, "confirm", notifier, now=now)

        assert exc_info.value.status_code == 409
        assert notifier.sent == []

    def test_sibling_tokens_are_independent(self, session: Session, notifier, absent_user, make_token, now):
        """Test a second contact confirming after the first finds nothing left to send."""
        raw_a, _ = make_token(absent_user, "a@example.com")
        raw_b, _ = make_token(absent_user, "b@example.com")

        apply_decision(session, raw_a, "confirm", notifier, now=now)
        result = apply_decision(session, raw_b, "confirm", notifier, now=now)

        assert result["details"] == {"processed": 0, "sent": 0, "errors": []}
        assert len(notifier.sent) == 2


class TestDeny:
    """Tests for the deny decision."""

    def test_deny_resets_checkin(self, session: Session, notifier, absent_user, make_token, now):
        raw, _ = make_token(absent_user)

        result = apply_decision(session, raw, "deny", notifier, now=now)

        assert result == {"success": True, "action": "reset"}
        assert notifier.sent == []
        assert statuses(session, absent_user.id) == [MessageStatus.SCHEDULED] * 2

        checkin = get_checkin(session, absent_user.id)
        assert checkin.status == CheckinStatus.ACTIVE
        assert checkin.attempts == 0
        assert ensure_utc(checkin.next_due_at) == now + timedelta(hours=48)

    def test_deny_closes_sibling_tokens(self, session: Session, notifier, absent_user, make_token, now):
        raw_a, _ = make_token(absent_user, "a@example.com")
        raw_b, sibling = make_token(absent_user, "b@example.com")

        apply_decision(session, raw_a, "deny", notifier, now=now)

        session.refresh(sibling)
        assert sibling.used_reason == "denied_by_contact"
        with pytest.raises(TokenAlreadyUsedError):
            apply_decision(session, raw_b, "confirm", notifier, now=now)
        assert notifier.sent == []

    def test_deny_event_has_decision(self, session: Session, notifier, absent_user, make_token, now):
        raw, _ = make_token(absent_user)

        apply_decision(session, raw, "deny", notifier, now=now)

        event = session.exec(select(ConfirmationEvent)).one()
        assert (event.type, event.decision) == ("decision_deny", "deny")


class TestRejections:
    """Tests for requests rejected before any state changes."""

    @pytest.mark.parametrize("decision", [None, "", "maybe", "CONFIRM"])
    def test_invalid_decision(self, session: Session, notifier, absent_user, make_token, decision):
        raw, token = make_token(absent_user)

        with pytest.raises(InvalidDecisionError) as exc_info:
            apply_decision(session, raw, decision, notifier)

        assert exc_info.value.status_code == 400
        session.refresh(token)
        assert token.used_at is None

    def test_missing_token(self, session: Session, notifier):
        with pytest.raises(InvalidDecisionError):
            apply_decision(session, None, "confirm", notifier)

    def test_unknown_token(self, session: Session, notifier):
        with pytest.raises(InvalidTokenError) as exc_info:
            apply_decision(session, "f" * 64, "confirm", notifier)
        assert exc_info.value.status_code == 400

    def test_expired_token(self, session: Session, notifier, absent_user, make_token, now):
        """Test a stale link not yet swept gets a distinct expiry error and claims nothing."""
        raw, token = make_token(absent_user, expires_in=timedelta(minutes=-5))

        with pytest.raises(TokenExpiredError) as exc_info:
            apply_decision(session, raw, "confirm", notifier, now=now)

        assert exc_info.value.status_code == 410
        session.refresh(token)
        assert token.used_at is None
        assert notifier.sent == []

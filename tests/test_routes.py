"""Tests for API routes."""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.core.config import settings
from app.core.security import create_media_token
from app.models import CheckinStatus, DeliveryMode, Message, MessageStatus


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestVerifyStatusRoute:
    """Tests for POST /api/verify-status."""

    @pytest.fixture(name="absent_user")
    def absent_user_fixture(self, make_profile, make_checkin, make_message):
        profile = make_profile()
        make_message(profile)
        make_checkin(profile, attempts=3, status=CheckinStatus.CONFIRMED_ABSENT)
        return profile

    def test_confirm_then_repeat(self, client: TestClient, session: Session, absent_user, make_token):
        """Test the first confirm releases and a repeat gets 409."""
        raw, token = make_token(absent_user)

        response = client.post("/api/verify-status", json={"token": raw, "decision": "confirm"})
        assert response.status_code == 200
        assert response.json()["action"] == "released"
        assert response.json()["details"]["sent"] == 1

        response = client.post("/api/verify-status", json={"token": raw, "decision": "confirm"})
        assert response.status_code == 409

        session.refresh(token)
        assert token.used_ip == "testclient"
        assert token.used_user_agent == "testclient"

    def test_forwarded_for_is_recorded(self, client: TestClient, session: Session, absent_user, make_token):
        raw, token = make_token(absent_user)

        client.post(
            "/api/verify-status",
            json={"token": raw, "decision": "deny"},
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

        session.refresh(token)
        assert token.used_ip == "203.0.113.7"

    def test_deny(self, client: TestClient, absent_user, make_token):
        raw, _ = make_token(absent_user)

        response = client.post("/api/verify-status", json={"token": raw, "decision": "deny"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "action": "reset"}

    @pytest.mark.parametrize(
        "payload",
        [{}, {"token": "abc"}, {"token": "abc", "decision": "maybe"}, {"decision": "confirm"}],
    )
    def test_malformed_request(self, client: TestClient, payload):
        response = client.post("/api/verify-status", json=payload)
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "payload",
        [{"token": 123, "decision": "confirm"}, {"token": "abc", "decision": ["confirm"]}, ["confirm"]],
    )
    def test_wrongly_typed_body(self, client: TestClient, payload):
        """Test bodies that fail model validation are invalid requests, not 422s."""
        response = client.post("/api/verify-status", json=payload)
        assert response.status_code == 400

    def test_body_not_json(self, client: TestClient):
        response = client.post(
            "/api/verify-status",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_other_routes_keep_default_validation(self, client: TestClient):
        assert client.get("/checkins/not-a-uuid").status_code == 422

    def test_unknown_token(self, client: TestClient):
        response = client.post("/api/verify-status", json={"token": "0" * 64, "decision": "confirm"})
        assert response.status_code == 400

    def test_expired_token(self, client: TestClient, absent_user, make_token):
        raw, _ = make_token(absent_user, expires_in=timedelta(minutes=-1))

        response = client.post("/api/verify-status", json={"token": raw, "decision": "confirm"})

        assert response.status_code == 410


class TestCronRoutes:
    """Tests for the scheduler-facing endpoints."""

    @pytest.mark.parametrize(
        "path", ["/api/cron/process-checkins", "/api/cron/process-expired-tokens", "/api/cron/process-messages"]
    )
    def test_requires_secret_when_configured(self, client: TestClient, monkeypatch, path):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")

        assert client.get(path).status_code == 401
        assert client.get(path, headers={"X-Cron-Secret": "wrong"}).status_code == 401
        assert client.get(path, headers={"X-Cron-Secret": "s3cret"}).status_code == 200
        assert client.post(path, headers={"Authorization": "Bearer s3cret"}).status_code == 200

    def test_production_without_secret_rejects(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "")
        monkeypatch.setattr(settings, "environment", "production")

        assert client.get("/api/cron/process-checkins").status_code == 401

    def test_process_checkins(self, client: TestClient, notifier, make_profile, make_checkin):
        profile = make_profile()
        make_checkin(profile)

        response = client.post("/api/cron/process-checkins")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["processed"] == 1
        assert results["reminders_sent"] == 1
        assert len(notifier.sent_to(profile.email)) == 1

    def test_process_expired_tokens(self, client: TestClient, make_profile, make_message, make_token):
        profile = make_profile()
        make_message(profile)
        make_token(profile, expires_in=timedelta(hours=-1))

        response = client.get("/api/cron/process-expired-tokens")

        assert response.json()["results"] == {"processed": 1, "released": 1, "errors": []}

    def test_process_messages(self, client: TestClient, session: Session, make_profile, make_message, now):
        profile = make_profile()
        message = make_message(profile, mode=DeliveryMode.DATE, deliver_at=now - timedelta(hours=1))

        response = client.get("/api/cron/process-messages")

        assert response.json()["results"]["sent"] == 1
        assert session.get(Message, message.id).status == MessageStatus.DELIVERED


class TestCheckinRoutes:
    """Tests for the user's check-in routes."""

    def test_enable_and_status(self, client: TestClient, make_profile):
        profile = make_profile(plan="pro")

        response = client.post(f"/checkins/{profile.id}", json={"interval_days": 60})
        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert response.json()["days_remaining"] == 60

        response = client.get(f"/checkins/{profile.id}")
        assert response.json()["has_checkin"] is True

    def test_enable_with_default_interval(self, client: TestClient, make_profile):
        response = client.post(f"/checkins/{make_profile(plan='free').id}")
        assert response.status_code == 200
        assert response.json()["days_remaining"] == 30

    def test_interval_not_on_plan(self, client: TestClient, make_profile):
        response = client.post(f"/checkins/{make_profile(plan='free').id}", json={"interval_days": 90})
        assert response.status_code == 400

    def test_unknown_user(self, client: TestClient):
        assert client.post(f"/checkins/{uuid4()}").status_code == 404

    def test_status_without_checkin(self, client: TestClient, make_profile):
        response = client.get(f"/checkins/{make_profile().id}")
        assert response.json() == {"has_checkin": False}

    def test_confirm(self, client: TestClient, session: Session, make_profile, make_checkin):
        profile = make_profile()
        checkin = make_checkin(profile, attempts=1, status=CheckinStatus.PENDING)

        response = client.post(f"/checkins/{profile.id}/confirm")

        assert response.status_code == 200
        assert response.json()["success"] is True
        session.refresh(checkin)
        assert checkin.attempts == 0
        assert checkin.status == CheckinStatus.ACTIVE

    def test_confirm_without_checkin(self, client: TestClient, make_profile):
        assert client.post(f"/checkins/{make_profile().id}/confirm").status_code == 404


class TestAuditRoute:
    """Tests for the confirmation audit."""

    def test_audit_hides_token_hash(self, client: TestClient, make_profile, make_message, make_token):
        profile = make_profile()
        make_message(profile)
        raw, token = make_token(profile)
        client.post("/api/verify-status", json={"token": raw, "decision": "confirm"})

        response = client.get("/api/admin/confirmation-audit", params={"user_id": str(profile.id)})

        assert response.status_code == 200
        data = response.json()
        assert data["target_user_id"] == str(profile.id)
        assert len(data["tokens"]) == 1
        assert "token_hash" not in data["tokens"][0]
        assert data["tokens"][0]["used_reason"] == "user_action"
        assert [e["type"] for e in data["events"]] == ["decision_confirm"]

    def test_audit_requires_user_id(self, client: TestClient):
        assert client.get("/api/admin/confirmation-audit").status_code == 400

    def test_audit_requires_secret(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        response = client.get("/api/admin/confirmation-audit", params={"user_id": str(uuid4())})
        assert response.status_code == 401


class TestMediaRoute:
    """Tests for signed media links."""

    def test_valid_link_redirects(self, client: TestClient, now):
        message_id = uuid4()
        token = create_media_token(message_id, "audio/last words.m4a", now)

        response = client.get(f"/media/{message_id}", params={"token": token}, follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == f"{settings.media_base_url}/audio/last%20words.m4a"

    def test_expired_link(self, client: TestClient, now):
        message_id = uuid4()
        token = create_media_token(message_id, "a.m4a", now - timedelta(days=settings.media_link_ttl_days + 1))

        assert client.get(f"/media/{message_id}", params={"token": token}).status_code == 410

    def test_link_for_other_message(self, client: TestClient, now):
        token = create_media_token(uuid4(), "a.m4a", now)

        assert client.get(f"/media/{uuid4()}", params={"token": token}).status_code == 401

    def test_forged_link(self, client: TestClient):
        assert client.get(f"/media/{uuid4()}", params={"token": "not-a-jwt"}).status_code == 401

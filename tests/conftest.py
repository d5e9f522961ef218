"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.core.database import get_session
from app.core.security import hash_verification_token, make_verification_token
from app.mail.notifier import NotifierError, get_notifier
from app.main import app
from app.models import (
    Checkin,
    CheckinStatus,
    DeliveryMode,
    DeliveryRule,
    Message,
    MessageStatus,
    MessageType,
    Profile,
    Recipient,
    TrustedContact,
    VerificationToken,
)


class FakeNotifier:
    """Records every send; raises for addresses listed in ``fail_for``."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for: set[str] = set()

    def send(self, to_address: str, subject: str, body: str) -> str:
        if to_address in self.fail_for:
            raise NotifierError(f"Mailbox unavailable: {to_address}")
        self.sent.append((to_address, subject, body))
        return f"fake-{len(self.sent)}"

    def sent_to(self, address: str) -> list[tuple[str, str, str]]:
        return [s for s in self.sent if s[0] == address]


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="notifier")
def notifier_fixture() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(name="client")
def client_fixture(session: Session, notifier: FakeNotifier):
    """Create a test client with the test database session and fake notifier."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_notifier] = lambda: notifier
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="now")
def now_fixture() -> datetime:
    return datetime.now(UTC)


@pytest.fixture(name="make_profile")
def make_profile_fixture(session: Session):
    """Factory for user profiles."""

    def make(email="user@example.com", display_name="Alex Doe", plan="pro") -> Profile:
        profile = Profile(email=email, display_name=display_name, plan=plan)
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return make


@pytest.fixture(name="make_checkin")
def make_checkin_fixture(session: Session, now: datetime):
    """Factory for check-ins; overdue by one hour unless told otherwise."""

    def make(profile: Profile, attempts=0, status=CheckinStatus.ACTIVE, next_due_at=None) -> Checkin:
        checkin = Checkin(
            user_id=profile.id,
            status=status,
            attempts=attempts,
            last_confirmed_at=now - timedelta(days=31),
            next_due_at=next_due_at or now - timedelta(hours=1),
        )
        session.add(checkin)
        session.commit()
        session.refresh(checkin)
        return checkin

    return make


@pytest.fixture(name="make_message")
def make_message_fixture(session: Session):
    """Factory for messages with one recipient and a delivery rule."""

    def make(
        profile: Profile,
        mode=DeliveryMode.CHECKIN,
        status=MessageStatus.SCHEDULED,
        type=MessageType.TEXT,
        text_content="Thank you for everything.",
        media_path=None,
        recipient_email="recipient@example.com",
        deliver_at=None,
        checkin_interval_days=30,
        contacts=(),
    ) -> Message:
        message = Message(
            owner_id=profile.id,
            type=type,
            status=status,
            text_content=text_content,
            media_path=media_path,
        )
        session.add(message)
        session.flush()
        session.add(
            DeliveryRule(
                message_id=message.id,
                mode=mode,
                deliver_at=deliver_at,
                checkin_interval_days=checkin_interval_days if mode == DeliveryMode.CHECKIN else None,
            )
        )
        if recipient_email is not None:
            session.add(Recipient(message_id=message.id, name="Sam", email=recipient_email))
        message.trusted_contacts = list(contacts)
        session.commit()
        session.refresh(message)
        return message

    return make


@pytest.fixture(name="make_contact")
def make_contact_fixture(session: Session, now: datetime):
    """Factory for trusted contacts; ``age`` pushes created_at into the past."""

    def make(profile: Profile, email="contact@example.com", name="Jordan", age=timedelta(0)) -> TrustedContact:
        contact = TrustedContact(user_id=profile.id, name=name, email=email, created_at=now - age)
        session.add(contact)
        session.commit()
        session.refresh(contact)
        return contact

    return make


@pytest.fixture(name="make_token")
def make_token_fixture(session: Session, now: datetime):
    """Factory returning (raw secret, persisted token)."""

    def make(profile: Profile, contact_email="contact@example.com", expires_in=timedelta(hours=48)):
        raw = make_verification_token()
        token = VerificationToken(
            user_id=profile.id,
            contact_email=contact_email,
            token_hash=hash_verification_token(raw),
            expires_at=now + expires_in,
        )
        session.add(token)
        session.commit()
        session.refresh(token)
        return raw, token

    return make

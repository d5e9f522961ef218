"""Render outbound emails from the Jinja2 templates in ``templates/``."""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings

TEMPLATE_DIR = Path(__file__).parent / "templates"

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_checkin_reminder(attempt: int, max_reminders: int, confirm_url: str) -> tuple[str, str]:
    """Reminder asking the user to confirm they are still active."""
    subject = f"Check-in reminder - {settings.app_name}"
    html = env.get_template("checkin_reminder.html").render(
        app_name=settings.app_name,
        attempt=attempt,
        max_reminders=max_reminders,
        confirm_url=confirm_url,
    )
    return subject, html


def render_trusted_contact_verify(
    contact_name: str | None, user_label: str, verify_url: str, validity_hours: int
) -> tuple[str, str]:
    """Verification request sent to a trusted contact."""
    subject = f"Please confirm the status of {user_label}"
    html = env.get_template("trusted_contact_verify.html").render(
        app_name=settings.app_name,
        contact_name=contact_name,
        user_label=user_label,
        verify_url=verify_url,
        validity_hours=validity_hours,
    )
    return subject, html


def render_message_delivery(
    message_type: str,
    text_content: str | None,
    media_url: str | None,
    media_ttl_days: int,
) -> tuple[str, str]:
    """
    The delivered message itself.

    Text is inlined; audio and video are referenced through ``media_url``.
    When a media message has no link the email says so rather than being
    dropped.
    """
    subject = f"You have a message via {settings.app_name}"
    html = env.get_template("message_delivery.html").render(
        app_name=settings.app_name,
        message_type=message_type,
        text_content=text_content,
        media_url=media_url,
        media_ttl_days=media_ttl_days,
    )
    return subject, html

"""Background job scheduler for the check-in release jobs.

The same jobs are exposed under /api/cron for an external scheduler; set
SCHEDULER_ENABLED=false when one is used. Overlapping runs are safe either
way because every state change is a conditional write.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from app.checkin.delivery import deliver_due_messages
from app.checkin.escalation import process_checkins
from app.checkin.sweeper import process_expired_tokens
from app.core.config import settings
from app.core.database import engine
from app.mail.notifier import get_notifier

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def checkin_job():
    """Daily escalation of overdue check-ins."""
    try:
        with Session(engine) as session:
            stats = process_checkins(session, get_notifier())
            logger.info(f"Check-in job completed: {stats}")
    except Exception as e:
        logger.error(f"Check-in job failed: {e}")


def expiry_job():
    """Sweep expired verification tokens."""
    try:
        with Session(engine) as session:
            stats = process_expired_tokens(session, get_notifier())
            logger.info(f"Expiry sweep completed: {stats}")
    except Exception as e:
        logger.error(f"Expiry sweep failed: {e}")


def delivery_job():
    """Deliver date-mode messages that are due."""
    try:
        with Session(engine) as session:
            stats = deliver_due_messages(session, get_notifier())
            logger.info(f"Delivery job completed: {stats}")
    except Exception as e:
        logger.error(f"Delivery job failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled, relying on external cron")
        return

    scheduler.add_job(
        checkin_job,
        trigger=CronTrigger(hour=settings.checkin_job_hour, minute=0),
        id="process_checkins",
        replace_existing=True,
    )
    scheduler.add_job(
        expiry_job,
        trigger=IntervalTrigger(minutes=settings.expiry_sweep_minutes),
        id="process_expired_tokens",
        replace_existing=True,
    )
    scheduler.add_job(
        delivery_job,
        trigger=IntervalTrigger(minutes=settings.delivery_interval_minutes),
        id="process_messages",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: check-ins daily at {settings.checkin_job_hour:02d}:00, "
        f"expiry sweep every {settings.expiry_sweep_minutes} minutes, "
        f"deliveries every {settings.delivery_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")

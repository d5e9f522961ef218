"""Plan limits for the check-in protocol.

FREE:
    - 30 day check-in interval only
    - 1 reminder before trusted contacts are asked
    - 1 trusted contact

PRO:
    - 30/60/90 day check-in intervals
    - 3 reminders before trusted contacts are asked
    - up to 3 trusted contacts
"""
from dataclasses import dataclass

FREE = "free"
PRO = "pro"


@dataclass(frozen=True)
class PlanLimits:
    max_reminders: int
    allowed_checkin_intervals: tuple[int, ...]
    max_trusted_contacts: int


PLAN_LIMITS: dict[str, PlanLimits] = {
    FREE: PlanLimits(
        max_reminders=1,
        allowed_checkin_intervals=(30,),
        max_trusted_contacts=1,
    ),
    PRO: PlanLimits(
        max_reminders=3,
        allowed_checkin_intervals=(30, 60, 90),
        max_trusted_contacts=3,
    ),
}


def get_plan_limits(plan: str | None) -> PlanLimits:
    """Limits for a plan; unknown or missing plans get the free limits."""
    return PLAN_LIMITS.get(plan or FREE, PLAN_LIMITS[FREE])


def get_max_reminders(plan: str | None) -> int:
    return get_plan_limits(plan).max_reminders


def is_checkin_interval_allowed(plan: str | None, interval_days: int) -> bool:
    return interval_days in get_plan_limits(plan).allowed_checkin_intervals

"""Errors raised by the verify-status decision flow.

Each error carries the HTTP status the decision endpoint answers with, so a
contact clicking a stale link can tell "your request was wrong" (400) from
"you were too late" (409) and "the link ran out" (410).
"""


class VerificationError(Exception):
    status_code = 400


class InvalidDecisionError(VerificationError):
    """Missing token or a decision other than confirm/deny."""


class InvalidTokenError(VerificationError):
    """No token matches the submitted secret."""


class TokenAlreadyUsedError(VerificationError):
    status_code = 409


class ConcurrentClaimError(TokenAlreadyUsedError):
    """The conditional claim lost to another writer."""


class TokenExpiredError(VerificationError):
    status_code = 410


class CheckinNotFoundError(Exception):
    """The user has never enabled check-in delivery."""


class IntervalNotAllowedError(ValueError):
    """The requested check-in interval is not available on the user's plan."""


class ProfileNotFoundError(LookupError):
    """No profile exists for the given user id."""

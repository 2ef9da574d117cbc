"""
UTC timestamp utilities (stdlib-only).

Every instant the scheduler compares (``now``, ``delay_until``,
``run_until``, ``last_execution_at``) must be timezone-aware UTC; mixing
naive and aware datetimes raises ``TypeError`` at comparison time.

Tags:
    timestamps, utc, datetime, stdlib-only
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return ``dt`` as an aware UTC datetime.

    Naive values are assumed to already be in UTC (that is how the store
    persists them).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_status_time(dt: datetime | None) -> str:
    """Format an instant for cycle status lines (``dd/mm/YYYY HH:MM:SS``)."""
    if dt is None:
        return "never"
    return dt.strftime("%d/%m/%Y %H:%M:%S")

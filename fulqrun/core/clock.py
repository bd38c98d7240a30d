"""
Injectable wall-clock access.

The snapshot adapter and the deal health analyzer both measure elapsed days
against "now". They take a Clock so tests can pin time; production code uses
utc_now.
"""

from datetime import datetime, timezone
from typing import Callable

# A zero-argument callable returning a timezone-aware datetime
Clock = Callable[[], datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """Return a Clock that always reports `moment`."""
    moment = ensure_aware(moment)
    return lambda: moment


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_between(earlier: datetime, later: datetime) -> int:
    """
    Whole days from `earlier` to `later`, floored and never negative.

    Timestamps in the future (clock skew, bad data) yield 0.
    """
    delta = ensure_aware(later) - ensure_aware(earlier)
    days = int(delta.total_seconds() // SECONDS_PER_DAY)
    return max(0, days)

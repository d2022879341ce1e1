"""
Wall-clock sources and date/hour extraction.

Day and hour buckets are derived from the datetime a clock returns, so the
clock decides the timezone policy.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    """Current time in UTC. This is the default clock."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current time in the host's local timezone."""
    return datetime.now().astimezone()


def date_key(moment: datetime) -> str:
    """Format a datetime as the YYYY-MM-DD key used for daily records."""
    return moment.strftime(DATE_FORMAT)

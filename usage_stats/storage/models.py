"""
Data models for storage layer.

Defines the daily statistics document and its counter buckets.
"""

from dataclasses import dataclass, field
from typing import Dict, List

HOURS_PER_DAY = 24
DOCUMENT_VERSION = "1.0"
DOCUMENT_DESCRIPTION = "Daily API request statistics"


@dataclass
class RequestCounts:
    """Request totals for one day. success + failed always equals total."""
    total: int = 0
    success: int = 0
    failed: int = 0


@dataclass
class TokenCounts:
    """Token totals for one day. prompt + completion always equals total."""
    total: int = 0
    prompt: int = 0
    completion: int = 0


@dataclass
class UsageCounter:
    """Request and token counters for a model or a masked credential."""
    requests: int = 0
    tokens: int = 0


@dataclass
class HourlyUsage:
    """Counters for one hour-of-day bucket."""
    hour: int
    requests: int = 0
    tokens: int = 0


def _empty_hours() -> List[HourlyUsage]:
    return [HourlyUsage(hour=hour) for hour in range(HOURS_PER_DAY)]


@dataclass
class DailyStats:
    """Aggregated usage for a single calendar date.

    The hourly list always holds 24 buckets where the list index equals
    the bucket's hour.
    """
    date: str
    requests: RequestCounts = field(default_factory=RequestCounts)
    tokens: TokenCounts = field(default_factory=TokenCounts)
    models: Dict[str, UsageCounter] = field(default_factory=dict)
    hourly: List[HourlyUsage] = field(default_factory=_empty_hours)


@dataclass
class UsageDocument:
    """Root of the persisted statistics file.

    Attributes:
        version: Schema version tag
        description: Human-readable description of the file
        last_updated: ISO-8601 timestamp of the last save
        daily_stats: Retained daily records in insertion order
        keys_usage: Masked credential -> date -> counters
    """
    version: str = DOCUMENT_VERSION
    description: str = DOCUMENT_DESCRIPTION
    last_updated: str = ""
    daily_stats: List[DailyStats] = field(default_factory=list)
    keys_usage: Dict[str, Dict[str, UsageCounter]] = field(default_factory=dict)

    @classmethod
    def create(cls, today: str, timestamp: str) -> "UsageDocument":
        """Build a fresh document with an empty record for today."""
        return cls(last_updated=timestamp, daily_stats=[DailyStats(date=today)])

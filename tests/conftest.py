"""
Shared test fixtures.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from usage_stats.core.engine import UsageStatsEngine
from usage_stats.storage.file_store import DocumentStore


class FakeClock:
    """Settable clock for driving day and hour rollovers."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock fixed at 2024-01-15 10:30 UTC."""
    return FakeClock(datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc))


@pytest.fixture
def data_path(tmp_path):
    """Stats file path inside a directory that does not exist yet."""
    return os.path.join(str(tmp_path), "data", "daily.json")


@pytest.fixture
def engine(data_path, clock):
    """Initialized engine backed by a temporary file."""
    stats_engine = UsageStatsEngine(DocumentStore(data_path, clock=clock), clock=clock)
    stats_engine.initialize()
    yield stats_engine
    stats_engine.close()

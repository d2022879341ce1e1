"""
Read-only snapshots of the statistics document.

Every function returns deep copies so callers can keep or modify results
without touching shared state.
"""

import copy
from typing import Dict, Optional

from .masking import mask_credential
from .retention import RetentionStore
from usage_stats.storage.models import DailyStats, UsageCounter, UsageDocument


def daily_snapshot(retention: RetentionStore, date: str) -> Optional[DailyStats]:
    """Copy of the record for ``date``, or None if it is not retained."""
    record = retention.find(date)
    if record is None:
        return None
    return copy.deepcopy(record)


def credential_snapshot(document: UsageDocument, credential: str, date: str) -> Optional[UsageCounter]:
    """Copy of a credential's counters for ``date``, or None."""
    usage = document.keys_usage.get(mask_credential(credential), {}).get(date)
    if usage is None:
        return None
    return copy.deepcopy(usage)


def history_snapshot(retention: RetentionStore) -> Dict[str, DailyStats]:
    """Copies of all retained records keyed by date.

    If a date appears more than once the first record wins, matching
    lookup semantics.
    """
    result: Dict[str, DailyStats] = {}
    for record in retention:
        if record.date not in result:
            result[record.date] = copy.deepcopy(record)
    return result

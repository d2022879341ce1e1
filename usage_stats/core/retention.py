"""
Retention of daily records.

Keeps the most recent daily records in insertion order, capped at a
fixed number of days.
"""

from typing import Iterator, List, Optional, Tuple

from usage_stats.storage.models import DailyStats

DEFAULT_MAX_DAYS = 30


class RetentionStore:
    """Ordered, size-capped view over a document's daily records.

    Operates on the list it is given in place, so the owning document
    always reflects appends and truncation. Records are kept in the order
    they were created; when the cap is exceeded the oldest entries (by
    position, not by date) are dropped.
    """

    def __init__(self, records: List[DailyStats], max_days: int = DEFAULT_MAX_DAYS):
        if max_days < 1:
            raise ValueError("max_days must be >= 1")
        self._records = records
        self.max_days = max_days

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DailyStats]:
        return iter(self._records)

    def dates(self) -> List[str]:
        """Dates of the retained records in stored order."""
        return [record.date for record in self._records]

    def find(self, date: str) -> Optional[DailyStats]:
        """Return the first record for ``date``, or None."""
        for record in self._records:
            if record.date == date:
                return record
        return None

    def ensure(self, date: str) -> Tuple[DailyStats, bool]:
        """Get the record for ``date``, appending an empty one if missing.

        Args:
            date: Date key (YYYY-MM-DD)

        Returns:
            Tuple of the record and whether it was created
        """
        record = self.find(date)
        if record is not None:
            return record, False

        record = DailyStats(date=date)
        self._records.append(record)
        self.truncate()
        return record, True

    def truncate(self) -> None:
        """Drop the oldest records until at most max_days remain."""
        excess = len(self._records) - self.max_days
        if excess > 0:
            del self._records[:excess]

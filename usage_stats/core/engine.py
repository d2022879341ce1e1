"""
Usage stats engine.

Owns the statistics document and coordinates loading, aggregation,
snapshot reads and background persistence.
"""

import copy
import logging
import threading
from typing import Dict, Optional

from .aggregator import UsageObservation, apply_usage
from .clock import Clock, date_key, utc_now
from .persistence import PersistWorker
from .retention import DEFAULT_MAX_DAYS, RetentionStore
from .snapshot import credential_snapshot, daily_snapshot, history_snapshot
from usage_stats.config.loader import StatsConfig
from usage_stats.storage.errors import CorruptState, DocumentDecodeError, StateNotFound
from usage_stats.storage.file_store import DocumentStore
from usage_stats.storage.models import DailyStats, UsageCounter, UsageDocument

logger = logging.getLogger(__name__)


class UsageStatsEngine:
    """In-process aggregator of daily request and token counters.

    One engine owns one document. Every access goes through a single lock;
    writes to disk happen on a background worker from a copy taken under
    that lock, so callers of ``record_usage`` never wait on file I/O.

    Typical use::

        engine = UsageStatsEngine(DocumentStore("./data/daily.json"))
        engine.initialize()
        engine.record_usage("sk-...", "gpt-4", 1, 120, 30, True)
        engine.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock = utc_now,
        max_days: int = DEFAULT_MAX_DAYS
    ):
        """Create an engine. Nothing is loaded until ``initialize``.

        Args:
            store: Backing file store
            clock: Zero-argument callable returning the current datetime
            max_days: Number of daily records to retain
        """
        if max_days < 1:
            raise ValueError("max_days must be >= 1")
        self.store = store
        self._clock = clock
        self._max_days = max_days
        self._lock = threading.RLock()
        self._document: Optional[UsageDocument] = None
        self._retention: Optional[RetentionStore] = None
        self._closed = False
        self._worker = PersistWorker(self.flush)

    @classmethod
    def from_config(cls, config: StatsConfig) -> "UsageStatsEngine":
        """Build an engine from loaded configuration."""
        clock = config.timezone.clock()
        return cls(
            store=DocumentStore(config.data_path, clock=clock),
            clock=clock,
            max_days=config.max_days
        )

    def __enter__(self) -> "UsageStatsEngine":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def initialized(self) -> bool:
        with self._lock:
            return self._document is not None

    def initialize(self) -> None:
        """Load the statistics file, creating it on first run.

        Raises:
            StorageUnavailable: If the directory or a new file cannot be written
            CorruptState: If an existing file cannot be parsed
            RuntimeError: If the engine has been closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Usage stats engine is closed")
        self.store.ensure_directory()

        try:
            document = self.store.load()
            logger.info("Loaded usage stats from %s", self.store.path)
        except StateNotFound:
            now = self._clock()
            document = UsageDocument.create(date_key(now), now.isoformat(timespec="seconds"))
            # Not shared yet, so it can be saved directly
            self.store.save(document)
            logger.info("Created new usage stats file at %s", self.store.path)
        except DocumentDecodeError as e:
            logger.error("Usage stats file %s is corrupt: %s", self.store.path, e)
            raise CorruptState(f"Cannot parse usage stats file {self.store.path}: {e}") from e

        with self._lock:
            self._document = document
            self._retention = RetentionStore(document.daily_stats, self._max_days)
            self._retention.truncate()

        self._worker.start()
        self.ensure_today()

    def ensure_today(self) -> bool:
        """Make sure a record exists for the current date.

        Returns:
            True if a new record was appended
        """
        today = date_key(self._clock())
        with self._lock:
            retention = self._require_retention()
            _, created = retention.ensure(today)
        if created:
            logger.info("Started usage stats for %s", today)
            self._worker.schedule()
        return created

    def record_usage(
        self,
        credential: str,
        model: str,
        request_count: int,
        prompt_tokens: int,
        completion_tokens: int,
        success: bool
    ) -> None:
        """Add a batch of requests to today's counters.

        The record for today is chosen from the engine clock at call time.
        A background save is scheduled; its failure is logged, not raised.

        Args:
            credential: Raw API credential, masked before storage; may be empty
            model: Model identifier; may be empty
            request_count: Number of requests in the batch
            prompt_tokens: Prompt tokens consumed
            completion_tokens: Completion tokens produced
            success: Whether the requests succeeded

        Raises:
            ValueError: If any count is negative
            RuntimeError: If the engine is not initialized or has been closed
        """
        observation = UsageObservation(
            credential=credential or "",
            model=model or "",
            request_count=request_count,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            success=success
        )
        moment = self._clock()
        with self._lock:
            retention = self._require_retention()
            created = apply_usage(self._document, retention, observation, moment)
        if created:
            logger.info("Started usage stats for %s", date_key(moment))
        self._worker.schedule()

    def get_daily(self, date: str = "") -> Optional[DailyStats]:
        """Copy of the record for ``date`` (today if empty), or None."""
        date = date or date_key(self._clock())
        with self._lock:
            if self._retention is None:
                return None
            return daily_snapshot(self._retention, date)

    def get_credential_usage(self, credential: str, date: str = "") -> Optional[UsageCounter]:
        """Copy of a credential's counters for ``date`` (today if empty), or None."""
        date = date or date_key(self._clock())
        with self._lock:
            if self._document is None:
                return None
            return credential_snapshot(self._document, credential, date)

    def get_all_daily(self) -> Dict[str, DailyStats]:
        """Copies of every retained daily record keyed by date."""
        with self._lock:
            if self._retention is None:
                return {}
            return history_snapshot(self._retention)

    def flush(self) -> None:
        """Write the current state to disk now.

        Raises:
            StorageUnavailable: If the file cannot be written
            RuntimeError: If the engine has not been initialized
        """
        with self._lock:
            if self._document is None:
                raise RuntimeError("Usage stats engine is not initialized")
            snapshot = copy.deepcopy(self._document)
        self.store.save(snapshot)

    def wait_for_persist(self, timeout: Optional[float] = None) -> bool:
        """Block until scheduled background saves have finished.

        Returns:
            False if the timeout elapsed first
        """
        return self._worker.drain(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Write pending state and stop the background worker.

        Reads keep working afterwards; mutations raise RuntimeError.
        """
        with self._lock:
            self._closed = True
        self._worker.stop(timeout)

    def _require_retention(self) -> RetentionStore:
        if self._closed:
            raise RuntimeError("Usage stats engine is closed")
        if self._retention is None:
            raise RuntimeError("Usage stats engine is not initialized")
        return self._retention

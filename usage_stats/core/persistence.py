"""
Background persistence.

A single worker thread drains a dirty flag, so bursts of mutations
coalesce into one write of the latest state.
"""

import logging
import threading
from typing import Callable, Optional

from usage_stats.storage.errors import StatsError

logger = logging.getLogger(__name__)


class PersistWorker:
    """Runs a persist callable off the caller's thread.

    ``schedule`` never blocks on I/O. Failures are logged and dropped;
    there is no retry. The next ``schedule`` call writes the full state
    again.
    """

    def __init__(self, persist: Callable[[], None], name: str = "usage-stats-persist"):
        self._persist = persist
        self._name = name
        self._cond = threading.Condition()
        self._pending = False
        self._busy = False
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the worker thread. Calling it again is a no-op."""
        with self._cond:
            if self._thread is not None or self._stopped:
                return
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def schedule(self) -> None:
        """Mark state dirty so the worker writes it soon."""
        with self._cond:
            if self._stopped:
                logger.warning("Usage stats worker is stopped; change will not be saved")
                return
            self._pending = True
            self._cond.notify_all()

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until no write is pending or in progress.

        Returns:
            False if the timeout elapsed first
        """
        with self._cond:
            return self._cond.wait_for(lambda: not self._pending and not self._busy, timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Write any pending state, then stop the worker thread."""
        with self._cond:
            self._stopped = True
            thread = self._thread
            if thread is None:
                # nothing will ever write it
                self._pending = False
            self._cond.notify_all()
        if thread is not None:
            thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or self._stopped)
                if not self._pending:
                    return
                self._pending = False
                self._busy = True
            try:
                self._persist()
            except StatsError as e:
                logger.error("Failed to save usage stats: %s", e)
            except Exception:
                logger.exception("Unexpected error while saving usage stats")
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()

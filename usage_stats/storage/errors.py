"""
Error kinds for the stats storage layer.

Callers distinguish a missing file (a normal first-run signal) from
storage that cannot be written and from state that cannot be parsed.
"""


class StatsError(Exception):
    """Base class for all usage stats errors."""


class StorageUnavailable(StatsError):
    """Raised when the data directory or file cannot be created or written."""


class StateNotFound(StatsError):
    """Raised when the backing file does not exist yet."""


class CorruptState(StatsError):
    """Raised when a backing file exists but cannot be parsed."""


class DocumentDecodeError(CorruptState):
    """Raised by the codec when content does not match the document shape."""

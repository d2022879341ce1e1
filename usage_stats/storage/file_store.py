"""
File-backed document storage.

Loads and saves the statistics document as a single JSON file.
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from usage_stats.core.clock import utc_now

from .codec import dumps, encode_document, loads
from .errors import DocumentDecodeError, StateNotFound, StorageUnavailable
from .models import UsageDocument

DEFAULT_DATA_PATH = "./data/daily.json"
DIRECTORY_MODE = 0o755
FILE_MODE = 0o644


class DocumentStore:
    """Reads and atomically rewrites the statistics file.

    The store holds no document state of its own. Callers that share a
    document between threads must hand ``save`` a document no other thread
    is mutating.
    """

    def __init__(self, path: str = DEFAULT_DATA_PATH, clock: Optional[Callable[[], datetime]] = None):
        """Initialize the store with a file path.

        Args:
            path: Path to the JSON statistics file
            clock: Zero-argument callable returning the save timestamp
        """
        self.path = Path(path)
        self._clock = clock or utc_now

    def ensure_directory(self) -> None:
        """Create the parent directory if it does not exist.

        Raises:
            StorageUnavailable: If the directory cannot be created
        """
        try:
            self.path.parent.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create data directory {self.path.parent}: {e}") from e

    def load(self) -> UsageDocument:
        """Load the document from disk.

        Returns:
            The decoded document

        Raises:
            StateNotFound: If the file does not exist
            DocumentDecodeError: If the content is not UTF-8 JSON of the document shape
            StorageUnavailable: If the file exists but cannot be read
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError as e:
            raise StateNotFound(f"Stats file not found: {self.path}") from e
        except OSError as e:
            raise StorageUnavailable(f"Cannot read stats file {self.path}: {e}") from e

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentDecodeError(f"Stats file is not valid UTF-8: {e}") from e
        return loads(text)

    def save(self, document: UsageDocument) -> None:
        """Stamp the document and overwrite the file with its full contents.

        Content is written to a temporary file in the same directory and
        moved over the target, so readers never observe a partial file.
        The temporary file is removed if anything fails before the move.

        Args:
            document: Document to persist; its last_updated field is updated

        Raises:
            StorageUnavailable: On any I/O or encoding error
        """
        document.last_updated = self._clock().isoformat(timespec="seconds")
        content = dumps(encode_document(document))

        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        except OSError as e:
            raise StorageUnavailable(f"Cannot write stats file {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            # mkstemp creates the file owner-only
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, self.path)
        except BaseException as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            if isinstance(e, (OSError, ValueError)):
                raise StorageUnavailable(f"Cannot write stats file {self.path}: {e}") from e
            raise

"""
Mosaic Backend — Abstract Storage Backend Interface
=====================================================

What:  Abstract base class defining the contract for contribution storage.
Why:   The upload and export pipelines never know whether bytes live on the
       local disk or in an object store. This is the Strategy design pattern.
How:   Concrete implementations inherit from StorageBackend and implement
       put(), open_read_stream(), derive_filename() and delete().
Who:   Built once by build_storage_backend() when the app is created, stored on
       app.state.storage and injected into handlers via get_storage().

File references:
    put() returns an opaque string (the file reference) that is persisted in
    the contributions table. Each backend must be able to turn its own
    references back into bytes without any other state.

Key naming (shared by both backends):
    user hash  = md5(str(user_id)) as hex
    timestamp  = milliseconds since the epoch, strictly increasing per backend
    suffix     = secure original filename stem + ".png", or "canvas.png"
"""

import hashlib
import threading
import time
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import AsyncIterator, Optional

from werkzeug.utils import secure_filename

CANVAS_SUFFIX = "canvas.png"
NORMALIZED_EXTENSION = ".png"
NORMALIZED_CONTENT_TYPE = "image/png"


class StorageBackend(ABC):
    """
    Abstract interface over where contribution images are kept.

    Contract:
        - put() persists bytes under a key and returns a file reference
        - open_read_stream() opens the object immediately (so a missing object
          fails before anything is read) and yields its bytes lazily
        - derive_filename() names the object inside an export archive
        - backend-specific errors are wrapped in FileStorageError;
          a missing object raises StorageObjectNotFoundError
    """

    #: Human-readable backend name, reported by the health endpoint
    name: str = "storage"

    def __init__(self) -> None:
        self._timestamp_lock = threading.Lock()
        self._last_timestamp = 0

    # ── Key construction ──────────────────────────────────────────────────

    @staticmethod
    def user_hash(user_id: int) -> str:
        """Hex MD5 of the user id; keeps raw ids out of paths and URLs."""
        return hashlib.md5(str(user_id).encode("utf-8")).hexdigest()

    @staticmethod
    def object_suffix(original_name: Optional[str]) -> str:
        """
        Final part of an object name.

        Uploads are always re-encoded as PNG, so only the original stem is
        kept. Names that sanitize to nothing fall back to "canvas.png".
        """
        if not original_name:
            return CANVAS_SUFFIX
        stem = PurePosixPath(secure_filename(original_name)).stem
        if not stem:
            return CANVAS_SUFFIX
        return f"{stem}{NORMALIZED_EXTENSION}"

    def next_timestamp(self) -> int:
        """
        Millisecond timestamp, strictly increasing for this backend instance.

        Two uploads from the same user in the same millisecond would otherwise
        produce the same key and overwrite each other.
        """
        now = int(time.time() * 1000)
        with self._timestamp_lock:
            if now <= self._last_timestamp:
                now = self._last_timestamp + 1
            self._last_timestamp = now
        return now

    @abstractmethod
    def build_key(
        self,
        collection_id: int,
        user_id: int,
        original_name: Optional[str] = None,
    ) -> str:
        """Build the backend-specific object key for a new contribution."""
        ...

    # ── Object operations ─────────────────────────────────────────────────

    @abstractmethod
    async def put(self, data: bytes, key: str) -> str:
        """
        Persist `data` under `key`.

        Returns:
            The file reference to store in the contribution record.

        Raises:
            FileStorageError: The write failed.
        """
        ...

    @abstractmethod
    async def open_read_stream(self, reference: str) -> AsyncIterator[bytes]:
        """
        Open the object behind `reference` and return an async byte iterator.

        The open happens when this coroutine is awaited; chunks are read only
        as the returned iterator is consumed. The iterator releases the
        underlying handle when exhausted or closed.

        Raises:
            StorageObjectNotFoundError: Nothing is stored under the reference.
            FileStorageError: The object exists but could not be opened.
        """
        ...

    @abstractmethod
    def derive_filename(self, reference: str) -> str:
        """Return the entry name used for `reference` inside an export archive."""
        ...

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """
        Remove the object behind `reference`.

        Best effort: a missing object is not an error, and failures are
        logged rather than raised.
        """
        ...

    async def health_check(self) -> bool:
        """Return True when the backend can currently serve requests."""
        return True

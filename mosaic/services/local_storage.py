"""
Mosaic Backend — Local Filesystem Storage Backend
===================================================

What:  Stores contribution images on the local disk under UPLOADS_ROOT.
How:   One directory per collection, created on demand; async file I/O via
       aiofiles so disk access never blocks the event loop.
Who:   Selected by build_storage_backend() when ENABLE_S3 is false.

Directory Structure:
    uploads/
    └── 42/                                   ← collection id
        ├── c4ca4238..._1718000000000_canvas.png
        └── c81e728d..._1718000000123_sunset.png

File references:
    The reference is the absolute path of the written file. Reading it back
    needs nothing but the path; references that resolve outside UPLOADS_ROOT
    are refused.
"""

import logging
import os
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import aiofiles.os

from mosaic.config import settings
from mosaic.exceptions import FileStorageError, StorageObjectNotFoundError
from mosaic.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
    """
    Filesystem implementation of StorageBackend.

    Directory creation uses mkdir(parents=True, exist_ok=True), so concurrent
    uploads racing to create the same collection directory are harmless.
    """

    name = "local"

    def __init__(self, root: Optional[str] = None, chunk_size: Optional[int] = None):
        """
        Args:
            root: Override the uploads root (used in tests).
                  If None, uses settings.uploads_root.
            chunk_size: Read size for open_read_stream (default: settings.storage_chunk_size).
        """
        super().__init__()
        self.root = Path(root or settings.uploads_root).resolve()
        self.chunk_size = chunk_size or settings.storage_chunk_size
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalStorageBackend initialized with root=%s", self.root)

    def build_key(
        self,
        collection_id: int,
        user_id: int,
        original_name: Optional[str] = None,
    ) -> str:
        """<collectionId>/<userHash>_<timestamp>_<suffix>, relative to the root."""
        filename = (
            f"{self.user_hash(user_id)}_{self.next_timestamp()}_"
            f"{self.object_suffix(original_name)}"
        )
        return f"{collection_id}/{filename}"

    def _resolve(self, reference: str) -> Path:
        path = Path(reference).resolve()
        if not path.is_relative_to(self.root):
            raise FileStorageError(
                message="File reference is outside the storage root",
                context={"reference": reference, "root": str(self.root)},
            )
        return path

    async def put(self, data: bytes, key: str) -> str:
        path = self._resolve(str(self.root / key))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", key, len(data))
        return str(path)

    async def open_read_stream(self, reference: str) -> AsyncIterator[bytes]:
        path = self._resolve(reference)
        try:
            handle = await aiofiles.open(path, "rb")
        except FileNotFoundError:
            raise StorageObjectNotFoundError(reference)
        except OSError as e:
            raise FileStorageError(
                message="Failed to open stored image",
                context={"reference": reference, "os_error": str(e)},
            )
        return self._iter_chunks(handle, reference)

    async def _iter_chunks(self, handle, reference: str) -> AsyncIterator[bytes]:
        try:
            while True:
                try:
                    chunk = await handle.read(self.chunk_size)
                except OSError as e:
                    raise FileStorageError(
                        message="Failed to read stored image",
                        context={"reference": reference, "os_error": str(e)},
                    )
                if not chunk:
                    break
                yield chunk
        finally:
            await handle.close()

    def derive_filename(self, reference: str) -> str:
        return Path(reference).name

    async def delete(self, reference: str) -> None:
        try:
            await aiofiles.os.remove(self._resolve(reference))
            logger.info("Removed stored file: %s", Path(reference).name)
        except FileNotFoundError:
            logger.debug("Delete: file already gone: %s", reference)
        except (OSError, FileStorageError) as e:
            logger.warning("Failed to remove stored file %s: %s", reference, str(e))

    async def health_check(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)

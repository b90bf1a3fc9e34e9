"""
Mosaic Backend — Zip Export Assembler
=======================================

What:  Streams every stored image of a collection into one zip archive.
How:   zipfile writes into a non-seekable in-memory sink; after every chunk
       the sink is drained and its bytes are yielded to the StreamingResponse.
       Entries therefore use data descriptors (sizes written after the data),
       and at most one source chunk plus its compressed output is held in
       memory at a time.
Who:   GET /collections/{id}/zip.

Streaming discipline:
    - references are processed one after another, in the given order
    - each object is opened only when its turn comes, then read chunk by chunk
    - entry names come from storage.derive_filename(reference)

Partial-failure policy (same for every storage backend):
    - an object that cannot be opened (missing, or any storage error) is
      skipped and a warning is logged
    - when no object can be opened at all the export is a 404, not an
      empty archive
    - a failure after an entry has started streaming aborts the export;
      the response is already in flight, so the client sees a truncated
      download and the error is logged server-side
"""

import logging
import zipfile
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from mosaic.config import settings
from mosaic.exceptions import FileStorageError, NotFoundError
from mosaic.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)

ARCHIVE_MEDIA_TYPE = "application/zip"


def archive_filename(collection_id: int) -> str:
    """Download name announced in Content-Disposition."""
    return f"collection_{collection_id}_contributions.zip"


class _ArchiveSink:
    """
    Write-only file object handed to zipfile.

    It has no tell()/seek(), so zipfile treats it as an unseekable stream.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data) -> int:
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        """Return and forget everything written since the last drain."""
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


class ExportService:
    """Builds streamed zip archives out of stored contribution objects."""

    def __init__(self, compression_level: Optional[int] = None):
        self.compression_level = (
            settings.zip_compression_level if compression_level is None else compression_level
        )

    async def stream_archive(
        self,
        storage: StorageBackend,
        references: Iterable[str],
    ) -> AsyncIterator[bytes]:
        """
        Return an async iterator of zip archive bytes for `references`.

        The first readable object is opened here, before the response starts,
        so a collection whose objects are all unreadable still gets a JSON
        error instead of an empty archive.

        Raises:
            NotFoundError: `references` is empty, or none of the objects can
                be opened (→ 404, no archive is produced).
        """
        references = list(references)
        if not references:
            raise NotFoundError(resource="contributions", message="No contributions found")

        for index, reference in enumerate(references):
            first = await self._open_entry(storage, reference)
            if first is not None:
                return self._iter_archive(storage, first, references[index + 1:], len(references))

        raise NotFoundError(
            resource="contributions",
            message="No contributions found",
            context={"unreadable": len(references)},
        )

    async def _open_entry(
        self,
        storage: StorageBackend,
        reference: str,
    ) -> Optional[Tuple[str, str, AsyncIterator[bytes]]]:
        """(reference, entry name, chunk stream), or None when the object is unreadable."""
        try:
            name = storage.derive_filename(reference)
            chunks = await storage.open_read_stream(reference)
        except FileStorageError as e:
            logger.warning("Skipping unreadable object in export: %s (%s)", reference, e.message)
            return None
        return reference, name, chunks

    async def _entries(
        self,
        storage: StorageBackend,
        first: Tuple[str, str, AsyncIterator[bytes]],
        rest: List[str],
    ) -> AsyncIterator[Tuple[str, str, AsyncIterator[bytes]]]:
        yield first
        for reference in rest:
            entry = await self._open_entry(storage, reference)
            if entry is not None:
                yield entry

    async def _iter_archive(
        self,
        storage: StorageBackend,
        first: Tuple[str, str, AsyncIterator[bytes]],
        rest: List[str],
        total: int,
    ) -> AsyncIterator[bytes]:
        sink = _ArchiveSink()
        written = 0

        with zipfile.ZipFile(
            sink,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level,
        ) as archive:
            async for reference, name, chunks in self._entries(storage, first, rest):
                try:
                    with archive.open(name, mode="w") as entry:
                        async for chunk in chunks:
                            entry.write(chunk)
                            data = sink.drain()
                            if data:
                                yield data
                except Exception:
                    logger.error("Export aborted while streaming %s", reference, exc_info=True)
                    raise
                finally:
                    await chunks.aclose()

                written += 1
                data = sink.drain()
                if data:
                    yield data

        tail = sink.drain()
        if tail:
            yield tail

        logger.info("Export finished: %d entries written, %d skipped", written, total - written)


export_service = ExportService()

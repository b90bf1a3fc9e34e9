"""
Mosaic Backend — Local Storage Backend Unit Tests
===================================================

What we test:
    ✅ Key layout <collectionId>/<md5(userId)>_<ms>_<suffix>
    ✅ put() writes under the root and returns the absolute path
    ✅ open_read_stream() streams the bytes back in chunks
    ✅ Missing objects and paths outside the root are reported
    ✅ delete() is best effort
"""

import re
from pathlib import Path

import pytest

from mosaic.exceptions import FileStorageError, StorageObjectNotFoundError
from mosaic.services.local_storage import LocalStorageBackend
from mosaic.services.storage_base import StorageBackend

MD5_OF_1 = "c4ca4238a0b923820dcc509a6f75849b"


async def _read_all(storage, reference) -> bytes:
    stream = await storage.open_read_stream(reference)
    return b"".join([chunk async for chunk in stream])


class TestKeys:

    def test_user_hash_is_md5_of_id(self):
        assert StorageBackend.user_hash(1) == MD5_OF_1

    @pytest.mark.parametrize("original, expected", [
        (None, "canvas.png"),
        ("", "canvas.png"),
        ("???", "canvas.png"),
        ("photo.jpg", "photo.png"),
        ("Holiday Pic.JPEG", "Holiday_Pic.png"),
    ])
    def test_object_suffix(self, original, expected):
        assert StorageBackend.object_suffix(original) == expected

    def test_object_suffix_strips_path_components(self):
        suffix = StorageBackend.object_suffix("../../etc/passwd.jpg")
        assert "/" not in suffix
        assert ".." not in suffix
        assert suffix.endswith(".png")

    def test_build_key_layout(self, local_storage):
        key = local_storage.build_key(42, 1, "sunset.jpg")
        assert re.fullmatch(rf"42/{MD5_OF_1}_\d{{13}}_sunset\.png", key)

    def test_build_key_without_name_uses_canvas(self, local_storage):
        assert local_storage.build_key(7, 1).endswith("_canvas.png")

    def test_timestamps_are_strictly_increasing(self, local_storage):
        stamps = [local_storage.next_timestamp() for _ in range(50)]
        assert stamps == sorted(set(stamps))

    def test_consecutive_keys_differ(self, local_storage):
        assert local_storage.build_key(1, 1) != local_storage.build_key(1, 1)


class TestPutAndRead:

    @pytest.mark.asyncio
    async def test_put_writes_file_and_returns_absolute_path(self, local_storage, upload_root):
        key = local_storage.build_key(3, 1)
        reference = await local_storage.put(b"png-bytes", key)

        path = Path(reference)
        assert path.is_absolute()
        assert path.read_bytes() == b"png-bytes"
        assert path.parent == upload_root.resolve() / "3"

    @pytest.mark.asyncio
    async def test_read_stream_returns_written_bytes(self, local_storage):
        data = bytes(range(256)) * 20  # several 1 KB chunks
        reference = await local_storage.put(data, local_storage.build_key(1, 1))

        stream = await local_storage.open_read_stream(reference)
        chunks = [chunk async for chunk in stream]

        assert len(chunks) > 1
        assert b"".join(chunks) == data

    @pytest.mark.asyncio
    async def test_missing_file_raises_not_found(self, local_storage, upload_root):
        with pytest.raises(StorageObjectNotFoundError) as exc_info:
            await local_storage.open_read_stream(str(upload_root / "1" / "nope.png"))
        assert exc_info.value.reference.endswith("nope.png")

    @pytest.mark.asyncio
    async def test_reference_outside_root_is_refused(self, local_storage, tmp_path):
        outside = tmp_path / "elsewhere.png"
        outside.write_bytes(b"secret")

        with pytest.raises(FileStorageError):
            await local_storage.open_read_stream(str(outside))

    @pytest.mark.asyncio
    async def test_key_escaping_root_is_refused(self, local_storage):
        with pytest.raises(FileStorageError):
            await local_storage.put(b"x", "../../escape.png")

    def test_derive_filename_is_basename(self, local_storage):
        assert local_storage.derive_filename("/srv/uploads/4/abc_1_canvas.png") == "abc_1_canvas.png"


class TestDeleteAndHealth:

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, local_storage):
        reference = await local_storage.put(b"x", local_storage.build_key(1, 1))
        await local_storage.delete(reference)
        assert not Path(reference).exists()

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_noop(self, local_storage, upload_root):
        await local_storage.delete(str(upload_root / "1" / "gone.png"))

    @pytest.mark.asyncio
    async def test_health_check(self, local_storage):
        assert await local_storage.health_check() is True

    def test_root_is_created(self, tmp_path):
        root = tmp_path / "fresh" / "uploads"
        LocalStorageBackend(root=str(root))
        assert root.is_dir()

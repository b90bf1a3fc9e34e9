"""
Mosaic Backend — Contribution Service Unit Tests
==================================================

What:  Tests the normalize → store → record workflow.
How:   Mock DB session and mock storage backend (no real DB or disk).

What we test:
    ✅ Successful upload stores a normalized PNG and records its reference
    ✅ Unknown collection is rejected before anything is stored
    ✅ Undecodable and oversized images are rejected before storage
    ✅ A failed insert or commit deletes the stored object again
"""

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from PIL import Image
from sqlalchemy.exc import OperationalError

from mosaic.exceptions import (
    DatabaseError,
    FileStorageError,
    ImageDecodeError,
    NotFoundError,
    ValidationError,
)
from mosaic.services.contribution_service import ContributionService

REFERENCE = "/srv/uploads/1/c4ca4238a0b923820dcc509a6f75849b_1718000000000_canvas.png"


@pytest.fixture
def storage():
    backend = MagicMock()
    backend.build_key.return_value = "1/c4ca4238a0b923820dcc509a6f75849b_1718000000000_canvas.png"
    backend.put = AsyncMock(return_value=REFERENCE)
    backend.delete = AsyncMock()
    return backend


class TestContribute:

    def setup_method(self):
        self.service = ContributionService()

    @pytest.mark.asyncio
    async def test_success_stores_normalized_png(self, mock_db_session, storage, sample_png_bytes):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()

            result = await self.service.contribute(
                db=mock_db_session,
                storage=storage,
                collection_id=1,
                user_id=1,
                data=sample_png_bytes,
            )

        assert result.message == "Contribution uploaded"
        assert result.file_url == REFERENCE
        storage.build_key.assert_called_once_with(1, 1, None)

        stored_bytes = storage.put.await_args.args[0]
        stored = Image.open(io.BytesIO(stored_bytes))
        assert stored.format == "PNG"
        assert stored.size == (400, 400)

        recorded = mock_db_session.add.call_args.args[0]
        assert recorded.collection_id == 1
        assert recorded.user_id == 1
        assert recorded.file_url == REFERENCE
        storage.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_original_name_is_passed_to_key_builder(self, mock_db_session, storage, sample_png_bytes):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()
            await self.service.contribute(
                mock_db_session, storage, 3, 9, sample_png_bytes, original_name="beach.jpg"
            )

        storage.build_key.assert_called_once_with(3, 9, "beach.jpg")

    @pytest.mark.asyncio
    async def test_unknown_collection_stores_nothing(self, mock_db_session, storage, sample_png_bytes):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock(
                side_effect=NotFoundError(resource="collection", resource_id="99")
            )

            with pytest.raises(NotFoundError):
                await self.service.contribute(mock_db_session, storage, 99, 1, sample_png_bytes)

        storage.put.assert_not_awaited()
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_image_stores_nothing(self, mock_db_session, storage):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()

            with pytest.raises(ImageDecodeError):
                await self.service.contribute(mock_db_session, storage, 1, 1, b"not an image")

        storage.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_image_is_rejected(self, mock_db_session, storage):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections, \
             patch("mosaic.services.contribution_service.settings") as mock_settings:
            mock_collections.get_collection_or_404 = AsyncMock()
            mock_settings.max_file_size = 10

            with pytest.raises(ValidationError):
                await self.service.contribute(mock_db_session, storage, 1, 1, b"x" * 11)

        storage.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure_records_nothing(self, mock_db_session, storage, sample_png_bytes):
        storage.put = AsyncMock(side_effect=FileStorageError())
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()

            with pytest.raises(FileStorageError):
                await self.service.contribute(mock_db_session, storage, 1, 1, sample_png_bytes)

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_insert_deletes_stored_object(self, mock_db_session, storage, sample_png_bytes):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections, \
             patch.object(
                 self.service, "insert",
                 AsyncMock(side_effect=DatabaseError(message="Failed to save contribution")),
             ):
            mock_collections.get_collection_or_404 = AsyncMock()

            with pytest.raises(DatabaseError):
                await self.service.contribute(mock_db_session, storage, 1, 1, sample_png_bytes)

        storage.delete.assert_awaited_once_with(REFERENCE)

    @pytest.mark.asyncio
    async def test_failed_commit_deletes_stored_object(self, mock_db_session, storage, sample_png_bytes):
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk full"))

        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()

            with pytest.raises(DatabaseError):
                await self.service.contribute(mock_db_session, storage, 1, 1, sample_png_bytes)

        mock_db_session.rollback.assert_awaited_once()
        storage.delete.assert_awaited_once_with(REFERENCE)

    @pytest.mark.asyncio
    async def test_success_commits_before_returning(self, mock_db_session, storage, sample_png_bytes):
        with patch("mosaic.services.contribution_service.collection_service") as mock_collections:
            mock_collections.get_collection_or_404 = AsyncMock()
            await self.service.contribute(mock_db_session, storage, 1, 1, sample_png_bytes)

        mock_db_session.commit.assert_awaited_once()
        storage.delete.assert_not_called()


class TestRecordStore:

    @pytest.mark.asyncio
    async def test_list_by_collection_in_insertion_order(self, db_session):
        from mosaic.models.collection import Collection
        from mosaic.models.user import User

        service = ContributionService()
        user = User(email="a@example.com", password_hash="x")
        db_session.add(user)
        await db_session.flush()
        first = Collection(name="one", created_by=user.id)
        second = Collection(name="two", created_by=user.id)
        db_session.add_all([first, second])
        await db_session.flush()

        await service.insert(db_session, first.id, user.id, "/u/1/a.png")
        await service.insert(db_session, second.id, user.id, "/u/2/x.png")
        await service.insert(db_session, first.id, user.id, "/u/1/b.png")

        rows = await service.list_by_collection(db_session, first.id)
        assert [row.file_url for row in rows] == ["/u/1/a.png", "/u/1/b.png"]
        assert await service.list_by_collection(db_session, 999) == []

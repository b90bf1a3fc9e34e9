"""
Mosaic Backend — Contribution Service (Upload Orchestrator + Record Store)
============================================================================

What:  Persists (collection, user, file reference) records and coordinates
       the upload pipeline that produces them.
How:   Composes CollectionService, the image normalizer and the injected
       StorageBackend with plain SQLAlchemy statements.
Who:   POST /contribute/{id} calls contribute(); the zip export calls
       list_by_collection().

Orchestration Flow (POST /contribute/{id}):
    ┌──────────┐   ┌────────────┐   ┌────────────┐   ┌──────────┐   ┌──────────┐
    │  Upload  │──▶│ Collection │──▶│ Normalize  │──▶│ Storage  │──▶│ Record   │
    │  (Route) │   │  exists?   │   │ 400×400 RGB│   │   put    │   │  insert  │
    └──────────┘   └────────────┘   └────────────┘   └──────────┘   └──────────┘

Write-then-record:
    The object write and the row insert are two independent operations.
    The row is committed before the response is built; when the insert or
    the commit fails, the stored object is deleted again before the error
    propagates. A crash between the two steps can still leave
    an orphaned object behind; a record never points at an object that was
    not written.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from mosaic.config import settings
from mosaic.database import commit_session
from mosaic.exceptions import DatabaseError, ValidationError
from mosaic.models.contribution import Contribution
from mosaic.schemas.contribution import ContributeResponse
from mosaic.services.collection_service import collection_service
from mosaic.services.image_normalizer import normalize_image
from mosaic.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)


class ContributionService:
    """
    Business logic layer for contributions.

    Contributions are immutable: there is an insert and a listing, no update.
    """

    def validate_size(self, data: bytes) -> None:
        """Reject uploads larger than settings.max_file_size."""
        if len(data) > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"Image size ({len(data) / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"max_size_mb": max_mb, "actual_size": len(data)},
            )

    async def insert(
        self,
        db: AsyncSession,
        collection_id: int,
        user_id: int,
        file_reference: str,
    ) -> Contribution:
        """
        Record a stored object as a contribution.

        Raises:
            DatabaseError: The insert failed.
        """
        try:
            contribution = Contribution(
                collection_id=collection_id,
                user_id=user_id,
                file_url=file_reference,
            )
            db.add(contribution)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Database error recording contribution for collection %s: %s",
                collection_id, str(e),
            )
            raise DatabaseError(
                message="Failed to save contribution",
                context={"collection_id": collection_id, "error_type": type(e).__name__},
            )
        return contribution

    async def list_by_collection(self, db: AsyncSession, collection_id: int) -> List[Contribution]:
        """All contributions of a collection in insertion (primary key) order."""
        try:
            result = await db.execute(
                select(Contribution)
                .where(Contribution.collection_id == collection_id)
                .order_by(Contribution.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing contributions of %s: %s", collection_id, str(e))
            raise DatabaseError(
                message="Could not retrieve contributions. Please try again.",
                context={"collection_id": collection_id},
            )

    async def contribute(
        self,
        db: AsyncSession,
        storage: StorageBackend,
        collection_id: int,
        user_id: int,
        data: bytes,
        original_name: Optional[str] = None,
    ) -> ContributeResponse:
        """
        Normalize, store and record one uploaded image.

        Raises:
            NotFoundError: Unknown collection (→ 404).
            ValidationError / ImageDecodeError: Oversized or undecodable image (→ 400).
            FileStorageError: The storage backend failed (→ 500).
            DatabaseError: The record could not be written (→ 500).
        """
        await collection_service.get_collection_or_404(db, collection_id)

        self.validate_size(data)
        normalized = await run_in_threadpool(normalize_image, data)

        key = storage.build_key(collection_id, user_id, original_name)
        reference = await storage.put(normalized, key)

        try:
            contribution = await self.insert(db, collection_id, user_id, reference)
            await commit_session(db, "contribute")
        except Exception:
            await storage.delete(reference)
            raise

        logger.info(
            "Contribution %s recorded: collection=%s user=%s",
            contribution.id, collection_id, user_id,
        )
        return ContributeResponse(message="Contribution uploaded", file_url=reference)


contribution_service = ContributionService()

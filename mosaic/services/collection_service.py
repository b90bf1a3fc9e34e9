"""
Mosaic Backend — Collection Service
=====================================

What:  Business logic for creating, listing, fetching and deleting collections.
How:   Plain SQLAlchemy select/insert/delete statements on the async session;
       write operations commit before returning.
Who:   Called by the /collections route handlers; get_collection_or_404() is
       also used by ContributionService before accepting an upload.

Deletion:
    Only the owner may delete a collection. Its contribution rows are deleted
    in the same transaction. Once that transaction is committed the stored
    objects' references are returned so the route can remove them from
    storage after the response is sent.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.database import commit_session
from mosaic.exceptions import DatabaseError, NotFoundError
from mosaic.models.collection import Collection
from mosaic.models.contribution import Contribution
from mosaic.schemas.collection import (
    CollectionDetailResponse,
    CollectionListResponse,
    CollectionResponse,
)

logger = logging.getLogger(__name__)


class CollectionService:
    """
    Business logic layer for collection operations.

    Error Handling Strategy:
        NotFoundError propagates as-is; every SQLAlchemy failure is wrapped
        in DatabaseError so no SQL detail reaches the client.
    """

    async def get_collection_or_404(self, db: AsyncSession, collection_id: int) -> Collection:
        """Fetch a collection row or raise NotFoundError."""
        try:
            result = await db.execute(select(Collection).where(Collection.id == collection_id))
            collection = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching collection %s: %s", collection_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the collection. Please try again.",
                context={"collection_id": collection_id},
            )

        if collection is None:
            raise NotFoundError(resource="collection", resource_id=str(collection_id))
        return collection

    async def list_collections(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> CollectionListResponse:
        """
        One page of collections, newest first, optionally filtered by a
        case-insensitive substring of the name.
        """
        try:
            query = select(Collection)
            count_query = select(func.count(Collection.id))
            if search:
                condition = Collection.name.icontains(search, autoescape=True)
                query = query.where(condition)
                count_query = count_query.where(condition)

            query = (
                query.order_by(desc(Collection.created_at), desc(Collection.id))
                .limit(limit)
                .offset((page - 1) * limit)
            )

            result = await db.execute(query)
            collections = list(result.scalars().all())

            count_result = await db.execute(count_query)
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing collections: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve collections. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return CollectionListResponse(
            collections=[CollectionResponse.model_validate(c) for c in collections],
            total=total,
            page=page,
            limit=limit,
        )

    async def list_owned(self, db: AsyncSession, user_id: int) -> List[CollectionResponse]:
        """Collections created by `user_id`, newest first."""
        try:
            result = await db.execute(
                select(Collection)
                .where(Collection.created_by == user_id)
                .order_by(desc(Collection.created_at), desc(Collection.id))
            )
            collections = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing collections of user %s: %s", user_id, str(e))
            raise DatabaseError(message="Could not retrieve collections. Please try again.")

        return [CollectionResponse.model_validate(c) for c in collections]

    async def get_collection(self, db: AsyncSession, collection_id: int) -> CollectionDetailResponse:
        """Collection summary with its contribution count."""
        collection = await self.get_collection_or_404(db, collection_id)
        try:
            count_result = await db.execute(
                select(func.count(Contribution.id)).where(
                    Contribution.collection_id == collection_id
                )
            )
            contribution_count = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting contributions of %s: %s", collection_id, str(e))
            raise DatabaseError(message="Could not retrieve the collection. Please try again.")

        return CollectionDetailResponse(
            id=collection.id,
            name=collection.name,
            description=collection.description,
            contribution_count=contribution_count,
        )

    async def create_collection(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        description: Optional[str] = None,
    ) -> CollectionResponse:
        try:
            collection = Collection(name=name, description=description, created_by=user_id)
            db.add(collection)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating collection: %s", str(e))
            raise DatabaseError(message="Failed to create collection")

        await commit_session(db, "create_collection")
        logger.info("Collection %s created by user %s", collection.id, user_id)
        return CollectionResponse.model_validate(collection)

    async def delete_collection(
        self,
        db: AsyncSession,
        collection_id: int,
        user_id: int,
    ) -> List[str]:
        """
        Delete a collection owned by `user_id` together with its contributions.

        Returns:
            File references of the deleted contributions.

        Raises:
            NotFoundError: The collection does not exist or is not owned by the user.
        """
        try:
            result = await db.execute(
                select(Collection).where(
                    Collection.id == collection_id,
                    Collection.created_by == user_id,
                )
            )
            collection = result.scalar_one_or_none()
            if collection is None:
                raise NotFoundError(
                    resource="collection",
                    message="collection not found or not owned by user",
                    context={"collection_id": collection_id},
                )

            refs_result = await db.execute(
                select(Contribution.file_url)
                .where(Contribution.collection_id == collection_id)
                .order_by(Contribution.id)
            )
            references = list(refs_result.scalars().all())

            await db.execute(
                delete(Contribution).where(Contribution.collection_id == collection_id)
            )
            await db.delete(collection)
            await db.flush()
        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting collection %s: %s", collection_id, str(e))
            raise DatabaseError(message="Failed to delete collection")

        # Committed before the caller schedules removal of the stored objects
        await commit_session(db, "delete_collection")
        logger.info(
            "Collection %s deleted by user %s (%d contributions)",
            collection_id, user_id, len(references),
        )
        return references


collection_service = CollectionService()

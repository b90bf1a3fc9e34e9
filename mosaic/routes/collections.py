"""
Mosaic Backend — Collection Route Handlers
============================================

What:  Collection CRUD and the zip export of a collection's contributions.
How:   Extracts path/query/body data, delegates to the services, returns JSON
       (or a streamed archive for /zip).
Who:   Called by the frontend collection pages.

Routes:
    GET    /collections              paginated search
    GET    /collections/owned        collections created by the caller
    GET    /collections/{id}         summary with contribution count
    POST   /collections              create
    DELETE /collections/{id}         owner-only delete
    GET    /collections/{id}/zip     streamed zip of every contribution

All routes require a bearer token.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.database import get_db_session
from mosaic.dependencies import get_current_user, get_storage
from mosaic.schemas.collection import (
    CollectionCreateRequest,
    CollectionDetailResponse,
    CollectionListResponse,
    CollectionResponse,
)
from mosaic.schemas.common import ErrorResponse, MessageResponse
from mosaic.services.auth_service import CurrentUser
from mosaic.services.collection_service import collection_service
from mosaic.services.contribution_service import contribution_service
from mosaic.services.export_service import (
    ARCHIVE_MEDIA_TYPE,
    archive_filename,
    export_service,
)
from mosaic.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["Collections"])


@router.get(
    "",
    response_model=CollectionListResponse,
    summary="Search collections",
)
async def list_collections(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Items per page (max 100)"),
    query: Optional[str] = Query(default=None, description="Case-insensitive name filter"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionListResponse:
    return await collection_service.list_collections(db, page=page, limit=limit, search=query)


# Declared before /{collection_id} so "owned" is not parsed as an id
@router.get(
    "/owned",
    response_model=List[CollectionResponse],
    summary="Collections created by the caller",
)
async def list_owned_collections(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CollectionResponse]:
    return await collection_service.list_owned(db, user.id)


@router.get(
    "/{collection_id}",
    response_model=CollectionDetailResponse,
    responses={404: {"description": "Collection not found", "model": ErrorResponse}},
    summary="Get a collection with its contribution count",
)
async def get_collection(
    collection_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionDetailResponse:
    return await collection_service.get_collection(db, collection_id)


@router.post(
    "",
    status_code=201,
    response_model=CollectionResponse,
    summary="Create a collection owned by the caller",
)
async def create_collection(
    body: CollectionCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CollectionResponse:
    return await collection_service.create_collection(
        db, user_id=user.id, name=body.name, description=body.description
    )


@router.delete(
    "/{collection_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
    summary="Delete a collection you own",
)
async def delete_collection(
    collection_id: int,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    """
    Delete the collection and its contribution records.

    The deletion is committed before any stored object is touched. Objects
    are then removed by a background task after the response is sent;
    failures there are logged and leave the object orphaned.
    """
    references = await collection_service.delete_collection(db, collection_id, user.id)
    for reference in references:
        background_tasks.add_task(storage.delete, reference)
    return MessageResponse(message="collection deleted successfully")


@router.get(
    "/{collection_id}/zip",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Zip archive of all contributions", "content": {ARCHIVE_MEDIA_TYPE: {}}},
        404: {"description": "No contributions found", "model": ErrorResponse},
    },
    summary="Download every contribution of a collection as a zip",
)
async def export_collection(
    collection_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db_session),
) -> StreamingResponse:
    """
    Stream a zip of the collection's images.

    The record listing and the opening of the first readable object finish
    before the response starts, so an empty collection (or one whose objects
    are all gone) still gets a JSON 404 instead of an empty archive.
    """
    contributions = await contribution_service.list_by_collection(db, collection_id)
    stream = await export_service.stream_archive(storage, [c.file_url for c in contributions])

    logger.info(
        "Exporting collection %s (%d contributions) for user %s",
        collection_id, len(contributions), user.id,
    )
    return StreamingResponse(
        stream,
        media_type=ARCHIVE_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{archive_filename(collection_id)}"',
        },
    )

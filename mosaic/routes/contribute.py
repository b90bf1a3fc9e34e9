"""
Mosaic Backend — Contribution Route Handler
=============================================

What:  Handles POST /contribute/{collection_id}: upload one image to a collection.
How:   Reads the image from either request shape, delegates to ContributionService.

Request Flow:
    1. Bearer token verified (401 otherwise)
    2. Contribution rate limit counted for the client (429 when exceeded)
    3. Image bytes taken from:
       - multipart/form-data: the `file` field
       - JSON: {"image": "<base64 or data URL>"}
    4. ContributionService: collection exists → normalize → store → record
    5. 201 Created with {message, fileUrl}
"""

import base64
import binascii
import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from mosaic.database import get_db_session
from mosaic.dependencies import enforce_contribution_rate_limit, get_storage
from mosaic.exceptions import ValidationError
from mosaic.schemas.common import ErrorResponse
from mosaic.schemas.contribution import Base64ImageRequest, ContributeResponse
from mosaic.services.auth_service import CurrentUser
from mosaic.services.contribution_service import contribution_service
from mosaic.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contribute", tags=["Contributions"])


def decode_base64_image(value: str) -> bytes:
    """
    Decode a base64 image string.

    Accepts data URLs (the `data:...;base64,` header is dropped), embedded
    whitespace, missing padding and the URL-safe alphabet.

    Raises:
        ValidationError: The string is not valid base64.
    """
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    value = "".join(value.split()).replace("-", "+").replace("_", "/")
    value += "=" * (-len(value) % 4)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(message="Image is not valid base64", field="image")


async def read_image_payload(request: Request) -> Tuple[bytes, Optional[str]]:
    """
    Extract (image bytes, original filename) from a multipart or JSON request.

    Raises:
        ValidationError: No image in the request, or the JSON body is malformed.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ValidationError(message="No image file provided", field="file")
        try:
            data = await upload.read()
        finally:
            await upload.close()
        logger.info(
            "Received multipart contribution: filename=%s, size=%d bytes",
            upload.filename or "unknown",
            len(data),
        )
        return data, upload.filename

    body = await request.body()
    try:
        payload = Base64ImageRequest.model_validate_json(body or b"{}")
    except PydanticValidationError:
        raise ValidationError(
            message="Request body must be JSON with a base64 'image' field",
            field="image",
        )
    if not payload.image:
        raise ValidationError(message="No base64 image provided", field="image")

    data = decode_base64_image(payload.image)
    logger.info("Received base64 contribution: size=%d bytes", len(data))
    return data, None


@router.post(
    "/{collection_id}",
    status_code=201,
    response_model=ContributeResponse,
    responses={
        201: {"description": "Contribution stored", "model": ContributeResponse},
        400: {"description": "Missing, malformed or undecodable image", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Collection not found", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        500: {"description": "Storage or database failure", "model": ErrorResponse},
    },
    summary="Contribute an image to a collection",
    description=(
        "Upload an image as a multipart `file` field or as JSON `{\"image\": <base64>}`. "
        "The image is normalized to a 400×400 RGB PNG before it is stored."
    ),
)
async def contribute(
    collection_id: int,
    request: Request,
    user: CurrentUser = Depends(enforce_contribution_rate_limit),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db_session),
) -> ContributeResponse:
    data, original_name = await read_image_payload(request)
    return await contribution_service.contribute(
        db=db,
        storage=storage,
        collection_id=collection_id,
        user_id=user.id,
        data=data,
        original_name=original_name,
    )

"""
Mosaic Backend — Contribution Schemas
=======================================

What:  Request/response contracts for POST /contribute/{collection_id}.

Two request shapes are accepted by the route:
    - multipart/form-data with a `file` field
    - application/json matching Base64ImageRequest
"""

from typing import Optional

from pydantic import BaseModel, Field


class Base64ImageRequest(BaseModel):
    """
    JSON upload body. `image` is plain base64 or a data URL
    (data:image/png;base64,...) as produced by canvas.toDataURL().
    """
    image: Optional[str] = Field(default=None, description="Base64-encoded image")


class ContributeResponse(BaseModel):
    """Returned with HTTP 201 after the image is stored and recorded."""
    message: str = Field(default="Contribution uploaded")
    file_url: str = Field(alias="fileUrl", description="File reference of the stored image")

    model_config = {"populate_by_name": True}

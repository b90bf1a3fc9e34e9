"""
Mosaic Backend — Collection Schemas
=====================================

What:  Pydantic models for the /collections endpoints.
How:   Response models are built from ORM rows (from_attributes=True).
       Camel-case wire names (contributionCount) are aliases; Python code
       uses snake_case.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CollectionCreateRequest(BaseModel):
    """Body of POST /collections."""
    name: str = Field(min_length=1, max_length=255, description="Collection name")
    description: Optional[str] = Field(default=None, description="Free-text description")


class CollectionResponse(BaseModel):
    """Full collection row."""
    id: int = Field(description="Collection id")
    name: str = Field(description="Collection name")
    description: Optional[str] = Field(default=None)
    created_by: int = Field(description="Owning user id")
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    model_config = {"from_attributes": True}


class CollectionDetailResponse(BaseModel):
    """GET /collections/{id}: collection summary plus its contribution count."""
    id: int
    name: str
    description: Optional[str] = None
    contribution_count: int = Field(alias="contributionCount", description="Number of contributions")

    model_config = {"populate_by_name": True}


class CollectionListResponse(BaseModel):
    """
    GET /collections: one page of collections.

    Offset pagination: page 1 is the newest `limit` collections.
    """
    collections: List[CollectionResponse]
    total: int = Field(description="Collections matching the search")
    page: int
    limit: int

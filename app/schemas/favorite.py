"""
Pydantic schemas for favorite requests and responses.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import datetime
import uuid

from app.schemas.listing import ListingResponse


class FavoriteCreate(BaseModel):
    """Body of POST /favorites."""

    listing_id: uuid.UUID = Field(..., description="Listing to save")


class FavoriteResponse(BaseModel):
    """Favorite row as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    listing_id: uuid.UUID
    created_at: datetime


class FavoriteWithListing(FavoriteResponse):
    """Favorite with the saved listing embedded."""

    listing: ListingResponse


class FavoriteListResponse(BaseModel):
    favorites: List[FavoriteWithListing]


class FavoriteCheckResponse(BaseModel):
    """Whether the caller has saved a listing."""

    model_config = ConfigDict(populate_by_name=True)

    is_favorited: bool = Field(..., alias="isFavorited")

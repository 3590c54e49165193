"""
Favorites API endpoints. Every route acts on the caller's own favorites.
"""

from fastapi import APIRouter, Depends, status
from uuid import UUID

from app.schemas.favorite import (
    FavoriteCreate,
    FavoriteResponse,
    FavoriteWithListing,
    FavoriteListResponse,
    FavoriteCheckResponse
)
from app.schemas.error import get_error_responses
from app.schemas.listing import MessageResponse
from app.services.favorite import FavoriteService
from app.services.identity import Identity
from app.utils.dependencies import get_current_identity, get_favorite_service


router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get(
    "",
    response_model=FavoriteListResponse,
    summary="List favorites",
    description="Saved listings that are still available, newest first",
    responses=get_error_responses(401)
)
async def list_favorites(
    identity: Identity = Depends(get_current_identity),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteListResponse:
    favorites = await favorite_service.list_favorites(identity)
    return FavoriteListResponse(
        favorites=[FavoriteWithListing.model_validate(favorite) for favorite in favorites]
    )


@router.post(
    "",
    response_model=FavoriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add favorite",
    responses=get_error_responses(400, 401, 404, 409)
)
async def add_favorite(
    favorite_data: FavoriteCreate,
    identity: Identity = Depends(get_current_identity),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteResponse:
    """
    Save an available listing.

    Raises:
        NotFoundError: If the listing doesn't exist
        InvalidStateError: If the listing is unavailable
        ConflictError: If it is already saved
    """
    favorite = await favorite_service.add_favorite(identity, favorite_data.listing_id)
    return FavoriteResponse.model_validate(favorite)


@router.delete(
    "/{listing_id}",
    response_model=MessageResponse,
    summary="Remove favorite"
)
async def remove_favorite(
    listing_id: UUID,
    identity: Identity = Depends(get_current_identity),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> MessageResponse:
    await favorite_service.remove_favorite(identity, listing_id)
    return MessageResponse(message="Removed from favorites")


@router.get(
    "/check/{listing_id}",
    response_model=FavoriteCheckResponse,
    summary="Check favorite status"
)
async def check_favorite(
    listing_id: UUID,
    identity: Identity = Depends(get_current_identity),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteCheckResponse:
    is_favorited = await favorite_service.is_favorited(identity, listing_id)
    return FavoriteCheckResponse(is_favorited=is_favorited)

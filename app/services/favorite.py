"""
Favorites service: per-user bookmarks of available listings.
"""

from typing import List
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.favorite import Favorite
from app.repositories.favorite import FavoriteRepository
from app.repositories.listing import ListingRepository
from app.services.identity import Identity
from app.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    ListingNotFoundError,
    UpstreamServiceError
)
import uuid
import logging

logger = logging.getLogger(__name__)


class FavoriteService:
    """Favorites scoped to the requesting identity."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.favorite_repo = FavoriteRepository(db_session)
        self.listing_repo = ListingRepository(db_session)

    async def list_favorites(self, requester: Identity) -> List[Favorite]:
        """
        Favorites of the requester with their listings, newest first.
        Favorites whose listing became unavailable are left out.
        """
        try:
            return await self.favorite_repo.get_user_favorites(requester.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch favorites for {requester.id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to fetch favorites", diagnostic=str(e))

    async def add_favorite(self, requester: Identity, listing_id: uuid.UUID) -> Favorite:
        """
        Save a listing for the requester.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            InvalidStateError: If the listing is unavailable
            ConflictError: If the listing is already saved
            UpstreamServiceError: If the database fails
        """
        try:
            listing = await self.listing_repo.get_by_id(listing_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch listing {listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to add to favorites", diagnostic=str(e))

        if listing is None:
            raise ListingNotFoundError(str(listing_id))

        if not listing.is_available:
            raise InvalidStateError("Cannot favorite unavailable listing")

        # Duplicates are detected by the unique constraint, not a prior lookup
        try:
            favorite = await self.favorite_repo.create({
                "user_id": requester.id,
                "listing_id": listing_id,
            })
        except IntegrityError:
            raise ConflictError("Listing already in favorites")
        except SQLAlchemyError as e:
            logger.error(f"Failed to add favorite {requester.id}/{listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to add to favorites", diagnostic=str(e))

        logger.info(f"Listing {listing_id} favorited by {requester.id}")
        return favorite

    async def remove_favorite(self, requester: Identity, listing_id: uuid.UUID) -> None:
        """Remove a saved listing. Removing one that isn't saved is not an error."""
        try:
            removed = await self.favorite_repo.delete_user_favorite(requester.id, listing_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove favorite {requester.id}/{listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to remove from favorites", diagnostic=str(e))

        if removed:
            logger.info(f"Listing {listing_id} unfavorited by {requester.id}")

    async def is_favorited(self, requester: Identity, listing_id: uuid.UUID) -> bool:
        try:
            return await self.favorite_repo.get_user_favorite(requester.id, listing_id) is not None
        except SQLAlchemyError as e:
            logger.error(f"Failed to check favorite {requester.id}/{listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to check favorite status", diagnostic=str(e))

"""
Favorite repository for per-user listing bookmarks.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, desc
from sqlalchemy.orm import selectinload
from app.repositories.base import BaseRepository
from app.models.favorite import Favorite
from app.models.listing import Listing
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class FavoriteRepository(BaseRepository[Favorite]):
    """Repository for favorites; every query is scoped to one user."""

    def __init__(self, db: AsyncSession):
        super().__init__(Favorite, db)

    async def get_user_favorites(self, user_id: uuid.UUID) -> List[Favorite]:
        """
        Get a user's favorites whose listing is still available, newest first.

        Args:
            user_id: Owner of the favorites

        Returns:
            Favorites with listing and landlord loaded
        """
        try:
            query = (
                select(Favorite)
                .join(Favorite.listing)
                .options(selectinload(Favorite.listing).selectinload(Listing.landlord))
                .where(Favorite.user_id == user_id, Listing.is_available.is_(True))
                .order_by(desc(Favorite.created_at))
            )
            result = await self.db.execute(query)
            favorites = list(result.scalars().all())

            logger.debug(f"Retrieved {len(favorites)} favorites for user {user_id}")
            return favorites
        except Exception as e:
            logger.error(f"Failed to get favorites for user {user_id}: {e}")
            raise

    async def get_user_favorite(self, user_id: uuid.UUID, listing_id: uuid.UUID) -> Optional[Favorite]:
        """Get the favorite for a (user, listing) pair, if any."""
        try:
            query = select(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.listing_id == listing_id
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get favorite {user_id}/{listing_id}: {e}")
            raise

    async def delete_user_favorite(self, user_id: uuid.UUID, listing_id: uuid.UUID) -> bool:
        """
        Delete the favorite for a (user, listing) pair.

        Returns:
            True if a row was removed, False if there was nothing to remove
        """
        try:
            stmt = delete(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.listing_id == listing_id
            )
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount > 0
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete favorite {user_id}/{listing_id}: {e}")
            raise

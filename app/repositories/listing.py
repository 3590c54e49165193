"""
Listing repository for rental listings with filtering, sorting and pagination.
Compiles search predicates into SQLAlchemy conditions for the active dialect.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc, asc, cast, type_coerce, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import selectinload
from app.repositories.base import BaseRepository
from app.repositories.filters import (
    Predicate,
    Equals,
    Range,
    Substring,
    Membership,
    Superset,
    AnyOf,
    resolve_sort,
)
from app.models.listing import Listing
from typing import Optional, List, Tuple, Sequence
import json
import uuid
import logging

logger = logging.getLogger(__name__)


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ListingRepository(BaseRepository[Listing]):
    """Repository for listing rows, always loaded together with the owner's profile."""

    def __init__(self, db: AsyncSession):
        super().__init__(Listing, db)

    async def get_listing_with_landlord(self, listing_id: uuid.UUID) -> Optional[Listing]:
        """
        Get a listing with its landlord profile loaded.

        Args:
            listing_id: UUID of the listing

        Returns:
            Listing or None if not found
        """
        try:
            query = (
                select(Listing)
                .options(selectinload(Listing.landlord))
                .where(Listing.id == listing_id)
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get listing with landlord {listing_id}: {e}")
            raise

    async def search_listings(
        self,
        predicates: Sequence[Predicate],
        skip: int = 0,
        limit: int = 20,
        order_by: Optional[str] = None,
        order_direction: Optional[str] = None
    ) -> Tuple[List[Listing], int]:
        """
        Search listings with predicates, ordering and pagination.

        Args:
            predicates: Predicates from the filter builder, all of which must hold
            skip: Number of records to skip for pagination
            limit: Maximum number of records to return
            order_by: Column to order by
            order_direction: 'asc' or 'desc'

        Returns:
            Tuple of (listings, total count ignoring pagination)
        """
        try:
            conditions = [self._compile(predicate) for predicate in predicates]

            query = select(Listing).options(selectinload(Listing.landlord))
            count_query = select(func.count(Listing.id))
            if conditions:
                query = query.where(and_(*conditions))
                count_query = count_query.where(and_(*conditions))

            count_result = await self.db.execute(count_query)
            total_count = count_result.scalar() or 0

            field, descending = resolve_sort(order_by, order_direction)
            order_column = getattr(Listing, field)
            query = query.order_by(desc(order_column) if descending else asc(order_column), desc(Listing.id))
            query = query.offset(skip).limit(limit)

            result = await self.db.execute(query)
            listings = list(result.scalars().all())

            logger.debug(f"Listing search returned {len(listings)} of {total_count} total results")
            return listings, total_count
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise

    async def get_listings_by_landlord(
        self,
        landlord_id: uuid.UUID,
        available_only: bool
    ) -> List[Listing]:
        """
        Get every listing owned by a landlord, most recently updated first.

        Args:
            landlord_id: Owning profile id
            available_only: Restrict to available listings

        Returns:
            List of listings
        """
        try:
            query = (
                select(Listing)
                .options(selectinload(Listing.landlord))
                .where(Listing.landlord_id == landlord_id)
            )
            if available_only:
                query = query.where(Listing.is_available.is_(True))
            query = query.order_by(desc(Listing.updated_at))

            result = await self.db.execute(query)
            listings = list(result.scalars().all())

            logger.debug(f"Retrieved {len(listings)} listings for landlord {landlord_id}")
            return listings
        except Exception as e:
            logger.error(f"Failed to get listings for landlord {landlord_id}: {e}")
            raise

    def _compile(self, predicate: Predicate):
        """Translate one predicate into a SQLAlchemy condition."""
        if isinstance(predicate, AnyOf):
            return or_(*[self._compile(inner) for inner in predicate.predicates])

        column = getattr(Listing, predicate.field)

        if isinstance(predicate, Equals):
            return column == predicate.value

        if isinstance(predicate, Range):
            bounds = []
            if predicate.minimum is not None:
                bounds.append(column >= predicate.minimum)
            if predicate.maximum is not None:
                bounds.append(column <= predicate.maximum)
            return and_(*bounds)

        if isinstance(predicate, Substring):
            return column.ilike(f"%{escape_like(predicate.text)}%", escape="\\")

        if isinstance(predicate, Membership):
            return column.in_(list(predicate.values))

        if isinstance(predicate, Superset):
            values = list(predicate.values)
            if self.dialect_name == "postgresql":
                return type_coerce(column, JSONB).contains(values)
            # JSON stored as text: look for each quoted item
            return and_(*[cast(column, String).like(f"%{json.dumps(value)}%") for value in values])

        raise TypeError(f"Unsupported predicate: {predicate!r}")

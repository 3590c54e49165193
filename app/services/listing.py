"""
Listing service for rental listings.
Handles browsing, search, ownership rules, and the image lifecycle of each listing.
"""

from typing import Optional, List, Dict, Any, Sequence, Tuple
from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import Settings, get_settings
from app.database import utcnow
from app.models.listing import Listing
from app.repositories.filters import build_listing_predicates
from app.repositories.listing import ListingRepository
from app.schemas.listing import ListingForm, parse_existing_images
from app.services.identity import Identity
from app.services.image import ImageService, ImageSet, StoredImage
from app.utils.exceptions import (
    ForbiddenError,
    ListingNotFoundError,
    ListingOwnershipError,
    ListingUnavailableError,
    UpstreamServiceError
)
from app.utils.file_utils import BlobStore
import uuid
import logging

logger = logging.getLogger(__name__)


class ListingService:
    """
    Listing service for browsing, publishing and maintaining rental listings.
    Only landlords and caretakers publish; only the owner changes or removes a listing.
    """

    def __init__(self, db_session: AsyncSession, blob_store: BlobStore, app_settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = app_settings or get_settings()
        self.listing_repo = ListingRepository(db_session)
        self.image_service = ImageService(blob_store, self.settings)

    async def list_listings(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        requester: Optional[Identity] = None
    ) -> Tuple[List[Listing], int]:
        """
        Browse listings visible to the requester.

        Args:
            filters: Filter key to value
            limit: Page size
            offset: Number of matches to skip
            sort: Column to sort by (unknown columns sort by updated_at)
            order: 'asc' or 'desc'
            requester: Optional caller; owners also see their unavailable listings

        Returns:
            Tuple of (listings, total matches)

        Raises:
            ValidationError: If a filter value is malformed
        """
        return await self.search_listings(None, filters, limit, offset, sort, order, requester)

    async def search_listings(
        self,
        query: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        requester: Optional[Identity] = None
    ) -> Tuple[List[Listing], int]:
        """
        Free-text search plus filters over the listings visible to the requester.

        Raises:
            ValidationError: If a filter value is malformed
            UpstreamServiceError: If the database query fails
        """
        predicates = build_listing_predicates(
            filters,
            requester_id=requester.id if requester else None,
            search_text=query
        )
        limit = self._page_size(limit)

        try:
            listings, total = await self.listing_repo.search_listings(
                predicates,
                skip=max(offset, 0),
                limit=limit,
                order_by=sort,
                order_direction=order
            )
            logger.debug(f"Listing search returned {len(listings)} of {total}")
            return listings, total
        except SQLAlchemyError as e:
            logger.error(f"Failed to search listings: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to fetch listings", diagnostic=str(e))

    async def get_listing(self, listing_id: uuid.UUID, requester: Optional[Identity] = None) -> Listing:
        """
        Get a single listing.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            ListingUnavailableError: If it is unavailable and the requester isn't the owner
        """
        listing = await self._load(listing_id)

        if not listing.is_available and not self._is_owner(listing, requester):
            raise ListingUnavailableError()

        return listing

    async def create_listing(
        self,
        form_data: Dict[str, Any],
        files: Sequence[UploadFile],
        requester: Identity
    ) -> Listing:
        """
        Publish a new listing owned by the requester.

        The first uploaded image becomes the primary image.

        Args:
            form_data: Raw multipart form fields
            files: Uploaded images in order
            requester: Authenticated caller

        Returns:
            Created listing with its landlord loaded

        Raises:
            ForbiddenError: If the requester is not a landlord or caretaker
            ValidationError: If the form or an image is invalid
            UpstreamServiceError: If storing images or the row fails
        """
        if not requester.can_publish:
            raise ForbiddenError("Only landlords and caretakers can create listings")

        form = ListingForm.from_form(form_data)
        pending = await self.image_service.read_uploads(files)
        uploaded = await self.image_service.upload_batch(pending)
        plan = self.image_service.plan_create(uploaded)

        now = utcnow()
        create_data = form.to_columns()
        create_data["landlord_name"] = form.landlord_name or requester.full_name
        create_data["landlord_id"] = requester.id
        create_data["created_at"] = now
        create_data["updated_at"] = now
        create_data.update(plan.images.as_columns())

        try:
            listing = await self.listing_repo.create(create_data)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create listing for {requester.id}: {e}", exc_info=True)
            await self._release(uploaded)
            raise UpstreamServiceError("Failed to create listing", diagnostic=str(e))

        logger.info(f"Listing created by {requester.id}: {listing.title} (ID: {listing.id})")
        return await self._load(listing.id)

    async def update_listing(
        self,
        listing_id: uuid.UUID,
        form_data: Dict[str, Any],
        files: Sequence[UploadFile],
        existing_images: Optional[str],
        requester: Identity
    ) -> Listing:
        """
        Replace every mutable field of a listing owned by the requester.

        Absent fields take their zero values. Images no longer referenced are
        removed from storage once the row is saved.

        Args:
            listing_id: Listing to update
            form_data: Raw multipart form fields
            files: Newly uploaded images; the first replaces the primary image
            existing_images: JSON array of current image URLs to keep, or None
                to keep the current secondary images
            requester: Authenticated caller

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            ListingOwnershipError: If the requester doesn't own it
            ValidationError: If the form, an image or existing_images is invalid
            UpstreamServiceError: If storing images or the row fails
        """
        listing = await self._load(listing_id)

        if not self._is_owner(listing, requester):
            raise ListingOwnershipError("update")

        form = ListingForm.from_form(form_data)
        keep_urls = parse_existing_images(existing_images)
        current = ImageSet.from_listing(listing)
        # Reject unknown kept URLs before anything is uploaded
        self.image_service.plan_update(current, [], keep_urls)

        pending = await self.image_service.read_uploads(files)
        uploaded = await self.image_service.upload_batch(pending)
        plan = self.image_service.plan_update(current, uploaded, keep_urls)

        update_data = form.to_columns()
        update_data["landlord_name"] = form.landlord_name or requester.full_name
        update_data["updated_at"] = utcnow()
        update_data.update(plan.images.as_columns())

        try:
            updated = await self.listing_repo.update(listing_id, update_data)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update listing {listing_id}: {e}", exc_info=True)
            await self._release(uploaded)
            raise UpstreamServiceError("Failed to update listing", diagnostic=str(e))

        if not updated:
            await self._release(uploaded)
            raise ListingNotFoundError(str(listing_id))

        await self.image_service.discard(plan.orphaned_keys)

        logger.info(f"Listing updated by {requester.id}: {listing_id}")
        return await self._load(listing_id)

    async def delete_listing(self, listing_id: uuid.UUID, requester: Identity) -> bool:
        """
        Delete a listing owned by the requester, then its stored images.

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            ListingOwnershipError: If the requester doesn't own it
            UpstreamServiceError: If the row delete fails
        """
        listing = await self._load(listing_id)

        if not self._is_owner(listing, requester):
            raise ListingOwnershipError("delete")

        stored_keys = listing.stored_keys

        try:
            deleted = await self.listing_repo.delete(listing_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete listing {listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to delete listing", diagnostic=str(e))

        if not deleted:
            raise ListingNotFoundError(str(listing_id))

        await self.image_service.discard(stored_keys)

        logger.info(f"Listing deleted by {requester.id}: {listing_id}")
        return True

    async def list_owner_listings(self, requester: Identity) -> List[Listing]:
        """All of the requester's listings, available or not, most recently updated first."""
        return await self._listings_for(requester.id, available_only=False)

    async def list_landlord_listings(
        self,
        landlord_id: uuid.UUID,
        requester: Optional[Identity] = None
    ) -> List[Listing]:
        """Public catalogue of a landlord: available listings only, even for the owner."""
        return await self._listings_for(landlord_id, available_only=True)

    async def _listings_for(self, landlord_id: uuid.UUID, available_only: bool) -> List[Listing]:
        try:
            return await self.listing_repo.get_listings_by_landlord(landlord_id, available_only)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch listings for landlord {landlord_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to fetch listings", diagnostic=str(e))

    async def _load(self, listing_id: uuid.UUID) -> Listing:
        try:
            listing = await self.listing_repo.get_listing_with_landlord(listing_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch listing {listing_id}: {e}", exc_info=True)
            raise UpstreamServiceError("Failed to fetch listing", diagnostic=str(e))

        if listing is None:
            raise ListingNotFoundError(str(listing_id))
        return listing

    async def _release(self, uploaded: Sequence[StoredImage]) -> None:
        """Remove blobs uploaded for a request whose row write failed."""
        await self.image_service.discard([image.key for image in uploaded])

    def _page_size(self, limit: Optional[int]) -> int:
        if limit is None or limit < 1:
            return self.settings.default_page_size
        return min(limit, self.settings.max_page_size)

    @staticmethod
    def _is_owner(listing: Listing, requester: Optional[Identity]) -> bool:
        return requester is not None and listing.landlord_id == requester.id

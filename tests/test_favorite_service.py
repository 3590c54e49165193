"""
Tests for the favorites service.
"""

import uuid

import pytest

from app.utils.exceptions import ConflictError, InvalidStateError, ListingNotFoundError
from tests.conftest import ListingFactory, add_favorite_row, identity_for


class TestFavoriteService:

    @pytest.mark.asyncio
    async def test_add_and_check(self, favorite_service, available_listing, tenant):
        identity = identity_for(tenant)

        favorite = await favorite_service.add_favorite(identity, available_listing.id)

        assert favorite.user_id == tenant.id
        assert favorite.listing_id == available_listing.id
        assert await favorite_service.is_favorited(identity, available_listing.id) is True

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, favorite_service, available_listing, tenant):
        identity = identity_for(tenant)
        listing_id = available_listing.id
        await favorite_service.add_favorite(identity, listing_id)

        with pytest.raises(ConflictError) as exc_info:
            await favorite_service.add_favorite(identity, listing_id)

        assert exc_info.value.status_code == 409
        # The session stays usable after the rejected insert
        assert await favorite_service.is_favorited(identity, listing_id) is True

    @pytest.mark.asyncio
    async def test_unavailable_listing_rejected(self, favorite_service, hidden_listing, tenant):
        with pytest.raises(InvalidStateError) as exc_info:
            await favorite_service.add_favorite(identity_for(tenant), hidden_listing.id)
        assert exc_info.value.error_code == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_missing_listing(self, favorite_service, tenant):
        with pytest.raises(ListingNotFoundError):
            await favorite_service.add_favorite(identity_for(tenant), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, favorite_service, available_listing, tenant):
        identity = identity_for(tenant)
        await favorite_service.add_favorite(identity, available_listing.id)

        await favorite_service.remove_favorite(identity, available_listing.id)
        await favorite_service.remove_favorite(identity, available_listing.id)

        assert await favorite_service.is_favorited(identity, available_listing.id) is False

    @pytest.mark.asyncio
    async def test_list_excludes_unavailable_listings(self, db_session, favorite_service, landlord, tenant):
        listing = await ListingFactory.create_listing(db_session, landlord, title="Later hidden")
        kept = await ListingFactory.create_listing(db_session, landlord, title="Still public")
        await add_favorite_row(db_session, tenant, listing)
        await add_favorite_row(db_session, tenant, kept)

        listing.is_available = False
        await db_session.commit()

        favorites = await favorite_service.list_favorites(identity_for(tenant))

        assert [favorite.listing.title for favorite in favorites] == ["Still public"]
        assert favorites[0].listing.landlord.full_name == "Jane Landlord"

    @pytest.mark.asyncio
    async def test_favorites_are_scoped_to_the_user(self, db_session, favorite_service, available_listing, tenant, landlord):
        await add_favorite_row(db_session, landlord, available_listing)

        assert await favorite_service.list_favorites(identity_for(tenant)) == []
        assert await favorite_service.is_favorited(identity_for(tenant), available_listing.id) is False

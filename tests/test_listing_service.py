"""
Tests for the listing service: visibility, ownership and image lifecycle.
"""

import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.models.listing import Listing
from app.services.identity import Identity
from app.utils.exceptions import (
    ForbiddenError,
    ListingNotFoundError,
    ListingOwnershipError,
    ListingUnavailableError,
    UnsupportedFileTypeError,
    UpstreamServiceError,
    ValidationError,
)
from tests.conftest import JPEG_BYTES, ListingFactory, identity_for, make_upload


async def count_listings(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(Listing))).scalar_one()


def listing_form(**overrides) -> dict:
    form = {"title": "Sunny 2BR", "price": "50000", "bedrooms": "2", "is_available": "true"}
    form.update(overrides)
    return form


class TestReadListings:

    @pytest.mark.asyncio
    async def test_get_available_listing_anonymously(self, listing_service, available_listing):
        listing = await listing_service.get_listing(available_listing.id)

        assert listing.id == available_listing.id
        assert listing.landlord.full_name == "Jane Landlord"

    @pytest.mark.asyncio
    async def test_hidden_listing_forbidden_for_others(self, listing_service, hidden_listing, tenant):
        with pytest.raises(ListingUnavailableError):
            await listing_service.get_listing(hidden_listing.id)
        with pytest.raises(ListingUnavailableError):
            await listing_service.get_listing(hidden_listing.id, identity_for(tenant))

    @pytest.mark.asyncio
    async def test_hidden_listing_visible_to_owner(self, listing_service, hidden_listing, landlord):
        listing = await listing_service.get_listing(hidden_listing.id, identity_for(landlord))
        assert listing.title == "Hidden Flat"

    @pytest.mark.asyncio
    async def test_missing_listing(self, listing_service):
        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_applies_page_size_defaults(self, listing_service, available_listing, test_settings):
        listings, total = await listing_service.list_listings(limit=None)
        assert total == 1
        assert listing_service._page_size(None) == test_settings.default_page_size
        assert listing_service._page_size(10_000) == test_settings.max_page_size

    @pytest.mark.asyncio
    async def test_search_by_text(self, db_session, listing_service, landlord):
        await ListingFactory.create_listing(db_session, landlord, title="Garden cottage")
        await ListingFactory.create_listing(db_session, landlord, title="City loft", description="Garden view")
        await ListingFactory.create_listing(db_session, landlord, title="Studio")

        listings, total = await listing_service.search_listings(query="garden")

        assert total == 2
        assert {listing.title for listing in listings} == {"Garden cottage", "City loft"}

    @pytest.mark.asyncio
    async def test_owner_listings_include_hidden(self, listing_service, available_listing, hidden_listing, landlord):
        owned = await listing_service.list_owner_listings(identity_for(landlord))
        public = await listing_service.list_landlord_listings(landlord.id, identity_for(landlord))

        assert {listing.id for listing in owned} == {available_listing.id, hidden_listing.id}
        assert [listing.id for listing in public] == [available_listing.id]


class TestCreateListing:

    @pytest.mark.asyncio
    async def test_tenant_cannot_create(self, listing_service, tenant, blob_store):
        with pytest.raises(ForbiddenError):
            await listing_service.create_listing(listing_form(), [make_upload()], identity_for(tenant))
        assert list(blob_store.base_dir.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["tenant", None])
    async def test_non_publisher_persists_nothing(self, db_session, listing_service, blob_store, role):
        requester = Identity(id=uuid.uuid4(), email="someone@example.com", full_name=None, phone=None, role=role)

        with pytest.raises(ForbiddenError) as exc_info:
            await listing_service.create_listing(listing_form(), [make_upload()], requester)

        assert exc_info.value.status_code == 403
        assert await count_listings(db_session) == 0
        assert list(blob_store.base_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_create_with_images(self, listing_service, caretaker, blob_store):
        listing = await listing_service.create_listing(
            listing_form(amenities=json.dumps(["wifi"])),
            [make_upload("front.jpg"), make_upload("kitchen.jpg"), make_upload("bath.png", content_type="image/png")],
            identity_for(caretaker)
        )

        assert listing.title == "Sunny 2BR"
        assert listing.price == 50000
        assert listing.bedrooms == 2
        assert listing.bathrooms == 0
        assert listing.is_available is True
        assert listing.parking is False
        assert listing.amenities == ["wifi"]
        assert listing.landlord_id == caretaker.id
        assert listing.landlord_name == "Carl Caretaker"
        assert listing.image_url == blob_store.public_url(listing.image_key)
        assert len(listing.images) == 2
        assert listing.images[1].endswith(".png")
        assert all(blob_store.exists(key) for key in listing.stored_keys)

    @pytest.mark.asyncio
    async def test_blank_text_becomes_none(self, listing_service, landlord):
        listing = await listing_service.create_listing(
            listing_form(description="  ", landlord_name="Agent Smith"), [], identity_for(landlord)
        )
        assert listing.description is None
        assert listing.landlord_name == "Agent Smith"
        assert listing.image_url is None
        assert listing.images == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"title": ""},
        {"title": None},
        {"price": "fifty"},
        {"bedrooms": "-1"},
        {"amenities": "wifi, pool"},
        {"amenities": json.dumps({"wifi": True})},
    ])
    async def test_invalid_form_rejected(self, listing_service, landlord, overrides):
        with pytest.raises(ValidationError):
            await listing_service.create_listing(listing_form(**overrides), [], identity_for(landlord))

    @pytest.mark.asyncio
    async def test_bad_file_uploads_nothing(self, listing_service, landlord, blob_store):
        with pytest.raises(UnsupportedFileTypeError):
            await listing_service.create_listing(
                listing_form(),
                [make_upload("ok.jpg"), make_upload("anim.gif", b"GIF89a", "image/gif")],
                identity_for(landlord)
            )
        assert list(blob_store.base_dir.iterdir()) == []


class TestUpdateListing:

    async def _create(self, listing_service, landlord, count=3) -> Listing:
        uploads = [make_upload(f"{i}.jpg", JPEG_BYTES + bytes([i])) for i in range(count)]
        return await listing_service.create_listing(listing_form(), uploads, identity_for(landlord))

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(self, listing_service, available_listing, other_landlord):
        with pytest.raises(ListingOwnershipError):
            await listing_service.update_listing(
                available_listing.id, listing_form(), [], None, identity_for(other_landlord)
            )

    @pytest.mark.asyncio
    async def test_update_missing_listing(self, listing_service, landlord):
        with pytest.raises(ListingNotFoundError):
            await listing_service.update_listing(uuid.uuid4(), listing_form(), [], None, identity_for(landlord))

    @pytest.mark.asyncio
    async def test_update_is_a_full_replace(self, listing_service, landlord):
        listing = await self._create(listing_service, landlord, count=0)
        created_at = listing.created_at

        updated = await listing_service.update_listing(
            listing.id, {"title": "Renamed"}, [], None, identity_for(landlord)
        )

        assert updated.title == "Renamed"
        assert updated.price == 0
        assert updated.bedrooms == 0
        assert updated.is_available is False
        assert updated.landlord_name == "Jane Landlord"
        assert updated.landlord_id == landlord.id
        assert updated.created_at == created_at

    @pytest.mark.asyncio
    async def test_dropped_images_are_removed_after_save(self, listing_service, landlord, blob_store):
        listing = await self._create(listing_service, landlord)
        primary_key = listing.image_key
        kept_url, dropped_url = listing.images
        dropped_key = listing.image_keys[1]

        updated = await listing_service.update_listing(
            listing.id, listing_form(), [], json.dumps([kept_url]), identity_for(landlord)
        )

        assert updated.image_key == primary_key
        assert updated.images == [kept_url]
        assert not blob_store.exists(dropped_key)
        assert blob_store.exists(primary_key)

    @pytest.mark.asyncio
    async def test_new_upload_replaces_primary(self, listing_service, landlord, blob_store):
        listing = await self._create(listing_service, landlord, count=1)
        old_primary = listing.image_key

        updated = await listing_service.update_listing(
            listing.id, listing_form(), [make_upload("new.jpg")], None, identity_for(landlord)
        )

        assert updated.image_key != old_primary
        assert blob_store.exists(updated.image_key)
        assert not blob_store.exists(old_primary)

    @pytest.mark.asyncio
    async def test_failed_row_update_keeps_old_blobs_and_releases_new(self, listing_service, landlord, blob_store):
        listing = await self._create(listing_service, landlord, count=2)
        old_keys = listing.stored_keys
        listing_id = listing.id

        failure = OperationalError("UPDATE listings", {}, Exception("database is locked"))
        with patch.object(listing_service.listing_repo, "update", AsyncMock(side_effect=failure)):
            with pytest.raises(UpstreamServiceError) as exc_info:
                await listing_service.update_listing(
                    listing_id, listing_form(), [make_upload("new.jpg")], json.dumps([]), identity_for(landlord)
                )

        assert exc_info.value.status_code == 502
        assert all(blob_store.exists(key) for key in old_keys)
        assert sorted(path.name for path in blob_store.base_dir.iterdir()) == sorted(old_keys)

    @pytest.mark.asyncio
    async def test_unknown_existing_image_rejected_before_upload(self, listing_service, landlord, blob_store):
        listing = await self._create(listing_service, landlord, count=1)
        before = set(path.name for path in blob_store.base_dir.iterdir())

        with pytest.raises(ValidationError):
            await listing_service.update_listing(
                listing.id,
                listing_form(),
                [make_upload("new.jpg")],
                json.dumps(["http://elsewhere.test/x.jpg"]),
                identity_for(landlord)
            )

        assert set(path.name for path in blob_store.base_dir.iterdir()) == before

    @pytest.mark.asyncio
    async def test_malformed_existing_images_rejected(self, listing_service, available_listing, landlord):
        with pytest.raises(ValidationError):
            await listing_service.update_listing(
                available_listing.id, listing_form(), [], "not json", identity_for(landlord)
            )


class TestDeleteListing:

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, listing_service, available_listing, other_landlord):
        with pytest.raises(ListingOwnershipError):
            await listing_service.delete_listing(available_listing.id, identity_for(other_landlord))

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_blobs(self, listing_service, landlord, blob_store):
        listing = await listing_service.create_listing(
            listing_form(), [make_upload("a.jpg"), make_upload("b.jpg")], identity_for(landlord)
        )
        keys = listing.stored_keys

        assert await listing_service.delete_listing(listing.id, identity_for(landlord)) is True

        with pytest.raises(ListingNotFoundError):
            await listing_service.get_listing(listing.id, identity_for(landlord))
        assert not any(blob_store.exists(key) for key in keys)

    @pytest.mark.asyncio
    async def test_delete_missing_listing(self, listing_service, landlord):
        with pytest.raises(ListingNotFoundError):
            await listing_service.delete_listing(uuid.uuid4(), identity_for(landlord))

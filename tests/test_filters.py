"""
Tests for the listing filter builder and its SQL compilation.
"""

import uuid

import pytest

from app.repositories.filters import (
    FILTER_BUILDERS,
    AnyOf,
    Equals,
    Membership,
    Range,
    Substring,
    Superset,
    availability_predicate,
    build_listing_predicates,
    normalize_query_filters,
    resolve_sort,
)
from app.repositories.listing import ListingRepository
from app.utils.exceptions import ValidationError
from tests.conftest import ListingFactory


class TestBuildListingPredicates:
    """Filter mapping to predicate list."""

    def test_anonymous_gets_only_availability(self):
        predicates = build_listing_predicates({})
        assert predicates == [Equals("is_available", True)]

    def test_authenticated_also_sees_own_listings(self):
        requester = uuid.uuid4()
        predicates = build_listing_predicates(None, requester_id=requester)
        assert predicates == [
            AnyOf((Equals("is_available", True), Equals("landlord_id", requester)))
        ]

    def test_price_range(self):
        predicates = build_listing_predicates({"min_price": 1000, "max_price": "5000"})
        assert Range("price", minimum=1000) in predicates
        assert Range("price", maximum=5000) in predicates

    def test_property_type_scalar_and_list(self):
        assert Equals("property_type", "apartment") in build_listing_predicates({"property_type": "apartment"})
        assert Membership("property_type", ("apartment", "bungalow")) in build_listing_predicates(
            {"property_type": ["apartment", "bungalow"]}
        )

    def test_substring_fields(self):
        predicates = build_listing_predicates({
            "location": "westlands",
            "county": "Nairobi",
            "estate": "Kile",
            "landlord_name": "jane",
        })
        assert Substring("location", "westlands") in predicates
        assert Substring("county", "Nairobi") in predicates
        assert Substring("estate", "Kile") in predicates
        assert Substring("landlord_name", "jane") in predicates

    def test_amenities_superset_accepts_single_string(self):
        assert Superset("amenities", ("wifi",)) in build_listing_predicates({"amenities": "wifi"})
        assert Superset("amenities", ("wifi", "pool")) in build_listing_predicates({"amenities": ["wifi", "pool"]})

    def test_flags_only_true_or_literal_string(self):
        predicates = build_listing_predicates({"parking": "true", "garden": True, "balcony": "yes", "internet": "1"})
        assert Equals("parking", True) in predicates
        assert Equals("garden", True) in predicates
        assert Equals("balcony", False) in predicates
        assert Equals("internet", False) in predicates

    def test_empty_values_and_unknown_keys_are_skipped(self):
        predicates = build_listing_predicates({
            "location": "",
            "county": None,
            "amenities": [],
            "colour": "blue",
        })
        assert predicates == [Equals("is_available", True)]

    def test_availability_cannot_be_overridden(self):
        predicates = build_listing_predicates({"is_available": False, "landlord_id": str(uuid.uuid4())})
        assert predicates == [Equals("is_available", True)]

    def test_availability_comes_first(self):
        predicates = build_listing_predicates({"bedrooms": 2}, search_text="garden")
        assert predicates[0] == availability_predicate(None)
        assert isinstance(predicates[1], AnyOf)
        assert predicates[2] == Equals("bedrooms", 2)

    def test_search_text_spans_four_fields(self):
        predicates = build_listing_predicates({}, search_text="  sunny ")
        text = predicates[1]
        assert {p.field for p in text.predicates} == {"title", "description", "location", "landlord_name"}
        assert all(p.text == "sunny" for p in text.predicates)

    @pytest.mark.parametrize("key,value", [
        ("min_price", "cheap"),
        ("max_price", -1),
        ("bedrooms", "2.5"),
        ("bathrooms", True),
    ])
    def test_invalid_numbers_are_rejected(self, key, value):
        with pytest.raises(ValidationError) as exc_info:
            build_listing_predicates({key: value})
        assert exc_info.value.status_code == 422
        assert exc_info.value.field_errors[0]["field"] == key

    @pytest.mark.parametrize("key,value", [
        ("furnishing_status", {"a": 1}),
        ("furnishing_status", ["furnished", "unfurnished"]),
        ("location", ["westlands"]),
        ("county", True),
        ("property_type", [{"a": 1}]),
        ("property_type", 3),
        ("amenities", {"wifi": True}),
        ("amenities", ["wifi", 1]),
    ])
    def test_wrong_value_types_are_rejected(self, key, value):
        with pytest.raises(ValidationError) as exc_info:
            build_listing_predicates({key: value})
        assert exc_info.value.status_code == 422
        assert exc_info.value.field_errors[0]["field"] == key

    def test_scalar_filters_accept_integers(self):
        assert Equals("furnishing_status", 1) in build_listing_predicates({"furnishing_status": 1})
        assert Substring("estate", "5") in build_listing_predicates({"estate": 5})

    def test_every_filter_key_has_a_builder(self):
        assert set(FILTER_BUILDERS) == {
            "location", "property_type", "min_price", "max_price", "bedrooms", "bathrooms",
            "county", "estate", "landlord_name", "amenities", "furnishing_status",
            "parking", "garden", "balcony", "own_compound", "electricity", "internet",
        }


class TestSortAndQueryString:

    def test_resolve_sort(self):
        assert resolve_sort(None, None) == ("updated_at", True)
        assert resolve_sort("price", "asc") == ("price", False)
        assert resolve_sort("price", "sideways") == ("price", True)
        assert resolve_sort("password", "asc") == ("updated_at", False)

    def test_normalize_query_filters(self):
        filters = normalize_query_filters([
            ("property_type", "apartment"),
            ("property_type", "bungalow"),
            ("amenities", "wifi, pool"),
            ("amenities", "gym"),
            ("bedrooms", "2"),
            ("limit", "5"),
        ])
        assert filters == {
            "property_type": ["apartment", "bungalow"],
            "amenities": ["wifi", "pool", "gym"],
            "bedrooms": "2",
        }


class TestListingRepositorySearch:
    """Predicates compiled against the database."""

    @pytest.mark.asyncio
    async def test_price_range_search(self, db_session, landlord):
        for price in (10000, 50000, 90000):
            await ListingFactory.create_listing(db_session, landlord, title=f"Price {price}", price=price)

        repo = ListingRepository(db_session)
        predicates = build_listing_predicates({"min_price": "20000", "max_price": "60000"})
        listings, total = await repo.search_listings(predicates)

        assert total == 1
        assert [listing.price for listing in listings] == [50000]

    @pytest.mark.asyncio
    async def test_amenities_must_all_match(self, db_session, landlord):
        await ListingFactory.create_listing(db_session, landlord, title="Both", amenities=["wifi", "pool"])
        await ListingFactory.create_listing(db_session, landlord, title="Wifi only", amenities=["wifi"])

        repo = ListingRepository(db_session)
        listings, total = await repo.search_listings(build_listing_predicates({"amenities": ["wifi", "pool"]}))

        assert total == 1
        assert listings[0].title == "Both"

    @pytest.mark.asyncio
    async def test_substring_is_case_insensitive(self, db_session, landlord):
        await ListingFactory.create_listing(db_session, landlord, title="Near town", location="Kilimani, Nairobi")
        await ListingFactory.create_listing(db_session, landlord, title="Far away", location="Nakuru")

        repo = ListingRepository(db_session)
        listings, _ = await repo.search_listings(build_listing_predicates({"location": "KILIMANI"}))

        assert [listing.title for listing in listings] == ["Near town"]

    @pytest.mark.asyncio
    async def test_like_wildcards_match_literally(self, db_session, landlord):
        await ListingFactory.create_listing(db_session, landlord, title="100% furnished")
        await ListingFactory.create_listing(db_session, landlord, title="1000 sq ft")
        await ListingFactory.create_listing(db_session, landlord, title="Flat_A")
        await ListingFactory.create_listing(db_session, landlord, title="FlatB")

        repo = ListingRepository(db_session)
        percent, _ = await repo.search_listings(build_listing_predicates({}, search_text="100%"))
        underscore, _ = await repo.search_listings(build_listing_predicates({}, search_text="flat_"))

        assert [listing.title for listing in percent] == ["100% furnished"]
        assert [listing.title for listing in underscore] == ["Flat_A"]

    @pytest.mark.asyncio
    async def test_owner_sees_own_unavailable_listing(self, db_session, landlord, other_landlord):
        await ListingFactory.create_listing(db_session, landlord, title="Mine hidden", is_available=False)
        await ListingFactory.create_listing(db_session, other_landlord, title="Theirs hidden", is_available=False)
        await ListingFactory.create_listing(db_session, other_landlord, title="Theirs public")

        repo = ListingRepository(db_session)
        anonymous, _ = await repo.search_listings(build_listing_predicates({}))
        owner, _ = await repo.search_listings(build_listing_predicates({}, requester_id=landlord.id))

        assert {listing.title for listing in anonymous} == {"Theirs public"}
        assert {listing.title for listing in owner} == {"Theirs public", "Mine hidden"}

    @pytest.mark.asyncio
    async def test_total_ignores_pagination(self, db_session, landlord):
        for index in range(5):
            await ListingFactory.create_listing(db_session, landlord, title=f"Flat {index}", price=index * 1000)

        repo = ListingRepository(db_session)
        listings, total = await repo.search_listings(
            build_listing_predicates({}), skip=1, limit=2, order_by="price", order_direction="asc"
        )

        assert total == 5
        assert [listing.price for listing in listings] == [1000, 2000]

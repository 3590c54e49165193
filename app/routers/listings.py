"""
Listing API endpoints: browse, search, publish, update and delete rental listings.
"""

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from typing import Any, Dict, List, Optional
from uuid import UUID

from app.schemas.listing import (
    ListingResponse,
    ListingListResponse,
    ListingCollectionResponse,
    ListingSearchRequest,
    MessageResponse
)
from app.schemas.error import get_error_responses
from app.repositories.filters import normalize_query_filters
from app.services.identity import Identity
from app.services.listing import ListingService
from app.utils.dependencies import (
    get_current_identity,
    get_optional_identity,
    get_listing_service
)


router = APIRouter(prefix="/listings", tags=["Listings"])


async def listing_form_fields(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    property_type: Optional[str] = Form(None),
    bedrooms: Optional[str] = Form(None),
    bathrooms: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    county: Optional[str] = Form(None),
    estate: Optional[str] = Form(None),
    landlord_name: Optional[str] = Form(None),
    amenities: Optional[str] = Form(None, description="JSON array of strings"),
    furnishing_status: Optional[str] = Form(None),
    parking: Optional[str] = Form(None),
    garden: Optional[str] = Form(None),
    balcony: Optional[str] = Form(None),
    own_compound: Optional[str] = Form(None),
    electricity: Optional[str] = Form(None),
    internet: Optional[str] = Form(None),
    is_available: Optional[str] = Form(None)
) -> Dict[str, Any]:
    """Raw multipart listing fields; parsing happens in the service after the role check."""
    return {
        "title": title,
        "description": description,
        "price": price,
        "property_type": property_type,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "location": location,
        "county": county,
        "estate": estate,
        "landlord_name": landlord_name,
        "amenities": amenities,
        "furnishing_status": furnishing_status,
        "parking": parking,
        "garden": garden,
        "balcony": balcony,
        "own_compound": own_compound,
        "electricity": electricity,
        "internet": internet,
        "is_available": is_available,
    }


def _page(listings, total: int, limit: int, offset: int) -> ListingListResponse:
    return ListingListResponse(
        listings=[ListingResponse.model_validate(listing) for listing in listings],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get(
    "",
    response_model=ListingListResponse,
    summary="List listings",
    description="Paginated listings with optional filters passed as query parameters"
)
async def list_listings(
    request: Request,
    limit: int = Query(20, ge=1, le=100, description="Number of listings per page"),
    offset: int = Query(0, ge=0, description="Number of listings to skip"),
    sort: str = Query("updated_at", description="Sort field"),
    order: str = Query("desc", description="Sort order (asc/desc)"),
    identity: Optional[Identity] = Depends(get_optional_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingListResponse:
    """
    Browse listings.

    Filter keys (location, property_type, min_price, max_price, amenities, ...)
    are read from the query string; property_type may repeat and amenities may
    be comma separated.
    """
    filters = normalize_query_filters(request.query_params.multi_items())
    listings, total = await listing_service.list_listings(
        filters=filters,
        limit=limit,
        offset=offset,
        sort=sort,
        order=order,
        requester=identity
    )
    return _page(listings, total, limit, offset)


@router.post(
    "/search",
    response_model=ListingListResponse,
    summary="Search listings",
    description="Free-text search plus structured filters"
)
async def search_listings(
    search: ListingSearchRequest,
    identity: Optional[Identity] = Depends(get_optional_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingListResponse:
    listings, total = await listing_service.search_listings(
        query=search.query,
        filters=search.filters,
        limit=search.limit,
        offset=search.offset,
        sort=search.sort,
        order=search.order,
        requester=identity
    )
    return _page(listings, total, search.limit, search.offset)


@router.get(
    "/landlord/my-listings",
    response_model=ListingCollectionResponse,
    summary="Get my listings",
    description="Every listing owned by the caller, including unavailable ones",
    responses=get_error_responses(401)
)
async def get_my_listings(
    identity: Identity = Depends(get_current_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingCollectionResponse:
    listings = await listing_service.list_owner_listings(identity)
    return ListingCollectionResponse(listings=[ListingResponse.model_validate(listing) for listing in listings])


@router.get(
    "/landlord/{landlord_id}",
    response_model=ListingCollectionResponse,
    summary="Get a landlord's listings",
    description="Available listings of one landlord"
)
async def get_landlord_listings(
    landlord_id: UUID,
    identity: Optional[Identity] = Depends(get_optional_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingCollectionResponse:
    listings = await listing_service.list_landlord_listings(landlord_id, identity)
    return ListingCollectionResponse(listings=[ListingResponse.model_validate(listing) for listing in listings])


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Get listing by ID",
    description="Unavailable listings are visible to their owner only",
    responses=get_error_responses(403, 404)
)
async def get_listing(
    listing_id: UUID,
    identity: Optional[Identity] = Depends(get_optional_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.get_listing(listing_id, identity)
    return ListingResponse.model_validate(listing)


@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing",
    description="Publish a listing with up to 10 images. Requires landlord or caretaker role.",
    responses=get_error_responses(400, 401, 403, 413, 422, 502)
)
async def create_listing(
    form_data: Dict[str, Any] = Depends(listing_form_fields),
    images: Optional[List[UploadFile]] = File(None, description="Listing images, first is primary"),
    identity: Identity = Depends(get_current_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """
    Create a new listing.

    Raises:
        ForbiddenError: If the caller is not a landlord or caretaker
        ValidationError: If listing fields are invalid
        BadRequestError: If an image is rejected
    """
    listing = await listing_service.create_listing(form_data, images or [], identity)
    return ListingResponse.model_validate(listing)


@router.put(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Update listing",
    description="Replace a listing's fields and images. Owner only.",
    responses=get_error_responses(400, 401, 403, 404, 413, 422, 502)
)
async def update_listing(
    listing_id: UUID,
    form_data: Dict[str, Any] = Depends(listing_form_fields),
    existing_images: Optional[str] = Form(None, description="JSON array of current image URLs to keep"),
    images: Optional[List[UploadFile]] = File(None, description="New images, first replaces the primary"),
    identity: Identity = Depends(get_current_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.update_listing(
        listing_id,
        form_data,
        images or [],
        existing_images,
        identity
    )
    return ListingResponse.model_validate(listing)


@router.delete(
    "/{listing_id}",
    response_model=MessageResponse,
    summary="Delete listing",
    description="Delete a listing and its images. Owner only.",
    responses=get_error_responses(401, 403, 404)
)
async def delete_listing(
    listing_id: UUID,
    identity: Identity = Depends(get_current_identity),
    listing_service: ListingService = Depends(get_listing_service)
) -> MessageResponse:
    await listing_service.delete_listing(listing_id, identity)
    return MessageResponse(message="Listing deleted successfully")

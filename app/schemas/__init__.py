"""
Pydantic schemas for request/response validation.
"""

# Listing schemas
from .listing import (
    LandlordSummary,
    ListingResponse,
    ListingListResponse,
    ListingCollectionResponse,
    ListingSearchRequest,
    ListingForm,
    MessageResponse,
    parse_existing_images
)

# Favorite schemas
from .favorite import (
    FavoriteCreate,
    FavoriteResponse,
    FavoriteWithListing,
    FavoriteListResponse,
    FavoriteCheckResponse
)

# Error schemas
from .error import ErrorDetail, ErrorResponse, get_error_responses

__all__ = [
    # Listing
    "LandlordSummary",
    "ListingResponse",
    "ListingListResponse",
    "ListingCollectionResponse",
    "ListingSearchRequest",
    "ListingForm",
    "MessageResponse",
    "parse_existing_images",

    # Favorite
    "FavoriteCreate",
    "FavoriteResponse",
    "FavoriteWithListing",
    "FavoriteListResponse",
    "FavoriteCheckResponse",

    # Error
    "ErrorDetail",
    "ErrorResponse",
    "get_error_responses"
]

"""
Database models for the Rental Listings API.
Includes Profile, Listing, and Favorite models with relationships.
"""

from app.models.profile import Profile, UserType, LISTING_PUBLISHER_ROLES
from app.models.listing import Listing
from app.models.favorite import Favorite

# Export all models for easy importing
__all__ = [
    "Profile",
    "UserType",
    "LISTING_PUBLISHER_ROLES",
    "Listing",
    "Favorite",
]

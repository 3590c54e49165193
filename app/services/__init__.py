"""
Service layer for business logic implementation.
Contains services for identity resolution, listings, images, favorites, and error handling.
"""

from .identity import Identity, IdentityResolver
from .image import ImageService
from .listing import ListingService
from .favorite import FavoriteService
from .error_handler import ErrorHandlerService

__all__ = [
    "Identity",
    "IdentityResolver",
    "ImageService",
    "ListingService",
    "FavoriteService",
    "ErrorHandlerService"
]

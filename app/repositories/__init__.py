"""
Repository layer for data access operations.
Provides database operations with proper error handling.
"""

from app.repositories.base import BaseRepository
from app.repositories.listing import ListingRepository
from app.repositories.favorite import FavoriteRepository
from app.repositories.profile import ProfileRepository

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "FavoriteRepository",
    "ProfileRepository"
]

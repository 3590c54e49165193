"""
FastAPI dependency injection utilities for identity, storage and services.
Provides reusable dependencies for route protection and per-request services.
"""

from functools import lru_cache
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import Settings, get_settings
from app.database import get_db
from app.services.identity import Identity, IdentityResolver
from app.services.listing import ListingService
from app.services.favorite import FavoriteService
from app.utils.exceptions import UnauthorizedError
from app.utils.file_utils import BlobStore, LocalBlobStore


@lru_cache()
def get_blob_store() -> BlobStore:
    """
    Get the object store for listing images.

    Returns:
        Shared LocalBlobStore rooted at the configured upload directory
    """
    return LocalBlobStore()


async def get_identity_resolver(
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_settings)
) -> IdentityResolver:
    return IdentityResolver(db, app_settings)


async def get_listing_service(
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    app_settings: Settings = Depends(get_settings)
) -> ListingService:
    """
    Get listing service instance.

    Args:
        db: Database session
        blob_store: Object store for listing images
        app_settings: Application settings

    Returns:
        ListingService instance
    """
    return ListingService(db, blob_store, app_settings)


async def get_favorite_service(db: AsyncSession = Depends(get_db)) -> FavoriteService:
    return FavoriteService(db)


async def get_optional_identity(
    authorization: Optional[str] = Header(None),
    resolver: IdentityResolver = Depends(get_identity_resolver)
) -> Optional[Identity]:
    """
    Get the caller's identity if a valid token is provided, otherwise None.

    Invalid credentials are treated as anonymous.
    """
    return await resolver.resolve(authorization)


async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity)
) -> Identity:
    """
    Get the authenticated caller.

    Raises:
        UnauthorizedError: If no valid token was provided
    """
    if identity is None:
        raise UnauthorizedError()
    return identity

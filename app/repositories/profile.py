"""
Profile repository. Profiles belong to the identity provider, so this is read-only.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from app.repositories.base import BaseRepository
from app.models.profile import Profile


class ProfileRepository(BaseRepository[Profile]):
    """Read access to identity profiles."""

    def __init__(self, db: AsyncSession):
        super().__init__(Profile, db)

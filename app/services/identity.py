"""
Identity resolution for incoming requests.
Turns an Authorization header into the caller's identity and profile details.
"""

from dataclasses import dataclass
from typing import Optional
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import Settings, get_settings
from app.models.profile import LISTING_PUBLISHER_ROLES
from app.repositories.profile import ProfileRepository
from app.utils.auth import extract_token_from_header, verify_access_token
import uuid
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""
    id: uuid.UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None

    @property
    def can_publish(self) -> bool:
        return self.role in LISTING_PUBLISHER_ROLES


class IdentityResolver:
    """Verifies identity provider tokens and loads the matching profile."""

    def __init__(self, db_session: AsyncSession, app_settings: Optional[Settings] = None):
        self.settings = app_settings or get_settings()
        self.profile_repo = ProfileRepository(db_session)

    async def resolve(self, authorization: Optional[str]) -> Optional[Identity]:
        """
        Resolve the caller from an Authorization header.

        A valid token without a profile row yields an identity with no role.

        Args:
            authorization: Raw Authorization header value

        Returns:
            Identity, or None for anonymous or rejected credentials
        """
        token = extract_token_from_header(authorization)
        if token is None:
            if authorization:
                logger.warning("Rejected malformed Authorization header")
            return None

        try:
            payload = verify_access_token(
                token,
                secret=self.settings.identity_jwt_secret,
                algorithm=self.settings.identity_jwt_algorithm,
                audience=self.settings.identity_jwt_audience,
            )
        except JWTError as e:
            logger.warning(f"Rejected access token: {e}")
            return None

        try:
            profile = await self.profile_repo.get_by_id(payload.user_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load profile for {payload.user_id}: {e}")
            return None

        if profile is None:
            logger.debug(f"No profile for identity {payload.user_id}")
            return Identity(id=payload.user_id, email=payload.email)

        return Identity(
            id=profile.id,
            email=profile.email or payload.email,
            full_name=profile.full_name,
            phone=profile.phone,
            role=profile.user_type,
        )

"""
Test configuration and fixtures for the rental listings API.
Provides database fixtures, test data factories, and common test utilities.
"""

import os
import tempfile

# Configure the app for tests before anything reads the settings
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("IDENTITY_JWT_SECRET", "test-identity-secret")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="rental-listings-test-"))

import io
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Optional

import pytest
from fastapi import UploadFile
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.datastructures import Headers

from app.config import Settings, get_settings
from app.database import Base, get_db, utcnow
from app.main import app
from app.models import Favorite, Listing, Profile
from app.services.favorite import FavoriteService
from app.services.identity import Identity, IdentityResolver
from app.services.image import ImageService
from app.services.listing import ListingService
from app.utils.dependencies import get_blob_store
from app.utils.file_utils import LocalBlobStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
MEDIA_BASE_URL = "http://test/media"

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"0" * 256
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 256


@pytest.fixture
def test_settings() -> Settings:
    return get_settings()


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(base_dir=tmp_path / "media", base_url=MEDIA_BASE_URL)


@pytest.fixture
async def async_client(db_session: AsyncSession, blob_store: LocalBlobStore) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database session and object store overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Service fixtures
@pytest.fixture
def image_service(blob_store: LocalBlobStore, test_settings: Settings) -> ImageService:
    return ImageService(blob_store, test_settings)


@pytest.fixture
def listing_service(db_session: AsyncSession, blob_store: LocalBlobStore, test_settings: Settings) -> ListingService:
    return ListingService(db_session, blob_store, test_settings)


@pytest.fixture
def favorite_service(db_session: AsyncSession) -> FavoriteService:
    return FavoriteService(db_session)


@pytest.fixture
def identity_resolver(db_session: AsyncSession, test_settings: Settings) -> IdentityResolver:
    return IdentityResolver(db_session, test_settings)


# Test data factories
class ProfileFactory:
    """Factory for creating test profiles."""

    @staticmethod
    async def create_profile(
        db: AsyncSession,
        user_type: Optional[str] = "landlord",
        full_name: str = "Test Landlord",
        phone: str = "+254700000000",
        email: Optional[str] = None
    ) -> Profile:
        profile = Profile(
            id=uuid.uuid4(),
            full_name=full_name,
            phone=phone,
            email=email or f"test{uuid.uuid4().hex[:8]}@example.com",
            user_type=user_type
        )
        db.add(profile)
        await db.commit()
        return profile


class ListingFactory:
    """Factory for creating test listings."""

    @staticmethod
    def create_listing_data(landlord: Profile, **overrides) -> dict:
        now = utcnow()
        data = {
            "title": "Test Listing",
            "description": "A bright apartment close to town",
            "price": 25000,
            "property_type": "apartment",
            "bedrooms": 2,
            "bathrooms": 1,
            "location": "Westlands, Nairobi",
            "county": "Nairobi",
            "estate": "Westlands",
            "landlord_name": landlord.full_name,
            "amenities": ["wifi", "water"],
            "furnishing_status": "unfurnished",
            "parking": False,
            "garden": False,
            "balcony": False,
            "own_compound": False,
            "electricity": True,
            "internet": False,
            "is_available": True,
            "images": [],
            "image_keys": [],
            "landlord_id": landlord.id,
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create_listing(db: AsyncSession, landlord: Profile, **overrides) -> Listing:
        listing = Listing(**ListingFactory.create_listing_data(landlord, **overrides))
        db.add(listing)
        await db.commit()
        return listing


# Identity helpers
def identity_for(profile: Profile) -> Identity:
    return Identity(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        phone=profile.phone,
        role=profile.user_type
    )


def make_token(
    user_id: uuid.UUID,
    secret: Optional[str] = None,
    audience: str = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
    email: Optional[str] = None
) -> str:
    """Mint an identity provider style access token."""
    claims = {
        "sub": str(user_id),
        "aud": audience,
        "exp": datetime.now(timezone.utc) + expires_in,
        "role": "authenticated",
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret or get_settings().identity_jwt_secret, algorithm="HS256")


def auth_headers(profile: Profile) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


def make_upload(filename: str = "photo.jpg", data: bytes = JPEG_BYTES, content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type})
    )


# Profile fixtures
@pytest.fixture
async def landlord(db_session: AsyncSession) -> Profile:
    return await ProfileFactory.create_profile(db_session, user_type="landlord", full_name="Jane Landlord")


@pytest.fixture
async def other_landlord(db_session: AsyncSession) -> Profile:
    return await ProfileFactory.create_profile(db_session, user_type="landlord", full_name="Other Landlord")


@pytest.fixture
async def caretaker(db_session: AsyncSession) -> Profile:
    return await ProfileFactory.create_profile(db_session, user_type="caretaker", full_name="Carl Caretaker")


@pytest.fixture
async def tenant(db_session: AsyncSession) -> Profile:
    return await ProfileFactory.create_profile(db_session, user_type="tenant", full_name="Tina Tenant")


@pytest.fixture
async def available_listing(db_session: AsyncSession, landlord: Profile) -> Listing:
    return await ListingFactory.create_listing(db_session, landlord, title="Available Flat", is_available=True)


@pytest.fixture
async def hidden_listing(db_session: AsyncSession, landlord: Profile) -> Listing:
    return await ListingFactory.create_listing(db_session, landlord, title="Hidden Flat", is_available=False)


async def add_favorite_row(db: AsyncSession, user: Profile, listing: Listing) -> Favorite:
    favorite = Favorite(user_id=user.id, listing_id=listing.id)
    db.add(favorite)
    await db.commit()
    return favorite

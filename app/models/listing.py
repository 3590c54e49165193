"""
Listing model for rental property advertisements.
Stores the advertised property, its feature flags, and its image references.
"""

from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON, Index, ForeignKey, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base, utcnow
from datetime import datetime
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.profile import Profile

# JSONB on PostgreSQL, plain JSON elsewhere
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Listing(Base):
    """
    Property listing owned by a landlord or caretaker profile.
    Image URLs and their storage keys are kept side by side, position for position.
    """

    __tablename__ = "listings"

    # Basic listing information
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Listing title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Detailed listing description"
    )

    price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Monthly rent"
    )

    property_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        comment="Apartment, bedsitter, bungalow, ..."
    )

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Location information
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    county: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    estate: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    landlord_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name copied from the owner's profile at write time"
    )

    amenities: Mapped[List[str]] = mapped_column(JSONList, nullable=False, default=list)
    furnishing_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Feature flags
    parking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    garden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    balcony: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    own_compound: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    electricity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    internet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
        comment="Unavailable listings are visible to their owner only"
    )

    # Images: public URLs plus the object-store keys they were produced from
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    image_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    images: Mapped[List[str]] = mapped_column(JSONList, nullable=False, default=list)
    image_keys: Mapped[List[str]] = mapped_column(JSONList, nullable=False, default=list)

    landlord_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning profile, immutable after creation"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    landlord: Mapped["Profile"] = relationship(
        "Profile",
        back_populates="listings",
        lazy="raise"
    )

    @property
    def stored_keys(self) -> List[str]:
        """Every object-store key referenced by this listing."""
        keys = [self.image_key] if self.image_key else []
        return keys + list(self.image_keys or [])

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title[:30]}..., price={self.price})>"


# Owner catalogue pages
landlord_available_index = Index(
    "idx_listings_landlord_available",
    Listing.landlord_id,
    Listing.is_available,
    Listing.updated_at.desc()
)

# Public browse sorted by recency
available_updated_index = Index(
    "idx_listings_available_updated",
    Listing.is_available,
    Listing.updated_at.desc()
)

"""
Favorite model: a user's bookmark of a listing.
"""

from sqlalchemy import ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.listing import Listing


class Favorite(Base):
    """One row per (user, listing) pair; duplicates are rejected by the store."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "listing_id", name="uq_favorites_user_listing"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="Identity that saved the listing"
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    listing: Mapped["Listing"] = relationship("Listing", lazy="raise")

    def __repr__(self) -> str:
        return f"<Favorite(user_id={self.user_id}, listing_id={self.listing_id})>"

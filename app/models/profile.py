"""
Profile model mirroring identities owned by the external identity provider.
Rows are written by the provider's signup flow; this service only reads them.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base
import enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.listing import Listing


class UserType(str, enum.Enum):
    """Roles an identity can carry."""
    LANDLORD = "landlord"
    CARETAKER = "caretaker"
    TENANT = "tenant"


# Roles allowed to publish listings
LISTING_PUBLISHER_ROLES = {UserType.LANDLORD.value, UserType.CARETAKER.value}


class Profile(Base):
    """
    Read-only projection of an identity.
    The primary key equals the identity provider's subject id.
    """

    __tablename__ = "profiles"

    full_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Contact email"
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Contact phone number"
    )

    user_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        index=True,
        comment="landlord, caretaker or tenant"
    )

    listings: Mapped[List["Listing"]] = relationship(
        "Listing",
        back_populates="landlord",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, user_type={self.user_type})>"

"""
Pydantic schemas for listing requests and responses.
Handles multipart listing forms, search requests, and listing projections.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Any, Dict, List, Optional
from datetime import datetime
import json
import uuid

from app.utils.exceptions import ValidationError


class LandlordSummary(BaseModel):
    """Owner profile embedded in listing responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: Optional[str] = None
    phone: Optional[str] = None
    user_type: Optional[str] = None
    email: Optional[str] = None


class ListingResponse(BaseModel):
    """Public projection of a listing. Storage keys are never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    price: int
    property_type: Optional[str] = None
    bedrooms: int
    bathrooms: int
    location: Optional[str] = None
    county: Optional[str] = None
    estate: Optional[str] = None
    landlord_name: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    furnishing_status: Optional[str] = None
    parking: bool
    garden: bool
    balcony: bool
    own_compound: bool
    electricity: bool
    internet: bool
    is_available: bool
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    landlord_id: uuid.UUID
    landlord: Optional[LandlordSummary] = None
    created_at: datetime
    updated_at: datetime


class ListingListResponse(BaseModel):
    """Paginated listing results."""

    listings: List[ListingResponse]
    total: int = Field(..., description="Total matches ignoring pagination")
    limit: int
    offset: int


class ListingCollectionResponse(BaseModel):
    """Unpaginated listing results (landlord catalogues)."""

    listings: List[ListingResponse]


class ListingSearchRequest(BaseModel):
    """Body of POST /listings/search."""

    query: Optional[str] = Field(
        None,
        max_length=255,
        description="Free text matched against title, description, location and landlord name",
        examples=["westlands"]
    )

    filters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Filter key to value; unknown keys are ignored",
        examples=[{"min_price": 10000, "max_price": 60000, "amenities": ["wifi"]}]
    )

    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)
    sort: Optional[str] = Field(None, description="Column to sort by")
    order: Optional[str] = Field(None, description="asc or desc")

    @field_validator("filters", mode="before")
    @classmethod
    def default_filters(cls, v):
        return v if v is not None else {}


class MessageResponse(BaseModel):
    message: str


TEXT_FIELDS = (
    "description",
    "property_type",
    "location",
    "county",
    "estate",
    "landlord_name",
    "furnishing_status",
)

INTEGER_FIELDS = ("price", "bedrooms", "bathrooms")

FLAG_FIELDS = (
    "parking",
    "garden",
    "balcony",
    "own_compound",
    "electricity",
    "internet",
    "is_available",
)


class ListingForm(BaseModel):
    """
    Listing fields as submitted in a multipart form.

    Every mutable column gets a value: blank numbers become 0, flags are true
    only for the literal string "true", and blank text becomes None.
    """

    title: str
    description: Optional[str] = None
    price: int = 0
    property_type: Optional[str] = None
    bedrooms: int = 0
    bathrooms: int = 0
    location: Optional[str] = None
    county: Optional[str] = None
    estate: Optional[str] = None
    landlord_name: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    furnishing_status: Optional[str] = None
    parking: bool = False
    garden: bool = False
    balcony: bool = False
    own_compound: bool = False
    electricity: bool = False
    internet: bool = False
    is_available: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Title is required")
        return str(v).strip()

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def blank_text_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator(*INTEGER_FIELDS, mode="before")
    @classmethod
    def parse_non_negative_int(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        if isinstance(v, bool):
            raise ValueError("Must be a non-negative integer")
        if isinstance(v, int):
            parsed = v
        elif isinstance(v, str) and v.strip().isdigit():
            parsed = int(v.strip())
        else:
            raise ValueError("Must be a non-negative integer")
        if parsed < 0:
            raise ValueError("Must be a non-negative integer")
        return parsed

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def parse_flag(cls, v):
        return v is True or v == "true"

    @field_validator("amenities", mode="before")
    @classmethod
    def parse_amenities(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("Amenities must be a JSON array of strings")
        if not isinstance(v, list) or not all(isinstance(item, str) for item in v):
            raise ValueError("Amenities must be a JSON array of strings")
        return v

    @classmethod
    def from_form(cls, data: Dict[str, Any]) -> "ListingForm":
        """
        Parse raw form fields.

        Raises:
            ValidationError: With one entry per invalid field
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            field_errors = [
                {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ]
            raise ValidationError("Invalid listing data", field_errors=field_errors)

    def to_columns(self) -> Dict[str, Any]:
        return self.model_dump()


def parse_existing_images(raw: Optional[str]) -> Optional[List[str]]:
    """
    Parse the ``existing_images`` form field.

    Returns None when the field was not sent, meaning "keep the current images".

    Raises:
        ValidationError: If the value is not a JSON array of strings
    """
    if raw is None:
        return None
    try:
        urls = json.loads(raw) if raw.strip() else []
    except json.JSONDecodeError:
        urls = None
    if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
        raise ValidationError(
            "existing_images must be a JSON array of image URLs",
            field_errors=[{"field": "existing_images", "message": "Invalid JSON array"}]
        )
    return urls

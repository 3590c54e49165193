"""
Utility modules for the Rental Listings API.
"""

from .auth import (
    verify_access_token,
    extract_token_from_header,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    InvalidStateError,
    UpstreamServiceError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "verify_access_token",
    "extract_token_from_header",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "InvalidStateError",
    "UpstreamServiceError",
]

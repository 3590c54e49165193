"""
Custom exception classes for the Rental Listings API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST"
        )


class InvalidStateError(APIException):
    """Operation not valid for the current state of the resource."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="INVALID_STATE"
        )


class UpstreamServiceError(APIException):
    """
    Database, object store, or identity provider failure.

    ``diagnostic`` carries the underlying error text; the error handler only
    exposes it outside production.
    """

    def __init__(self, detail: str, diagnostic: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="UPSTREAM_FAILURE"
        )
        self.diagnostic = diagnostic


# Listing specific exceptions
class ListingNotFoundError(NotFoundError):
    """Listing not found exception."""

    def __init__(self, listing_id: str):
        super().__init__("Listing", listing_id)


class ListingOwnershipError(ForbiddenError):
    """Listing ownership violation exception."""

    def __init__(self, action: str):
        super().__init__(f"Not authorized to {action} this listing")


class ListingUnavailableError(ForbiddenError):
    """Unavailable listing requested by someone other than its owner."""

    def __init__(self):
        super().__init__("Listing not available")


# File upload exceptions
class ResourceLimitExceededError(BadRequestError):
    """Resource limit exceeded exception."""

    def __init__(self, resource: str, limit: int):
        super().__init__(f"{resource} limit exceeded (maximum: {limit})")


class UnsupportedFileTypeError(BadRequestError):
    """Unsupported file type exception."""

    def __init__(self, file_type: str, supported_types: List[str]):
        supported = ", ".join(supported_types)
        super().__init__(f"Unsupported file type '{file_type}'. Only images ({supported}) are allowed")


class FileSizeExceededError(BadRequestError):
    """File size exceeded exception."""

    def __init__(self, filename: str, size: int, max_size: int):
        super().__init__(f"File '{filename}' is {size} bytes, exceeding the maximum allowed size of {max_size} bytes")


class PayloadTooLargeError(APIException):
    """Request body larger than the configured maximum."""

    def __init__(self, size: int, max_size: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request size {size} bytes exceeds maximum allowed size {max_size} bytes",
            error_code="PAYLOAD_TOO_LARGE"
        )

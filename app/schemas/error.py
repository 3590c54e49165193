"""
Error response schemas for API documentation.
Mirrors the body produced by the error handler service.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(
        None,
        description="Field name that caused the error",
        examples=["price"]
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Must be a non-negative integer"]
    )

    type: Optional[str] = Field(None, description="Error type identifier")
    input: Optional[Any] = Field(None, description="Input value that caused the error")


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    error: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Listing not available"]
    )

    code: str = Field(
        ...,
        description="Error code identifier",
        examples=["FORBIDDEN"]
    )

    details: Optional[List[ErrorDetail]] = Field(
        None,
        description="Field errors or upstream diagnostics"
    )

    timestamp: str = Field(
        ...,
        description="ISO timestamp when error occurred",
        examples=["2024-01-01T00:00:00Z"]
    )

    request_id: Optional[str] = Field(
        None,
        description="Request identifier for tracking",
        examples=["abc12345"]
    )


ERROR_DESCRIPTIONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Validation Error",
    502: "Upstream Failure",
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI ``responses`` entries for the given error status codes."""
    return {
        code: {"model": ErrorResponse, "description": ERROR_DESCRIPTIONS.get(code, "Error")}
        for code in status_codes
    }

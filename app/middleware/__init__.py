"""
Middleware package for the Rental Listings API.
"""

from .request_logging import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware"
]

"""
API route handlers for the Rental Listings API.
"""

from .listings import router as listings_router
from .favorites import router as favorites_router
from .health import router as health_router

__all__ = ["listings_router", "favorites_router", "health_router"]

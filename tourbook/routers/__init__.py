"""FastAPI routers package."""

from .bookings import router as bookings_router
from .health import router as health_router
from .reviews import router as reviews_router

__all__ = [
    "bookings_router",
    "health_router",
    "reviews_router",
]

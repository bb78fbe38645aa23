"""Process-local state caches."""

from .bookings_cache import BookingsCache
from .reviews_cache import ReviewsCache

__all__ = ["BookingsCache", "ReviewsCache"]

"""Service layer package."""

from .bookings_service import BookingsService
from .review_coordinator import ReviewCoordinator
from .session import SessionRegistry, UserSession
from .sync_runner import BookingSyncRunner

__all__ = [
    "BookingSyncRunner",
    "BookingsService",
    "ReviewCoordinator",
    "SessionRegistry",
    "UserSession",
]

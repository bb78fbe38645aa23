"""Repositories for the remote tour/booking/review store."""

from .booking_repository import BookingRepository
from .review_repository import ReviewRepository

__all__ = [
    "BookingRepository",
    "ReviewRepository",
]

"""In-memory cache of the current user's bookings."""

import logging
from typing import Optional

from ..schemas.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingsCache:
    """
    Bookings keyed by id, with an index by tour id.

    The cache is never the source of truth: it is rebuilt from
    ``BookingRepository.fetch_user_bookings`` and mutated only through the
    methods below. Readers get copies of the stored models, so a caller
    cannot change cached state behind the cache's back.
    """

    def __init__(self):
        self._bookings: dict[str, Booking] = {}
        self._by_tour: dict[str, list[str]] = {}
        self.current_booking: Optional[Booking] = None
        self.is_loading = False
        self.is_submitting = False
        self.error: Optional[str] = None

    # Mutations

    def set_user_bookings(self, bookings: list[Booking]) -> None:
        """Replace the cached bookings, preserving the given order."""
        self._bookings = {}
        self._by_tour = {}
        for booking in bookings:
            if booking.id in self._bookings:
                logger.warning(
                    "Duplicate booking id in fetched bookings, keeping the first",
                    extra={"booking_id": booking.id}
                )
                continue
            self._bookings[booking.id] = booking
            self._by_tour.setdefault(booking.tour_id, []).append(booking.id)

        if self.current_booking and self.current_booking.id not in self._bookings:
            self.current_booking = None

    def update_booking_status(self, booking_id: str, status: str) -> Optional[Booking]:
        """
        Set the status of a cached booking.

        Returns:
            The updated booking, or None if the booking is not cached
        """
        booking = self._bookings.get(booking_id)
        if booking is None:
            return None

        updated = booking.model_copy(update={"status": status})
        self._bookings[booking_id] = updated
        if self.current_booking and self.current_booking.id == booking_id:
            self.current_booking = updated
        return updated.model_copy()

    def set_current_booking(self, booking: Booking) -> None:
        self.current_booking = booking.model_copy()

    def clear_current_booking(self) -> None:
        self.current_booking = None

    def set_loading(self, value: bool) -> None:
        self.is_loading = value

    def set_submitting(self, value: bool) -> None:
        self.is_submitting = value

    def set_error(self, message: str) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def clear(self) -> None:
        self.set_user_bookings([])
        self.current_booking = None
        self.error = None

    # Queries

    @property
    def user_bookings(self) -> list[Booking]:
        return [booking.model_copy() for booking in self._bookings.values()]

    def get(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy() if booking else None

    def find_by_tour_id(self, tour_id: str) -> Optional[Booking]:
        """First cached booking for a tour, in fetch order."""
        booking_ids = self._by_tour.get(tour_id)
        if not booking_ids:
            return None
        return self._bookings[booking_ids[0]].model_copy()

    def pending_review(self) -> list[Booking]:
        return [
            booking.model_copy()
            for booking in self._bookings.values()
            if booking.status == BookingStatus.PENDING_REVIEW.value
        ]

    def status_for_tour(self, tour_id: str) -> Optional[str]:
        booking = self.find_by_tour_id(tour_id)
        return booking.status if booking else None

    def __len__(self) -> int:
        return len(self._bookings)

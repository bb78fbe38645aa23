"""Booking-side operations exposed to the UI layer."""

import logging
from typing import Optional

from ..core.exceptions import ProblemDetailsException
from ..repositories.booking_repository import BookingRepository
from ..schemas.booking import Booking, BookingStatus
from ..schemas.common import BookingListResult, BookingResult, CheckoutResult, OperationResult
from ..state.bookings_cache import BookingsCache

logger = logging.getLogger(__name__)


class BookingsService:
    """
    Loads and mutates the current user's bookings.

    Every operation returns a result object; errors are recorded on the
    cache's ``error`` flag and never raised.
    """

    def __init__(self, repository: BookingRepository, cache: BookingsCache):
        self.repository = repository
        self.cache = cache

    def _failure(self, exc: Exception, fallback: str, **context) -> tuple[str, str]:
        if isinstance(exc, ProblemDetailsException):
            logger.warning(
                fallback,
                extra={**context, "error": exc.message, "error_code": exc.code}
            )
            message, code = exc.message, exc.code
        else:
            logger.error(
                fallback,
                extra={**context, "error": str(exc)},
                exc_info=True
            )
            message, code = f"{fallback}. Please try again.", "INTERNAL_ERROR"

        self.cache.set_error(message)
        return message, code

    async def load_user_bookings(self) -> BookingListResult:
        """Fetch the user's bookings and replace the cache with them."""
        self.cache.set_loading(True)
        self.cache.clear_error()

        try:
            bookings = await self.repository.fetch_user_bookings()
        except Exception as e:
            message, code = self._failure(e, "Failed to load your bookings")
            return BookingListResult.fail(message, code)
        finally:
            self.cache.set_loading(False)

        self.cache.set_user_bookings(bookings)
        return BookingListResult.ok(bookings=self.cache.user_bookings)

    async def create_checkout_session(self, tour_id: str) -> CheckoutResult:
        """Start a hosted checkout; the caller redirects the user to ``url``."""
        self.cache.set_submitting(True)
        self.cache.clear_error()

        try:
            session = await self.repository.create_checkout_session(tour_id)
        except Exception as e:
            message, code = self._failure(e, "Failed to create checkout session", tour_id=tour_id)
            return CheckoutResult.fail(message, code)
        finally:
            self.cache.set_submitting(False)

        return CheckoutResult.ok(session_id=session.session_id, url=session.url)

    async def update_booking_status(self, booking_id: str, status: str) -> BookingResult:
        """Persist a status change, then apply it to the cache."""
        self.cache.set_submitting(True)
        self.cache.clear_error()

        try:
            await self.repository.update_booking_status(booking_id, status)
        except Exception as e:
            message, code = self._failure(
                e, "Failed to update booking status", booking_id=booking_id, status=status
            )
            return BookingResult.fail(message, code)
        finally:
            self.cache.set_submitting(False)

        updated = self.cache.update_booking_status(booking_id, status)
        return BookingResult.ok(booking=updated)

    async def mark_booking_as_reviewed(self, tour_id: str) -> OperationResult:
        """Move the tour's booking from pending-review to reviewed."""
        return await self._transition(tour_id, BookingStatus.PENDING_REVIEW, BookingStatus.REVIEWED)

    async def mark_booking_as_pending_review(self, tour_id: str) -> OperationResult:
        """Move the tour's booking from reviewed back to pending-review."""
        return await self._transition(tour_id, BookingStatus.REVIEWED, BookingStatus.PENDING_REVIEW)

    async def _transition(self, tour_id: str, expected: BookingStatus, target: BookingStatus) -> OperationResult:
        booking = self.cache.find_by_tour_id(tour_id)
        if booking is None:
            logger.warning("No booking found for tour", extra={"tour_id": tour_id})
            return OperationResult.fail("Booking not found", "NOT_FOUND")

        if booking.status != expected.value:
            logger.warning(
                "Booking is not in the expected status",
                extra={"booking_id": booking.id, "status": booking.status, "expected": expected.value}
            )
            label = "pending review" if expected is BookingStatus.PENDING_REVIEW else "reviewed"
            return OperationResult.fail(f"Booking is not {label}", "CONFLICT")

        result = await self.update_booking_status(booking.id, target.value)
        return OperationResult(success=result.success, error=result.error, code=result.code)

    # Queries

    @property
    def user_bookings(self) -> list[Booking]:
        return self.cache.user_bookings

    def find_booking_by_tour_id(self, tour_id: str) -> Optional[Booking]:
        return self.cache.find_by_tour_id(tour_id)

    def get_pending_review_bookings(self) -> list[Booking]:
        return self.cache.pending_review()

    def get_tour_booking_status(self, tour_id: str) -> Optional[str]:
        return self.cache.status_for_tour(tour_id)

    def select_booking(self, booking: Booking) -> None:
        self.cache.set_current_booking(booking)

    def clear_selected_booking(self) -> None:
        self.cache.clear_current_booking()

    def clear_error(self) -> None:
        self.cache.clear_error()

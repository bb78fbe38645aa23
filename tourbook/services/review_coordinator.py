"""Review operations coordinated with booking status."""

import asyncio
import logging
from typing import Optional

from ..core.exceptions import NotFoundError, ProblemDetailsException
from ..core.observability import metrics_collector
from ..repositories.review_repository import ReviewRepository
from ..schemas.booking import BookingStatus
from ..schemas.common import (
    OperationResult,
    ReviewListResult,
    ReviewResult,
    ReviewWithTourInfoListResult,
)
from ..schemas.review import (
    CreateReviewRequest,
    Review,
    ReviewWithTourInfo,
    TourInfo,
    UpdateReviewRequest,
)
from ..state.bookings_cache import BookingsCache
from ..state.reviews_cache import ReviewsCache
from .sync_runner import BookingSyncRunner

logger = logging.getLogger(__name__)

UNKNOWN_TOUR_NAME = "Unknown Tour"
DEFAULT_TOUR_IMAGE = "default-tour.jpg"


class ReviewCoordinator:
    """
    Review CRUD that keeps the matching booking's status in step.

    A booking is ``pending-review`` while the user has no review for its
    tour and ``reviewed`` once one exists. Review existence is the source
    of truth; the booking status is a cached signal that follows it:

    * creating a review flips a pending-review booking to reviewed;
    * deleting a review flips a reviewed booking back to pending-review;
    * editing a review never touches the booking.

    The review call is the primary operation and decides the result. The
    booking flip is applied to the bookings cache right after the primary
    call commits and is then written to the remote store by a
    ``BookingSyncRunner`` task whose failure is logged and counted but
    never reported through the result, and never rolls the review back.
    A local/remote divergence left by a failed sync is corrected by the
    next ``BookingsService.load_user_bookings``.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        reviews: ReviewsCache,
        bookings: BookingsCache,
        sync_runner: BookingSyncRunner,
        await_booking_sync: bool = True,
    ):
        self.repository = repository
        self.reviews = reviews
        self.bookings = bookings
        self.sync_runner = sync_runner
        self.await_booking_sync = await_booking_sync

    def _failure(self, operation: str, exc: Exception, fallback: str, **context) -> tuple[str, str]:
        """Record a primary-operation failure and return (message, code)."""
        if isinstance(exc, ProblemDetailsException):
            logger.warning(
                f"Review {operation} failed",
                extra={**context, "error": exc.message, "error_code": exc.code}
            )
            message, code = exc.message, exc.code
        else:
            logger.error(
                f"Review {operation} failed unexpectedly",
                extra={**context, "error": str(exc)},
                exc_info=True
            )
            message, code = fallback, "INTERNAL_ERROR"

        self.reviews.set_error(message)
        metrics_collector.record_review_operation(operation, success=False)
        return message, code

    # Loading

    async def load_tour_reviews(self, tour_id: str) -> ReviewListResult:
        """Load a tour's public reviews unless they are already cached."""
        cached = self.reviews.get_tour_reviews(tour_id)
        if cached:
            logger.debug("Tour reviews already loaded", extra={"tour_id": tour_id})
            return ReviewListResult.ok(reviews=cached)

        self.reviews.set_loading(True)
        self.reviews.clear_error()
        try:
            reviews = await self.repository.fetch_tour_reviews(tour_id)
        except Exception as e:
            message, code = self._failure(
                "load_tour", e, "Failed to load reviews. Please try again.", tour_id=tour_id
            )
            return ReviewListResult.fail(message, code)
        finally:
            self.reviews.set_loading(False)

        self.reviews.set_tour_reviews(tour_id, reviews)
        return ReviewListResult.ok(reviews=self.reviews.get_tour_reviews(tour_id))

    async def load_user_reviews(self) -> ReviewListResult:
        """Load the current user's reviews."""
        self.reviews.set_loading(True)
        self.reviews.clear_error()
        try:
            reviews = await self.repository.fetch_user_reviews()
        except Exception as e:
            message, code = self._failure(
                "load_user", e, "Failed to load your reviews. Please try again."
            )
            return ReviewListResult.fail(message, code)
        finally:
            self.reviews.set_loading(False)

        self.reviews.set_user_reviews(reviews)
        return ReviewListResult.ok(reviews=self.reviews.user_reviews)

    async def refresh_tour_reviews(self, tour_id: str) -> ReviewListResult:
        self.reviews.clear_tour_reviews(tour_id)
        return await self.load_tour_reviews(tour_id)

    async def refresh_user_reviews(self) -> ReviewListResult:
        self.reviews.set_user_reviews([])
        return await self.load_user_reviews()

    # CRUD

    async def create_review(self, request: CreateReviewRequest) -> ReviewResult:
        """
        Create a review and mark the tour's booking as reviewed.

        Fails (leaving every booking untouched) when the remote store
        rejects the review, e.g. with ``DuplicateReviewError``.
        """
        self.reviews.set_submitting(True)
        self.reviews.clear_error()

        try:
            review = await self.repository.create_review(request)
        except Exception as e:
            self.reviews.set_submitting(False)
            message, code = self._failure(
                "create", e, "Failed to create review. Please try again.", tour_id=request.tour_id
            )
            return ReviewResult.fail(message, code)

        self.reviews.add_user_review(review)
        metrics_collector.record_review_operation("create", success=True)
        logger.info(
            "Review created",
            extra={"review_id": review.id, "tour_id": review.tour_id}
        )
        try:
            await self._sync_booking(
                request.tour_id,
                expected=BookingStatus.PENDING_REVIEW,
                target=BookingStatus.REVIEWED,
                trigger="review_created",
            )
            await self._reload_tour_reviews_if_cached(request.tour_id)
        finally:
            self.reviews.set_submitting(False)
        return ReviewResult.ok(review=review)

    async def update_review(self, review_id: str, request: UpdateReviewRequest) -> ReviewResult:
        """Edit a review; booking status is left alone."""
        self.reviews.set_submitting(True)
        self.reviews.clear_error()

        try:
            review = await self.repository.update_review(review_id, request)
        except Exception as e:
            self.reviews.set_submitting(False)
            message, code = self._failure(
                "update", e, "Failed to update review. Please try again.", review_id=review_id
            )
            return ReviewResult.fail(message, code)

        self.reviews.update_user_review(review)
        await self._reload_tour_reviews_if_cached(review.tour_id)

        self.reviews.set_submitting(False)
        metrics_collector.record_review_operation("update", success=True)
        return ReviewResult.ok(review=review)

    async def delete_review(self, review_id: str) -> OperationResult:
        """
        Delete one of the user's reviews and mark the booking pending-review again.

        The review must be in the user-review cache; otherwise the call
        fails with ``NOT_FOUND`` without contacting the remote store.
        """
        self.reviews.set_submitting(True)
        self.reviews.clear_error()

        existing = self.reviews.get_user_review(review_id)
        if existing is None:
            self.reviews.set_submitting(False)
            message, code = self._failure(
                "delete",
                NotFoundError(
                    resource_type="review",
                    resource_id=review_id,
                    detail="Review not found in local state",
                ),
                "Failed to delete review. Please try again.",
                review_id=review_id,
            )
            return OperationResult.fail(message, code)

        try:
            await self.repository.delete_review(review_id)
        except Exception as e:
            self.reviews.set_submitting(False)
            message, code = self._failure(
                "delete", e, "Failed to delete review. Please try again.", review_id=review_id
            )
            return OperationResult.fail(message, code)

        self.reviews.remove_user_review(review_id)
        metrics_collector.record_review_operation("delete", success=True)
        logger.info(
            "Review deleted",
            extra={"review_id": review_id, "tour_id": existing.tour_id}
        )
        try:
            await self._sync_booking(
                existing.tour_id,
                expected=BookingStatus.REVIEWED,
                target=BookingStatus.PENDING_REVIEW,
                trigger="review_deleted",
            )
            await self._reload_tour_reviews_if_cached(existing.tour_id)
        finally:
            self.reviews.set_submitting(False)
        return OperationResult.ok()

    # Secondary effects

    async def _sync_booking(
        self,
        tour_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        trigger: str,
    ) -> Optional[asyncio.Task]:
        booking = self.bookings.find_by_tour_id(tour_id)
        if booking is None or booking.status != expected.value:
            logger.info(
                "No booking to transition for tour",
                extra={
                    "tour_id": tour_id,
                    "booking_id": booking.id if booking else None,
                    "booking_status": booking.status if booking else None,
                    "expected_status": expected.value,
                }
            )
            return None

        self.bookings.update_booking_status(booking.id, target.value)
        logger.info(
            "Booking status updated locally",
            extra={"booking_id": booking.id, "from_status": expected.value, "to_status": target.value}
        )

        task = self.sync_runner.spawn(booking.id, target.value, trigger=trigger)
        if self.await_booking_sync:
            # Shielded so cancelling the caller does not cancel the remote write.
            await asyncio.shield(task)
        return task

    async def _reload_tour_reviews_if_cached(self, tour_id: str) -> None:
        if not self.reviews.has_tour_reviews(tour_id):
            return

        result = await self.refresh_tour_reviews(tour_id)
        if not result.success:
            # The primary operation already succeeded; keep its result clean.
            self.reviews.clear_error()
            logger.warning(
                "Could not reload tour reviews after review change",
                extra={"tour_id": tour_id, "error": result.error}
            )

    # Queries

    def get_tour_reviews(self, tour_id: str) -> list[Review]:
        return self.reviews.get_tour_reviews(tour_id)

    @property
    def user_reviews(self) -> list[Review]:
        return self.reviews.user_reviews

    def user_reviews_with_tour_info(self) -> ReviewWithTourInfoListResult:
        """
        The user's cached reviews, each with the tour's display details.

        Details come from the tour the remote store populated on the
        review. A missing name falls back to the user's booking for the
        tour, then to "Unknown Tour".
        """
        enriched = []
        for review in self.reviews.user_reviews:
            name = review.tour_name
            if not name:
                booking = self.bookings.find_by_tour_id(review.tour_id)
                name = booking.tour_name if booking else None
            tour_info = TourInfo(
                id=review.tour_id,
                name=name or UNKNOWN_TOUR_NAME,
                slug=review.tour_slug or "",
                image_cover=review.tour_image_cover or DEFAULT_TOUR_IMAGE,
            )
            enriched.append(ReviewWithTourInfo(**review.model_dump(), tour_info=tour_info))
        return ReviewWithTourInfoListResult.ok(reviews=enriched)

    def has_user_reviewed_tour(self, tour_id: str) -> bool:
        return self.reviews.has_user_reviewed_tour(tour_id)

    def select_review(self, review: Review) -> None:
        self.reviews.set_current_review(review)

    def clear_selected_review(self) -> None:
        self.reviews.clear_current_review()

    def clear_error(self) -> None:
        self.reviews.clear_error()

"""Bookings router exposing booking operations to the UI layer."""

import logging

from fastapi import APIRouter

from ..core.dependencies import RequiredSession
from ..schemas.booking import CreateCheckoutSessionRequest, UpdateBookingStatusRequest
from ..schemas.common import BookingListResult, BookingResult, CheckoutResult
from ..services.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/bookings", tags=["bookings"])


@router.post("/load", response_model=BookingListResult)
async def load_user_bookings(session: UserSession = RequiredSession) -> BookingListResult:
    """
    Reload the user's bookings from the remote store.

    This is the only way a booking status left diverged by a failed
    background sync gets corrected.
    """
    return await session.bookings.load_user_bookings()


@router.get("", response_model=BookingListResult)
async def list_cached_bookings(session: UserSession = RequiredSession) -> BookingListResult:
    """Bookings currently held in the session cache."""
    return BookingListResult.ok(bookings=session.bookings.user_bookings)


@router.get("/pending-review", response_model=BookingListResult)
async def list_pending_review_bookings(session: UserSession = RequiredSession) -> BookingListResult:
    """Bookings still waiting for a review."""
    return BookingListResult.ok(bookings=session.bookings.get_pending_review_bookings())


@router.get("/by-tour/{tour_id}", response_model=BookingResult)
async def get_booking_for_tour(tour_id: str, session: UserSession = RequiredSession) -> BookingResult:
    """Cached booking for a tour, if any."""
    booking = session.bookings.find_booking_by_tour_id(tour_id)
    if booking is None:
        return BookingResult.fail(f"No booking found for tour '{tour_id}'", "NOT_FOUND")
    return BookingResult.ok(booking=booking)


@router.post("/checkout-session", response_model=CheckoutResult)
async def create_checkout_session(
    request: CreateCheckoutSessionRequest,
    session: UserSession = RequiredSession,
) -> CheckoutResult:
    """Start a hosted checkout; the UI redirects to the returned URL."""
    result = await session.bookings.create_checkout_session(request.tour_id)
    logger.info(
        "Checkout session requested",
        extra={"tour_id": request.tour_id, "success": result.success}
    )
    return result


@router.patch("/{booking_id}/status", response_model=BookingResult)
async def update_booking_status(
    booking_id: str,
    request: UpdateBookingStatusRequest,
    session: UserSession = RequiredSession,
) -> BookingResult:
    """Explicit status change requested by the user."""
    return await session.bookings.update_booking_status(booking_id, request.status)

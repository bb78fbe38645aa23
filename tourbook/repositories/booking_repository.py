"""Booking repository backed by the remote store."""

import logging
from urllib.parse import quote

from ..clients.api_client import RemoteApiClient
from ..core.exceptions import NotFoundError, ValidationError
from ..schemas.booking import Booking, CheckoutSession
from ..schemas.wire import (
    extract_document,
    extract_documents,
    normalize_booking,
    normalize_checkout_session,
)

logger = logging.getLogger(__name__)


class BookingRepository:
    """Fetches and persists bookings against the remote store."""

    def __init__(self, client: RemoteApiClient):
        self.client = client

    async def fetch_user_bookings(self) -> list[Booking]:
        """
        Fetch the current user's bookings.

        Returns:
            Bookings in the order the remote store returned them

        Raises:
            NetworkError: If the remote store is unreachable
            AuthError: If the user is not authenticated
        """
        payload = await self.client.get("/bookings/my-bookings")
        bookings = [normalize_booking(raw) for raw in extract_documents(payload, "bookings")]

        logger.info(
            "Fetched user bookings",
            extra={"count": len(bookings)}
        )
        return bookings

    async def create_checkout_session(self, tour_id: str) -> CheckoutSession:
        """
        Create a hosted checkout session for a tour.

        Raises:
            ValidationError: If the tour is unknown to the remote store
        """
        path = f"/bookings/checkout-session/{quote(tour_id, safe='')}"
        try:
            payload = await self.client.get(path)
        except NotFoundError as e:
            raise ValidationError(
                detail=f"Tour '{tour_id}' does not exist",
                instance=path,
            ) from e

        session = normalize_checkout_session(extract_document(payload, "session"))
        logger.info(
            "Checkout session created",
            extra={"tour_id": tour_id, "session_id": session.session_id}
        )
        return session

    async def update_booking_status(self, booking_id: str, status: str) -> None:
        """
        Persist a booking status change.

        Not idempotent: callers must re-check the current status before
        retrying.

        Raises:
            NotFoundError: If the booking does not exist
            ConflictError: If the remote store rejects the transition
        """
        path = f"/bookings/{quote(booking_id, safe='')}"
        try:
            await self.client.patch(path, json={"status": status})
        except NotFoundError as e:
            raise NotFoundError(resource_type="booking", resource_id=booking_id, instance=path) from e

        logger.info(
            "Booking status persisted",
            extra={"booking_id": booking_id, "status": status}
        )

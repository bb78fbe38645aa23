"""Booking-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    """
    Booking statuses driven by review existence.

    The remote store knows further lifecycle statuses (paid, cancelled, ...);
    those are carried on ``Booking.status`` as plain strings and never
    touched by the review coordination.
    """
    PENDING_REVIEW = "pending-review"
    REVIEWED = "reviewed"


class Booking(BaseModel):
    """Canonical booking as held in the bookings cache."""

    id: str = Field(..., min_length=1, description="Unique booking ID")
    tour_id: str = Field(..., min_length=1, description="Booked tour ID")
    status: str = Field(..., min_length=1, description="Booking status")
    tour_name: Optional[str] = Field(None, description="Tour name, when embedded by the remote store")
    price: Optional[float] = Field(None, ge=0, description="Price paid")
    paid: Optional[bool] = Field(None, description="Whether the payment completed")
    created_at: Optional[datetime] = Field(None, description="Booking creation time (ISO 8601)")
    updated_at: Optional[datetime] = Field(None, description="Last update time (ISO 8601)")

    @property
    def is_pending_review(self) -> bool:
        return self.status == BookingStatus.PENDING_REVIEW.value

    @property
    def is_reviewed(self) -> bool:
        return self.status == BookingStatus.REVIEWED.value


class CheckoutSession(BaseModel):
    """Hosted checkout session returned by the remote store."""

    session_id: str = Field(..., min_length=1, description="Payment provider session ID")
    url: str = Field(..., min_length=1, description="URL of the hosted checkout page")


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for starting a checkout."""

    tour_id: str = Field(..., min_length=1, description="Tour to book")


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for an explicit booking status change."""

    status: str = Field(..., min_length=1, max_length=64, description="New booking status")

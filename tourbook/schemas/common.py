"""Uniform result schemas returned to the UI layer."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .booking import Booking
from .review import Review, ReviewWithTourInfo


class OperationResult(BaseModel):
    """
    Outcome of a user-facing operation.

    Callers render ``error`` directly; they never need to inspect
    exception types.
    """

    success: bool = Field(..., description="Whether the operation succeeded")
    error: Optional[str] = Field(None, description="Human-readable error message")
    code: Optional[str] = Field(None, description="Application-specific error code")

    @classmethod
    def ok(cls, **kwargs):
        return cls(success=True, **kwargs)

    @classmethod
    def fail(cls, error: str, code: Optional[str] = None, **kwargs):
        return cls(success=False, error=error, code=code, **kwargs)


class ReviewResult(OperationResult):
    """Result carrying a single review."""

    review: Optional[Review] = None


class ReviewListResult(OperationResult):
    """Result carrying a list of reviews."""

    reviews: List[Review] = Field(default_factory=list)


class ReviewWithTourInfoListResult(OperationResult):
    """Result carrying the user's reviews enriched with tour details."""

    reviews: List[ReviewWithTourInfo] = Field(default_factory=list)


class BookingResult(OperationResult):
    """Result carrying a single booking."""

    booking: Optional[Booking] = None


class BookingListResult(OperationResult):
    """Result carrying a list of bookings."""

    bookings: List[Booking] = Field(default_factory=list)


class CheckoutResult(OperationResult):
    """Result of starting a hosted checkout."""

    session_id: Optional[str] = None
    url: Optional[str] = None


class FlagResult(OperationResult):
    """Result carrying a yes/no answer."""

    value: bool = False

"""
Raw remote-store payloads and their normalization into canonical entities.

The remote store names the primary identity ``_id`` (some endpoints also
emit ``id``) and embeds related documents as nested objects when it
populates them. Every payload entering the caches passes through the
functions below; a shape outside the documented variants raises
``ValidationError`` instead of producing a partial entity.
"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError
from .booking import Booking, CheckoutSession
from .review import Review


class RawRef(BaseModel):
    """Embedded related document (tour or user)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    mongo_id: Optional[str] = Field(None, alias="_id")
    id: Optional[str] = None
    name: Optional[str] = None
    photo: Optional[str] = None
    slug: Optional[str] = None
    imageCover: Optional[str] = None

    @property
    def identity(self) -> Optional[str]:
        return self.mongo_id or self.id


class RawDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    mongo_id: Optional[str] = Field(None, alias="_id")
    id: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @property
    def identity(self) -> Optional[str]:
        return self.mongo_id or self.id


class RawReview(RawDocument):
    """Review document as sent by the remote store."""

    review: str = ""
    rating: int
    tour: Union[str, RawRef]
    user: Union[str, RawRef]


class RawBooking(RawDocument):
    """Booking document as sent by the remote store."""

    tour: Union[str, RawRef]
    status: str
    price: Optional[float] = None
    paid: Optional[bool] = None


class RawCheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    url: str


def _ref_identity(ref: Union[str, RawRef]) -> Optional[str]:
    if isinstance(ref, str):
        return ref or None
    return ref.identity


def _parse(model: type[BaseModel], raw: Any, resource: str):
    if not isinstance(raw, dict):
        raise ValidationError(
            detail=f"Malformed {resource} payload: expected an object, got {type(raw).__name__}"
        )
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            detail=f"Malformed {resource} payload",
            errors=[
                {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ],
        ) from e


def normalize_review(raw: Any) -> Review:
    """Map a raw review document onto the canonical ``Review``."""
    doc = _parse(RawReview, raw, "review")

    review_id = doc.identity
    tour_id = _ref_identity(doc.tour)
    user_id = _ref_identity(doc.user)
    if not review_id:
        raise ValidationError(detail="Malformed review payload: missing identity")
    if not tour_id or not user_id:
        raise ValidationError(detail=f"Malformed review payload {review_id}: missing tour or user reference")

    user = doc.user if isinstance(doc.user, RawRef) else None
    tour = doc.tour if isinstance(doc.tour, RawRef) else None
    try:
        return Review(
            id=review_id,
            tour_id=tour_id,
            user_id=user_id,
            rating=doc.rating,
            review=doc.review,
            user_name=user.name if user else None,
            user_photo=user.photo if user else None,
            tour_name=tour.name if tour else None,
            tour_slug=tour.slug if tour else None,
            tour_image_cover=tour.imageCover if tour else None,
            created_at=doc.createdAt,
            updated_at=doc.updatedAt,
        )
    except PydanticValidationError as e:
        raise ValidationError(detail=f"Malformed review payload {review_id}: {e.errors()[0]['msg']}") from e


def normalize_booking(raw: Any) -> Booking:
    """Map a raw booking document onto the canonical ``Booking``."""
    doc = _parse(RawBooking, raw, "booking")

    booking_id = doc.identity
    tour_id = _ref_identity(doc.tour)
    if not booking_id:
        raise ValidationError(detail="Malformed booking payload: missing identity")
    if not tour_id:
        raise ValidationError(detail=f"Malformed booking payload {booking_id}: missing tour reference")

    tour = doc.tour if isinstance(doc.tour, RawRef) else None
    try:
        return Booking(
            id=booking_id,
            tour_id=tour_id,
            status=doc.status,
            tour_name=tour.name if tour else None,
            price=doc.price,
            paid=doc.paid,
            created_at=doc.createdAt,
            updated_at=doc.updatedAt,
        )
    except PydanticValidationError as e:
        raise ValidationError(detail=f"Malformed booking payload {booking_id}: {e.errors()[0]['msg']}") from e


def normalize_checkout_session(raw: Any) -> CheckoutSession:
    doc = _parse(RawCheckoutSession, raw, "checkout session")
    return CheckoutSession(session_id=doc.id, url=doc.url)


def _envelope_data(payload: Any) -> dict:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ValidationError(detail="Malformed response envelope: missing 'data' object")
    return payload["data"]


def extract_document(payload: Any, *keys: str) -> Any:
    """Return the single resource from ``{"data": {<key>|doc: ...}}``."""
    data = _envelope_data(payload)
    for key in (*keys, "doc"):
        if data.get(key) is not None:
            return data[key]
    raise ValidationError(
        detail=f"Malformed response envelope: expected one of {[*keys, 'doc']}"
    )


def extract_documents(payload: Any, *keys: str) -> list:
    """Return the resource list from ``{"data": {<key>|docs: [...]}}``."""
    data = _envelope_data(payload)
    for key in (*keys, "docs"):
        if key in data:
            docs = data[key]
            if not isinstance(docs, list):
                raise ValidationError(detail=f"Malformed response envelope: '{key}' is not a list")
            return docs
    raise ValidationError(
        detail=f"Malformed response envelope: expected one of {[*keys, 'docs']}"
    )

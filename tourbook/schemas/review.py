"""Review-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator


class Review(BaseModel):
    """Canonical review as held in the reviews cache."""

    id: str = Field(..., min_length=1, description="Unique review ID")
    tour_id: str = Field(..., min_length=1, description="Reviewed tour ID")
    user_id: str = Field(..., min_length=1, description="Author user ID")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review: str = Field("", description="Review body text")
    user_name: Optional[str] = Field(None, description="Author display name")
    user_photo: Optional[str] = Field(None, description="Author photo file name")
    tour_name: Optional[str] = Field(None, description="Tour name, when the store populated the tour")
    tour_slug: Optional[str] = Field(None, description="Tour URL slug, when populated")
    tour_image_cover: Optional[str] = Field(None, description="Tour cover image file name, when populated")
    created_at: Optional[datetime] = Field(None, description="Creation time (ISO 8601)")
    updated_at: Optional[datetime] = Field(None, description="Last update time (ISO 8601)")


class TourInfo(BaseModel):
    """Display details of the tour a review belongs to."""

    id: str
    name: str
    slug: str = ""
    image_cover: str = "default-tour.jpg"


class ReviewWithTourInfo(Review):
    """A user review together with the tour it was written for."""

    tour_info: TourInfo


class CreateReviewRequest(BaseModel):
    """Request schema for creating a review."""

    tour_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("tour_id", "tour"),
        description="Tour to review",
    )
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review: str = Field(..., min_length=1, max_length=2000, description="Review body text")


class UpdateReviewRequest(BaseModel):
    """Request schema for editing a review; omitted fields are left unchanged."""

    rating: Optional[int] = Field(None, ge=1, le=5, description="New rating")
    review: Optional[str] = Field(None, min_length=1, max_length=2000, description="New body text")

    @model_validator(mode="after")
    def check_not_empty(self) -> "UpdateReviewRequest":
        if self.rating is None and self.review is None:
            raise ValueError("At least one of 'rating' or 'review' must be provided")
        return self

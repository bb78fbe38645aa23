"""Reviews router exposing the review coordinator to the UI layer."""

import logging

from fastapi import APIRouter

from ..core.dependencies import RequiredSession
from ..schemas.common import (
    FlagResult,
    OperationResult,
    ReviewListResult,
    ReviewResult,
    ReviewWithTourInfoListResult,
)
from ..schemas.review import CreateReviewRequest, UpdateReviewRequest
from ..services.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/reviews", tags=["reviews"])


@router.post("/tour/{tour_id}/load", response_model=ReviewListResult)
async def load_tour_reviews(tour_id: str, session: UserSession = RequiredSession) -> ReviewListResult:
    """Load a tour's reviews, served from the cache when already loaded."""
    return await session.reviews.load_tour_reviews(tour_id)


@router.post("/tour/{tour_id}/refresh", response_model=ReviewListResult)
async def refresh_tour_reviews(tour_id: str, session: UserSession = RequiredSession) -> ReviewListResult:
    return await session.reviews.refresh_tour_reviews(tour_id)


@router.get("/tour/{tour_id}", response_model=ReviewListResult)
async def get_tour_reviews(tour_id: str, session: UserSession = RequiredSession) -> ReviewListResult:
    return ReviewListResult.ok(reviews=session.reviews.get_tour_reviews(tour_id))


@router.post("/mine/load", response_model=ReviewListResult)
async def load_user_reviews(session: UserSession = RequiredSession) -> ReviewListResult:
    return await session.reviews.load_user_reviews()


@router.post("/mine/refresh", response_model=ReviewListResult)
async def refresh_user_reviews(session: UserSession = RequiredSession) -> ReviewListResult:
    return await session.reviews.refresh_user_reviews()


@router.get("/mine", response_model=ReviewListResult)
async def get_user_reviews(session: UserSession = RequiredSession) -> ReviewListResult:
    return ReviewListResult.ok(reviews=session.reviews.user_reviews)


@router.get("/mine/with-tour-info", response_model=ReviewWithTourInfoListResult)
async def get_user_reviews_with_tour_info(
    session: UserSession = RequiredSession,
) -> ReviewWithTourInfoListResult:
    """The user's loaded reviews, each with its tour's display details."""
    return session.reviews.user_reviews_with_tour_info()


@router.get("/mine/has-reviewed/{tour_id}", response_model=FlagResult)
async def has_user_reviewed_tour(tour_id: str, session: UserSession = RequiredSession) -> FlagResult:
    """Gate for "leave a review" prompts; the remote store still rejects duplicates."""
    return FlagResult.ok(value=session.reviews.has_user_reviewed_tour(tour_id))


@router.post("", response_model=ReviewResult)
async def create_review(
    request: CreateReviewRequest,
    session: UserSession = RequiredSession,
) -> ReviewResult:
    """Create a review; a pending-review booking for the tour becomes reviewed."""
    result = await session.reviews.create_review(request)
    logger.info(
        "Review creation handled",
        extra={"tour_id": request.tour_id, "success": result.success, "error_code": result.code}
    )
    return result


@router.patch("/{review_id}", response_model=ReviewResult)
async def update_review(
    review_id: str,
    request: UpdateReviewRequest,
    session: UserSession = RequiredSession,
) -> ReviewResult:
    return await session.reviews.update_review(review_id, request)


@router.delete("/{review_id}", response_model=OperationResult)
async def delete_review(review_id: str, session: UserSession = RequiredSession) -> OperationResult:
    """Delete a review; a reviewed booking for the tour returns to pending-review."""
    result = await session.reviews.delete_review(review_id)
    logger.info(
        "Review deletion handled",
        extra={"review_id": review_id, "success": result.success, "error_code": result.code}
    )
    return result

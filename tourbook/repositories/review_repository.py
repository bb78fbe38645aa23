"""Review repository backed by the remote store."""

import logging
from urllib.parse import quote

from ..clients.api_client import RemoteApiClient
from ..core.exceptions import ConflictError, DuplicateReviewError, NotFoundError
from ..schemas.review import CreateReviewRequest, Review, UpdateReviewRequest
from ..schemas.wire import extract_document, extract_documents, normalize_review

logger = logging.getLogger(__name__)


def _review_path(review_id: str) -> str:
    return f"/reviews/{quote(review_id, safe='')}"


class ReviewRepository:
    """Fetches and persists reviews against the remote store."""

    def __init__(self, client: RemoteApiClient):
        self.client = client

    async def fetch_tour_reviews(self, tour_id: str) -> list[Review]:
        """Fetch the public reviews of one tour."""
        payload = await self.client.get(f"/tours/{quote(tour_id, safe='')}/reviews")
        reviews = [normalize_review(raw) for raw in extract_documents(payload, "reviews")]

        logger.info(
            "Fetched tour reviews",
            extra={"tour_id": tour_id, "count": len(reviews)}
        )
        return reviews

    async def fetch_user_reviews(self) -> list[Review]:
        """Fetch the reviews written by the current user."""
        payload = await self.client.get("/reviews/my-reviews")
        reviews = [normalize_review(raw) for raw in extract_documents(payload, "reviews")]

        logger.info(
            "Fetched user reviews",
            extra={"count": len(reviews)}
        )
        return reviews

    async def create_review(self, request: CreateReviewRequest) -> Review:
        """
        Create a review for a tour.

        Raises:
            DuplicateReviewError: If the user already reviewed this tour
        """
        try:
            payload = await self.client.post(
                f"/tours/{quote(request.tour_id, safe='')}/reviews",
                json={"review": request.review, "rating": request.rating},
            )
        except ConflictError as e:
            raise DuplicateReviewError(tour_id=request.tour_id) from e

        review = normalize_review(extract_document(payload, "review"))
        logger.info(
            "Review created",
            extra={"review_id": review.id, "tour_id": review.tour_id, "rating": review.rating}
        )
        return review

    async def update_review(self, review_id: str, request: UpdateReviewRequest) -> Review:
        """
        Update the rating and/or text of a review.

        Raises:
            NotFoundError: If the review does not exist
        """
        path = _review_path(review_id)
        try:
            payload = await self.client.patch(path, json=request.model_dump(exclude_none=True))
        except NotFoundError as e:
            raise NotFoundError(resource_type="review", resource_id=review_id, instance=path) from e

        review = normalize_review(extract_document(payload, "review"))
        logger.info(
            "Review updated",
            extra={"review_id": review.id, "tour_id": review.tour_id}
        )
        return review

    async def delete_review(self, review_id: str) -> None:
        """
        Delete a review.

        Raises:
            NotFoundError: If the review does not exist
        """
        path = _review_path(review_id)
        try:
            await self.client.delete(path)
        except NotFoundError as e:
            raise NotFoundError(resource_type="review", resource_id=review_id, instance=path) from e

        logger.info("Review deleted", extra={"review_id": review_id})

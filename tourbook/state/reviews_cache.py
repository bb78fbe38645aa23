"""In-memory cache of tour reviews and the current user's own reviews."""

from typing import Optional

from ..schemas.review import Review


class ReviewsCache:
    """
    Two views over reviews: public reviews per tour and the user's own reviews.

    Mutated only through its methods; readers get copies.
    """

    def __init__(self):
        self._tour_reviews: dict[str, list[Review]] = {}
        self._user_reviews: dict[str, Review] = {}
        self.current_review: Optional[Review] = None
        self.is_loading = False
        self.is_submitting = False
        self.error: Optional[str] = None

    # Tour reviews

    def set_tour_reviews(self, tour_id: str, reviews: list[Review]) -> None:
        self._tour_reviews[tour_id] = list(reviews)

    def clear_tour_reviews(self, tour_id: str) -> None:
        self._tour_reviews.pop(tour_id, None)

    def has_tour_reviews(self, tour_id: str) -> bool:
        """True once reviews for the tour were loaded, even if there were none."""
        return tour_id in self._tour_reviews

    def get_tour_reviews(self, tour_id: str) -> list[Review]:
        return [review.model_copy() for review in self._tour_reviews.get(tour_id, [])]

    # User reviews

    def set_user_reviews(self, reviews: list[Review]) -> None:
        self._user_reviews = {review.id: review for review in reviews}

    def add_user_review(self, review: Review) -> None:
        """Insert a newly created review at the front of the user's reviews."""
        remaining = {k: v for k, v in self._user_reviews.items() if k != review.id}
        self._user_reviews = {review.id: review, **remaining}

    def update_user_review(self, review: Review) -> None:
        if review.id in self._user_reviews:
            self._user_reviews[review.id] = review
        if self.current_review and self.current_review.id == review.id:
            self.current_review = review.model_copy()

    def remove_user_review(self, review_id: str) -> Optional[Review]:
        removed = self._user_reviews.pop(review_id, None)
        if self.current_review and self.current_review.id == review_id:
            self.current_review = None
        return removed

    def get_user_review(self, review_id: str) -> Optional[Review]:
        review = self._user_reviews.get(review_id)
        return review.model_copy() if review else None

    @property
    def user_reviews(self) -> list[Review]:
        return [review.model_copy() for review in self._user_reviews.values()]

    def has_user_reviewed_tour(self, tour_id: str) -> bool:
        return any(review.tour_id == tour_id for review in self._user_reviews.values())

    # Selection and flags

    def set_current_review(self, review: Review) -> None:
        self.current_review = review.model_copy()

    def clear_current_review(self) -> None:
        self.current_review = None

    def set_loading(self, value: bool) -> None:
        self.is_loading = value

    def set_submitting(self, value: bool) -> None:
        self.is_submitting = value

    def set_error(self, message: str) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def clear(self) -> None:
        self._tour_reviews = {}
        self._user_reviews = {}
        self.current_review = None
        self.error = None

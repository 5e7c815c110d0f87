from wordsync.core.enums import ReviewRating
from wordsync.domain.review.dto import AlgorithmSettings
from wordsync.domain.review.entities import CardReviewState
from wordsync.domain.review.policy import ReviewPolicy


class ReviewService:
    @staticmethod
    def review(*, card, rating_adjustment: int, settings: AlgorithmSettings, now: int) -> CardReviewState:
        state = CardReviewState(
            score=card.score,
            last_reviewed_at=card.last_reviewed_at,
            next_review_at=card.next_review_at,
        )

        state.apply_rating(
            rating_adjustment=rating_adjustment,
            settings=settings,
            reviewed_at=now,
            policy=ReviewPolicy(),
        )
        return state

    @staticmethod
    def review_with_rating(*, card, rating: str, settings: AlgorithmSettings, now: int) -> CardReviewState:
        rating_enum = ReviewRating(rating)
        return ReviewService.review(
            card=card,
            rating_adjustment=settings.adjustment_for(rating_enum),
            settings=settings,
            now=now,
        )

    @staticmethod
    def snooze(*, card, settings: AlgorithmSettings, now: int) -> CardReviewState:
        state = CardReviewState(
            score=card.score,
            last_reviewed_at=card.last_reviewed_at,
            next_review_at=card.next_review_at,
        )
        state.apply_snooze(settings=settings, now=now, policy=ReviewPolicy())
        return state

# backend/wordsync/domain/review/entities.py

from dataclasses import dataclass

from .dto import AlgorithmSettings
from .policy import ReviewPolicy


@dataclass
class CardReviewState:
    """
    Чистое domain-состояние расписания карточки.
    Не знает про БД, ORM и SQLAlchemy.
    """

    score: int
    last_reviewed_at: int = 0
    next_review_at: int = 0
    archived: bool = False

    # ----------------
    # Domain behaviour
    # ----------------

    def apply_rating(
            self,
            *,
            rating_adjustment: int,
            settings: AlgorithmSettings,
            reviewed_at: int,
            policy: ReviewPolicy | None = None,
    ):
        outcome = (policy or ReviewPolicy()).compute_next_review(
            current_score=self.score,
            rating_adjustment=rating_adjustment,
            settings=settings,
            now=reviewed_at,
        )

        self.score = outcome.new_score
        self.last_reviewed_at = reviewed_at
        self.next_review_at = outcome.next_review_at
        self.archived = outcome.archived

        self._validate()

    def apply_snooze(
            self,
            *,
            settings: AlgorithmSettings,
            now: int,
            policy: ReviewPolicy | None = None,
    ):
        # score и last_reviewed_at не меняются
        self.next_review_at = (policy or ReviewPolicy()).snooze(settings=settings, now=now)

        self._validate()

    # ---------
    # Invariants
    # ---------

    def _validate(self):
        if self.score < 0:
            raise ValueError("score cannot be negative")

        if self.next_review_at < 0:
            raise ValueError("next_review_at cannot be negative")

        if self.last_reviewed_at < 0:
            raise ValueError("last_reviewed_at cannot be negative")

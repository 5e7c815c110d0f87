# backend/wordsync/domain/review/policy.py

from dataclasses import dataclass

from wordsync.core.enums import MaxScoreBehavior

from .dto import AlgorithmSettings, MINUTE_MS

# Если в таблице для уровня 0 стоит 0, всё равно не даём "due сразу"
MIN_RELEARN_INTERVAL_MS = MINUTE_MS

# Архивная карточка: next_review_at, до которого listDue никогда не дойдёт.
# 2^53 - 1 - максимальное целое, которое JS-клиенты читают без потерь.
ARCHIVED_NEXT_REVIEW_AT = 2 ** 53 - 1


@dataclass(frozen=True)
class ReviewOutcome:
    new_score: int
    next_review_at: int
    archived: bool = False


class ReviewPolicy:
    """
    Алгоритм расчёта следующего повторения.
    Чистая domain-логика: не знает ни про БД, ни про часы.
    """

    def compute_next_review(
        self,
        *,
        current_score: int,
        rating_adjustment: int,
        settings: AlgorithmSettings,
        now: int,
    ) -> ReviewOutcome:
        new_score = max(0, current_score + rating_adjustment)

        if (
            new_score >= settings.max_score
            and settings.max_score_behavior == MaxScoreBehavior.archive
        ):
            return ReviewOutcome(
                new_score=new_score,
                next_review_at=ARCHIVED_NEXT_REVIEW_AT,
                archived=True,
            )

        level = min(new_score, settings.max_score)
        interval = settings.intervals[level]
        if level == 0 and interval <= 0:
            interval = MIN_RELEARN_INTERVAL_MS

        return ReviewOutcome(new_score=new_score, next_review_at=now + interval)

    def snooze(self, *, settings: AlgorithmSettings, now: int) -> int:
        # "later": не зависит от score и не трогает кривую обучения
        return now + settings.snooze_delay_ms

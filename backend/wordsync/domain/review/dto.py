from dataclasses import dataclass, field

from wordsync.core.enums import MaxScoreBehavior, ReviewRating

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


def default_intervals(max_score: int = 10) -> dict[int, int]:
    # 0 -> 10 минут, дальше 1 час * 2.5^(level-1)
    intervals = {0: 10 * MINUTE_MS}
    for level in range(1, max_score + 1):
        intervals[level] = int(HOUR_MS * 2.5 ** (level - 1))
    return intervals


def default_rating_adjustments() -> dict[ReviewRating, int]:
    return {
        ReviewRating.bad: -1,
        ReviewRating.good: 1,
        ReviewRating.great: 2,
    }


@dataclass(frozen=True)
class AlgorithmSettings:
    """
    Таблица интервалов для планировщика.

    intervals: уровень (0..max_score) -> интервал в мс.
    snooze_delay_ms: на сколько откладывает директива "later".
    rating_adjustments: сколько очков даёт каждая оценка.
    """

    intervals: dict[int, int] = field(default_factory=default_intervals)
    max_score: int = 10
    max_score_behavior: MaxScoreBehavior = MaxScoreBehavior.cap
    snooze_delay_ms: int = MINUTE_MS
    rating_adjustments: dict[ReviewRating, int] = field(default_factory=default_rating_adjustments)

    def __post_init__(self):
        self._validate()

    # ---------
    # Invariants
    # ---------

    def _validate(self):
        if self.max_score < 0:
            raise ValueError("max_score cannot be negative")

        missing = [level for level in range(self.max_score + 1) if level not in self.intervals]
        if missing:
            raise ValueError(f"intervals missing levels: {missing}")

        if any(ms < 0 for ms in self.intervals.values()):
            raise ValueError("intervals cannot be negative")

        if self.snooze_delay_ms <= 0:
            raise ValueError("snooze_delay_ms must be positive")

    def adjustment_for(self, rating: ReviewRating) -> int:
        return self.rating_adjustments.get(rating, default_rating_adjustments()[rating])

    # ---------------
    # Serialization
    # ---------------

    def to_dict(self) -> dict:
        return {
            "intervals": {str(level): ms for level, ms in sorted(self.intervals.items())},
            "maxScore": self.max_score,
            "maxScoreBehavior": self.max_score_behavior.value,
            "snoozeDelayMs": self.snooze_delay_ms,
            "ratingAdjustments": {r.value: v for r, v in self.rating_adjustments.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlgorithmSettings":
        # ключи JSON - строки, приводим к int
        intervals = {int(level): int(ms) for level, ms in data["intervals"].items()}
        adjustments = default_rating_adjustments()
        for name, value in (data.get("ratingAdjustments") or {}).items():
            adjustments[ReviewRating(name)] = int(value)

        return cls(
            intervals=intervals,
            max_score=int(data["maxScore"]),
            max_score_behavior=MaxScoreBehavior(data.get("maxScoreBehavior", MaxScoreBehavior.cap)),
            snooze_delay_ms=int(data.get("snoozeDelayMs", MINUTE_MS)),
            rating_adjustments=adjustments,
        )

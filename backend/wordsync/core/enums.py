from enum import Enum


class ReviewRating(str, Enum):
    bad = "bad"
    good = "good"
    great = "great"


class MaxScoreBehavior(str, Enum):
    # cap - карточка остаётся в ротации с максимальным интервалом
    cap = "cap"
    # archive - после maxScore карточка больше не попадает в due
    archive = "archive"


class ConflictPolicy(str, Enum):
    last_write_wins = "last_write_wins"
    last_pusher_wins = "last_pusher_wins"


class SyncState(str, Enum):
    idle = "idle"
    collecting = "collecting"
    sending = "sending"
    applying = "applying"
    failed = "failed"

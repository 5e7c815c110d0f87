import math
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SyncCard(BaseModel):
    """
    Каноническая форма карточки.

    Строка локального хранилища, JSON на проводе и строка на сервере -
    проекции этой модели. На проводе имена в camelCase
    (createdAt, nextReviewAt, ...), в Python - snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: UUID
    original: str = ""
    translation: str = ""
    article: str = ""
    language: str = "de"
    score: int = Field(default=0, ge=0)

    created_at: int
    last_reviewed_at: int = 0
    next_review_at: int = Field(ge=0)
    updated_at: int
    deleted_at: Optional[int] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class SyncRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    last_sync_timestamp: int = Field(ge=0)
    changes: List[SyncCard]

    @field_validator("last_sync_timestamp", mode="before")
    @classmethod
    def validate_last_sync_timestamp(cls, v):
        """Любое конечное неотрицательное число; дробная часть отбрасывается."""
        # "123" или true не считаются числом
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("lastSyncTimestamp must be a number")
        if not math.isfinite(v) or v < 0:
            raise ValueError(f"lastSyncTimestamp must be a finite non-negative number. Got: {v}")
        return int(v)


class SyncResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: int
    changes: List[SyncCard]

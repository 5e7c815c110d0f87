from sqlalchemy import JSON, BigInteger, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class LocalBase(DeclarativeBase):
    """Отдельный metadata: локальная SQLite устройства, не серверная БД."""
    pass


class LocalCard(LocalBase):
    __tablename__ = "cards"

    __table_args__ = (
        Index("ix_local_cards_due", "deleted_at", "next_review_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    original: Mapped[str] = mapped_column(Text, nullable=False, default="")
    translation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    article: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="de")

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_reviewed_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    next_review_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    deleted_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class LocalAlgorithmSettings(LocalBase):
    __tablename__ = "algorithm_settings"

    # одна строка на устройство
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wordsync.db.base import Base

if TYPE_CHECKING:
    from wordsync.models.user import User


class Card(Base):
    """
    Общая (серверная) копия карточки.

    Строки никогда не удаляются физически: удаление - это deleted_at,
    чтобы другие устройства узнали о нём при следующей синхронизации.
    Все времена - миллисекунды epoch.
    """

    __tablename__ = "cards"

    __table_args__ = (
        Index("ix_cards_user_updated", "user_id", "updated_at"),
    )

    # id генерирует устройство, а не сервер
    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    original: Mapped[str] = mapped_column(Text, nullable=False, default="")
    translation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    article: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="de")

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_reviewed_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    next_review_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # серверное время merge - ключ курсора синхронизации
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    # updatedAt, который прислало устройство; по нему работает last_write_wins
    client_updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    deleted_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)

    owner: Mapped["User"] = relationship("User", back_populates="cards")

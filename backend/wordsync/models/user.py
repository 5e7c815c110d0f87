import uuid
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wordsync.core.clock import now_ms
from wordsync.db.base import Base

if TYPE_CHECKING:
    from wordsync.models.card import Card


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)

    cards: Mapped[list["Card"]] = relationship(
        "Card",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

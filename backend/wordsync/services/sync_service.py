"""
Merge входящих изменений в общую таблицу cards.

Один запрос = одна транзакция:
  0) блокировка строки владельца: запросы одного пользователя идут
     по очереди, и serverNow читается только после неё,
  1) upsert каждой присланной карточки (только в строки вызывающего),
  2) выборка всего, что изменилось у него после lastSyncTimestamp,
  3) commit; при любой ошибке - rollback всей пачки.
"""
import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordsync.core.enums import ConflictPolicy
from wordsync.core.exceptions import InternalError
from wordsync.models.card import Card
from wordsync.models.user import User
from wordsync.schemas.sync import SyncCard, SyncRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    timestamp: int
    changes: list[Card]
    applied: int


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise InternalError(f"Unsupported database dialect: {dialect}")


def _conflict_guard(owner_id: UUID, incoming: SyncCard, policy: ConflictPolicy):
    # чужие строки не трогаем никогда, даже при совпадении id
    guard = Card.user_id == owner_id
    if policy == ConflictPolicy.last_write_wins:
        # равный updatedAt применяется: повторная отправка идемпотентна
        guard = and_(
            guard,
            or_(
                Card.client_updated_at.is_(None),
                Card.client_updated_at <= incoming.updated_at,
            ),
        )
    return guard


def _apply_change(db: Session, *, owner_id: UUID, incoming: SyncCard, now: int, policy: ConflictPolicy) -> None:
    insert = _insert_for(db)

    stmt = insert(Card).values(
        id=incoming.id,
        user_id=owner_id,
        original=incoming.original,
        translation=incoming.translation,
        article=incoming.article,
        language=incoming.language or "de",
        score=incoming.score,
        created_at=incoming.created_at,
        last_reviewed_at=incoming.last_reviewed_at,
        next_review_at=incoming.next_review_at,
        updated_at=now,
        client_updated_at=incoming.updated_at,
        deleted_at=incoming.deleted_at,
    )

    if incoming.is_deleted:
        # tombstone: поля не воскрешаем, только отметка удаления
        set_ = {
            "deleted_at": stmt.excluded.deleted_at,
            "updated_at": stmt.excluded.updated_at,
            "client_updated_at": stmt.excluded.client_updated_at,
        }
    else:
        # правка после удаления - валидный "undo", deleted_at сбрасываем.
        # created_at не трогаем: он неизменяем после создания.
        set_ = {
            "original": stmt.excluded.original,
            "translation": stmt.excluded.translation,
            "article": stmt.excluded.article,
            "language": stmt.excluded.language,
            "score": stmt.excluded.score,
            "last_reviewed_at": stmt.excluded.last_reviewed_at,
            "next_review_at": stmt.excluded.next_review_at,
            "updated_at": stmt.excluded.updated_at,
            "client_updated_at": stmt.excluded.client_updated_at,
            "deleted_at": None,
        }

    stmt = stmt.on_conflict_do_update(
        index_elements=[Card.id],
        set_=set_,
        where=_conflict_guard(owner_id, incoming, policy),
    )
    db.execute(stmt)


def owner_lock_query(owner_id: UUID):
    # на SQLite FOR UPDATE не рендерится: там писатели и так идут по одному
    return select(User.id).where(User.id == owner_id).with_for_update()


def _changes_since(db: Session, *, owner_id: UUID, since: int, until: int) -> list[Card]:
    # верхняя граница отсекает записи, пришедшие после нашего "сейчас"
    query = (
        select(Card)
        .where(Card.user_id == owner_id)
        .where(Card.updated_at > since)
        .where(Card.updated_at <= until)
        .order_by(Card.updated_at.asc())
    )
    return list(db.scalars(query).all())


def merge_changes(
    db: Session,
    *,
    owner_id: UUID,
    request: SyncRequest,
    clock: Callable[[], int],
    policy: ConflictPolicy = ConflictPolicy.last_write_wins,
) -> MergeResult:
    try:
        db.execute(owner_lock_query(owner_id))
        now = clock()

        for incoming in request.changes:
            _apply_change(db, owner_id=owner_id, incoming=incoming, now=now, policy=policy)

        db.flush()
        # upsert шёл мимо identity map - перечитываем строки из БД
        db.expire_all()
        changes = _changes_since(db, owner_id=owner_id, since=request.last_sync_timestamp, until=now)

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Sync merge for user %s rolled back", owner_id, exc_info=exc)
        raise InternalError("Sync transaction failed") from exc

    logger.info(
        "Sync merge for user %s: pushed=%d pulled=%d since=%d now=%d",
        owner_id,
        len(request.changes),
        len(changes),
        request.last_sync_timestamp,
        now,
    )
    return MergeResult(timestamp=now, changes=changes, applied=len(request.changes))

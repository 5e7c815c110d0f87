"""Record Store: локальная SQLite-копия карточек устройства."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wordsync.core.exceptions import StoreUnavailable
from wordsync.device.models import LocalAlgorithmSettings, LocalBase, LocalCard
from wordsync.domain.review.dto import AlgorithmSettings
from wordsync.schemas.sync import SyncCard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyResult:
    applied: int
    # updated_at локальных правок, которые ответ сервера не перезаписал
    kept_local: tuple[int, ...] = ()


def _build_local_engine(url: str) -> Engine:
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)

    if url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


class RecordStore:
    """
    Единственный компонент устройства, который пишет на диск.

    Каждая операция - одна транзакция; записи сериализуются локом,
    поэтому мутации из UI и применение ответа синхронизации
    никогда не идут одновременно.
    """

    def __init__(self, url: str = "sqlite:///wordsync_device.db", *, engine: Optional[Engine] = None):
        self.engine = engine or _build_local_engine(url)
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self._write_lock = threading.RLock()

        try:
            LocalBase.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Cannot open local store: {exc}") from exc

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self._write_lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Local store transaction failed", exc_info=exc)
                raise StoreUnavailable(str(exc)) from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    # -----
    # Cards
    # -----

    def get(self, card_id: str) -> Optional[LocalCard]:
        with self.transaction() as session:
            return session.get(LocalCard, card_id)

    def list_due(self, now: int, language: Optional[str] = None) -> list[LocalCard]:
        query = (
            select(LocalCard)
            .where(LocalCard.deleted_at.is_(None))
            .where(LocalCard.next_review_at <= now)
        )
        if language:
            query = query.where(LocalCard.language == language)
        # самая "просроченная" карточка всегда первая
        query = query.order_by(LocalCard.next_review_at.asc(), LocalCard.created_at.asc())

        with self.transaction() as session:
            return list(session.scalars(query).all())

    def list_live(self, language: Optional[str] = None) -> list[LocalCard]:
        query = select(LocalCard).where(LocalCard.deleted_at.is_(None))
        if language:
            query = query.where(LocalCard.language == language)
        query = query.order_by(LocalCard.next_review_at.asc())

        with self.transaction() as session:
            return list(session.scalars(query).all())

    def changed_since(self, cursor: int) -> list[LocalCard]:
        """Всё, что менялось после курсора, включая tombstones."""
        query = (
            select(LocalCard)
            .where(LocalCard.updated_at > cursor)
            .order_by(LocalCard.updated_at.asc())
        )
        with self.transaction() as session:
            return list(session.scalars(query).all())

    def apply_remote(
        self,
        cards: Iterable[SyncCard],
        *,
        sent: Optional[Mapping[str, int]] = None,
        since: Optional[int] = None,
    ) -> ApplyResult:
        """
        Upsert карточек с сервера по id.

        Без sent/since локальная копия просто перезаписывается: конфликты
        уже разрешил сервер. С ними (так делает раунд синхронизации)
        пропускаются строки, изменённые локально, пока шёл запрос:
        - отправленная карточка, чей updated_at уже не равен отправленному,
        - неотправленная карточка с updated_at > since.
        Такие правки уйдут следующим раундом.
        """
        applied = 0
        kept_local = []
        with self.transaction() as session:
            for card in cards:
                row = card_to_row(card)
                local = session.get(LocalCard, row["id"])
                if local is not None and _changed_in_flight(local, sent, since):
                    logger.info(f"Card {local.id} changed locally during sync, keeping local version")
                    kept_local.append(local.updated_at)
                    continue
                session.merge(LocalCard(**row))
                applied += 1
        return ApplyResult(applied=applied, kept_local=tuple(kept_local))

    # --------
    # Settings
    # --------

    def load_settings(self) -> AlgorithmSettings:
        with self.transaction() as session:
            row = session.get(LocalAlgorithmSettings, 1)
            if row is None:
                # первый запуск - дефолты
                defaults = AlgorithmSettings()
                session.add(LocalAlgorithmSettings(id=1, data=defaults.to_dict()))
                return defaults
            return AlgorithmSettings.from_dict(row.data)

    def save_settings(self, settings: AlgorithmSettings) -> None:
        with self.transaction() as session:
            session.merge(LocalAlgorithmSettings(id=1, data=settings.to_dict()))


def _changed_in_flight(local: LocalCard, sent: Optional[Mapping[str, int]], since: Optional[int]) -> bool:
    if sent is None:
        return False
    if local.id in sent:
        return local.updated_at != sent[local.id]
    return since is not None and local.updated_at > since


def card_to_row(card: SyncCard) -> dict:
    return {
        "id": str(card.id),
        "original": card.original,
        "translation": card.translation,
        "article": card.article,
        "language": card.language,
        "score": card.score,
        "created_at": card.created_at,
        "last_reviewed_at": card.last_reviewed_at,
        "next_review_at": card.next_review_at,
        "updated_at": card.updated_at,
        "deleted_at": card.deleted_at,
    }

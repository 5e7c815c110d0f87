"""
Локальные операции над карточками (create / rate / snooze / edit / delete).

Всё идёт напрямую в Record Store и работает без сети.
Каждая мутация ставит updated_at = now, по нему карточку подхватит
следующий раунд синхронизации.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select, update

from wordsync.core.clock import now_ms
from wordsync.core.enums import ReviewRating
from wordsync.core.exceptions import NotFoundError, ValidationError
from wordsync.device.models import LocalCard
from wordsync.device.store import RecordStore
from wordsync.domain.review.dto import AlgorithmSettings
from wordsync.services.review_service import ReviewService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("original", "translation", "article", "language")
KEEP_GOING_SIZE = 5


@dataclass
class ImportResult:
    added: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


class LocalCardService:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], int] = now_ms,
        default_language: str = "de",
        on_change: Optional[Callable[[], object]] = None,
    ):
        self.store = store
        self.clock = clock
        self.default_language = default_language
        # вызывается после каждой успешной мутации (фоновая синхронизация)
        self.on_change = on_change

    # ---------
    # Helpers
    # ---------

    @staticmethod
    def _live_card(session, card_id: str) -> LocalCard:
        card = session.get(LocalCard, card_id)
        if card is None or card.is_deleted:
            raise NotFoundError(f"Card {card_id} not found")
        return card

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # ---------
    # Queries
    # ---------

    def get(self, card_id: str) -> LocalCard:
        card = self.store.get(card_id)
        if card is None or card.is_deleted:
            raise NotFoundError(f"Card {card_id} not found")
        return card

    def list_due(self, now: Optional[int] = None, language: Optional[str] = None) -> list[LocalCard]:
        return self.store.list_due(self.clock() if now is None else now, language=language)

    def list_cards(self, language: Optional[str] = None) -> list[LocalCard]:
        return self.store.list_live(language=language)

    def search(self, query: str, language: Optional[str] = None) -> list[LocalCard]:
        """Подстрока в original или translation, без учёта регистра."""
        cards = self.list_cards(language=language)
        needle = (query or "").strip().lower()
        if not needle:
            return cards
        return [c for c in cards if needle in c.original.lower() or needle in c.translation.lower()]

    def start_keep_going(
        self, language: Optional[str] = None, limit: int = KEEP_GOING_SIZE
    ) -> Optional["KeepGoingSession"]:
        """
        Повторение "наперёд", когда очередь пуста: ближайшие будущие карточки.
        None, если повторять нечего.
        """
        now = self.clock()
        upcoming = [c for c in self.list_cards(language=language) if c.next_review_at > now][:limit]
        if not upcoming:
            return None
        logger.info(f"Keep going mode started with {len(upcoming)} cards")
        return KeepGoingSession(upcoming)

    # ---------
    # Mutations
    # ---------

    def create(self, original: str, translation: str, article: str = "", language: Optional[str] = None) -> LocalCard:
        card = self._insert(original, translation, article, language)
        self._changed()
        return card

    def _insert(self, original: str, translation: str, article: str, language: Optional[str]) -> LocalCard:
        original = (original or "").strip()
        translation = (translation or "").strip()
        if not original:
            raise ValidationError("original is required")

        now = self.clock()
        card = LocalCard(
            id=str(uuid.uuid4()),
            original=original,
            translation=translation,
            article=(article or "").strip(),
            language=language or self.default_language,
            score=0,
            created_at=now,
            last_reviewed_at=0,
            # новая карточка сразу в очереди
            next_review_at=now,
            updated_at=now,
            deleted_at=None,
        )
        with self.store.transaction() as session:
            session.add(card)
        return card

    def rate(self, card_id: str, rating_adjustment: int) -> LocalCard:
        settings = self.store.load_settings()
        now = self.clock()

        with self.store.transaction() as session:
            card = self._live_card(session, card_id)
            state = ReviewService.review(
                card=card,
                rating_adjustment=rating_adjustment,
                settings=settings,
                now=now,
            )
            card.score = state.score
            card.last_reviewed_at = state.last_reviewed_at
            card.next_review_at = state.next_review_at
            card.updated_at = now

        if state.archived:
            logger.info(f"Card {card_id} reached max score {settings.max_score}, archived")
        self._changed()
        return card

    def review(self, card_id: str, rating: ReviewRating | str) -> LocalCard:
        settings = self.store.load_settings()
        return self.rate(card_id, settings.adjustment_for(ReviewRating(rating)))

    def snooze(self, card_id: str) -> LocalCard:
        settings = self.store.load_settings()
        now = self.clock()

        with self.store.transaction() as session:
            card = self._live_card(session, card_id)
            state = ReviewService.snooze(card=card, settings=settings, now=now)
            card.next_review_at = state.next_review_at
            card.updated_at = now
        self._changed()
        return card

    def edit(self, card_id: str, **fields) -> LocalCard:
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit fields: {sorted(unknown)}")
        if "original" in fields and not (fields["original"] or "").strip():
            raise ValidationError("original is required")

        with self.store.transaction() as session:
            card = self._live_card(session, card_id)
            for name, value in fields.items():
                if value is not None:
                    setattr(card, name, value.strip())
            card.updated_at = self.clock()
        self._changed()
        return card

    def soft_delete(self, card_id: str) -> None:
        with self.store.transaction() as session:
            card = self._live_card(session, card_id)
            now = self.clock()
            card.deleted_at = now
            card.updated_at = now
        self._changed()

    def reset_all(self) -> int:
        """Все живые карточки: score=0 и due прямо сейчас. Для отладки."""
        now = self.clock()
        with self.store.transaction() as session:
            result = session.execute(
                update(LocalCard)
                .where(LocalCard.deleted_at.is_(None))
                .values(score=0, next_review_at=now, updated_at=now)
            )
        logger.info(f"Reset {result.rowcount} cards")
        self._changed()
        return result.rowcount

    # --------
    # Settings
    # --------

    def get_settings(self) -> AlgorithmSettings:
        return self.store.load_settings()

    def save_settings(self, settings: AlgorithmSettings) -> None:
        # AlgorithmSettings уже провалидирован в __post_init__
        self.store.save_settings(settings)

    # ---------------
    # Import / export
    # ---------------

    def export_text(self, language: Optional[str] = None) -> str:
        cards = self.list_cards(language=language)
        if not cards:
            return (
                "# No words to export\n"
                "# Format: original | translation | article\n"
                "# Example: Haus | House | das\n"
            )

        lines = [
            "# Exported words from WordSync",
            f"# Date: {datetime.now(timezone.utc).date().isoformat()}",
            "# Format: original | translation | article",
            "# Lines starting with # are comments and will be ignored",
            "",
        ]
        lines.extend(f"{c.original} | {c.translation} | {c.article or ''}" for c in cards)
        return "\n".join(lines) + "\n"

    def import_text(self, text: str, language: Optional[str] = None) -> ImportResult:
        """Добавляет только новые слова (сравнение original+article без регистра)."""
        language = language or self.default_language
        result = ImportResult()

        with self.store.transaction() as session:
            existing = session.execute(
                select(LocalCard.original, LocalCard.article)
                .where(LocalCard.deleted_at.is_(None))
                .where(LocalCard.language == language)
            ).all()
        seen = {f"{o.lower()}|{(a or '').lower()}" for o, a in existing}

        for number, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            parts = [p.strip() for p in line.split("|")]
            if len(parts) < 2:
                result.errors.append(f'Line {number}: Invalid format - need at least "original | translation"')
                continue

            original, translation = parts[0], parts[1]
            article = parts[2] if len(parts) > 2 else ""
            if not original or not translation:
                result.errors.append(f"Line {number}: Missing original or translation")
                continue

            key = f"{original.lower()}|{article.lower()}"
            if key in seen:
                result.skipped += 1
                continue

            self._insert(original, translation, article, language)
            seen.add(key)
            result.added += 1

        if result.added:
            self._changed()
        return result


class KeepGoingSession:
    """
    Тренировка без последствий: ответы не меняют score и расписание,
    в Record Store ничего не пишется и синхронизировать нечего.
    """

    def __init__(self, cards: list[LocalCard]):
        self.cards = list(cards)

    @property
    def is_active(self) -> bool:
        return bool(self.cards)

    @property
    def current(self) -> Optional[LocalCard]:
        return self.cards[0] if self.cards else None

    def rate(self, card_id: str) -> None:
        # карточка отработана - убираем из сессии
        self.cards = [c for c in self.cards if c.id != card_id]

    def snooze(self, card_id: str) -> None:
        for index, card in enumerate(self.cards):
            if card.id == card_id:
                self.cards.append(self.cards.pop(index))
                return

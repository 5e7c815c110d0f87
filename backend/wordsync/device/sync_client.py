"""
Клиент синхронизации устройства.

Раунд: Idle -> Collecting -> Sending -> Applying -> Idle,
при любой ошибке -> Failed (курсор не двигается, следующий раунд
отправит надмножество тех же изменений).
Правки, сделанные пока идёт запрос, ответ сервера не затирает.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from wordsync.core.enums import SyncState
from wordsync.core.exceptions import (
    StoreUnavailable,
    SyncCooldown,
    SyncError,
    SyncNetworkError,
    SyncProtocolError,
    SyncServerError,
    SyncTimeout,
    SyncUnauthorized,
)
from wordsync.device.cursor import CursorStore
from wordsync.device.store import RecordStore
from wordsync.schemas.sync import SyncCard, SyncRequest, SyncResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    pushed: int
    pulled: int
    timestamp: int


class SyncClient:
    def __init__(
        self,
        store: RecordStore,
        cursor_store: CursorStore,
        http: httpx.Client,
        token_provider: Callable[[], Optional[str]],
        *,
        cooldown_seconds: float = 5.0,
        max_cooldown_seconds: float = 300.0,
        on_unauthorized: Optional[Callable[[], None]] = None,
        session_provider: Optional[Callable[[], object]] = None,
        session_lock: Optional[threading.RLock] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.cursor_store = cursor_store
        self.http = http
        self.token_provider = token_provider
        self.cooldown_seconds = cooldown_seconds
        self.max_cooldown_seconds = max_cooldown_seconds
        self.on_unauthorized = on_unauthorized
        # смена сессии (выход, новый вход) во время раунда отменяет его результат
        self.session_provider = session_provider or token_provider
        self.session_lock = session_lock or threading.RLock()
        self._monotonic = monotonic

        self._guard = threading.Lock()
        self._running = False
        self._pending = False

        self._state = SyncState.idle
        self._failures = 0
        self._retry_at = 0.0

        self.last_error: Optional[Exception] = None
        self.last_synced_at: Optional[int] = None

    @classmethod
    def from_settings(cls, store: RecordStore, cursor_store: CursorStore, token_provider, device_settings, **kwargs):
        http = httpx.Client(
            base_url=device_settings.SERVER_URL,
            timeout=device_settings.REQUEST_TIMEOUT_SECONDS,
        )
        return cls(
            store,
            cursor_store,
            http,
            token_provider,
            cooldown_seconds=device_settings.SYNC_COOLDOWN_SECONDS,
            max_cooldown_seconds=device_settings.SYNC_MAX_COOLDOWN_SECONDS,
            **kwargs,
        )

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._running

    # -----------
    # Entry points
    # -----------

    def sync(self) -> Optional[SyncResult]:
        """
        Один раунд синхронизации (плюс повтор, если во время раунда
        его запросили ещё раз). Если раунд уже идёт - запрос
        склеивается с ним и метод сразу возвращает None.
        Ошибки раунда пробрасываются как SyncError.
        """
        with self._guard:
            if self._running:
                self._pending = True
                logger.debug("Sync already in progress, request coalesced")
                return None
            self._running = True

        try:
            while True:
                result = self._run_round()
                with self._guard:
                    if not self._pending:
                        self._running = False
                        return result
                    self._pending = False
        except BaseException:
            with self._guard:
                self._running = False
                self._pending = False
            raise

    def request_sync(self) -> Optional[SyncResult]:
        """Фоновый триггер после мутаций: ошибка остаётся в state/last_error."""
        try:
            return self.sync()
        except SyncError as exc:
            logger.warning(f"Background sync failed: {exc}")
            return None
        except Exception as exc:
            # поток синхронизации не должен умирать молча
            logger.error("Background sync crashed", exc_info=exc)
            return None

    # -----
    # Round
    # -----

    def _run_round(self) -> Optional[SyncResult]:
        token = self.token_provider()
        if not token:
            logger.debug("Not logged in, skipping sync")
            return None
        session = self._session()

        retry_in = self._retry_at - self._monotonic()
        if retry_in > 0:
            raise SyncCooldown(retry_in)

        try:
            self._state = SyncState.collecting
            cursor = self.cursor_store.load()
            local_changes = self.store.changed_since(cursor)
            # что именно ушло на сервер: правки поверх этого не затираем
            sent = {card.id: card.updated_at for card in local_changes}

            self._state = SyncState.sending
            response = self._send(token, cursor, local_changes)

            self._state = SyncState.applying
            with self.session_lock:
                if self._session() != session:
                    # пока шёл запрос, пользователь вышел или перелогинился
                    logger.info("Session changed during sync, response dropped")
                    self._state = SyncState.idle
                    return None
                applied = self.store.apply_remote(response.changes, sent=sent, since=cursor)
                # курсор - время сервера, и только после полного применения.
                # Оставленные локальные правки должны попасть в следующий раунд.
                next_cursor = response.timestamp
                if applied.kept_local:
                    next_cursor = max(cursor, min(response.timestamp, min(applied.kept_local) - 1))
                self._save_cursor(next_cursor)
        except Exception as exc:
            self._fail(exc)
            raise

        self._state = SyncState.idle
        self._failures = 0
        self._retry_at = 0.0
        self.last_error = None
        self.last_synced_at = response.timestamp

        pulled = applied.applied
        logger.info(f"Sync complete: pushed={len(local_changes)} pulled={pulled} cursor={next_cursor}")
        return SyncResult(pushed=len(local_changes), pulled=pulled, timestamp=response.timestamp)

    def _session(self) -> object:
        return self.session_provider()

    def _save_cursor(self, timestamp: int) -> None:
        try:
            self.cursor_store.save(timestamp)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot save sync cursor: {exc}") from exc

    def _send(self, token: str, cursor: int, local_changes) -> SyncResponse:
        payload = SyncRequest(
            last_sync_timestamp=cursor,
            changes=[SyncCard.model_validate(card) for card in local_changes],
        ).model_dump(mode="json", by_alias=True)

        try:
            res = self.http.post(
                "/sync",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise SyncTimeout(f"Sync request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise SyncNetworkError(f"Sync request failed: {exc}") from exc

        if res.status_code in (401, 403):
            if self.on_unauthorized is not None:
                self.on_unauthorized()
            raise SyncUnauthorized(f"Sync rejected with status {res.status_code}")

        if res.status_code != 200:
            raise SyncServerError(res.status_code, res.text[:200])

        try:
            return SyncResponse.model_validate(res.json())
        except (ValueError, PydanticValidationError) as exc:
            raise SyncProtocolError(f"Malformed sync response: {exc}") from exc

    def _fail(self, exc: Exception) -> None:
        self._state = SyncState.failed
        self._failures += 1
        self.last_error = exc

        # 5s, 10s, 20s ... но не больше max
        delay = min(self.cooldown_seconds * 2 ** (self._failures - 1), self.max_cooldown_seconds)
        self._retry_at = self._monotonic() + delay

        logger.warning(f"Sync round failed ({type(exc).__name__}: {exc}), next attempt in {delay:.0f}s")

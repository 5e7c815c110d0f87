import logging
import threading
from typing import Optional

import httpx

from wordsync.device.account import AccountSession
from wordsync.device.card_service import LocalCardService
from wordsync.device.config import DeviceSettings
from wordsync.device.cursor import CursorStore, JsonFileCursorStore
from wordsync.device.store import RecordStore
from wordsync.device.sync_client import SyncClient

logger = logging.getLogger(__name__)


class DeviceApp:
    """
    Сборка всех частей устройства: хранилище, карточки, аккаунт, синхронизация.

    UI вызывает cards.* напрямую; после мутации (если пользователь вошёл)
    запускается фоновый раунд синхронизации, который никогда не блокирует UI.
    """

    def __init__(
        self,
        store: RecordStore,
        cursor_store: CursorStore,
        http: httpx.Client,
        *,
        cards: Optional[LocalCardService] = None,
        cooldown_seconds: float = 5.0,
        max_cooldown_seconds: float = 300.0,
        auto_sync: bool = True,
    ):
        self.store = store
        self.cursor_store = cursor_store
        self.cards = cards or LocalCardService(store)
        self.account = AccountSession(http, cursor_store)
        self.sync_client = SyncClient(
            store,
            cursor_store,
            http,
            self.account.token_provider,
            cooldown_seconds=cooldown_seconds,
            max_cooldown_seconds=max_cooldown_seconds,
            on_unauthorized=self.account.logout,
            session_provider=lambda: self.account.generation,
            session_lock=self.account.lock,
        )
        if auto_sync:
            self.cards.on_change = self.sync_in_background

    @classmethod
    def from_settings(cls, device_settings: Optional[DeviceSettings] = None) -> "DeviceApp":
        device_settings = device_settings or DeviceSettings()
        store = RecordStore(device_settings.DATABASE_URL)
        http = httpx.Client(
            base_url=device_settings.SERVER_URL,
            timeout=device_settings.REQUEST_TIMEOUT_SECONDS,
        )
        return cls(
            store,
            JsonFileCursorStore(device_settings.CURSOR_PATH),
            http,
            cards=LocalCardService(store, default_language=device_settings.DEFAULT_LANGUAGE),
            cooldown_seconds=device_settings.SYNC_COOLDOWN_SECONDS,
            max_cooldown_seconds=device_settings.SYNC_MAX_COOLDOWN_SECONDS,
        )

    def sync_in_background(self) -> Optional[threading.Thread]:
        if not self.account.is_logged_in:
            return None
        thread = threading.Thread(target=self.sync_client.request_sync, name="wordsync-sync", daemon=True)
        thread.start()
        return thread

    def login(self, username: str, password: str) -> dict:
        user = self.account.login(username, password)
        self.sync_client.request_sync()
        return user

    def register(self, username: str, password: str) -> dict:
        user = self.account.register(username, password)
        self.sync_client.request_sync()
        return user

    def logout(self) -> None:
        self.account.logout()

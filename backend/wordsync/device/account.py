import logging
import threading
from dataclasses import dataclass
from typing import Optional

import httpx

from wordsync.core.exceptions import AuthenticationError, ConflictError, SyncNetworkError, SyncTimeout
from wordsync.device.cursor import CursorStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionStatus:
    success: bool
    message: str


class AccountSession:
    """
    Токен пользователя на устройстве.
    Сам токен непрозрачен: устройство только хранит его и шлёт в Bearer.
    """

    def __init__(self, http: httpx.Client, cursor_store: CursorStore, token: Optional[str] = None):
        self.http = http
        self.cursor_store = cursor_store
        self.token = token
        self.user: Optional[dict] = None
        # растёт при каждом входе/выходе; раунд синхронизации сверяет его
        # перед записью курсора
        self.generation = 0
        self.lock = threading.RLock()

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)

    def token_provider(self) -> Optional[str]:
        return self.token

    def register(self, username: str, password: str) -> dict:
        data = self._post_credentials("/auth/register", username, password)
        return self._remember(data)

    def login(self, username: str, password: str) -> dict:
        data = self._post_credentials("/auth/login", username, password)
        return self._remember(data)

    def logout(self) -> None:
        # курсор в 0: после следующего входа будет полная синхронизация
        with self.lock:
            self.token = None
            self.user = None
            self.generation += 1
            self.cursor_store.save(0)

    def check_connection(self) -> ConnectionStatus:
        try:
            res = self.http.get("/health")
        except httpx.TimeoutException:
            return ConnectionStatus(False, "Connection timed out")
        except httpx.HTTPError as exc:
            return ConnectionStatus(False, f"Connection failed: {exc}")

        if res.status_code == 200:
            return ConnectionStatus(True, "Connected to server")
        return ConnectionStatus(False, f"Server returned {res.status_code}")

    def _post_credentials(self, path: str, username: str, password: str) -> dict:
        try:
            res = self.http.post(path, json={"username": username, "password": password})
        except httpx.TimeoutException as exc:
            raise SyncTimeout(f"{path} timed out") from exc
        except httpx.HTTPError as exc:
            raise SyncNetworkError(f"{path} failed: {exc}") from exc

        if res.status_code == 409:
            raise ConflictError("Username already exists")
        if res.status_code not in (200, 201):
            logger.info(f"{path} for {username} rejected with status {res.status_code}")
            raise AuthenticationError("Invalid credentials")
        return res.json()

    def _remember(self, data: dict) -> dict:
        with self.lock:
            self.token = data["access_token"]
            self.user = data.get("user")
            self.generation += 1
        return self.user or {}

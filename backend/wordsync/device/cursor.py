import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class CursorStore(Protocol):
    """Где устройство хранит lastSyncTimestamp (вне Record Store)."""

    def load(self) -> int: ...

    def save(self, timestamp: int) -> None: ...


class InMemoryCursorStore:
    def __init__(self, timestamp: int = 0):
        self._timestamp = timestamp

    def load(self) -> int:
        return self._timestamp

    def save(self, timestamp: int) -> None:
        self._timestamp = timestamp


class JsonFileCursorStore:
    """
    Курсор в JSON-файле. Запись атомарная: tmp-файл + fsync + os.replace,
    обрыв на середине оставляет прежний курсор.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> int:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as exc:
            # битый файл = полная синхронизация
            logger.warning(f"Cannot read sync cursor from {self.path}: {exc}, starting from 0")
            return 0

        value = data.get("lastSyncTimestamp", 0) if isinstance(data, dict) else None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.warning(f"Unexpected sync cursor in {self.path}: {data!r}, starting from 0")
            return 0
        return value

    def save(self, timestamp: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cursor-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({"lastSyncTimestamp": int(timestamp)}, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

from wordsync.device.app import DeviceApp
from wordsync.device.card_service import KeepGoingSession, LocalCardService
from wordsync.device.cursor import CursorStore, InMemoryCursorStore, JsonFileCursorStore
from wordsync.device.store import RecordStore
from wordsync.device.sync_client import SyncClient, SyncResult

__all__ = [
    "DeviceApp",
    "KeepGoingSession",
    "LocalCardService",
    "CursorStore",
    "InMemoryCursorStore",
    "JsonFileCursorStore",
    "RecordStore",
    "SyncClient",
    "SyncResult",
]

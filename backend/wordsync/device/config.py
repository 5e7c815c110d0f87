from pydantic_settings import BaseSettings, SettingsConfigDict


class DeviceSettings(BaseSettings):
    """Настройки клиента на устройстве (переменные WORDSYNC_DEVICE_*)."""

    model_config = SettingsConfigDict(
        env_prefix="WORDSYNC_DEVICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    SERVER_URL: str = "http://localhost:6900"
    DATABASE_URL: str = "sqlite:///wordsync_device.db"
    CURSOR_PATH: str = "wordsync_cursor.json"

    REQUEST_TIMEOUT_SECONDS: float = 5.0
    SYNC_COOLDOWN_SECONDS: float = 5.0
    SYNC_MAX_COOLDOWN_SECONDS: float = 300.0

    DEFAULT_LANGUAGE: str = "de"

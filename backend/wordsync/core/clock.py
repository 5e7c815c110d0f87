import time


def now_ms() -> int:
    """Текущее время в миллисекундах (как Date.now() у клиентов)."""
    return int(time.time() * 1000)

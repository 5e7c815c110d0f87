"""
Исключения приложения.

Серверная часть мапит их на HTTP-коды в wordsync.main,
клиентская (wordsync.device) пробрасывает их вызывающему коду.
"""


class WordSyncException(Exception):
    """Base exception for all WordSync application exceptions."""
    pass


class ValidationError(WordSyncException):
    """Raised when input validation fails."""
    pass


class NotFoundError(WordSyncException):
    """Raised when a card is unknown or already deleted."""
    pass


class ConflictError(WordSyncException):
    """Raised on duplicates (e.g. username already taken)."""
    pass


class AuthenticationError(WordSyncException):
    """Raised when credentials are missing, invalid or expired."""
    pass


class InternalError(WordSyncException):
    """Raised when a merge transaction fails and is rolled back."""
    pass


class StoreUnavailable(WordSyncException):
    """Raised when the local record store cannot be read or written."""
    pass


# ---------
# Sync client
# ---------

class SyncError(WordSyncException):
    """A sync round was aborted; the cursor was not advanced."""
    pass


class SyncUnauthorized(SyncError):
    pass


class SyncTimeout(SyncError):
    pass


class SyncNetworkError(SyncError):
    pass


class SyncServerError(SyncError):
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"Sync failed with status {status_code}")


class SyncProtocolError(SyncError):
    """The service answered with a body that is not a valid sync response."""
    pass


class SyncCooldown(SyncError):
    def __init__(self, retry_in: float):
        self.retry_in = retry_in
        super().__init__(f"Sync is cooling down, retry in {retry_in:.1f}s")

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import jwt, JWTError
from wordsync.core.config import settings


def create_access_token(
    user_id: UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Bearer-токен устройства: sub = id пользователя."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_user_id(token: str) -> UUID | None:
    """None, если токен битый, просрочен или без корректного sub."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return UUID(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        return None

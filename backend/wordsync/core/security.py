from uuid import UUID

from fastapi import Depends, HTTPException, status
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from wordsync.auth.dependencies import get_current_user_id
from wordsync.db.session import get_db
from wordsync.models.user import User

pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


def _bcrypt_safe(password: str) -> str:
    # bcrypt видит только первые 72 байта utf-8
    return str(password).encode("utf-8")[:72].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user:
        # 401, а не 404: токен от удалённого пользователя просто невалиден
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    return user

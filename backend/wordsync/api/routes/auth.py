import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wordsync.auth.jwt import create_access_token
from wordsync.core.security import get_current_user, hash_password, verify_password
from wordsync.db.session import get_db
from wordsync.models.user import User
from wordsync.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    token = create_access_token(user.id)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    username = data.username.strip()
    logger.info("Registration attempt for user %s from %s", username, request.client.host if request.client else "?")

    existing_user = db.query(User).filter(User.username == username).first()
    if existing_user:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    user = User(
        id=uuid4(),
        username=username,
        password_hash=hash_password(data.password),
    )

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # гонка двух регистраций с одним именем
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")
    db.refresh(user)

    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    username = data.username.strip()
    logger.info("Login attempt for user %s from %s", username, request.client.host if request.client else "?")

    user = db.query(User).filter(User.username == username).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return _token_response(user)

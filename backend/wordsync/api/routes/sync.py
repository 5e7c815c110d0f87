# backend/wordsync/api/routes/sync.py
from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wordsync.core.clock import now_ms
from wordsync.core.config import settings
from wordsync.core.enums import ConflictPolicy
from wordsync.core.security import get_current_user
from wordsync.db.session import get_db
from wordsync.models.user import User
from wordsync.schemas.sync import SyncCard, SyncRequest, SyncResponse
from wordsync.services.sync_service import merge_changes

router = APIRouter()


def get_server_clock() -> Callable[[], int]:
    # serverNow читается уже внутри транзакции, после блокировки владельца
    return now_ms


def get_conflict_policy() -> ConflictPolicy:
    return settings.SYNC_CONFLICT_POLICY


@router.post("", response_model=SyncResponse)
def sync(
    payload: SyncRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Callable[[], int] = Depends(get_server_clock),
    policy: ConflictPolicy = Depends(get_conflict_policy),
):
    """
    Принимает локальные изменения устройства и возвращает всё,
    что поменялось у пользователя после lastSyncTimestamp.
    """
    result = merge_changes(
        db,
        owner_id=current_user.id,
        request=payload,
        clock=clock,
        policy=policy,
    )

    return SyncResponse(
        timestamp=result.timestamp,
        changes=[SyncCard.model_validate(card) for card in result.changes],
    )

import logging

from fastapi import APIRouter

from wordsync.core.clock import now_ms

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok", "timestamp": now_ms()}


@router.get("/ping")
def ping():
    logger.debug("Ping received")
    return {"status": "ok", "message": "pong"}

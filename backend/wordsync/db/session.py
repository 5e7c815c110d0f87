import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wordsync.core.config import settings
from wordsync.db.base import Base

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    # postgres:// -> postgresql:// (SQLAlchemy не понимает старую схему)
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Создаёт таблицы, если их ещё нет."""
    import wordsync.models  # noqa: F401  регистрирует модели в Base.metadata

    target = bind or engine
    logger.info("Creating tables on %s", target.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=target)

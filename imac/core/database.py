"""Engine and per-request Session for the credential and token stores."""

import logging
from collections.abc import Generator
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from imac.core.config import settings

if TYPE_CHECKING:
    from imac.core.config import Settings

logger = logging.getLogger(__name__)

# Recycle pooled connections before typical server-side idle timeouts.
POOL_RECYCLE_SECONDS = 1800


def build_engine(cfg: "Settings") -> Engine:
    return create_engine(
        cfg.DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=POOL_RECYCLE_SECONDS,
        echo=cfg.DEBUG,
    )


engine = build_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields one Session per request and closes it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database connectivity check failed: %s", type(e).__name__)
        return False

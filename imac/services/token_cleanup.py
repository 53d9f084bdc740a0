"""Token cleanup: delete refresh and password reset tokens past their expires_at."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from imac.services.stores import SqlTokenStore

if TYPE_CHECKING:
    from imac.core.config import Settings

logger = logging.getLogger(__name__)


def purge_expired_tokens(
    session: Session,
    settings: "Settings",
    now: datetime | None = None,
) -> tuple[int, int]:
    """
    Delete expired refresh and reset tokens.

    Returns (refresh_deleted, reset_deleted). Idempotent: safe to run repeatedly.
    Rows found expired during a request are removed there too; this job only
    catches the ones nobody presented again.
    """
    if not settings.TOKEN_CLEANUP_ENABLED:
        logger.info("Token cleanup is disabled (TOKEN_CLEANUP_ENABLED=false); skipping.")
        return (0, 0)

    cutoff = now or datetime.now(UTC)
    refresh_deleted, reset_deleted = SqlTokenStore(session).delete_expired(cutoff)
    session.commit()

    if refresh_deleted or reset_deleted:
        logger.info(
            "Token cleanup run: cutoff=%s, refresh_deleted=%s, reset_deleted=%s",
            cutoff.isoformat(),
            refresh_deleted,
            reset_deleted,
        )
    return (refresh_deleted, reset_deleted)

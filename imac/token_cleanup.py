"""
CLI entrypoint for the expired token cleanup job. Run from cron, e.g.:

  python -m imac.token_cleanup

Or hourly: 0 * * * * cd /path/to/imac && .venv/bin/python -m imac.token_cleanup
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from imac.core.config import get_settings
from imac.core.database import SessionLocal
from imac.services.token_cleanup import purge_expired_tokens

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete refresh and reset tokens whose expiry has passed."""
    settings = get_settings()
    db = SessionLocal()
    try:
        refresh_deleted, reset_deleted = purge_expired_tokens(db, settings)
        logger.info(
            "Token cleanup completed: refresh_deleted=%s reset_deleted=%s",
            refresh_deleted,
            reset_deleted,
        )
        return 0
    except SQLAlchemyError as e:
        logger.exception("Token cleanup failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

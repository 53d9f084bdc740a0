"""Core app configuration and database."""

from imac.core.config import get_settings, settings
from imac.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]

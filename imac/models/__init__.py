"""SQLAlchemy ORM models."""

from imac.models.base import Base
from imac.models.token import PasswordResetToken, RefreshToken
from imac.models.user import DEFAULT_ROLE, Role, User

__all__ = ["Base", "DEFAULT_ROLE", "PasswordResetToken", "RefreshToken", "Role", "User"]

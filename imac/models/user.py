"""ORM model for application users (auth and role-based access)."""

import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import relationship

from imac.models.base import Base


class Role(str, enum.Enum):
    """Closed set of roles a user can hold."""

    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"
    LIDER_PRODUCAO = "LIDER_PRODUCAO"
    ESPECTADOR = "ESPECTADOR"


DEFAULT_ROLE = Role.ESPECTADOR


class User(Base):
    """
    User account with lockout bookkeeping.

    failed_login_attempts and locked_until are reset on every successful
    login and on password reset.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, length=32),
        nullable=False,
        default=DEFAULT_ROLE,
    )
    failed_login_attempts = Column(Integer, nullable=False, default=0, server_default="0")
    locked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    password_reset_tokens = relationship(
        "PasswordResetToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

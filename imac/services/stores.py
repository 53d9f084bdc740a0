"""
Credential and token store contracts with their SQLAlchemy implementations.

Each store wraps the request's Session and performs row-level reads and writes;
flushing is done here, committing is left to the caller's unit of work.
"""

from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy.orm import Session

from imac.core.security import normalize_email
from imac.models import PasswordResetToken, RefreshToken, Role, User

# Columns update_user is allowed to touch.
UPDATABLE_USER_FIELDS = frozenset(
    {"password_hash", "name", "role", "failed_login_attempts", "locked_until"}
)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps (e.g. from SQLite) as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CredentialStore(Protocol):
    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: int) -> User | None: ...

    def create_user(self, email: str, password_hash: str, name: str, role: Role) -> User: ...

    def update_user(self, user_id: int, **fields: Any) -> User | None: ...

    def increment_failed_attempts(self, user_id: int) -> int: ...


class TokenStore(Protocol):
    def create_refresh_token(self, user_id: int, token: str, expires_at: datetime) -> RefreshToken: ...

    def find_refresh_token(self, token: str) -> RefreshToken | None: ...

    def delete_refresh_token(self, token_id: int) -> bool: ...

    def delete_refresh_tokens_by_value(self, token: str) -> int: ...

    def delete_all_refresh_tokens_for_user(self, user_id: int) -> int: ...

    def create_password_reset_token(
        self, user_id: int, token: str, expires_at: datetime
    ) -> PasswordResetToken: ...

    def find_password_reset_token(self, token: str) -> PasswordResetToken | None: ...

    def delete_password_reset_token(self, token_id: int) -> bool: ...

    def delete_password_reset_tokens_for_user(self, user_id: int) -> int: ...

    def delete_expired(self, now: datetime) -> tuple[int, int]: ...


class SqlCredentialStore:
    """CredentialStore backed by the users table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_user_by_id(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def create_user(self, email: str, password_hash: str, name: str, role: Role) -> User:
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name,
            role=role,
            failed_login_attempts=0,
            locked_until=None,
        )
        self.db.add(user)
        self.db.flush()
        # Load server-side defaults (created_at).
        self.db.refresh(user)
        return user

    def update_user(self, user_id: int, **fields: Any) -> User | None:
        unknown = set(fields) - UPDATABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")
        user = self.db.get(User, user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        self.db.flush()
        return user

    def increment_failed_attempts(self, user_id: int) -> int:
        """Atomically add one to failed_login_attempts and return the stored value."""
        self.db.query(User).filter(User.id == user_id).update(
            {User.failed_login_attempts: User.failed_login_attempts + 1},
            synchronize_session=False,
        )
        self.db.flush()
        user = self.db.get(User, user_id)
        if user is None:
            return 0
        self.db.refresh(user, attribute_names=["failed_login_attempts"])
        return user.failed_login_attempts


class SqlTokenStore:
    """TokenStore backed by the refresh_tokens and password_reset_tokens tables."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_refresh_token(self, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(token=token, user_id=user_id, expires_at=expires_at)
        self.db.add(row)
        self.db.flush()
        return row

    def find_refresh_token(self, token: str) -> RefreshToken | None:
        return self.db.query(RefreshToken).filter(RefreshToken.token == token).first()

    def delete_refresh_token(self, token_id: int) -> bool:
        """Delete one row; True only if this call removed it."""
        deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.id == token_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted == 1

    def delete_refresh_tokens_by_value(self, token: str) -> int:
        deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.token == token)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def delete_all_refresh_tokens_for_user(self, user_id: int) -> int:
        deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def create_password_reset_token(
        self, user_id: int, token: str, expires_at: datetime
    ) -> PasswordResetToken:
        row = PasswordResetToken(token=token, user_id=user_id, expires_at=expires_at)
        self.db.add(row)
        self.db.flush()
        return row

    def find_password_reset_token(self, token: str) -> PasswordResetToken | None:
        return (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.token == token)
            .first()
        )

    def delete_password_reset_token(self, token_id: int) -> bool:
        deleted = (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.id == token_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted == 1

    def delete_password_reset_tokens_for_user(self, user_id: int) -> int:
        deleted = (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def delete_expired(self, now: datetime) -> tuple[int, int]:
        """Delete refresh and reset tokens whose expires_at is before now."""
        refresh_deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        reset_deleted = (
            self.db.query(PasswordResetToken)
            .filter(PasswordResetToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return refresh_deleted, reset_deleted

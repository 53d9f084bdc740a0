"""
Session lifecycle: registration, login with progressive lockout, refresh token
rotation, logout, and the password reset flow.

AuthService is stateless between calls. Every operation re-reads users and
tokens from the store and runs as one unit of work on the request's Session:
committed on success, rolled back on failure. Paths that must leave a trace
even though they fail (lockout counters, deleting expired or invalid tokens)
commit before raising.
"""

import logging
import secrets
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, NoReturn

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from imac.core.security import hash_password, mask_sensitive, verify_password
from imac.models.user import DEFAULT_ROLE, Role
from imac.schemas.auth import LoginResult, TokenPair, UserPublic
from imac.services.audit import AuditSink, BusinessEvent, LoggingAuditSink, emit_event
from imac.services.errors import (
    AccountLocked,
    AuthError,
    EmailTaken,
    ExpiredRefreshToken,
    ExpiredToken,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidRefreshToken,
    InvalidRole,
    ServiceUnavailable,
    TokenExpired,
    TokenInvalid,
    UserNotFound,
    WeakPassword,
)
from imac.services.notifications import (
    PasswordResetNotifier,
    ResetDelivery,
    get_reset_notifier,
)
from imac.services.password_policy import validate_password
from imac.services.stores import (
    CredentialStore,
    SqlCredentialStore,
    SqlTokenStore,
    TokenStore,
    as_utc,
)
from imac.services.token_issuer import (
    issue_access_token,
    issue_refresh_token,
    verify_access_token,
    verify_refresh_token,
)

if TYPE_CHECKING:
    from imac.core.config import Settings

logger = logging.getLogger(__name__)

# Bytes of entropy in a password reset token (hex encoded, so 64 chars).
RESET_TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuthService:
    """Authentication and session operations for one request's Session."""

    def __init__(
        self,
        db: Session,
        settings: "Settings",
        *,
        users: CredentialStore | None = None,
        tokens: TokenStore | None = None,
        notifier: PasswordResetNotifier | None = None,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.users = users or SqlCredentialStore(db)
        self.tokens = tokens or SqlTokenStore(db)
        self.notifier = notifier or get_reset_notifier(settings)
        self.audit = audit or LoggingAuditSink()
        self._clock = clock or _utcnow

    def _now(self) -> datetime:
        return as_utc(self._clock())

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit on success; roll back and re-raise AuthError; wrap store errors."""
        try:
            yield
            self.db.commit()
        except AuthError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Credential store failure: %s", type(e).__name__)
            raise ServiceUnavailable() from e
        except Exception:
            self.db.rollback()
            raise

    def _commit_and_raise(self, error: AuthError) -> NoReturn:
        self.db.commit()
        raise error

    def _event(
        self,
        event: BusinessEvent,
        user_id: int | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        emit_event(self.audit, event, user_id, details)

    def _issue_pair(self, user: Any, now: datetime) -> tuple[str, str]:
        access_token = issue_access_token(user, self.settings, now)
        refresh_token = issue_refresh_token(user.id, self.tokens, self.settings, now)
        return access_token, refresh_token

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        name: str,
        role: Role | str | None = None,
    ) -> UserPublic:
        """Create a user after the password policy and uniqueness checks."""
        check = validate_password(password)
        if not check.ok:
            raise WeakPassword(check.reason)
        try:
            user_role = Role(role) if role is not None else DEFAULT_ROLE
        except ValueError as e:
            raise InvalidRole() from e

        with self._transaction():
            if self.users.find_user_by_email(email) is not None:
                raise EmailTaken()
            password_hash = hash_password(password, self.settings.BCRYPT_ROUNDS)
            try:
                user = self.users.create_user(email, password_hash, name, user_role)
            except IntegrityError as e:
                # Lost a race with a concurrent registration of the same email.
                raise EmailTaken() from e
            public = UserPublic.model_validate(user)

        logger.info(
            "New user registered",
            extra={
                "user_id": public.id,
                "email": mask_sensitive(public.email, 3),
                "role": public.role.value,
            },
        )
        self._event(BusinessEvent.USER_CREATED, public.id, {"role": public.role.value})
        return public

    def get_user_by_id(self, user_id: int) -> UserPublic:
        try:
            user = self.users.find_user_by_id(user_id)
            if user is None:
                raise UserNotFound()
            return UserPublic.model_validate(user)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Credential store failure: %s", type(e).__name__)
            raise ServiceUnavailable() from e

    # ------------------------------------------------------------------
    # Login / refresh / logout
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        """
        Verify credentials with progressive lockout.

        Raises InvalidCredentials for an unknown email or a wrong password and
        AccountLocked while locked or when this failure reaches the limit.
        Neither message reveals which case applied.
        """
        now = self._now()
        max_attempts = self.settings.MAX_FAILED_LOGIN_ATTEMPTS

        with self._transaction():
            user = self.users.find_user_by_email(email)
            if user is None:
                logger.warning(
                    "Login attempt with unknown email",
                    extra={"email": mask_sensitive(email, 3)},
                )
                self._event(BusinessEvent.LOGIN_FAILED, None, {"reason": "unknown_email"})
                raise InvalidCredentials()

            user_id = user.id
            locked_until = as_utc(user.locked_until)
            if locked_until is not None and now < locked_until:
                logger.warning(
                    "Login attempt on locked account",
                    extra={
                        "user_id": user_id,
                        "minutes_remaining": int((locked_until - now).total_seconds() // 60) + 1,
                    },
                )
                self._event(BusinessEvent.LOGIN_FAILED, user_id, {"reason": "locked"})
                raise AccountLocked()

            if not verify_password(password, user.password_hash):
                attempts = self.users.increment_failed_attempts(user_id)
                if attempts >= max_attempts:
                    self.users.update_user(
                        user_id,
                        locked_until=now + timedelta(minutes=self.settings.LOCKOUT_MINUTES),
                    )
                    self.db.commit()
                    logger.warning(
                        "Account locked after too many failed logins",
                        extra={"user_id": user_id, "attempts": attempts},
                    )
                    self._event(BusinessEvent.ACCOUNT_LOCKED, user_id, {"attempts": attempts})
                    raise AccountLocked()

                self.db.commit()
                logger.warning(
                    "Login attempt with invalid password",
                    extra={
                        "user_id": user_id,
                        "attempts": attempts,
                        "remaining_attempts": max_attempts - attempts,
                    },
                )
                self._event(BusinessEvent.LOGIN_FAILED, user_id, {"reason": "bad_password"})
                raise InvalidCredentials()

            self.users.update_user(user_id, failed_login_attempts=0, locked_until=None)
            access_token, refresh_token = self._issue_pair(user, now)
            public = UserPublic.model_validate(user)

        logger.info(
            "Login succeeded",
            extra={"user_id": public.id, "email": mask_sensitive(public.email, 3)},
        )
        self._event(BusinessEvent.LOGIN_SUCCESS, public.id, {"role": public.role.value})
        return LoginResult(
            user=public,
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token: the presented token is consumed and a new
        access/refresh pair is returned. Reusing a consumed token fails with
        InvalidRefreshToken.
        """
        now = self._now()

        with self._transaction():
            row = self.tokens.find_refresh_token(refresh_token)
            if row is None:
                raise InvalidRefreshToken()
            row_id, user_id = row.id, row.user_id

            if now > as_utc(row.expires_at):
                self.tokens.delete_refresh_token(row_id)
                self._commit_and_raise(ExpiredRefreshToken())

            try:
                claims = verify_refresh_token(refresh_token, self.settings)
            except (TokenInvalid, TokenExpired):
                self.tokens.delete_refresh_token(row_id)
                self._commit_and_raise(InvalidRefreshToken())

            user = self.users.find_user_by_id(user_id)
            if user is None or claims.get("sub") != str(user_id):
                self.tokens.delete_refresh_token(row_id)
                self._commit_and_raise(InvalidRefreshToken())

            access_token, new_refresh_token = self._issue_pair(user, now)

            # Single winner: a concurrent refresh that already removed the row
            # makes this delete a no-op, and the new pair is rolled back.
            if not self.tokens.delete_refresh_token(row_id):
                raise InvalidRefreshToken()

        logger.info("Token refreshed", extra={"user_id": user_id})
        return TokenPair(access_token=access_token, refresh_token=new_refresh_token)

    def logout(self, refresh_token: str | None, user_id: int | None = None) -> int:
        """Revoke one refresh token. No token is a successful no-op."""
        if not refresh_token:
            return 0

        with self._transaction():
            removed = self.tokens.delete_refresh_tokens_by_value(refresh_token)

        logger.info(
            "Logout",
            extra={"token": mask_sensitive(refresh_token, 8), "tokens_removed": removed},
        )
        if user_id is not None:
            self._event(BusinessEvent.LOGOUT, user_id)
        return removed

    def logout_all(self, user_id: int) -> int:
        """Revoke every refresh token of a user; returns how many were removed."""
        with self._transaction():
            removed = self.tokens.delete_all_refresh_tokens_for_user(user_id)

        logger.info(
            "Logout from all devices",
            extra={"user_id": user_id, "tokens_removed": removed},
        )
        self._event(BusinessEvent.LOGOUT, user_id, {"logout_all": True, "tokens_removed": removed})
        return removed

    def verify_access_token(self, token: str) -> dict[str, Any]:
        return verify_access_token(token, self.settings)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> None:
        """
        Start a password reset and deliver the token in-line. Returns None
        whether or not the email exists; the token is never returned.

        The HTTP route uses request_password_reset and deliver_password_reset
        separately so delivery happens after the response is sent.
        """
        delivery = self.request_password_reset(email)
        if delivery is not None:
            self.deliver_password_reset(delivery)

    def request_password_reset(self, email: str) -> ResetDelivery | None:
        """
        Persist a fresh reset token for a known email, replacing any earlier one.
        Returns the hand-off for the notifier, or None for an unknown email.
        """
        now = self._now()

        with self._transaction():
            user = self.users.find_user_by_email(email)
            if user is None:
                logger.info(
                    "Password reset requested for unknown email",
                    extra={"email": mask_sensitive(email, 3)},
                )
                return None
            user_id, user_email = user.id, user.email
            token = secrets.token_hex(RESET_TOKEN_BYTES)
            expires_at = now + timedelta(minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES)
            self.tokens.delete_password_reset_tokens_for_user(user_id)
            self.tokens.create_password_reset_token(user_id, token, expires_at)

        self._event(BusinessEvent.PASSWORD_RESET_REQUESTED, user_id)
        return ResetDelivery(user_id=user_id, email=user_email, token=token)

    def deliver_password_reset(self, delivery: ResetDelivery) -> None:
        """Hand the token to the notifier. Failures are logged, never raised."""
        try:
            self.notifier.send_password_reset(delivery.user_id, delivery.email, delivery.token)
        except Exception:
            logger.exception(
                "Password reset notification failed", extra={"user_id": delivery.user_id}
            )

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password with a reset token. Clears the lockout state,
        consumes the token, and revokes every refresh token of the user.
        """
        check = validate_password(new_password)
        if not check.ok:
            raise WeakPassword(check.reason)
        now = self._now()

        with self._transaction():
            row = self.tokens.find_password_reset_token(token)
            if row is None:
                raise InvalidOrExpiredToken()
            row_id, user_id = row.id, row.user_id

            if now > as_utc(row.expires_at):
                self.tokens.delete_password_reset_token(row_id)
                self._commit_and_raise(ExpiredToken())

            # Consume first so two concurrent resets cannot both succeed.
            if not self.tokens.delete_password_reset_token(row_id):
                raise InvalidOrExpiredToken()

            password_hash = hash_password(new_password, self.settings.BCRYPT_ROUNDS)
            if self.users.update_user(
                user_id,
                password_hash=password_hash,
                failed_login_attempts=0,
                locked_until=None,
            ) is None:
                raise InvalidOrExpiredToken()
            sessions_revoked = self.tokens.delete_all_refresh_tokens_for_user(user_id)

        logger.info(
            "Password reset completed",
            extra={"user_id": user_id, "sessions_revoked": sessions_revoked},
        )
        self._event(BusinessEvent.PASSWORD_RESET_COMPLETED, user_id)

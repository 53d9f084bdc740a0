"""Typed failures raised by the auth services and mapped to HTTP responses."""


class AuthError(Exception):
    """
    Base class for auth failures. Each subclass carries an HTTP status and a
    stable error code. Messages are safe to show to end users: they never
    include attempt counts, lock durations or whether an account exists.
    """

    status_code: int = 400
    error_code: str = "auth_error"
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class WeakPassword(AuthError):
    status_code = 400
    error_code = "weak_password"
    default_message = "Password does not meet the security requirements"


class EmailTaken(AuthError):
    status_code = 409
    error_code = "email_taken"
    default_message = "Email is already registered"


class InvalidCredentials(AuthError):
    status_code = 401
    error_code = "invalid_credentials"
    default_message = "Invalid email or password"


class AccountLocked(AuthError):
    status_code = 403
    error_code = "account_locked"
    default_message = (
        "Account temporarily locked for security reasons. Please try again later."
    )


class InvalidRefreshToken(AuthError):
    status_code = 401
    error_code = "invalid_refresh_token"
    default_message = "Invalid refresh token"


class ExpiredRefreshToken(AuthError):
    status_code = 401
    error_code = "expired_refresh_token"
    default_message = "Refresh token expired"


class InvalidOrExpiredToken(AuthError):
    status_code = 400
    error_code = "invalid_or_expired_token"
    default_message = "Invalid or expired token"


class ExpiredToken(AuthError):
    status_code = 400
    error_code = "expired_token"
    default_message = "Token expired"


class UserNotFound(AuthError):
    status_code = 404
    error_code = "user_not_found"
    default_message = "User not found"


class TokenInvalid(AuthError):
    status_code = 401
    error_code = "token_invalid"
    default_message = "Invalid token"


class TokenExpired(AuthError):
    status_code = 401
    error_code = "token_expired"
    default_message = "Token expired"


class InvalidRole(AuthError):
    status_code = 400
    error_code = "invalid_role"
    default_message = "Unknown role"


class InsufficientRole(AuthError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Insufficient permissions"


class ServiceUnavailable(AuthError):
    """The credential/token store failed; the operation was rolled back."""

    status_code = 503
    error_code = "service_unavailable"
    default_message = "Authentication service temporarily unavailable"

"""
Access and refresh token minting and verification.

Access tokens are short-lived and stateless. Refresh tokens are signed with a
separate secret and also persisted with their own expires_at, so a refresh is
only honoured while both the row and the signature are valid.
"""

import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from imac.services.errors import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from imac.core.config import Settings
    from imac.models import User
    from imac.services.stores import TokenStore

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _new_jti() -> str:
    return secrets.token_hex(16)


def issue_access_token(user: "User", settings: "Settings", now: datetime) -> str:
    """Create a JWT access token carrying sub (user id), email and role."""
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "jti": _new_jti(),
    }
    return jwt.encode(
        payload,
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def issue_refresh_token(
    user_id: int,
    token_store: "TokenStore",
    settings: "Settings",
    now: datetime,
) -> str:
    """
    Create a refresh JWT and persist it. The row's expires_at is computed here,
    independently of the exp claim; both are checked on refresh.
    """
    lifetime = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.JWT_ISSUER,
        "jti": _new_jti(),
    }
    token = jwt.encode(
        payload,
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
    token_store.create_refresh_token(user_id, token, now + lifetime)
    return token


def _decode(token: str, secret: str, settings: "Settings", **options: Any) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
            options={"require": ["exp", "iat", "sub"]},
            **options,
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired() from e
    except jwt.PyJWTError as e:
        raise TokenInvalid() from e


def verify_access_token(token: str, settings: "Settings") -> dict[str, Any]:
    """
    Decode and validate an access token; return its claims.
    Raises TokenExpired when exp has passed, TokenInvalid for anything else.
    """
    claims = _decode(
        token,
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        settings,
        audience=settings.JWT_AUDIENCE,
    )
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise TokenInvalid()
    return claims


def verify_refresh_token(token: str, settings: "Settings") -> dict[str, Any]:
    """Validate a refresh token's signature, issuer and exp against the refresh secret."""
    claims = _decode(token, settings.JWT_REFRESH_SECRET.get_secret_value(), settings)
    if claims.get("type") != REFRESH_TOKEN_TYPE:
        raise TokenInvalid()
    return claims

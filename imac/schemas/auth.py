"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from imac.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    normalize_email,
)
from imac.models.user import Role


class _EmailBody(BaseModel):
    email: EmailStr = Field(..., max_length=EMAIL_MAX_LEN, description="Account email")

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v: object) -> object:
        return normalize_email(v) if isinstance(v, str) else v


class RegisterRequest(_EmailBody):
    """New account data. Password strength is checked by the service."""

    model_config = ConfigDict(extra="forbid")

    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    role: Role | None = Field(default=None, description="Defaults to ESPECTADOR")

    @field_validator("name")
    @classmethod
    def collapse_whitespace(cls, v: str) -> str:
        collapsed = " ".join(v.split())
        if len(collapsed) < NAME_MIN_LEN:
            raise ValueError(f"Name must be at least {NAME_MIN_LEN} characters")
        return collapsed


class LoginRequest(_EmailBody):
    """Credentials for login."""

    model_config = ConfigDict(extra="forbid")

    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    refresh_token: str | None = None


class ForgotPasswordRequest(_EmailBody):
    model_config = ConfigDict(extra="forbid")


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    token: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class UserPublic(BaseModel):
    """User projection returned to callers (never the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: Role
    created_at: datetime


class TokenPair(BaseModel):
    """Freshly issued access and refresh tokens."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Single-use refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class LoginResult(TokenPair):
    user: UserPublic


class LogoutAllResponse(BaseModel):
    tokens_removed: int


class MessageResponse(BaseModel):
    message: str


class CurrentUser(BaseModel):
    """Identity taken from a verified access token."""

    id: int
    email: str
    role: Role

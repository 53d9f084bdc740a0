"""Auth endpoints and dependencies (get_current_user, require_roles)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from imac.core.config import Settings, get_settings
from imac.core.database import get_db
from imac.models.user import DEFAULT_ROLE, Role
from imac.schemas.auth import (
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResult,
    LogoutAllResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
    UserPublic,
)
from imac.services.auth import AuthService
from imac.services.errors import AuthError, InsufficientRole, TokenInvalid
from imac.services.token_issuer import verify_access_token

router = APIRouter()
security = HTTPBearer(auto_error=False)

# Same reply whether or not the email exists.
FORGOT_PASSWORD_MESSAGE = "If the email exists, a reset link will be sent."

# Privilege order used by require_roles; every Role must appear here.
ROLE_RANK: dict[Role, int] = {
    Role.ESPECTADOR: 0,
    Role.LIDER_PRODUCAO: 1,
    Role.SUPERVISOR: 2,
    Role.ADMIN: 3,
}
if set(ROLE_RANK) != set(Role):
    raise RuntimeError("ROLE_RANK must cover every Role")


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(db, settings)


def _current_user_from_token(token: str, settings: Settings) -> CurrentUser:
    claims = verify_access_token(token, settings)
    try:
        return CurrentUser(
            id=int(claims["sub"]),
            email=claims["email"],
            role=Role(claims["role"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TokenInvalid("Invalid token payload") from e


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token. Raises 401 if missing or invalid."""
    if credentials is None:
        raise TokenInvalid("Not authenticated")
    return _current_user_from_token(credentials.credentials, settings)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser | None:
    """Dependency: the caller's identity when a valid token is sent, else None."""
    if credentials is None:
        return None
    try:
        return _current_user_from_token(credentials.credentials, settings)
    except AuthError:
        return None


def require_roles(minimum: Role) -> Callable[[CurrentUser], CurrentUser]:
    """Dependency factory: require a role ranked at least as high as `minimum`."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if ROLE_RANK[current_user.role] < ROLE_RANK[minimum]:
            raise InsufficientRole()
        return current_user

    return dependency


Service = Annotated[AuthService, Depends(get_auth_service)]
AuthedUser = Annotated[CurrentUser, Depends(get_current_user)]


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    service: Service,
    current_user: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> UserPublic:
    """
    Create an account. The password must satisfy the password policy.
    Only an authenticated ADMIN may assign a role above the default one.
    """
    if body.role is not None and ROLE_RANK[body.role] > ROLE_RANK[DEFAULT_ROLE]:
        if current_user is None or current_user.role != Role.ADMIN:
            raise InsufficientRole()
    return service.register(body.email, body.password, body.name, body.role)


@router.post("/login", response_model=LoginResult)
def login(body: LoginRequest, service: Service) -> LoginResult:
    """
    Authenticate with email and password; returns an access/refresh token pair.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    return service.login(body.email, body.password)


@router.post("/refresh", response_model=TokenPair)
def refresh(body: RefreshRequest, service: Service) -> TokenPair:
    """Exchange a refresh token for a new pair. The presented token is consumed."""
    return service.refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    body: LogoutRequest,
    service: Service,
    current_user: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> MessageResponse:
    service.logout(body.refresh_token, current_user.id if current_user else None)
    return MessageResponse(message="Logged out")


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(current_user: AuthedUser, service: Service) -> LogoutAllResponse:
    """Revoke every refresh token of the authenticated user."""
    return LogoutAllResponse(tokens_removed=service.logout_all(current_user.id))


@router.get("/me", response_model=UserPublic)
def me(current_user: AuthedUser, service: Service) -> UserPublic:
    return service.get_user_by_id(current_user.id)


@router.get("/users/{user_id}", response_model=UserPublic)
def get_user(
    user_id: int,
    _supervisor: Annotated[CurrentUser, Depends(require_roles(Role.SUPERVISOR))],
    service: Service,
) -> UserPublic:
    """Look up any user by id (supervisors and administrators)."""
    return service.get_user_by_id(user_id)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    service: Service,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    """Same reply for known and unknown emails; delivery runs after the response."""
    delivery = service.request_password_reset(body.email)
    if delivery is not None:
        background_tasks.add_task(service.deliver_password_reset, delivery)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, service: Service) -> MessageResponse:
    """Set a new password with a reset token; signs the user out everywhere."""
    service.reset_password(body.token, body.password)
    return MessageResponse(message="Password reset successfully")

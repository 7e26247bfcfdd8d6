"""Auth routes (register, login, refresh, profile, password reset) and session dependencies."""

import logging
from dataclasses import dataclass
from typing import Annotated, Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ApiError
from app.core.rate_limit import (
    LOGIN_LIMIT,
    LOGIN_LIMIT_MESSAGE,
    PASSWORD_RESET_LIMIT,
    PASSWORD_RESET_LIMIT_MESSAGE,
    REGISTER_LIMIT,
    REGISTER_LIMIT_MESSAGE,
    limiter,
)
from app.core.security import TokenError, TokenExpiredError, TokenPair, decode_access_token
from app.models.user import ROLE_ADMIN, ROLE_USER, User
from app.schemas.auth import (
    AccountOut,
    AuthData,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterData,
    RegisterRequest,
    ResetRequestData,
    TokenPairOut,
    TokensData,
    UserData,
)
from app.schemas.common import ApiResponse
from app.services import auth as auth_service
from app.services.lockout import as_utc, is_locked, lock_minutes_remaining, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller: the live account, its role and the presented access token."""

    account: User
    role: str
    token: str


def _authenticate(
    credentials: HTTPAuthorizationCredentials | None,
    db: Session,
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise ApiError(401, "NO_TOKEN", "Access token required")
    token = credentials.credentials
    try:
        payload = decode_access_token(token)
    except TokenExpiredError as e:
        raise ApiError(401, "TOKEN_EXPIRED", "Token expired") from e
    except TokenError as e:
        raise ApiError(401, "INVALID_TOKEN", "Invalid token") from e

    account = auth_service.get_active_account(db, payload.get("sub"))
    if account is None:
        raise ApiError(401, "USER_NOT_FOUND", "User not found")
    now = utcnow()
    if is_locked(account, now):
        raise ApiError(
            423,
            "ACCOUNT_LOCKED",
            "Account is temporarily locked",
            extra={
                "lockUntil": as_utc(account.locked_until).isoformat(),
                "minutesRemaining": lock_minutes_remaining(account, now),
            },
        )
    return AuthContext(account=account, role=account.role, token=token)


def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthContext:
    """Dependency: require a valid Bearer access token for a live, unlocked account."""
    return _authenticate(credentials, db)


def get_optional_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthContext | None:
    """Dependency: like get_auth_context but anonymous (None) on any failure."""
    try:
        return _authenticate(credentials, db)
    except ApiError:
        return None


def require_roles(*roles: str) -> Callable[..., AuthContext]:
    """Build a dependency that admits only callers holding one of the given roles."""

    def dependency(ctx: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
        if ctx.role not in roles:
            raise ApiError(
                403,
                "INSUFFICIENT_PERMISSIONS",
                "Insufficient permissions",
                extra={"required": list(roles), "current": ctx.role},
            )
        return ctx

    return dependency


require_admin = require_roles(ROLE_ADMIN)
require_user = require_roles(ROLE_USER, ROLE_ADMIN)


def _tokens_out(pair: TokenPair) -> TokenPairOut:
    return TokenPairOut(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )


@router.post(
    "/register",
    response_model=ApiResponse[RegisterData],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(REGISTER_LIMIT, error_message=REGISTER_LIMIT_MESSAGE)
def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[RegisterData]:
    """Create an account and return it with an access/refresh token pair."""
    user, pair, verification_required = auth_service.register_account(db, body)
    message = "User registered successfully"
    if verification_required:
        message += ". Please check your email to verify your account."
    return ApiResponse[RegisterData](
        message=message,
        data=RegisterData(
            user=AccountOut.model_validate(user),
            tokens=_tokens_out(pair),
            email_verification_required=verification_required,
        ),
    )


@router.post("/login", response_model=ApiResponse[AuthData])
@limiter.limit(LOGIN_LIMIT, error_message=LOGIN_LIMIT_MESSAGE)
def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[AuthData]:
    """
    Authenticate with email and password.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    user, pair = auth_service.login(db, body.email, body.password)
    return ApiResponse[AuthData](
        message="Login successful",
        data=AuthData(user=AccountOut.model_validate(user), tokens=_tokens_out(pair)),
    )


@router.post("/refresh", response_model=ApiResponse[TokensData])
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[TokensData]:
    """Exchange a refresh token for a new token pair."""
    pair = auth_service.refresh_tokens(db, body.refresh_token)
    return ApiResponse[TokensData](
        message="Token refreshed successfully",
        data=TokensData(tokens=_tokens_out(pair)),
    )


@router.get("/profile", response_model=ApiResponse[UserData])
def get_profile(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> ApiResponse[UserData]:
    return ApiResponse[UserData](data=UserData(user=AccountOut.model_validate(ctx.account)))


@router.put("/profile", response_model=ApiResponse[UserData])
def update_profile(
    body: ProfileUpdateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[UserData]:
    user = auth_service.update_profile(db, ctx.account, body)
    return ApiResponse[UserData](
        message="Profile updated successfully",
        data=UserData(user=AccountOut.model_validate(user)),
    )


@router.post("/password/reset-request", response_model=ApiResponse[ResetRequestData])
@limiter.limit(PASSWORD_RESET_LIMIT, error_message=PASSWORD_RESET_LIMIT_MESSAGE)
def request_password_reset(
    request: Request,
    body: PasswordResetRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[ResetRequestData]:
    """
    Start a password reset. The response is the same whether or not the e-mail
    is registered; the raw token is echoed back only in dev.
    """
    raw_token = auth_service.request_password_reset(db, body.email)
    data = None
    if raw_token is not None and settings.APP_ENV == "dev":
        data = ResetRequestData(reset_token=raw_token)
    return ApiResponse[ResetRequestData](
        message="If an account with that email exists, a password reset link has been sent",
        data=data,
    )


@router.post("/password/reset", response_model=ApiResponse[None])
def reset_password(
    body: PasswordResetConfirm,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[None]:
    auth_service.reset_password(db, body.token, body.password)
    return ApiResponse[None](message="Password reset successfully")


@router.get("/verify-email/{token}", response_model=ApiResponse[None])
def verify_email(
    token: str,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[None]:
    changed = auth_service.verify_email(db, token)
    message = "Email verified successfully" if changed else "Email already verified"
    return ApiResponse[None](message=message)


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    ctx: Annotated[AuthContext | None, Depends(get_optional_auth_context)],
) -> ApiResponse[None]:
    """Tokens are stateless; the client discards them. Always succeeds."""
    if ctx is not None:
        logger.info("User logged out", extra={"user_id": str(ctx.account.id)})
    return ApiResponse[None](message="Logged out successfully")

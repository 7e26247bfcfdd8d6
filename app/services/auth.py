"""Account registration, login with lockout, token refresh, password reset and profile edits."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ApiError
from app.core.security import (
    TokenError,
    TokenExpiredError,
    TokenPair,
    create_email_verification_token,
    decode_email_verification_token,
    decode_refresh_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    issue_token_pair,
    verify_password,
)
from app.models.user import ROLE_USER, User
from app.schemas.auth import ProfileUpdateRequest, RegisterRequest
from app.services.lockout import (
    as_utc,
    is_locked,
    lock_minutes_remaining,
    register_failed_login,
    register_successful_login,
    utcnow,
)

logger = logging.getLogger(__name__)


def _invalid_credentials(attempts_remaining: int | None = None) -> ApiError:
    extra = None if attempts_remaining is None else {"attemptsRemaining": attempts_remaining}
    return ApiError(401, "INVALID_CREDENTIALS", "Invalid email or password", extra=extra)


def _account_locked(user: User, now: datetime) -> ApiError:
    minutes = lock_minutes_remaining(user, now)
    return ApiError(
        423,
        "ACCOUNT_LOCKED",
        f"Account is locked. Try again in {minutes} minutes.",
        extra={"lockUntil": as_utc(user.locked_until).isoformat(), "minutesRemaining": minutes},
    )


def find_by_email(db: Session, email: str) -> User | None:
    """Case-insensitive lookup of a live (not soft-deleted) account."""
    return (
        db.query(User)
        .filter(User.email == email.strip().lower(), User.deleted_at.is_(None))
        .first()
    )


def get_active_account(db: Session, account_id: uuid.UUID | str) -> User | None:
    """Load a live account by id; returns None for unknown, malformed or soft-deleted ids."""
    try:
        key = account_id if isinstance(account_id, uuid.UUID) else uuid.UUID(str(account_id))
    except (TypeError, ValueError):
        return None
    user = db.get(User, key)
    if user is None or user.deleted_at is not None:
        return None
    return user


def register_account(db: Session, data: RegisterRequest) -> tuple[User, TokenPair, bool]:
    """
    Create an account with role 'user' and issue a token pair.

    Returns (account, tokens, email_verification_required).
    Raises ApiError USER_EXISTS (409) when the e-mail is already registered.
    """
    email = data.email.strip().lower()
    if find_by_email(db, email) is not None:
        raise ApiError(409, "USER_EXISTS", "User with this email already exists")

    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=email,
        password_hash=hash_password(data.password),
        role=ROLE_USER,
        is_email_verified=False,
        failed_login_attempts=0,
        profile={},
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same address.
        db.rollback()
        raise ApiError(409, "USER_EXISTS", "User with this email already exists") from e

    verification_required = settings.EMAIL_VERIFICATION_ENABLED
    if verification_required:
        user.email_verification_token = create_email_verification_token(user.id)
        logger.info("Email verification token generated", extra={"user_id": str(user.id)})

    db.commit()
    db.refresh(user)
    logger.info("User registered", extra={"user_id": str(user.id)})
    return user, issue_token_pair(user), verification_required


def login(db: Session, email: str, password: str, now: datetime | None = None) -> tuple[User, TokenPair]:
    """
    Verify credentials under the lockout guard and issue a token pair.

    Unknown e-mail and wrong password both fail with INVALID_CREDENTIALS so the
    response does not reveal whether the account exists.
    """
    now = now or utcnow()
    user = find_by_email(db, email)
    if user is None:
        raise _invalid_credentials()

    if is_locked(user, now):
        raise _account_locked(user, now)

    if not verify_password(password, user.password_hash):
        remaining = register_failed_login(user, now)
        db.commit()
        logger.warning(
            "Failed login attempt",
            extra={"user_id": str(user.id), "attempts_remaining": remaining},
        )
        raise _invalid_credentials(remaining)

    register_successful_login(user, now)
    db.commit()
    db.refresh(user)
    logger.info("User logged in", extra={"user_id": str(user.id)})
    return user, issue_token_pair(user)


def refresh_tokens(db: Session, refresh_token: str | None) -> TokenPair:
    """
    Exchange a refresh token for a new pair.

    The presented refresh token is not revoked and stays valid until its own expiry.
    """
    if not refresh_token:
        raise ApiError(401, "REFRESH_TOKEN_REQUIRED", "Refresh token is required")
    try:
        payload = decode_refresh_token(refresh_token)
    except TokenExpiredError as e:
        raise ApiError(401, "REFRESH_TOKEN_EXPIRED", "Refresh token expired") from e
    except TokenError as e:
        raise ApiError(401, "INVALID_REFRESH_TOKEN", "Invalid refresh token") from e

    user = get_active_account(db, payload.get("sub"))
    if user is None:
        raise ApiError(401, "USER_NOT_FOUND", "User not found")
    logger.info("Token refreshed", extra={"user_id": str(user.id)})
    return issue_token_pair(user)


def request_password_reset(db: Session, email: str, now: datetime | None = None) -> str | None:
    """
    Store a hashed reset token for the account, if it exists.

    Returns the raw token (for delivery) or None; callers must respond identically
    in both cases.
    """
    user = find_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None
    now = now or utcnow()
    raw, digest = generate_reset_token()
    user.password_reset_token = digest
    user.password_reset_expires = now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    db.commit()
    logger.info("Password reset requested", extra={"user_id": str(user.id)})
    return raw


def reset_password(db: Session, token: str, new_password: str, now: datetime | None = None) -> User:
    """Set a new password from a valid, unexpired reset token; the token is single-use."""
    now = now or utcnow()
    user = (
        db.query(User)
        .filter(User.password_reset_token == hash_reset_token(token), User.deleted_at.is_(None))
        .first()
    )
    expires = as_utc(user.password_reset_expires) if user is not None else None
    if user is None or expires is None or expires <= now:
        raise ApiError(400, "INVALID_RESET_TOKEN", "Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.commit()
    logger.info("Password reset completed", extra={"user_id": str(user.id)})
    return user


def verify_email(db: Session, token: str) -> bool:
    """Mark the account's e-mail verified. Returns False if it already was."""
    try:
        payload = decode_email_verification_token(token)
    except TokenError as e:
        raise ApiError(
            400, "INVALID_VERIFICATION_TOKEN", "Invalid or expired verification token"
        ) from e
    user = get_active_account(db, payload.get("sub"))
    if user is None:
        raise ApiError(404, "USER_NOT_FOUND", "User not found")
    if user.is_email_verified:
        return False
    user.is_email_verified = True
    user.email_verification_token = None
    db.commit()
    logger.info("Email verified", extra={"user_id": str(user.id)})
    return True


def update_profile(db: Session, user: User, data: ProfileUpdateRequest) -> User:
    """Apply name changes and shallow-merge the free-form profile object."""
    if data.first_name is not None:
        user.first_name = data.first_name
    if data.last_name is not None:
        user.last_name = data.last_name
    if data.profile is not None:
        merged: dict[str, Any] = dict(user.profile or {})
        merged.update(data.profile)
        user.profile = merged
    db.commit()
    db.refresh(user)
    logger.info(
        "Profile updated",
        extra={"user_id": str(user.id), "fields": sorted(data.model_dump(exclude_none=True))},
    )
    return user

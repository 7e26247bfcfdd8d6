"""Request/response schemas for auth endpoints."""

import re
import uuid
from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, ValidationInfo, field_validator

from app.core.security import check_password_strength
from app.schemas.common import CamelModel

NAME_MIN_LEN = 2
NAME_MAX_LEN = 50
_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")


def _validate_name(value: str) -> str:
    """Names are 2-50 characters of letters and spaces (after trimming)."""
    value = (value or "").strip()
    if not (NAME_MIN_LEN <= len(value) <= NAME_MAX_LEN):
        raise ValueError(f"Must be between {NAME_MIN_LEN} and {NAME_MAX_LEN} characters")
    if not _NAME_RE.match(value):
        raise ValueError("Can only contain letters and spaces")
    return value


def _validate_confirmation(value: str, info: ValidationInfo) -> str:
    password = info.data.get("password")
    if password is not None and value != password:
        raise ValueError("Passwords do not match")
    return value


class RegisterRequest(CamelModel):
    """New account: names, email, password and its confirmation."""

    first_name: str = Field(..., description="Letters and spaces, 2-50 chars")
    last_name: str = Field(..., description="Letters and spaces, 2-50 chars")
    email: EmailStr
    password: str = Field(..., description="At least 8 chars with lower, upper, digit and symbol")
    confirm_password: str

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _validate_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return _validate_confirmation(v, info)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128, description="Password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class PasswordResetRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetConfirm(CamelModel):
    """Reset token from the reset request plus the new password."""

    token: str = Field(..., min_length=1, max_length=256)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return _validate_confirmation(v, info)


class ProfileUpdateRequest(CamelModel):
    """Partial profile edit; profile is shallow-merged into the stored object."""

    first_name: str | None = None
    last_name: str | None = None
    profile: dict[str, Any] | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _validate_name(v)


class AccountOut(CamelModel):
    """Account without password, reset or verification secrets."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: str
    is_email_verified: bool
    last_login: datetime | None = None
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    profile: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenPairOut(CamelModel):
    """Access + refresh tokens; expires_in is the access token lifetime in seconds."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthData(CamelModel):
    user: AccountOut
    tokens: TokenPairOut


class RegisterData(AuthData):
    email_verification_required: bool = False


class TokensData(CamelModel):
    tokens: TokenPairOut


class UserData(CamelModel):
    user: AccountOut


class ResetRequestData(CamelModel):
    """Only populated in dev, where no reset e-mail is sent."""

    reset_token: str | None = None

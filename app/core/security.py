"""Password hashing, password rules and JWT issuance/verification for authentication."""

import hashlib
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.config import settings

if TYPE_CHECKING:
    from app.models.user import User

# Min/max lengths for password validation. bcrypt only looks at the first 72 bytes,
# so longer encodings are rejected instead of silently truncated.
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128
PASSWORD_MAX_BYTES = 72
PASSWORD_SYMBOLS = "@$!%*?&"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPE_EMAIL_VERIFICATION = "email_verification"

_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(f"[{re.escape(PASSWORD_SYMBOLS)}]")


class TokenError(Exception):
    """Base class for token verification failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenExpiredError(TokenError):
    """Token signature is valid but the token is past its expiry."""


class TokenInvalidError(TokenError):
    """Token is malformed, has a bad signature, or wrong issuer/audience/type."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")
    if len(pw_bytes) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must not exceed {PASSWORD_MAX_BYTES} bytes")
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")
    # Nothing longer can have been stored.
    if len(pw_bytes) > PASSWORD_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def check_password_strength(password: str) -> str:
    """Raise ValueError unless password satisfies the length and character-class rules."""
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise ValueError(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters long"
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must not exceed {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    if not (
        _LOWER_RE.search(password)
        and _UPPER_RE.search(password)
        and _DIGIT_RE.search(password)
        and _SYMBOL_RE.search(password)
    ):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, "
            f"one digit, and one special character ({PASSWORD_SYMBOLS})"
        )
    return password


def _encode(payload: dict[str, Any], secret: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    claims = {
        **payload,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, secret: str, expected_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError("Token expired") from e
    except jwt.PyJWTError as e:
        raise TokenInvalidError("Invalid token") from e
    if payload.get("type") != expected_type:
        raise TokenInvalidError("Invalid token type")
    return payload


def create_access_token(user: "User", expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token carrying id, email, role and verification flag."""
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "email_verified": bool(user.is_email_verified),
        "type": TOKEN_TYPE_ACCESS,
    }
    lifetime = expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    return _encode(payload, settings.JWT_SECRET.get_secret_value(), lifetime)


def create_refresh_token(user_id: uuid.UUID | str, expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh token carrying only the account id."""
    payload = {"sub": str(user_id), "type": TOKEN_TYPE_REFRESH}
    lifetime = expires_delta or timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)
    return _encode(payload, settings.JWT_REFRESH_SECRET.get_secret_value(), lifetime)


def issue_token_pair(user: "User") -> TokenPair:
    """Mint an access/refresh pair for the given account."""
    return TokenPair(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user.id),
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token; return its claims.
    Raises TokenExpiredError when expired, TokenInvalidError for anything else.
    """
    return _decode(token, settings.JWT_SECRET.get_secret_value(), TOKEN_TYPE_ACCESS)


def decode_refresh_token(token: str) -> dict[str, Any]:
    """Decode and validate a refresh token (signed with the refresh secret)."""
    return _decode(token, settings.JWT_REFRESH_SECRET.get_secret_value(), TOKEN_TYPE_REFRESH)


def create_email_verification_token(user_id: uuid.UUID | str) -> str:
    payload = {"sub": str(user_id), "type": TOKEN_TYPE_EMAIL_VERIFICATION}
    lifetime = timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS)
    return _encode(payload, settings.JWT_SECRET.get_secret_value(), lifetime)


def decode_email_verification_token(token: str) -> dict[str, Any]:
    return _decode(
        token, settings.JWT_SECRET.get_secret_value(), TOKEN_TYPE_EMAIL_VERIFICATION
    )


def hash_reset_token(raw_token: str) -> str:
    """SHA-256 hex digest of a password reset token; only the digest is stored."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_reset_token() -> tuple[str, str]:
    """Return (raw_token, stored_hash) for a new password reset."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)

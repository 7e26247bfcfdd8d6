"""Account lockout: count consecutive failed logins and lock the account for a fixed period."""

import logging
import math
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from app.core.config import settings

if TYPE_CHECKING:
    from app.models.user import User

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from storage (all timestamps are written in UTC)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def is_locked(user: "User", now: datetime | None = None) -> bool:
    """True while locked_until is set and still in the future; an expired lock is ignored."""
    locked_until = as_utc(user.locked_until)
    return locked_until is not None and locked_until > (now or utcnow())


def lock_minutes_remaining(user: "User", now: datetime | None = None) -> int:
    now = now or utcnow()
    if not is_locked(user, now):
        return 0
    remaining = (as_utc(user.locked_until) - now).total_seconds()
    return max(1, math.ceil(remaining / 60))


def register_failed_login(user: "User", now: datetime | None = None) -> int:
    """
    Count one failed password check on the account (caller commits).

    When the count reaches LOGIN_MAX_ATTEMPTS the account is locked for
    LOGIN_LOCK_MINUTES and the counter goes back to 0. Returns the attempts
    remaining before a lock, computed from the incremented count.
    """
    now = now or utcnow()
    max_attempts = settings.LOGIN_MAX_ATTEMPTS
    attempts = (user.failed_login_attempts or 0) + 1
    if attempts >= max_attempts:
        user.locked_until = now + timedelta(minutes=settings.LOGIN_LOCK_MINUTES)
        user.failed_login_attempts = 0
        logger.warning(
            "Account locked after repeated failed logins",
            extra={"user_id": str(user.id), "locked_until": user.locked_until.isoformat()},
        )
    else:
        user.failed_login_attempts = attempts
    return max(0, max_attempts - attempts)


def register_successful_login(user: "User", now: datetime | None = None) -> None:
    """Reset the counter, clear any lock and stamp last_login (caller commits)."""
    now = now or utcnow()
    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = now

"""IP-based rate limiting (slowapi) with a moving window per client address."""

import logging

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.errors import ApiError

logger = logging.getLogger(__name__)

# Shared limiter instance, keyed by client IP. Auth routes carry stricter per-route
# limits through @limiter.limit; the general limit is enforced by enforce_general_limit.
limiter = Limiter(
    key_func=get_remote_address,
    strategy="moving-window",
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)

GENERAL_LIMIT = parse(settings.RATE_LIMIT_DEFAULT)
GENERAL_LIMIT_SCOPE = "general"
LOGIN_LIMIT = settings.RATE_LIMIT_LOGIN
REGISTER_LIMIT = settings.RATE_LIMIT_REGISTER
PASSWORD_RESET_LIMIT = settings.RATE_LIMIT_PASSWORD_RESET

GENERAL_LIMIT_MESSAGE = "Too many requests from this IP, please try again later"
LOGIN_LIMIT_MESSAGE = "Too many login attempts, please try again later"
REGISTER_LIMIT_MESSAGE = "Too many registration attempts, please try again later"
PASSWORD_RESET_LIMIT_MESSAGE = "Too many password reset requests, please try again later"


def enforce_general_limit(request: Request) -> None:
    """App-wide dependency: one shared window per client IP across every route."""
    if not limiter.enabled:
        return
    client = get_remote_address(request)
    if not limiter.limiter.hit(GENERAL_LIMIT, client, GENERAL_LIMIT_SCOPE):
        logger.warning(
            "General rate limit exceeded",
            extra={"client": client, "path": request.url.path, "limit": str(GENERAL_LIMIT)},
        )
        raise ApiError(429, "RATE_LIMIT_EXCEEDED", GENERAL_LIMIT_MESSAGE)

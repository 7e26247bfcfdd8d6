"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, health, strategies
from app.schemas.common import ErrorResponse

router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Validation failed"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    }
)
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(strategies.router, prefix="/strategies", tags=["strategies"])

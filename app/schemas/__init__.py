"""Pydantic request/response schemas."""

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
from app.schemas.common import ApiResponse, ErrorResponse, Pagination
from app.schemas.health import HealthResponse
from app.schemas.strategy import (
    StatusUpdateRequest,
    StrategyCreate,
    StrategyData,
    StrategyListData,
    StrategyOut,
    StrategyUpdate,
    TopStrategiesData,
)

__all__ = [
    "AccountOut",
    "ApiResponse",
    "AuthData",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "Pagination",
    "PasswordResetConfirm",
    "PasswordResetRequest",
    "ProfileUpdateRequest",
    "RefreshRequest",
    "RegisterData",
    "RegisterRequest",
    "ResetRequestData",
    "StatusUpdateRequest",
    "StrategyCreate",
    "StrategyData",
    "StrategyListData",
    "StrategyOut",
    "StrategyUpdate",
    "TokenPairOut",
    "TokensData",
    "UserData",
]

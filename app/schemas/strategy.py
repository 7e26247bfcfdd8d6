"""Pydantic schemas for trading strategies: create/update payloads, status changes, and responses."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator

from app.schemas.common import CamelModel, Pagination

RiskLevel = Literal["low", "medium", "high"]
Category = Literal[
    "scalping",
    "day_trading",
    "swing_trading",
    "position_trading",
    "arbitrage",
    "market_making",
    "mean_reversion",
    "momentum",
    "breakout",
    "grid_trading",
]
Timeframe = Literal["1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w"]
StrategyStatus = Literal["draft", "pending", "approved", "rejected"]
SortField = Literal["name", "createdAt", "performanceScore", "riskLevel"]
SortOrder = Literal["asc", "desc"]

VALID_ASSETS: frozenset[str] = frozenset(
    {
        "BTC", "ETH", "ADA", "DOT", "LINK", "UNI", "AAVE", "SOL", "MATIC",
        "AVAX", "ATOM", "LTC", "BCH", "XRP", "BNB", "USDT", "USDC",
    }
)

REQUIRED_METRICS = ("winRate", "profitLoss", "sharpeRatio", "maxDrawdown")

REJECTION_REASON_MIN_LEN = 10
REJECTION_REASON_MAX_LEN = 500


def _validate_assets(assets: list[str]) -> list[str]:
    """Upper-case each asset and reject anything outside the supported list."""
    if not assets:
        raise ValueError("At least one target asset is required")
    normalized = []
    for asset in assets:
        symbol = asset.strip().upper()
        if symbol not in VALID_ASSETS:
            raise ValueError(
                f"Invalid asset: {asset}. Must be one of: {', '.join(sorted(VALID_ASSETS))}"
            )
        normalized.append(symbol)
    return normalized


def _validate_metrics(metrics: dict[str, Any] | None) -> dict[str, Any] | None:
    if metrics is None:
        return None
    missing = [field for field in REQUIRED_METRICS if field not in metrics]
    if missing:
        raise ValueError(f"Performance metrics must include {', '.join(missing)}")
    return metrics


class StrategyCreate(CamelModel):
    """Payload for creating a strategy (always starts as draft)."""

    name: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    risk_level: RiskLevel
    category: Category
    target_assets: list[str] = Field(..., min_length=1)
    timeframe: Timeframe
    profit_target: float = Field(..., ge=0.01, le=1000, description="Percent")
    stop_loss: float = Field(..., ge=0.01, le=100, description="Percent")
    performance_metrics: dict[str, Any] | None = None
    tags: list[str] = Field(default_factory=list)
    is_public: bool = False
    backtest_data: dict[str, Any] = Field(default_factory=dict)
    configuration: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("target_assets")
    @classmethod
    def validate_assets(cls, v: list[str]) -> list[str]:
        return _validate_assets(v)

    @field_validator("performance_metrics")
    @classmethod
    def validate_metrics(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _validate_metrics(v)


class StrategyUpdate(CamelModel):
    """Partial update; status is not editable here (use submit / status endpoints)."""

    name: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=10, max_length=5000)
    risk_level: RiskLevel | None = None
    category: Category | None = None
    target_assets: list[str] | None = Field(default=None, min_length=1)
    timeframe: Timeframe | None = None
    profit_target: float | None = Field(default=None, ge=0.01, le=1000)
    stop_loss: float | None = Field(default=None, ge=0.01, le=100)
    performance_metrics: dict[str, Any] | None = None
    tags: list[str] | None = None
    is_public: bool | None = None
    backtest_data: dict[str, Any] | None = None
    configuration: dict[str, Any] | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("target_assets")
    @classmethod
    def validate_assets(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _validate_assets(v)

    @field_validator("performance_metrics")
    @classmethod
    def validate_metrics(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _validate_metrics(v)


class StatusUpdateRequest(CamelModel):
    """Admin decision on a pending strategy; rejecting requires a reason."""

    status: Literal["approved", "rejected"]
    rejection_reason: str | None = Field(default=None, validate_default=True)

    @field_validator("rejection_reason")
    @classmethod
    def validate_rejection_reason(cls, v: str | None, info: ValidationInfo) -> str | None:
        if info.data.get("status") != "rejected":
            return None
        reason = (v or "").strip()
        if not reason:
            raise ValueError("Rejection reason is required when rejecting a strategy")
        if not (REJECTION_REASON_MIN_LEN <= len(reason) <= REJECTION_REASON_MAX_LEN):
            raise ValueError(
                f"Rejection reason must be between {REJECTION_REASON_MIN_LEN} and "
                f"{REJECTION_REASON_MAX_LEN} characters"
            )
        return reason


class CreatorOut(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str


class StrategyOut(CamelModel):
    """Strategy as returned by the API."""

    id: uuid.UUID
    name: str
    description: str
    risk_level: str
    category: str
    target_assets: list[str]
    timeframe: str
    profit_target: float
    stop_loss: float
    performance_metrics: dict[str, Any]
    performance_score: int
    tags: list[str]
    is_public: bool
    status: StrategyStatus
    rejection_reason: str | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    created_by: uuid.UUID
    creator: CreatorOut | None = None
    backtest_data: dict[str, Any] = Field(default_factory=dict)
    configuration: dict[str, Any] = Field(default_factory=dict)
    view_count: int = 0
    like_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class StrategyData(CamelModel):
    strategy: StrategyOut


class StrategyListData(CamelModel):
    strategies: list[StrategyOut]
    pagination: Pagination


class TopStrategiesData(CamelModel):
    strategies: list[StrategyOut]

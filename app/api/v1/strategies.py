"""Trading strategy routes: public browsing, owner CRUD, submission and admin review."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.auth import (
    AuthContext,
    get_optional_auth_context,
    require_admin,
    require_user,
)
from app.core.cache import StrategyCache, get_cache
from app.core.database import get_db
from app.schemas.common import ApiResponse
from app.schemas.strategy import (
    Category,
    RiskLevel,
    SortField,
    SortOrder,
    StatusUpdateRequest,
    StrategyCreate,
    StrategyData,
    StrategyListData,
    StrategyOut,
    StrategyStatus,
    StrategyUpdate,
    TopStrategiesData,
)
from app.services import strategies as strategy_service

router = APIRouter()

Page = Annotated[int, Query(ge=1)]
Limit = Annotated[int, Query(ge=1, le=100)]


def _strategy_response(strategy, message: str | None = None) -> ApiResponse[StrategyData]:
    return ApiResponse[StrategyData](
        message=message,
        data=StrategyData(strategy=StrategyOut.model_validate(strategy)),
    )


@router.get("", response_model=ApiResponse[StrategyListData])
def list_strategies(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
    page: Page = 1,
    limit: Limit = 20,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
    risk_level: Annotated[RiskLevel | None, Query(alias="riskLevel")] = None,
    category: Category | None = None,
    min_performance_score: Annotated[int, Query(alias="minPerformanceScore", ge=0, le=100)] = 0,
    q: Annotated[str | None, Query(min_length=1, max_length=100)] = None,
) -> ApiResponse[StrategyListData]:
    """Browse approved public strategies with filters, search, sorting and pagination."""
    filters = strategy_service.PublicFilters(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        risk_level=risk_level,
        category=category,
        min_performance_score=min_performance_score,
        q=q,
    )
    data = strategy_service.list_public(db, cache, filters)
    return ApiResponse[StrategyListData](data=StrategyListData.model_validate(data))


@router.get("/top", response_model=ApiResponse[TopStrategiesData])
def top_strategies(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse[TopStrategiesData]:
    """Highest-scoring public strategies."""
    data = strategy_service.list_top(db, cache, limit)
    return ApiResponse[TopStrategiesData](data=TopStrategiesData.model_validate(data))


@router.get("/my", response_model=ApiResponse[StrategyListData])
def my_strategies(
    ctx: Annotated[AuthContext, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
    status_filter: Annotated[StrategyStatus | None, Query(alias="status")] = None,
    page: Page = 1,
    limit: Limit = 20,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
) -> ApiResponse[StrategyListData]:
    """The caller's strategies in every status, deleted ones included."""
    data = strategy_service.list_for_owner(
        db,
        cache,
        ctx.account,
        status=status_filter,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse[StrategyListData](data=StrategyListData.model_validate(data))


@router.get("/pending", response_model=ApiResponse[StrategyListData])
def pending_strategies(
    _admin: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    page: Page = 1,
    limit: Limit = 20,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
) -> ApiResponse[StrategyListData]:
    """Strategies awaiting review (admin only)."""
    data = strategy_service.list_pending(db, page, limit, sort_by, sort_order)
    return ApiResponse[StrategyListData](data=data)


@router.post(
    "",
    response_model=ApiResponse[StrategyData],
    status_code=status.HTTP_201_CREATED,
)
def create_strategy(
    body: StrategyCreate,
    ctx: Annotated[AuthContext, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
) -> ApiResponse[StrategyData]:
    strategy = strategy_service.create_strategy(db, cache, ctx.account, body)
    return _strategy_response(strategy, "Strategy created successfully")


@router.get("/{strategy_id}", response_model=ApiResponse[StrategyData])
def get_strategy(
    strategy_id: uuid.UUID,
    ctx: Annotated[AuthContext | None, Depends(get_optional_auth_context)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse[StrategyData]:
    """Public approved strategies are visible to anyone; others only to the owner or admins."""
    viewer = ctx.account if ctx is not None else None
    strategy = strategy_service.get_visible(db, strategy_id, viewer)
    return _strategy_response(strategy)


@router.put("/{strategy_id}", response_model=ApiResponse[StrategyData])
def update_strategy(
    strategy_id: uuid.UUID,
    body: StrategyUpdate,
    ctx: Annotated[AuthContext, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
) -> ApiResponse[StrategyData]:
    strategy = strategy_service.update_strategy(db, cache, strategy_id, ctx.account, body)
    return _strategy_response(strategy, "Strategy updated successfully")


@router.delete("/{strategy_id}", response_model=ApiResponse[None])
def delete_strategy(
    strategy_id: uuid.UUID,
    ctx: Annotated[AuthContext, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
) -> ApiResponse[None]:
    strategy_service.delete_strategy(db, cache, strategy_id, ctx.account)
    return ApiResponse[None](message="Strategy deleted successfully")


@router.post("/{strategy_id}/submit", response_model=ApiResponse[StrategyData])
def submit_strategy(
    strategy_id: uuid.UUID,
    ctx: Annotated[AuthContext, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
) -> ApiResponse[StrategyData]:
    """Send a draft to the admin review queue."""
    strategy = strategy_service.submit_for_approval(db, cache, strategy_id, ctx.account)
    return _strategy_response(strategy, "Strategy submitted for approval")


@router.put("/{strategy_id}/status", response_model=ApiResponse[StrategyData])
def update_strategy_status(
    strategy_id: uuid.UUID,
    body: StatusUpdateRequest,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[StrategyCache, Depends(get_cache)],
) -> ApiResponse[StrategyData]:
    """Approve or reject a pending strategy (admin only)."""
    strategy = strategy_service.set_status(
        db, cache, strategy_id, ctx.account, body.status, body.rejection_reason
    )
    return _strategy_response(strategy, f"Strategy {body.status} successfully")

"""Trading strategy CRUD, visibility rules, approval workflow and cached list queries."""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import asc, cast, desc, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Query, Session

from app.core.cache import StrategyCache
from app.core.errors import ApiError
from app.core.logging_utils import log_audit_event
from app.models.strategy import (
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_PENDING,
    STATUS_REJECTED,
    TradingStrategy,
)
from app.models.user import ROLE_ADMIN, User
from app.schemas.common import Pagination
from app.schemas.strategy import (
    REQUIRED_METRICS,
    StrategyCreate,
    StrategyListData,
    StrategyOut,
    StrategyUpdate,
    TopStrategiesData,
)
from app.services.lockout import utcnow

logger = logging.getLogger(__name__)

TOP_MIN_SCORE = 70

# (from, to) pairs the workflow accepts; who may trigger each is checked by the caller.
ALLOWED_TRANSITIONS: frozenset[tuple[str, str]] = frozenset(
    {
        (STATUS_DRAFT, STATUS_PENDING),  # owner submits
        (STATUS_PENDING, STATUS_APPROVED),  # admin approves
        (STATUS_PENDING, STATUS_REJECTED),  # admin rejects
        (STATUS_APPROVED, STATUS_DRAFT),  # owner edits a reviewed item
        (STATUS_REJECTED, STATUS_DRAFT),
    }
)

SORT_COLUMNS = {
    "name": TradingStrategy.name,
    "createdAt": TradingStrategy.created_at,
    "performanceScore": TradingStrategy.performance_score,
    "riskLevel": TradingStrategy.risk_level,
}


@dataclass(frozen=True)
class PublicFilters:
    """Query options for the public strategy list."""

    page: int = 1
    limit: int = 20
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    risk_level: str | None = None
    category: str | None = None
    min_performance_score: int = 0
    q: str | None = None

    def cache_params(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "riskLevel": self.risk_level,
            "category": self.category,
            "minPerformanceScore": self.min_performance_score,
            "q": self.q,
        }


def default_metrics() -> dict[str, Any]:
    return {
        "winRate": 0,
        "profitLoss": 0,
        "sharpeRatio": 0,
        "maxDrawdown": 0,
        "totalTrades": 0,
        "avgTradeDuration": 0,
        "lastUpdated": utcnow().isoformat(),
    }


def compute_performance_score(metrics: dict[str, Any] | None) -> int:
    """
    Weighted 0-100 score from winRate, profitLoss, sharpeRatio and maxDrawdown.

    Any of the four missing or zero yields 0.
    """
    if not metrics:
        return 0
    try:
        win_rate, profit_loss, sharpe, drawdown = (float(metrics.get(k) or 0) for k in REQUIRED_METRICS)
    except (TypeError, ValueError):
        return 0
    if not (win_rate and profit_loss and sharpe and drawdown):
        return 0
    score = (
        win_rate * 0.3
        + min(profit_loss, 100) * 0.3
        + min(sharpe, 5) * 20 * 0.2
        + max(0.0, 100 - abs(drawdown)) * 0.2
    )
    return int(math.floor(max(0.0, min(100.0, score)) + 0.5))


def check_transition(current: str, target: str) -> None:
    """Raise INVALID_STATUS_TRANSITION (400) unless current -> target is a workflow edge."""
    if (current, target) not in ALLOWED_TRANSITIONS:
        raise ApiError(
            400,
            "INVALID_STATUS_TRANSITION",
            f"Cannot move a strategy from {current} to {target}",
            extra={"currentStatus": current, "requestedStatus": target},
        )


def is_admin(user: User | None) -> bool:
    return user is not None and user.role == ROLE_ADMIN


def is_owner(strategy: TradingStrategy, user: User | None) -> bool:
    return user is not None and strategy.created_by == user.id


def can_view(strategy: TradingStrategy, user: User | None) -> bool:
    if strategy.is_public and strategy.status == STATUS_APPROVED:
        return True
    return is_owner(strategy, user) or is_admin(user)


def _active(db: Session) -> Query:
    """Every non-owner query goes through here so soft-deleted rows never leak."""
    return db.query(TradingStrategy).filter(TradingStrategy.deleted_at.is_(None))


def _public(db: Session) -> Query:
    return _active(db).filter(
        TradingStrategy.is_public.is_(True),
        TradingStrategy.status == STATUS_APPROVED,
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _has_tag(db: Session, tag: str):
    """Exact, case-sensitive match against one element of the tags array."""
    if db.get_bind().dialect.name == "postgresql":
        return cast(TradingStrategy.tags, JSONB).contains([tag])
    # SQLite (tests): unnest the JSON array with json_each.
    elements = func.json_each(TradingStrategy.tags).table_valued("value")
    return select(elements.c.value).where(elements.c.value == tag).correlate(TradingStrategy).exists()


def _ordered(query: Query, sort_by: str, sort_order: str) -> Query:
    column = SORT_COLUMNS.get(sort_by, TradingStrategy.created_at)
    direction = asc if sort_order == "asc" else desc
    return query.order_by(direction(column), direction(TradingStrategy.id))


def _paginate(query: Query, page: int, limit: int) -> StrategyListData:
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return StrategyListData(
        strategies=[StrategyOut.model_validate(row) for row in rows],
        pagination=Pagination.build(page, limit, total),
    )


def _dump(data: Any) -> dict[str, Any]:
    return data.model_dump(mode="json", by_alias=True)


def _invalidate(cache: StrategyCache, strategy: TradingStrategy) -> None:
    cache.invalidate_public()
    cache.invalidate_user(strategy.created_by)


def get_strategy(db: Session, strategy_id: uuid.UUID) -> TradingStrategy:
    strategy = _active(db).filter(TradingStrategy.id == strategy_id).first()
    if strategy is None:
        raise ApiError(404, "STRATEGY_NOT_FOUND", "Strategy not found")
    return strategy


def _get_owned(db: Session, strategy_id: uuid.UUID, user: User, action: str) -> TradingStrategy:
    strategy = get_strategy(db, strategy_id)
    if not (is_owner(strategy, user) or is_admin(user)):
        raise ApiError(
            403,
            "STRATEGY_ACCESS_DENIED",
            f"Access denied. You can only {action} your own strategies.",
        )
    return strategy


# ---- Queries ---------------------------------------------------------------


def list_public(db: Session, cache: StrategyCache, filters: PublicFilters) -> dict[str, Any]:
    """Approved public strategies with filters, search and pagination (read-through cached)."""
    key = cache.public_key(filters.cache_params())
    cached = cache.get_json(key)
    if cached is not None:
        logger.debug("Cache hit", extra={"cache_key": key})
        return cached

    query = _public(db).filter(TradingStrategy.performance_score >= filters.min_performance_score)
    if filters.risk_level:
        query = query.filter(TradingStrategy.risk_level == filters.risk_level)
    if filters.category:
        query = query.filter(TradingStrategy.category == filters.category)
    if filters.q:
        search = filters.q.strip()
        term = _escape_like(search)
        query = query.filter(
            or_(
                TradingStrategy.name.ilike(f"%{term}%", escape="\\"),
                TradingStrategy.description.ilike(f"%{term}%", escape="\\"),
                _has_tag(db, search),
            )
        )
    query = _ordered(query, filters.sort_by, filters.sort_order)
    data = _dump(_paginate(query, filters.page, filters.limit))
    cache.set_json(key, data, cache.list_ttl)
    return data


def list_top(db: Session, cache: StrategyCache, limit: int = 10) -> dict[str, Any]:
    """Best-scoring public strategies (score >= 70), newest first on ties."""
    key = cache.top_key(limit)
    cached = cache.get_json(key)
    if cached is not None:
        return cached
    rows = (
        _public(db)
        .filter(TradingStrategy.performance_score >= TOP_MIN_SCORE)
        .order_by(desc(TradingStrategy.performance_score), desc(TradingStrategy.created_at))
        .limit(limit)
        .all()
    )
    data = _dump(TopStrategiesData(strategies=[StrategyOut.model_validate(r) for r in rows]))
    cache.set_json(key, data, cache.top_ttl)
    return data


def list_for_owner(
    db: Session,
    cache: StrategyCache,
    user: User,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> dict[str, Any]:
    """The caller's own strategies, soft-deleted ones included (deletedAt is set on those)."""
    params = {"status": status, "page": page, "limit": limit, "sortBy": sort_by, "sortOrder": sort_order}
    key = cache.user_key(user.id, params)
    cached = cache.get_json(key)
    if cached is not None:
        return cached
    query = db.query(TradingStrategy).filter(TradingStrategy.created_by == user.id)
    if status:
        query = query.filter(TradingStrategy.status == status)
    data = _dump(_paginate(_ordered(query, sort_by, sort_order), page, limit))
    cache.set_json(key, data, cache.list_ttl)
    return data


def list_pending(
    db: Session,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> StrategyListData:
    """Admin review queue."""
    query = _active(db).filter(TradingStrategy.status == STATUS_PENDING)
    return _paginate(_ordered(query, sort_by, sort_order), page, limit)


def get_visible(db: Session, strategy_id: uuid.UUID, viewer: User | None) -> TradingStrategy:
    """
    Fetch a strategy the viewer may see: public+approved, their own, or any for admins.

    Views of public strategies by anyone but the owner bump view_count.
    """
    strategy = get_strategy(db, strategy_id)
    if not can_view(strategy, viewer):
        raise ApiError(
            403,
            "STRATEGY_ACCESS_DENIED",
            "Access denied. Strategy is not public or you are not the owner.",
        )
    if strategy.is_public and strategy.status == STATUS_APPROVED and not is_owner(strategy, viewer):
        db.query(TradingStrategy).filter(TradingStrategy.id == strategy.id).update(
            {TradingStrategy.view_count: TradingStrategy.view_count + 1},
            synchronize_session=False,
        )
        db.commit()
        db.refresh(strategy)
    return strategy


# ---- Writes ----------------------------------------------------------------


def create_strategy(db: Session, cache: StrategyCache, user: User, data: StrategyCreate) -> TradingStrategy:
    values = data.model_dump()
    metrics = values.pop("performance_metrics") or default_metrics()
    strategy = TradingStrategy(
        **values,
        performance_metrics=metrics,
        performance_score=compute_performance_score(metrics),
        status=STATUS_DRAFT,
        created_by=user.id,
    )
    db.add(strategy)
    db.commit()
    db.refresh(strategy)
    _invalidate(cache, strategy)
    logger.info(
        "Strategy created",
        extra={"strategy_id": str(strategy.id), "user_id": str(user.id)},
    )
    return strategy


def update_strategy(
    db: Session,
    cache: StrategyCache,
    strategy_id: uuid.UUID,
    user: User,
    data: StrategyUpdate,
) -> TradingStrategy:
    """
    Apply a partial edit (owner or admin).

    A reviewed (approved/rejected) strategy edited by a non-admin goes back to
    draft and loses its approval stamp.
    """
    strategy = _get_owned(db, strategy_id, user, "update")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(strategy, field, value)
    strategy.performance_score = compute_performance_score(strategy.performance_metrics)

    if strategy.status in (STATUS_APPROVED, STATUS_REJECTED) and not is_admin(user):
        check_transition(strategy.status, STATUS_DRAFT)
        strategy.status = STATUS_DRAFT
        strategy.approved_by = None
        strategy.approved_at = None

    db.commit()
    db.refresh(strategy)
    _invalidate(cache, strategy)
    logger.info(
        "Strategy updated",
        extra={"strategy_id": str(strategy.id), "user_id": str(user.id), "fields": sorted(changes)},
    )
    return strategy


def delete_strategy(db: Session, cache: StrategyCache, strategy_id: uuid.UUID, user: User) -> None:
    """Soft delete (owner or admin)."""
    strategy = _get_owned(db, strategy_id, user, "delete")
    strategy.deleted_at = utcnow()
    db.commit()
    _invalidate(cache, strategy)
    logger.info(
        "Strategy deleted",
        extra={"strategy_id": str(strategy.id), "user_id": str(user.id), "role": user.role},
    )


def submit_for_approval(
    db: Session, cache: StrategyCache, strategy_id: uuid.UUID, user: User
) -> TradingStrategy:
    """Owner moves a draft to pending review."""
    strategy = get_strategy(db, strategy_id)
    if not is_owner(strategy, user):
        raise ApiError(
            403,
            "STRATEGY_ACCESS_DENIED",
            "Access denied. You can only submit your own strategies.",
        )
    check_transition(strategy.status, STATUS_PENDING)
    strategy.status = STATUS_PENDING
    strategy.rejection_reason = None
    db.commit()
    db.refresh(strategy)
    _invalidate(cache, strategy)
    logger.info("Strategy submitted for approval", extra={"strategy_id": str(strategy.id)})
    return strategy


def set_status(
    db: Session,
    cache: StrategyCache,
    strategy_id: uuid.UUID,
    admin: User,
    status: str,
    rejection_reason: str | None = None,
    now: datetime | None = None,
) -> TradingStrategy:
    """Admin approves or rejects a pending strategy."""
    strategy = get_strategy(db, strategy_id)
    previous_status = strategy.status
    check_transition(previous_status, status)
    strategy.status = status
    if status == STATUS_APPROVED:
        strategy.approved_by = admin.id
        strategy.approved_at = now or utcnow()
        strategy.rejection_reason = None
    else:
        strategy.rejection_reason = rejection_reason
        strategy.approved_by = None
        strategy.approved_at = None
    db.commit()
    db.refresh(strategy)
    _invalidate(cache, strategy)
    logger.info(
        "Strategy status updated by admin",
        extra={
            "strategy_id": str(strategy.id),
            "admin_id": str(admin.id),
            "new_status": status,
            "rejection_reason": strategy.rejection_reason,
            "owner_id": str(strategy.created_by),
        },
    )
    log_audit_event(
        "STRATEGY_STATUS_UPDATE",
        admin.id,
        strategy_id=str(strategy.id),
        owner_id=str(strategy.created_by),
        previous_status=previous_status,
        new_status=status,
        rejection_reason=strategy.rejection_reason,
    )
    return strategy

"""Health check endpoint with database and cache connectivity checks."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.cache import StrategyCache, get_cache
from app.core.config import APP_VERSION, settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    db: Session = Depends(get_db),
    cache: StrategyCache = Depends(get_cache),
) -> HealthResponse:
    """
    Return service health status, database connectivity and cache state.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    if not cache.enabled:
        cache_status = "disabled"
    else:
        cache_status = "connected" if cache.ping() else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        version=APP_VERSION,
        database=db_status,
        cache=cache_status,
    )

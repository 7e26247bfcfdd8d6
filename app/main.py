"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import router as v1_router
from app.core.cache import close_cache
from app.core.config import APP_VERSION, settings
from app.core.errors import install_exception_handlers
from app.core.logging_utils import configure_logging
from app.core.rate_limit import enforce_general_limit, limiter

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Stratdesk API starting", extra={"environment": settings.APP_ENV})
    yield
    close_cache()
    logger.info("Stratdesk API stopped")


app = FastAPI(
    title="Stratdesk API",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    dependencies=[Depends(enforce_general_limit)],
)

app.state.limiter = limiter
install_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else settings.CORS_ORIGINS,
    allow_credentials=settings.APP_ENV != "dev",
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Stratdesk API", "docs": "/docs"}

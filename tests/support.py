"""Shared helpers: in-memory SQLite database, API client and payload builders."""

import unittest
import uuid
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.cache import StrategyCache, get_cache
from app.core.database import get_db
from app.core.security import hash_password
from app.main import app
from app.models import Base, TradingStrategy, User
from app.models.user import ROLE_ADMIN, ROLE_USER

STRONG_PASSWORD = "Str0ng!Pass"


def make_session_factory() -> sessionmaker:
    """Fresh in-memory SQLite database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_account(
    db: Session,
    email: str = "trader@stratdesk.io",
    password: str = STRONG_PASSWORD,
    role: str = ROLE_USER,
    **kwargs: Any,
) -> User:
    """Insert an account directly (bypasses registration)."""
    user = User(
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", "Trader"),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_email_verified=kwargs.pop("is_email_verified", False),
        failed_login_attempts=0,
        profile={},
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def strategy_payload(**overrides: Any) -> dict[str, Any]:
    """Valid camelCase create payload."""
    payload: dict[str, Any] = {
        "name": "BTC Momentum",
        "description": "Rides short-term momentum on large caps.",
        "riskLevel": "medium",
        "category": "momentum",
        "targetAssets": ["btc", "eth"],
        "timeframe": "1h",
        "profitTarget": 12.5,
        "stopLoss": 4,
        "performanceMetrics": {
            "winRate": 80,
            "profitLoss": 50,
            "sharpeRatio": 2,
            "maxDrawdown": -10,
            "totalTrades": 120,
        },
        "tags": ["trend", "crypto"],
        "isPublic": True,
    }
    payload.update(overrides)
    return payload


def make_strategy(db: Session, owner: User, **kwargs: Any) -> TradingStrategy:
    """Insert a strategy directly in any status."""
    values: dict[str, Any] = {
        "name": "Seeded Strategy",
        "description": "Seeded directly into the database.",
        "risk_level": "low",
        "category": "swing_trading",
        "target_assets": ["BTC"],
        "timeframe": "1d",
        "profit_target": 10.0,
        "stop_loss": 5.0,
        "performance_metrics": {},
        "performance_score": 0,
        "tags": [],
        "is_public": True,
        "status": "draft",
        "backtest_data": {},
        "configuration": {},
        "view_count": 0,
        "like_count": 0,
    }
    values.update(kwargs)
    strategy = TradingStrategy(created_by=owner.id, **values)
    db.add(strategy)
    db.commit()
    db.refresh(strategy)
    return strategy


class ApiTestCase(unittest.TestCase):
    """Runs the real app against an isolated SQLite database and a disabled cache."""

    def setUp(self) -> None:
        self.SessionLocal = make_session_factory()
        self.cache = StrategyCache(None)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_cache] = lambda: self.cache
        self.client = TestClient(app)
        self.db = self.SessionLocal()

    def tearDown(self) -> None:
        self.db.close()
        app.dependency_overrides.clear()
        self.SessionLocal.kw["bind"].dispose()

    # ---- helpers -------------------------------------------------------------

    def register(self, email: str = "alice@stratdesk.io", password: str = STRONG_PASSWORD, **extra: Any):
        body = {
            "firstName": "Alice",
            "lastName": "Smith",
            "email": email,
            "password": password,
            "confirmPassword": password,
        }
        body.update(extra)
        return self.client.post("/api/v1/auth/register", json=body)

    def login(self, email: str, password: str = STRONG_PASSWORD):
        return self.client.post("/api/v1/auth/login", json={"email": email, "password": password})

    def token_for(self, email: str, password: str = STRONG_PASSWORD) -> str:
        response = self.login(email, password)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]["tokens"]["accessToken"]

    def auth(self, email: str, password: str = STRONG_PASSWORD) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_for(email, password)}"}

    def account(self, email: str, role: str = ROLE_USER, **kwargs: Any) -> User:
        return make_account(self.db, email=email, role=role, **kwargs)

    def admin(self, email: str = "admin@stratdesk.io") -> User:
        return make_account(self.db, email=email, role=ROLE_ADMIN, first_name="Ada", last_name="Admin")

    def fresh(self, model: type, key: uuid.UUID) -> Any:
        """Re-read a row through a new session (sees commits made by the API)."""
        with self.SessionLocal() as db:
            return db.get(model, key)

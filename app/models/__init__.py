"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.strategy import TradingStrategy
from app.models.user import User

__all__ = ["Base", "TradingStrategy", "User"]

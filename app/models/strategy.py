"""ORM model for trading strategies and their approval workflow."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONType, SoftDeleteMixin, TimestampMixin

STATUS_DRAFT = "draft"
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class TradingStrategy(TimestampMixin, SoftDeleteMixin, Base):
    """
    A user-authored trading strategy.

    status moves draft -> pending -> approved | rejected; approved/rejected
    items edited by their owner fall back to draft. performance_score is
    derived from performance_metrics on every write.
    """

    __tablename__ = "trading_strategies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    risk_level = Column(String(16), nullable=False, index=True)
    category = Column(String(32), nullable=False, index=True)
    target_assets = Column(JSONType, nullable=False, default=list)
    timeframe = Column(String(8), nullable=False)
    profit_target = Column(Numeric(7, 2, asdecimal=False), nullable=False)
    stop_loss = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    performance_metrics = Column(JSONType, nullable=False, default=dict)
    performance_score = Column(Integer, nullable=False, default=0, index=True)
    tags = Column(JSONType, nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=False, index=True)

    status = Column(String(16), nullable=False, default=STATUS_DRAFT, index=True)
    rejection_reason = Column(Text, nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    backtest_data = Column(JSONType, nullable=False, default=dict)
    configuration = Column(JSONType, nullable=False, default=dict)
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)

    creator = relationship("User", foreign_keys=[created_by], lazy="joined")

"""Create trading_strategies table for the approval workflow.

Revision ID: 20261001100000
Revises: 20261001000000
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "20261001100000"
down_revision: Union[str, None] = "20261001000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_INDEXED = (
    "name",
    "risk_level",
    "category",
    "performance_score",
    "is_public",
    "status",
    "created_by",
    "deleted_at",
)


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        nullable=False,
        server_default=sa.text(f"'{default}'::jsonb"),
    )


def upgrade() -> None:
    op.create_table(
        "trading_strategies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("risk_level", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        _jsonb("target_assets", "[]"),
        sa.Column("timeframe", sa.String(length=8), nullable=False),
        sa.Column("profit_target", sa.Numeric(precision=7, scale=2), nullable=False),
        sa.Column("stop_loss", sa.Numeric(precision=5, scale=2), nullable=False),
        _jsonb("performance_metrics", "{}"),
        sa.Column("performance_score", sa.Integer(), nullable=False, server_default="0"),
        _jsonb("tags", "[]"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        _jsonb("backtest_data", "{}"),
        _jsonb("configuration", "{}"),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'pending', 'approved', 'rejected')",
            name="ck_trading_strategies_status",
        ),
        sa.CheckConstraint(
            "performance_score BETWEEN 0 AND 100",
            name="ck_trading_strategies_performance_score",
        ),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in _INDEXED:
        op.create_index(
            op.f(f"ix_trading_strategies_{column}"), "trading_strategies", [column], unique=False
        )


def downgrade() -> None:
    for column in reversed(_INDEXED):
        op.drop_index(op.f(f"ix_trading_strategies_{column}"), table_name="trading_strategies")
    op.drop_table("trading_strategies")

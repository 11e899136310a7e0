"""
Hearth Butler Backend — Budget Models
=======================================

What:  ORM models for `budgets`, `spendings` and `budget_alerts`.
Why:   Families track grocery spending against a period budget, optionally
       split by food category, and get alerted at 80/100/110 percent.
How:   used_amount / remaining_amount / usage_percentage are cached on the
       budget row and recomputed by BudgetTracker after every spending change.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import (
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    utcnow,
)


class Budget(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "budgets"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    period: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="WEEKLY, MONTHLY, QUARTERLY, YEARLY, CUSTOM"
    )
    start_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)

    # ── Category budgets (optional) ───────────────────────────────────────
    vegetable_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    meat_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    fruit_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    grain_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    dairy_budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    other_budget: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="ACTIVE",
        server_default=text("'ACTIVE'"),
        comment="ACTIVE, COMPLETED, CANCELLED, EXPIRED",
    )
    used_amount: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0")
    )
    remaining_amount: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0")
    )
    usage_percentage: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0")
    )

    alert_threshold_80: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    alert_threshold_100: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    alert_threshold_110: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    __table_args__ = (
        Index("idx_budgets_member_status", "member_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Budget(id={self.id}, name='{self.name}', "
            f"usage={self.usage_percentage:.1f}%)>"
        )


class Spending(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "spendings"

    budget_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, comment="FoodCategory")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    purchase_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_spendings_budget_date", "budget_id", purchase_date.desc()),
    )


class BudgetAlert(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "budget_alerts"

    budget_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="WARNING_80, WARNING_100, OVER_BUDGET_110, CATEGORY_OVER, DAILY_EXCESS",
    )
    category: Mapped[str | None] = mapped_column(
        String(50), nullable=True, comment="Budget category for CATEGORY_OVER alerts"
    )
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    current_value: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="ACTIVE",
        server_default=text("'ACTIVE'"),
        comment="ACTIVE, ACKNOWLEDGED, RESOLVED, DISMISSED",
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_budget_alerts_budget_status", "budget_id", "status"),
    )

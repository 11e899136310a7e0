"""
Hearth Butler Backend — Nutrition Models
==========================================

What:  ORM models for `foods`, `price_histories`, `meal_logs` and
       `meal_log_foods`.
Why:   Foods carry per-100g nutrient baselines used by the nutrition
       calculator; prices feed the cost optimizer.
How:   Meal logs store computed nutrient totals at write time so listing
       never re-derives them.
"""

import uuid
from datetime import date as date_type, datetime

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import (
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    utcnow,
)


class Food(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A food with nutrient values per 100 grams."""

    __tablename__ = "foods"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="OTHER",
        server_default=text("'OTHER'"),
        comment="VEGETABLES, FRUITS, GRAINS, PROTEIN, SEAFOOD, DAIRY, OILS, SNACKS, BEVERAGES, OTHER",
    )

    # ── Per-100g nutrients ────────────────────────────────────────────────
    calories: Mapped[float] = mapped_column(Float, nullable=False, comment="kcal / 100g")
    protein: Mapped[float] = mapped_column(Float, nullable=False, comment="g / 100g")
    carbs: Mapped[float] = mapped_column(Float, nullable=False, comment="g / 100g")
    fat: Mapped[float] = mapped_column(Float, nullable=False, comment="g / 100g")
    fiber: Mapped[float | None] = mapped_column(Float, nullable=True)
    sugar: Mapped[float | None] = mapped_column(Float, nullable=True)
    sodium: Mapped[float | None] = mapped_column(Float, nullable=True, comment="mg / 100g")
    vitamin_a: Mapped[float | None] = mapped_column(Float, nullable=True)
    vitamin_c: Mapped[float | None] = mapped_column(Float, nullable=True)
    calcium: Mapped[float | None] = mapped_column(Float, nullable=True)
    iron: Mapped[float | None] = mapped_column(Float, nullable=True)

    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    __table_args__ = (
        Index("idx_foods_name", "name"),
        Index("idx_foods_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Food(id={self.id}, name='{self.name}', category='{self.category}')>"


class PriceHistory(UUIDPrimaryKeyMixin, Base):
    """An observed price for a food; unit_price is normalised to currency per kg."""

    __tablename__ = "price_histories"

    food_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("foods.id", ondelete="CASCADE"),
        nullable=False,
    )
    price: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False, comment="e.g. '500g', 'kg'")
    unit_price: Mapped[float] = mapped_column(Float, nullable=False, comment="price per kg")
    platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_valid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_price_histories_food_recorded", "food_id", recorded_at.desc()),
    )


class MealLog(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A meal eaten by a member, with nutrient totals computed at write time."""

    __tablename__ = "meal_logs"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    meal_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="BREAKFAST, LUNCH, DINNER, SNACK"
    )

    calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fiber: Mapped[float | None] = mapped_column(Float, nullable=True)
    sugar: Mapped[float | None] = mapped_column(Float, nullable=True)
    sodium: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_meal_logs_member_date", "member_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<MealLog(id={self.id}, date='{self.date}', meal_type='{self.meal_type}')>"


class MealLogFood(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "meal_log_foods"

    meal_log_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("meal_logs.id", ondelete="CASCADE"),
        nullable=False,
    )
    food_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("foods.id"),
        nullable=False,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False, comment="grams")

    __table_args__ = (
        Index("idx_meal_log_foods_meal_log_id", "meal_log_id"),
    )

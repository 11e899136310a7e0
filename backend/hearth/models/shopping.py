"""
Hearth Butler Backend — Shopping List Models
==============================================

What:  ORM models for `shopping_lists` and `shopping_items`.
Why:   Family shopping lists with estimated cost per item, purchase tracking
       and an optional link to a budget on completion.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class ShoppingList(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "shopping_lists"

    family_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_cost: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0")
    )
    actual_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PENDING",
        server_default=text("'PENDING'"),
        comment="PENDING, IN_PROGRESS, COMPLETED",
    )

    __table_args__ = (
        Index("idx_shopping_lists_family_id", "family_id"),
    )

    def __repr__(self) -> str:
        return f"<ShoppingList(id={self.id}, name='{self.name}', status='{self.status}')>"


class ShoppingItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "shopping_items"

    list_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("shopping_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    food_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("foods.id"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False, comment="grams")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    estimated_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchased: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    purchased_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    purchased_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_shopping_items_list_id", "list_id"),
    )

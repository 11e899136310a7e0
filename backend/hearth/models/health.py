"""
Hearth Butler Backend — Health Data Model
===========================================

What:  ORM models for `health_data`, one row per measurement event, and
       `health_goals`, a member's weight targets.
Why:   Manual entries and device-synced samples land in the same table so
       charts, leaderboards and sharing read one source.
How:   Every metric column is nullable; a row carries whichever metrics were
       measured together (e.g. systolic + diastolic + heart rate).
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class HealthData(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "health_data"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Metrics ───────────────────────────────────────────────────────────
    weight: Mapped[float | None] = mapped_column(Float, nullable=True, comment="kg")
    body_fat: Mapped[float | None] = mapped_column(Float, nullable=True, comment="percent")
    muscle_mass: Mapped[float | None] = mapped_column(Float, nullable=True, comment="kg")
    blood_pressure_systolic: Mapped[int | None] = mapped_column(Integer, nullable=True)
    blood_pressure_diastolic: Mapped[int | None] = mapped_column(Integer, nullable=True)
    heart_rate: Mapped[int | None] = mapped_column(Integer, nullable=True, comment="bpm")
    steps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sleep_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    measured_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="MANUAL",
        server_default=text("'MANUAL'"),
        comment="MANUAL, WEARABLE, MEDICAL_REPORT, APPLE_HEALTHKIT, HUAWEI_HEALTH, ...",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_connection_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("device_connections.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_health_data_member_measured", "member_id", measured_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<HealthData(id={self.id}, member_id={self.member_id}, "
            f"source='{self.source}', measured_at='{self.measured_at}')>"
        )


class HealthGoal(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A member's weight goal with macro split and tracked progress."""

    __tablename__ = "health_goals"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    goal_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="LOSE_WEIGHT, GAIN_WEIGHT, MAINTAIN, GAIN_MUSCLE"
    )
    start_weight: Mapped[float] = mapped_column(Float, nullable=False, comment="kg")
    current_weight: Mapped[float] = mapped_column(Float, nullable=False, comment="kg")
    target_weight: Mapped[float] = mapped_column(Float, nullable=False, comment="kg")
    target_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)

    carb_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)
    protein_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)
    fat_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)

    progress: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"), comment="0-100"
    )
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="ACTIVE",
        server_default=text("'ACTIVE'"),
        comment="ACTIVE, COMPLETED, PAUSED, CANCELLED",
    )
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_health_goals_member_status", "member_id", "status"),
    )

"""
Hearth Butler Backend — Device Connection Model
=================================================

What:  ORM model for `device_connections`: a member's link to Apple
       HealthKit or Huawei Health.
Why:   Tracks credentials, sync schedule and sync health per device.

Sync status state machine:
    PENDING ──▶ SYNCING ──▶ SUCCESS
                   │   ▲        │
                   ▼   └────────┘ (next sync)
                 FAILED
    Any state ──▶ DISABLED (disconnect or stale cleanup)
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class DeviceConnection(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "device_connections"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    device_id: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Identifier on the external platform"
    )
    device_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="e.g. smartwatch, scale, phone"
    )
    device_name: Mapped[str] = mapped_column(String(100), nullable=False)
    manufacturer: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    platform: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="APPLE_HEALTHKIT, HUAWEI_HEALTH"
    )

    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Sync state ────────────────────────────────────────────────────────
    last_sync_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    sync_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PENDING",
        server_default=text("'PENDING'"),
        comment="PENDING, SYNCING, SUCCESS, FAILED, DISABLED",
    )
    sync_interval: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
        server_default=text("30"),
        comment="Minutes between automatic syncs",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    is_auto_sync: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    connection_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    disconnection_date: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    __table_args__ = (
        Index("idx_device_connections_member_id", "member_id"),
        Index("idx_device_connections_active", "is_active", "is_auto_sync"),
    )

    def __repr__(self) -> str:
        return (
            f"<DeviceConnection(id={self.id}, platform='{self.platform}', "
            f"sync_status='{self.sync_status}')>"
        )

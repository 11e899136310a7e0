"""
Hearth Butler Backend — Notification Model
============================================

What:  ORM model for `notifications`, delivered in-app only.
Why:   Budget alerts, device sync failures and finished report parses are
       surfaced to the member they concern.
How:   dedup_key suppresses repeats of the same unread notification.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Notification(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "notifications"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="MEDIUM",
        server_default=text("'MEDIUM'"),
        comment="LOW, MEDIUM, HIGH",
    )
    channels: Mapped[list] = mapped_column(JSON, nullable=False, default=lambda: ["IN_APP"])
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PENDING",
        server_default=text("'PENDING'"),
        comment="PENDING, SENT, READ",
    )
    sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    dedup_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    __table_args__ = (
        Index("idx_notifications_member_status", "member_id", "status"),
        Index("idx_notifications_dedup_key", "dedup_key"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type='{self.type}', status='{self.status}')>"

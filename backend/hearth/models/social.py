"""
Hearth Butler Backend — Social Models
=======================================

What:  ORM models for `shared_contents`, `share_tracking`,
       `leaderboard_entries` and `achievements`.
Why:   Members share achievements through public token links, and family
       leaderboards keep snapshots to compute rank changes over time.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import (
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    utcnow,
)


class SharedContent(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "shared_contents"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # "metadata" is reserved by the declarative base
    content_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    share_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    share_url: Mapped[str] = mapped_column(String(500), nullable=False)
    shared_platforms: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    privacy_level: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PUBLIC",
        server_default=text("'PUBLIC'"),
        comment="PUBLIC, FRIENDS, PRIVATE",
    )

    # ── Counters ──────────────────────────────────────────────────────────
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    click_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="ACTIVE",
        server_default=text("'ACTIVE'"),
        comment="ACTIVE, EXPIRED, REVOKED",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_shared_contents_member_id", "member_id"),
    )

    def __repr__(self) -> str:
        return f"<SharedContent(id={self.id}, type='{self.content_type}', status='{self.status}')>"


class ShareTracking(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "share_tracking"

    share_token: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="VIEW, CLICK, LIKE, COMMENT, DOWNLOAD, SHARE"
    )
    platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    referrer: Mapped[str | None] = mapped_column(String(500), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_share_tracking_token", "share_token", occurred_at.desc()),
    )


class LeaderboardEntry(UUIDPrimaryKeyMixin, Base):
    """A persisted ranking snapshot for one member on one board."""

    __tablename__ = "leaderboard_entries"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    leaderboard_type: Mapped[str] = mapped_column(String(50), nullable=False)
    period: Mapped[str] = mapped_column(String(50), nullable=False)
    period_start: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rank_change: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Positive = moved up"
    )
    total_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index(
            "idx_leaderboard_entries_member_type",
            "member_id",
            "leaderboard_type",
            calculated_at.desc(),
        ),
    )


class Achievement(UUIDPrimaryKeyMixin, Base):
    """A badge a member has unlocked. Each type unlocks at most once per member."""

    __tablename__ = "achievements"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    achievement_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rarity: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="COMMON, UNCOMMON, RARE, EPIC, LEGENDARY"
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("member_id", "achievement_type", name="uq_achievements_member_type"),
    )

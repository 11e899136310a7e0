"""
Hearth Butler Backend — Family Models
=======================================

What:  ORM models for `families` and `family_members`.
Why:   A family is the unit of data sharing. Every health, meal, budget and
       device record belongs to a family member.
How:   A member may be linked to a user account (a person who signs in)
       or be a profile-only member (e.g. a child managed by a parent).

Access rules live in FamilyService.require_member_access().
"""

import uuid
from datetime import date

from sqlalchemy import Date, Float, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from hearth.database import Base
from hearth.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Family(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "families"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    invite_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        unique=True,
        comment="Code other users enter to join this family",
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        comment="The creator always has full access",
    )

    __table_args__ = (
        Index("idx_families_creator_id", "creator_id"),
    )

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name='{self.name}')>"


class FamilyMember(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    A person in a family.

    bmi and age_group are derived columns, recomputed by FamilyService
    whenever height, weight or birth_date change.
    """

    __tablename__ = "family_members"

    family_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
        comment="Linked account, NULL for profile-only members",
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    gender: Mapped[str | None] = mapped_column(String(50), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    height: Mapped[float | None] = mapped_column(Float, nullable=True, comment="cm")
    weight: Mapped[float | None] = mapped_column(Float, nullable=True, comment="kg")
    bmi: Mapped[float | None] = mapped_column(Float, nullable=True)
    age_group: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="CHILD, TEENAGER, ADULT, ELDERLY",
    )
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="MEMBER",
        server_default=text("'MEMBER'"),
        comment="ADMIN, MEMBER, GUEST (read-only)",
    )

    __table_args__ = (
        Index("idx_family_members_family_id", "family_id"),
        Index("idx_family_members_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<FamilyMember(id={self.id}, name='{self.name}', role='{self.role}')>"

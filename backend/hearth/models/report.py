"""
Hearth Butler Backend — Medical Report Models
===============================================

What:  ORM models for `medical_reports` and `medical_indicators`.
Why:   Uploaded lab reports are OCR'd and parsed into structured indicators
       (cholesterol, glucose, liver and kidney function, blood counts).
How:   The report row tracks OCR progress; each recognised value becomes an
       indicator row classified against its reference range.

OCR status: PENDING → PROCESSING → COMPLETED | FAILED
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP

from hearth.database import Base
from hearth.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin


class MedicalReport(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "medical_reports"

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_path: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Relative path from storage root; NULL for text submissions",
    )
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    ocr_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PENDING",
        server_default=text("'PENDING'"),
        comment="PENDING, PROCESSING, COMPLETED, FAILED",
    )
    ocr_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    ocr_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    report_date: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    institution: Mapped[str | None] = mapped_column(String(255), nullable=True)
    report_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_corrected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    corrected_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_medical_reports_member_created", "member_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MedicalReport(id={self.id}, ocr_status='{self.ocr_status}')>"


class MedicalIndicator(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "medical_indicators"

    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("medical_reports.id", ondelete="CASCADE"),
        nullable=False,
    )
    indicator_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_range: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_abnormal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="NORMAL",
        server_default=text("'NORMAL'"),
        comment="NORMAL, LOW, HIGH, CRITICAL",
    )
    is_corrected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    original_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("idx_medical_indicators_report_id", "report_id"),
    )

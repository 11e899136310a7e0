"""
Hearth Butler Backend — Medical Report Schemas
================================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TextReportCreate(BaseModel):
    """Report text typed or pasted by the user; skips OCR."""
    text: str = Field(min_length=1, max_length=50_000)
    file_name: Optional[str] = Field(default=None, max_length=255)


class IndicatorCorrection(BaseModel):
    value: float = Field(ge=0, le=10_000)


class MedicalIndicatorResponse(BaseModel):
    id: uuid.UUID
    indicator_type: str
    name: str
    value: float
    unit: str
    reference_range: Optional[str] = None
    is_abnormal: bool
    status: str
    is_corrected: bool
    original_value: Optional[float] = None

    model_config = {"from_attributes": True}


class MedicalReportResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    ocr_status: str
    ocr_error: Optional[str] = None
    report_date: Optional[datetime] = None
    institution: Optional[str] = None
    report_type: Optional[str] = None
    is_corrected: bool
    corrected_at: Optional[datetime] = None
    created_at: datetime
    indicators: List[MedicalIndicatorResponse] = Field(default_factory=list)
    abnormal_count: int = 0
    warnings: List[str] = Field(default_factory=list)


class MedicalReportDetail(MedicalReportResponse):
    ocr_text: Optional[str] = None


class MedicalReportListResponse(BaseModel):
    reports: List[MedicalReportResponse]
    total_count: int

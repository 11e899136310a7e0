"""
Hearth Butler Backend — Medical Report Routes
===============================================

What:  Upload medical report images or PDFs for OCR, submit report text
       directly, and review or correct the recognised indicators.

    POST   /api/members/{id}/reports                         multipart upload (201)
    POST   /api/members/{id}/reports/text                    plain-text report (201)
    GET    /api/members/{id}/reports                         newest first, paginated
    GET    /api/reports/{id}                                 report with OCR text
    DELETE /api/reports/{id}                                 soft delete, removes the file
    PATCH  /api/reports/{id}/indicators/{indicator_id}       correct a misread value

Upload Flow:
    1. Read the multipart file into memory (size bounded by FileService)
    2. MedicalReportService: validate → store → OCR → parse → persist
    3. OCR failure → 503; the report stays visible with ocr_status FAILED
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.report import (
    IndicatorCorrection,
    MedicalIndicatorResponse,
    MedicalReportDetail,
    MedicalReportListResponse,
    MedicalReportResponse,
    TextReportCreate,
)
from hearth.services.medical_report_service import medical_report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Medical Reports"], responses=AUTH_RESPONSES)


@router.post(
    "/members/{member_id}/reports",
    status_code=201,
    response_model=MedicalReportResponse,
    responses={
        400: {"description": "Invalid file type or size", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        503: {"description": "OCR service unavailable", "model": ErrorResponse},
    },
    summary="Upload a medical report",
    description=(
        "Upload a report image (PNG, JPG, JPEG) or PDF. The text is extracted with "
        "Gemini, health indicators are recognised and classified against reference "
        "ranges, and the member is notified when processing finishes."
    ),
)
async def upload_report(
    member_id: uuid.UUID,
    file: UploadFile = File(..., description="Report image or PDF"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MedicalReportResponse:
    content = await file.read()
    logger.info(
        "Received report upload: filename=%s, size=%d bytes",
        file.filename or "unknown", len(content),
    )
    try:
        return await medical_report_service.upload_report(
            db,
            user,
            member_id,
            filename=file.filename or "report.jpg",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()


@router.post(
    "/members/{member_id}/reports/text",
    status_code=201,
    response_model=MedicalReportResponse,
    responses={400: {"description": "Empty or oversized text", "model": ErrorResponse}},
    summary="Submit report text",
)
async def submit_text_report(
    member_id: uuid.UUID,
    body: TextReportCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MedicalReportResponse:
    return await medical_report_service.submit_text_report(
        db, user, member_id, body.text, body.file_name
    )


@router.get(
    "/members/{member_id}/reports",
    response_model=MedicalReportListResponse,
    summary="List medical reports",
)
async def list_reports(
    member_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MedicalReportListResponse:
    return await medical_report_service.list_reports(db, user, member_id, limit, offset)


@router.get("/reports/{report_id}", response_model=MedicalReportDetail, summary="Report detail")
async def get_report(
    report_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MedicalReportDetail:
    return await medical_report_service.get_report(db, user, report_id)


@router.delete("/reports/{report_id}", response_model=MessageResponse, summary="Delete a report")
async def delete_report(
    report_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await medical_report_service.delete_report(db, user, report_id)
    return MessageResponse(message="Report deleted")


@router.patch(
    "/reports/{report_id}/indicators/{indicator_id}",
    response_model=MedicalIndicatorResponse,
    summary="Correct an indicator value",
)
async def correct_indicator(
    report_id: uuid.UUID,
    indicator_id: uuid.UUID,
    body: IndicatorCorrection,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MedicalIndicatorResponse:
    indicator = await medical_report_service.correct_indicator(
        db, user, report_id, indicator_id, body.value
    )
    return MedicalIndicatorResponse.model_validate(indicator)

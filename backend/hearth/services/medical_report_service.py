"""
Hearth Butler Backend — Medical Report Service
================================================

What:  Upload → OCR → parse → persist pipeline for medical reports, plus
       listing, manual correction of indicators and deletion.
How:   Composes FileService, an OCRService implementation and the pure
       report_parser module.

Orchestration Flow (upload_report):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────────┐
    │  Upload  │───▶│  Validate   │───▶│  OCR         │───▶│  Parse and   │
    │  (Route) │    │  & Store    │    │  (Gemini)    │    │  store       │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────────┘

    OCR fails        → report FAILED with ocr_error, committed, 503 propagates
    Nothing parsed   → report COMPLETED with zero indicators and a warning
    Unexpected error → stored file cleaned up, DatabaseError (500)
"""

import logging
import uuid
from datetime import datetime, time, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    ExternalServiceError,
    HearthError,
    NotFoundError,
)
from hearth.models.enums import (
    IndicatorStatus,
    NotificationPriority,
    NotificationType,
    OcrStatus,
)
from hearth.models.mixins import utcnow
from hearth.models.report import MedicalIndicator, MedicalReport
from hearth.models.user import User
from hearth.schemas.report import (
    MedicalIndicatorResponse,
    MedicalReportDetail,
    MedicalReportListResponse,
    MedicalReportResponse,
)
from hearth.services import report_parser
from hearth.services.family_service import family_service
from hearth.services.file_service import file_service
from hearth.services.gemini_ocr_service import gemini_ocr_service
from hearth.services.notification_service import notification_service
from hearth.services.ocr_base import OCRService

logger = logging.getLogger(__name__)

NO_INDICATORS_WARNING = "No health indicators were recognised in the report"


def report_warnings(report: MedicalReport, indicators: List[MedicalIndicator]) -> List[str]:
    if report.ocr_status == OcrStatus.COMPLETED.value and not indicators:
        return [NO_INDICATORS_WARNING]
    return []


def to_response(
    report: MedicalReport,
    indicators: List[MedicalIndicator],
    detail: bool = False,
) -> MedicalReportResponse:
    fields = dict(
        id=report.id,
        member_id=report.member_id,
        file_name=report.file_name,
        file_size=report.file_size,
        mime_type=report.mime_type,
        ocr_status=report.ocr_status,
        ocr_error=report.ocr_error,
        report_date=report.report_date,
        institution=report.institution,
        report_type=report.report_type,
        is_corrected=bool(report.is_corrected),
        corrected_at=report.corrected_at,
        created_at=report.created_at,
        indicators=[MedicalIndicatorResponse.model_validate(i) for i in indicators],
        abnormal_count=sum(1 for i in indicators if i.is_abnormal),
        warnings=report_warnings(report, indicators),
    )
    if detail:
        return MedicalReportDetail(ocr_text=report.ocr_text, **fields)
    return MedicalReportResponse(**fields)


class MedicalReportService:

    def __init__(self, ocr_service: Optional[OCRService] = None):
        self.ocr_service = ocr_service or gemini_ocr_service

    # ══════════════════════════════════════════════════════════════════════
    # Ingestion
    # ══════════════════════════════════════════════════════════════════════

    async def _apply_parse(
        self, db: AsyncSession, report: MedicalReport, text: str
    ) -> List[MedicalIndicator]:
        parsed = report_parser.parse(text)
        valid, errors = report_parser.validate(parsed)
        if not valid:
            logger.warning("Report %s: %s", report.id, "; ".join(errors))

        indicators = []
        for item in parsed.indicators:
            indicator = MedicalIndicator(
                report_id=report.id,
                indicator_type=item.indicator_type,
                name=item.name,
                value=item.value,
                unit=item.unit,
                reference_range=item.reference_range,
                status=item.status,
                is_abnormal=item.is_abnormal,
                is_corrected=False,
            )
            db.add(indicator)
            indicators.append(indicator)

        report.ocr_text = text
        report.ocr_status = OcrStatus.COMPLETED.value
        report.ocr_error = None
        if parsed.report_date:
            report.report_date = datetime.combine(parsed.report_date, time.min, tzinfo=timezone.utc)
        report.institution = parsed.institution
        report.report_type = parsed.report_type
        await db.flush()

        abnormal = [i for i in indicators if i.is_abnormal]
        critical = any(i.status == IndicatorStatus.CRITICAL.value for i in indicators)
        await notification_service.notify(
            db,
            member_id=report.member_id,
            type=NotificationType.REPORT_READY.value,
            title="Medical report processed",
            content=(
                f"{len(indicators)} indicators recognised, {len(abnormal)} outside the normal range"
                if indicators else NO_INDICATORS_WARNING
            ),
            priority=(NotificationPriority.HIGH if critical else NotificationPriority.MEDIUM).value,
            action_url=f"/reports/{report.id}",
        )
        logger.info(
            "Report %s completed: %d indicators (%d abnormal)",
            report.id, len(indicators), len(abnormal),
        )
        return indicators

    async def upload_report(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> MedicalReportResponse:
        await family_service.require_member_access(db, user, member_id, write=True)

        absolute_path: Optional[str] = None
        report: Optional[MedicalReport] = None
        try:
            absolute_path, relative_path, mime_type = await file_service.validate_and_store(
                filename=filename, content=content, content_length=content_length
            )
            report = MedicalReport(
                member_id=member_id,
                file_path=relative_path,
                file_name=filename,
                file_size=len(content),
                mime_type=mime_type,
                ocr_status=OcrStatus.PROCESSING.value,
                is_corrected=False,
            )
            db.add(report)
            await db.flush()
            logger.info("Report %s stored at %s, starting OCR", report.id, relative_path)

            text = await self.ocr_service.extract_text(absolute_path, mime_type)
            indicators = await self._apply_parse(db, report, text)
            return to_response(report, indicators)

        except (ExternalServiceError, CircuitBreakerOpenError) as e:
            if report is not None:
                report.ocr_status = OcrStatus.FAILED.value
                report.ocr_error = e.message
                # Commit now: the error response rolls the request transaction back
                await db.commit()
                logger.warning("Report %s marked FAILED: %s", report.id, e.message)
            raise
        except Exception as e:
            # Nothing committed, so the stored file has no row pointing at it
            if absolute_path:
                await file_service.cleanup_file(absolute_path)
            if isinstance(e, HearthError):
                raise
            logger.error("Unexpected error in upload_report: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while processing the report. Please try again.",
                context={"original_error": type(e).__name__},
            )

    async def submit_text_report(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        text: str,
        file_name: Optional[str] = None,
    ) -> MedicalReportResponse:
        await family_service.require_member_access(db, user, member_id, write=True)
        report = MedicalReport(
            member_id=member_id,
            file_name=file_name,
            mime_type="text/plain",
            ocr_status=OcrStatus.PROCESSING.value,
            is_corrected=False,
        )
        db.add(report)
        await db.flush()
        indicators = await self._apply_parse(db, report, text)
        return to_response(report, indicators)

    # ══════════════════════════════════════════════════════════════════════
    # Queries
    # ══════════════════════════════════════════════════════════════════════

    async def _get_report(
        self, db: AsyncSession, user: User, report_id: uuid.UUID, write: bool = False
    ) -> MedicalReport:
        result = await db.execute(
            select(MedicalReport).where(
                MedicalReport.id == report_id, MedicalReport.deleted_at.is_(None)
            )
        )
        report = result.scalar_one_or_none()
        if report is None:
            raise NotFoundError(resource="report", resource_id=str(report_id))
        await family_service.require_member_access(db, user, report.member_id, write=write)
        return report

    async def _indicators(
        self, db: AsyncSession, report_ids: List[uuid.UUID]
    ) -> Dict[uuid.UUID, List[MedicalIndicator]]:
        grouped: Dict[uuid.UUID, List[MedicalIndicator]] = {rid: [] for rid in report_ids}
        if not report_ids:
            return grouped
        result = await db.execute(
            select(MedicalIndicator)
            .where(MedicalIndicator.report_id.in_(report_ids))
            .order_by(MedicalIndicator.created_at)
        )
        for indicator in result.scalars().all():
            grouped.setdefault(indicator.report_id, []).append(indicator)
        return grouped

    async def get_report(
        self, db: AsyncSession, user: User, report_id: uuid.UUID
    ) -> MedicalReportDetail:
        report = await self._get_report(db, user, report_id)
        indicators = await self._indicators(db, [report.id])
        return to_response(report, indicators[report.id], detail=True)

    async def list_reports(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        limit: int = 20,
        offset: int = 0,
    ) -> MedicalReportListResponse:
        await family_service.require_member_access(db, user, member_id)
        try:
            base = select(MedicalReport).where(
                MedicalReport.member_id == member_id, MedicalReport.deleted_at.is_(None)
            )
            count_result = await db.execute(select(func.count()).select_from(base.subquery()))
            total = count_result.scalar() or 0

            result = await db.execute(
                base.order_by(MedicalReport.created_at.desc()).limit(limit).offset(offset)
            )
            reports = list(result.scalars().all())
            indicators = await self._indicators(db, [r.id for r in reports])
            return MedicalReportListResponse(
                reports=[to_response(r, indicators.get(r.id, [])) for r in reports],
                total_count=total,
            )
        except HearthError:
            raise
        except Exception as e:
            logger.error("Failed to list reports: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to retrieve reports")

    # ══════════════════════════════════════════════════════════════════════
    # Corrections and deletion
    # ══════════════════════════════════════════════════════════════════════

    async def correct_indicator(
        self,
        db: AsyncSession,
        user: User,
        report_id: uuid.UUID,
        indicator_id: uuid.UUID,
        value: float,
    ) -> MedicalIndicator:
        """Overrides a misread value; the first OCR value is kept in original_value."""
        report = await self._get_report(db, user, report_id, write=True)
        result = await db.execute(
            select(MedicalIndicator).where(
                MedicalIndicator.id == indicator_id,
                MedicalIndicator.report_id == report.id,
            )
        )
        indicator = result.scalar_one_or_none()
        if indicator is None:
            raise NotFoundError(resource="indicator", resource_id=str(indicator_id))

        if not indicator.is_corrected:
            indicator.original_value = indicator.value
        indicator.value = value
        indicator.status = report_parser.classify_indicator(indicator.indicator_type, value)
        indicator.is_abnormal = indicator.status != IndicatorStatus.NORMAL.value
        indicator.is_corrected = True

        report.is_corrected = True
        report.corrected_at = utcnow()
        await db.flush()
        logger.info(
            "Indicator %s corrected: %s → %s (%s)",
            indicator.id, indicator.original_value, value, indicator.status,
        )
        return indicator

    async def delete_report(self, db: AsyncSession, user: User, report_id: uuid.UUID) -> None:
        report = await self._get_report(db, user, report_id, write=True)
        report.deleted_at = utcnow()
        await db.flush()
        if report.file_path:
            await file_service.cleanup_file(report.file_path)
        logger.info("Report %s deleted", report_id)


medical_report_service = MedicalReportService()

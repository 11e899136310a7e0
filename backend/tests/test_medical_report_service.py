"""
Hearth Butler Backend — Medical Report Service Unit Tests
===========================================================

What:  Tests for the upload → OCR → parse → persist orchestration.
How:   Uses mock DB sessions, a fake OCR service and patched file,
       family and notification services (no real disk or API calls).

What we test:
    ✅ Successful upload stores the report and its indicators
    ✅ OCR failure marks the report FAILED, commits and re-raises
    ✅ Unreadable reports complete with zero indicators and a warning
    ✅ Unexpected errors after the row is flushed remove the stored file
    ✅ Manual correction keeps the original value and reclassifies
"""

import uuid
from contextlib import contextmanager
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import DatabaseError, ExternalServiceError, NotFoundError
from hearth.models.report import MedicalIndicator, MedicalReport
from hearth.services.medical_report_service import NO_INDICATORS_WARNING, MedicalReportService

MODULE = "hearth.services.medical_report_service"

REPORT_TEXT = "空腹血糖：7.5 mmol/L\n血红蛋白 135 g/L\n"


@contextmanager
def patched_collaborators():
    with patch(f"{MODULE}.family_service") as mock_family, \
         patch(f"{MODULE}.file_service") as mock_file, \
         patch(f"{MODULE}.notification_service") as mock_notify:
        mock_family.require_member_access = AsyncMock()
        mock_file.validate_and_store = AsyncMock(
            return_value=("/abs/2024/05/01/r.jpg", "2024/05/01/r.jpg", "image/jpeg")
        )
        mock_file.cleanup_file = AsyncMock()
        mock_notify.notify = AsyncMock()
        yield mock_family, mock_file, mock_notify


def fake_ocr(text=None, error=None):
    ocr = AsyncMock()
    ocr.extract_text = AsyncMock(return_value=text, side_effect=error)
    return ocr


class TestUploadReport:

    @pytest.mark.asyncio
    async def test_upload_success(self, mock_db_session, user):
        service = MedicalReportService(ocr_service=fake_ocr(REPORT_TEXT))
        member_id = uuid.uuid4()

        with patched_collaborators() as (mock_family, mock_file, mock_notify):
            response = await service.upload_report(
                mock_db_session, user, member_id, "report.jpg", b"\xff\xd8data", content_length=6
            )

        mock_family.require_member_access.assert_awaited_once_with(
            mock_db_session, user, member_id, write=True
        )
        assert response.ocr_status == "COMPLETED"
        assert response.file_name == "report.jpg"
        assert {i.indicator_type: i.status for i in response.indicators} == {
            "FASTING_GLUCOSE": "CRITICAL",
            "HEMOGLOBIN": "NORMAL",
        }
        assert response.abnormal_count == 1
        assert response.warnings == []
        assert mock_notify.notify.await_args.kwargs["priority"] == "HIGH"
        mock_file.cleanup_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ocr_failure_marks_report_failed(self, mock_db_session, user):
        error = ExternalServiceError(message="Gemini is unavailable", service="gemini")
        service = MedicalReportService(ocr_service=fake_ocr(error=error))

        with patched_collaborators() as (_, mock_file, _):
            with pytest.raises(ExternalServiceError):
                await service.upload_report(mock_db_session, user, uuid.uuid4(), "r.jpg", b"data")

        (report,) = [o for o in mock_db_session.added if isinstance(o, MedicalReport)]
        assert report.ocr_status == "FAILED"
        assert report.ocr_error == "Gemini is unavailable"
        mock_db_session.commit.assert_awaited_once()
        # the row points at the file, so it stays on disk
        mock_file.cleanup_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_report_completes_with_warning(self, mock_db_session, user):
        service = MedicalReportService(ocr_service=fake_ocr("blurry photo, nothing legible"))

        with patched_collaborators() as (_, _, mock_notify):
            response = await service.upload_report(mock_db_session, user, uuid.uuid4(), "r.jpg", b"data")

        assert response.ocr_status == "COMPLETED"
        assert response.indicators == []
        assert response.warnings == [NO_INDICATORS_WARNING]
        assert mock_notify.notify.await_args.kwargs["priority"] == "MEDIUM"

    @pytest.mark.asyncio
    async def test_unexpected_error_after_flush_removes_file(self, mock_db_session, user):
        service = MedicalReportService(ocr_service=fake_ocr(REPORT_TEXT))

        with patched_collaborators() as (_, mock_file, mock_notify):
            mock_notify.notify = AsyncMock(side_effect=RuntimeError("connection reset"))
            with pytest.raises(DatabaseError):
                await service.upload_report(mock_db_session, user, uuid.uuid4(), "r.jpg", b"data")

        mock_file.cleanup_file.assert_awaited_once_with("/abs/2024/05/01/r.jpg")
        mock_db_session.commit.assert_not_awaited()


class TestCorrections:

    def setup_method(self):
        self.service = MedicalReportService(ocr_service=fake_ocr())

    def report_with_indicator(self):
        report = MedicalReport(id=uuid.uuid4(), member_id=uuid.uuid4(), ocr_status="COMPLETED", is_corrected=False)
        indicator = MedicalIndicator(
            id=uuid.uuid4(), report_id=report.id, indicator_type="FASTING_GLUCOSE",
            name="空腹血糖", value=75.0, unit="mmol/L", status="CRITICAL",
            is_abnormal=True, is_corrected=False,
        )
        return report, indicator

    @pytest.mark.asyncio
    async def test_correction_keeps_original_value(self, mock_db_session, make_result, user):
        report, indicator = self.report_with_indicator()
        mock_db_session.execute.side_effect = [make_result(value=report), make_result(value=indicator)]

        with patch(f"{MODULE}.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            corrected = await self.service.correct_indicator(
                mock_db_session, user, report.id, indicator.id, 5.0
            )

        assert corrected.value == 5.0
        assert corrected.original_value == 75.0
        assert corrected.status == "NORMAL"
        assert corrected.is_abnormal is False
        assert report.is_corrected is True
        assert report.corrected_at is not None

    @pytest.mark.asyncio
    async def test_second_correction_keeps_first_original(self, mock_db_session, make_result, user):
        report, indicator = self.report_with_indicator()
        indicator.is_corrected = True
        indicator.original_value = 75.0
        indicator.value = 5.0
        mock_db_session.execute.side_effect = [make_result(value=report), make_result(value=indicator)]

        with patch(f"{MODULE}.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            corrected = await self.service.correct_indicator(
                mock_db_session, user, report.id, indicator.id, 6.5
            )

        assert corrected.original_value == 75.0
        assert corrected.status == "HIGH"

    @pytest.mark.asyncio
    async def test_unknown_report(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(value=None)]
        with pytest.raises(NotFoundError):
            await self.service.get_report(mock_db_session, user, uuid.uuid4())

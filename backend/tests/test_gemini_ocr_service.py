"""
Hearth Butler Backend — Gemini OCR Service Unit Tests (Mocked)
================================================================

What:  Tests for the circuit breaker and GeminiOCRService with the Google
       Generative AI SDK patched out.
Why:   Tests should not make real API calls (costs money, requires network).

What we test:
    ✅ Circuit breaker state machine (closed → open → half-open → closed)
    ✅ Successful OCR returns the transcription
    ✅ Upstream failure becomes ExternalServiceError and counts as a breaker failure
    ✅ Open circuit rejects calls without touching the API
    ❌ Real API calls (use integration tests for that)
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hearth.exceptions import CircuitBreakerOpenError, ExternalServiceError
from hearth.services.gemini_ocr_service import GeminiOCRService
from hearth.services.resilience import CircuitBreaker


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(name="test", failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(name="huawei_health", failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert exc_info.value.service == "huawei_health"
        assert 0 < exc_info.value.recovery_time <= 60

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.failure_count == 2

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == "open"

        time.sleep(0.01)
        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        cb.can_execute()
        assert cb.state == "half_open"

        cb.record_failure()
        assert cb.state == "open"

    def test_half_open_success_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestGeminiOCRServiceMocked:

    @pytest.mark.asyncio
    async def test_extract_text_success(self):
        with patch("hearth.services.gemini_ocr_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = "  总胆固醇 5.8 mmol/L\n血红蛋白 130 g/L  "
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model
            mock_genai.upload_file.return_value = MagicMock()

            service = GeminiOCRService()
            result = await service.extract_text("/path/to/report.jpg", "image/jpeg")

            assert result == "总胆固醇 5.8 mmol/L\n血红蛋白 130 g/L"
            mock_genai.upload_file.assert_called_once_with(
                path="/path/to/report.jpg", mime_type="image/jpeg"
            )
            assert service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_empty_response_returns_empty_string(self):
        with patch("hearth.services.gemini_ocr_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = ""
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiOCRService()
            assert await service.extract_text("/path/to/blank.png") == ""

    @pytest.mark.asyncio
    async def test_api_failure_raises_external_service_error(self):
        with patch("hearth.services.gemini_ocr_service.genai") as mock_genai:
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiOCRService()
            with pytest.raises(ExternalServiceError) as exc_info:
                await service.extract_text("/path/to/report.jpg")

            assert exc_info.value.service == "gemini_ocr"
            assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_api(self):
        with patch("hearth.services.gemini_ocr_service.genai") as mock_genai:
            service = GeminiOCRService()
            for _ in range(service.circuit_breaker.failure_threshold):
                service.circuit_breaker.record_failure()

            with pytest.raises(CircuitBreakerOpenError):
                await service.extract_text("/path/to/report.jpg")
            mock_genai.upload_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self):
        with patch("hearth.services.gemini_ocr_service.genai") as mock_genai:
            mock_genai.list_models.return_value = [MagicMock()]
            service = GeminiOCRService()
            assert await service.health_check() is True

            mock_genai.list_models.side_effect = RuntimeError("network down")
            assert await service.health_check() is False

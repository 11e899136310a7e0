"""
Hearth Butler Backend — Gemini OCR Service
============================================

What:  OCR for medical reports using the Google Gemini vision model.
Why:   Lab reports mix printed tables, Chinese and English labels and
       reference ranges; a vision model transcribes them more faithfully
       than classic OCR.
How:   Uploads the file, asks for a line-preserving transcription, and
       wraps the call in tenacity retries plus a circuit breaker.

Error Handling Chain:
    API call fails → tenacity retries (RETRY_MAX_ATTEMPTS, exponential backoff)
    → all retries fail → breaker failure recorded → ExternalServiceError (503)
    → threshold reached → later calls rejected with CircuitBreakerOpenError
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional

import google.generativeai as genai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from hearth.config import settings
from hearth.exceptions import CircuitBreakerOpenError, ExternalServiceError
from hearth.services.ocr_base import OCRService
from hearth.services.resilience import CircuitBreaker

logger = logging.getLogger(__name__)


class GeminiOCRService(OCRService):

    SERVICE_NAME = "gemini_ocr"

    OCR_PROMPT = """You are transcribing a medical examination or laboratory report.

Instructions:
1. Transcribe ALL text exactly as printed, in reading order
2. Keep each table row on its own line: item name, result, unit, reference range
3. Keep the original language of every label (do not translate Chinese labels)
4. Keep numbers, decimal points, arrows and symbols such as ↑ ↓ ≥ < exactly
5. Return ONLY the transcription, no commentary
6. If the document contains no text, return an empty response

Transcribe the report:"""

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)
        self.model = genai.GenerativeModel(settings.gemini_model)
        self.circuit_breaker = CircuitBreaker(
            name=self.SERVICE_NAME,
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "GeminiOCRService initialized with model=%s, circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def extract_text(self, file_path: str, mime_type: Optional[str] = None) -> str:
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()
        logger.info("[%s] Starting OCR for %s", request_id, Path(file_path).name)

        try:
            text = await self._call_gemini_with_retry(file_path, mime_type, request_id)
            self.circuit_breaker.record_success()
            return text
        except CircuitBreakerOpenError:
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] OCR failed after retries: %s", request_id, str(e), exc_info=True)
            raise ExternalServiceError(
                message="Report text recognition failed. Please try again later.",
                service=self.SERVICE_NAME,
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )

    @retry(
        # The SDK raises generic exceptions for API errors
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(
        self, file_path: str, mime_type: Optional[str], request_id: str
    ) -> str:
        start_time = time.time()
        try:
            uploaded = genai.upload_file(path=file_path, mime_type=mime_type)
            response = await self.model.generate_content_async(
                [self.OCR_PROMPT, uploaded],
                request_options={"timeout": 60},
            )
            text = response.text.strip() if response.text else ""
            logger.info(
                "[%s] OCR completed in %.0fms, extracted %d chars",
                request_id,
                (time.time() - start_time) * 1000,
                len(text),
            )
            return text
        except Exception as e:
            logger.warning(
                "[%s] Gemini call failed after %.0fms: %s",
                request_id,
                (time.time() - start_time) * 1000,
                str(e),
            )
            raise

    async def health_check(self) -> bool:
        try:
            models = genai.list_models()
            target = f"models/{settings.gemini_model}"
            if target not in [m.name for m in models]:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


gemini_ocr_service = GeminiOCRService()

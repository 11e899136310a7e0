"""
Hearth Butler Backend — Abstract OCR Service
==============================================

What:  Contract for turning a stored report file into plain text.
Why:   The report pipeline only needs text; the provider behind it can change
       without touching MedicalReportService.
"""

from abc import ABC, abstractmethod
from typing import Optional


class OCRService(ABC):
    """
    Contract:
        - extract_text() accepts an absolute file path (PNG, JPEG or PDF)
          and returns the recognised text, "" when nothing was found
        - Provider failures surface as ExternalServiceError after retries
        - An open circuit surfaces as CircuitBreakerOpenError
    """

    @abstractmethod
    async def extract_text(self, file_path: str, mime_type: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability check; must not consume OCR quota."""
        ...

"""
Hearth Butler Backend — Abstract Health Platform Client
=========================================================

What:  Contract for pulling health samples from an external platform.
Why:   Device sync talks to every platform through one interface, so adding
       a platform means adding a client, not touching the sync service.
How:   Concrete clients implement fetch_samples() and health_check() and
       translate platform payloads into HealthSample values.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from hearth.config import settings
from hearth.exceptions import ExternalServiceError
from hearth.models.device import DeviceConnection
from hearth.services.resilience import CircuitBreaker

logger = logging.getLogger(__name__)


@dataclass
class HealthSample:
    """One measurement event in platform-neutral form."""
    measured_at: datetime
    source: str
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    blood_pressure_systolic: Optional[int] = None
    blood_pressure_diastolic: Optional[int] = None
    heart_rate: Optional[int] = None
    steps: Optional[int] = None
    sleep_minutes: Optional[int] = None

    def metric_kind(self) -> str:
        """The metric used to choose a deduplication window."""
        if self.weight is not None or self.body_fat is not None:
            return "weight"
        if self.blood_pressure_systolic is not None:
            return "blood_pressure"
        if self.heart_rate is not None:
            return "heart_rate"
        if self.steps is not None:
            return "steps"
        if self.sleep_minutes is not None:
            return "sleep"
        return "default"


class HealthPlatformClient(ABC):
    """
    Abstract client for one external health platform.

    Contract:
        - fetch_samples() returns samples measured in [start, end)
        - Transport failures surface as ExternalServiceError after retries
        - An open circuit surfaces as CircuitBreakerOpenError
    """

    platform: str = ""

    @abstractmethod
    async def fetch_samples(
        self,
        device: DeviceConnection,
        start: datetime,
        end: datetime,
    ) -> List[HealthSample]:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...


class RetryableStatusError(Exception):
    """A 5xx or 429 response; retried like a transport failure."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Upstream returned HTTP {status_code}")


class RestPlatformClient(HealthPlatformClient):
    """
    Shared HTTP plumbing for REST-based platforms.

    Flow per request:
        1. circuit breaker check (may raise CircuitBreakerOpenError)
        2. httpx call wrapped in tenacity retry (transport errors, 5xx, 429)
        3. success/failure recorded on the breaker
        4. remaining failures mapped to ExternalServiceError
    """

    service_name: str = "health_platform"

    def __init__(self, base_url: str, timeout: float, circuit_breaker: CircuitBreaker):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self.circuit_breaker.can_execute()
        try:
            payload = await self._send_with_retry(method, path, **kwargs)
            self.circuit_breaker.record_success()
            return payload
        except httpx.HTTPStatusError as e:
            # 4xx: the request itself is wrong (expired token, unknown device)
            logger.warning(
                "%s rejected %s %s: HTTP %d",
                self.service_name, method, path, e.response.status_code,
            )
            raise ExternalServiceError(
                message=f"{self.service_name} rejected the request (HTTP {e.response.status_code})",
                service=self.service_name,
                context={"status_code": e.response.status_code},
            )
        except (httpx.HTTPError, RetryableStatusError) as e:
            self.circuit_breaker.record_failure()
            logger.error("All %s retries exhausted: %s", self.service_name, str(e))
            raise ExternalServiceError(
                message=f"{self.service_name} is unavailable. Please try again later.",
                service=self.service_name,
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"attempts": settings.retry_max_attempts},
            )
        except ValueError as e:
            self.circuit_breaker.record_failure()
            logger.error("%s returned an unreadable payload: %s", self.service_name, str(e))
            raise ExternalServiceError(
                message=f"{self.service_name} returned an invalid response.",
                service=self.service_name,
            )

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, RetryableStatusError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _send_with_retry(self, method: str, path: str, **kwargs: Any) -> Any:
        start_time = time.time()
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            response = await client.request(method, path, **kwargs)

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 500 or response.status_code == 429:
            logger.warning(
                "%s %s %s failed after %.0fms: HTTP %d",
                self.service_name, method, path, duration_ms, response.status_code,
            )
            raise RetryableStatusError(response.status_code)
        response.raise_for_status()

        logger.debug("%s %s %s completed in %.0fms", self.service_name, method, path, duration_ms)
        return response.json() if response.content else {}

    async def health_check(self) -> bool:
        """Reports the breaker state only; no upstream call is spent on probes."""
        return self.circuit_breaker.state != CircuitBreaker.OPEN

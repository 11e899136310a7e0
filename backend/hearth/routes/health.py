"""
Hearth Butler Backend — Health Check Route
============================================

What:  Liveness and dependency probe for Docker and load balancers.
How:   SELECT 1 against the database, the OCR circuit breaker (or a
       lightweight Gemini call while it is closed), and the circuit state
       of every health platform client.

Status levels:
    - healthy:   everything operational
    - degraded:  OCR or a health platform unavailable (requests still served)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from hearth import __version__
from hearth.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


def _degrade(overall: str) -> str:
    return overall if overall == "unhealthy" else "degraded"


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check() -> HealthResponse:
    db_status = "connected"
    ocr_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        from hearth.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── OCR ───────────────────────────────────────────────────────────────
    try:
        from hearth.services.gemini_ocr_service import gemini_ocr_service
        if gemini_ocr_service.circuit_breaker.state == "open":
            ocr_status = "circuit_open"
            overall = _degrade(overall)
        elif not await gemini_ocr_service.health_check():
            ocr_status = "unavailable"
            overall = _degrade(overall)
    except Exception as e:
        ocr_status = "unavailable"
        overall = _degrade(overall)
        logger.warning("Health check: OCR unreachable: %s", str(e))

    # ── Health platforms ──────────────────────────────────────────────────
    from hearth.services.health_platforms import PLATFORM_CLIENTS
    platforms = {}
    for name, client in PLATFORM_CLIENTS.items():
        breaker = getattr(client, "circuit_breaker", None)
        platforms[name] = breaker.state if breaker is not None else "closed"
        if platforms[name] == "open":
            overall = _degrade(overall)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        ocr=ocr_status,
        health_platforms=platforms,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

"""
Hearth Butler Backend — Shared Pydantic Schemas
=================================================

What:  Error envelope, health probe and simple acknowledgement models.
Why:   Every route documents the same error shape in its OpenAPI responses.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standard error envelope returned by every global exception handler.

    Example:
        {
            "error": "permission_denied",
            "message": "You do not have permission to access this resource",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional context (e.g. which field failed validation)"
    )
    request_id: Optional[str] = Field(
        default=None,
        description="Request correlation ID for support tickets"
    )


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer probes."""
    status: str = Field(description="healthy, degraded, or unhealthy")
    version: str = Field(description="Backend application version")
    database: str = Field(description="connected or disconnected")
    ocr: str = Field(description="available, unavailable, or circuit_open")
    health_platforms: Dict[str, str] = Field(
        description="Circuit breaker state per device platform"
    )
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    message: str

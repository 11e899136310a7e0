"""
Hearth Butler Backend — Health Data Routes
============================================

    POST   /api/members/{id}/health-data          record a manual measurement (201)
    GET    /api/members/{id}/health-data          newest first, optional date range
    GET    /api/members/{id}/health-data/latest   most recent measurement
    GET    /api/members/{id}/health-data/trends   per-metric series and statistics
    DELETE /api/health-data/{record_id}           soft delete
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.exceptions import ValidationError
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.health import (
    HealthDataCreate,
    HealthDataListResponse,
    HealthDataResponse,
    HealthTrendsResponse,
)
from hearth.services.health_data_service import health_data_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health Data"], responses=AUTH_RESPONSES)


@router.post(
    "/members/{member_id}/health-data",
    status_code=201,
    response_model=HealthDataResponse,
    responses={400: {"description": "Value out of range or no metric given", "model": ErrorResponse}},
    summary="Record a health measurement",
)
async def record_health_data(
    member_id: uuid.UUID,
    body: HealthDataCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthDataResponse:
    record = await health_data_service.record(db, user, member_id, body)
    return HealthDataResponse.model_validate(record)


@router.get(
    "/members/{member_id}/health-data",
    response_model=HealthDataListResponse,
    summary="List health measurements",
)
async def list_health_data(
    member_id: uuid.UUID,
    start: Optional[datetime] = Query(default=None, description="Only measurements at or after (ISO 8601)"),
    end: Optional[datetime] = Query(default=None, description="Only measurements at or before (ISO 8601)"),
    limit: int = Query(default=50, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthDataListResponse:
    if start and end and start > end:
        raise ValidationError(message="start must be before end", field="start")
    return await health_data_service.list_records(db, user, member_id, start, end, limit)


@router.get(
    "/members/{member_id}/health-data/latest",
    response_model=HealthDataResponse,
    summary="Latest health measurement",
)
async def latest_health_data(
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthDataResponse:
    record = await health_data_service.latest(db, user, member_id)
    return HealthDataResponse.model_validate(record)


@router.get(
    "/members/{member_id}/health-data/trends",
    response_model=HealthTrendsResponse,
    responses={400: {"description": "start after end", "model": ErrorResponse}},
    summary="Health measurement trends",
)
async def health_data_trends(
    member_id: uuid.UUID,
    days: int = Query(default=30, ge=1, le=365, description="Window length when start is omitted"),
    start: Optional[datetime] = Query(default=None, description="Window start (ISO 8601)"),
    end: Optional[datetime] = Query(default=None, description="Window end (ISO 8601), defaults to now"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthTrendsResponse:
    return await health_data_service.trends(db, user, member_id, start, end, days)


@router.delete("/health-data/{record_id}", response_model=MessageResponse, summary="Delete a measurement")
async def delete_health_data(
    record_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await health_data_service.delete_record(db, user, record_id)
    return MessageResponse(message="Health record deleted")

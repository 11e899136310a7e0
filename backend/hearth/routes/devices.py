"""
Hearth Butler Backend — Device Routes
=======================================

    POST   /api/members/{id}/devices     connect a device (201)
    GET    /api/members/{id}/devices     member's devices
    DELETE /api/devices/{id}             disconnect
    POST   /api/devices/sync             sync one device (forced) or every due device
    GET    /api/devices/sync/stats       sync overview for the caller's families
    POST   /api/devices/cleanup          disable devices that stopped syncing

Sync, stats and cleanup are scoped to members the caller can see.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.device import (
    CleanupResult,
    DeviceConnectRequest,
    DeviceResponse,
    DeviceSyncResult,
    SyncRequest,
    SyncStats,
    SyncSummary,
)
from hearth.services.device_sync_service import device_sync_service
from hearth.services.family_service import family_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Devices"], responses=AUTH_RESPONSES)


def _single(result: DeviceSyncResult) -> SyncSummary:
    return SyncSummary(
        total=1,
        success=int(result.status == "success"),
        failed=int(result.status == "failed"),
        skipped=int(result.status == "skipped"),
        synced_data_count=result.synced_count,
        results=[result],
    )


@router.post(
    "/members/{member_id}/devices",
    status_code=201,
    response_model=DeviceResponse,
    responses={400: {"description": "Device already connected or missing token", "model": ErrorResponse}},
    summary="Connect a device",
)
async def connect_device(
    member_id: uuid.UUID,
    body: DeviceConnectRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeviceResponse:
    device = await device_sync_service.connect_device(db, user, member_id, body)
    return DeviceResponse.model_validate(device)


@router.get("/members/{member_id}/devices", response_model=List[DeviceResponse], summary="List devices")
async def list_devices(
    member_id: uuid.UUID,
    include_inactive: bool = Query(default=False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[DeviceResponse]:
    devices = await device_sync_service.list_devices(db, user, member_id, include_inactive)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.delete("/devices/{device_pk}", response_model=MessageResponse, summary="Disconnect a device")
async def disconnect_device(
    device_pk: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await device_sync_service.disconnect_device(db, user, device_pk)
    return MessageResponse(message="Device disconnected")


@router.post(
    "/devices/sync",
    response_model=SyncSummary,
    summary="Sync devices",
    description=(
        "With a device_id the device is synced immediately regardless of its interval. "
        "Without one, every due device of the caller's families is synced."
    ),
)
async def sync_devices(
    body: SyncRequest = SyncRequest(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SyncSummary:
    if body.device_id is not None:
        return _single(await device_sync_service.trigger_device_sync(db, user, body.device_id))
    member_ids = await family_service.accessible_member_ids(db, user, write=True)
    if not member_ids:
        return SyncSummary(total=0, success=0, failed=0, skipped=0, synced_data_count=0, results=[])
    return await device_sync_service.sync_all_devices(db, member_ids)


@router.get("/devices/sync/stats", response_model=SyncStats, summary="Sync statistics")
async def sync_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SyncStats:
    member_ids = await family_service.accessible_member_ids(db, user)
    return await device_sync_service.get_sync_stats(db, member_ids)


@router.post("/devices/cleanup", response_model=CleanupResult, summary="Disable stale devices")
async def cleanup_devices(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CleanupResult:
    member_ids = await family_service.accessible_member_ids(db, user, write=True)
    if not member_ids:
        return CleanupResult(disabled=0)
    return CleanupResult(disabled=await device_sync_service.cleanup_stale_devices(db, member_ids))

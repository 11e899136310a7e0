"""
Hearth Butler Backend — Device Sync Service
=============================================

What:  Connects members' devices to health platforms and pulls their samples
       into health_data.
Why:   Weight from a smart scale and heart rate from a watch should appear
       without manual entry.
How:   Platform fetches run concurrently (asyncio.gather); persistence stays
       sequential because one AsyncSession must not be used concurrently.
       Every stored sample passes through HealthDataService deduplication.

Flow (sync_all_devices):
    1. Load active, auto-sync, non-DISABLED devices
    2. Devices whose interval has not elapsed → skipped
    3. Due devices → SYNCING; fetch all concurrently
    4. Per device, in order: store samples → SUCCESS, or record the error → FAILED
    5. Summarise; one device failing never stops the others
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.config import settings
from hearth.exceptions import HearthError, NotFoundError, ValidationError
from hearth.models.device import DeviceConnection
from hearth.models.enums import NotificationPriority, NotificationType, SyncStatus
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.user import User
from hearth.schemas.device import (
    DeviceConnectRequest,
    DeviceSyncResult,
    SyncStats,
    SyncSummary,
)
from hearth.services.family_service import family_service
from hearth.services.health_data_service import SKIP, health_data_service
from hearth.services.health_platforms import HealthSample, get_platform_client
from hearth.services.notification_service import notification_service

logger = logging.getLogger(__name__)


def is_sync_due(device: DeviceConnection, now: Optional[datetime] = None) -> bool:
    if device.last_sync_at is None:
        return True
    now = now or utcnow()
    return ensure_utc(device.last_sync_at) + timedelta(minutes=device.sync_interval) <= now


def sync_window(device: DeviceConnection, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Since the last sync, or the initial window for a device that never synced."""
    now = now or utcnow()
    if device.last_sync_at is not None:
        return ensure_utc(device.last_sync_at), now
    return now - timedelta(days=settings.initial_sync_days), now


class DeviceSyncService:

    # ══════════════════════════════════════════════════════════════════════
    # Connections
    # ══════════════════════════════════════════════════════════════════════

    async def connect_device(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        data: DeviceConnectRequest,
    ) -> DeviceConnection:
        """Creates a connection, or reactivates the member's existing one for the same device."""
        await family_service.require_member_access(db, user, member_id, write=True)

        result = await db.execute(
            select(DeviceConnection).where(
                DeviceConnection.member_id == member_id,
                DeviceConnection.platform == data.platform.value,
                DeviceConnection.device_id == data.device_id,
            )
        )
        device = result.scalars().first()
        if device is None:
            device = DeviceConnection(member_id=member_id, device_id=data.device_id)
            db.add(device)

        device.device_type = data.device_type
        device.device_name = data.device_name
        device.manufacturer = data.manufacturer
        device.model = data.model
        device.platform = data.platform.value
        device.access_token = data.access_token
        device.refresh_token = data.refresh_token
        device.sync_interval = data.sync_interval or settings.device_sync_interval
        device.is_auto_sync = data.is_auto_sync
        device.is_active = True
        device.sync_status = SyncStatus.PENDING.value
        device.connection_date = utcnow()
        device.disconnection_date = None
        device.last_error = None
        device.error_count = 0
        await db.flush()

        logger.info("Device %s (%s) connected for member %s", device.id, device.platform, member_id)
        return device

    async def _get_device(
        self, db: AsyncSession, user: User, device_pk: uuid.UUID, write: bool = False
    ) -> DeviceConnection:
        result = await db.execute(select(DeviceConnection).where(DeviceConnection.id == device_pk))
        device = result.scalar_one_or_none()
        if device is None or not device.is_active:
            raise NotFoundError(resource="device", resource_id=str(device_pk))
        await family_service.require_member_access(db, user, device.member_id, write=write)
        return device

    async def disconnect_device(self, db: AsyncSession, user: User, device_pk: uuid.UUID) -> None:
        device = await self._get_device(db, user, device_pk, write=True)
        self._disable(device)
        device.disconnection_date = utcnow()
        await db.flush()
        logger.info("Device %s disconnected", device_pk)

    async def list_devices(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[DeviceConnection]:
        await family_service.require_member_access(db, user, member_id)
        stmt = select(DeviceConnection).where(DeviceConnection.member_id == member_id)
        if not include_inactive:
            stmt = stmt.where(DeviceConnection.is_active.is_(True))
        result = await db.execute(stmt.order_by(DeviceConnection.connection_date.desc()))
        return list(result.scalars().all())

    @staticmethod
    def _disable(device: DeviceConnection) -> None:
        device.is_active = False
        device.is_auto_sync = False
        device.sync_status = SyncStatus.DISABLED.value

    # ══════════════════════════════════════════════════════════════════════
    # Sync
    # ══════════════════════════════════════════════════════════════════════

    async def _fetch(self, device: DeviceConnection, now: datetime) -> List[HealthSample]:
        start, end = sync_window(device, now)
        client = get_platform_client(device.platform)
        return await client.fetch_samples(device, start, end)

    async def _store(
        self,
        db: AsyncSession,
        device: DeviceConnection,
        samples: Iterable[HealthSample],
        now: datetime,
    ) -> DeviceSyncResult:
        synced, skipped = 0, 0
        for sample in samples:
            action = await health_data_service.store_sample(db, device.member_id, sample, device.id)
            if action == SKIP:
                skipped += 1
            else:
                synced += 1

        device.sync_status = SyncStatus.SUCCESS.value
        device.last_sync_at = now
        device.error_count = 0
        device.last_error = None
        await db.flush()
        logger.info(
            "Device %s synced: %d stored, %d duplicates skipped", device.id, synced, skipped
        )
        return DeviceSyncResult(
            device_id=device.id, status="success", synced_count=synced, skipped_count=skipped
        )

    async def _fail(
        self, db: AsyncSession, device: DeviceConnection, error: Exception
    ) -> DeviceSyncResult:
        message = error.message if isinstance(error, HearthError) else "Unexpected sync error"
        device.sync_status = SyncStatus.FAILED.value
        device.last_error = message
        device.error_count = (device.error_count or 0) + 1
        await db.flush()
        logger.warning("Device %s sync failed (%d in a row): %s", device.id, device.error_count, message)

        await notification_service.notify(
            db,
            member_id=device.member_id,
            type=NotificationType.DEVICE_SYNC.value,
            title=f"{device.device_name} could not sync",
            content=message,
            priority=NotificationPriority.MEDIUM.value,
            dedup_key=f"device-sync:{device.id}",
            action_url=f"/devices/{device.id}",
        )
        return DeviceSyncResult(device_id=device.id, status="failed", error=message)

    async def sync_single_device(
        self, db: AsyncSession, device: DeviceConnection, force: bool = False
    ) -> DeviceSyncResult:
        now = utcnow()
        if not force and not is_sync_due(device, now):
            return DeviceSyncResult(device_id=device.id, status="skipped")

        device.sync_status = SyncStatus.SYNCING.value
        await db.flush()
        try:
            samples = await self._fetch(device, now)
        except HearthError as e:
            return await self._fail(db, device, e)
        except Exception as e:
            logger.error("Unexpected error syncing device %s", device.id, exc_info=True)
            return await self._fail(db, device, e)
        return await self._store(db, device, samples, now)

    async def sync_all_devices(
        self, db: AsyncSession, member_ids: Optional[List[uuid.UUID]] = None
    ) -> SyncSummary:
        if not settings.enable_device_sync:
            raise ValidationError(message="Device sync is disabled on this server")

        stmt = select(DeviceConnection).where(
            DeviceConnection.is_active.is_(True),
            DeviceConnection.is_auto_sync.is_(True),
            DeviceConnection.sync_status != SyncStatus.DISABLED.value,
        )
        if member_ids is not None:
            if not member_ids:
                return SyncSummary(total=0, success=0, failed=0, skipped=0, synced_data_count=0, results=[])
            stmt = stmt.where(DeviceConnection.member_id.in_(member_ids))
        result = await db.execute(stmt)
        devices = list(result.scalars().all())

        now = utcnow()
        results: List[DeviceSyncResult] = []
        due = []
        for device in devices:
            if is_sync_due(device, now):
                device.sync_status = SyncStatus.SYNCING.value
                due.append(device)
            else:
                results.append(DeviceSyncResult(device_id=device.id, status="skipped"))
        if due:
            await db.flush()

        outcomes = await asyncio.gather(
            *(self._fetch(device, now) for device in due), return_exceptions=True
        )
        for device, outcome in zip(due, outcomes):
            if isinstance(outcome, HearthError):
                results.append(await self._fail(db, device, outcome))
            elif isinstance(outcome, Exception):
                logger.error("Unexpected error syncing device %s", device.id, exc_info=outcome)
                results.append(await self._fail(db, device, outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(await self._store(db, device, outcome, now))

        summary = SyncSummary(
            total=len(devices),
            success=sum(1 for r in results if r.status == "success"),
            failed=sum(1 for r in results if r.status == "failed"),
            skipped=sum(1 for r in results if r.status == "skipped"),
            synced_data_count=sum(r.synced_count for r in results),
            results=results,
        )
        logger.info(
            "Device sync finished: %d devices, %d ok, %d failed, %d skipped, %d samples stored",
            summary.total, summary.success, summary.failed, summary.skipped, summary.synced_data_count,
        )
        return summary

    async def trigger_device_sync(
        self, db: AsyncSession, user: User, device_pk: uuid.UUID
    ) -> DeviceSyncResult:
        device = await self._get_device(db, user, device_pk, write=True)
        return await self.sync_single_device(db, device, force=True)

    # ══════════════════════════════════════════════════════════════════════
    # Maintenance
    # ══════════════════════════════════════════════════════════════════════

    async def get_sync_stats(self, db: AsyncSession, member_ids: List[uuid.UUID]) -> SyncStats:
        if not member_ids:
            return SyncStats(total_devices=0, active_devices=0, by_status={}, synced_last_24h=0)
        result = await db.execute(
            select(DeviceConnection).where(DeviceConnection.member_id.in_(member_ids))
        )
        devices = list(result.scalars().all())

        cutoff = utcnow() - timedelta(hours=24)
        by_status = {}
        for device in devices:
            by_status[device.sync_status] = by_status.get(device.sync_status, 0) + 1
        return SyncStats(
            total_devices=len(devices),
            active_devices=sum(1 for d in devices if d.is_active),
            by_status=by_status,
            synced_last_24h=sum(
                1 for d in devices
                if d.last_sync_at is not None and ensure_utc(d.last_sync_at) >= cutoff
            ),
        )

    async def cleanup_stale_devices(
        self, db: AsyncSession, member_ids: Optional[List[uuid.UUID]] = None
    ) -> int:
        """
        Disables active devices with no sync in `stale_device_days`.
        A device that never synced is stale once it was connected that long ago.
        """
        cutoff = utcnow() - timedelta(days=settings.stale_device_days)
        stmt = select(DeviceConnection).where(DeviceConnection.is_active.is_(True))
        if member_ids is not None:
            stmt = stmt.where(DeviceConnection.member_id.in_(member_ids))
        result = await db.execute(stmt)

        stale = []
        for device in result.scalars().all():
            reference = device.last_sync_at or device.connection_date
            if reference is None or ensure_utc(reference) < cutoff:
                self._disable(device)
                stale.append(device)
        if stale:
            await db.flush()
            logger.info("Disabled %d stale devices", len(stale))
        return len(stale)


device_sync_service = DeviceSyncService()

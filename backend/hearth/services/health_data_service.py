"""
Hearth Butler Backend — Health Data Service
=============================================

What:  Records, lists, summarises and deletes health measurements, and
       deduplicates samples arriving from several device platforms.
Why:   A member wearing an Apple Watch and stepping on a Huawei scale
       produces overlapping readings; only one per time window should survive.
How:   A new sample conflicts with existing rows of the same metric inside
       a per-metric time window. The higher-priority source wins; equal
       priority keeps the newest measurement.

Source priority (higher wins):
    APPLE_HEALTHKIT 9, HUAWEI_HEALTH 8, GOOGLE_FIT 7, XIAOMI_HEALTH 6,
    SAMSUNG_HEALTH 5, GARMIN_CONNECT 4, FITBIT 3, WEARABLE 2,
    MEDICAL_REPORT 1, MANUAL 0
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import DatabaseError, HearthError, NotFoundError, ValidationError
from hearth.models.enums import HealthDataSource
from hearth.models.health import HealthData
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.user import User
from hearth.schemas.health import (
    BloodPressureTrend,
    HealthDataCreate,
    HealthDataListResponse,
    HealthDataResponse,
    HealthTrendsResponse,
    MetricTrend,
    TrendPoint,
)
from hearth.services.family_service import family_service
from hearth.services.health_platforms.base import HealthSample

logger = logging.getLogger(__name__)

SOURCE_PRIORITY = {
    HealthDataSource.APPLE_HEALTHKIT.value: 9,
    HealthDataSource.HUAWEI_HEALTH.value: 8,
    HealthDataSource.GOOGLE_FIT.value: 7,
    HealthDataSource.XIAOMI_HEALTH.value: 6,
    HealthDataSource.SAMSUNG_HEALTH.value: 5,
    HealthDataSource.GARMIN_CONNECT.value: 4,
    HealthDataSource.FITBIT.value: 3,
    HealthDataSource.WEARABLE.value: 2,
    HealthDataSource.MEDICAL_REPORT.value: 1,
    HealthDataSource.MANUAL.value: 0,
}

# Conflict windows in hours, per metric kind
DEDUP_WINDOW_HOURS = {
    "weight": 1.0,
    "heart_rate": 0.25,
    "blood_pressure": 0.5,
    "steps": 1.0,
    "sleep": 1.0,
    "default": 1.0,
}

_METRIC_COLUMN = {
    "weight": HealthData.weight,
    "heart_rate": HealthData.heart_rate,
    "blood_pressure": HealthData.blood_pressure_systolic,
    "steps": HealthData.steps,
    "sleep": HealthData.sleep_minutes,
}

INSERT = "INSERT"
UPDATE = "UPDATE"
SKIP = "SKIP"

TREND_DEFAULT_DAYS = 30


@dataclass
class DedupDecision:
    action: str
    existing_id: Optional[uuid.UUID] = None
    reason: str = ""


def source_priority(source: str) -> int:
    return SOURCE_PRIORITY.get(source, 0)


def resolve_conflict(
    new_source: str,
    new_measured_at: datetime,
    existing_source: str,
    existing_measured_at: datetime,
) -> Tuple[str, str]:
    """
    Decides what to do with a sample that conflicts with an existing row.

    Returns (action, reason) where action is UPDATE or SKIP.
    """
    new_p, old_p = source_priority(new_source), source_priority(existing_source)
    if new_p > old_p:
        return UPDATE, f"{new_source} outranks {existing_source}"
    if new_p < old_p:
        return SKIP, f"{existing_source} outranks {new_source}"
    if ensure_utc(new_measured_at) > ensure_utc(existing_measured_at):
        return UPDATE, "same source priority, newer measurement"
    return SKIP, "same source priority, existing measurement is newer or equal"


def metric_trend(points: Sequence[Tuple[datetime, float]]) -> MetricTrend:
    """Summarises (measured_at, value) pairs given in chronological order."""
    if not points:
        return MetricTrend()
    values = [value for _, value in points]
    return MetricTrend(
        data=[TrendPoint(date=measured_at, value=value) for measured_at, value in points],
        average=round(sum(values) / len(values), 1),
        min=min(values),
        max=max(values),
        change=round(values[-1] - values[0], 1) if len(values) > 1 else None,
    )


class HealthDataService:
    """Member health measurements with device-aware deduplication."""

    async def record(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        data: HealthDataCreate,
    ) -> HealthData:
        """Stores a manual measurement. Manual entries are never deduplicated."""
        await family_service.require_member_access(db, user, member_id, write=True)
        try:
            record = HealthData(
                member_id=member_id,
                weight=data.weight,
                body_fat=data.body_fat,
                muscle_mass=data.muscle_mass,
                blood_pressure_systolic=data.blood_pressure_systolic,
                blood_pressure_diastolic=data.blood_pressure_diastolic,
                heart_rate=data.heart_rate,
                steps=data.steps,
                sleep_minutes=data.sleep_minutes,
                measured_at=data.measured_at or utcnow(),
                source=data.source.value,
                notes=data.notes.strip() if data.notes else None,
            )
            db.add(record)
            await db.flush()
            logger.info("Health data %s recorded for member %s", record.id, member_id)
            return record
        except Exception as e:
            logger.error("Database error recording health data: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the health record. Please try again.",
                context={"member_id": str(member_id)},
            )

    async def list_records(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
    ) -> HealthDataListResponse:
        """Newest-first listing with an optional measured_at range."""
        await family_service.require_member_access(db, user, member_id)
        try:
            conditions = [HealthData.member_id == member_id, HealthData.deleted_at.is_(None)]
            if start:
                conditions.append(HealthData.measured_at >= start)
            if end:
                conditions.append(HealthData.measured_at <= end)

            result = await db.execute(
                select(HealthData)
                .where(*conditions)
                .order_by(HealthData.measured_at.desc())
                .limit(limit + 1)
            )
            records = list(result.scalars().all())

            count_result = await db.execute(select(func.count(HealthData.id)).where(*conditions))
            total_count = count_result.scalar() or 0

            has_more = len(records) > limit
            return HealthDataListResponse(
                records=[HealthDataResponse.model_validate(r) for r in records[:limit]],
                total_count=total_count,
                has_more=has_more,
            )
        except HearthError:
            raise
        except Exception as e:
            logger.error("Database error listing health data: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve health records. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def latest(self, db: AsyncSession, user: User, member_id: uuid.UUID) -> HealthData:
        await family_service.require_member_access(db, user, member_id)
        result = await db.execute(
            select(HealthData)
            .where(HealthData.member_id == member_id, HealthData.deleted_at.is_(None))
            .order_by(HealthData.measured_at.desc())
            .limit(1)
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundError(resource="health record")
        return record

    async def delete_record(self, db: AsyncSession, user: User, record_id: uuid.UUID) -> None:
        result = await db.execute(
            select(HealthData).where(HealthData.id == record_id, HealthData.deleted_at.is_(None))
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(resource="health record", resource_id=str(record_id))
        await family_service.require_member_access(db, user, record.member_id, write=True)
        record.deleted_at = utcnow()
        await db.flush()

    async def trends(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        days: int = TREND_DEFAULT_DAYS,
    ) -> HealthTrendsResponse:
        """
        Per-metric series with average, min, max and change over a window.

        The window defaults to the `days` before `end`, and `end` to now.
        """
        await family_service.require_member_access(db, user, member_id)
        end = ensure_utc(end) if end else utcnow()
        start = ensure_utc(start) if start else end - timedelta(days=days)
        if start > end:
            raise ValidationError(message="start must be before end", field="start")

        result = await db.execute(
            select(HealthData)
            .where(
                HealthData.member_id == member_id,
                HealthData.deleted_at.is_(None),
                HealthData.measured_at >= start,
                HealthData.measured_at <= end,
            )
            .order_by(HealthData.measured_at.asc())
        )
        records = list(result.scalars().all())

        def series(field: str) -> MetricTrend:
            return metric_trend([
                (r.measured_at, float(getattr(r, field)))
                for r in records if getattr(r, field) is not None
            ])

        # Only complete readings count towards blood pressure
        paired = [
            r for r in records
            if r.blood_pressure_systolic is not None and r.blood_pressure_diastolic is not None
        ]
        return HealthTrendsResponse(
            start=start,
            end=end,
            weight=series("weight"),
            body_fat=series("body_fat"),
            muscle_mass=series("muscle_mass"),
            heart_rate=series("heart_rate"),
            blood_pressure=BloodPressureTrend(
                systolic=metric_trend([(r.measured_at, float(r.blood_pressure_systolic)) for r in paired]),
                diastolic=metric_trend([(r.measured_at, float(r.blood_pressure_diastolic)) for r in paired]),
            ),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Deduplication
    # ══════════════════════════════════════════════════════════════════════

    async def check_duplication(
        self,
        db: AsyncSession,
        member_id: uuid.UUID,
        sample: HealthSample,
    ) -> DedupDecision:
        """
        Finds the strongest conflicting row for a sample and decides
        INSERT, UPDATE (replace that row) or SKIP.
        """
        kind = sample.metric_kind()
        window = timedelta(hours=DEDUP_WINDOW_HOURS.get(kind, DEDUP_WINDOW_HOURS["default"]))
        column = _METRIC_COLUMN.get(kind)

        conditions = [
            HealthData.member_id == member_id,
            HealthData.deleted_at.is_(None),
            HealthData.measured_at >= sample.measured_at - window,
            HealthData.measured_at <= sample.measured_at + window,
        ]
        if column is not None:
            conditions.append(column.is_not(None))

        result = await db.execute(
            select(HealthData).where(*conditions).order_by(HealthData.measured_at.desc())
        )
        conflicts = list(result.scalars().all())
        if not conflicts:
            return DedupDecision(action=INSERT, reason="no conflicting records")

        strongest = max(
            conflicts,
            key=lambda r: (source_priority(r.source), ensure_utc(r.measured_at)),
        )
        action, reason = resolve_conflict(
            sample.source, sample.measured_at, strongest.source, strongest.measured_at
        )
        return DedupDecision(action=action, existing_id=strongest.id, reason=reason)

    async def store_sample(
        self,
        db: AsyncSession,
        member_id: uuid.UUID,
        sample: HealthSample,
        device_connection_id: Optional[uuid.UUID] = None,
    ) -> str:
        """Persists a device sample according to the dedup decision. Returns the action."""
        decision = await self.check_duplication(db, member_id, sample)

        if decision.action == SKIP:
            logger.debug("Skipping %s sample at %s: %s", sample.source, sample.measured_at, decision.reason)
            return SKIP

        if decision.action == UPDATE:
            existing = await db.get(HealthData, decision.existing_id)
            if existing is not None:
                self._copy_sample(existing, sample, device_connection_id)
                await db.flush()
                return UPDATE

        record = HealthData(member_id=member_id, notes=None)
        self._copy_sample(record, sample, device_connection_id)
        db.add(record)
        await db.flush()
        return INSERT

    @staticmethod
    def _copy_sample(
        record: HealthData,
        sample: HealthSample,
        device_connection_id: Optional[uuid.UUID],
    ) -> None:
        record.measured_at = sample.measured_at
        record.source = sample.source
        record.device_connection_id = device_connection_id
        for field in (
            "weight",
            "body_fat",
            "blood_pressure_systolic",
            "blood_pressure_diastolic",
            "heart_rate",
            "steps",
            "sleep_minutes",
        ):
            value = getattr(sample, field)
            if value is not None:
                setattr(record, field, value)


health_data_service = HealthDataService()

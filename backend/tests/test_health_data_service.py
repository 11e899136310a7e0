"""
Hearth Butler Backend — Health Data Service Unit Tests
========================================================

What:  Tests for multi-source deduplication and manual recording.
How:   Pure conflict resolution is tested directly; the service is driven
       with a mocked session whose execute() results are queued in order.

What we test:
    ✅ Source priority decides conflicts; equal priority keeps the newest
    ✅ Metric kind picks the dedup window
    ✅ store_sample inserts, replaces or skips according to the decision
    ✅ Manual records are stored as given
    ✅ Trends: per-metric average, min, max and change over a window
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import ValidationError
from hearth.models.health import HealthData
from hearth.schemas.health import HealthDataCreate
from hearth.services.health_data_service import (
    INSERT,
    SKIP,
    UPDATE,
    HealthDataService,
    metric_trend,
    resolve_conflict,
    source_priority,
)
from hearth.services.health_platforms.base import HealthSample

NOW = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def existing_row(source: str, measured_at: datetime, **metrics) -> HealthData:
    return HealthData(
        id=uuid.uuid4(),
        member_id=uuid.uuid4(),
        source=source,
        measured_at=measured_at,
        **metrics,
    )


class TestConflictResolution:

    def test_priority_order(self):
        assert source_priority("APPLE_HEALTHKIT") > source_priority("HUAWEI_HEALTH")
        assert source_priority("HUAWEI_HEALTH") > source_priority("WEARABLE")
        assert source_priority("MANUAL") == 0
        assert source_priority("SOMETHING_NEW") == 0

    def test_higher_priority_replaces(self):
        action, _ = resolve_conflict("APPLE_HEALTHKIT", NOW, "HUAWEI_HEALTH", NOW)
        assert action == UPDATE

    def test_lower_priority_skipped(self):
        action, reason = resolve_conflict("HUAWEI_HEALTH", NOW, "APPLE_HEALTHKIT", NOW)
        assert action == SKIP
        assert "APPLE_HEALTHKIT" in reason

    def test_equal_priority_newer_wins(self):
        action, _ = resolve_conflict("HUAWEI_HEALTH", NOW + timedelta(minutes=5), "HUAWEI_HEALTH", NOW)
        assert action == UPDATE

    def test_equal_priority_same_time_skipped(self):
        action, _ = resolve_conflict("HUAWEI_HEALTH", NOW, "HUAWEI_HEALTH", NOW)
        assert action == SKIP

    def test_naive_existing_timestamp_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None) - timedelta(minutes=1)
        action, _ = resolve_conflict("HUAWEI_HEALTH", NOW, "HUAWEI_HEALTH", naive)
        assert action == UPDATE


class TestMetricKind:

    @pytest.mark.parametrize("fields,kind", [
        ({"weight": 70.0}, "weight"),
        ({"body_fat": 20.0}, "weight"),
        ({"blood_pressure_systolic": 120, "blood_pressure_diastolic": 80}, "blood_pressure"),
        ({"heart_rate": 72}, "heart_rate"),
        ({"steps": 8000}, "steps"),
        ({"sleep_minutes": 420}, "sleep"),
        ({}, "default"),
    ])
    def test_metric_kind(self, fields, kind):
        sample = HealthSample(measured_at=NOW, source="HUAWEI_HEALTH", **fields)
        assert sample.metric_kind() == kind


class TestStoreSample:

    def setup_method(self):
        self.service = HealthDataService()
        self.member_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_no_conflict_inserts(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(values=[])]
        sample = HealthSample(measured_at=NOW, source="HUAWEI_HEALTH", steps=5000)
        device_id = uuid.uuid4()

        action = await self.service.store_sample(mock_db_session, self.member_id, sample, device_id)

        assert action == INSERT
        (record,) = mock_db_session.added
        assert record.member_id == self.member_id
        assert record.steps == 5000
        assert record.source == "HUAWEI_HEALTH"
        assert record.device_connection_id == device_id

    @pytest.mark.asyncio
    async def test_lower_priority_sample_skipped(self, mock_db_session, make_result):
        conflict = existing_row("APPLE_HEALTHKIT", NOW, weight=70.2)
        mock_db_session.execute.side_effect = [make_result(values=[conflict])]
        sample = HealthSample(measured_at=NOW + timedelta(minutes=10), source="HUAWEI_HEALTH", weight=70.0)

        action = await self.service.store_sample(mock_db_session, self.member_id, sample)

        assert action == SKIP
        assert mock_db_session.added == []
        assert conflict.weight == 70.2

    @pytest.mark.asyncio
    async def test_higher_priority_sample_replaces_existing(self, mock_db_session, make_result):
        conflict = existing_row("HUAWEI_HEALTH", NOW, weight=70.0)
        mock_db_session.execute.side_effect = [make_result(values=[conflict])]
        mock_db_session.get = AsyncMock(return_value=conflict)
        sample = HealthSample(measured_at=NOW + timedelta(minutes=20), source="APPLE_HEALTHKIT", weight=69.8)

        action = await self.service.store_sample(mock_db_session, self.member_id, sample)

        assert action == UPDATE
        assert conflict.weight == 69.8
        assert conflict.source == "APPLE_HEALTHKIT"
        assert mock_db_session.added == []

    @pytest.mark.asyncio
    async def test_strongest_conflict_is_compared(self, mock_db_session, make_result):
        weak = existing_row("MANUAL", NOW, heart_rate=70)
        strong = existing_row("APPLE_HEALTHKIT", NOW - timedelta(minutes=5), heart_rate=71)
        mock_db_session.execute.side_effect = [make_result(values=[weak, strong])]
        sample = HealthSample(measured_at=NOW, source="HUAWEI_HEALTH", heart_rate=72)

        decision = await self.service.check_duplication(mock_db_session, self.member_id, sample)

        assert decision.action == SKIP
        assert decision.existing_id == strong.id


class TestRecordManual:

    @pytest.mark.asyncio
    async def test_record_stores_measurement(self, mock_db_session, user):
        member_id = uuid.uuid4()
        data = HealthDataCreate(weight=68.5, heart_rate=64, notes="  after run  ")

        with patch("hearth.services.health_data_service.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            record = await HealthDataService().record(mock_db_session, user, member_id, data)

        mock_family.require_member_access.assert_awaited_once_with(
            mock_db_session, user, member_id, write=True
        )
        assert record.weight == 68.5
        assert record.source == "MANUAL"
        assert record.notes == "after run"
        assert record.id is not None
        assert record.measured_at is not None

    def test_schema_requires_a_metric(self):
        with pytest.raises(ValueError, match="At least one health metric"):
            HealthDataCreate(notes="nothing measured")

    def test_schema_requires_paired_blood_pressure(self):
        with pytest.raises(ValueError, match="together"):
            HealthDataCreate(blood_pressure_systolic=120)

    def test_schema_rejects_inverted_blood_pressure(self):
        with pytest.raises(ValueError, match="higher than diastolic"):
            HealthDataCreate(blood_pressure_systolic=80, blood_pressure_diastolic=90)


class TestTrends:

    def test_metric_trend_statistics(self):
        points = [(NOW, 70.0), (NOW + timedelta(days=1), 69.0), (NOW + timedelta(days=2), 68.5)]
        trend = metric_trend(points)
        assert [p.value for p in trend.data] == [70.0, 69.0, 68.5]
        assert trend.average == 69.2
        assert trend.min == 68.5
        assert trend.max == 70.0
        assert trend.change == -1.5

    def test_single_point_has_no_change(self):
        trend = metric_trend([(NOW, 72.0)])
        assert trend.average == 72.0
        assert trend.change is None

    def test_empty_series(self):
        trend = metric_trend([])
        assert trend.data == []
        assert trend.average is None

    @pytest.mark.asyncio
    async def test_trends_split_by_metric(self, mock_db_session, make_result, user):
        member_id = uuid.uuid4()
        rows = [
            existing_row("MANUAL", NOW, weight=70.0, heart_rate=60),
            existing_row(
                "MANUAL", NOW + timedelta(days=1),
                blood_pressure_systolic=120, blood_pressure_diastolic=80,
            ),
            existing_row("MANUAL", NOW + timedelta(days=2), weight=69.0, heart_rate=66),
        ]
        mock_db_session.execute.side_effect = [make_result(values=rows)]

        with patch("hearth.services.health_data_service.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            trends = await HealthDataService().trends(
                mock_db_session, user, member_id,
                start=NOW - timedelta(days=1), end=NOW + timedelta(days=3),
            )

        assert trends.weight.change == -1.0
        assert trends.heart_rate.average == 63.0
        assert trends.body_fat.data == []
        assert trends.blood_pressure.systolic.max == 120.0
        assert trends.blood_pressure.diastolic.data[0].value == 80.0
        assert trends.start == NOW - timedelta(days=1)

    @pytest.mark.asyncio
    async def test_window_defaults_to_days_before_end(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(values=[])]

        with patch("hearth.services.health_data_service.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            trends = await HealthDataService().trends(
                mock_db_session, user, uuid.uuid4(), end=NOW, days=7
            )

        assert trends.start == NOW - timedelta(days=7)
        assert trends.weight.average is None

    @pytest.mark.asyncio
    async def test_start_after_end_rejected(self, mock_db_session, user):
        with patch("hearth.services.health_data_service.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            with pytest.raises(ValidationError):
                await HealthDataService().trends(
                    mock_db_session, user, uuid.uuid4(), start=NOW, end=NOW - timedelta(days=1)
                )
        mock_db_session.execute.assert_not_awaited()

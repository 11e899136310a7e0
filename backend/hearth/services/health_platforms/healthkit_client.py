"""
Hearth Butler Backend — Apple HealthKit Client
================================================

What:  Reads HealthKit samples for a connected iPhone / Apple Watch.
Why:   HealthKit has no server API; the companion iOS app uploads samples
       to a relay, and this client pulls them from there.
How:   GET {relay}/v1/devices/{device_id}/samples?start=..&end=..
       Response: {"samples": [{"type", "value", "unit", "start_date", "end_date"}]}

Supported sample types (HealthKit identifiers or short aliases):
    HKQuantityTypeIdentifierBodyMass            weight (kg or lb)
    HKQuantityTypeIdentifierBodyFatPercentage   body_fat (fraction or %)
    HKQuantityTypeIdentifierHeartRate           heart_rate (count/min)
    HKQuantityTypeIdentifierStepCount           steps
    HKCorrelationTypeIdentifierBloodPressure    blood_pressure {systolic, diastolic}
    HKCategoryTypeIdentifierSleepAnalysis       sleep (end - start)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from hearth.config import settings
from hearth.models.device import DeviceConnection
from hearth.models.enums import DevicePlatform, HealthDataSource
from hearth.models.mixins import ensure_utc
from hearth.services.health_platforms.base import HealthSample, RestPlatformClient
from hearth.services.resilience import CircuitBreaker

logger = logging.getLogger(__name__)

_TYPE_ALIASES = {
    "HKQuantityTypeIdentifierBodyMass": "weight",
    "HKQuantityTypeIdentifierBodyFatPercentage": "body_fat",
    "HKQuantityTypeIdentifierHeartRate": "heart_rate",
    "HKQuantityTypeIdentifierStepCount": "steps",
    "HKCorrelationTypeIdentifierBloodPressure": "blood_pressure",
    "HKCategoryTypeIdentifierSleepAnalysis": "sleep",
}

LB_TO_KG = 0.45359237


def parse_timestamp(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def parse_sample(raw: Dict[str, Any]) -> Optional[HealthSample]:
    """Translates one relay sample; returns None for unknown or malformed entries."""
    kind = _TYPE_ALIASES.get(raw.get("type", ""), raw.get("type"))
    try:
        start = parse_timestamp(raw["start_date"])
        value = raw.get("value")
        sample = HealthSample(measured_at=start, source=HealthDataSource.APPLE_HEALTHKIT.value)

        if kind == "weight":
            weight = float(value)
            if (raw.get("unit") or "kg").lower() in ("lb", "lbs"):
                weight *= LB_TO_KG
            sample.weight = round(weight, 1)
        elif kind == "body_fat":
            fat = float(value)
            sample.body_fat = round(fat * 100 if fat <= 1 else fat, 1)
        elif kind == "heart_rate":
            sample.heart_rate = int(round(float(value)))
        elif kind == "steps":
            sample.steps = int(value)
        elif kind == "blood_pressure":
            sample.blood_pressure_systolic = int(value["systolic"])
            sample.blood_pressure_diastolic = int(value["diastolic"])
        elif kind == "sleep":
            end = parse_timestamp(raw["end_date"])
            sample.sleep_minutes = int((end - start).total_seconds() // 60)
        else:
            return None
        return sample
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("Skipping malformed HealthKit sample %r: %s", raw.get("type"), str(e))
        return None


class HealthKitClient(RestPlatformClient):
    platform = DevicePlatform.APPLE_HEALTHKIT.value
    service_name = "healthkit"

    def __init__(self):
        super().__init__(
            base_url=settings.healthkit_relay_url,
            timeout=settings.health_platform_timeout,
            circuit_breaker=CircuitBreaker(
                name=self.service_name,
                failure_threshold=settings.cb_failure_threshold,
                recovery_timeout=settings.cb_recovery_timeout,
            ),
        )

    async def fetch_samples(
        self,
        device: DeviceConnection,
        start: datetime,
        end: datetime,
    ) -> List[HealthSample]:
        headers = {}
        if device.access_token:
            headers["Authorization"] = f"Bearer {device.access_token}"

        payload = await self._request(
            "GET",
            f"/v1/devices/{device.device_id}/samples",
            params={"start": start.isoformat(), "end": end.isoformat()},
            headers=headers,
        )
        samples = [parse_sample(raw) for raw in payload.get("samples", [])]
        parsed = [s for s in samples if s is not None]
        logger.info(
            "HealthKit returned %d samples for device %s (%d usable)",
            len(samples), device.device_id, len(parsed),
        )
        return parsed


healthkit_client = HealthKitClient()

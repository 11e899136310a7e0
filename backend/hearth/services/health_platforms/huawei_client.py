"""
Hearth Butler Backend — Huawei Health Kit Client
==================================================

What:  Pulls sample points from the Huawei Health Kit REST API.
How:   POST {base}/healthkit/v2/sampleSets:polymerize with the member's
       OAuth bearer token; one request covers every supported data type.
       Request times are epoch milliseconds; sample point times are
       epoch nanoseconds.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from hearth.config import settings
from hearth.exceptions import ExternalServiceError
from hearth.models.device import DeviceConnection
from hearth.models.enums import DevicePlatform, HealthDataSource
from hearth.services.health_platforms.base import HealthSample, RestPlatformClient
from hearth.services.resilience import CircuitBreaker

logger = logging.getLogger(__name__)

STEPS = "com.huawei.continuous.steps.delta"
HEART_RATE = "com.huawei.instantaneous.heart_rate"
BODY_WEIGHT = "com.huawei.instantaneous.body_weight"
BLOOD_PRESSURE = "com.huawei.instantaneous.blood_pressure"
SLEEP = "com.huawei.continuous.sleep.fragment"

DATA_TYPES = (STEPS, HEART_RATE, BODY_WEIGHT, BLOOD_PRESSURE, SLEEP)

# sleep_state values counted as asleep: light, deep, REM
_ASLEEP_STATES = {1, 2, 3}


def _from_nanos(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1_000_000_000, tz=timezone.utc)


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _fields(point: Dict[str, Any]) -> Dict[str, float]:
    values = {}
    for field in point.get("value", []):
        name = field.get("fieldName")
        number = field.get("floatValue", field.get("integerValue"))
        if name and number is not None:
            values[name] = number
    return values


def parse_sample_point(point: Dict[str, Any]) -> Optional[HealthSample]:
    """Translates one sample point; returns None for unsupported or malformed points."""
    data_type = point.get("dataTypeName")
    try:
        fields = _fields(point)
        sample = HealthSample(
            measured_at=_from_nanos(point["startTime"]),
            source=HealthDataSource.HUAWEI_HEALTH.value,
        )
        if data_type == STEPS:
            sample.steps = int(fields["steps_delta"])
        elif data_type == HEART_RATE:
            sample.heart_rate = int(round(fields["bpm"]))
        elif data_type == BODY_WEIGHT:
            sample.weight = round(float(fields["body_weight"]), 1)
            if "body_fat_rate" in fields:
                sample.body_fat = round(float(fields["body_fat_rate"]), 1)
        elif data_type == BLOOD_PRESSURE:
            sample.blood_pressure_systolic = int(round(fields["systolic_pressure"]))
            sample.blood_pressure_diastolic = int(round(fields["diastolic_pressure"]))
        elif data_type == SLEEP:
            if int(fields.get("sleep_state", 0)) not in _ASLEEP_STATES:
                return None
            end = _from_nanos(point["endTime"])
            sample.sleep_minutes = int((end - sample.measured_at).total_seconds() // 60)
        else:
            return None
        return sample
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("Skipping malformed Huawei sample point %s: %s", data_type, str(e))
        return None


class HuaweiHealthClient(RestPlatformClient):
    platform = DevicePlatform.HUAWEI_HEALTH.value
    service_name = "huawei_health"

    def __init__(self):
        super().__init__(
            base_url=settings.huawei_api_base_url,
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
        if not device.access_token:
            raise ExternalServiceError(
                message="Huawei Health authorisation is missing; reconnect the device",
                service=self.service_name,
                context={"device_id": device.device_id},
            )

        payload = await self._request(
            "POST",
            "/healthkit/v2/sampleSets:polymerize",
            json={
                "polymerizeWith": [{"dataTypeName": t} for t in DATA_TYPES],
                "startTime": _to_millis(start),
                "endTime": _to_millis(end),
            },
            headers={"Authorization": f"Bearer {device.access_token}"},
        )

        samples: List[HealthSample] = []
        for group in payload.get("group", []):
            for sample_set in group.get("sampleSet", []):
                for point in sample_set.get("samplePoints", []):
                    sample = parse_sample_point(point)
                    if sample is not None:
                        samples.append(sample)
        logger.info("Huawei Health returned %d usable samples for device %s", len(samples), device.device_id)
        return samples


huawei_client = HuaweiHealthClient()

"""Health platform clients, keyed by DevicePlatform value."""

from typing import Dict

from hearth.exceptions import ValidationError
from hearth.services.health_platforms.base import HealthPlatformClient, HealthSample
from hearth.services.health_platforms.healthkit_client import healthkit_client
from hearth.services.health_platforms.huawei_client import huawei_client

PLATFORM_CLIENTS: Dict[str, HealthPlatformClient] = {
    healthkit_client.platform: healthkit_client,
    huawei_client.platform: huawei_client,
}


def get_platform_client(platform: str) -> HealthPlatformClient:
    client = PLATFORM_CLIENTS.get(platform)
    if client is None:
        raise ValidationError(message=f"Unsupported device platform '{platform}'", field="platform")
    return client


__all__ = [
    "HealthPlatformClient",
    "HealthSample",
    "PLATFORM_CLIENTS",
    "get_platform_client",
    "healthkit_client",
    "huawei_client",
]

"""
Hearth Butler Backend — Device Connection and Sync Schemas
============================================================
"""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from hearth.models.enums import DevicePlatform


class DeviceConnectRequest(BaseModel):
    device_id: str = Field(min_length=1, max_length=255, description="Identifier on the platform")
    device_type: str = Field(min_length=1, max_length=50, examples=["smartwatch", "scale"])
    device_name: str = Field(min_length=1, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    platform: DevicePlatform
    access_token: Optional[str] = Field(default=None, max_length=4096)
    refresh_token: Optional[str] = Field(default=None, max_length=4096)
    sync_interval: Optional[int] = Field(default=None, ge=5, le=1440, description="Minutes")
    is_auto_sync: bool = True


class DeviceResponse(BaseModel):
    """Tokens are never returned."""
    id: uuid.UUID
    member_id: uuid.UUID
    device_id: str
    device_type: str
    device_name: str
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    platform: str
    last_sync_at: Optional[datetime] = None
    sync_status: str
    sync_interval: int
    is_active: bool
    is_auto_sync: bool
    connection_date: datetime
    disconnection_date: Optional[datetime] = None
    last_error: Optional[str] = None
    error_count: int

    model_config = {"from_attributes": True}


class SyncRequest(BaseModel):
    device_id: Optional[uuid.UUID] = Field(
        default=None, description="Sync one device (forced); omit to sync all due devices"
    )


class DeviceSyncResult(BaseModel):
    device_id: uuid.UUID
    status: Literal["success", "skipped", "failed"]
    synced_count: int = 0
    skipped_count: int = 0
    error: Optional[str] = None


class SyncSummary(BaseModel):
    total: int
    success: int
    failed: int
    skipped: int
    synced_data_count: int
    results: List[DeviceSyncResult]


class SyncStats(BaseModel):
    total_devices: int
    active_devices: int
    by_status: Dict[str, int]
    synced_last_24h: int


class CleanupResult(BaseModel):
    disabled: int

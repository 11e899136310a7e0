"""
Hearth Butler Backend — Notification Schemas
==============================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    type: str
    title: str
    content: str
    priority: str
    channels: List[str]
    status: str
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int

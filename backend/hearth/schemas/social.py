"""
Hearth Butler Backend — Social Schemas
========================================

What:  Share links, tracking events, share statistics, family leaderboards
       and achievements.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from hearth.models.enums import (
    LeaderboardTimeframe,
    LeaderboardType,
    ShareContentType,
    ShareEventType,
    SharePrivacy,
)


# ══════════════════════════════════════════════════════════════════════════
# Sharing
# ══════════════════════════════════════════════════════════════════════════

class ShareCreate(BaseModel):
    member_id: uuid.UUID
    content_type: ShareContentType
    platforms: List[str] = Field(min_length=1, max_length=10)
    privacy: SharePrivacy = SharePrivacy.PUBLIC
    target_id: Optional[uuid.UUID] = Field(
        default=None, description="Report, meal log or other record being shared"
    )
    custom_message: Optional[str] = Field(default=None, max_length=500)


class SharedContentResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    content_type: str
    title: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="content_metadata")
    share_token: str
    share_url: str
    shared_platforms: List[str]
    privacy_level: str
    view_count: int
    like_count: int
    comment_count: int
    share_count: int
    click_count: int
    download_count: int
    status: str
    expires_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class PublicShareResponse(BaseModel):
    """What an anonymous visitor of a share link sees."""
    content_type: str
    title: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    member_name: str
    member_avatar: Optional[str] = None
    view_count: int
    like_count: int
    comment_count: int
    share_count: int
    created_at: datetime
    expires_at: Optional[datetime] = None


class ShareEventCreate(BaseModel):
    event_type: ShareEventType
    platform: Optional[str] = Field(default=None, max_length=50)


class ShareEventResponse(BaseModel):
    share_token: str
    event_type: str
    count: int = Field(description="Counter value after this event")


class ShareStatsResponse(BaseModel):
    member_id: uuid.UUID
    total_shares: int
    active_shares: int
    by_type: Dict[str, int]
    totals: Dict[str, int] = Field(description="views, likes, comments, shares, clicks, downloads")


# ══════════════════════════════════════════════════════════════════════════
# Leaderboard
# ══════════════════════════════════════════════════════════════════════════

class LeaderboardItem(BaseModel):
    rank: int
    member_id: uuid.UUID
    member_name: str
    avatar: Optional[str] = None
    value: float
    display_value: str
    change: Literal["up", "down", "same", "new"]
    change_value: Optional[int] = None


class LeaderboardResponse(BaseModel):
    family_id: uuid.UUID
    type: str
    title: str
    description: str
    unit: str
    timeframe: str
    period_start: datetime
    period_end: datetime
    total_participants: int
    items: List[LeaderboardItem]
    my_rank: Optional[LeaderboardItem] = None
    last_updated: datetime


class SnapshotRequest(BaseModel):
    family_id: uuid.UUID
    type: LeaderboardType
    timeframe: LeaderboardTimeframe = LeaderboardTimeframe.WEEKLY


class LeaderboardEntryResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    leaderboard_type: str
    period: str
    period_start: datetime
    period_end: datetime
    score: float
    rank: int
    previous_rank: Optional[int] = None
    rank_change: Optional[int] = None
    total_participants: int
    calculated_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Achievements
# ══════════════════════════════════════════════════════════════════════════

class AchievementDefinitionResponse(BaseModel):
    type: str
    title: str
    description: str
    rarity: str
    points: int
    metric: str
    threshold: float


class AchievementResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    achievement_type: str
    title: str
    description: str
    rarity: str
    points: int
    unlocked_at: datetime

    model_config = {"from_attributes": True}


class AchievementCheckResponse(BaseModel):
    unlocked: List[AchievementResponse]
    metrics: Dict[str, float]


class AchievementStatsResponse(BaseModel):
    member_id: uuid.UUID
    total: int
    total_points: int
    available: int
    by_rarity: Dict[str, int]

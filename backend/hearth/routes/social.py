"""
Hearth Butler Backend — Social Routes
=======================================

What:  Share links for health achievements, family leaderboards and badges.

    POST   /api/social/share                      create a share link (201)
    GET    /api/social/share/{token}              public view, counts a VIEW
    POST   /api/social/share/{token}/events       public like / click / comment / download / share
    DELETE /api/social/share/{token}              revoke
    GET    /api/social/stats                      share statistics for a member
    GET    /api/social/leaderboard                family leaderboard
    POST   /api/social/leaderboard/snapshot       persist the current ranking (201)
    GET    /api/social/leaderboard/history        a member's saved rankings
    GET    /api/social/achievements               achievement catalogue
    GET    /api/social/achievements/members/{id}  a member's unlocked achievements
    GET    /api/social/achievements/members/{id}/stats   totals by rarity
    POST   /api/social/achievements/members/{id}/check   unlock newly earned achievements

The two public endpoints work without a token; a signed-in family member
can also open PRIVATE shares of their own family.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import LeaderboardTimeframe, LeaderboardType
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, client_ip, get_current_user, get_optional_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.social import (
    AchievementCheckResponse,
    AchievementDefinitionResponse,
    AchievementResponse,
    AchievementStatsResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    PublicShareResponse,
    ShareCreate,
    SharedContentResponse,
    ShareEventCreate,
    ShareEventResponse,
    ShareStatsResponse,
    SnapshotRequest,
)
from hearth.services.achievement_service import achievement_service
from hearth.services.leaderboard_service import leaderboard_service
from hearth.services.share_service import share_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/social", tags=["Social"], responses=AUTH_RESPONSES)

_EXPIRED = {410: {"description": "Share link expired", "model": ErrorResponse}}

TokenPath = Path(..., min_length=8, max_length=64, description="Share token from the share URL")


# ── Sharing ───────────────────────────────────────────────────────────────

@router.post(
    "/share",
    status_code=201,
    response_model=SharedContentResponse,
    responses={400: {"description": "Invalid content type or platforms", "model": ErrorResponse}},
    summary="Create a share link",
)
async def create_share(
    body: ShareCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SharedContentResponse:
    share = await share_service.create_share(db, user, body)
    return SharedContentResponse.model_validate(share)


@router.get(
    "/share/{token}",
    response_model=PublicShareResponse,
    responses=_EXPIRED,
    summary="Open a share link",
)
async def view_share(
    request: Request,
    token: str = TokenPath,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> PublicShareResponse:
    return await share_service.get_shared_content(
        db,
        token,
        viewer=viewer,
        user_agent=request.headers.get("User-Agent"),
        ip_address=client_ip(request),
        referrer=request.headers.get("Referer"),
    )


@router.post(
    "/share/{token}/events",
    response_model=ShareEventResponse,
    responses={**_EXPIRED, 400: {"description": "Event type not trackable", "model": ErrorResponse}},
    summary="Track an interaction with a share",
)
async def track_share_event(
    request: Request,
    body: ShareEventCreate,
    token: str = TokenPath,
    db: AsyncSession = Depends(get_db_session),
) -> ShareEventResponse:
    return await share_service.track_event(
        db,
        token,
        body.event_type,
        platform=body.platform,
        user_agent=request.headers.get("User-Agent"),
        ip_address=client_ip(request),
        referrer=request.headers.get("Referer"),
    )


@router.delete("/share/{token}", response_model=MessageResponse, summary="Revoke a share link")
async def revoke_share(
    token: str = TokenPath,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await share_service.revoke_share(db, user, token)
    return MessageResponse(message="Share revoked")


@router.get("/stats", response_model=ShareStatsResponse, summary="Share statistics")
async def share_stats(
    member_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShareStatsResponse:
    return await share_service.share_stats(db, user, member_id)


# ── Leaderboards ──────────────────────────────────────────────────────────

@router.get("/leaderboard", response_model=LeaderboardResponse, summary="Family leaderboard")
async def get_leaderboard(
    family_id: uuid.UUID = Query(...),
    type: LeaderboardType = Query(default=LeaderboardType.HEALTH_SCORE),
    timeframe: LeaderboardTimeframe = Query(default=LeaderboardTimeframe.WEEKLY),
    limit: int = Query(default=50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LeaderboardResponse:
    return await leaderboard_service.get_leaderboard(db, user, family_id, type, timeframe, limit)


@router.post(
    "/leaderboard/snapshot",
    status_code=201,
    response_model=List[LeaderboardEntryResponse],
    summary="Save the current ranking",
    description="Stores one entry per member so later rankings can report rank changes.",
)
async def snapshot_leaderboard(
    body: SnapshotRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntryResponse]:
    entries = await leaderboard_service.save_leaderboard_entries(
        db, user, body.family_id, body.type, body.timeframe
    )
    return [LeaderboardEntryResponse.model_validate(e) for e in entries]


@router.get(
    "/leaderboard/history",
    response_model=List[LeaderboardEntryResponse],
    summary="Ranking history of a member",
)
async def ranking_history(
    member_id: uuid.UUID = Query(...),
    type: LeaderboardType = Query(default=LeaderboardType.HEALTH_SCORE),
    days: int = Query(default=30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntryResponse]:
    entries = await leaderboard_service.get_ranking_history(db, user, member_id, type, days)
    return [LeaderboardEntryResponse.model_validate(e) for e in entries]


# ── Achievements ──────────────────────────────────────────────────────────

@router.get(
    "/achievements",
    response_model=List[AchievementDefinitionResponse],
    summary="Achievements that can be unlocked",
)
async def available_achievements(
    user: User = Depends(get_current_user),
) -> List[AchievementDefinitionResponse]:
    return achievement_service.available()


@router.get(
    "/achievements/members/{member_id}",
    response_model=List[AchievementResponse],
    summary="A member's unlocked achievements",
)
async def member_achievements(
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[AchievementResponse]:
    achievements = await achievement_service.list_achievements(db, user, member_id)
    return [AchievementResponse.model_validate(a) for a in achievements]


@router.get(
    "/achievements/members/{member_id}/stats",
    response_model=AchievementStatsResponse,
    summary="Achievement totals for a member",
)
async def member_achievement_stats(
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AchievementStatsResponse:
    return await achievement_service.achievement_stats(db, user, member_id)


@router.post(
    "/achievements/members/{member_id}/check",
    response_model=AchievementCheckResponse,
    summary="Unlock any achievements the member now qualifies for",
)
async def check_achievements(
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AchievementCheckResponse:
    unlocked, metrics = await achievement_service.check_achievements(db, user, member_id)
    return AchievementCheckResponse(
        unlocked=[AchievementResponse.model_validate(a) for a in unlocked],
        metrics=metrics,
    )

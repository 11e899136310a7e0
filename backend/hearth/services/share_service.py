"""
Hearth Butler Backend — Share Service
=======================================

What:  Public share links for a member's achievements and reports, with
       view/click/like tracking, revocation and per-member statistics.
How:   Each share gets an unguessable `secrets.token_urlsafe(16)` token and
       an expiry. Title and description are generated from the member's own
       data. Every interaction is recorded in share_tracking and bumps the
       matching counter on the share.

Visibility:
    Unknown token or REVOKED  → 404
    Past expires_at           → 410
    PRIVATE                   → only callers with access to the member's family
"""

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.config import settings
from hearth.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ShareExpiredError,
    ValidationError,
)
from hearth.models.enums import (
    GoalStatus,
    ShareContentType,
    ShareEventType,
    SharePrivacy,
    ShareStatus,
)
from hearth.models.family import FamilyMember
from hearth.models.health import HealthData, HealthGoal
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.nutrition import MealLog
from hearth.models.social import Achievement, SharedContent, ShareTracking
from hearth.models.user import User
from hearth.schemas.social import (
    PublicShareResponse,
    ShareCreate,
    ShareEventResponse,
    ShareStatsResponse,
)
from hearth.services.family_service import family_service
from hearth.services.leaderboard_service import leaderboard_service, weight_loss

logger = logging.getLogger(__name__)

SUMMARY_WINDOW = timedelta(days=30)

# Event → counter column
EVENT_COUNTERS = {
    ShareEventType.CLICK.value: "click_count",
    ShareEventType.LIKE.value: "like_count",
    ShareEventType.COMMENT.value: "comment_count",
    ShareEventType.DOWNLOAD.value: "download_count",
    ShareEventType.SHARE.value: "share_count",
}

DEFAULT_TITLES = {
    ShareContentType.GOAL_ACHIEVEMENT.value: "Goal achieved!",
    ShareContentType.MEAL_LOG.value: "My healthy meal",
    ShareContentType.RECIPE.value: "A healthy recipe I made",
    ShareContentType.ACHIEVEMENT.value: "Achievement unlocked!",
    ShareContentType.WEEKLY_SUMMARY.value: "My week in health",
    ShareContentType.MONTHLY_REPORT.value: "My month in health",
}


def new_share_token() -> str:
    return secrets.token_urlsafe(16)


def share_url_for(token: str) -> str:
    return f"{settings.share_base_url.rstrip('/')}/share/{token}"


def health_report_text(score: int, weight_change: float, record_count: int) -> str:
    parts = [f"Health score {score}"]
    if weight_change > 0:
        parts.append(f"lost {weight_change:.1f} kg in 30 days")
    elif weight_change < 0:
        parts.append(f"gained {-weight_change:.1f} kg in 30 days")
    parts.append(f"{record_count} health records")
    return ", ".join(parts) + "."


class ShareService:

    # ══════════════════════════════════════════════════════════════════════
    # Content generation
    # ══════════════════════════════════════════════════════════════════════

    async def _health_summary(self, db: AsyncSession, member_id: uuid.UUID) -> Dict[str, Any]:
        now = utcnow()
        start = now - SUMMARY_WINDOW
        result = await db.execute(
            select(HealthData)
            .where(
                HealthData.member_id == member_id,
                HealthData.measured_at >= start,
                HealthData.deleted_at.is_(None),
            )
            .order_by(HealthData.measured_at.asc())
        )
        records = list(result.scalars().all())
        scores = await leaderboard_service.health_scores(db, [member_id], start, now)
        return {
            "health_score": int(scores.get(member_id, 50)),
            "weight_change": weight_loss([r.weight for r in records if r.weight is not None]),
            "record_count": len(records),
        }

    async def _generate_content(
        self,
        db: AsyncSession,
        member: FamilyMember,
        content_type: str,
        target_id: Optional[uuid.UUID],
    ) -> Tuple[str, str, Dict[str, Any]]:
        """Returns (title, description, metadata) for the share card."""
        metadata: Dict[str, Any] = {}
        if target_id is not None:
            metadata["target_id"] = str(target_id)

        if content_type == ShareContentType.HEALTH_REPORT.value:
            summary = await self._health_summary(db, member.id)
            metadata.update(summary)
            return (
                f"{member.name}'s health report",
                health_report_text(**summary),
                metadata,
            )

        if content_type == ShareContentType.CHECK_IN_STREAK.value:
            streaks = await leaderboard_service.streaks(db, [member.id], utcnow().date())
            days = int(streaks.get(member.id, 0))
            metadata["streak_days"] = days
            return (
                f"{days}-day check-in streak!",
                f"Recorded health data {days} days in a row. Keep it up!",
                metadata,
            )

        if content_type == ShareContentType.WEIGHT_MILESTONE.value:
            summary = await self._health_summary(db, member.id)
            change = summary["weight_change"]
            metadata["weight_change"] = change
            title = f"Lost {change:.1f} kg!" if change > 0 else "Weight milestone"
            return title, f"Weight change over the last 30 days: {-change:+.1f} kg", metadata

        if content_type == ShareContentType.GOAL_ACHIEVEMENT.value and target_id is not None:
            result = await db.execute(
                select(HealthGoal).where(
                    HealthGoal.id == target_id,
                    HealthGoal.member_id == member.id,
                    HealthGoal.deleted_at.is_(None),
                )
            )
            goal = result.scalar_one_or_none()
            if goal is None:
                raise NotFoundError(resource="health goal", resource_id=str(target_id))
            change = goal.start_weight - goal.current_weight
            metadata.update({"goal_type": goal.goal_type, "progress": goal.progress})
            if goal.status == GoalStatus.COMPLETED.value:
                title = "Goal achieved!"
            else:
                title = f"{goal.progress}% of my goal"
            return (
                title,
                f"From {goal.start_weight:.1f} kg towards {goal.target_weight:.1f} kg, "
                f"{abs(change):.1f} kg {'lost' if change >= 0 else 'gained'} so far",
                metadata,
            )

        if content_type == ShareContentType.ACHIEVEMENT.value and target_id is not None:
            result = await db.execute(
                select(Achievement).where(
                    Achievement.id == target_id, Achievement.member_id == member.id
                )
            )
            achievement = result.scalar_one_or_none()
            if achievement is None:
                raise NotFoundError(resource="achievement", resource_id=str(target_id))
            metadata.update({
                "achievement_type": achievement.achievement_type,
                "rarity": achievement.rarity,
                "points": achievement.points,
            })
            return f"Unlocked: {achievement.title}", achievement.description, metadata

        if content_type == ShareContentType.MEAL_LOG.value and target_id is not None:
            result = await db.execute(
                select(MealLog).where(
                    MealLog.id == target_id,
                    MealLog.member_id == member.id,
                    MealLog.deleted_at.is_(None),
                )
            )
            meal = result.scalar_one_or_none()
            if meal is None:
                raise NotFoundError(resource="meal log", resource_id=str(target_id))
            metadata.update({"meal_type": meal.meal_type, "calories": meal.calories})
            return (
                f"My {meal.meal_type.lower()} on {meal.date.isoformat()}",
                f"{meal.calories:.0f} kcal, {meal.protein:.1f} g protein",
                metadata,
            )

        return (
            DEFAULT_TITLES.get(content_type, "Sharing my healthy life"),
            "Sharing my health journey",
            metadata,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Share lifecycle
    # ══════════════════════════════════════════════════════════════════════

    async def create_share(self, db: AsyncSession, user: User, data: ShareCreate) -> SharedContent:
        member = await family_service.require_member_access(db, user, data.member_id, write=True)
        if not data.platforms:
            raise ValidationError(message="At least one platform is required", field="platforms")

        title, description, metadata = await self._generate_content(
            db, member, data.content_type.value, data.target_id
        )
        if data.custom_message:
            description = data.custom_message

        token = new_share_token()
        now = utcnow()
        share = SharedContent(
            member_id=member.id,
            content_type=data.content_type.value,
            title=title,
            description=description,
            content_metadata=metadata,
            share_token=token,
            share_url=share_url_for(token),
            shared_platforms=list(data.platforms),
            privacy_level=data.privacy.value,
            status=ShareStatus.ACTIVE.value,
            expires_at=now + timedelta(days=settings.share_ttl_days),
            view_count=0,
            like_count=0,
            comment_count=0,
            share_count=len(data.platforms),
            click_count=0,
            download_count=0,
        )
        db.add(share)
        for platform in data.platforms:
            db.add(ShareTracking(
                share_token=token,
                event_type=ShareEventType.SHARE.value,
                platform=platform,
                occurred_at=now,
            ))
        await db.flush()
        logger.info("Share %s (%s) created for member %s", share.id, share.content_type, member.id)
        return share

    async def _get_live_share(self, db: AsyncSession, token: str) -> SharedContent:
        result = await db.execute(
            select(SharedContent).where(
                SharedContent.share_token == token, SharedContent.deleted_at.is_(None)
            )
        )
        share = result.scalar_one_or_none()
        if share is None or share.status == ShareStatus.REVOKED.value:
            raise NotFoundError(resource="shared content")
        if share.status == ShareStatus.EXPIRED.value or (
            share.expires_at is not None and ensure_utc(share.expires_at) < utcnow()
        ):
            raise ShareExpiredError()
        return share

    async def get_shared_content(
        self,
        db: AsyncSession,
        token: str,
        viewer: Optional[User] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> PublicShareResponse:
        share = await self._get_live_share(db, token)

        if share.privacy_level == SharePrivacy.PRIVATE.value:
            # Outsiders get the same answer as for an unknown token
            if viewer is None:
                raise NotFoundError(resource="shared content")
            try:
                await family_service.require_member_access(db, viewer, share.member_id)
            except PermissionDeniedError:
                raise NotFoundError(resource="shared content")

        result = await db.execute(select(FamilyMember).where(FamilyMember.id == share.member_id))
        member = result.scalar_one_or_none()

        share.view_count = (share.view_count or 0) + 1
        db.add(ShareTracking(
            share_token=token,
            event_type=ShareEventType.VIEW.value,
            user_agent=(user_agent or "")[:500] or None,
            ip_address=ip_address,
            referrer=(referrer or "")[:500] or None,
            occurred_at=utcnow(),
        ))
        await db.flush()

        return PublicShareResponse(
            content_type=share.content_type,
            title=share.title,
            description=share.description,
            metadata=share.content_metadata,
            member_name=member.name if member else "",
            member_avatar=member.avatar if member else None,
            view_count=share.view_count,
            like_count=share.like_count,
            comment_count=share.comment_count,
            share_count=share.share_count,
            created_at=share.created_at,
            expires_at=share.expires_at,
        )

    async def track_event(
        self,
        db: AsyncSession,
        token: str,
        event_type: ShareEventType,
        platform: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> ShareEventResponse:
        counter = EVENT_COUNTERS.get(event_type.value)
        if counter is None:
            raise ValidationError(
                message=f"Event type '{event_type.value}' cannot be tracked",
                field="event_type",
                context={"allowed": sorted(EVENT_COUNTERS)},
            )
        share = await self._get_live_share(db, token)

        setattr(share, counter, (getattr(share, counter) or 0) + 1)
        db.add(ShareTracking(
            share_token=token,
            event_type=event_type.value,
            platform=platform,
            user_agent=(user_agent or "")[:500] or None,
            ip_address=ip_address,
            referrer=(referrer or "")[:500] or None,
            occurred_at=utcnow(),
        ))
        await db.flush()
        return ShareEventResponse(
            share_token=token, event_type=event_type.value, count=getattr(share, counter)
        )

    async def revoke_share(self, db: AsyncSession, user: User, token: str) -> None:
        result = await db.execute(
            select(SharedContent).where(
                SharedContent.share_token == token, SharedContent.deleted_at.is_(None)
            )
        )
        share = result.scalar_one_or_none()
        if share is None:
            raise NotFoundError(resource="shared content")
        await family_service.require_member_access(db, user, share.member_id, write=True)
        share.status = ShareStatus.REVOKED.value
        await db.flush()
        logger.info("Share %s revoked", share.id)

    async def share_stats(
        self, db: AsyncSession, user: User, member_id: uuid.UUID
    ) -> ShareStatsResponse:
        await family_service.require_member_access(db, user, member_id)
        result = await db.execute(
            select(SharedContent).where(
                SharedContent.member_id == member_id, SharedContent.deleted_at.is_(None)
            )
        )
        shares = list(result.scalars().all())

        now = utcnow()
        by_type: Dict[str, int] = {}
        for share in shares:
            by_type[share.content_type] = by_type.get(share.content_type, 0) + 1
        return ShareStatsResponse(
            member_id=member_id,
            total_shares=len(shares),
            active_shares=sum(
                1 for s in shares
                if s.status == ShareStatus.ACTIVE.value
                and (s.expires_at is None or ensure_utc(s.expires_at) >= now)
            ),
            by_type=by_type,
            totals={
                "views": sum(s.view_count or 0 for s in shares),
                "likes": sum(s.like_count or 0 for s in shares),
                "comments": sum(s.comment_count or 0 for s in shares),
                "shares": sum(s.share_count or 0 for s in shares),
                "clicks": sum(s.click_count or 0 for s in shares),
                "downloads": sum(s.download_count or 0 for s in shares),
            },
        )


share_service = ShareService()

"""
Hearth Butler Backend — Achievement Service
=============================================

What:  Unlocks badges for members when their own data crosses a threshold,
       and lists them with simple statistics.
How:   Each badge names one metric and a minimum. Metrics are gathered from
       health records, meal logs, goals and shares (streaks and health score
       reuse the leaderboard aggregates). A badge unlocks once per member;
       every unlock raises an in-app notification.

Badges:
    FIRST_RECORD          1 health record                       COMMON     10
    SEVEN_DAY_STREAK      7-day check-in streak                 UNCOMMON   50
    MONTHLY_CHAMPION      health score ≥ 90 over 30 days        RARE      200
    WEIGHT_GOAL_ACHIEVED  1 completed weight goal               UNCOMMON  100
    SOCIAL_BUTTERFLY      20 shares                             EPIC      300
    CALORIE_CHAMPION      30 days within the calorie goal       EPIC      250
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.models.enums import (
    AchievementRarity,
    AchievementType,
    GoalStatus,
    GoalType,
    NotificationPriority,
    NotificationType,
)
from hearth.models.health import HealthData, HealthGoal
from hearth.models.mixins import utcnow
from hearth.models.nutrition import MealLog
from hearth.models.social import Achievement, SharedContent
from hearth.models.user import User
from hearth.schemas.social import AchievementDefinitionResponse, AchievementStatsResponse
from hearth.services.family_service import family_service
from hearth.services.leaderboard_service import (
    CALORIE_TOLERANCE,
    DEFAULT_CALORIE_GOAL,
    leaderboard_service,
)
from hearth.services.notification_service import notification_service

logger = logging.getLogger(__name__)

HEALTH_RECORDS = "health_records"
CHECK_IN_STREAK = "check_in_streak"
MONTHLY_HEALTH_SCORE = "monthly_health_score"
COMPLETED_WEIGHT_GOALS = "completed_weight_goals"
SHARES = "shares"
CALORIE_ACCURATE_DAYS = "calorie_accurate_days"

METRIC_WINDOW = timedelta(days=30)
WEIGHT_GOAL_TYPES = (GoalType.LOSE_WEIGHT.value, GoalType.GAIN_WEIGHT.value)


@dataclass(frozen=True)
class AchievementDefinition:
    type: str
    title: str
    description: str
    rarity: str
    points: int
    metric: str
    threshold: float

    def to_response(self) -> AchievementDefinitionResponse:
        return AchievementDefinitionResponse(**asdict(self))


ACHIEVEMENTS: Tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        AchievementType.FIRST_RECORD.value, "First step",
        "Recorded a first health measurement",
        AchievementRarity.COMMON.value, 10, HEALTH_RECORDS, 1,
    ),
    AchievementDefinition(
        AchievementType.SEVEN_DAY_STREAK.value, "One week strong",
        "Checked in seven days in a row",
        AchievementRarity.UNCOMMON.value, 50, CHECK_IN_STREAK, 7,
    ),
    AchievementDefinition(
        AchievementType.MONTHLY_CHAMPION.value, "Monthly champion",
        "Kept a health score of 90 or more over the last 30 days",
        AchievementRarity.RARE.value, 200, MONTHLY_HEALTH_SCORE, 90,
    ),
    AchievementDefinition(
        AchievementType.WEIGHT_GOAL_ACHIEVED.value, "Goal reached",
        "Completed a weight goal",
        AchievementRarity.UNCOMMON.value, 100, COMPLETED_WEIGHT_GOALS, 1,
    ),
    AchievementDefinition(
        AchievementType.SOCIAL_BUTTERFLY.value, "Social butterfly",
        "Shared health content 20 times",
        AchievementRarity.EPIC.value, 300, SHARES, 20,
    ),
    AchievementDefinition(
        AchievementType.CALORIE_CHAMPION.value, "Calorie champion",
        "Stayed within the calorie goal on 30 days of the last 30",
        AchievementRarity.EPIC.value, 250, CALORIE_ACCURATE_DAYS, 30,
    ),
)


def newly_unlocked(
    metrics: Mapping[str, float], unlocked: Set[str]
) -> List[AchievementDefinition]:
    return [
        definition for definition in ACHIEVEMENTS
        if definition.type not in unlocked
        and metrics.get(definition.metric, 0) >= definition.threshold
    ]


def accurate_days(daily_calories: Iterable[float], goal: float = DEFAULT_CALORIE_GOAL) -> int:
    return sum(1 for c in daily_calories if abs(c - goal) <= goal * CALORIE_TOLERANCE)


class AchievementService:

    def available(self) -> List[AchievementDefinitionResponse]:
        return [definition.to_response() for definition in ACHIEVEMENTS]

    async def collect_metrics(self, db: AsyncSession, member_id: uuid.UUID) -> Dict[str, float]:
        now = utcnow()
        since = now - METRIC_WINDOW

        result = await db.execute(
            select(func.count(HealthData.id)).where(
                HealthData.member_id == member_id, HealthData.deleted_at.is_(None)
            )
        )
        records = result.scalar() or 0

        streaks = await leaderboard_service.streaks(db, [member_id], now.date())
        scores = await leaderboard_service.health_scores(db, [member_id], since, now)

        result = await db.execute(
            select(func.count(HealthGoal.id)).where(
                HealthGoal.member_id == member_id,
                HealthGoal.status == GoalStatus.COMPLETED.value,
                HealthGoal.goal_type.in_(WEIGHT_GOAL_TYPES),
                HealthGoal.deleted_at.is_(None),
            )
        )
        goals = result.scalar() or 0

        result = await db.execute(
            select(func.count(SharedContent.id)).where(
                SharedContent.member_id == member_id, SharedContent.deleted_at.is_(None)
            )
        )
        shares = result.scalar() or 0

        result = await db.execute(
            select(MealLog.date, func.sum(MealLog.calories))
            .where(
                MealLog.member_id == member_id,
                MealLog.date >= since.date(),
                MealLog.deleted_at.is_(None),
            )
            .group_by(MealLog.date)
        )
        calorie_days = accurate_days(calories or 0 for _, calories in result.all())

        return {
            HEALTH_RECORDS: records,
            CHECK_IN_STREAK: streaks.get(member_id, 0),
            # No records in the window means no score, not the base score
            MONTHLY_HEALTH_SCORE: scores.get(member_id, 0),
            COMPLETED_WEIGHT_GOALS: goals,
            SHARES: shares,
            CALORIE_ACCURATE_DAYS: calorie_days,
        }

    async def evaluate_member(
        self, db: AsyncSession, member_id: uuid.UUID
    ) -> Tuple[List[Achievement], Dict[str, float]]:
        """Unlocks every badge the member now qualifies for. Caller checks access."""
        result = await db.execute(
            select(Achievement.achievement_type).where(Achievement.member_id == member_id)
        )
        unlocked = set(result.scalars().all())
        metrics = await self.collect_metrics(db, member_id)

        achievements = [
            Achievement(
                member_id=member_id,
                achievement_type=definition.type,
                title=definition.title,
                description=definition.description,
                rarity=definition.rarity,
                points=definition.points,
            )
            for definition in newly_unlocked(metrics, unlocked)
        ]
        if not achievements:
            return [], metrics

        for achievement in achievements:
            db.add(achievement)
        await db.flush()

        for achievement in achievements:
            await notification_service.notify(
                db,
                member_id,
                NotificationType.ACHIEVEMENT.value,
                f"Achievement unlocked: {achievement.title}",
                f"{achievement.description}. +{achievement.points} points",
                priority=NotificationPriority.LOW.value,
                dedup_key=f"achievement:{member_id}:{achievement.achievement_type}",
            )
        logger.info(
            "Member %s unlocked %s",
            member_id, ", ".join(a.achievement_type for a in achievements),
        )
        return achievements, metrics

    async def check_achievements(
        self, db: AsyncSession, user: User, member_id: uuid.UUID
    ) -> Tuple[List[Achievement], Dict[str, float]]:
        await family_service.require_member_access(db, user, member_id, write=True)
        return await self.evaluate_member(db, member_id)

    async def list_achievements(
        self, db: AsyncSession, user: User, member_id: uuid.UUID
    ) -> List[Achievement]:
        await family_service.require_member_access(db, user, member_id)
        result = await db.execute(
            select(Achievement)
            .where(Achievement.member_id == member_id)
            .order_by(Achievement.points.desc(), Achievement.unlocked_at.desc())
        )
        return list(result.scalars().all())

    async def achievement_stats(
        self, db: AsyncSession, user: User, member_id: uuid.UUID
    ) -> AchievementStatsResponse:
        achievements = await self.list_achievements(db, user, member_id)
        by_rarity = {rarity.value: 0 for rarity in AchievementRarity}
        for achievement in achievements:
            by_rarity[achievement.rarity] = by_rarity.get(achievement.rarity, 0) + 1
        return AchievementStatsResponse(
            member_id=member_id,
            total=len(achievements),
            total_points=sum(a.points for a in achievements),
            available=len(ACHIEVEMENTS),
            by_rarity=by_rarity,
        )


achievement_service = AchievementService()

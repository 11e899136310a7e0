"""
Hearth Butler Backend — Health Goal Service
=============================================

What:  Weight goals for a member: target weight and duration, an optional
       carb / protein / fat split, and progress tracked from weigh-ins.
Who:   The member themselves or a family admin (the creator counts as one).

Progress:
    (current − start) / (target − start) × 100, rounded and clamped to
    0–100; 0 when start equals target. An ACTIVE goal that reaches 100 is
    completed, which also runs the achievement check.
"""

import logging
import uuid
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import NotFoundError, ValidationError
from hearth.models.enums import GoalStatus, GoalType
from hearth.models.family import FamilyMember
from hearth.models.health import HealthData, HealthGoal
from hearth.models.mixins import utcnow
from hearth.models.user import User
from hearth.schemas.health import HealthGoalCreate, HealthGoalUpdate
from hearth.services.achievement_service import achievement_service
from hearth.services.family_service import family_service

logger = logging.getLogger(__name__)

MACRO_TOLERANCE = 0.01
REQUIRED_GOAL_FIELDS = ("current_weight", "target_weight", "target_weeks", "status")


def goal_progress(start_weight: float, current_weight: float, target_weight: float) -> int:
    total = target_weight - start_weight
    if total == 0:
        return 0
    progress = (current_weight - start_weight) / total * 100
    return max(0, min(100, int(progress + 0.5)))


def target_date_for(start_date: date, weeks: int) -> date:
    return start_date + timedelta(weeks=weeks)


def validate_direction(goal_type: str, start_weight: float, target_weight: float) -> None:
    if goal_type == GoalType.LOSE_WEIGHT.value and target_weight >= start_weight:
        raise ValidationError(
            message="A weight loss goal needs a target below the starting weight",
            field="target_weight",
        )
    if goal_type == GoalType.GAIN_WEIGHT.value and target_weight <= start_weight:
        raise ValidationError(
            message="A weight gain goal needs a target above the starting weight",
            field="target_weight",
        )


def validate_macros(
    carb_ratio: Optional[float], protein_ratio: Optional[float], fat_ratio: Optional[float]
) -> None:
    """A macro split is all-or-nothing and must add up to 1."""
    ratios = (carb_ratio, protein_ratio, fat_ratio)
    if all(r is None for r in ratios):
        return
    if any(r is None for r in ratios):
        raise ValidationError(
            message="carb_ratio, protein_ratio and fat_ratio must be set together",
            field="carb_ratio",
        )
    if abs(sum(ratios) - 1) > MACRO_TOLERANCE:
        raise ValidationError(message="Macro ratios must add up to 1", field="carb_ratio")


class GoalService:

    async def _require_access(
        self, db: AsyncSession, user: User, member_id: uuid.UUID, write: bool = False
    ) -> FamilyMember:
        member = await family_service.require_member_access(db, user, member_id, write=write)
        if member.user_id != user.id:
            await family_service.require_family_access(
                db, user, member.family_id, admin=True, write=write
            )
        return member

    async def _latest_weight(self, db: AsyncSession, member_id: uuid.UUID) -> Optional[float]:
        result = await db.execute(
            select(HealthData.weight)
            .where(
                HealthData.member_id == member_id,
                HealthData.weight.is_not(None),
                HealthData.deleted_at.is_(None),
            )
            .order_by(HealthData.measured_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def create_goal(
        self, db: AsyncSession, user: User, member_id: uuid.UUID, data: HealthGoalCreate
    ) -> HealthGoal:
        member = await self._require_access(db, user, member_id, write=True)

        start_weight = data.start_weight
        if start_weight is None:
            start_weight = await self._latest_weight(db, member_id) or member.weight
        if start_weight is None:
            raise ValidationError(
                message="No recorded weight to start from; provide start_weight",
                field="start_weight",
            )
        validate_direction(data.goal_type.value, start_weight, data.target_weight)
        validate_macros(data.carb_ratio, data.protein_ratio, data.fat_ratio)

        start_date = data.start_date or utcnow().date()
        goal = HealthGoal(
            member_id=member_id,
            goal_type=data.goal_type.value,
            start_weight=start_weight,
            current_weight=start_weight,
            target_weight=data.target_weight,
            target_weeks=data.target_weeks,
            start_date=start_date,
            target_date=target_date_for(start_date, data.target_weeks),
            carb_ratio=data.carb_ratio,
            protein_ratio=data.protein_ratio,
            fat_ratio=data.fat_ratio,
            progress=0,
            status=GoalStatus.ACTIVE.value,
        )
        db.add(goal)
        await db.flush()
        logger.info(
            "Goal %s (%s) created for member %s: %.1f → %.1f kg",
            goal.id, goal.goal_type, member_id, start_weight, data.target_weight,
        )
        return goal

    async def list_goals(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        status: Optional[str] = None,
    ) -> List[HealthGoal]:
        await self._require_access(db, user, member_id)
        stmt = select(HealthGoal).where(
            HealthGoal.member_id == member_id, HealthGoal.deleted_at.is_(None)
        )
        if status:
            stmt = stmt.where(HealthGoal.status == status)
        result = await db.execute(stmt.order_by(HealthGoal.created_at.desc()))
        return list(result.scalars().all())

    async def get_goal(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        goal_id: uuid.UUID,
        write: bool = False,
    ) -> HealthGoal:
        result = await db.execute(
            select(HealthGoal).where(
                HealthGoal.id == goal_id,
                HealthGoal.member_id == member_id,
                HealthGoal.deleted_at.is_(None),
            )
        )
        goal = result.scalar_one_or_none()
        if goal is None:
            raise NotFoundError(resource="health goal", resource_id=str(goal_id))
        await self._require_access(db, user, member_id, write=write)
        return goal

    async def update_goal(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        goal_id: uuid.UUID,
        data: HealthGoalUpdate,
    ) -> HealthGoal:
        changes = data.model_dump(exclude_unset=True)
        for key in REQUIRED_GOAL_FIELDS:
            if key in changes and changes[key] is None:
                raise ValidationError(message=f"{key} cannot be null", field=key)

        goal = await self.get_goal(db, user, member_id, goal_id, write=True)
        was_completed = goal.status == GoalStatus.COMPLETED.value

        validate_macros(
            changes.get("carb_ratio", goal.carb_ratio),
            changes.get("protein_ratio", goal.protein_ratio),
            changes.get("fat_ratio", goal.fat_ratio),
        )
        if "target_weight" in changes:
            validate_direction(goal.goal_type, goal.start_weight, changes["target_weight"])

        for key, value in changes.items():
            setattr(goal, key, value.value if key == "status" else value)
        if "target_weeks" in changes:
            goal.target_date = target_date_for(goal.start_date, goal.target_weeks)

        goal.progress = goal_progress(goal.start_weight, goal.current_weight, goal.target_weight)
        if goal.status == GoalStatus.ACTIVE.value and goal.progress >= 100 and "status" not in changes:
            goal.status = GoalStatus.COMPLETED.value

        completed = goal.status == GoalStatus.COMPLETED.value
        goal.completed_at = (goal.completed_at or utcnow()) if completed else None
        await db.flush()

        if completed and not was_completed:
            logger.info("Goal %s completed for member %s", goal.id, member_id)
            await achievement_service.evaluate_member(db, member_id)
        return goal

    async def delete_goal(
        self, db: AsyncSession, user: User, member_id: uuid.UUID, goal_id: uuid.UUID
    ) -> None:
        goal = await self.get_goal(db, user, member_id, goal_id, write=True)
        goal.deleted_at = utcnow()
        await db.flush()


goal_service = GoalService()

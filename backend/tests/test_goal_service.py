"""
Hearth Butler Backend — Health Goal Service Unit Tests
========================================================

What we test:
    ✅ Progress from start, current and target weight, clamped to 0-100
    ✅ Macro splits are all-or-nothing and add up to 1
    ✅ New goals start from the latest recorded weight
    ✅ Reaching the target completes the goal and runs the achievement check
    ✅ Only the member or a family admin may change a goal
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from hearth.models.family import FamilyMember
from hearth.models.health import HealthGoal
from hearth.schemas.health import HealthGoalCreate, HealthGoalUpdate
from hearth.services.goal_service import (
    GoalService,
    goal_progress,
    target_date_for,
    validate_direction,
    validate_macros,
)

CREATED = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def make_goal(member_id, **overrides) -> HealthGoal:
    values = dict(
        id=uuid.uuid4(),
        member_id=member_id,
        goal_type="LOSE_WEIGHT",
        start_weight=80.0,
        current_weight=80.0,
        target_weight=70.0,
        target_weeks=10,
        start_date=date(2024, 5, 1),
        target_date=date(2024, 7, 10),
        progress=0,
        status="ACTIVE",
        created_at=CREATED,
    )
    values.update(overrides)
    return HealthGoal(**values)


class TestProgress:

    @pytest.mark.parametrize("start,current,target,expected", [
        (80, 75, 70, 50),
        (80, 82, 70, 0),
        (80, 68, 70, 100),
        (60, 63, 65, 60),
        (70, 72, 70, 0),
    ])
    def test_goal_progress(self, start, current, target, expected):
        assert goal_progress(start, current, target) == expected

    def test_target_date(self):
        assert target_date_for(date(2024, 5, 1), 10) == date(2024, 7, 10)

    def test_macros_must_be_complete(self):
        with pytest.raises(ValidationError, match="together"):
            validate_macros(0.5, 0.3, None)

    def test_macros_must_add_up(self):
        with pytest.raises(ValidationError, match="add up to 1"):
            validate_macros(0.5, 0.3, 0.3)

    def test_valid_or_missing_macros(self):
        validate_macros(0.5, 0.3, 0.2)
        validate_macros(None, None, None)

    def test_loss_target_must_be_lower(self):
        with pytest.raises(ValidationError, match="below"):
            validate_direction("LOSE_WEIGHT", 70, 72)

    def test_maintain_accepts_any_target(self):
        validate_direction("MAINTAIN", 70, 70)


class TestCreateGoal:

    def setup_method(self):
        self.service = GoalService()

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.family_service")
    async def test_starts_from_latest_weight(self, mock_family, mock_db_session, make_result, user):
        member = FamilyMember(id=uuid.uuid4(), family_id=uuid.uuid4(), user_id=user.id, name="Alice")
        mock_family.require_member_access = AsyncMock(return_value=member)
        mock_db_session.execute.side_effect = [make_result(values=[82.0])]

        goal = await self.service.create_goal(
            mock_db_session, user, member.id,
            HealthGoalCreate(
                goal_type="LOSE_WEIGHT", target_weight=75, target_weeks=10,
                start_date=date(2024, 5, 1),
                carb_ratio=0.5, protein_ratio=0.3, fat_ratio=0.2,
            ),
        )

        assert goal.start_weight == 82.0
        assert goal.current_weight == 82.0
        assert goal.target_date == date(2024, 7, 10)
        assert goal.progress == 0
        assert goal.status == "ACTIVE"
        assert mock_db_session.added == [goal]
        mock_family.require_family_access.assert_not_called()

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.family_service")
    async def test_without_any_weight_is_rejected(self, mock_family, mock_db_session, make_result, user):
        member = FamilyMember(id=uuid.uuid4(), family_id=uuid.uuid4(), user_id=user.id, name="Alice")
        mock_family.require_member_access = AsyncMock(return_value=member)
        mock_db_session.execute.side_effect = [make_result(values=[])]

        with pytest.raises(ValidationError, match="start_weight"):
            await self.service.create_goal(
                mock_db_session, user, member.id,
                HealthGoalCreate(goal_type="LOSE_WEIGHT", target_weight=75, target_weeks=10),
            )
        assert mock_db_session.added == []

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.family_service")
    async def test_other_members_goal_needs_admin(self, mock_family, mock_db_session, user):
        member = FamilyMember(id=uuid.uuid4(), family_id=uuid.uuid4(), user_id=uuid.uuid4(), name="Bob")
        mock_family.require_member_access = AsyncMock(return_value=member)
        mock_family.require_family_access = AsyncMock(
            side_effect=PermissionDeniedError(message="Only family admins can perform this action")
        )

        with pytest.raises(PermissionDeniedError):
            await self.service.create_goal(
                mock_db_session, user, member.id,
                HealthGoalCreate(
                    goal_type="GAIN_WEIGHT", target_weight=75, target_weeks=8, start_weight=70
                ),
            )
        mock_family.require_family_access.assert_awaited_once_with(
            mock_db_session, user, member.family_id, admin=True, write=True
        )


class TestUpdateGoal:

    def setup_method(self):
        self.service = GoalService()
        self.member = FamilyMember(id=uuid.uuid4(), family_id=uuid.uuid4(), name="Alice")

    def own_member(self, user):
        self.member.user_id = user.id
        return self.member

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.achievement_service")
    @patch("hearth.services.goal_service.family_service")
    async def test_weigh_in_updates_progress(
        self, mock_family, mock_achievements, mock_db_session, make_result, user
    ):
        mock_family.require_member_access = AsyncMock(return_value=self.own_member(user))
        mock_achievements.evaluate_member = AsyncMock()
        goal = make_goal(self.member.id)
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        updated = await self.service.update_goal(
            mock_db_session, user, self.member.id, goal.id, HealthGoalUpdate(current_weight=76)
        )

        assert updated.progress == 40
        assert updated.status == "ACTIVE"
        assert updated.completed_at is None
        mock_achievements.evaluate_member.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.achievement_service")
    @patch("hearth.services.goal_service.family_service")
    async def test_reaching_target_completes_goal(
        self, mock_family, mock_achievements, mock_db_session, make_result, user
    ):
        mock_family.require_member_access = AsyncMock(return_value=self.own_member(user))
        mock_achievements.evaluate_member = AsyncMock(return_value=([], {}))
        goal = make_goal(self.member.id, current_weight=72.0, progress=80)
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        updated = await self.service.update_goal(
            mock_db_session, user, self.member.id, goal.id, HealthGoalUpdate(current_weight=69.5)
        )

        assert updated.progress == 100
        assert updated.status == "COMPLETED"
        assert updated.completed_at is not None
        mock_achievements.evaluate_member.assert_awaited_once_with(mock_db_session, self.member.id)

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.achievement_service")
    @patch("hearth.services.goal_service.family_service")
    async def test_reopening_clears_completion(
        self, mock_family, mock_achievements, mock_db_session, make_result, user
    ):
        mock_family.require_member_access = AsyncMock(return_value=self.own_member(user))
        mock_achievements.evaluate_member = AsyncMock()
        goal = make_goal(
            self.member.id, current_weight=70.0, progress=100,
            status="COMPLETED", completed_at=CREATED,
        )
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        updated = await self.service.update_goal(
            mock_db_session, user, self.member.id, goal.id,
            HealthGoalUpdate(status="ACTIVE", target_weight=65),
        )

        assert updated.status == "ACTIVE"
        assert updated.progress == 67
        assert updated.completed_at is None
        mock_achievements.evaluate_member.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.family_service")
    async def test_new_duration_moves_target_date(self, mock_family, mock_db_session, make_result, user):
        mock_family.require_member_access = AsyncMock(return_value=self.own_member(user))
        goal = make_goal(self.member.id)
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        updated = await self.service.update_goal(
            mock_db_session, user, self.member.id, goal.id, HealthGoalUpdate(target_weeks=4)
        )

        assert updated.target_date == date(2024, 5, 29)

    @pytest.mark.asyncio
    async def test_null_current_weight_is_rejected(self, mock_db_session, user):
        with pytest.raises(ValidationError, match="cannot be null"):
            await self.service.update_goal(
                mock_db_session, user, uuid.uuid4(), uuid.uuid4(),
                HealthGoalUpdate(current_weight=None),
            )
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("hearth.services.goal_service.family_service")
    async def test_partial_macro_change_must_keep_sum(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.require_member_access = AsyncMock(return_value=self.own_member(user))
        goal = make_goal(self.member.id, carb_ratio=0.5, protein_ratio=0.3, fat_ratio=0.2)
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        with pytest.raises(ValidationError, match="add up to 1"):
            await self.service.update_goal(
                mock_db_session, user, self.member.id, goal.id, HealthGoalUpdate(carb_ratio=0.6)
            )
        assert goal.carb_ratio == 0.5

    @pytest.mark.asyncio
    async def test_missing_goal(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(value=None)]
        with pytest.raises(NotFoundError):
            await self.service.get_goal(mock_db_session, user, uuid.uuid4(), uuid.uuid4())

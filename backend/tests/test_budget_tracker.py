"""
Hearth Butler Backend — Budget Tracker Unit Tests
===================================================

What we test:
    ✅ Usage recomputation (remaining never negative)
    ✅ Threshold alerts: exactly one of 80 / 100 / 110 at a time
    ✅ Category and daily-pace alerts
    ✅ Date and allocation validation
    ✅ add_spending stores, recomputes, raises new alerts and notifies once per type
    ✅ One CATEGORY_OVER alert per category
    ✅ Updates cannot clear required budget fields
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import ValidationError
from hearth.models.budget import Budget
from hearth.schemas.budget import BudgetUpdate, SpendingCreate
from hearth.services.budget_tracker import (
    BudgetTracker,
    apply_usage,
    budget_field_for,
    evaluate_alerts,
    period_days,
    validate_budget_amounts,
)

NOW = datetime(2024, 5, 30, 12, 0, tzinfo=timezone.utc)


def make_budget(used: float = 0.0, elapsed_days: int = 29, **overrides) -> Budget:
    start = NOW - timedelta(days=elapsed_days)
    values = dict(
        id=uuid.uuid4(),
        member_id=uuid.uuid4(),
        name="Groceries",
        period="MONTHLY",
        start_date=start,
        end_date=start + timedelta(days=30),
        total_amount=1000.0,
        status="ACTIVE",
        alert_threshold_80=True,
        alert_threshold_100=True,
        alert_threshold_110=True,
    )
    values.update(overrides)
    budget = Budget(**values)
    apply_usage(budget, used)
    return budget


def alert_types(candidates):
    return [c.type for c in candidates]


class TestUsage:

    def test_apply_usage(self):
        budget = make_budget(used=250)
        assert budget.used_amount == 250
        assert budget.remaining_amount == 750
        assert budget.usage_percentage == 25.0

    def test_remaining_never_negative(self):
        budget = make_budget(used=1200)
        assert budget.remaining_amount == 0
        assert budget.usage_percentage == 120.0

    def test_period_days(self):
        budget = make_budget(elapsed_days=10)
        assert period_days(budget, NOW) == (30, 10, 20)

    def test_elapsed_is_at_least_one(self):
        budget = make_budget(elapsed_days=0)
        total, elapsed, remaining = period_days(budget, NOW)
        assert (total, elapsed, remaining) == (30, 1, 30)

    @pytest.mark.parametrize("category,field", [
        ("VEGETABLES", "vegetable"),
        ("PROTEIN", "meat"),
        ("SEAFOOD", "meat"),
        ("DAIRY", "dairy"),
        ("SNACKS", "other"),
    ])
    def test_category_mapping(self, category, field):
        assert budget_field_for(category) == field


class TestEvaluateAlerts:

    def test_below_80_no_alert(self):
        assert evaluate_alerts(make_budget(used=790), {}, NOW) == []

    def test_warning_80(self):
        assert alert_types(evaluate_alerts(make_budget(used=850), {}, NOW)) == ["WARNING_80"]

    def test_warning_100_replaces_80(self):
        assert alert_types(evaluate_alerts(make_budget(used=1050), {}, NOW)) == ["WARNING_100"]

    def test_over_budget_110(self):
        assert alert_types(evaluate_alerts(make_budget(used=1150), {}, NOW)) == ["OVER_BUDGET_110"]

    def test_disabled_threshold_is_silent(self):
        budget = make_budget(used=850, alert_threshold_80=False)
        assert evaluate_alerts(budget, {}, NOW) == []

    def test_category_over(self):
        budget = make_budget(used=500, meat_budget=300.0)
        (alert,) = evaluate_alerts(budget, {"meat": 320.0}, NOW)
        assert alert.type == "CATEGORY_OVER"
        assert alert.threshold == 300.0
        assert alert.current_value == 320.0

    def test_each_category_gets_its_own_alert(self):
        budget = make_budget(used=300, vegetable_budget=100.0, meat_budget=100.0)
        alerts = evaluate_alerts(budget, {"vegetable": 150.0, "meat": 150.0}, NOW)
        assert [(a.type, a.category) for a in alerts] == [
            ("CATEGORY_OVER", "vegetable"),
            ("CATEGORY_OVER", "meat"),
        ]

    def test_category_under_budget_is_silent(self):
        budget = make_budget(used=500, meat_budget=300.0)
        assert evaluate_alerts(budget, {"meat": 299.0}, NOW) == []

    def test_daily_excess(self):
        # 200 spent in 2 of 30 days: 100/day against a 40/day pace limit
        budget = make_budget(used=200, elapsed_days=2)
        (alert,) = evaluate_alerts(budget, {}, NOW)
        assert alert.type == "DAILY_EXCESS"
        assert alert.threshold == 40.0
        assert alert.current_value == 100.0


class TestValidation:

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="End date"):
            validate_budget_amounts(NOW, NOW - timedelta(days=1), 100, {})

    def test_category_allocation_over_total_rejected(self):
        with pytest.raises(ValidationError, match="exceed the total"):
            validate_budget_amounts(NOW, NOW + timedelta(days=7), 100, {"meat": 80, "fruit": 30})

    def test_valid_budget_passes(self):
        validate_budget_amounts(NOW, NOW + timedelta(days=7), 100, {"meat": 80, "fruit": None})


class TestAddSpending:

    def setup_method(self):
        self.tracker = BudgetTracker()

    def live_budget(self, **overrides) -> Budget:
        now = datetime.now(timezone.utc)
        return make_budget(
            start_date=now - timedelta(days=29),
            end_date=now + timedelta(days=1),
            **overrides,
        )

    @pytest.mark.asyncio
    async def test_spending_recomputes_and_raises_alert(self, mock_db_session, make_result):
        budget = self.live_budget()
        mock_db_session.execute.side_effect = [
            make_result(scalar=850.0),                     # recompute_usage
            make_result(rows=[("PROTEIN", 850.0)]),        # category spend
            make_result(rows=[]),                          # active alerts
        ]

        with patch("hearth.services.budget_tracker.notification_service") as mock_notify:
            mock_notify.notify = AsyncMock()
            spending, updated, alerts = await self.tracker.add_spending(
                mock_db_session, budget, SpendingCreate(amount=850, category="PROTEIN")
            )

        assert spending.amount == 850
        assert spending.category == "PROTEIN"
        assert updated.usage_percentage == 85.0
        assert updated.remaining_amount == 150.0
        assert [a.type for a in alerts] == ["WARNING_80"]
        mock_notify.notify.assert_awaited_once()
        assert mock_notify.notify.await_args.kwargs["dedup_key"] == f"budget:{budget.id}:WARNING_80"

    @pytest.mark.asyncio
    async def test_already_active_alert_not_repeated(self, mock_db_session, make_result):
        budget = self.live_budget()
        mock_db_session.execute.side_effect = [
            make_result(scalar=900.0),
            make_result(rows=[("OTHER", 900.0)]),
            make_result(rows=[("WARNING_80", None)]),
        ]

        with patch("hearth.services.budget_tracker.notification_service") as mock_notify:
            mock_notify.notify = AsyncMock()
            _, _, alerts = await self.tracker.add_spending(
                mock_db_session, budget, SpendingCreate(amount=50)
            )

        assert alerts == []
        mock_notify.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_budget_rejected(self, mock_db_session):
        budget = self.live_budget(status="COMPLETED")
        with pytest.raises(ValidationError, match="active budgets"):
            await self.tracker.add_spending(mock_db_session, budget, SpendingCreate(amount=10))
        assert mock_db_session.added == []

    @pytest.mark.asyncio
    async def test_purchase_outside_period_rejected(self, mock_db_session):
        budget = self.live_budget()
        data = SpendingCreate(amount=10, purchase_date=datetime.now(timezone.utc) + timedelta(days=5))
        with pytest.raises(ValidationError, match="outside the budget period"):
            await self.tracker.add_spending(mock_db_session, budget, data)


class TestCategoryAlerts:

    def setup_method(self):
        self.tracker = BudgetTracker()

    def over_budget(self) -> Budget:
        now = datetime.now(timezone.utc)
        return make_budget(
            used=300,
            start_date=now - timedelta(days=29),
            end_date=now + timedelta(days=1),
            vegetable_budget=100.0,
            meat_budget=100.0,
        )

    @pytest.mark.asyncio
    async def test_two_categories_over_raise_two_alerts(self, mock_db_session, make_result):
        budget = self.over_budget()
        mock_db_session.execute.side_effect = [
            make_result(rows=[("VEGETABLES", 150.0), ("PROTEIN", 150.0)]),
            make_result(rows=[]),
        ]

        with patch("hearth.services.budget_tracker.notification_service") as mock_notify:
            mock_notify.notify = AsyncMock()
            alerts = await self.tracker.check_alerts(mock_db_session, budget)

        assert [(a.type, a.category) for a in alerts] == [
            ("CATEGORY_OVER", "vegetable"),
            ("CATEGORY_OVER", "meat"),
        ]
        keys = [call.kwargs["dedup_key"] for call in mock_notify.notify.await_args_list]
        assert keys == [
            f"budget:{budget.id}:CATEGORY_OVER:vegetable",
            f"budget:{budget.id}:CATEGORY_OVER:meat",
        ]

    @pytest.mark.asyncio
    async def test_active_category_alert_does_not_block_another(self, mock_db_session, make_result):
        budget = self.over_budget()
        mock_db_session.execute.side_effect = [
            make_result(rows=[("VEGETABLES", 150.0), ("SEAFOOD", 120.0)]),
            make_result(rows=[("CATEGORY_OVER", "vegetable")]),
        ]

        with patch("hearth.services.budget_tracker.notification_service") as mock_notify:
            mock_notify.notify = AsyncMock()
            alerts = await self.tracker.check_alerts(mock_db_session, budget)

        (alert,) = alerts
        assert alert.category == "meat"
        assert alert.current_value == 120.0
        mock_notify.notify.assert_awaited_once()


class TestUpdateBudget:

    @pytest.mark.parametrize("field", ["total_amount", "start_date", "end_date", "name"])
    @pytest.mark.asyncio
    async def test_null_for_required_field_is_rejected(self, mock_db_session, user, field):
        data = BudgetUpdate.model_validate({field: None})
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            await BudgetTracker().update_budget(mock_db_session, user, uuid.uuid4(), data)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_category_budget_can_be_cleared(self, mock_db_session, make_result, user):
        now = datetime.now(timezone.utc)
        budget = make_budget(
            start_date=now - timedelta(days=1), end_date=now + timedelta(days=29), meat_budget=300.0,
        )
        mock_db_session.execute.side_effect = [
            make_result(value=budget),     # _get_budget
            make_result(scalar=0.0),       # recompute_usage
            make_result(rows=[]),          # category spend
        ]

        with patch("hearth.services.budget_tracker.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            updated = await BudgetTracker().update_budget(
                mock_db_session, user, budget.id, BudgetUpdate.model_validate({"meat_budget": None})
            )

        assert updated.meat_budget is None
        assert updated.total_amount == 1000.0

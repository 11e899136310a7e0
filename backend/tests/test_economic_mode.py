"""
Hearth Butler Backend — Economic Mode & Shopping Helper Unit Tests
====================================================================

What we test:
    ✅ Daily plan splits the budget 30 / 40 / 30 across meals
    ✅ Each meal only uses its own categories and stays within its share
    ✅ Utilization recommendations
    ✅ Shopping list price estimates, status and dominant category
"""

import uuid
from types import SimpleNamespace

import pytest

from hearth.models.enums import FoodCategory
from hearth.services.cost_optimizer import FoodOption
from hearth.services.economic_mode import MEAL_PLAN, plan_day, plan_meal
from hearth.services.shopping_service import ShoppingService, estimate_price, list_status_for


def priced(name, category, calories, unit_price, protein=0.0, carbs=0.0, fat=0.0):
    food = SimpleNamespace(
        id=uuid.uuid4(), name=name, category=category,
        calories=calories, protein=protein, carbs=carbs, fat=fat,
    )
    return FoodOption(food=food, unit_price=unit_price)


POOL = [
    priced("Rice", "GRAINS", 130, 6.0, protein=2.7, carbs=28),
    priced("Milk", "DAIRY", 60, 10.0, protein=3.2, carbs=4.8, fat=3.3),
    priced("Chicken breast", "PROTEIN", 133, 25.0, protein=24, fat=4),
    priced("Cabbage", "VEGETABLES", 25, 4.0, protein=1.3, carbs=5.8),
]


class TestPlanDay:

    def test_budget_split(self):
        plan = plan_day(POOL, 50.0)
        assert {name: meal.budget for name, meal in plan.meals.items()} == {
            "breakfast": 15.0, "lunch": 20.0, "dinner": 15.0,
        }

    def test_meals_respect_categories_and_budget(self):
        plan = plan_day(POOL, 50.0)
        for name, meal in plan.meals.items():
            allowed = set(MEAL_PLAN[name][1])
            assert {item.category for item in meal.items} <= allowed
            assert meal.cost <= meal.budget
        assert plan.total_cost == pytest.approx(sum(m.cost for m in plan.meals.values()), abs=0.05)
        assert plan.total_cost <= 50.0

    def test_low_utilization_recommendation(self):
        plan = plan_day(POOL, 50.0)
        assert plan.budget_utilization < 70
        assert plan.recommendations == ["Budget usage is low; there is room for more nutritious foods"]

    def test_tight_budget_drops_expensive_foods(self):
        # 1.56 / 2.08 / 1.56: rice, rice + cabbage, cabbage
        plan = plan_day(POOL, 5.2)
        names = {item.name for meal in plan.meals.values() for item in meal.items}
        assert "Chicken breast" not in names
        assert "Milk" not in names
        assert plan.total_cost == pytest.approx(4.0)
        assert plan.budget_utilization == pytest.approx(76.9)
        assert plan.recommendations == []

    def test_empty_pool(self):
        plan = plan_day([], 30.0)
        assert plan.total_cost == 0
        assert all(meal.items == [] for meal in plan.meals.values())

    def test_plan_meal_scales_cheapest_calories_first(self):
        options = plan_meal(POOL, 15.0, ("GRAINS", "DAIRY"), {"calories": 400})
        assert options[0].food.name == "Rice"
        assert options[0].amount == pytest.approx(200.0)


class TestShoppingHelpers:

    def test_estimate_price(self):
        assert estimate_price(12.0, 500) == 6.0
        assert estimate_price(None, 500) is None

    @pytest.mark.parametrize("flags,status", [
        ([], "PENDING"),
        ([False, False], "PENDING"),
        ([True, False], "IN_PROGRESS"),
        ([True, True], "COMPLETED"),
    ])
    def test_list_status(self, flags, status):
        items = [SimpleNamespace(purchased=f) for f in flags]
        assert list_status_for(items) == status

    def test_dominant_category(self):
        items = [
            SimpleNamespace(category="VEGETABLES", estimated_price=3.0),
            SimpleNamespace(category="PROTEIN", estimated_price=12.5),
            SimpleNamespace(category="VEGETABLES", estimated_price=4.0),
        ]
        assert ShoppingService._dominant_category(items) == FoodCategory.PROTEIN

    def test_dominant_category_without_prices(self):
        items = [SimpleNamespace(category="FRUITS", estimated_price=None)]
        assert ShoppingService._dominant_category(items) == FoodCategory.OTHER

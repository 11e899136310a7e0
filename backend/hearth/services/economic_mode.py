"""
Hearth Butler Backend — Economic Mode
=======================================

What:  Builds a one-day meal plan that fits a daily food budget.
How:   The budget is split across meals, and each meal is filled by the
       economy optimizer from the cheapest-per-calorie priced foods of
       that meal's categories.

    Meal       Share   Categories
    breakfast   30 %   GRAINS, DAIRY, FRUITS
    lunch       40 %   PROTEIN, VEGETABLES, GRAINS
    dinner      30 %   PROTEIN, VEGETABLES
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from hearth.config import settings
from hearth.exceptions import ValidationError
from hearth.schemas.budget import EconomicPlanResponse, MealPlanResponse, OptimizationConstraints
from hearth.services.cost_optimizer import (
    FoodOption,
    cost_optimizer,
    economy_optimize,
    total_cost,
    total_nutrition,
)

logger = logging.getLogger(__name__)

# Foods above this price per kg are left out of the economy pool
AFFORDABLE_UNIT_PRICE_MAX = 30.0

MEAL_PLAN = {
    "breakfast": (0.3, ("GRAINS", "DAIRY", "FRUITS")),
    "lunch": (0.4, ("PROTEIN", "VEGETABLES", "GRAINS")),
    "dinner": (0.3, ("PROTEIN", "VEGETABLES")),
}

DEFAULT_MEAL_TARGETS = {
    "breakfast": {"calories": 400, "protein": 15, "carbs": 50, "fat": 15},
    "lunch": {"calories": 600, "protein": 25, "carbs": 70, "fat": 20},
    "dinner": {"calories": 500, "protein": 20, "carbs": 60, "fat": 18},
}


def plan_meal(
    pool: Sequence[FoodOption],
    budget: float,
    categories: Sequence[str],
    targets: Mapping[str, float],
) -> List[FoodOption]:
    candidates = [o for o in pool if o.category in categories]
    constraints = OptimizationConstraints(
        max_cost=budget,
        target_calories=targets.get("calories"),
        target_protein=targets.get("protein"),
        target_carbs=targets.get("carbs"),
        target_fat=targets.get("fat"),
        mode="economy",
    )
    return economy_optimize(candidates, [], constraints)


def plan_day(
    pool: Sequence[FoodOption],
    daily_budget: float,
    targets: Optional[Mapping[str, Mapping[str, float]]] = None,
) -> EconomicPlanResponse:
    """Pure daily planning over a pool of priced food options."""
    targets = targets or DEFAULT_MEAL_TARGETS
    meals: Dict[str, MealPlanResponse] = {}
    chosen: List[FoodOption] = []

    for meal, (share, categories) in MEAL_PLAN.items():
        meal_budget = daily_budget * share
        options = plan_meal(pool, meal_budget, categories, targets.get(meal, DEFAULT_MEAL_TARGETS[meal]))
        chosen.extend(options)
        meals[meal] = MealPlanResponse(
            budget=round(meal_budget, 2),
            categories=list(categories),
            items=[o.to_item() for o in options],
            cost=round(total_cost(options), 2),
            calories=round(sum(o.calories for o in options), 1),
        )

    day_cost = total_cost(chosen)
    utilization = day_cost / daily_budget * 100 if daily_budget > 0 else 0.0

    recommendations = []
    if utilization > 90:
        recommendations.append(
            "Close to the daily budget limit; consider smaller portions or cheaper substitutes"
        )
    elif utilization < 70:
        recommendations.append(
            "Budget usage is low; there is room for more nutritious foods"
        )

    return EconomicPlanResponse(
        daily_budget=daily_budget,
        meals=meals,
        total_cost=round(day_cost, 2),
        total_nutrition={k: round(v, 1) for k, v in total_nutrition(chosen).items()},
        budget_utilization=round(utilization, 1),
        recommendations=recommendations,
    )


class EconomicMode:

    async def generate_daily_plan(
        self,
        db: AsyncSession,
        daily_budget: Optional[float] = None,
        targets: Optional[Mapping[str, Mapping[str, float]]] = None,
    ) -> EconomicPlanResponse:
        budget = daily_budget if daily_budget is not None else settings.economic_daily_budget
        if budget <= 0:
            raise ValidationError(message="Daily budget must be greater than zero", field="daily_budget")

        categories = {c for _, cats in MEAL_PLAN.values() for c in cats}
        pool = await cost_optimizer.load_candidates(
            db, categories, max_unit_price=AFFORDABLE_UNIT_PRICE_MAX
        )
        plan = plan_day(pool, budget, targets)
        logger.info(
            "Economic plan for budget %.2f: cost %.2f (%.1f%%)",
            budget, plan.total_cost, plan.budget_utilization,
        )
        return plan


economic_mode = EconomicMode()

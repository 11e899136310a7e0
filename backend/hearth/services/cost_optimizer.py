"""
Hearth Butler Backend — Cost Optimizer
========================================

What:  Suggests a cheaper set of foods for a shopping list while keeping
       nutrition close to the original.
Why:   Grocery budgets are the main lever families have; swapping pork
       for chicken or picking cheaper greens adds up.
How:   Every food is evaluated as a 100 g option priced from its latest
       valid price record. Two strategies:

       economy   Greedy by cost per calorie until the calorie target is met,
                 scaling each option up to twice its base amount.
       balanced  Replaces each requested food with its cheapest same-category
                 substitute when the nutrition profiles are similar enough.

Invariants:
    - optimized cost <= original cost
    - optimized cost <= max_cost when max_cost is set
    - foods without a price are ignored
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from hearth.schemas.budget import (
    OptimizationConstraints,
    OptimizedItem,
    OptimizeResponse,
    SubstitutionResponse,
)
from hearth.services.food_service import food_service

logger = logging.getLogger(__name__)

BASE_AMOUNT = 100.0
MAX_SCALE = 2.0
SIMILARITY_THRESHOLD = 0.7
TARGET_TOLERANCE = 0.9

_MACROS = ("calories", "protein", "carbs", "fat")


@dataclass
class FoodOption:
    """A priced amount of a food. unit_price is per kilogram."""

    food: Any
    unit_price: float
    amount: float = BASE_AMOUNT

    @property
    def food_id(self) -> uuid.UUID:
        return self.food.id

    @property
    def category(self) -> str:
        return self.food.category

    @property
    def cost(self) -> float:
        return self.unit_price * self.amount / 1000

    def nutrient(self, name: str) -> float:
        return (getattr(self.food, name) or 0.0) * self.amount / 100

    @property
    def calories(self) -> float:
        return self.nutrient("calories")

    def nutrition(self) -> Dict[str, float]:
        return {name: self.nutrient(name) for name in _MACROS}

    def scaled(self, amount: float) -> "FoodOption":
        return FoodOption(food=self.food, unit_price=self.unit_price, amount=amount)

    def cost_per_calorie(self) -> float:
        calories = self.calories
        return self.cost / calories if calories > 0 else math.inf

    def to_item(self) -> OptimizedItem:
        nutrition = self.nutrition()
        return OptimizedItem(
            food_id=self.food_id,
            name=self.food.name,
            category=self.category,
            amount=round(self.amount, 1),
            cost=round(self.cost, 2),
            **{name: round(value, 1) for name, value in nutrition.items()},
        )


@dataclass
class Substitution:
    original: FoodOption
    substitute: FoodOption
    savings: float
    reason: str


@dataclass
class OptimizationResult:
    original: List[FoodOption]
    optimized: List[FoodOption]
    substitutions: List[Substitution] = field(default_factory=list)

    @property
    def original_cost(self) -> float:
        return total_cost(self.original)

    @property
    def optimized_cost(self) -> float:
        return total_cost(self.optimized)


def total_cost(options: Iterable[FoodOption]) -> float:
    return sum(option.cost for option in options)


def total_nutrition(options: Iterable[FoodOption]) -> Dict[str, float]:
    totals = {name: 0.0 for name in _MACROS}
    for option in options:
        for name in _MACROS:
            totals[name] += option.nutrient(name)
    return totals


def build_options(
    foods: Mapping[uuid.UUID, Any],
    prices: Mapping[uuid.UUID, float],
    food_ids: Sequence[uuid.UUID],
) -> List[FoodOption]:
    """100 g options for the given ids, in order, skipping unknown or unpriced foods."""
    options = []
    for food_id in food_ids:
        food = foods.get(food_id)
        price = prices.get(food_id)
        if food is None or price is None:
            continue
        options.append(FoodOption(food=food, unit_price=price))
    return options


def nutrition_similarity(a: FoodOption, b: FoodOption) -> float:
    """
    1 minus the Euclidean distance between the normalised macro profiles,
    floored at 0. Each profile is (cal, protein, carbs, fat) divided by its sum.
    """

    def normalise(option: FoodOption) -> List[float]:
        values = [option.nutrient(name) for name in _MACROS]
        total = sum(values)
        if total <= 0:
            return [0.0] * len(values)
        return [v / total for v in values]

    na, nb = normalise(a), normalise(b)
    distance = math.sqrt(sum((x - y) ** 2 for x, y in zip(na, nb)))
    return max(0.0, 1 - distance)


def find_substitutes(
    originals: Sequence[FoodOption],
    candidates: Iterable[FoodOption],
    excluded_food_ids: Iterable[uuid.UUID] = (),
) -> List[FoodOption]:
    """
    Candidates in the same category as some original and cheaper per kg than it,
    sorted by 100 g cost.
    """
    excluded = set(excluded_food_ids)
    original_ids = {o.food_id for o in originals}
    substitutes: Dict[uuid.UUID, FoodOption] = {}
    for candidate in candidates:
        if candidate.food_id in excluded or candidate.food_id in original_ids:
            continue
        for original in originals:
            if (
                candidate.category == original.category
                and candidate.unit_price < original.unit_price
            ):
                substitutes[candidate.food_id] = candidate
                break
    return sorted(substitutes.values(), key=lambda o: o.cost)


def fit_to_max_cost(options: Sequence[FoodOption], max_cost: Optional[float]) -> List[FoodOption]:
    """Keeps options in order while the running cost stays within max_cost."""
    if max_cost is None:
        return list(options)
    kept, running = [], 0.0
    for option in options:
        if running + option.cost > max_cost:
            continue
        kept.append(option)
        running += option.cost
    return kept


def economy_optimize(
    originals: Sequence[FoodOption],
    substitutes: Sequence[FoodOption],
    constraints: OptimizationConstraints,
) -> List[FoodOption]:
    pool: Dict[uuid.UUID, FoodOption] = {}
    for option in list(originals) + list(substitutes):
        pool.setdefault(option.food_id, option)

    target = constraints.target_calories
    if not target:
        # cheapest 100 g per requested category
        cheapest: Dict[str, FoodOption] = {}
        for option in pool.values():
            best = cheapest.get(option.category)
            if best is None or option.cost < best.cost:
                cheapest[option.category] = option
        ordered_categories = list(dict.fromkeys(o.category for o in originals))
        result = [cheapest[c] for c in ordered_categories if c in cheapest]
        return fit_to_max_cost(result, constraints.max_cost)

    result: List[FoodOption] = []
    calories, cost = 0.0, 0.0
    for option in sorted(pool.values(), key=lambda o: o.cost_per_calorie()):
        if calories >= target:
            break
        if option.calories <= 0:
            continue
        needed = min((target - calories) / option.calories * option.amount, MAX_SCALE * option.amount)
        scaled = option.scaled(needed)
        if constraints.max_cost is not None and cost + scaled.cost > constraints.max_cost:
            break
        result.append(scaled)
        calories += scaled.calories
        cost += scaled.cost
    return result


def balanced_optimize(
    originals: Sequence[FoodOption],
    substitutes: Sequence[FoodOption],
) -> List[FoodOption]:
    result = []
    for original in originals:
        cheaper = [
            s for s in substitutes
            if s.category == original.category and s.cost < original.cost
        ]
        if cheaper and nutrition_similarity(original, cheaper[0]) > SIMILARITY_THRESHOLD:
            result.append(cheaper[0])
        else:
            result.append(original)
    return result


def detect_substitutions(
    originals: Sequence[FoodOption],
    optimized: Sequence[FoodOption],
) -> List[Substitution]:
    """Pairs each dropped original with a cheaper kept food of the same category."""
    kept_ids = {o.food_id for o in optimized}
    substitutions = []
    for original in originals:
        if original.food_id in kept_ids:
            continue
        replacement = next(
            (
                o for o in optimized
                if o.category == original.category and o.unit_price < original.unit_price
            ),
            None,
        )
        if replacement is None:
            continue
        savings = (original.unit_price - replacement.unit_price) * BASE_AMOUNT / 1000
        similarity = nutrition_similarity(original, replacement)
        substitutions.append(Substitution(
            original=original,
            substitute=replacement,
            savings=savings,
            reason=(
                f"{replacement.food.name} is cheaper than {original.food.name} "
                f"with {similarity:.0%} nutritional similarity"
            ),
        ))
    return substitutions


def targets_met(nutrition: Mapping[str, float], constraints: OptimizationConstraints) -> Dict[str, bool]:
    """Each set target counts as met at 90 % or more."""
    met = {}
    for name in _MACROS:
        target = getattr(constraints, f"target_{name}")
        if target:
            met[name] = nutrition.get(name, 0.0) >= target * TARGET_TOLERANCE
    return met


def optimize(
    originals: Sequence[FoodOption],
    substitutes: Sequence[FoodOption],
    constraints: OptimizationConstraints,
) -> OptimizationResult:
    if constraints.mode == "economy":
        optimized = economy_optimize(originals, substitutes, constraints)
        if total_cost(optimized) >= total_cost(originals) and originals:
            optimized = fit_to_max_cost(originals, constraints.max_cost)
    else:
        optimized = fit_to_max_cost(
            balanced_optimize(originals, substitutes), constraints.max_cost
        )
    return OptimizationResult(
        original=list(originals),
        optimized=optimized,
        substitutions=detect_substitutions(originals, optimized),
    )


def to_response(
    result: OptimizationResult,
    constraints: OptimizationConstraints,
    ignored_food_ids: Sequence[uuid.UUID] = (),
) -> OptimizeResponse:
    original_cost = result.original_cost
    optimized_cost = result.optimized_cost
    savings = original_cost - optimized_cost
    nutrition = total_nutrition(result.optimized)
    return OptimizeResponse(
        items=[o.to_item() for o in result.optimized],
        original_cost=round(original_cost, 2),
        optimized_cost=round(optimized_cost, 2),
        savings=round(savings, 2),
        savings_percentage=round(savings / original_cost * 100, 1) if original_cost > 0 else 0.0,
        nutrition={name: round(value, 1) for name, value in nutrition.items()},
        targets_met=targets_met(nutrition, constraints),
        substitutions=[
            SubstitutionResponse(
                original_food_id=s.original.food_id,
                original_name=s.original.food.name,
                substitute_food_id=s.substitute.food_id,
                substitute_name=s.substitute.food.name,
                savings=round(s.savings, 2),
                reason=s.reason,
            )
            for s in result.substitutions
        ],
        ignored_food_ids=list(ignored_food_ids),
    )


class CostOptimizer:
    """Loads foods and prices, then runs the pure optimizer."""

    async def load_candidates(
        self,
        db: AsyncSession,
        categories: Iterable[str],
        exclude_ids: Iterable[uuid.UUID] = (),
        max_unit_price: Optional[float] = None,
    ) -> List[FoodOption]:
        """Priced 100 g options for every food in the given categories."""
        excluded = set(exclude_ids)
        foods = [
            f for f in await food_service.list_foods_by_categories(db, categories)
            if f.id not in excluded
        ]
        prices = await food_service.latest_unit_prices(db, [f.id for f in foods])
        options = build_options({f.id: f for f in foods}, prices, [f.id for f in foods])
        if max_unit_price is not None:
            options = [o for o in options if o.unit_price <= max_unit_price]
        return options

    async def optimize_shopping_list(
        self,
        db: AsyncSession,
        food_ids: Sequence[uuid.UUID],
        constraints: OptimizationConstraints,
    ) -> OptimizeResponse:
        foods = await food_service.get_foods_by_ids(db, food_ids)
        prices = await food_service.latest_unit_prices(db, foods.keys())
        originals = build_options(foods, prices, list(dict.fromkeys(food_ids)))
        priced = {o.food_id for o in originals}
        ignored = [fid for fid in dict.fromkeys(food_ids) if fid not in priced]

        candidates = await self.load_candidates(
            db,
            {o.category for o in originals},
            exclude_ids=list(priced) + list(constraints.excluded_food_ids),
        )
        substitutes = find_substitutes(originals, candidates, constraints.excluded_food_ids)

        result = optimize(originals, substitutes, constraints)
        logger.info(
            "Optimized %d foods (%s): %.2f → %.2f",
            len(originals), constraints.mode, result.original_cost, result.optimized_cost,
        )
        return to_response(result, constraints, ignored)


cost_optimizer = CostOptimizer()

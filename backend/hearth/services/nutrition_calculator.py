"""
Hearth Butler Backend — Nutrition Calculator
==============================================

What:  Scales per-100g food baselines to portion sizes and sums meals.
Why:   Meal logs, shopping lists and the cost optimizer all need the same
       portion arithmetic.
How:   Pure functions over `FoodNutrition` values. No I/O, so the ORM
       `Food` row and test fixtures both work as input (duck-typed).

Rounding: every scaled nutrient and every total is rounded to 1 decimal.
Optional nutrients (fiber, sugar, sodium, vitamins, minerals) appear in
results only when at least one input food carries them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from hearth.exceptions import ValidationError

CORE_NUTRIENTS = ("calories", "protein", "carbs", "fat")
OPTIONAL_NUTRIENTS = (
    "fiber",
    "sugar",
    "sodium",
    "vitamin_a",
    "vitamin_c",
    "calcium",
    "iron",
)


@dataclass
class NutritionResult:
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    optional: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, float]:
        data = {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
        }
        data.update(self.optional)
        return data


@dataclass
class PortionItem:
    food_id: Any
    amount: float  # grams


def calculate_single_food(food: Optional[Any], amount: float) -> Optional[NutritionResult]:
    """
    Nutrition of `amount` grams of `food`.

    Returns None for an unknown (None) food.
    """
    if food is None:
        return None
    ratio = amount / 100
    result = NutritionResult(
        calories=round(food.calories * ratio, 1),
        protein=round(food.protein * ratio, 1),
        carbs=round(food.carbs * ratio, 1),
        fat=round(food.fat * ratio, 1),
    )
    for name in OPTIONAL_NUTRIENTS:
        value = getattr(food, name, None)
        if value is not None:
            result.optional[name] = round(value * ratio, 1)
    return result


def calculate_batch(foods: Mapping[Any, Any], items: Iterable[PortionItem]) -> NutritionResult:
    """
    Sums nutrition over several portions.

    Args:
        foods: food_id → food, for every known food
        items: portions to total; items whose food is unknown are skipped
    """
    total = NutritionResult()
    optional_totals: Dict[str, float] = {}

    for item in items:
        single = calculate_single_food(foods.get(item.food_id), item.amount)
        if single is None:
            continue
        total.calories += single.calories
        total.protein += single.protein
        total.carbs += single.carbs
        total.fat += single.fat
        for name, value in single.optional.items():
            optional_totals[name] = optional_totals.get(name, 0.0) + value

    total.calories = round(total.calories, 1)
    total.protein = round(total.protein, 1)
    total.carbs = round(total.carbs, 1)
    total.fat = round(total.fat, 1)
    total.optional = {name: round(value, 1) for name, value in optional_totals.items()}
    return total


# ══════════════════════════════════════════════════════════════════════════
# Unit conversion
# ══════════════════════════════════════════════════════════════════════════

class UnitConverter:
    """Converts weights and kitchen volumes to grams."""

    WEIGHT_TO_GRAMS = {
        "g": 1.0,
        "kg": 1000.0,
        "oz": 28.35,
        "lb": 453.592,
    }

    # grams per unit, by food type
    VOLUME_TO_GRAMS: Dict[str, Dict[str, float]] = {
        "rice": {"cup": 200, "tbsp": 12.5, "tsp": 4.2, "ml": 0.2, "l": 200},
        "flour": {"cup": 120, "tbsp": 7.5, "tsp": 2.5, "ml": 0.12, "l": 120},
        "sugar": {"cup": 200, "tbsp": 12.5, "tsp": 4.2, "ml": 0.2, "l": 200},
        "milk": {"cup": 240, "tbsp": 15, "tsp": 5, "ml": 1, "l": 1000},
        "oil": {"cup": 220, "tbsp": 14, "tsp": 4.7, "ml": 0.9, "l": 900},
        "default": {"cup": 200, "tbsp": 12.5, "tsp": 4.2, "ml": 1, "l": 1000},
    }

    @classmethod
    def to_grams(cls, amount: float, unit: str) -> float:
        factor = cls.WEIGHT_TO_GRAMS.get(unit.strip().lower())
        if factor is None:
            raise ValidationError(
                message=f"Unsupported weight unit '{unit}'. Use one of: g, kg, oz, lb",
                field="unit",
            )
        return amount * factor

    @classmethod
    def volume_to_grams(cls, amount: float, unit: str, food_type: str = "default") -> float:
        table = cls.VOLUME_TO_GRAMS.get(food_type.strip().lower(), cls.VOLUME_TO_GRAMS["default"])
        factor = table.get(unit.strip().lower())
        if factor is None:
            raise ValidationError(
                message=f"Unsupported volume unit '{unit}'. Use one of: cup, tbsp, tsp, ml, l",
                field="unit",
            )
        return amount * factor

    @classmethod
    def parse_quantity(cls, quantity: str) -> float:
        """
        Grams in a package label such as '500g', '1.5kg' or '2 lb'.
        A bare number is read as grams.
        """
        text = quantity.strip().lower().replace(" ", "")
        number = ""
        for ch in text:
            if ch.isdigit() or ch == ".":
                number += ch
            else:
                break
        unit = text[len(number):] or "g"
        try:
            value = float(number) if number else 1.0
        except ValueError:
            raise ValidationError(message=f"Cannot parse quantity '{quantity}'", field="unit")
        return cls.to_grams(value, unit)

"""
Hearth Butler Backend — Nutrition Calculator Unit Tests
=========================================================

What we test:
    ✅ Portion scaling from per-100g baselines, rounded to 1 decimal
    ✅ Optional nutrients only appear when the food carries them
    ✅ Batch totals skip unknown foods
    ✅ Unit conversion for weights, kitchen volumes and package labels
"""

from types import SimpleNamespace

import pytest

from hearth.exceptions import ValidationError
from hearth.services.nutrition_calculator import (
    NutritionResult,
    PortionItem,
    UnitConverter,
    calculate_batch,
    calculate_single_food,
)


def food(**kwargs):
    base = dict(
        calories=0.0, protein=0.0, carbs=0.0, fat=0.0,
        fiber=None, sugar=None, sodium=None,
        vitamin_a=None, vitamin_c=None, calcium=None, iron=None,
    )
    base.update(kwargs)
    return SimpleNamespace(**base)


RICE = food(calories=130, protein=2.6, carbs=28.2, fat=0.2, fiber=0.4)
CHICKEN = food(calories=165, protein=31, carbs=0, fat=3.6, sodium=74)


class TestSingleFood:

    def test_scales_by_amount(self):
        result = calculate_single_food(RICE, 150)
        assert result.calories == 195.0
        assert result.protein == 3.9
        assert result.carbs == 42.3
        assert result.fat == 0.3

    def test_optional_nutrients_only_when_present(self):
        result = calculate_single_food(RICE, 200)
        assert result.optional == {"fiber": 0.8}
        assert "sodium" not in result.as_dict()

    def test_unknown_food_returns_none(self):
        assert calculate_single_food(None, 100) is None

    def test_zero_amount(self):
        result = calculate_single_food(CHICKEN, 0)
        assert result.calories == 0.0
        assert result.optional["sodium"] == 0.0


class TestBatch:

    def test_sums_known_foods(self):
        foods = {"rice": RICE, "chicken": CHICKEN}
        total = calculate_batch(foods, [PortionItem("rice", 100), PortionItem("chicken", 200)])
        assert total.calories == 460.0
        assert total.protein == 64.6
        assert total.optional == {"fiber": 0.4, "sodium": 148.0}

    def test_unknown_foods_are_skipped(self):
        total = calculate_batch({"rice": RICE}, [PortionItem("rice", 100), PortionItem("ghost", 500)])
        assert total.calories == 130.0

    def test_empty_batch_is_zero(self):
        total = calculate_batch({}, [])
        assert total == NutritionResult()
        assert total.as_dict() == {"calories": 0.0, "protein": 0.0, "carbs": 0.0, "fat": 0.0}


class TestUnitConverter:

    @pytest.mark.parametrize("amount,unit,grams", [
        (250, "g", 250),
        (1.5, "kg", 1500),
        (2, "oz", 56.7),
        (1, "LB", 453.592),
    ])
    def test_weights(self, amount, unit, grams):
        assert UnitConverter.to_grams(amount, unit) == pytest.approx(grams)

    def test_unknown_weight_unit_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported weight unit"):
            UnitConverter.to_grams(1, "stone")

    def test_volume_uses_food_density(self):
        assert UnitConverter.volume_to_grams(1, "cup", "rice") == 200
        assert UnitConverter.volume_to_grams(1, "cup", "milk") == 240
        assert UnitConverter.volume_to_grams(2, "tbsp", "unknown-food") == 25

    def test_unknown_volume_unit_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported volume unit"):
            UnitConverter.volume_to_grams(1, "pint")

    @pytest.mark.parametrize("label,grams", [
        ("500g", 500),
        ("1.5kg", 1500),
        ("2 lb", 907.184),
        ("300", 300),
    ])
    def test_parse_quantity(self, label, grams):
        assert UnitConverter.parse_quantity(label) == pytest.approx(grams)

    def test_parse_quantity_rejects_garbage(self):
        with pytest.raises(ValidationError):
            UnitConverter.parse_quantity("1.2.3kg")

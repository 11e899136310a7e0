"""
Hearth Butler Backend — Meal Service
======================================

What:  Logs meals for a member and summarises daily nutrition.
How:   Portions are converted to grams, nutrient totals are computed once
       with the nutrition calculator and stored on the meal log row.
"""

import logging
import uuid
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import NotFoundError, ValidationError
from hearth.models.nutrition import MealLog, MealLogFood
from hearth.models.mixins import utcnow
from hearth.models.user import User
from hearth.schemas.nutrition import (
    DailyNutritionSummary,
    MealFoodResponse,
    MealLogCreate,
    MealLogResponse,
    NutritionCalculateResponse,
    PortionInput,
    PortionNutrition,
)
from hearth.services.family_service import family_service
from hearth.services.food_service import food_service
from hearth.services.nutrition_calculator import (
    PortionItem,
    UnitConverter,
    calculate_batch,
    calculate_single_food,
)

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = ("calories", "protein", "carbs", "fat")


class MealService:

    async def calculate(
        self, db: AsyncSession, items: List[PortionInput]
    ) -> NutritionCalculateResponse:
        """Per-portion and total nutrition; unknown foods are reported, not fatal."""
        portions = [
            PortionItem(food_id=item.food_id, amount=UnitConverter.to_grams(item.amount, item.unit))
            for item in items
        ]
        foods = await food_service.get_foods_by_ids(db, [p.food_id for p in portions])

        lines = []
        for portion in portions:
            result = calculate_single_food(foods.get(portion.food_id), portion.amount)
            if result is None:
                continue
            lines.append(PortionNutrition(
                food_id=portion.food_id,
                food_name=foods[portion.food_id].name,
                amount_g=round(portion.amount, 1),
                nutrition=result.as_dict(),
            ))

        return NutritionCalculateResponse(
            items=lines,
            total=calculate_batch(foods, portions).as_dict(),
            unknown_food_ids=[p.food_id for p in portions if p.food_id not in foods],
        )

    async def log_meal(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        data: MealLogCreate,
    ) -> MealLogResponse:
        await family_service.require_member_access(db, user, member_id, write=True)

        portions = [
            PortionItem(food_id=item.food_id, amount=UnitConverter.to_grams(item.amount, item.unit))
            for item in data.items
        ]
        foods = await food_service.get_foods_by_ids(db, [p.food_id for p in portions])
        unknown = [str(p.food_id) for p in portions if p.food_id not in foods]
        if unknown:
            raise ValidationError(
                message="Some foods in this meal do not exist",
                field="items",
                context={"unknown_food_ids": unknown},
            )

        totals = calculate_batch(foods, portions)
        meal = MealLog(
            member_id=member_id,
            date=data.date,
            meal_type=data.meal_type.value,
            calories=totals.calories,
            protein=totals.protein,
            carbs=totals.carbs,
            fat=totals.fat,
            fiber=totals.optional.get("fiber"),
            sugar=totals.optional.get("sugar"),
            sodium=totals.optional.get("sodium"),
            notes=data.notes,
        )
        db.add(meal)
        await db.flush()

        meal_foods = [
            MealLogFood(meal_log_id=meal.id, food_id=p.food_id, amount=round(p.amount, 1))
            for p in portions
        ]
        for meal_food in meal_foods:
            db.add(meal_food)
        await db.flush()

        logger.info(
            "Meal %s logged for member %s: %.1f kcal", meal.id, member_id, meal.calories
        )
        response = MealLogResponse.model_validate(meal)
        response.foods = [MealFoodResponse.model_validate(mf) for mf in meal_foods]
        return response

    async def list_meals(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 100,
    ) -> List[MealLog]:
        await family_service.require_member_access(db, user, member_id)
        stmt = select(MealLog).where(MealLog.member_id == member_id, MealLog.deleted_at.is_(None))
        if start:
            stmt = stmt.where(MealLog.date >= start)
        if end:
            stmt = stmt.where(MealLog.date <= end)
        result = await db.execute(
            stmt.order_by(MealLog.date.desc(), MealLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def daily_summary(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        day: date,
    ) -> DailyNutritionSummary:
        meals = await self.list_meals(db, user, member_id, start=day, end=day)
        by_type: Dict[str, Dict[str, float]] = {}
        total = {name: 0.0 for name in SUMMARY_FIELDS}
        for meal in meals:
            bucket = by_type.setdefault(meal.meal_type, {name: 0.0 for name in SUMMARY_FIELDS})
            for name in SUMMARY_FIELDS:
                value = getattr(meal, name) or 0.0
                bucket[name] += value
                total[name] += value

        return DailyNutritionSummary(
            date=day,
            meal_count=len(meals),
            by_meal_type={
                meal_type: {k: round(v, 1) for k, v in values.items()}
                for meal_type, values in by_type.items()
            },
            total={k: round(v, 1) for k, v in total.items()},
        )

    async def delete_meal(self, db: AsyncSession, user: User, meal_id: uuid.UUID) -> None:
        result = await db.execute(
            select(MealLog).where(MealLog.id == meal_id, MealLog.deleted_at.is_(None))
        )
        meal = result.scalar_one_or_none()
        if meal is None:
            raise NotFoundError(resource="meal log", resource_id=str(meal_id))
        await family_service.require_member_access(db, user, meal.member_id, write=True)
        meal.deleted_at = utcnow()
        await db.flush()


meal_service = MealService()

"""
Hearth Butler Backend — Food Service
======================================

What:  Food catalogue (create, search, fetch) and price history.
Why:   Foods are the shared vocabulary of meals, shopping lists and the
       cost optimizer; prices drive budget estimates.
How:   Prices are normalised to currency per kilogram when recorded, so the
       optimizer compares foods bought in different package sizes.
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import DatabaseError, NotFoundError, ValidationError
from hearth.models.nutrition import Food, PriceHistory
from hearth.schemas.nutrition import FoodCreate
from hearth.services.nutrition_calculator import UnitConverter

logger = logging.getLogger(__name__)


class FoodService:

    async def create_food(self, db: AsyncSession, data: FoodCreate) -> Food:
        if data.protein + data.carbs + data.fat > 100:
            raise ValidationError(
                message="Protein, carbs and fat cannot exceed 100g per 100g of food",
                field="protein",
            )
        try:
            values = data.model_dump()
            values["category"] = data.category.value
            food = Food(**values, verified=False)
            db.add(food)
            await db.flush()
            logger.info("Food created: %s (%s)", food.name, food.id)
            return food
        except Exception as e:
            logger.error("Database error creating food: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the food. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def search_foods(
        self,
        db: AsyncSession,
        query: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 20,
    ) -> List[Food]:
        """Case-insensitive name match on the local or English name."""
        stmt = select(Food)
        if query:
            pattern = f"%{query.strip()}%"
            stmt = stmt.where(or_(Food.name.ilike(pattern), Food.name_en.ilike(pattern)))
        if category:
            stmt = stmt.where(Food.category == category)
        result = await db.execute(stmt.order_by(Food.name).limit(limit))
        return list(result.scalars().all())

    async def get_food(self, db: AsyncSession, food_id: uuid.UUID) -> Food:
        result = await db.execute(select(Food).where(Food.id == food_id))
        food = result.scalar_one_or_none()
        if food is None:
            raise NotFoundError(resource="food", resource_id=str(food_id))
        return food

    async def get_foods_by_ids(
        self, db: AsyncSession, food_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, Food]:
        ids = list(set(food_ids))
        if not ids:
            return {}
        result = await db.execute(select(Food).where(Food.id.in_(ids)))
        return {food.id: food for food in result.scalars().all()}

    async def list_foods_by_categories(
        self, db: AsyncSession, categories: Iterable[str]
    ) -> List[Food]:
        result = await db.execute(select(Food).where(Food.category.in_(list(categories))))
        return list(result.scalars().all())

    # ══════════════════════════════════════════════════════════════════════
    # Prices
    # ══════════════════════════════════════════════════════════════════════

    async def record_price(
        self,
        db: AsyncSession,
        food_id: uuid.UUID,
        price: float,
        unit: str,
        platform: Optional[str] = None,
    ) -> PriceHistory:
        """Stores an observed price; unit_price is derived per kilogram."""
        await self.get_food(db, food_id)
        grams = UnitConverter.parse_quantity(unit)
        if grams <= 0:
            raise ValidationError(message="Package size must be greater than zero", field="unit")

        entry = PriceHistory(
            food_id=food_id,
            price=price,
            unit=unit,
            unit_price=round(price / (grams / 1000), 2),
            platform=platform,
            source="user",
            is_valid=True,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def list_prices(
        self, db: AsyncSession, food_id: uuid.UUID, limit: int = 20
    ) -> List[PriceHistory]:
        result = await db.execute(
            select(PriceHistory)
            .where(PriceHistory.food_id == food_id)
            .order_by(PriceHistory.recorded_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_unit_price(self, db: AsyncSession, food_id: uuid.UUID) -> Optional[float]:
        prices = await self.latest_unit_prices(db, [food_id])
        return prices.get(food_id)

    async def latest_unit_prices(
        self, db: AsyncSession, food_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, float]:
        """Most recent valid per-kg price for each food that has one."""
        ids = list(set(food_ids))
        if not ids:
            return {}
        result = await db.execute(
            select(PriceHistory)
            .where(PriceHistory.food_id.in_(ids), PriceHistory.is_valid.is_(True))
            .order_by(PriceHistory.recorded_at.desc())
        )
        latest: Dict[uuid.UUID, float] = {}
        for entry in result.scalars().all():
            latest.setdefault(entry.food_id, entry.unit_price)
        return latest


food_service = FoodService()

"""
Hearth Butler Backend — Shopping List Service
===============================================

What:  Family shopping lists with cost estimates and purchase tracking.
How:   Item estimates use the food's latest price per kg. List status
       follows the items: PENDING → IN_PROGRESS after the first purchase →
       COMPLETED once everything is bought (or the list is completed
       explicitly, optionally booking the actual cost against a budget).
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import NotFoundError, ValidationError
from hearth.models.enums import FoodCategory, ListStatus
from hearth.models.mixins import utcnow
from hearth.models.shopping import ShoppingItem, ShoppingList
from hearth.models.user import User
from hearth.schemas.budget import BudgetAlertResponse, SpendingCreate, SpendingResponse
from hearth.schemas.shopping import (
    CompleteListResponse,
    ShoppingItemCreate,
    ShoppingItemResponse,
    ShoppingListCreate,
    ShoppingListResponse,
)
from hearth.services.budget_tracker import budget_tracker
from hearth.services.family_service import family_service
from hearth.services.food_service import food_service
from hearth.services.nutrition_calculator import UnitConverter

logger = logging.getLogger(__name__)


def estimate_price(unit_price: Optional[float], amount_g: float) -> Optional[float]:
    if unit_price is None:
        return None
    return round(unit_price * amount_g / 1000, 2)


def list_status_for(items: Sequence[ShoppingItem]) -> str:
    purchased = sum(1 for item in items if item.purchased)
    if items and purchased == len(items):
        return ListStatus.COMPLETED.value
    if purchased:
        return ListStatus.IN_PROGRESS.value
    return ListStatus.PENDING.value


def to_response(shopping_list: ShoppingList, items: Sequence[ShoppingItem]) -> ShoppingListResponse:
    response = ShoppingListResponse.model_validate(shopping_list)
    response.items = [ShoppingItemResponse.model_validate(item) for item in items]
    return response


class ShoppingService:

    async def _build_items(
        self, db: AsyncSession, list_id: uuid.UUID, entries: Sequence[ShoppingItemCreate]
    ) -> List[ShoppingItem]:
        amounts = [UnitConverter.to_grams(e.amount, e.unit) for e in entries]
        foods = await food_service.get_foods_by_ids(db, [e.food_id for e in entries])
        unknown = [str(e.food_id) for e in entries if e.food_id not in foods]
        if unknown:
            raise ValidationError(
                message="Some foods on this list do not exist",
                field="items",
                context={"unknown_food_ids": unknown},
            )
        prices = await food_service.latest_unit_prices(db, foods.keys())
        return [
            ShoppingItem(
                list_id=list_id,
                food_id=entry.food_id,
                amount=round(amount, 1),
                category=foods[entry.food_id].category,
                estimated_price=estimate_price(prices.get(entry.food_id), amount),
                purchased=False,
            )
            for entry, amount in zip(entries, amounts)
        ]

    async def _get_list(
        self, db: AsyncSession, user: User, list_id: uuid.UUID, write: bool = False
    ) -> Tuple[ShoppingList, List[ShoppingItem]]:
        result = await db.execute(
            select(ShoppingList).where(
                ShoppingList.id == list_id, ShoppingList.deleted_at.is_(None)
            )
        )
        shopping_list = result.scalar_one_or_none()
        if shopping_list is None:
            raise NotFoundError(resource="shopping list", resource_id=str(list_id))
        await family_service.require_family_access(db, user, shopping_list.family_id, write=write)

        result = await db.execute(
            select(ShoppingItem)
            .where(ShoppingItem.list_id == list_id)
            .order_by(ShoppingItem.created_at)
        )
        return shopping_list, list(result.scalars().all())

    async def create_list(
        self, db: AsyncSession, user: User, family_id: uuid.UUID, data: ShoppingListCreate
    ) -> ShoppingListResponse:
        await family_service.require_family_access(db, user, family_id, write=True)
        shopping_list = ShoppingList(
            family_id=family_id,
            created_by=user.id,
            name=data.name.strip(),
            budget=data.budget,
            estimated_cost=0.0,
            status=ListStatus.PENDING.value,
        )
        db.add(shopping_list)
        await db.flush()

        items = await self._build_items(db, shopping_list.id, data.items) if data.items else []
        for item in items:
            db.add(item)
        shopping_list.estimated_cost = round(sum(i.estimated_price or 0.0 for i in items), 2)
        await db.flush()

        logger.info(
            "Shopping list %s created for family %s with %d items",
            shopping_list.id, family_id, len(items),
        )
        return to_response(shopping_list, items)

    async def add_item(
        self, db: AsyncSession, user: User, list_id: uuid.UUID, data: ShoppingItemCreate
    ) -> ShoppingListResponse:
        shopping_list, items = await self._get_list(db, user, list_id, write=True)
        if shopping_list.status == ListStatus.COMPLETED.value:
            raise ValidationError(message="Cannot add items to a completed list", field="list_id")

        new_items = await self._build_items(db, list_id, [data])
        for item in new_items:
            db.add(item)
        items.extend(new_items)
        shopping_list.estimated_cost = round(sum(i.estimated_price or 0.0 for i in items), 2)
        shopping_list.status = list_status_for(items)
        await db.flush()
        return to_response(shopping_list, items)

    async def set_purchased(
        self, db: AsyncSession, user: User, item_id: uuid.UUID, purchased: bool = True
    ) -> ShoppingListResponse:
        result = await db.execute(select(ShoppingItem).where(ShoppingItem.id == item_id))
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError(resource="shopping item", resource_id=str(item_id))

        shopping_list, items = await self._get_list(db, user, item.list_id, write=True)
        for candidate in items:
            if candidate.id == item.id:
                candidate.purchased = purchased
                candidate.purchased_by = user.id if purchased else None
                candidate.purchased_at = utcnow() if purchased else None
        shopping_list.status = list_status_for(items)
        await db.flush()
        return to_response(shopping_list, items)

    async def complete_list(
        self,
        db: AsyncSession,
        user: User,
        list_id: uuid.UUID,
        actual_cost: float,
        budget_id: Optional[uuid.UUID] = None,
    ) -> CompleteListResponse:
        shopping_list, items = await self._get_list(db, user, list_id, write=True)
        if shopping_list.status == ListStatus.COMPLETED.value:
            raise ValidationError(message="Shopping list is already completed", field="list_id")
        shopping_list.status = ListStatus.COMPLETED.value
        shopping_list.actual_cost = round(actual_cost, 2)
        await db.flush()

        spending_response, alerts = None, []
        if budget_id is not None and actual_cost > 0:
            spending, _, alerts = await budget_tracker.record_spending(
                db,
                user,
                budget_id,
                SpendingCreate(
                    amount=actual_cost,
                    category=self._dominant_category(items),
                    description=f"Shopping list: {shopping_list.name}",
                ),
            )
            spending_response = SpendingResponse.model_validate(spending)

        logger.info("Shopping list %s completed: %.2f", list_id, actual_cost)
        return CompleteListResponse(
            shopping_list=to_response(shopping_list, items),
            spending=spending_response,
            new_alerts=[BudgetAlertResponse.model_validate(a) for a in alerts],
        )

    @staticmethod
    def _dominant_category(items: Sequence[ShoppingItem]) -> FoodCategory:
        """Category carrying the largest estimated cost, OTHER when unknown."""
        totals: Dict[str, float] = {}
        for item in items:
            totals[item.category] = totals.get(item.category, 0.0) + (item.estimated_price or 0.0)
        if not totals or max(totals.values()) <= 0:
            return FoodCategory.OTHER
        try:
            return FoodCategory(max(totals, key=totals.get))
        except ValueError:
            return FoodCategory.OTHER

    async def list_lists(
        self,
        db: AsyncSession,
        user: User,
        family_id: uuid.UUID,
        status: Optional[str] = None,
    ) -> List[ShoppingList]:
        await family_service.require_family_access(db, user, family_id)
        stmt = select(ShoppingList).where(
            ShoppingList.family_id == family_id, ShoppingList.deleted_at.is_(None)
        )
        if status:
            stmt = stmt.where(ShoppingList.status == status)
        result = await db.execute(stmt.order_by(ShoppingList.created_at.desc()))
        return list(result.scalars().all())

    async def get_list(self, db: AsyncSession, user: User, list_id: uuid.UUID) -> ShoppingListResponse:
        shopping_list, items = await self._get_list(db, user, list_id)
        return to_response(shopping_list, items)


shopping_service = ShoppingService()

"""
Hearth Butler Backend — Food, Nutrition and Meal Routes
=========================================================

    POST   /api/foods                        add a food to the catalogue (201)
    GET    /api/foods                        search by name and category
    GET    /api/foods/{id}                   food detail
    POST   /api/foods/{id}/prices            record an observed price (201)
    GET    /api/foods/{id}/prices            price history, newest first
    POST   /api/nutrition/calculate          nutrition for a list of portions
    POST   /api/members/{id}/meals           log a meal (201)
    GET    /api/members/{id}/meals           meal history
    GET    /api/members/{id}/meals/summary   per-day totals by meal type
    DELETE /api/meals/{id}                   soft delete

The food catalogue is shared by every family; reading and writing it only
requires a signed-in user.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import FoodCategory
from hearth.models.mixins import utcnow
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.nutrition import (
    DailyNutritionSummary,
    FoodCreate,
    FoodResponse,
    MealLogCreate,
    MealLogResponse,
    NutritionCalculateRequest,
    NutritionCalculateResponse,
    PriceCreate,
    PriceResponse,
)
from hearth.services.food_service import food_service
from hearth.services.meal_service import meal_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Nutrition"], responses=AUTH_RESPONSES)

_INVALID_INPUT = {400: {"description": "Invalid input", "model": ErrorResponse}}


# ── Foods ─────────────────────────────────────────────────────────────────

@router.post(
    "/foods",
    status_code=201,
    response_model=FoodResponse,
    responses=_INVALID_INPUT,
    summary="Add a food",
)
async def create_food(
    body: FoodCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FoodResponse:
    food = await food_service.create_food(db, body)
    return FoodResponse.model_validate(food)


@router.get("/foods", response_model=List[FoodResponse], summary="Search foods")
async def search_foods(
    q: Optional[str] = Query(default=None, max_length=100, description="Name or English name fragment"),
    category: Optional[FoodCategory] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FoodResponse]:
    foods = await food_service.search_foods(
        db, query=q, category=category.value if category else None, limit=limit
    )
    return [FoodResponse.model_validate(f) for f in foods]


@router.get("/foods/{food_id}", response_model=FoodResponse, summary="Food detail")
async def get_food(
    food_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FoodResponse:
    response = FoodResponse.model_validate(await food_service.get_food(db, food_id))
    response.latest_unit_price = await food_service.latest_unit_price(db, food_id)
    return response


@router.post(
    "/foods/{food_id}/prices",
    status_code=201,
    response_model=PriceResponse,
    responses=_INVALID_INPUT,
    summary="Record a price observation",
)
async def record_price(
    food_id: uuid.UUID,
    body: PriceCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PriceResponse:
    entry = await food_service.record_price(db, food_id, body.price, body.unit, body.platform)
    return PriceResponse.model_validate(entry)


@router.get("/foods/{food_id}/prices", response_model=List[PriceResponse], summary="Price history")
async def list_prices(
    food_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PriceResponse]:
    await food_service.get_food(db, food_id)
    prices = await food_service.list_prices(db, food_id, limit)
    return [PriceResponse.model_validate(p) for p in prices]


@router.post(
    "/nutrition/calculate",
    response_model=NutritionCalculateResponse,
    responses=_INVALID_INPUT,
    summary="Calculate nutrition for portions",
)
async def calculate_nutrition(
    body: NutritionCalculateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NutritionCalculateResponse:
    return await meal_service.calculate(db, body.items)


# ── Meals ─────────────────────────────────────────────────────────────────

@router.post(
    "/members/{member_id}/meals",
    status_code=201,
    response_model=MealLogResponse,
    responses=_INVALID_INPUT,
    summary="Log a meal",
)
async def log_meal(
    member_id: uuid.UUID,
    body: MealLogCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MealLogResponse:
    return await meal_service.log_meal(db, user, member_id, body)


@router.get("/members/{member_id}/meals", response_model=List[MealLogResponse], summary="Meal history")
async def list_meals(
    member_id: uuid.UUID,
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MealLogResponse]:
    meals = await meal_service.list_meals(db, user, member_id, start, end, limit)
    return [MealLogResponse.model_validate(m) for m in meals]


@router.get(
    "/members/{member_id}/meals/summary",
    response_model=DailyNutritionSummary,
    summary="Daily nutrition summary",
)
async def meal_summary(
    member_id: uuid.UUID,
    day: Optional[date] = Query(default=None, alias="date", description="Defaults to today (UTC)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DailyNutritionSummary:
    return await meal_service.daily_summary(db, user, member_id, day or utcnow().date())


@router.delete("/meals/{meal_id}", response_model=MessageResponse, summary="Delete a meal log")
async def delete_meal(
    meal_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await meal_service.delete_meal(db, user, meal_id)
    return MessageResponse(message="Meal log deleted")

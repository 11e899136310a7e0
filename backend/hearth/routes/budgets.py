"""
Hearth Butler Backend — Budget Routes
=======================================

What:  Food budgets, spending records, threshold alerts, the cost optimizer
       and the economic-mode daily meal plan.

    POST   /api/members/{id}/budgets              create (201)
    GET    /api/members/{id}/budgets              list, optional status filter
    GET    /api/budgets/{id}                      budget
    PATCH  /api/budgets/{id}                      update amounts, dates or thresholds
    DELETE /api/budgets/{id}                      soft delete
    GET    /api/budgets/{id}/status               usage by category, pacing, active alerts
    POST   /api/budgets/{id}/spendings            record a purchase (201)
    GET    /api/budgets/{id}/spendings            spending history
    POST   /api/budget-alerts/{id}/acknowledge    acknowledge an alert
    POST   /api/budget/optimize                   cheaper shopping list for given foods
    GET    /api/budget/economic-plan              cheapest balanced day of meals
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import BudgetStatus, FoodCategory
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.budget import (
    BudgetAlertResponse,
    BudgetCreate,
    BudgetResponse,
    BudgetStatusResponse,
    BudgetUpdate,
    EconomicPlanResponse,
    OptimizeRequest,
    OptimizeResponse,
    SpendingCreate,
    SpendingRecordedResponse,
    SpendingResponse,
)
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.services.budget_tracker import budget_tracker
from hearth.services.cost_optimizer import cost_optimizer
from hearth.services.economic_mode import economic_mode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Budgets"], responses=AUTH_RESPONSES)

_INVALID_INPUT = {400: {"description": "Invalid amounts or dates", "model": ErrorResponse}}


@router.post(
    "/members/{member_id}/budgets",
    status_code=201,
    response_model=BudgetResponse,
    responses=_INVALID_INPUT,
    summary="Create a budget",
)
async def create_budget(
    member_id: uuid.UUID,
    body: BudgetCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BudgetResponse:
    budget = await budget_tracker.create_budget(db, user, member_id, body)
    return BudgetResponse.model_validate(budget)


@router.get("/members/{member_id}/budgets", response_model=List[BudgetResponse], summary="List budgets")
async def list_budgets(
    member_id: uuid.UUID,
    status: Optional[BudgetStatus] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BudgetResponse]:
    budgets = await budget_tracker.list_budgets(
        db, user, member_id, status.value if status else None
    )
    return [BudgetResponse.model_validate(b) for b in budgets]


@router.get("/budgets/{budget_id}", response_model=BudgetResponse, summary="Budget detail")
async def get_budget(
    budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BudgetResponse:
    return BudgetResponse.model_validate(await budget_tracker.get_budget(db, user, budget_id))


@router.patch(
    "/budgets/{budget_id}",
    response_model=BudgetResponse,
    responses=_INVALID_INPUT,
    summary="Update a budget",
)
async def update_budget(
    budget_id: uuid.UUID,
    body: BudgetUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BudgetResponse:
    budget = await budget_tracker.update_budget(db, user, budget_id, body)
    return BudgetResponse.model_validate(budget)


@router.delete("/budgets/{budget_id}", response_model=MessageResponse, summary="Delete a budget")
async def delete_budget(
    budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await budget_tracker.delete_budget(db, user, budget_id)
    return MessageResponse(message="Budget deleted")


@router.get(
    "/budgets/{budget_id}/status",
    response_model=BudgetStatusResponse,
    summary="Budget usage and pacing",
)
async def budget_status(
    budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BudgetStatusResponse:
    return await budget_tracker.get_budget_status(db, user, budget_id)


@router.post(
    "/budgets/{budget_id}/spendings",
    status_code=201,
    response_model=SpendingRecordedResponse,
    responses=_INVALID_INPUT,
    summary="Record a spending",
    description=(
        "Adds a purchase to an ACTIVE budget, recomputes usage and returns any "
        "alerts raised by crossing the 80 / 100 / 110 % thresholds."
    ),
)
async def record_spending(
    budget_id: uuid.UUID,
    body: SpendingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SpendingRecordedResponse:
    spending, budget, alerts = await budget_tracker.record_spending(db, user, budget_id, body)
    return SpendingRecordedResponse(
        spending=SpendingResponse.model_validate(spending),
        budget=BudgetResponse.model_validate(budget),
        new_alerts=[BudgetAlertResponse.model_validate(a) for a in alerts],
    )


@router.get(
    "/budgets/{budget_id}/spendings",
    response_model=List[SpendingResponse],
    summary="Spending history",
)
async def spending_history(
    budget_id: uuid.UUID,
    category: Optional[FoodCategory] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SpendingResponse]:
    spendings = await budget_tracker.get_spending_history(
        db, user, budget_id, category.value if category else None, limit
    )
    return [SpendingResponse.model_validate(s) for s in spendings]


@router.post(
    "/budget-alerts/{alert_id}/acknowledge",
    response_model=BudgetAlertResponse,
    summary="Acknowledge a budget alert",
)
async def acknowledge_alert(
    alert_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BudgetAlertResponse:
    alert = await budget_tracker.acknowledge_alert(db, user, alert_id)
    return BudgetAlertResponse.model_validate(alert)


# ── Optimizer ─────────────────────────────────────────────────────────────

@router.post(
    "/budget/optimize",
    response_model=OptimizeResponse,
    responses=_INVALID_INPUT,
    summary="Optimize a shopping list for cost",
)
async def optimize(
    body: OptimizeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OptimizeResponse:
    return await cost_optimizer.optimize_shopping_list(db, body.food_ids, body.constraints)


@router.get(
    "/budget/economic-plan",
    response_model=EconomicPlanResponse,
    responses=_INVALID_INPUT,
    summary="Economic-mode daily meal plan",
)
async def economic_plan(
    daily_budget: Optional[float] = Query(default=None, gt=0, description="Defaults to the configured daily budget"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EconomicPlanResponse:
    return await economic_mode.generate_daily_plan(db, daily_budget)

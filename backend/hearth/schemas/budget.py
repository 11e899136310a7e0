"""
Hearth Butler Backend — Budget, Spending and Cost Optimizer Schemas
=====================================================================
"""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from hearth.models.enums import BudgetPeriod, FoodCategory


# ══════════════════════════════════════════════════════════════════════════
# Budgets
# ══════════════════════════════════════════════════════════════════════════

class BudgetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: datetime
    end_date: datetime
    total_amount: float = Field(gt=0, le=10_000_000)
    vegetable_budget: Optional[float] = Field(default=None, ge=0)
    meat_budget: Optional[float] = Field(default=None, ge=0)
    fruit_budget: Optional[float] = Field(default=None, ge=0)
    grain_budget: Optional[float] = Field(default=None, ge=0)
    dairy_budget: Optional[float] = Field(default=None, ge=0)
    other_budget: Optional[float] = Field(default=None, ge=0)
    alert_threshold_80: bool = True
    alert_threshold_100: bool = True
    alert_threshold_110: bool = True


class BudgetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(default=None, gt=0, le=10_000_000)
    vegetable_budget: Optional[float] = Field(default=None, ge=0)
    meat_budget: Optional[float] = Field(default=None, ge=0)
    fruit_budget: Optional[float] = Field(default=None, ge=0)
    grain_budget: Optional[float] = Field(default=None, ge=0)
    dairy_budget: Optional[float] = Field(default=None, ge=0)
    other_budget: Optional[float] = Field(default=None, ge=0)
    alert_threshold_80: Optional[bool] = None
    alert_threshold_100: Optional[bool] = None
    alert_threshold_110: Optional[bool] = None


class BudgetResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    name: str
    period: str
    start_date: datetime
    end_date: datetime
    total_amount: float
    vegetable_budget: Optional[float] = None
    meat_budget: Optional[float] = None
    fruit_budget: Optional[float] = None
    grain_budget: Optional[float] = None
    dairy_budget: Optional[float] = None
    other_budget: Optional[float] = None
    status: str
    used_amount: float
    remaining_amount: float
    usage_percentage: float
    alert_threshold_80: bool
    alert_threshold_100: bool
    alert_threshold_110: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SpendingCreate(BaseModel):
    amount: float = Field(gt=0, le=1_000_000)
    category: FoodCategory = FoodCategory.OTHER
    description: Optional[str] = Field(default=None, max_length=500)
    platform: Optional[str] = Field(default=None, max_length=50)
    purchase_date: Optional[datetime] = Field(
        default=None, description="Defaults to the time of recording"
    )


class SpendingResponse(BaseModel):
    id: uuid.UUID
    budget_id: uuid.UUID
    amount: float
    category: str
    description: Optional[str] = None
    platform: Optional[str] = None
    purchase_date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class BudgetAlertResponse(BaseModel):
    id: uuid.UUID
    budget_id: uuid.UUID
    type: str
    category: Optional[str] = None
    threshold: float
    current_value: float
    message: str
    status: str
    created_at: datetime
    acknowledged_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SpendingRecordedResponse(BaseModel):
    spending: SpendingResponse
    budget: BudgetResponse
    new_alerts: List[BudgetAlertResponse]


class CategoryUsage(BaseModel):
    budget: Optional[float] = None
    spent: float
    usage_percentage: Optional[float] = None


class BudgetStatusResponse(BaseModel):
    budget_id: uuid.UUID
    status: str
    total_amount: float
    used_amount: float
    remaining_amount: float
    usage_percentage: float
    category_usage: Dict[str, CategoryUsage]
    total_days: int
    days_elapsed: int
    days_remaining: int
    daily_average: float
    projected_spend: float
    active_alerts: List[BudgetAlertResponse]


# ══════════════════════════════════════════════════════════════════════════
# Cost optimizer and economic mode
# ══════════════════════════════════════════════════════════════════════════

class OptimizationConstraints(BaseModel):
    max_cost: Optional[float] = Field(default=None, gt=0)
    target_calories: Optional[float] = Field(default=None, gt=0)
    target_protein: Optional[float] = Field(default=None, gt=0)
    target_carbs: Optional[float] = Field(default=None, gt=0)
    target_fat: Optional[float] = Field(default=None, gt=0)
    excluded_food_ids: List[uuid.UUID] = Field(default_factory=list)
    mode: Literal["economy", "balanced"] = "balanced"


class OptimizeRequest(BaseModel):
    food_ids: List[uuid.UUID] = Field(min_length=1, max_length=100)
    constraints: OptimizationConstraints = Field(default_factory=OptimizationConstraints)


class OptimizedItem(BaseModel):
    food_id: uuid.UUID
    name: str
    category: str
    amount: float = Field(description="grams")
    cost: float
    calories: float
    protein: float
    carbs: float
    fat: float


class SubstitutionResponse(BaseModel):
    original_food_id: uuid.UUID
    original_name: str
    substitute_food_id: uuid.UUID
    substitute_name: str
    savings: float
    reason: str


class OptimizeResponse(BaseModel):
    items: List[OptimizedItem]
    original_cost: float
    optimized_cost: float
    savings: float
    savings_percentage: float
    nutrition: Dict[str, float]
    targets_met: Dict[str, bool]
    substitutions: List[SubstitutionResponse]
    ignored_food_ids: List[uuid.UUID] = Field(
        default_factory=list, description="Requested foods without a known price"
    )


class MealPlanResponse(BaseModel):
    budget: float
    categories: List[str]
    items: List[OptimizedItem]
    cost: float
    calories: float


class EconomicPlanResponse(BaseModel):
    daily_budget: float
    meals: Dict[str, MealPlanResponse]
    total_cost: float
    total_nutrition: Dict[str, float]
    budget_utilization: float
    recommendations: List[str]

"""
Hearth Butler Backend — Shopping List Schemas
===============================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from hearth.schemas.budget import BudgetAlertResponse, SpendingResponse


class ShoppingItemCreate(BaseModel):
    food_id: uuid.UUID
    amount: float = Field(gt=0, le=100_000)
    unit: str = Field(default="g", description="g, kg, oz or lb")


class ShoppingListCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    budget: Optional[float] = Field(default=None, ge=0)
    items: List[ShoppingItemCreate] = Field(default_factory=list, max_length=200)


class ShoppingItemResponse(BaseModel):
    id: uuid.UUID
    list_id: uuid.UUID
    food_id: uuid.UUID
    amount: float
    category: str
    estimated_price: Optional[float] = None
    purchased: bool
    purchased_by: Optional[uuid.UUID] = None
    purchased_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ShoppingListResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    created_by: uuid.UUID
    name: str
    budget: Optional[float] = None
    estimated_cost: float
    actual_cost: Optional[float] = None
    status: str
    created_at: datetime
    items: List[ShoppingItemResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PurchaseUpdate(BaseModel):
    purchased: bool = True


class CompleteListRequest(BaseModel):
    actual_cost: float = Field(ge=0, le=1_000_000)
    budget_id: Optional[uuid.UUID] = Field(
        default=None, description="Record the actual cost as spending against this budget"
    )


class CompleteListResponse(BaseModel):
    shopping_list: ShoppingListResponse
    spending: Optional[SpendingResponse] = None
    new_alerts: List[BudgetAlertResponse] = Field(default_factory=list)

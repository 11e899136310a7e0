"""
Hearth Butler Backend — Food, Nutrition and Meal Schemas
==========================================================
"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from hearth.models.enums import FoodCategory, MealType


# ══════════════════════════════════════════════════════════════════════════
# Foods and prices
# ══════════════════════════════════════════════════════════════════════════

class FoodCreate(BaseModel):
    """Nutrient values are per 100 grams."""
    name: str = Field(min_length=1, max_length=100)
    name_en: Optional[str] = Field(default=None, max_length=100)
    category: FoodCategory = FoodCategory.OTHER
    calories: float = Field(ge=0, le=900)
    protein: float = Field(ge=0, le=100)
    carbs: float = Field(ge=0, le=100)
    fat: float = Field(ge=0, le=100)
    fiber: Optional[float] = Field(default=None, ge=0, le=100)
    sugar: Optional[float] = Field(default=None, ge=0, le=100)
    sodium: Optional[float] = Field(default=None, ge=0, le=50_000)
    vitamin_a: Optional[float] = Field(default=None, ge=0)
    vitamin_c: Optional[float] = Field(default=None, ge=0)
    calcium: Optional[float] = Field(default=None, ge=0)
    iron: Optional[float] = Field(default=None, ge=0)
    source: Optional[str] = Field(default=None, max_length=100)


class FoodResponse(BaseModel):
    id: uuid.UUID
    name: str
    name_en: Optional[str] = None
    category: str
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None
    vitamin_a: Optional[float] = None
    vitamin_c: Optional[float] = None
    calcium: Optional[float] = None
    iron: Optional[float] = None
    verified: bool
    latest_unit_price: Optional[float] = Field(default=None, description="Latest valid price per kilogram")

    model_config = {"from_attributes": True}


class PriceCreate(BaseModel):
    price: float = Field(gt=0, description="Price paid for the package")
    unit: str = Field(
        min_length=1, max_length=50,
        description="Package size, e.g. '500g', '1kg', '2lb'",
    )
    platform: Optional[str] = Field(default=None, max_length=50)


class PriceResponse(BaseModel):
    id: uuid.UUID
    food_id: uuid.UUID
    price: float
    unit: str
    unit_price: float = Field(description="Price per kilogram")
    platform: Optional[str] = None
    recorded_at: datetime
    is_valid: bool

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Nutrition calculation
# ══════════════════════════════════════════════════════════════════════════

class PortionInput(BaseModel):
    food_id: uuid.UUID
    amount: float = Field(gt=0, le=100_000)
    unit: str = Field(default="g", description="g, kg, oz or lb")


class NutritionCalculateRequest(BaseModel):
    items: List[PortionInput] = Field(min_length=1, max_length=100)


class PortionNutrition(BaseModel):
    food_id: uuid.UUID
    food_name: str
    amount_g: float
    nutrition: Dict[str, float]


class NutritionCalculateResponse(BaseModel):
    items: List[PortionNutrition]
    total: Dict[str, float]
    unknown_food_ids: List[uuid.UUID] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Meals
# ══════════════════════════════════════════════════════════════════════════

class MealLogCreate(BaseModel):
    date: date
    meal_type: MealType
    items: List[PortionInput] = Field(min_length=1, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=500)


class MealFoodResponse(BaseModel):
    food_id: uuid.UUID
    amount: float

    model_config = {"from_attributes": True}


class MealLogResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    date: date
    meal_type: str
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime
    foods: List[MealFoodResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DailyNutritionSummary(BaseModel):
    date: date
    meal_count: int
    by_meal_type: Dict[str, Dict[str, float]]
    total: Dict[str, float]

"""
Hearth Butler Backend — Health Data Schemas
=============================================

What:  Request/response models for health measurements, trends and goals.
How:   Physiological ranges are enforced on the fields; cross-field rules
       (at least one metric, paired blood pressure) in a model validator.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from hearth.models.enums import GoalStatus, GoalType, HealthDataSource

METRIC_FIELDS = (
    "weight",
    "body_fat",
    "muscle_mass",
    "blood_pressure_systolic",
    "blood_pressure_diastolic",
    "heart_rate",
    "steps",
    "sleep_minutes",
)


class HealthDataCreate(BaseModel):
    weight: Optional[float] = Field(default=None, ge=20, le=300, description="kg")
    body_fat: Optional[float] = Field(default=None, ge=0, le=100, description="percent")
    muscle_mass: Optional[float] = Field(default=None, ge=20, le=300, description="kg")
    blood_pressure_systolic: Optional[int] = Field(default=None, ge=60, le=250)
    blood_pressure_diastolic: Optional[int] = Field(default=None, ge=40, le=150)
    heart_rate: Optional[int] = Field(default=None, ge=30, le=220)
    steps: Optional[int] = Field(default=None, ge=0, le=200_000)
    sleep_minutes: Optional[int] = Field(default=None, ge=0, le=1440)
    measured_at: Optional[datetime] = Field(
        default=None, description="Defaults to now when omitted"
    )
    source: HealthDataSource = HealthDataSource.MANUAL
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_metrics(self) -> "HealthDataCreate":
        if all(getattr(self, f) is None for f in METRIC_FIELDS):
            raise ValueError("At least one health metric must be provided")
        systolic, diastolic = self.blood_pressure_systolic, self.blood_pressure_diastolic
        if (systolic is None) != (diastolic is None):
            raise ValueError("Systolic and diastolic blood pressure must be provided together")
        if systolic is not None and diastolic is not None and systolic <= diastolic:
            raise ValueError("Systolic pressure must be higher than diastolic pressure")
        return self


class HealthDataResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    muscle_mass: Optional[float] = None
    blood_pressure_systolic: Optional[int] = None
    blood_pressure_diastolic: Optional[int] = None
    heart_rate: Optional[int] = None
    steps: Optional[int] = None
    sleep_minutes: Optional[int] = None
    measured_at: datetime
    source: str
    notes: Optional[str] = None
    device_connection_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class HealthDataListResponse(BaseModel):
    records: List[HealthDataResponse]
    total_count: int
    has_more: bool


# ══════════════════════════════════════════════════════════════════════════
# Trends
# ══════════════════════════════════════════════════════════════════════════

class TrendPoint(BaseModel):
    date: datetime
    value: float


class MetricTrend(BaseModel):
    data: List[TrendPoint] = Field(default_factory=list)
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    change: Optional[float] = Field(
        default=None, description="Last value minus first; null with fewer than two points"
    )


class BloodPressureTrend(BaseModel):
    systolic: MetricTrend = Field(default_factory=MetricTrend)
    diastolic: MetricTrend = Field(default_factory=MetricTrend)


class HealthTrendsResponse(BaseModel):
    start: datetime
    end: datetime
    weight: MetricTrend
    body_fat: MetricTrend
    muscle_mass: MetricTrend
    heart_rate: MetricTrend
    blood_pressure: BloodPressureTrend


# ══════════════════════════════════════════════════════════════════════════
# Goals
# ══════════════════════════════════════════════════════════════════════════

class MacroRatios(BaseModel):
    carb_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    protein_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    fat_ratio: Optional[float] = Field(default=None, ge=0, le=1)


class HealthGoalCreate(MacroRatios):
    goal_type: GoalType
    target_weight: float = Field(ge=20, le=300, description="kg")
    target_weeks: int = Field(ge=1, le=52)
    start_weight: Optional[float] = Field(
        default=None, ge=20, le=300, description="Defaults to the latest recorded weight"
    )
    start_date: Optional[date] = Field(default=None, description="Defaults to today")


class HealthGoalUpdate(MacroRatios):
    current_weight: Optional[float] = Field(default=None, ge=20, le=300)
    target_weight: Optional[float] = Field(default=None, ge=20, le=300)
    target_weeks: Optional[int] = Field(default=None, ge=1, le=52)
    status: Optional[GoalStatus] = None


class HealthGoalResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    goal_type: str
    start_weight: float
    current_weight: float
    target_weight: float
    target_weeks: int
    start_date: date
    target_date: date
    carb_ratio: Optional[float] = None
    protein_ratio: Optional[float] = None
    fat_ratio: Optional[float] = None
    progress: int
    status: str
    completed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

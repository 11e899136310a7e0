"""
Hearth Butler Backend — Budget Tracker
========================================

What:  Budgets, spending records, usage recomputation and threshold alerts.
Why:   Families want to know before the grocery budget runs out, not after.
How:   Every spending change recomputes the cached usage on the budget row,
       then `evaluate_alerts()` (pure) decides which alerts are due and the
       tracker stores the ones not already ACTIVE, each with an in-app
       notification for the member.

Alert thresholds (percent of total):
    WARNING_80        80 <= usage < 100
    WARNING_100      100 <= usage < 110
    OVER_BUDGET_110  usage >= 110
    CATEGORY_OVER    a category's spending reaches its category budget
    DAILY_EXCESS     daily average since start > (total / period days) x 1.2
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import DatabaseError, HearthError, NotFoundError, ValidationError
from hearth.models.budget import Budget, BudgetAlert, Spending
from hearth.models.enums import (
    AlertStatus,
    AlertType,
    BudgetStatus,
    FoodCategory,
    NotificationPriority,
    NotificationType,
)
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.user import User
from hearth.schemas.budget import (
    BudgetAlertResponse,
    BudgetCreate,
    BudgetStatusResponse,
    BudgetUpdate,
    CategoryUsage,
    SpendingCreate,
)
from hearth.services.family_service import family_service
from hearth.services.notification_service import notification_service

logger = logging.getLogger(__name__)

DAILY_EXCESS_FACTOR = 1.2

# Spending category → budget column prefix
CATEGORY_BUDGET_FIELD = {
    FoodCategory.VEGETABLES.value: "vegetable",
    FoodCategory.PROTEIN.value: "meat",
    FoodCategory.SEAFOOD.value: "meat",
    FoodCategory.FRUITS.value: "fruit",
    FoodCategory.GRAINS.value: "grain",
    FoodCategory.DAIRY.value: "dairy",
}
BUDGET_CATEGORIES = ("vegetable", "meat", "fruit", "grain", "dairy", "other")
# Columns an update may change but never clear
REQUIRED_BUDGET_FIELDS = (
    "name", "start_date", "end_date", "total_amount",
    "alert_threshold_80", "alert_threshold_100", "alert_threshold_110",
)


def budget_field_for(category: str) -> str:
    return CATEGORY_BUDGET_FIELD.get(category, "other")


def category_budgets(budget: Budget) -> Dict[str, float]:
    """Category budgets that are set, keyed by column prefix."""
    values = {}
    for name in BUDGET_CATEGORIES:
        value = getattr(budget, f"{name}_budget")
        if value is not None:
            values[name] = value
    return values


def validate_budget_amounts(
    start_date: datetime,
    end_date: datetime,
    total_amount: float,
    categories: Mapping[str, Optional[float]],
) -> None:
    if ensure_utc(end_date) <= ensure_utc(start_date):
        raise ValidationError(message="End date must be after start date", field="end_date")
    allocated = sum(v for v in categories.values() if v)
    if allocated > total_amount:
        raise ValidationError(
            message=(
                f"Category budgets ({allocated:.2f}) exceed the total budget "
                f"({total_amount:.2f})"
            ),
            field="total_amount",
        )


def period_days(budget: Budget, now: Optional[datetime] = None) -> Tuple[int, int, int]:
    """Returns (total_days, days_elapsed, days_remaining); elapsed is at least 1."""
    now = ensure_utc(now or utcnow())
    start, end = ensure_utc(budget.start_date), ensure_utc(budget.end_date)
    total_days = max(1, math.ceil((end - start).total_seconds() / 86400))
    elapsed = math.ceil((min(now, end) - start).total_seconds() / 86400)
    elapsed = min(max(1, elapsed), total_days)
    remaining = max(0, math.ceil((end - now).total_seconds() / 86400))
    return total_days, elapsed, remaining


@dataclass
class AlertCandidate:
    type: str
    threshold: float
    current_value: float
    message: str
    category: Optional[str] = None


def evaluate_alerts(
    budget: Budget,
    category_spent: Mapping[str, float],
    now: Optional[datetime] = None,
) -> List[AlertCandidate]:
    """Alerts due for the budget's current usage, ignoring ones already active."""
    usage = budget.usage_percentage
    candidates: List[AlertCandidate] = []

    if usage >= 110:
        if budget.alert_threshold_110:
            candidates.append(AlertCandidate(
                AlertType.OVER_BUDGET_110.value, 110, usage,
                f"Budget '{budget.name}' is over budget at {usage:.1f}%",
            ))
    elif usage >= 100:
        if budget.alert_threshold_100:
            candidates.append(AlertCandidate(
                AlertType.WARNING_100.value, 100, usage,
                f"Budget '{budget.name}' is fully used ({usage:.1f}%)",
            ))
    elif usage >= 80:
        if budget.alert_threshold_80:
            candidates.append(AlertCandidate(
                AlertType.WARNING_80.value, 80, usage,
                f"Budget '{budget.name}' has reached {usage:.1f}% usage",
            ))

    for name, limit in category_budgets(budget).items():
        spent = category_spent.get(name, 0.0)
        if limit > 0 and spent >= limit:
            candidates.append(AlertCandidate(
                AlertType.CATEGORY_OVER.value, limit, spent,
                f"{name.capitalize()} spending {spent:.2f} has reached its budget of {limit:.2f}",
                category=name,
            ))

    total_days, elapsed, _ = period_days(budget, now)
    daily_limit = budget.total_amount / total_days * DAILY_EXCESS_FACTOR
    daily_average = budget.used_amount / elapsed
    if daily_average > daily_limit:
        candidates.append(AlertCandidate(
            AlertType.DAILY_EXCESS.value, round(daily_limit, 2), round(daily_average, 2),
            f"Average daily spending {daily_average:.2f} is above the planned pace",
        ))

    return candidates


def apply_usage(budget: Budget, used: float) -> None:
    budget.used_amount = round(used, 2)
    budget.remaining_amount = round(max(0.0, budget.total_amount - used), 2)
    budget.usage_percentage = round(used / budget.total_amount * 100, 2) if budget.total_amount else 0.0


class BudgetTracker:
    """
    Budget lifecycle and spending tracking.

    Error Handling:
        Unknown or deleted budget → NotFoundError (404)
        Invalid dates, amounts or inactive budget → ValidationError (400)
    """

    async def _get_budget(
        self, db: AsyncSession, user: User, budget_id: uuid.UUID, write: bool = False
    ) -> Budget:
        result = await db.execute(
            select(Budget).where(Budget.id == budget_id, Budget.deleted_at.is_(None))
        )
        budget = result.scalar_one_or_none()
        if budget is None:
            raise NotFoundError(resource="budget", resource_id=str(budget_id))
        await family_service.require_member_access(db, user, budget.member_id, write=write)
        return budget

    async def create_budget(
        self, db: AsyncSession, user: User, member_id: uuid.UUID, data: BudgetCreate
    ) -> Budget:
        await family_service.require_member_access(db, user, member_id, write=True)
        categories = {name: getattr(data, f"{name}_budget") for name in BUDGET_CATEGORIES}
        validate_budget_amounts(data.start_date, data.end_date, data.total_amount, categories)

        try:
            values = data.model_dump()
            values["period"] = data.period.value
            budget = Budget(
                member_id=member_id,
                **values,
                status=BudgetStatus.ACTIVE.value,
                used_amount=0.0,
                remaining_amount=data.total_amount,
                usage_percentage=0.0,
            )
            db.add(budget)
            await db.flush()
            logger.info("Budget %s created for member %s: %.2f", budget.id, member_id, budget.total_amount)
            return budget
        except Exception as e:
            logger.error("Database error creating budget: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the budget. Please try again.",
                context={"member_id": str(member_id)},
            )

    async def update_budget(
        self, db: AsyncSession, user: User, budget_id: uuid.UUID, data: BudgetUpdate
    ) -> Budget:
        changes = data.model_dump(exclude_unset=True)
        cleared = [key for key in REQUIRED_BUDGET_FIELDS if key in changes and changes[key] is None]
        if cleared:
            raise ValidationError(message=f"{cleared[0]} cannot be null", field=cleared[0])

        budget = await self._get_budget(db, user, budget_id, write=True)
        for key, value in changes.items():
            setattr(budget, key, value)

        validate_budget_amounts(
            budget.start_date,
            budget.end_date,
            budget.total_amount,
            category_budgets(budget),
        )
        await self.recompute_usage(db, budget)
        await self.check_alerts(db, budget)
        return budget

    async def list_budgets(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        status: Optional[str] = None,
    ) -> List[Budget]:
        await family_service.require_member_access(db, user, member_id)
        stmt = select(Budget).where(Budget.member_id == member_id, Budget.deleted_at.is_(None))
        if status:
            stmt = stmt.where(Budget.status == status)
        result = await db.execute(stmt.order_by(Budget.start_date.desc()))
        return list(result.scalars().all())

    async def get_budget(self, db: AsyncSession, user: User, budget_id: uuid.UUID) -> Budget:
        return await self._get_budget(db, user, budget_id)

    async def delete_budget(self, db: AsyncSession, user: User, budget_id: uuid.UUID) -> None:
        budget = await self._get_budget(db, user, budget_id, write=True)
        budget.deleted_at = utcnow()
        await db.flush()
        logger.info("Budget %s deleted", budget_id)

    # ══════════════════════════════════════════════════════════════════════
    # Spending
    # ══════════════════════════════════════════════════════════════════════

    async def record_spending(
        self, db: AsyncSession, user: User, budget_id: uuid.UUID, data: SpendingCreate
    ) -> Tuple[Spending, Budget, List[BudgetAlert]]:
        """Adds a spending, recomputes usage and returns any newly raised alerts."""
        budget = await self._get_budget(db, user, budget_id, write=True)
        return await self.add_spending(db, budget, data)

    async def add_spending(
        self, db: AsyncSession, budget: Budget, data: SpendingCreate
    ) -> Tuple[Spending, Budget, List[BudgetAlert]]:
        """Spending against an already authorised budget."""
        if budget.status != BudgetStatus.ACTIVE.value:
            raise ValidationError(
                message=f"Budget is {budget.status.lower()}; spending can only be added to active budgets",
                field="budget_id",
            )
        purchase_date = ensure_utc(data.purchase_date or utcnow())
        if not ensure_utc(budget.start_date) <= purchase_date <= ensure_utc(budget.end_date):
            raise ValidationError(
                message="Purchase date is outside the budget period",
                field="purchase_date",
            )

        spending = Spending(
            budget_id=budget.id,
            amount=data.amount,
            category=data.category.value,
            description=data.description,
            platform=data.platform,
            purchase_date=purchase_date,
        )
        db.add(spending)
        await db.flush()

        await self.recompute_usage(db, budget)
        alerts = await self.check_alerts(db, budget)
        return spending, budget, alerts

    async def get_spending_history(
        self,
        db: AsyncSession,
        user: User,
        budget_id: uuid.UUID,
        category: Optional[str] = None,
        limit: int = 100,
    ) -> List[Spending]:
        await self._get_budget(db, user, budget_id)
        stmt = select(Spending).where(Spending.budget_id == budget_id, Spending.deleted_at.is_(None))
        if category:
            stmt = stmt.where(Spending.category == category)
        result = await db.execute(stmt.order_by(Spending.purchase_date.desc()).limit(limit))
        return list(result.scalars().all())

    async def recompute_usage(self, db: AsyncSession, budget: Budget) -> Budget:
        result = await db.execute(
            select(func.coalesce(func.sum(Spending.amount), 0.0)).where(
                Spending.budget_id == budget.id,
                Spending.deleted_at.is_(None),
            )
        )
        apply_usage(budget, float(result.scalar() or 0.0))
        await db.flush()
        return budget

    async def _category_spent(self, db: AsyncSession, budget_id: uuid.UUID) -> Dict[str, float]:
        result = await db.execute(
            select(Spending.category, func.sum(Spending.amount))
            .where(Spending.budget_id == budget_id, Spending.deleted_at.is_(None))
            .group_by(Spending.category)
        )
        spent: Dict[str, float] = {}
        for category, amount in result.all():
            key = budget_field_for(category)
            spent[key] = spent.get(key, 0.0) + float(amount or 0.0)
        return spent

    # ══════════════════════════════════════════════════════════════════════
    # Alerts
    # ══════════════════════════════════════════════════════════════════════

    async def check_alerts(self, db: AsyncSession, budget: Budget) -> List[BudgetAlert]:
        """Stores alerts that are due and not already ACTIVE; notifies the member."""
        try:
            category_spent = await self._category_spent(db, budget.id)
            candidates = evaluate_alerts(budget, category_spent)
            if not candidates:
                return []

            result = await db.execute(
                select(BudgetAlert.type, BudgetAlert.category).where(
                    BudgetAlert.budget_id == budget.id,
                    BudgetAlert.status == AlertStatus.ACTIVE.value,
                )
            )
            active = {(row[0], row[1]) for row in result.all()}

            created: List[BudgetAlert] = []
            for candidate in candidates:
                key = (candidate.type, candidate.category)
                if key in active:
                    continue
                active.add(key)
                alert = BudgetAlert(
                    budget_id=budget.id,
                    type=candidate.type,
                    category=candidate.category,
                    threshold=candidate.threshold,
                    current_value=round(candidate.current_value, 2),
                    message=candidate.message,
                    status=AlertStatus.ACTIVE.value,
                )
                db.add(alert)
                created.append(alert)

            if created:
                await db.flush()
            for alert in created:
                dedup_key = f"budget:{budget.id}:{alert.type}"
                if alert.category:
                    dedup_key += f":{alert.category}"
                priority = (
                    NotificationPriority.HIGH.value
                    if alert.type in (AlertType.OVER_BUDGET_110.value, AlertType.WARNING_100.value)
                    else NotificationPriority.MEDIUM.value
                )
                await notification_service.notify(
                    db,
                    member_id=budget.member_id,
                    type=NotificationType.BUDGET_ALERT.value,
                    title=f"Budget alert: {budget.name}",
                    content=alert.message,
                    priority=priority,
                    dedup_key=dedup_key,
                    action_url=f"/budgets/{budget.id}",
                )
                logger.info("Budget alert %s raised for budget %s", alert.type, budget.id)
            return created
        except HearthError:
            raise
        except Exception as e:
            logger.error("Database error checking budget alerts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not evaluate budget alerts.",
                context={"budget_id": str(budget.id)},
            )

    async def acknowledge_alert(
        self, db: AsyncSession, user: User, alert_id: uuid.UUID
    ) -> BudgetAlert:
        result = await db.execute(select(BudgetAlert).where(BudgetAlert.id == alert_id))
        alert = result.scalar_one_or_none()
        if alert is None:
            raise NotFoundError(resource="budget alert", resource_id=str(alert_id))
        await self._get_budget(db, user, alert.budget_id, write=True)
        if alert.status == AlertStatus.ACTIVE.value:
            alert.status = AlertStatus.ACKNOWLEDGED.value
            alert.acknowledged_at = utcnow()
            await db.flush()
        return alert

    async def get_budget_status(
        self, db: AsyncSession, user: User, budget_id: uuid.UUID
    ) -> BudgetStatusResponse:
        budget = await self._get_budget(db, user, budget_id)
        category_spent = await self._category_spent(db, budget.id)

        limits = category_budgets(budget)
        category_usage = {}
        for name in BUDGET_CATEGORIES:
            spent = round(category_spent.get(name, 0.0), 2)
            limit = limits.get(name)
            if limit is None and not spent:
                continue
            category_usage[name] = CategoryUsage(
                budget=limit,
                spent=spent,
                usage_percentage=round(spent / limit * 100, 2) if limit else None,
            )

        total_days, elapsed, remaining = period_days(budget)
        daily_average = budget.used_amount / elapsed

        result = await db.execute(
            select(BudgetAlert)
            .where(
                BudgetAlert.budget_id == budget.id,
                BudgetAlert.status == AlertStatus.ACTIVE.value,
            )
            .order_by(BudgetAlert.created_at.desc())
        )
        alerts = list(result.scalars().all())

        return BudgetStatusResponse(
            budget_id=budget.id,
            status=budget.status,
            total_amount=budget.total_amount,
            used_amount=budget.used_amount,
            remaining_amount=budget.remaining_amount,
            usage_percentage=budget.usage_percentage,
            category_usage=category_usage,
            total_days=total_days,
            days_elapsed=elapsed,
            days_remaining=remaining,
            daily_average=round(daily_average, 2),
            projected_spend=round(daily_average * total_days, 2),
            active_alerts=[BudgetAlertResponse.model_validate(a) for a in alerts],
        )


budget_tracker = BudgetTracker()

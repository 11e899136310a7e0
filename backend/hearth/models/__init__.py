# Models package init
"""
Hearth Butler Backend — ORM Models
====================================

Importing this package registers every table with Base.metadata, which
Alembic's env.py relies on.
"""

from hearth.models.user import User, UserSession
from hearth.models.family import Family, FamilyMember
from hearth.models.device import DeviceConnection
from hearth.models.health import HealthData, HealthGoal
from hearth.models.nutrition import Food, MealLog, MealLogFood, PriceHistory
from hearth.models.budget import Budget, BudgetAlert, Spending
from hearth.models.shopping import ShoppingItem, ShoppingList
from hearth.models.report import MedicalIndicator, MedicalReport
from hearth.models.social import Achievement, LeaderboardEntry, SharedContent, ShareTracking
from hearth.models.notification import Notification

__all__ = [
    "User",
    "UserSession",
    "Family",
    "FamilyMember",
    "DeviceConnection",
    "HealthData",
    "HealthGoal",
    "Food",
    "MealLog",
    "MealLogFood",
    "PriceHistory",
    "Budget",
    "BudgetAlert",
    "Spending",
    "ShoppingItem",
    "ShoppingList",
    "MedicalIndicator",
    "MedicalReport",
    "Achievement",
    "LeaderboardEntry",
    "SharedContent",
    "ShareTracking",
    "Notification",
]

"""
Hearth Butler Backend — Domain Enumerations
=============================================

What:  String enumerations for every status/category column.
Why:   Columns are stored as VARCHAR(50); these enums keep the allowed
       values in one place for models, schemas and services.
How:   `str` subclasses, so members compare equal to their stored value.
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class AgeGroup(str, Enum):
    CHILD = "CHILD"
    TEENAGER = "TEENAGER"
    ADULT = "ADULT"
    ELDERLY = "ELDERLY"


class FamilyRole(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    GUEST = "GUEST"


class HealthDataSource(str, Enum):
    MANUAL = "MANUAL"
    WEARABLE = "WEARABLE"
    MEDICAL_REPORT = "MEDICAL_REPORT"
    APPLE_HEALTHKIT = "APPLE_HEALTHKIT"
    HUAWEI_HEALTH = "HUAWEI_HEALTH"
    GOOGLE_FIT = "GOOGLE_FIT"
    XIAOMI_HEALTH = "XIAOMI_HEALTH"
    SAMSUNG_HEALTH = "SAMSUNG_HEALTH"
    GARMIN_CONNECT = "GARMIN_CONNECT"
    FITBIT = "FITBIT"


class GoalType(str, Enum):
    LOSE_WEIGHT = "LOSE_WEIGHT"
    GAIN_WEIGHT = "GAIN_WEIGHT"
    MAINTAIN = "MAINTAIN"
    GAIN_MUSCLE = "GAIN_MUSCLE"


class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class FoodCategory(str, Enum):
    VEGETABLES = "VEGETABLES"
    FRUITS = "FRUITS"
    GRAINS = "GRAINS"
    PROTEIN = "PROTEIN"
    SEAFOOD = "SEAFOOD"
    DAIRY = "DAIRY"
    OILS = "OILS"
    SNACKS = "SNACKS"
    BEVERAGES = "BEVERAGES"
    OTHER = "OTHER"


class MealType(str, Enum):
    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    SNACK = "SNACK"


class BudgetPeriod(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"


class BudgetStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class AlertType(str, Enum):
    WARNING_80 = "WARNING_80"
    WARNING_100 = "WARNING_100"
    OVER_BUDGET_110 = "OVER_BUDGET_110"
    CATEGORY_OVER = "CATEGORY_OVER"
    DAILY_EXCESS = "DAILY_EXCESS"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


class ListStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class DevicePlatform(str, Enum):
    APPLE_HEALTHKIT = "APPLE_HEALTHKIT"
    HUAWEI_HEALTH = "HUAWEI_HEALTH"


class SyncStatus(str, Enum):
    PENDING = "PENDING"
    SYNCING = "SYNCING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    DISABLED = "DISABLED"


class OcrStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class IndicatorType(str, Enum):
    TOTAL_CHOLESTEROL = "TOTAL_CHOLESTEROL"
    LDL_CHOLESTEROL = "LDL_CHOLESTEROL"
    HDL_CHOLESTEROL = "HDL_CHOLESTEROL"
    TRIGLYCERIDES = "TRIGLYCERIDES"
    FASTING_GLUCOSE = "FASTING_GLUCOSE"
    POSTPRANDIAL_GLUCOSE = "POSTPRANDIAL_GLUCOSE"
    GLYCATED_HEMOGLOBIN = "GLYCATED_HEMOGLOBIN"
    ALT = "ALT"
    AST = "AST"
    TOTAL_BILIRUBIN = "TOTAL_BILIRUBIN"
    DIRECT_BILIRUBIN = "DIRECT_BILIRUBIN"
    ALP = "ALP"
    SERUM_CREATININE = "SERUM_CREATININE"
    BLOOD_UREA_NITROGEN = "BLOOD_UREA_NITROGEN"
    URIC_ACID = "URIC_ACID"
    WHITE_BLOOD_CELL = "WHITE_BLOOD_CELL"
    RED_BLOOD_CELL = "RED_BLOOD_CELL"
    HEMOGLOBIN = "HEMOGLOBIN"
    PLATELET = "PLATELET"
    OTHER = "OTHER"


class IndicatorStatus(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ShareContentType(str, Enum):
    HEALTH_REPORT = "HEALTH_REPORT"
    GOAL_ACHIEVEMENT = "GOAL_ACHIEVEMENT"
    MEAL_LOG = "MEAL_LOG"
    RECIPE = "RECIPE"
    ACHIEVEMENT = "ACHIEVEMENT"
    CHECK_IN_STREAK = "CHECK_IN_STREAK"
    WEIGHT_MILESTONE = "WEIGHT_MILESTONE"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"
    MONTHLY_REPORT = "MONTHLY_REPORT"


class ShareStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class SharePrivacy(str, Enum):
    PUBLIC = "PUBLIC"
    FRIENDS = "FRIENDS"
    PRIVATE = "PRIVATE"


class ShareEventType(str, Enum):
    VIEW = "VIEW"
    CLICK = "CLICK"
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    DOWNLOAD = "DOWNLOAD"
    SHARE = "SHARE"


class LeaderboardType(str, Enum):
    HEALTH_SCORE = "HEALTH_SCORE"
    CHECK_IN_STREAK = "CHECK_IN_STREAK"
    WEIGHT_LOSS = "WEIGHT_LOSS"
    EXERCISE_MINUTES = "EXERCISE_MINUTES"
    CALORIES_MANAGEMENT = "CALORIES_MANAGEMENT"


class LeaderboardTimeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class AchievementType(str, Enum):
    FIRST_RECORD = "FIRST_RECORD"
    SEVEN_DAY_STREAK = "SEVEN_DAY_STREAK"
    MONTHLY_CHAMPION = "MONTHLY_CHAMPION"
    WEIGHT_GOAL_ACHIEVED = "WEIGHT_GOAL_ACHIEVED"
    SOCIAL_BUTTERFLY = "SOCIAL_BUTTERFLY"
    CALORIE_CHAMPION = "CALORIE_CHAMPION"


class AchievementRarity(str, Enum):
    COMMON = "COMMON"
    UNCOMMON = "UNCOMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"


class NotificationType(str, Enum):
    BUDGET_ALERT = "BUDGET_ALERT"
    DEVICE_SYNC = "DEVICE_SYNC"
    REPORT_READY = "REPORT_READY"
    FAMILY = "FAMILY"
    ACHIEVEMENT = "ACHIEVEMENT"
    SYSTEM = "SYSTEM"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    READ = "READ"

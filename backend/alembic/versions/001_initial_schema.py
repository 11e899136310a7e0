"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates every table of the family health butler: accounts and
       sessions, families and members, health data and goals, foods and meals,
       budgets, shopping lists, device connections, medical reports,
       sharing, leaderboards, achievements and notifications.
How:   PostgreSQL UUID keys with gen_random_uuid(), TIMESTAMP WITH TIME ZONE,
       String(50) status columns and deleted_at soft-delete columns.

Rollback: downgrade() drops every table in reverse dependency order.
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text("CURRENT_TIMESTAMP")


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
        comment="Unique identifier",
    )


def _fk(name: str, target: str, nullable: bool = False, ondelete: Union[str, None] = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _ts(name: str, nullable: bool = True, default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        nullable=nullable,
        server_default=NOW if default else None,
    )


def _status(name: str, default: str, comment: str) -> sa.Column:
    return sa.Column(
        name,
        sa.String(50),
        nullable=False,
        server_default=sa.text(f"'{default}'"),
        comment=comment,
    )


def _flag(name: str, default: bool) -> sa.Column:
    return sa.Column(
        name, sa.Boolean(), nullable=False, server_default=sa.text("true" if default else "false")
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text("0"))


def _audit(soft_delete: bool = True) -> List[sa.Column]:
    columns = [
        _ts("created_at", nullable=False, default=True),
        _ts("updated_at", nullable=False, default=True),
    ]
    if soft_delete:
        columns.append(_ts("deleted_at"))
    return columns


def upgrade() -> None:
    # ── Accounts ──────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, comment="Login email, stored lower-cased"),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _status("role", "USER", "Account role: USER, ADMIN"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_sessions",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("token_hash", sa.String(64), nullable=False, comment="SHA-256 hex digest of the bearer token"),
        _ts("expires_at", nullable=False),
        _ts("created_at", nullable=False, default=True),
        _ts("last_used_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash", name="uq_user_sessions_token_hash"),
    )
    op.create_index("idx_user_sessions_user_id", "user_sessions", ["user_id"])

    # ── Families ──────────────────────────────────────────────────────────
    op.create_table(
        "families",
        _id(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("invite_code", sa.String(16), nullable=False),
        _fk("creator_id", "users.id", ondelete=None),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invite_code", name="uq_families_invite_code"),
    )
    op.create_index("idx_families_creator_id", "families", ["creator_id"])

    op.create_table(
        "family_members",
        _id(),
        _fk("family_id", "families.id"),
        _fk("user_id", "users.id", nullable=True, ondelete=None),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("gender", sa.String(50), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True, comment="cm"),
        sa.Column("weight", sa.Float(), nullable=True, comment="kg"),
        sa.Column("bmi", sa.Float(), nullable=True),
        sa.Column("age_group", sa.String(50), nullable=True, comment="CHILD, TEENAGER, ADULT, ELDERLY"),
        sa.Column("avatar", sa.String(500), nullable=True),
        _status("role", "MEMBER", "ADMIN, MEMBER, GUEST (read-only)"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_family_members_family_id", "family_members", ["family_id"])
    op.create_index("idx_family_members_user_id", "family_members", ["user_id"])

    # ── Devices and health data ───────────────────────────────────────────
    op.create_table(
        "device_connections",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("device_id", sa.String(255), nullable=False),
        sa.Column("device_type", sa.String(50), nullable=False),
        sa.Column("device_name", sa.String(100), nullable=False),
        sa.Column("manufacturer", sa.String(100), nullable=True),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("platform", sa.String(50), nullable=False, comment="APPLE_HEALTHKIT, HUAWEI_HEALTH"),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        _ts("last_sync_at"),
        _status("sync_status", "PENDING", "PENDING, SYNCING, SUCCESS, FAILED, DISABLED"),
        sa.Column("sync_interval", sa.Integer(), nullable=False, server_default=sa.text("30")),
        _flag("is_active", True),
        _flag("is_auto_sync", True),
        _ts("connection_date", nullable=False, default=True),
        _ts("disconnection_date"),
        sa.Column("last_error", sa.Text(), nullable=True),
        _counter("error_count"),
        *_audit(soft_delete=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_device_connections_member_id", "device_connections", ["member_id"])
    op.create_index("idx_device_connections_active", "device_connections", ["is_active", "is_auto_sync"])

    op.create_table(
        "health_data",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("weight", sa.Float(), nullable=True, comment="kg"),
        sa.Column("body_fat", sa.Float(), nullable=True, comment="percent"),
        sa.Column("muscle_mass", sa.Float(), nullable=True, comment="kg"),
        sa.Column("blood_pressure_systolic", sa.Integer(), nullable=True),
        sa.Column("blood_pressure_diastolic", sa.Integer(), nullable=True),
        sa.Column("heart_rate", sa.Integer(), nullable=True, comment="bpm"),
        sa.Column("steps", sa.Integer(), nullable=True),
        sa.Column("sleep_minutes", sa.Integer(), nullable=True),
        _ts("measured_at", nullable=False),
        _status("source", "MANUAL", "MANUAL, WEARABLE, MEDICAL_REPORT, APPLE_HEALTHKIT, HUAWEI_HEALTH, ..."),
        sa.Column("notes", sa.Text(), nullable=True),
        _fk("device_connection_id", "device_connections.id", nullable=True, ondelete="SET NULL"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_health_data_member_measured", "health_data", ["member_id", sa.text("measured_at DESC")]
    )

    op.create_table(
        "health_goals",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("goal_type", sa.String(50), nullable=False, comment="LOSE_WEIGHT, GAIN_WEIGHT, MAINTAIN, GAIN_MUSCLE"),
        sa.Column("start_weight", sa.Float(), nullable=False, comment="kg"),
        sa.Column("current_weight", sa.Float(), nullable=False, comment="kg"),
        sa.Column("target_weight", sa.Float(), nullable=False, comment="kg"),
        sa.Column("target_weeks", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("carb_ratio", sa.Float(), nullable=True),
        sa.Column("protein_ratio", sa.Float(), nullable=True),
        sa.Column("fat_ratio", sa.Float(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default=sa.text("0"), comment="0-100"),
        _status("status", "ACTIVE", "ACTIVE, COMPLETED, PAUSED, CANCELLED"),
        _ts("completed_at"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_health_goals_member_status", "health_goals", ["member_id", "status"])

    # ── Foods and meals ───────────────────────────────────────────────────
    op.create_table(
        "foods",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("name_en", sa.String(100), nullable=True),
        _status("category", "OTHER", "FoodCategory"),
        sa.Column("calories", sa.Float(), nullable=False, comment="kcal / 100g"),
        sa.Column("protein", sa.Float(), nullable=False, comment="g / 100g"),
        sa.Column("carbs", sa.Float(), nullable=False, comment="g / 100g"),
        sa.Column("fat", sa.Float(), nullable=False, comment="g / 100g"),
        sa.Column("fiber", sa.Float(), nullable=True),
        sa.Column("sugar", sa.Float(), nullable=True),
        sa.Column("sodium", sa.Float(), nullable=True, comment="mg / 100g"),
        sa.Column("vitamin_a", sa.Float(), nullable=True),
        sa.Column("vitamin_c", sa.Float(), nullable=True),
        sa.Column("calcium", sa.Float(), nullable=True),
        sa.Column("iron", sa.Float(), nullable=True),
        sa.Column("source", sa.String(100), nullable=True),
        _flag("verified", False),
        *_audit(soft_delete=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_foods_name", "foods", ["name"])
    op.create_index("idx_foods_category", "foods", ["category"])

    op.create_table(
        "price_histories",
        _id(),
        _fk("food_id", "foods.id"),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False, comment="price per kg"),
        sa.Column("platform", sa.String(50), nullable=True),
        sa.Column("source", sa.String(50), nullable=True),
        _flag("is_valid", True),
        _ts("recorded_at", nullable=False, default=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_price_histories_food_recorded", "price_histories", ["food_id", sa.text("recorded_at DESC")]
    )

    op.create_table(
        "meal_logs",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("meal_type", sa.String(50), nullable=False, comment="BREAKFAST, LUNCH, DINNER, SNACK"),
        sa.Column("calories", sa.Float(), nullable=False),
        sa.Column("protein", sa.Float(), nullable=False),
        sa.Column("carbs", sa.Float(), nullable=False),
        sa.Column("fat", sa.Float(), nullable=False),
        sa.Column("fiber", sa.Float(), nullable=True),
        sa.Column("sugar", sa.Float(), nullable=True),
        sa.Column("sodium", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_meal_logs_member_date", "meal_logs", ["member_id", "date"])

    op.create_table(
        "meal_log_foods",
        _id(),
        _fk("meal_log_id", "meal_logs.id"),
        _fk("food_id", "foods.id", ondelete=None),
        sa.Column("amount", sa.Float(), nullable=False, comment="grams"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_meal_log_foods_meal_log_id", "meal_log_foods", ["meal_log_id"])

    # ── Budgets ───────────────────────────────────────────────────────────
    op.create_table(
        "budgets",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("period", sa.String(50), nullable=False, comment="WEEKLY, MONTHLY, QUARTERLY, YEARLY, CUSTOM"),
        _ts("start_date", nullable=False),
        _ts("end_date", nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("vegetable_budget", sa.Float(), nullable=True),
        sa.Column("meat_budget", sa.Float(), nullable=True),
        sa.Column("fruit_budget", sa.Float(), nullable=True),
        sa.Column("grain_budget", sa.Float(), nullable=True),
        sa.Column("dairy_budget", sa.Float(), nullable=True),
        sa.Column("other_budget", sa.Float(), nullable=True),
        _status("status", "ACTIVE", "ACTIVE, COMPLETED, CANCELLED, EXPIRED"),
        sa.Column("used_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("usage_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        _flag("alert_threshold_80", True),
        _flag("alert_threshold_100", True),
        _flag("alert_threshold_110", True),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_budgets_member_status", "budgets", ["member_id", "status"])

    op.create_table(
        "spendings",
        _id(),
        _fk("budget_id", "budgets.id"),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, comment="FoodCategory"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("platform", sa.String(50), nullable=True),
        _ts("purchase_date", nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_spendings_budget_date", "spendings", ["budget_id", sa.text("purchase_date DESC")])

    op.create_table(
        "budget_alerts",
        _id(),
        _fk("budget_id", "budgets.id"),
        sa.Column(
            "type", sa.String(50), nullable=False,
            comment="WARNING_80, WARNING_100, OVER_BUDGET_110, CATEGORY_OVER, DAILY_EXCESS",
        ),
        sa.Column(
            "category", sa.String(50), nullable=True,
            comment="Budget category for CATEGORY_OVER alerts",
        ),
        sa.Column("threshold", sa.Float(), nullable=False),
        sa.Column("current_value", sa.Float(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        _status("status", "ACTIVE", "ACTIVE, ACKNOWLEDGED, RESOLVED, DISMISSED"),
        _ts("created_at", nullable=False, default=True),
        _ts("acknowledged_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_budget_alerts_budget_status", "budget_alerts", ["budget_id", "status"])

    # ── Shopping ──────────────────────────────────────────────────────────
    op.create_table(
        "shopping_lists",
        _id(),
        _fk("family_id", "families.id"),
        _fk("created_by", "users.id", ondelete=None),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("budget", sa.Float(), nullable=True),
        sa.Column("estimated_cost", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("actual_cost", sa.Float(), nullable=True),
        _status("status", "PENDING", "PENDING, IN_PROGRESS, COMPLETED"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shopping_lists_family_id", "shopping_lists", ["family_id"])

    op.create_table(
        "shopping_items",
        _id(),
        _fk("list_id", "shopping_lists.id"),
        _fk("food_id", "foods.id", ondelete=None),
        sa.Column("amount", sa.Float(), nullable=False, comment="grams"),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("estimated_price", sa.Float(), nullable=True),
        _flag("purchased", False),
        _fk("purchased_by", "users.id", nullable=True, ondelete=None),
        _ts("purchased_at"),
        *_audit(soft_delete=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shopping_items_list_id", "shopping_items", ["list_id"])

    # ── Medical reports ───────────────────────────────────────────────────
    op.create_table(
        "medical_reports",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("file_path", sa.String(255), nullable=True, comment="Relative path from storage root"),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        _status("ocr_status", "PENDING", "PENDING, PROCESSING, COMPLETED, FAILED"),
        sa.Column("ocr_text", sa.Text(), nullable=True),
        sa.Column("ocr_error", sa.Text(), nullable=True),
        _ts("report_date"),
        sa.Column("institution", sa.String(255), nullable=True),
        sa.Column("report_type", sa.String(100), nullable=True),
        _flag("is_corrected", False),
        _ts("corrected_at"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_medical_reports_member_created", "medical_reports", ["member_id", "created_at"])

    op.create_table(
        "medical_indicators",
        _id(),
        _fk("report_id", "medical_reports.id"),
        sa.Column("indicator_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("reference_range", sa.String(100), nullable=True),
        _flag("is_abnormal", False),
        _status("status", "NORMAL", "NORMAL, LOW, HIGH, CRITICAL"),
        _flag("is_corrected", False),
        sa.Column("original_value", sa.Float(), nullable=True),
        *_audit(soft_delete=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_medical_indicators_report_id", "medical_indicators", ["report_id"])

    # ── Sharing and leaderboards ──────────────────────────────────────────
    op.create_table(
        "shared_contents",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("content_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("share_token", sa.String(64), nullable=False),
        sa.Column("share_url", sa.String(500), nullable=False),
        sa.Column("shared_platforms", sa.JSON(), nullable=False),
        _status("privacy_level", "PUBLIC", "PUBLIC, FRIENDS, PRIVATE"),
        _counter("view_count"),
        _counter("like_count"),
        _counter("comment_count"),
        _counter("share_count"),
        _counter("click_count"),
        _counter("download_count"),
        _status("status", "ACTIVE", "ACTIVE, EXPIRED, REVOKED"),
        _ts("expires_at"),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("share_token", name="uq_shared_contents_share_token"),
    )
    op.create_index("idx_shared_contents_member_id", "shared_contents", ["member_id"])

    op.create_table(
        "share_tracking",
        _id(),
        sa.Column("share_token", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False, comment="VIEW, CLICK, LIKE, COMMENT, DOWNLOAD, SHARE"),
        sa.Column("platform", sa.String(50), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("referrer", sa.String(500), nullable=True),
        _ts("occurred_at", nullable=False, default=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_share_tracking_token", "share_tracking", ["share_token", sa.text("occurred_at DESC")])

    op.create_table(
        "leaderboard_entries",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("leaderboard_type", sa.String(50), nullable=False),
        sa.Column("period", sa.String(50), nullable=False),
        _ts("period_start", nullable=False),
        _ts("period_end", nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("previous_rank", sa.Integer(), nullable=True),
        sa.Column("rank_change", sa.Integer(), nullable=True, comment="Positive = moved up"),
        sa.Column("total_participants", sa.Integer(), nullable=False),
        _ts("calculated_at", nullable=False, default=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_leaderboard_entries_member_type",
        "leaderboard_entries",
        ["member_id", "leaderboard_type", sa.text("calculated_at DESC")],
    )

    op.create_table(
        "achievements",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("achievement_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("rarity", sa.String(50), nullable=False, comment="COMMON, UNCOMMON, RARE, EPIC, LEGENDARY"),
        sa.Column("points", sa.Integer(), nullable=False),
        _ts("unlocked_at", nullable=False, default=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("member_id", "achievement_type", name="uq_achievements_member_type"),
    )

    # ── Notifications ─────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        _id(),
        _fk("member_id", "family_members.id"),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _status("priority", "MEDIUM", "LOW, MEDIUM, HIGH"),
        sa.Column("channels", sa.JSON(), nullable=False),
        _status("status", "PENDING", "PENDING, SENT, READ"),
        _ts("sent_at"),
        _ts("read_at"),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("dedup_key", sa.String(200), nullable=True),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_notifications_member_status", "notifications", ["member_id", "status"])
    op.create_index("idx_notifications_dedup_key", "notifications", ["dedup_key"])


def downgrade() -> None:
    """Drops every table. Destructive: all data is lost."""
    for table in (
        "notifications",
        "achievements",
        "leaderboard_entries",
        "share_tracking",
        "shared_contents",
        "medical_indicators",
        "medical_reports",
        "shopping_items",
        "shopping_lists",
        "budget_alerts",
        "spendings",
        "budgets",
        "meal_log_foods",
        "meal_logs",
        "price_histories",
        "foods",
        "health_goals",
        "health_data",
        "device_connections",
        "family_members",
        "families",
        "user_sessions",
        "users",
    ):
        op.drop_table(table)

"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

users, user_notification_settings, categories, activities, moves,
notifications.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    notification_type_enum = sa.Enum(
        "daily_reminder", "long_inactive", "streak_celebration",
        name="notification_type_enum",
    )
    notification_type_enum.create(op.get_bind(), checkfirst=True)

    notification_priority_enum = sa.Enum(
        "low", "normal", "high", "urgent", name="notification_priority_enum"
    )
    notification_priority_enum.create(op.get_bind(), checkfirst=True)

    notification_status_enum = sa.Enum(
        "pending", "retrying", "sent", "failed_permanent", name="notification_status_enum"
    )
    notification_status_enum.create(op.get_bind(), checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(256), nullable=False),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"])

    # --- user_notification_settings ---
    op.create_table(
        "user_notification_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("daily_reminder_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_subscription", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_user_notification_settings_id", "user_notification_settings", ["id"])
    op.create_index(
        "ix_user_notification_settings_user_id", "user_notification_settings", ["user_id"], unique=True
    )

    # --- categories ---
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("icon", sa.String(16), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_categories_id", "categories", ["id"])
    op.create_index("ix_categories_user_id", "categories", ["user_id"])

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("frequency_type", sa.String(16), nullable=False, server_default="preset"),
        sa.Column("frequency_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("frequency_unit", sa.String(16), nullable=False, server_default="days"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.CheckConstraint("frequency_value >= 1", name="ck_activity_frequency_value_positive"),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_is_active", "activities", ["is_active"])

    # --- moves ---
    op.create_table(
        "moves",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("activity_id", sa.Integer(), nullable=False),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["activity_id"], ["activities.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_moves_id", "moves", ["id"])
    op.create_index("ix_moves_activity_id", "moves", ["activity_id"])
    op.create_index("ix_moves_executed_at", "moves", ["executed_at"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("activity_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.Enum(
            "daily_reminder", "long_inactive", "streak_celebration",
            name="notification_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("priority", sa.Enum(
            "low", "normal", "high", "urgent",
            name="notification_priority_enum", create_type=False,
        ), nullable=False, server_default="normal"),
        sa.Column("status", sa.Enum(
            "pending", "retrying", "sent", "failed_permanent",
            name="notification_status_enum", create_type=False,
        ), nullable=False, server_default="pending"),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(256), nullable=True),
        sa.Column("badge", sa.String(256), nullable=True),
        sa.Column("data", sa.Text(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["activity_id"], ["activities.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_activity_id", "notifications", ["activity_id"])
    op.create_index("ix_notifications_status", "notifications", ["status"])
    op.create_index("ix_notifications_scheduled_at", "notifications", ["scheduled_at"])
    # Dispatcher selection: unsent rows by schedule time
    op.create_index(
        "ix_notifications_pending",
        "notifications",
        ["is_sent", "status", "scheduled_at"],
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("moves")
    op.drop_table("activities")
    op.drop_table("categories")
    op.drop_table("user_notification_settings")
    op.drop_table("users")
    sa.Enum(name="notification_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="notification_priority_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="notification_type_enum").drop(op.get_bind(), checkfirst=True)

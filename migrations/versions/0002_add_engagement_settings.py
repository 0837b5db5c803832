"""add engagement notification settings

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-20

Per-user toggles for the long-inactive nudge and streak celebrations.
Existing rows get the defaults (both enabled, 7 days).
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "user_notification_settings",
        sa.Column("long_inactive_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.add_column(
        "user_notification_settings",
        sa.Column("long_inactive_days", sa.Integer(), nullable=False, server_default="7"),
    )
    op.add_column(
        "user_notification_settings",
        sa.Column(
            "streak_celebration_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
    )
    op.create_check_constraint(
        "ck_notification_settings_long_inactive_days_positive",
        "user_notification_settings",
        "long_inactive_days >= 1",
    )


def downgrade() -> None:
    op.drop_constraint(
        "ck_notification_settings_long_inactive_days_positive",
        "user_notification_settings",
        type_="check",
    )
    op.drop_column("user_notification_settings", "streak_celebration_enabled")
    op.drop_column("user_notification_settings", "long_inactive_days")
    op.drop_column("user_notification_settings", "long_inactive_enabled")

"""
Activity: a recurring task definition with a target period.

frequency_unit is stored as a plain string (not a DB enum) so that rows
written by older clients with an unsupported unit are still loadable; the
notification evaluator reports them as data anomalies instead of failing.

Activities are soft-deleted (is_active = False) so move history survives.
"""
from datetime import datetime
import enum

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from lastmove.db.base import Base


class FrequencyUnit(str, enum.Enum):
    days = "days"
    weeks = "weeks"
    months = "months"
    quarters = "quarters"
    years = "years"


class FrequencyType(str, enum.Enum):
    preset = "preset"
    custom = "custom"


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("frequency_value >= 1", name="ck_activity_frequency_value_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    frequency_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=FrequencyType.preset.value
    )
    frequency_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    frequency_unit: Mapped[str] = mapped_column(
        String(16), nullable=False, default=FrequencyUnit.days.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

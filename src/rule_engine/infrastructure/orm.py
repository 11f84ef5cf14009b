"""SQLAlchemy models for the rule store."""

from datetime import datetime, time
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, Time
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from src.rule_engine.domain.models import NotificationType, RuleType


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class NotificationRuleRecord(Base):
    """Persisted notification rule."""

    __tablename__ = "notification_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    template_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rule_type: Mapped[RuleType] = mapped_column(SQLEnum(RuleType, name="rule_type_enum"), nullable=False)
    notification_type: Mapped[NotificationType] = mapped_column(
        SQLEnum(NotificationType, name="notification_type_enum"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Time-based conditions
    days_of_week: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    timezone: Mapped[str] = mapped_column(String(50), default="UTC", nullable=False)

    # Frequency conditions
    max_notifications_per_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_interval_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Content / composite conditions, free-form until validated by the store
    conditions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Action settings
    action_type: Mapped[str] = mapped_column(String(100), default="SEND_NOTIFICATION", nullable=False)
    action_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)  # Soft delete

    def to_document(self) -> dict[str, Any]:
        """Raw rule document, validated into a NotificationRule by the store."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "user_id": self.user_id,
            "template_name": self.template_name,
            "rule_type": self.rule_type,
            "notification_type": self.notification_type,
            "is_active": self.is_active,
            "priority": self.priority,
            "days_of_week": self.days_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "timezone": self.timezone,
            "max_notifications_per_day": self.max_notifications_per_day,
            "min_interval_minutes": self.min_interval_minutes,
            "conditions": self.conditions,
            "action_type": self.action_type,
            "action_config": self.action_config,
        }

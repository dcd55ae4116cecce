"""
Notification model for the petcare-core package.

A notification row is the durable record of a message to a user. It is
created immediately or with a ``scheduled_for`` time, and ``sent`` flips to
True once at least one delivery channel accepted it.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.datetime_utils import ensure_utc, get_current_utc
from .base import BaseModel, enum_column


class NotificationType(str, enum.Enum):
    """Kinds of notification the platform produces."""

    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    VACCINATION_DUE = "vaccination_due"
    MEDICATION_REMINDER = "medication_reminder"
    MEDICAL_UPDATE = "medical_update"
    SYSTEM_ALERT = "system_alert"
    WELCOME = "welcome"
    PASSWORD_CHANGED = "password_changed"


class NotificationPriority(str, enum.Enum):
    """Notification priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class RelatedEntityType(str, enum.Enum):
    """Entity a notification refers to."""

    APPOINTMENT = "appointment"
    PET = "pet"
    MEDICATION = "medication"
    VACCINATION = "vaccination"


class Notification(BaseModel):
    """Notification addressed to a single user."""

    __tablename__ = "notifications"

    def __init__(self, **kwargs):
        """Initialize Notification with default values."""
        if kwargs.get("priority") is None:
            kwargs["priority"] = NotificationPriority.NORMAL
        kwargs.setdefault("read", False)
        kwargs.setdefault("sent", False)
        super().__init__(**kwargs)

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType, "notification_type"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    related_entity_type: Mapped[Optional[RelatedEntityType]] = mapped_column(
        enum_column(RelatedEntityType, "related_entity_type"),
        nullable=True,
    )

    related_entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(nullable=True)

    priority: Mapped[NotificationPriority] = mapped_column(
        enum_column(NotificationPriority, "notification_priority"),
        nullable=False,
        default=NotificationPriority.NORMAL,
    )

    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    scheduled_for: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Delivery time for scheduled notifications; NULL sends immediately",
    )

    sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "read"),
        Index(
            "idx_notifications_scheduled",
            "scheduled_for",
            postgresql_where=text("scheduled_for IS NOT NULL AND sent = false"),
        ),
        Index(
            "idx_notifications_related_entity",
            "related_entity_id",
            "type",
            "created_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type='{NotificationType(self.type).value}', sent={self.sent})>"
        )

    def is_due(self, now: Optional[datetime] = None) -> bool:
        """Unsent and either unscheduled or scheduled at or before ``now``."""
        if self.sent:
            return False
        if self.scheduled_for is None:
            return True
        return ensure_utc(self.scheduled_for) <= (now or get_current_utc())

    def mark_read(self, now: Optional[datetime] = None) -> None:
        self.read = True
        self.read_at = now or get_current_utc()

    def mark_sent(self, now: Optional[datetime] = None) -> None:
        self.sent = True
        self.sent_at = now or get_current_utc()

    def to_payload(self) -> dict:
        """JSON payload pushed to real-time subscribers."""
        return {
            "id": str(self.id),
            "type": NotificationType(self.type).value,
            "title": self.title,
            "message": self.message,
            "priority": NotificationPriority(self.priority).value,
            "related_entity_type": (
                RelatedEntityType(self.related_entity_type).value
                if self.related_entity_type
                else None
            ),
            "related_entity_id": (
                str(self.related_entity_id) if self.related_entity_id else None
            ),
            "read": self.read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

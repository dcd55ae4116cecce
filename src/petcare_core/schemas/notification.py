"""
Notification Pydantic schemas.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.notification import (
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from ..utils.datetime_utils import ensure_utc


class NotificationCreate(BaseModel):
    """
    Input for creating a notification.

    Without ``scheduled_for`` the notification is dispatched immediately.
    Naive ``scheduled_for`` values are read as UTC.
    """

    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    user_id: UUID
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    related_entity_type: Optional[RelatedEntityType] = None
    related_entity_id: Optional[UUID] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    scheduled_for: Optional[datetime] = None

    @field_validator("scheduled_for")
    @classmethod
    def normalize_scheduled_for(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_related_entity(self) -> "NotificationCreate":
        """Entity type and id come as a pair."""
        if (self.related_entity_type is None) != (self.related_entity_id is None):
            raise ValueError(
                "related_entity_type and related_entity_id must be provided together"
            )
        return self


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    related_entity_type: Optional[RelatedEntityType] = None
    related_entity_id: Optional[UUID] = None
    priority: NotificationPriority
    read: bool
    read_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    sent: bool
    sent_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """A user's notifications with the unread count for badge display."""

    notifications: List[NotificationResponse]
    unread_count: int = Field(..., ge=0)

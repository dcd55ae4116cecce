"""
Notification dispatch and scheduling.

Notifications are stored as database rows and optionally fanned out over
email and real-time push. The scheduler periodically dispatches due
scheduled notifications and creates appointment and vaccination reminders.
"""

from . import messages
from .channels import (
    PUSH_EVENT_NAME,
    DeliveryResult,
    EmailChannel,
    NotificationChannel,
    NotificationDispatcher,
    PushChannel,
    user_channel_name,
)
from .messages import NotificationMessage
from .scheduler import NotificationScheduler, SchedulerRunResult
from .service import NotificationService

__all__ = [
    "messages",
    "NotificationMessage",
    # Channels
    "NotificationChannel",
    "EmailChannel",
    "PushChannel",
    "NotificationDispatcher",
    "DeliveryResult",
    "PUSH_EVENT_NAME",
    "user_channel_name",
    # Service and scheduler
    "NotificationService",
    "NotificationScheduler",
    "SchedulerRunResult",
]

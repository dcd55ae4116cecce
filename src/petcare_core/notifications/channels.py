"""
Delivery channels for notifications.

Notifications are always persisted first; channels are best-effort side
channels on top of the database record:

- ``EmailChannel`` sends an HTML email over SMTP and records every attempt in
  ``email_logs``.
- ``PushChannel`` triggers a real-time event on the user's Pusher channel
  through the Pusher client.

Blocking I/O (``smtplib``, the Pusher client) runs in a worker thread so the event
loop is never blocked.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Dict, List, Optional, Sequence

import pusher
import requests
from pusher.errors import PusherError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotificationDeliveryException
from ..models.email_log import DeliveryStatus, EmailLog
from ..models.notification import Notification, NotificationPriority
from ..models.user import User
from ..utils.config import NotificationSettings

PUSH_EVENT_NAME = "notification-created"


def user_channel_name(user_id) -> str:
    """Name of the Pusher channel a user's client subscribes to."""
    return f"user-{user_id}"


class NotificationChannel:
    """
    Base class for delivery channels.

    ``deliver`` returns ``True`` when the notification went out and ``False``
    when the channel skipped it (not configured, user opted out). Failures
    raise :class:`NotificationDeliveryException`.
    """

    name = "base"

    def __init__(self, settings: NotificationSettings) -> None:
        self.settings = settings
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def enabled(self) -> bool:
        return False

    async def deliver(
        self, session: AsyncSession, notification: Notification, user: User
    ) -> bool:
        raise NotImplementedError


class EmailChannel(NotificationChannel):
    """SMTP email delivery with an ``email_logs`` row per attempt."""

    name = "email"

    @property
    def enabled(self) -> bool:
        return self.settings.email_configured

    async def deliver(
        self, session: AsyncSession, notification: Notification, user: User
    ) -> bool:
        if not self.enabled:
            self.logger.debug("SMTP not configured, skipping email delivery")
            return False
        if not user.email_notifications:
            self.logger.debug(f"User {user.id} opted out of email notifications")
            return False

        subject = notification.title
        try:
            await asyncio.to_thread(
                self._send_email,
                user.email,
                subject,
                self._create_email_text_body(notification),
                self._create_email_html_body(notification),
            )
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Failed to send email to {user.email}: {e}")
            session.add(
                EmailLog(
                    user_id=user.id,
                    to_email=user.email,
                    subject=subject,
                    type="notification",
                    notification_id=notification.id,
                    delivery_status=DeliveryStatus.FAILED,
                    error_message=str(e),
                )
            )
            raise NotificationDeliveryException(
                "Email delivery failed",
                channel=self.name,
                notification_id=notification.id,
                original_error=e,
            )

        session.add(
            EmailLog(
                user_id=user.id,
                to_email=user.email,
                subject=subject,
                type="notification",
                notification_id=notification.id,
                delivery_status=DeliveryStatus.SENT,
            )
        )
        self.logger.info(f"Email notification {notification.id} sent to {user.email}")
        return True

    def _send_email(
        self, to_email: str, subject: str, text_body: str, html_body: str
    ) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.email_from
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(
            self.settings.smtp_host, self.settings.smtp_port, timeout=30
        ) as server:
            if self.settings.smtp_use_tls:
                server.starttls()
            if self.settings.smtp_username and self.settings.smtp_password:
                server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.send_message(msg)

    def _create_email_html_body(self, notification: Notification) -> str:
        priority = NotificationPriority(notification.priority).value.upper()
        return f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <h2>{escape(notification.title)}</h2>
            <p>{escape(notification.message)}</p>
            <hr>
            <p><small>Priority: {priority}</small></p>
        </body>
        </html>
        """

    def _create_email_text_body(self, notification: Notification) -> str:
        priority = NotificationPriority(notification.priority).value.upper()
        return f"{notification.title}\n\n{notification.message}\n\nPriority: {priority}\n"


class PushChannel(NotificationChannel):
    """
    Real-time fan-out through the Pusher client library.

    Without credentials the system runs in database-only mode; clients then
    pick notifications up by polling.
    """

    name = "push"

    def __init__(self, settings: NotificationSettings) -> None:
        super().__init__(settings)
        self._warned = False
        self._client: Optional[pusher.Pusher] = None

    @property
    def enabled(self) -> bool:
        return self.settings.push_configured

    @property
    def client(self) -> pusher.Pusher:
        if self._client is None:
            self._client = pusher.Pusher(
                app_id=self.settings.pusher_app_id,
                key=self.settings.pusher_key,
                secret=self.settings.pusher_secret,
                cluster=self.settings.pusher_cluster,
                ssl=True,
                timeout=30,
            )
        return self._client

    async def deliver(
        self, session: AsyncSession, notification: Notification, user: User
    ) -> bool:
        if not self.enabled:
            if not self._warned:
                self.logger.warning(
                    "Pusher credentials not configured, "
                    "notifications will be stored in the database only"
                )
                self._warned = True
            return False

        try:
            await asyncio.to_thread(
                self.client.trigger,
                user_channel_name(user.id),
                PUSH_EVENT_NAME,
                notification.to_payload(),
            )
        except (PusherError, requests.RequestException) as e:
            self.logger.error(f"Failed to push notification {notification.id}: {e}")
            raise NotificationDeliveryException(
                "Push delivery failed",
                channel=self.name,
                notification_id=notification.id,
                original_error=e,
            )

        self.logger.debug(f"Pushed notification {notification.id} to user {user.id}")
        return True


@dataclass
class DeliveryResult:
    """Outcome of one dispatch across all channels."""

    notification_id: Optional[str] = None
    delivered: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.delivered)


class NotificationDispatcher:
    """
    Hands a notification to every channel in turn.

    A failing channel is logged and recorded; it never stops the remaining
    channels and is not retried.
    """

    def __init__(self, channels: Sequence[NotificationChannel]) -> None:
        self.channels = list(channels)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "NotificationDispatcher":
        return cls([EmailChannel(settings), PushChannel(settings)])

    async def dispatch(
        self, session: AsyncSession, notification: Notification, user: User
    ) -> DeliveryResult:
        result = DeliveryResult(notification_id=str(notification.id))

        for channel in self.channels:
            try:
                if await channel.deliver(session, notification, user):
                    result.delivered.append(channel.name)
                else:
                    result.skipped.append(channel.name)
            except NotificationDeliveryException as e:
                result.failed[channel.name] = e.message

        if result.failed:
            self.logger.warning(
                f"Notification {notification.id} failed on channels: "
                f"{', '.join(result.failed)}"
            )
        return result

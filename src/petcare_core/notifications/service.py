"""
Notification service.

Creates, reads and dispatches notifications, and builds the appointment and
vaccination reminders the scheduler scans for. All work happens inside the
caller's session; the caller owns the transaction.
"""

import datetime as dt
import logging
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.appointment import Appointment, AppointmentStatus
from ..models.notification import (
    Notification,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from ..models.pet import Pet
from ..models.user import User
from ..models.vaccination import Vaccination
from ..schemas.notification import NotificationCreate
from ..utils.config import NotificationSettings
from ..utils.datetime_utils import (
    combine_utc,
    date_window,
    get_current_utc,
    reminder_time,
    utc_today,
)
from . import messages
from .channels import DeliveryResult, NotificationDispatcher
from .messages import NotificationMessage


class NotificationService:
    """
    Notification operations bound to one database session.

    Args:
        session: Session used for every query; never committed here
        dispatcher: Delivery channels; built from ``settings`` when omitted
        settings: Reminder windows and channel credentials
    """

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
        settings: Optional[NotificationSettings] = None,
    ) -> None:
        self.session = session
        self.settings = settings or NotificationSettings()
        self.dispatcher = dispatcher or NotificationDispatcher.from_settings(
            self.settings
        )
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # Creation and delivery

    async def create_notification(self, data: NotificationCreate) -> Notification:
        """
        Persist a notification.

        Notifications without ``scheduled_for`` are dispatched right away;
        scheduled ones wait for :meth:`process_scheduled_notifications`.
        """
        notification = Notification(
            user_id=data.user_id,
            type=NotificationType(data.type),
            title=data.title,
            message=data.message,
            related_entity_type=(
                RelatedEntityType(data.related_entity_type)
                if data.related_entity_type
                else None
            ),
            related_entity_id=data.related_entity_id,
            priority=NotificationPriority(data.priority),
            scheduled_for=data.scheduled_for,
        )
        self.session.add(notification)
        await self.session.flush()

        self.logger.debug(
            f"Created {notification.type.value} notification {notification.id} "
            f"for user {notification.user_id}"
        )

        if notification.scheduled_for is None:
            await self._deliver(notification)

        return notification

    async def send_notification(self, notification_id: uuid.UUID) -> bool:
        """
        Dispatch a stored notification.

        Returns:
            True if at least one channel delivered it. Delivery failures are
            logged and reported as False, never raised.
        """
        notification = await self._get_active(notification_id)
        if notification is None:
            self.logger.warning(f"Notification {notification_id} not found")
            return False
        if notification.sent:
            return True
        result = await self._deliver(notification)
        return result is not None and result.success

    async def _deliver(self, notification: Notification) -> Optional[DeliveryResult]:
        user = await self.session.get(User, notification.user_id)
        if user is None or user.is_deleted:
            self.logger.warning(
                f"Recipient {notification.user_id} of notification "
                f"{notification.id} no longer exists"
            )
            return None

        try:
            result = await self.dispatcher.dispatch(self.session, notification, user)
        except Exception as e:
            self.logger.error(f"Failed to send notification {notification.id}: {e}")
            return None

        if result.success:
            notification.mark_sent()
            await self.session.flush()
        return result

    async def process_scheduled_notifications(self) -> int:
        """
        Dispatch every unsent notification whose time has come, oldest first.

        Returns:
            Number of notifications delivered
        """
        due = await self.due_notification_ids()

        sent = 0
        for notification_id in due:
            if await self.send_notification(notification_id):
                sent += 1

        if due:
            self.logger.info(f"Processed {len(due)} scheduled notifications, {sent} sent")
        return sent

    async def due_notification_ids(self) -> List[uuid.UUID]:
        """Unsent scheduled notifications whose time has come, oldest first."""
        stmt = (
            select(Notification.id)
            .where(
                Notification.create_query_filter_active(),
                Notification.sent.is_(False),
                Notification.scheduled_for.is_not(None),
                Notification.scheduled_for <= get_current_utc(),
            )
            .order_by(Notification.scheduled_for.asc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    # Reads and read-state

    async def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        """A user's notifications, newest first."""
        stmt = select(Notification).where(
            Notification.user_id == user_id,
            Notification.create_query_filter_active(),
        )
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await self.session.execute(stmt)).scalars().all())

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
            Notification.create_query_filter_active(),
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def mark_as_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Mark one of the user's notifications read. False if not theirs or missing."""
        notification = await self._get_active(notification_id, user_id)
        if notification is None:
            return False
        if not notification.read:
            notification.mark_read()
            await self.session.flush()
        return True

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        """Returns the number of notifications that changed."""
        stmt = (
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
                Notification.create_query_filter_active(),
            )
            .values(read=True, read_at=get_current_utc())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_notification(
        self, notification_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        notification = await self._get_active(notification_id, user_id)
        if notification is None:
            return False
        notification.soft_delete(deleted_by=user_id)
        await self.session.flush()
        return True

    async def _get_active(
        self, notification_id: uuid.UUID, user_id: Optional[uuid.UUID] = None
    ) -> Optional[Notification]:
        stmt = select(Notification).where(
            Notification.id == notification_id,
            Notification.create_query_filter_active(),
        )
        if user_id is not None:
            stmt = stmt.where(Notification.user_id == user_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    # Reminders

    async def create_appointment_reminder(
        self, appointment_id: uuid.UUID
    ) -> Optional[Notification]:
        """
        Create the reminder for a scheduled appointment.

        The reminder is due ``appointment_reminder_hours`` before the
        appointment starts; when that moment has passed it is sent now.
        Returns None for unknown or non-scheduled appointments.
        """
        row = (
            await self.session.execute(
                select(Appointment, Pet.name)
                .join(Pet, Pet.id == Appointment.pet_id)
                .where(
                    Appointment.id == appointment_id,
                    Appointment.create_query_filter_active(),
                )
            )
        ).one_or_none()
        if row is None:
            return None

        appointment, pet_name = row
        if appointment.status != AppointmentStatus.SCHEDULED:
            return None

        due_at = reminder_time(
            appointment.date,
            timedelta(hours=self.settings.appointment_reminder_hours),
            appointment.time,
        )
        msg = messages.appointment_reminder(pet_name, appointment.date, appointment.time)
        return await self.create_notification(
            self._build(
                appointment.owner_id,
                NotificationType.APPOINTMENT_REMINDER,
                msg,
                RelatedEntityType.APPOINTMENT,
                appointment.id,
                scheduled_for=due_at if due_at > get_current_utc() else None,
            )
        )

    async def create_vaccination_reminder(
        self, vaccination_id: uuid.UUID
    ) -> Optional[Notification]:
        """
        Create the reminder for a vaccination's next due date.

        Due ``vaccination_reminder_days`` before ``next_due``; sent now when
        that moment has passed. Returns None without a ``next_due``.
        """
        row = (
            await self.session.execute(
                select(Vaccination, Pet)
                .join(Pet, Pet.id == Vaccination.pet_id)
                .where(
                    Vaccination.id == vaccination_id,
                    Vaccination.create_query_filter_active(),
                    Pet.create_query_filter_active(),
                )
            )
        ).one_or_none()
        if row is None:
            return None

        vaccination, pet = row
        if vaccination.next_due is None:
            return None

        due_at = reminder_time(
            vaccination.next_due,
            timedelta(days=self.settings.vaccination_reminder_days),
        )
        msg = messages.vaccination_due(pet.name, vaccination.vaccine, vaccination.next_due)
        return await self.create_notification(
            self._build(
                pet.owner_id,
                NotificationType.VACCINATION_DUE,
                msg,
                RelatedEntityType.VACCINATION,
                vaccination.id,
                scheduled_for=due_at if due_at > get_current_utc() else None,
            )
        )

    async def check_upcoming_appointments(self) -> int:
        """
        Create reminders for scheduled appointments inside the reminder window
        that have no ``appointment_reminder`` from the look-back window.

        Returns:
            Number of reminders created
        """
        created = 0
        for appointment_id in await self.appointments_due_for_reminder():
            if await self.create_appointment_reminder(appointment_id) is not None:
                created += 1

        if created:
            self.logger.info(f"Created {created} appointment reminders")
        return created

    async def appointments_due_for_reminder(self) -> List[uuid.UUID]:
        """Scheduled appointments in the reminder window not reminded recently."""
        today = utc_today()
        window_end = (
            combine_utc(today)
            + timedelta(hours=self.settings.appointment_reminder_hours + 1)
        ).date()
        recent = get_current_utc() - timedelta(
            hours=self.settings.appointment_lookback_hours
        )

        already_reminded = exists().where(
            Notification.related_entity_id == Appointment.id,
            Notification.type == NotificationType.APPOINTMENT_REMINDER,
            Notification.created_at > recent,
        )
        stmt = (
            select(Appointment.id)
            .join(Pet, Pet.id == Appointment.pet_id)
            .where(
                Appointment.status == AppointmentStatus.SCHEDULED,
                Appointment.create_query_filter_active(),
                Pet.create_query_filter_active(),
                Appointment.date >= today,
                Appointment.date <= window_end,
                ~already_reminded,
            )
            .order_by(Appointment.date, Appointment.time)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def check_due_vaccinations(self) -> int:
        """
        Create reminders for vaccinations due inside the reminder window that
        have no ``vaccination_due`` from the look-back window.

        Returns:
            Number of reminders created
        """
        created = 0
        for vaccination_id in await self.vaccinations_due_for_reminder():
            if await self.create_vaccination_reminder(vaccination_id) is not None:
                created += 1

        if created:
            self.logger.info(f"Created {created} vaccination reminders")
        return created

    async def vaccinations_due_for_reminder(self) -> List[uuid.UUID]:
        """Vaccinations falling due in the reminder window not reminded recently."""
        today, window_end = date_window(self.settings.vaccination_reminder_days + 1)
        recent = get_current_utc() - timedelta(
            days=self.settings.vaccination_lookback_days
        )

        already_reminded = exists().where(
            Notification.related_entity_id == Vaccination.id,
            Notification.type == NotificationType.VACCINATION_DUE,
            Notification.created_at > recent,
        )
        stmt = (
            select(Vaccination.id)
            .join(Pet, Pet.id == Vaccination.pet_id)
            .where(
                Vaccination.create_query_filter_active(),
                Pet.create_query_filter_active(),
                Vaccination.next_due.is_not(None),
                Vaccination.next_due >= today,
                Vaccination.next_due <= window_end,
                ~already_reminded,
            )
            .order_by(Vaccination.next_due)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def cancel_pending_reminders(
        self, entity_id: uuid.UUID, notification_type: NotificationType
    ) -> int:
        """
        Soft delete the unsent reminders of one appointment or vaccination.

        Returns:
            Number of reminders withdrawn
        """
        stmt = (
            update(Notification)
            .where(
                Notification.related_entity_id == entity_id,
                Notification.type == notification_type,
                Notification.sent.is_(False),
                Notification.create_query_filter_active(),
            )
            .values(is_deleted=True, deleted_at=get_current_utc())
            .execution_options(synchronize_session="fetch")
        )
        withdrawn = (await self.session.execute(stmt)).rowcount or 0
        if withdrawn:
            self.logger.info(
                f"Withdrew {withdrawn} pending {notification_type.value} "
                f"notifications for {entity_id}"
            )
        return withdrawn

    async def schedule_appointment_reminder(
        self, appointment_id: uuid.UUID
    ) -> Optional[Notification]:
        """Replace the appointment's pending reminder. Best effort."""

        async def replace() -> Optional[Notification]:
            await self.cancel_pending_reminders(
                appointment_id, NotificationType.APPOINTMENT_REMINDER
            )
            return await self.create_appointment_reminder(appointment_id)

        return await self._best_effort(
            f"appointment reminder for {appointment_id}", replace
        )

    async def schedule_vaccination_reminder(
        self, vaccination_id: uuid.UUID
    ) -> Optional[Notification]:
        """Replace the vaccination's pending reminder. Best effort."""

        async def replace() -> Optional[Notification]:
            await self.cancel_pending_reminders(
                vaccination_id, NotificationType.VACCINATION_DUE
            )
            return await self.create_vaccination_reminder(vaccination_id)

        return await self._best_effort(
            f"vaccination reminder for {vaccination_id}", replace
        )

    # Event helpers. Best effort: a failure is logged and never reaches the
    # caller's main flow.

    async def notify_welcome(
        self, user_id: uuid.UUID, user_name: str
    ) -> Optional[Notification]:
        return await self._notify(
            user_id, NotificationType.WELCOME, messages.welcome(user_name)
        )

    async def notify_appointment_cancelled(
        self,
        user_id: uuid.UUID,
        appointment_id: uuid.UUID,
        pet_name: str,
        vet_name: str,
        day: dt.date,
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.APPOINTMENT_CANCELLED,
            messages.appointment_cancelled(pet_name, vet_name, day),
            RelatedEntityType.APPOINTMENT,
            appointment_id,
        )

    async def notify_appointment_rescheduled(
        self,
        user_id: uuid.UUID,
        appointment_id: uuid.UUID,
        pet_name: str,
        old_date: dt.date,
        new_date: dt.date,
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.APPOINTMENT_RESCHEDULED,
            messages.appointment_rescheduled(pet_name, old_date, new_date),
            RelatedEntityType.APPOINTMENT,
            appointment_id,
        )

    async def notify_vaccination_due(
        self,
        user_id: uuid.UUID,
        vaccination_id: uuid.UUID,
        pet_name: str,
        vaccine: str,
        due_date: dt.date,
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.VACCINATION_DUE,
            messages.vaccination_due(
                pet_name, vaccine, due_date, priority=NotificationPriority.HIGH
            ),
            RelatedEntityType.VACCINATION,
            vaccination_id,
        )

    async def notify_medication_reminder(
        self,
        user_id: uuid.UUID,
        medication_id: uuid.UUID,
        pet_name: str,
        medication_name: str,
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.MEDICATION_REMINDER,
            messages.medication_reminder(pet_name, medication_name),
            RelatedEntityType.MEDICATION,
            medication_id,
        )

    async def notify_medical_update(
        self, user_id: uuid.UUID, pet_id: uuid.UUID, pet_name: str, vet_name: str
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.MEDICAL_UPDATE,
            messages.medical_update(pet_name, vet_name),
            RelatedEntityType.PET,
            pet_id,
        )

    async def notify_password_changed(
        self, user_id: uuid.UUID, email: str
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.PASSWORD_CHANGED,
            messages.password_changed(email),
        )

    async def notify_system_alert(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> Optional[Notification]:
        return await self._notify(
            user_id,
            NotificationType.SYSTEM_ALERT,
            messages.system_alert(title, message, priority),
        )

    async def _notify(
        self,
        user_id: uuid.UUID,
        notification_type: NotificationType,
        msg: NotificationMessage,
        entity_type: Optional[RelatedEntityType] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Optional[Notification]:
        return await self._best_effort(
            f"{notification_type.value} notification for user {user_id}",
            lambda: self.create_notification(
                self._build(user_id, notification_type, msg, entity_type, entity_id)
            ),
        )

    async def _best_effort(
        self, description: str, operation: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Run ``operation`` inside a savepoint. A failure rolls back only the
        savepoint, is logged and returns None, so the caller's session stays
        usable.
        """
        try:
            async with self.session.begin_nested():
                return await operation()
        except Exception as e:
            self.logger.error(f"Failed to create {description}: {e}")
            return None

    @staticmethod
    def _build(
        user_id: uuid.UUID,
        notification_type: NotificationType,
        msg: NotificationMessage,
        entity_type: Optional[RelatedEntityType] = None,
        entity_id: Optional[uuid.UUID] = None,
        scheduled_for: Optional[dt.datetime] = None,
    ) -> NotificationCreate:
        return NotificationCreate(
            user_id=user_id,
            type=notification_type,
            title=msg.title,
            message=msg.message,
            priority=msg.priority,
            related_entity_type=entity_type,
            related_entity_id=entity_id,
            scheduled_for=scheduled_for,
        )

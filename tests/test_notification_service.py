"""
Tests for the notification service: creation, dispatch, read state and the
appointment and vaccination reminder scans.
"""

import uuid
from datetime import datetime, time, timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from petcare_core.database.session import SessionManager
from petcare_core.models import (
    AppointmentStatus,
    Base,
    Notification,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
    User,
)
from petcare_core.notifications import NotificationDispatcher, NotificationService
from petcare_core.schemas import NotificationCreate
from petcare_core.utils.datetime_utils import (
    UTC,
    ensure_utc,
    format_date,
    get_current_utc,
)

from conftest import TEST_DATABASE_URL, RecordingChannel, UserFactory


def notification_data(user_id, **kwargs) -> NotificationCreate:
    data = {
        "user_id": user_id,
        "type": NotificationType.SYSTEM_ALERT,
        "title": "Clinic closed",
        "message": "The clinic is closed on Monday",
    }
    data.update(kwargs)
    return NotificationCreate(**data)


async def count_notifications(session, **filters) -> int:
    stmt = select(func.count()).select_from(Notification)
    for name, value in filters.items():
        stmt = stmt.where(getattr(Notification, name) == value)
    return await session.scalar(stmt)


class TestCreateNotification:
    """Immediate and scheduled creation."""

    @pytest.mark.asyncio
    async def test_immediate_notification_is_dispatched(
        self, notification_service, recording_channel, pet_owner
    ):
        notification = await notification_service.create_notification(
            notification_data(pet_owner.id)
        )

        assert notification.sent is True
        assert notification.sent_at is not None
        assert recording_channel.deliveries == [notification.id]

    @pytest.mark.asyncio
    async def test_scheduled_notification_waits(
        self, notification_service, recording_channel, pet_owner
    ):
        notification = await notification_service.create_notification(
            notification_data(
                pet_owner.id, scheduled_for=get_current_utc() + timedelta(hours=2)
            )
        )

        assert notification.sent is False
        assert recording_channel.deliveries == []

    @pytest.mark.asyncio
    async def test_failed_delivery_leaves_notification_unsent(
        self, async_session, notification_settings, pet_owner
    ):
        service = NotificationService(
            async_session,
            NotificationDispatcher([RecordingChannel(fail=True)]),
            notification_settings,
        )

        notification = await service.create_notification(
            notification_data(pet_owner.id)
        )

        assert notification.sent is False
        assert await service.send_notification(notification.id) is False

    @pytest.mark.asyncio
    async def test_database_only_mode_keeps_row_unsent(
        self, async_session, notification_settings, pet_owner
    ):
        service = NotificationService(async_session, settings=notification_settings)

        notification = await service.create_notification(
            notification_data(pet_owner.id)
        )

        assert notification.id is not None
        assert notification.sent is False
        assert await count_notifications(async_session, user_id=pet_owner.id) == 1

    @pytest.mark.asyncio
    async def test_deleted_recipient_is_not_dispatched(
        self, async_session, notification_service, recording_channel, pet_owner
    ):
        pet_owner.soft_delete()
        await async_session.flush()

        notification = await notification_service.create_notification(
            notification_data(pet_owner.id)
        )

        assert notification.sent is False
        assert recording_channel.deliveries == []


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_send_stored_notification(
        self, notification_service, recording_channel, pet_owner
    ):
        notification = await notification_service.create_notification(
            notification_data(
                pet_owner.id, scheduled_for=get_current_utc() + timedelta(days=1)
            )
        )

        assert await notification_service.send_notification(notification.id) is True
        assert notification.sent is True
        assert recording_channel.deliveries == [notification.id]

    @pytest.mark.asyncio
    async def test_already_sent_is_not_resent(
        self, notification_service, recording_channel, pet_owner
    ):
        notification = await notification_service.create_notification(
            notification_data(pet_owner.id)
        )

        assert await notification_service.send_notification(notification.id) is True
        assert recording_channel.deliveries == [notification.id]

    @pytest.mark.asyncio
    async def test_unknown_notification(self, notification_service):
        assert await notification_service.send_notification(uuid.uuid4()) is False


class TestProcessScheduled:
    @pytest.mark.asyncio
    async def test_due_notifications_sent_oldest_first(
        self, notification_service, recording_channel, pet_owner
    ):
        now = get_current_utc()
        later = await notification_service.create_notification(
            notification_data(pet_owner.id, scheduled_for=now - timedelta(minutes=5))
        )
        earlier = await notification_service.create_notification(
            notification_data(pet_owner.id, scheduled_for=now - timedelta(hours=1))
        )
        future = await notification_service.create_notification(
            notification_data(pet_owner.id, scheduled_for=now + timedelta(hours=1))
        )

        sent = await notification_service.process_scheduled_notifications()

        assert sent == 2
        assert recording_channel.deliveries == [earlier.id, later.id]
        assert future.sent is False

    @pytest.mark.asyncio
    async def test_processing_twice_sends_once(
        self, notification_service, recording_channel, pet_owner
    ):
        await notification_service.create_notification(
            notification_data(
                pet_owner.id, scheduled_for=get_current_utc() - timedelta(minutes=1)
            )
        )

        assert await notification_service.process_scheduled_notifications() == 1
        assert await notification_service.process_scheduled_notifications() == 0
        assert len(recording_channel.deliveries) == 1

    @pytest.mark.asyncio
    async def test_soft_deleted_are_skipped(self, notification_service, pet_owner):
        notification = await notification_service.create_notification(
            notification_data(
                pet_owner.id, scheduled_for=get_current_utc() - timedelta(minutes=1)
            )
        )
        await notification_service.delete_notification(notification.id, pet_owner.id)

        assert await notification_service.process_scheduled_notifications() == 0


class TestReadState:
    """Listing, unread counts and read markers."""

    @pytest.mark.asyncio
    async def test_list_newest_first(
        self, async_session, notification_service, pet_owner, other_owner
    ):
        base = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        created = []
        for offset in range(3):
            notification = await notification_service.create_notification(
                notification_data(pet_owner.id, title=f"Notice {offset}")
            )
            notification.created_at = base + timedelta(minutes=offset)
            created.append(notification)
        await notification_service.create_notification(
            notification_data(other_owner.id)
        )
        await async_session.flush()

        listed = await notification_service.get_user_notifications(pet_owner.id)
        assert [n.title for n in listed] == ["Notice 2", "Notice 1", "Notice 0"]

        limited = await notification_service.get_user_notifications(
            pet_owner.id, limit=1
        )
        assert [n.id for n in limited] == [created[2].id]

    @pytest.mark.asyncio
    async def test_mark_as_read(self, notification_service, pet_owner, other_owner):
        notification = await notification_service.create_notification(
            notification_data(pet_owner.id)
        )
        assert await notification_service.get_unread_count(pet_owner.id) == 1

        assert (
            await notification_service.mark_as_read(notification.id, other_owner.id)
            is False
        )
        assert await notification_service.mark_as_read(notification.id, pet_owner.id)

        assert notification.read is True
        assert notification.read_at is not None
        assert await notification_service.get_unread_count(pet_owner.id) == 0
        unread = await notification_service.get_user_notifications(
            pet_owner.id, unread_only=True
        )
        assert unread == []

    @pytest.mark.asyncio
    async def test_mark_all_as_read(
        self, notification_service, pet_owner, other_owner
    ):
        for _ in range(3):
            await notification_service.create_notification(
                notification_data(pet_owner.id)
            )
        await notification_service.create_notification(
            notification_data(other_owner.id)
        )

        assert await notification_service.mark_all_as_read(pet_owner.id) == 3
        assert await notification_service.mark_all_as_read(pet_owner.id) == 0
        assert await notification_service.get_unread_count(pet_owner.id) == 0
        assert await notification_service.get_unread_count(other_owner.id) == 1

    @pytest.mark.asyncio
    async def test_delete_is_soft_and_owner_only(
        self, async_session, notification_service, pet_owner, other_owner
    ):
        notification = await notification_service.create_notification(
            notification_data(pet_owner.id)
        )

        assert (
            await notification_service.delete_notification(
                notification.id, other_owner.id
            )
            is False
        )
        assert await notification_service.delete_notification(
            notification.id, pet_owner.id
        )

        assert notification.is_deleted is True
        assert await notification_service.get_user_notifications(pet_owner.id) == []
        assert await notification_service.get_unread_count(pet_owner.id) == 0
        assert await count_notifications(async_session, id=notification.id) == 1


class TestAppointmentReminders:
    @pytest.mark.asyncio
    async def test_future_appointment_reminder_is_scheduled(
        self,
        async_session,
        notification_service,
        appointment_factory,
        pet,
        veterinarian,
        today,
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, date=today + timedelta(days=10)
        )

        reminder = await notification_service.create_appointment_reminder(
            appointment.id
        )

        expected = datetime.combine(
            today + timedelta(days=9), time(10, 30), tzinfo=UTC
        )
        assert ensure_utc(reminder.scheduled_for) == expected
        assert reminder.sent is False
        assert reminder.user_id == pet.owner_id
        assert reminder.type == NotificationType.APPOINTMENT_REMINDER
        assert reminder.priority == NotificationPriority.HIGH
        assert reminder.related_entity_type == RelatedEntityType.APPOINTMENT
        assert reminder.related_entity_id == appointment.id
        assert reminder.message == (
            f"Reminder: You have an appointment for Buddy on "
            f"{format_date(appointment.date)} at 10:30."
        )

    @pytest.mark.asyncio
    async def test_imminent_appointment_reminder_is_sent_now(
        self,
        async_session,
        notification_service,
        recording_channel,
        appointment_factory,
        pet,
        veterinarian,
        today,
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, date=today, time=None
        )

        reminder = await notification_service.create_appointment_reminder(
            appointment.id
        )

        assert reminder.scheduled_for is None
        assert reminder.sent is True
        assert reminder.message.endswith("at TBD.")
        assert recording_channel.deliveries == [reminder.id]

    @pytest.mark.asyncio
    async def test_no_reminder_for_cancelled_or_unknown(
        self, async_session, notification_service, appointment_factory, pet, veterinarian
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, status=AppointmentStatus.CANCELLED
        )

        assert await notification_service.create_appointment_reminder(appointment.id) is None
        assert await notification_service.create_appointment_reminder(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_scan_creates_each_reminder_once(
        self,
        async_session,
        notification_service,
        appointment_factory,
        pet_factory,
        pet,
        pet_owner,
        veterinarian,
        today,
    ):
        tomorrow = today + timedelta(days=1)
        due = await appointment_factory.create(
            async_session, pet, veterinarian, date=tomorrow
        )
        await appointment_factory.create(
            async_session, pet, veterinarian, date=today + timedelta(days=10)
        )
        await appointment_factory.create(
            async_session,
            pet,
            veterinarian,
            date=tomorrow,
            status=AppointmentStatus.CANCELLED,
        )
        removed_pet = await pet_factory.create(
            async_session, owner=pet_owner, name="Ghost"
        )
        await appointment_factory.create(
            async_session, removed_pet, veterinarian, date=tomorrow
        )
        removed_pet.soft_delete()
        await async_session.flush()

        assert await notification_service.check_upcoming_appointments() == 1
        assert await notification_service.check_upcoming_appointments() == 0

        reminders = await notification_service.get_user_notifications(pet_owner.id)
        assert [n.related_entity_id for n in reminders] == [due.id]

    @pytest.mark.asyncio
    async def test_old_reminder_outside_lookback_allows_new_one(
        self,
        async_session,
        notification_service,
        appointment_factory,
        pet,
        veterinarian,
        today,
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, date=today + timedelta(days=1)
        )
        old = await notification_service.create_appointment_reminder(appointment.id)
        old.created_at = get_current_utc() - timedelta(hours=72)
        await async_session.flush()

        assert await notification_service.check_upcoming_appointments() == 1


class TestVaccinationReminders:
    @pytest.mark.asyncio
    async def test_reminder_scheduled_before_due_date(
        self, async_session, notification_service, vaccination_factory, pet, today
    ):
        vaccination = await vaccination_factory.create(
            async_session, pet, next_due=today + timedelta(days=30)
        )

        reminder = await notification_service.create_vaccination_reminder(
            vaccination.id
        )

        assert ensure_utc(reminder.scheduled_for) == datetime.combine(
            today + timedelta(days=23), time(0, 0), tzinfo=UTC
        )
        assert reminder.type == NotificationType.VACCINATION_DUE
        assert reminder.priority == NotificationPriority.NORMAL
        assert reminder.message.startswith("Buddy's Rabies vaccination is due on ")

    @pytest.mark.asyncio
    async def test_no_reminder_without_next_due_or_pet(
        self, async_session, notification_service, vaccination_factory, pet
    ):
        without_due = await vaccination_factory.create(
            async_session, pet, next_due=None
        )
        assert (
            await notification_service.create_vaccination_reminder(without_due.id)
            is None
        )

        with_due = await vaccination_factory.create(async_session, pet)
        pet.soft_delete()
        await async_session.flush()
        assert await notification_service.create_vaccination_reminder(with_due.id) is None

    @pytest.mark.asyncio
    async def test_scan_creates_each_reminder_once(
        self,
        async_session,
        notification_service,
        recording_channel,
        vaccination_factory,
        pet,
        pet_owner,
        today,
    ):
        soon = await vaccination_factory.create(
            async_session, pet, vaccine="Rabies", next_due=today + timedelta(days=3)
        )
        await vaccination_factory.create(
            async_session, pet, vaccine="Parvo", next_due=today + timedelta(days=30)
        )
        await vaccination_factory.create(
            async_session,
            pet,
            vaccine="Distemper",
            date=today - timedelta(days=400),
            next_due=today - timedelta(days=1),
        )

        assert await notification_service.check_due_vaccinations() == 1
        assert await notification_service.check_due_vaccinations() == 0

        reminders = await notification_service.get_user_notifications(pet_owner.id)
        assert [n.related_entity_id for n in reminders] == [soon.id]
        # Due in three days with a seven day lead: already inside the window
        assert reminders[0].sent is True
        assert recording_channel.deliveries == [reminders[0].id]


class TestEventHelpers:
    """Best-effort notifications raised by the services."""

    @pytest.mark.asyncio
    async def test_welcome(self, notification_service, pet_owner):
        notification = await notification_service.notify_welcome(
            pet_owner.id, "Olivia"
        )

        assert notification.type == NotificationType.WELCOME
        assert notification.title == "Welcome to PetCare! 🐾"
        assert "Hi Olivia!" in notification.message

    @pytest.mark.asyncio
    async def test_priorities(self, notification_service, pet_owner, pet, today):
        vaccination = await notification_service.notify_vaccination_due(
            pet_owner.id, uuid.uuid4(), pet.name, "Rabies", today
        )
        password = await notification_service.notify_password_changed(
            pet_owner.id, pet_owner.email
        )
        alert = await notification_service.notify_system_alert(
            pet_owner.id, "Outage", "Back soon", priority=NotificationPriority.LOW
        )

        assert vaccination.priority == NotificationPriority.HIGH
        assert password.priority == NotificationPriority.URGENT
        assert "owner@example.com" in password.message
        assert alert.priority == NotificationPriority.LOW
        assert alert.title == "Outage"

    @pytest.mark.asyncio
    async def test_related_entities(self, notification_service, pet_owner, pet, today):
        appointment_id = uuid.uuid4()
        cancelled = await notification_service.notify_appointment_cancelled(
            pet_owner.id, appointment_id, pet.name, "Dr. Smith", today
        )
        rescheduled = await notification_service.notify_appointment_rescheduled(
            pet_owner.id, appointment_id, pet.name, today, today + timedelta(days=2)
        )
        medication = await notification_service.notify_medication_reminder(
            pet_owner.id, uuid.uuid4(), pet.name, "Carprofen"
        )
        update = await notification_service.notify_medical_update(
            pet_owner.id, pet.id, pet.name, "Dr. Smith"
        )

        assert cancelled.related_entity_id == appointment_id
        assert "with Dr. Smith" in cancelled.message
        assert rescheduled.type == NotificationType.APPOINTMENT_RESCHEDULED
        assert medication.related_entity_type == RelatedEntityType.MEDICATION
        assert update.related_entity_type == RelatedEntityType.PET
        assert update.related_entity_id == pet.id
        assert update.message.startswith("Dr. Smith has updated Buddy's")

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self, notification_service, pet_owner):
        with patch.object(
            notification_service,
            "create_notification",
            side_effect=RuntimeError("database unavailable"),
        ):
            assert (
                await notification_service.notify_welcome(pet_owner.id, "Olivia")
                is None
            )

    @pytest.mark.asyncio
    async def test_failure_leaves_session_usable(
        self, strict_session, notification_settings
    ):
        owner = await UserFactory.create(strict_session, email="owner@example.com")
        service = NotificationService(
            strict_session,
            NotificationDispatcher([RecordingChannel()]),
            notification_settings,
        )

        # Unknown recipient violates the users foreign key on flush
        assert await service.notify_welcome(uuid.uuid4(), "Ghost") is None

        await UserFactory.create(strict_session, email="second@example.com")
        users = await strict_session.scalar(select(func.count()).select_from(User))
        assert users == 2
        assert await strict_session.get(User, owner.id) is owner
        assert await count_notifications(strict_session) == 0


@pytest_asyncio.fixture
async def strict_session():
    """Session on a database that enforces foreign keys."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    event.listen(engine.sync_engine, "connect", enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionManager(engine).get_session() as session:
        yield session

    await engine.dispose()


class TestReminderReplacement:
    """Withdrawing and replacing the pending reminder of one entity."""

    @pytest.mark.asyncio
    async def test_cancel_pending_reminders_skips_sent(
        self,
        async_session,
        notification_service,
        appointment_factory,
        pet,
        veterinarian,
        today,
    ):
        future = await appointment_factory.create(
            async_session, pet, veterinarian, date=today + timedelta(days=10)
        )
        imminent = await appointment_factory.create(
            async_session, pet, veterinarian, date=today, time=None
        )
        pending = await notification_service.create_appointment_reminder(future.id)
        sent = await notification_service.create_appointment_reminder(imminent.id)

        assert await notification_service.cancel_pending_reminders(
            future.id, NotificationType.APPOINTMENT_REMINDER
        ) == 1
        assert await notification_service.cancel_pending_reminders(
            imminent.id, NotificationType.APPOINTMENT_REMINDER
        ) == 0
        assert await notification_service.cancel_pending_reminders(
            future.id, NotificationType.VACCINATION_DUE
        ) == 0

        await async_session.refresh(pending)
        await async_session.refresh(sent)
        assert pending.is_deleted is True
        assert pending.deleted_at is not None
        assert sent.is_deleted is False

    @pytest.mark.asyncio
    async def test_schedule_replaces_pending_reminder(
        self,
        async_session,
        notification_service,
        appointment_factory,
        pet,
        veterinarian,
        today,
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, date=today + timedelta(days=10)
        )
        first = await notification_service.schedule_appointment_reminder(appointment.id)

        appointment.date = today + timedelta(days=20)
        await async_session.flush()
        second = await notification_service.schedule_appointment_reminder(appointment.id)

        assert second.id != first.id
        assert format_date(appointment.date) in second.message
        assert await count_notifications(
            async_session,
            related_entity_id=appointment.id,
            is_deleted=False,
        ) == 1

    @pytest.mark.asyncio
    async def test_schedule_vaccination_reminder_without_due_date(
        self, async_session, notification_service, vaccination_factory, pet, today
    ):
        vaccination = await vaccination_factory.create(
            async_session, pet, next_due=today + timedelta(days=30)
        )
        await notification_service.schedule_vaccination_reminder(vaccination.id)

        vaccination.next_due = None
        await async_session.flush()

        assert (
            await notification_service.schedule_vaccination_reminder(vaccination.id)
            is None
        )
        assert await count_notifications(
            async_session, related_entity_id=vaccination.id, is_deleted=False
        ) == 0

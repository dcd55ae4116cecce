"""
Pytest configuration and fixtures for petcare-core tests.

Every test gets its own in-memory SQLite database (aiosqlite with a static
pool so all sessions share one connection), factory classes for the core
entities, and a notification service whose only channel records deliveries.
"""

import uuid
from datetime import date, time, timedelta
from decimal import Decimal
from functools import lru_cache
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from petcare_core.database.session import SessionManager
from petcare_core.exceptions import NotificationDeliveryException
from petcare_core.models import (
    AccessLevel,
    Appointment,
    AppointmentStatus,
    Medication,
    Pet,
    PetGender,
    User,
    UserRole,
    Vaccination,
)
from petcare_core.models.base import Base
from petcare_core.notifications.channels import (
    NotificationChannel,
    NotificationDispatcher,
)
from petcare_core.notifications.service import NotificationService
from petcare_core.security.passwords import hash_password
from petcare_core.utils.config import NotificationSettings, SecuritySettings
from petcare_core.utils.datetime_utils import utc_today

TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEFAULT_PASSWORD = "Password123"


@lru_cache(maxsize=None)
def default_password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(DEFAULT_PASSWORD)


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_manager(test_engine: AsyncEngine) -> SessionManager:
    return SessionManager(test_engine)


@pytest_asyncio.fixture
async def async_session(
    session_manager: SessionManager,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for a single test. Services only flush, so nothing is committed
    unless a test commits explicitly.
    """
    async with session_manager.get_session() as session:
        yield session


class RecordingChannel(NotificationChannel):
    """Delivery channel that records what it was given, or fails on demand."""

    name = "recording"

    def __init__(self, settings: Optional[NotificationSettings] = None, fail=False):
        super().__init__(settings or NotificationSettings())
        self.fail = fail
        self.deliveries: List[uuid.UUID] = []

    @property
    def enabled(self) -> bool:
        return True

    async def deliver(self, session, notification, user) -> bool:
        if self.fail:
            raise NotificationDeliveryException(
                "Recording channel failure",
                channel=self.name,
                notification_id=notification.id,
            )
        self.deliveries.append(notification.id)
        return True


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(
        appointment_reminder_hours=24,
        vaccination_reminder_days=7,
        check_interval_minutes=15,
    )


@pytest.fixture
def security_settings() -> SecuritySettings:
    return SecuritySettings(jwt_secret="test-secret-key", jwt_expires_minutes=60)


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(recording_channel: RecordingChannel) -> NotificationDispatcher:
    return NotificationDispatcher([recording_channel])


@pytest.fixture
def notification_service(
    async_session: AsyncSession,
    dispatcher: NotificationDispatcher,
    notification_settings: NotificationSettings,
) -> NotificationService:
    return NotificationService(async_session, dispatcher, notification_settings)


# Factory classes for creating test entities


class UserFactory:
    """Factory for creating test User instances."""

    @staticmethod
    def build(**kwargs) -> User:
        """Build a User instance without saving to database."""
        defaults = {
            "email": f"user_{uuid.uuid4().hex[:8]}@example.com",
            "password_hash": default_password_hash(),
            "full_name": "Test Owner",
            "role": UserRole.PET_OWNER,
        }
        defaults.update(kwargs)
        return User(**defaults)

    @staticmethod
    async def create(session: AsyncSession, **kwargs) -> User:
        """Create and save a User instance to the database."""
        user = UserFactory.build(**kwargs)
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def create_veterinarian(session: AsyncSession, **kwargs) -> User:
        defaults = {
            "role": UserRole.VETERINARIAN,
            "full_name": "Dr. Test Vet",
            "specialization": "General Practice",
            "license_number": f"VET{uuid.uuid4().hex[:6].upper()}",
        }
        defaults.update(kwargs)
        return await UserFactory.create(session, **defaults)

    @staticmethod
    async def create_admin(
        session: AsyncSession, access_level: AccessLevel = AccessLevel.ELEVATED, **kwargs
    ) -> User:
        defaults = {
            "role": UserRole.ADMINISTRATOR,
            "access_level": access_level,
            "full_name": "Clinic Admin",
        }
        defaults.update(kwargs)
        return await UserFactory.create(session, **defaults)


class PetFactory:
    """Factory for creating test Pet instances."""

    @staticmethod
    def build(owner_id: Optional[uuid.UUID] = None, **kwargs) -> Pet:
        defaults = {
            "owner_id": owner_id or uuid.uuid4(),
            "name": "Buddy",
            "species": "dog",
            "breed": "Golden Retriever",
            "age": 4,
            "weight": Decimal("25.50"),
            "gender": PetGender.MALE,
        }
        defaults.update(kwargs)
        return Pet(**defaults)

    @staticmethod
    async def create(
        session: AsyncSession, owner: Optional[User] = None, **kwargs
    ) -> Pet:
        if owner is None:
            owner = await UserFactory.create(session)
        pet = PetFactory.build(owner_id=owner.id, **kwargs)
        session.add(pet)
        await session.flush()
        return pet


class AppointmentFactory:
    """Factory for creating test Appointment instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        pet: Pet,
        veterinarian: User,
        **kwargs,
    ) -> Appointment:
        defaults = {
            "pet_id": pet.id,
            "owner_id": pet.owner_id,
            "veterinarian_id": veterinarian.id,
            "appointment_type": "checkup",
            "date": utc_today() + timedelta(days=10),
            "time": time(10, 30),
            "reason": "Annual checkup",
            "status": AppointmentStatus.SCHEDULED,
        }
        defaults.update(kwargs)
        appointment = Appointment(**defaults)
        session.add(appointment)
        await session.flush()
        return appointment


class VaccinationFactory:
    """Factory for creating test Vaccination instances."""

    @staticmethod
    async def create(session: AsyncSession, pet: Pet, **kwargs) -> Vaccination:
        today = utc_today()
        defaults = {
            "pet_id": pet.id,
            "vaccine": "Rabies",
            "date": today - timedelta(days=365),
            "next_due": today + timedelta(days=30),
        }
        defaults.update(kwargs)
        vaccination = Vaccination(**defaults)
        session.add(vaccination)
        await session.flush()
        return vaccination


class MedicationFactory:
    @staticmethod
    async def create(session: AsyncSession, pet: Pet, **kwargs) -> Medication:
        defaults = {
            "pet_id": pet.id,
            "name": "Carprofen",
            "dosage": "75mg twice daily",
            "start_date": utc_today() - timedelta(days=2),
            "end_date": utc_today() + timedelta(days=12),
        }
        defaults.update(kwargs)
        medication = Medication(**defaults)
        session.add(medication)
        await session.flush()
        return medication


# Fixtures for factories


@pytest.fixture
def user_factory():
    return UserFactory


@pytest.fixture
def pet_factory():
    return PetFactory


@pytest.fixture
def appointment_factory():
    return AppointmentFactory


@pytest.fixture
def vaccination_factory():
    return VaccinationFactory


@pytest.fixture
def medication_factory():
    return MedicationFactory


# Ready-made actors


@pytest_asyncio.fixture
async def pet_owner(async_session: AsyncSession) -> User:
    return await UserFactory.create(
        async_session, email="owner@example.com", full_name="Olivia Owner"
    )


@pytest_asyncio.fixture
async def other_owner(async_session: AsyncSession) -> User:
    return await UserFactory.create(
        async_session, email="neighbour@example.com", full_name="Nick Neighbour"
    )


@pytest_asyncio.fixture
async def veterinarian(async_session: AsyncSession) -> User:
    return await UserFactory.create_veterinarian(
        async_session, email="vet@example.com", full_name="Dr. Smith"
    )


@pytest_asyncio.fixture
async def admin(async_session: AsyncSession) -> User:
    return await UserFactory.create_admin(
        async_session, email="admin@example.com", access_level=AccessLevel.ELEVATED
    )


@pytest_asyncio.fixture
async def pet(async_session: AsyncSession, pet_owner: User) -> Pet:
    return await PetFactory.create(async_session, owner=pet_owner, name="Buddy")


@pytest.fixture
def today() -> date:
    return utc_today()

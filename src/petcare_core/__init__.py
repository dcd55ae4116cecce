"""
PetCare Core

Backend library for the PetCare veterinary clinic platform: data models,
validation schemas, database utilities, CRUD services and the notification
dispatch and scheduling subsystem.

It includes:

- SQLAlchemy models for users, pets, appointments, medical and clinical
  records, vaccinations, medications and notifications
- Pydantic schemas for request/response validation and serialization
- Async SQLAlchemy engine and session management with Alembic migrations
- Password hashing, JWT bearer tokens and role/ownership access rules
- CRUD services that enforce ownership authorization
- Notification service with email and real-time push channels, and a
  periodic scheduler for appointment and vaccination reminders

Quick Start:
    >>> from petcare_core.database import SessionManager, create_engine
    >>> from petcare_core.notifications import NotificationScheduler
    >>> from petcare_core.utils import NotificationSettings

    >>> engine = create_engine("postgresql+asyncpg://localhost/petcare")
    >>> scheduler = NotificationScheduler(
    ...     SessionManager(engine), NotificationSettings.from_environment()
    ... )
    >>> result = await scheduler.run_once()

Requirements:
    - Python 3.11+
    - PostgreSQL 13+
    - SQLAlchemy 2.0+
    - Pydantic 2.5+
"""

__version__ = "0.1.0"
__author__ = "PetCare Platform Team"
__license__ = "MIT"

from . import database, exceptions, models, notifications, schemas, services, utils
from .database import SessionManager, create_engine, get_session, get_transaction
from .exceptions import DatabaseException, PetCareException, ValidationException
from .models import Appointment, Notification, Pet, User
from .notifications import NotificationScheduler, NotificationService

__all__ = [
    # Version and metadata
    "__version__",
    "__author__",
    "__license__",
    # Core modules
    "database",
    "exceptions",
    "models",
    "notifications",
    "schemas",
    "services",
    "utils",
    # Convenience imports
    "create_engine",
    "SessionManager",
    "get_session",
    "get_transaction",
    "PetCareException",
    "ValidationException",
    "DatabaseException",
    "User",
    "Pet",
    "Appointment",
    "Notification",
    "NotificationService",
    "NotificationScheduler",
]

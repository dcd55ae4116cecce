"""
Database models for the petcare-core package.

This module contains SQLAlchemy models for all core entities in the
clinic platform.
"""

# Base model will be imported by all other models
from .base import Base, BaseModel

# Core entity models
from .appointment import Appointment, AppointmentStatus
from .email_log import DeliveryStatus, EmailLog
from .medical_record import ClinicalRecord, MedicalRecord
from .medication import Medication
from .notification import (
    Notification,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from .password_reset_token import PasswordResetToken
from .pet import Pet, PetGender
from .user import AccessLevel, User, UserRole
from .vaccination import Vaccination

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "UserRole",
    "AccessLevel",
    "Pet",
    "PetGender",
    "Appointment",
    "AppointmentStatus",
    "MedicalRecord",
    "ClinicalRecord",
    "Vaccination",
    "Medication",
    "Notification",
    "NotificationType",
    "NotificationPriority",
    "RelatedEntityType",
    "PasswordResetToken",
    "EmailLog",
    "DeliveryStatus",
]

"""
Pydantic schemas for data validation and serialization.

This module contains Pydantic schemas for request/response validation
and data serialization across the PetCare backend.
"""

from .appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from .notification import (
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from .pet import PetCreate, PetResponse, PetUpdate
from .records import (
    ClinicalRecordCreate,
    ClinicalRecordResponse,
    ClinicalRecordUpdate,
    MedicalRecordCreate,
    MedicalRecordResponse,
    MedicalRecordUpdate,
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
    VaccinationCreate,
    VaccinationResponse,
    VaccinationUpdate,
)
from .user import (
    LoginRequest,
    PasswordChange,
    TokenResponse,
    UserCreate,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)

__all__ = [
    # User schemas
    "UserCreate",
    "UserUpdate",
    "UserRoleUpdate",
    "UserResponse",
    "PasswordChange",
    "LoginRequest",
    "TokenResponse",
    # Pet schemas
    "PetCreate",
    "PetUpdate",
    "PetResponse",
    # Appointment schemas
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentResponse",
    # Record schemas
    "MedicalRecordCreate",
    "MedicalRecordUpdate",
    "MedicalRecordResponse",
    "ClinicalRecordCreate",
    "ClinicalRecordUpdate",
    "ClinicalRecordResponse",
    "VaccinationCreate",
    "VaccinationUpdate",
    "VaccinationResponse",
    "MedicationCreate",
    "MedicationUpdate",
    "MedicationResponse",
    # Notification schemas
    "NotificationCreate",
    "NotificationResponse",
    "NotificationListResponse",
]

"""
CRUD services with ownership authorization.

Every service works inside the caller's ``AsyncSession`` on behalf of an
authenticated user and never commits; the caller owns the transaction.
"""

from .appointments import AppointmentService
from .base import BaseService, page_bounds
from .pets import PetService
from .records import (
    ClinicalRecordService,
    MedicalRecordService,
    MedicationService,
    PetRecordService,
    VaccinationService,
)
from .users import UserService

__all__ = [
    "BaseService",
    "page_bounds",
    "UserService",
    "PetService",
    "AppointmentService",
    "PetRecordService",
    "MedicalRecordService",
    "ClinicalRecordService",
    "VaccinationService",
    "MedicationService",
]

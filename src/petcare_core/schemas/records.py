"""
Pydantic schemas for per-pet records: medical history entries, clinical
visit notes, vaccinations and medications.
"""

import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.datetime_utils import utc_today

_RECORD_CONFIG = ConfigDict(
    from_attributes=True,
    use_enum_values=True,
    str_strip_whitespace=True,
)


def _not_in_future(v: Optional[dt.date]) -> Optional[dt.date]:
    if v is not None and v > utc_today():
        raise ValueError("Date cannot be in the future")
    return v


class _UpdateSchema(BaseModel):
    """Shared behaviour of partial update schemas."""

    model_config = _RECORD_CONFIG

    @model_validator(mode="after")
    def validate_at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class _RecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    pet_id: UUID
    created_at: dt.datetime
    updated_at: dt.datetime


# Medical records


class MedicalRecordCreate(BaseModel):
    model_config = _RECORD_CONFIG

    pet_id: UUID
    date: dt.date
    record_type: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    veterinarian_name: Optional[str] = Field(
        None, max_length=255, description="Defaults to the acting veterinarian"
    )

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: dt.date) -> dt.date:
        return _not_in_future(v)


class MedicalRecordUpdate(_UpdateSchema):
    date: Optional[dt.date] = None
    record_type: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: Optional[dt.date]) -> Optional[dt.date]:
        return _not_in_future(v)


class MedicalRecordResponse(_RecordResponse):
    date: dt.date
    record_type: str
    description: str
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    veterinarian_id: Optional[UUID] = None
    veterinarian_name: str


# Clinical records


class ClinicalRecordCreate(BaseModel):
    """Visit note; ``veterinarian_id`` is always the acting veterinarian."""

    model_config = _RECORD_CONFIG

    pet_id: UUID
    appointment_id: Optional[UUID] = None
    date: dt.date
    symptoms: str = Field(..., min_length=1)
    diagnosis: str = Field(..., min_length=1)
    treatment: str = Field(..., min_length=1)
    medications: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    follow_up_date: Optional[dt.date] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: dt.date) -> dt.date:
        return _not_in_future(v)

    @model_validator(mode="after")
    def validate_follow_up(self) -> "ClinicalRecordCreate":
        if self.follow_up_date is not None and self.follow_up_date < self.date:
            raise ValueError("Follow-up date cannot be before the visit date")
        return self


class ClinicalRecordUpdate(_UpdateSchema):
    symptoms: Optional[str] = Field(None, min_length=1)
    diagnosis: Optional[str] = Field(None, min_length=1)
    treatment: Optional[str] = Field(None, min_length=1)
    medications: Optional[List[str]] = None
    notes: Optional[str] = None
    follow_up_date: Optional[dt.date] = None


class ClinicalRecordResponse(_RecordResponse):
    appointment_id: Optional[UUID] = None
    veterinarian_id: UUID
    date: dt.date
    symptoms: str
    diagnosis: str
    treatment: str
    medications: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    follow_up_date: Optional[dt.date] = None

    @field_validator("medications", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


# Vaccinations


class VaccinationCreate(BaseModel):
    model_config = _RECORD_CONFIG

    pet_id: UUID
    vaccine: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    next_due: Optional[dt.date] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: dt.date) -> dt.date:
        return _not_in_future(v)

    @model_validator(mode="after")
    def validate_next_due(self) -> "VaccinationCreate":
        if self.next_due is not None and self.next_due < self.date:
            raise ValueError("Next due date cannot be before the vaccination date")
        return self


class VaccinationUpdate(_UpdateSchema):
    vaccine: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    next_due: Optional[dt.date] = None


class VaccinationResponse(_RecordResponse):
    vaccine: str
    date: dt.date
    next_due: Optional[dt.date] = None
    administered_by: Optional[UUID] = None


# Medications


class MedicationCreate(BaseModel):
    model_config = _RECORD_CONFIG

    pet_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=255)
    start_date: dt.date
    end_date: Optional[dt.date] = None
    active: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "MedicationCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class MedicationUpdate(_UpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, min_length=1, max_length=255)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    active: Optional[bool] = None


class MedicationResponse(_RecordResponse):
    name: str
    dosage: str
    start_date: dt.date
    end_date: Optional[dt.date] = None
    prescribed_by: Optional[UUID] = None
    active: bool

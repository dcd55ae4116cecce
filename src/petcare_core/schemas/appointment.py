"""
Appointment Pydantic schemas for API validation and serialization.
"""

import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.appointment import AppointmentStatus
from ..utils.datetime_utils import utc_today

MAX_BOOKING_DAYS = 730


def _validate_booking_date(v: dt.date) -> dt.date:
    today = utc_today()
    if v < today:
        raise ValueError("Appointment cannot be scheduled in the past")
    if v > today + dt.timedelta(days=MAX_BOOKING_DAYS):
        raise ValueError("Appointment cannot be scheduled more than 2 years in advance")
    return v


class AppointmentBase(BaseModel):
    """Base Appointment schema with common fields."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    appointment_type: str = Field(
        ..., description="Checkup, vaccination, surgery...", min_length=1, max_length=100
    )
    date: dt.date = Field(..., description="Calendar date of the appointment")
    time: Optional[dt.time] = Field(None, description="Time of day (UTC)")
    reason: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("reason", "notes")
    @classmethod
    def validate_text_fields(cls, v: Optional[str]) -> Optional[str]:
        """Blank text becomes None."""
        if v is not None and not v.strip():
            return None
        return v


class AppointmentCreate(AppointmentBase):
    """
    Schema for booking an appointment.

    ``owner_id`` is taken from the pet; it is accepted here only so staff
    can book on behalf of an owner and is verified against the pet.
    """

    pet_id: UUID = Field(..., description="Pet being seen")
    veterinarian_id: UUID = Field(..., description="Veterinarian seeing the pet")
    owner_id: Optional[UUID] = Field(None, description="Owner of the pet")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: dt.date) -> dt.date:
        return _validate_booking_date(v)


class AppointmentUpdate(BaseModel):
    """Schema for updating an appointment; a new date reschedules it."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    appointment_type: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    reason: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000)
    status: Optional[AppointmentStatus] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: Optional[dt.date]) -> Optional[dt.date]:
        if v is None:
            return v
        return _validate_booking_date(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self) -> "AppointmentUpdate":
        """Ensure at least one field is provided for update."""
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class AppointmentResponse(BaseModel):
    """Schema for appointment response data."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    pet_id: UUID
    owner_id: UUID
    veterinarian_id: UUID
    appointment_type: str
    date: dt.date
    time: Optional[dt.time] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    created_at: dt.datetime
    updated_at: dt.datetime

"""
Appointment model for the petcare-core package.

An appointment books a pet with a veterinarian on a calendar date and an
optional time of day. Reminders are derived from ``date`` and ``time``.
"""

import datetime as dt
import enum
import uuid
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.datetime_utils import combine_utc
from .base import BaseModel, enum_column


class AppointmentStatus(str, enum.Enum):
    """Enumeration of appointment statuses."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Appointment(BaseModel):
    """
    Appointment between a pet (and its owner) and a veterinarian.
    """

    __tablename__ = "appointments"

    def __init__(self, **kwargs):
        """Initialize Appointment with default values."""
        if "status" not in kwargs:
            kwargs["status"] = AppointmentStatus.SCHEDULED
        super().__init__(**kwargs)

    pet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    veterinarian_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    appointment_type: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="Checkup, vaccination, surgery..."
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)

    time: Mapped[Optional[dt.time]] = mapped_column(Time, nullable=True)

    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus, "appointment_status"),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
        index=True,
    )

    __table_args__ = (
        Index("idx_appointments_status_date", "status", "date"),
        Index("idx_appointments_vet_date", "veterinarian_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, pet_id={self.pet_id}, "
            f"date={self.date}, status='{AppointmentStatus(self.status).value}')>"
        )

    @property
    def starts_at(self) -> dt.datetime:
        """Start of the appointment in UTC; a missing time means midnight."""
        return combine_utc(self.date, self.time)

    def is_scheduled(self) -> bool:
        return self.status == AppointmentStatus.SCHEDULED and not self.is_deleted

    def can_be_cancelled(self) -> bool:
        return self.is_scheduled()

    def can_be_rescheduled(self) -> bool:
        return self.is_scheduled()

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Cancel the appointment.

        Raises:
            ValueError: If the appointment is not scheduled
        """
        if not self.can_be_cancelled():
            raise ValueError(
                f"Cannot cancel appointment with status {AppointmentStatus(self.status).value}"
            )
        self.status = AppointmentStatus.CANCELLED
        if reason:
            note = f"Cancelled: {reason}"
            self.notes = f"{self.notes}\n{note}" if self.notes else note

    def reschedule(self, new_date: dt.date, new_time: Optional[dt.time] = None) -> None:
        """
        Move the appointment to a new date (and optionally time).

        Raises:
            ValueError: If the appointment is not scheduled
        """
        if not self.can_be_rescheduled():
            raise ValueError(
                f"Cannot reschedule appointment with status {AppointmentStatus(self.status).value}"
            )
        self.date = new_date
        if new_time is not None:
            self.time = new_time

    def complete(self) -> None:
        """
        Mark the appointment as completed.

        Raises:
            ValueError: If the appointment is not scheduled
        """
        if not self.is_scheduled():
            raise ValueError(
                f"Cannot complete appointment with status {AppointmentStatus(self.status).value}"
            )
        self.status = AppointmentStatus.COMPLETED

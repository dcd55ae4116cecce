"""
Medical and clinical record models.

``MedicalRecord`` is a general history entry (exam, surgery, lab result).
``ClinicalRecord`` is a veterinarian's visit note, optionally tied to an
appointment.
"""

import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..database.types import JSONType
from .base import BaseModel


class MedicalRecord(BaseModel):
    """Entry in a pet's medical history."""

    __tablename__ = "medical_records"

    pet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    record_type: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    treatment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    veterinarian_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )

    veterinarian_name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (Index("idx_medical_records_pet_date", "pet_id", "date"),)


class ClinicalRecord(BaseModel):
    """Clinical visit note written by a veterinarian."""

    __tablename__ = "clinical_records"

    def __init__(self, **kwargs):
        if kwargs.get("medications") is None:
            kwargs["medications"] = []
        super().__init__(**kwargs)

    pet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True
    )

    appointment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("appointments.id"), nullable=True
    )

    veterinarian_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    symptoms: Mapped[str] = mapped_column(Text, nullable=False)

    diagnosis: Mapped[str] = mapped_column(Text, nullable=False)

    treatment: Mapped[str] = mapped_column(Text, nullable=False)

    medications: Mapped[Optional[List[str]]] = mapped_column(
        JSONType, nullable=True, comment="Names of prescribed medications"
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    follow_up_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    def needs_follow_up(self, today: dt.date) -> bool:
        return self.follow_up_date is not None and self.follow_up_date >= today

"""
Medication model for the petcare-core package.
"""

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, String, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Medication(BaseModel):
    """Prescribed medication course for a pet."""

    __tablename__ = "medications"

    def __init__(self, **kwargs):
        if "active" not in kwargs:
            kwargs["active"] = True
        super().__init__(**kwargs)

    pet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    dosage: Mapped[str] = mapped_column(String(255), nullable=False)

    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    prescribed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )

    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="check_medication_end_after_start",
        ),
    )

    def __repr__(self) -> str:
        return f"<Medication(id={self.id}, name='{self.name}', active={self.active})>"

    def is_current(self, today: dt.date) -> bool:
        """Active and within its start/end dates on ``today``."""
        if not self.active or self.is_deleted:
            return False
        if today < self.start_date:
            return False
        return self.end_date is None or today <= self.end_date

    def discontinue(self, on: Optional[dt.date] = None) -> None:
        self.active = False
        if on is not None:
            self.end_date = on

"""
Vaccination model for the petcare-core package.
"""

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Vaccination(BaseModel):
    """
    Administered vaccine with an optional booster due date.

    ``next_due`` drives the vaccination reminder scan.
    """

    __tablename__ = "vaccinations"

    pet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True
    )

    vaccine: Mapped[str] = mapped_column(String(255), nullable=False)

    date: Mapped[dt.date] = mapped_column(
        Date, nullable=False, comment="Date the vaccine was administered"
    )

    next_due: Mapped[Optional[dt.date]] = mapped_column(
        Date, nullable=True, index=True, comment="Date the next dose is due"
    )

    administered_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "next_due IS NULL OR next_due >= date",
            name="check_vaccination_next_due_after_date",
        ),
        Index("idx_vaccinations_pet_vaccine", "pet_id", "vaccine"),
    )

    def __repr__(self) -> str:
        return f"<Vaccination(id={self.id}, vaccine='{self.vaccine}', next_due={self.next_due})>"

    def is_due_within(self, today: dt.date, days: int) -> bool:
        """Check whether the next dose falls in ``[today, today + days]``."""
        if self.next_due is None:
            return False
        return today <= self.next_due <= today + dt.timedelta(days=days)

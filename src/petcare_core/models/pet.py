"""
Pet model for the petcare-core package.

This module contains the Pet SQLAlchemy model with the animal's biological
attributes and its owner reference.
"""

import enum
import uuid
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..database.types import JSONType
from .base import BaseModel, enum_column


class PetGender(str, enum.Enum):
    """Enumeration of pet genders."""

    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class Pet(BaseModel):
    """
    Pet owned by a pet-owner account.

    ``microchip_id`` is unique across all pets when present.
    """

    __tablename__ = "pets"

    def __init__(self, **kwargs: Any) -> None:
        """Initialize Pet with default values."""
        if "gender" not in kwargs or kwargs["gender"] is None:
            kwargs["gender"] = PetGender.UNKNOWN
        if "allergies" not in kwargs or kwargs["allergies"] is None:
            kwargs["allergies"] = []

        super().__init__(**kwargs)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="UUID of the pet's owner",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    species: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True, comment="Pet's species"
    )

    breed: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    age: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="Age in years"
    )

    weight: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True, comment="Weight in kilograms"
    )

    color: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    gender: Mapped[PetGender] = mapped_column(
        enum_column(PetGender, "pet_gender"),
        nullable=False,
        default=PetGender.UNKNOWN,
    )

    microchip_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, comment="Microchip identification number"
    )

    allergies: Mapped[Optional[List[str]]] = mapped_column(
        JSONType, nullable=True, comment="List of known allergies"
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("microchip_id", name="uq_pets_microchip_id"),
        CheckConstraint("age IS NULL OR age >= 0", name="check_pet_age_non_negative"),
        CheckConstraint(
            "weight IS NULL OR weight > 0", name="check_pet_weight_positive"
        ),
        Index("idx_pets_owner_active", "owner_id", "is_deleted"),
    )

    def __repr__(self) -> str:
        return f"<Pet(id={self.id}, name='{self.name}', species='{self.species}', owner_id={self.owner_id})>"

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id

    def add_allergy(self, allergen: str) -> None:
        """Record an allergy once; the list is reassigned so the change is tracked."""
        allergies = list(self.allergies or [])
        if allergen not in allergies:
            allergies.append(allergen)
        self.allergies = allergies

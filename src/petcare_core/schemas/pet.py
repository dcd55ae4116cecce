"""
Pet Pydantic schemas for API validation and serialization.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.pet import PetGender


def _normalize_gender(v):
    """Accept ``Male``/``Female`` as well as lower-case values."""
    if isinstance(v, str):
        return v.lower()
    return v


def _clean_microchip_id(v: Optional[str]) -> Optional[str]:
    """Microchip IDs are 9 to 15 alphanumeric characters."""
    if v is None or v == "":
        return None
    cleaned = v.replace(" ", "").replace("-", "").upper()
    if not re.match(r"^[A-Z0-9]{9,15}$", cleaned):
        raise ValueError("Microchip ID must be 9-15 alphanumeric characters")
    return cleaned


def _dedupe_allergies(v: List[str]) -> List[str]:
    """Drop blanks and duplicates while keeping order."""
    seen: List[str] = []
    for allergy in v:
        allergy = allergy.strip()
        if allergy and allergy not in seen:
            seen.append(allergy)
    return seen


class PetBase(BaseModel):
    """Base Pet schema with common fields."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    name: str = Field(..., description="Pet's name", min_length=1, max_length=255)
    species: str = Field(..., description="Pet's species", min_length=1, max_length=100)
    breed: Optional[str] = Field(None, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=100, description="Age in years")
    weight: Optional[Decimal] = Field(
        None, gt=0, le=1000, decimal_places=2, description="Weight in kilograms"
    )
    color: Optional[str] = Field(None, max_length=100)
    gender: PetGender = Field(PetGender.UNKNOWN, description="Pet's gender")
    microchip_id: Optional[str] = Field(None, max_length=100)
    allergies: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("species")
    @classmethod
    def normalize_species(cls, v: str) -> str:
        return v.lower()

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        return _normalize_gender(v)

    @field_validator("microchip_id")
    @classmethod
    def validate_microchip_id(cls, v: Optional[str]) -> Optional[str]:
        return _clean_microchip_id(v)

    @field_validator("allergies")
    @classmethod
    def validate_allergies(cls, v: List[str]) -> List[str]:
        return _dedupe_allergies(v)


class PetCreate(PetBase):
    """
    Schema for creating a new pet.

    ``owner_id`` is only honoured for staff; pet owners always create pets
    for themselves.
    """

    owner_id: Optional[UUID] = Field(None, description="Owner of the pet")


class PetUpdate(BaseModel):
    """Schema for updating an existing pet."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    species: Optional[str] = Field(None, min_length=1, max_length=100)
    breed: Optional[str] = Field(None, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=100)
    weight: Optional[Decimal] = Field(None, gt=0, le=1000, decimal_places=2)
    color: Optional[str] = Field(None, max_length=100)
    gender: Optional[PetGender] = None
    microchip_id: Optional[str] = Field(None, max_length=100)
    allergies: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("species")
    @classmethod
    def normalize_species(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        return _normalize_gender(v)

    @field_validator("microchip_id")
    @classmethod
    def validate_microchip_id(cls, v: Optional[str]) -> Optional[str]:
        return _clean_microchip_id(v)

    @field_validator("allergies")
    @classmethod
    def validate_allergies(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return _dedupe_allergies(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self) -> "PetUpdate":
        """Ensure at least one field is provided for update."""
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class PetResponse(BaseModel):
    """Schema for pet response data."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: UUID
    owner_id: UUID
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[int] = None
    weight: Optional[Decimal] = None
    color: Optional[str] = None
    gender: PetGender
    microchip_id: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("allergies", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []

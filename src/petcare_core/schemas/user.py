"""
User Pydantic schemas for API validation and serialization.

This module contains Pydantic schemas for User model validation,
including registration, profile update, password change and response schemas.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from ..models.user import AccessLevel, UserRole

MIN_PASSWORD_LENGTH = 8


def _validate_password_strength(v: str) -> str:
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not re.search(r"[A-Za-z]", v) or not re.search(r"\d", v):
        raise ValueError("Password must contain both letters and numbers")
    return v


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v

    digits_only = re.sub(r"\D", "", v)
    if len(digits_only) < 7 or len(digits_only) > 15:
        raise ValueError("Phone number must be between 7 and 15 digits")
    return v


class UserBase(BaseModel):
    """Base User schema with common fields."""

    model_config = ConfigDict(
        from_attributes=True,  # Can create from SQLAlchemy models
        use_enum_values=True,  # Serialize enums as values
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    email: EmailStr = Field(..., description="User's email address", max_length=255)
    full_name: str = Field(
        ..., description="User's full name", min_length=1, max_length=255
    )
    phone: Optional[str] = Field(None, description="User's phone number", max_length=50)
    address: Optional[str] = Field(None, description="Postal address", max_length=1000)
    email_notifications: bool = Field(
        True, description="Whether user wants to receive email notifications"
    )

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        """Normalize email to lower case."""
        if ".." in v:
            raise ValueError("Email cannot contain consecutive dots")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        """Validate phone number digits."""
        return _validate_phone(v)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return " ".join(v.split())


class UserCreate(UserBase):
    """Schema for registering a new user."""

    password: str = Field(..., description="Plain-text password", max_length=128)
    role: UserRole = Field(UserRole.PET_OWNER, description="User's role")
    access_level: Optional[AccessLevel] = Field(
        None, description="Administrator access level"
    )
    specialization: Optional[str] = Field(None, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)

    @model_validator(mode="after")
    def validate_role_fields(self) -> "UserCreate":
        """Access levels belong to administrators only."""
        if self.access_level is not None and self.role != UserRole.ADMINISTRATOR.value:
            raise ValueError("Only administrators can have an access level")
        return self


class UserUpdate(BaseModel):
    """Schema for updating an existing user's profile."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=1000)
    email_notifications: Optional[bool] = None
    specialization: Optional[str] = Field(None, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self) -> "UserUpdate":
        """Ensure at least one field is provided for update."""
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class UserRoleUpdate(BaseModel):
    """Schema for changing a user's role or access level (admin only)."""

    model_config = ConfigDict(use_enum_values=True)

    role: UserRole = Field(..., description="New user role")
    access_level: Optional[AccessLevel] = Field(None, description="New access level")


class PasswordChange(BaseModel):
    """Schema for changing the current user's password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _validate_password_strength(v)

    @model_validator(mode="after")
    def validate_passwords_differ(self) -> "PasswordChange":
        if self.current_password == self.new_password:
            raise ValueError("New password must differ from the current password")
        return self


class LoginRequest(BaseModel):
    """Credentials submitted to authenticate."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(BaseModel):
    """Schema for user response data; never includes the password hash."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )

    id: UUID = Field(..., description="User's unique identifier")
    email: str = Field(..., description="User's email address")
    full_name: str = Field(..., description="User's full name")
    role: UserRole = Field(..., description="User's role in the platform")
    access_level: Optional[AccessLevel] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    email_notifications: bool = Field(..., description="Email notification preference")
    created_at: datetime = Field(..., description="Account creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TokenResponse(BaseModel):
    """Bearer token issued after a successful login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Lifetime in seconds")
    user: UserResponse

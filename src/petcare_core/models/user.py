"""
User model for the petcare-core package.

Users are pet owners, veterinarians or administrators. Administrators carry
an access level that gates destructive operations on other accounts.
"""

import enum
from typing import Optional

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, enum_column


class UserRole(str, enum.Enum):
    """Enumeration of user roles in the clinic platform."""

    PET_OWNER = "pet_owner"
    VETERINARIAN = "veterinarian"
    ADMINISTRATOR = "administrator"


class AccessLevel(str, enum.Enum):
    """Administrator access levels, lowest first."""

    STANDARD = "standard"
    ELEVATED = "elevated"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return list(AccessLevel).index(self)


class User(BaseModel):
    """
    User account with credentials, role and notification preferences.
    """

    __tablename__ = "users"

    def __init__(self, **kwargs):
        """Initialize User with default values."""
        if "role" not in kwargs:
            kwargs["role"] = UserRole.PET_OWNER
        if "email_notifications" not in kwargs:
            kwargs["email_notifications"] = True
        if kwargs.get("email"):
            kwargs["email"] = kwargs["email"].strip().lower()

        super().__init__(**kwargs)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="User's email address, stored lower-cased",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the user's password",
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role"),
        nullable=False,
        default=UserRole.PET_OWNER,
        comment="User's role in the platform",
    )

    access_level: Mapped[Optional[AccessLevel]] = mapped_column(
        enum_column(AccessLevel, "access_level"),
        nullable=True,
        comment="Administrator access level; unused for other roles",
    )

    # Veterinarian profile
    specialization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    email_notifications: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether user wants to receive email notifications",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("idx_users_role", "role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{UserRole(self.role).value}')>"

    @property
    def display_name(self) -> str:
        """Get a display-friendly name for the user."""
        return self.full_name or self.email.split("@")[0]

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    def is_pet_owner(self) -> bool:
        return self.role == UserRole.PET_OWNER

    def is_veterinarian(self) -> bool:
        return self.role == UserRole.VETERINARIAN

    def is_administrator(self) -> bool:
        return self.role == UserRole.ADMINISTRATOR

    def has_access_level(self, required: AccessLevel) -> bool:
        """
        Check whether an administrator holds at least ``required``.

        Administrators without an explicit level are treated as ``standard``.
        Non-administrators never hold an access level.
        """
        if not self.is_administrator():
            return False
        level = AccessLevel(self.access_level or AccessLevel.STANDARD)
        return level.rank >= AccessLevel(required).rank

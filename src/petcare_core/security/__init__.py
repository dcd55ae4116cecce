"""
Authentication and authorization helpers.

This module provides functionality for:
- Password hashing and verification (bcrypt via passlib)
- JWT bearer token creation and verification (python-jose)
- Role, admin-level and ownership checks used by the services
"""

from .access import (
    STAFF_ROLES,
    can_access_appointment,
    can_access_pet,
    ensure_appointment_access,
    ensure_clinical_writer,
    ensure_pet_access,
    has_role,
    is_staff,
    require_admin_level,
    require_role,
)
from .passwords import hash_password, needs_rehash, pwd_context, verify_password
from .tokens import (
    authenticate_bearer,
    create_access_token,
    decode_access_token,
    extract_bearer_token,
)

__all__ = [
    # Passwords
    "pwd_context",
    "hash_password",
    "verify_password",
    "needs_rehash",
    # Tokens
    "create_access_token",
    "decode_access_token",
    "extract_bearer_token",
    "authenticate_bearer",
    # Access rules
    "STAFF_ROLES",
    "has_role",
    "is_staff",
    "require_role",
    "require_admin_level",
    "can_access_pet",
    "ensure_pet_access",
    "can_access_appointment",
    "ensure_appointment_access",
    "ensure_clinical_writer",
]

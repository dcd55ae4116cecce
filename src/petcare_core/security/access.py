"""
Role and ownership checks shared by the services.

Administrators may do everything; destructive operations on other users
need an ``elevated`` access level or above. Veterinarians read every pet and
write clinical data. Pet owners only reach their own pets and appointments.
"""

from typing import Union

from ..exceptions import AuthorizationException
from ..models.appointment import Appointment
from ..models.pet import Pet
from ..models.user import AccessLevel, User, UserRole

STAFF_ROLES = (UserRole.VETERINARIAN, UserRole.ADMINISTRATOR)


def has_role(user: User, *roles: Union[UserRole, str]) -> bool:
    return UserRole(user.role) in {UserRole(role) for role in roles}


def require_role(user: User, *roles: Union[UserRole, str]) -> None:
    """
    Raises:
        AuthorizationException: If ``user`` has none of ``roles``
    """
    if not has_role(user, *roles):
        raise AuthorizationException(
            required=",".join(UserRole(role).value for role in roles)
        )


def require_admin_level(
    user: User, level: Union[AccessLevel, str] = AccessLevel.STANDARD
) -> None:
    """
    Raises:
        AuthorizationException: If ``user`` is not an administrator holding
            at least ``level``
    """
    if not user.is_administrator():
        raise AuthorizationException(
            "Administrator access required", required=UserRole.ADMINISTRATOR.value
        )
    if not user.has_access_level(AccessLevel(level)):
        raise AuthorizationException(
            "Insufficient admin privileges", required=AccessLevel(level).value
        )


def is_staff(user: User) -> bool:
    return has_role(user, *STAFF_ROLES)


def can_access_pet(user: User, pet: Pet, write: bool = False) -> bool:
    """
    Reads: staff or the owner. Writes to the pet profile: administrators or
    the owner.
    """
    if user.is_administrator():
        return True
    if pet.owner_id == user.id:
        return True
    return not write and user.is_veterinarian()


def ensure_pet_access(user: User, pet: Pet, write: bool = False) -> None:
    """
    Raises:
        AuthorizationException: If ``user`` may not access ``pet``
    """
    if not can_access_pet(user, pet, write=write):
        raise AuthorizationException("Access denied")


def can_access_appointment(user: User, appointment: Appointment) -> bool:
    """Administrators, the booked veterinarian, or the owner."""
    if user.is_administrator():
        return True
    if user.is_veterinarian():
        return appointment.veterinarian_id == user.id
    return appointment.owner_id == user.id


def ensure_appointment_access(user: User, appointment: Appointment) -> None:
    if not can_access_appointment(user, appointment):
        raise AuthorizationException("Access denied")


def ensure_clinical_writer(user: User) -> None:
    """Only veterinarians and administrators write medical data."""
    require_role(user, *STAFF_ROLES)

"""
User accounts: registration, login, profile and administration.
"""

import uuid
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, select

from ..exceptions import (
    AuthenticationException,
    AuthorizationException,
    BusinessRuleException,
    DuplicateResourceException,
)
from ..models.user import AccessLevel, User, UserRole
from ..schemas.user import (
    LoginRequest,
    PasswordChange,
    TokenResponse,
    UserCreate,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)
from ..security.access import require_admin_level
from ..security.passwords import hash_password, verify_password
from ..security.tokens import create_access_token
from ..utils.config import SecuritySettings
from .base import DEFAULT_PAGE_SIZE, BaseService, page_bounds

INVALID_CREDENTIALS = "Invalid email or password"


class UserService(BaseService):
    """
    User operations.

    ``actor`` may be None for the unauthenticated flows (registration and
    login).
    """

    async def register(self, data: UserCreate) -> User:
        """
        Create an account and send the welcome notification.

        Pet owners and veterinarians may register themselves. Administrator
        accounts can only be created by an administrator with ``elevated``
        access or above.

        Raises:
            DuplicateResourceException: If the email is already registered
            AuthorizationException: If creating an administrator without rights
        """
        role = UserRole(data.role)
        access_level = None
        if role == UserRole.ADMINISTRATOR:
            if self.actor is None:
                raise AuthorizationException(
                    "Administrator access required", required=UserRole.ADMINISTRATOR.value
                )
            require_admin_level(self.actor, AccessLevel.ELEVATED)
            access_level = AccessLevel(data.access_level or AccessLevel.STANDARD)
            self._check_can_grant(access_level)

        if await self._email_taken(data.email):
            raise DuplicateResourceException(
                "User", "email", data.email, "User with this email already exists"
            )

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
            phone=data.phone,
            address=data.address,
            role=role,
            access_level=access_level,
            specialization=data.specialization,
            license_number=data.license_number,
            email_notifications=data.email_notifications,
            created_by=self.actor.id if self.actor else None,
        )
        self.session.add(user)
        await self._flush("User", "email", data.email)
        self.logger.info(f"Registered {role.value} account {user.id}")

        await self.notifications.notify_welcome(user.id, user.display_name)
        return user

    async def authenticate(self, credentials: LoginRequest) -> User:
        """
        Verify email and password.

        Raises:
            AuthenticationException: With the same message for unknown emails
                and wrong passwords
        """
        result = await self.session.execute(
            select(User).where(
                User.email == credentials.email.lower(),
                User.create_query_filter_active(),
            )
        )
        user = result.scalar_one_or_none()
        if user is None or not verify_password(credentials.password, user.password_hash):
            raise AuthenticationException(INVALID_CREDENTIALS)
        return user

    async def login(
        self, credentials: LoginRequest, settings: SecuritySettings
    ) -> TokenResponse:
        user = await self.authenticate(credentials)
        expires = timedelta(minutes=settings.jwt_expires_minutes)
        return TokenResponse(
            access_token=create_access_token(user, settings, expires),
            expires_in=int(expires.total_seconds()),
            user=UserResponse.model_validate(user),
        )

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Users read themselves; administrators read anyone."""
        if self.actor.id != user_id:
            require_admin_level(self.actor)
        return await self._get_active(User, user_id, "User")

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[User], int]:
        """
        Page through active users, newest first. Administrators only.

        Returns:
            The page of users and the total number of matches
        """
        require_admin_level(self.actor)
        conditions = [User.create_query_filter_active()]
        if role is not None:
            conditions.append(User.role == UserRole(role))

        limit, offset = page_bounds(page, limit)
        users = (
            await self.session.execute(
                select(User)
                .where(*conditions)
                .order_by(User.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
        ).scalars().all()
        total = (
            await self.session.execute(select(func.count(User.id)).where(*conditions))
        ).scalar_one()
        return list(users), total

    async def update_user(self, user_id: uuid.UUID, data: UserUpdate) -> User:
        """Update a profile. Users edit themselves; administrators edit anyone."""
        user = await self.get_user(user_id)
        user.update_fields(**data.model_dump(exclude_unset=True))
        user.updated_by = self.actor.id
        await self.session.flush()
        return user

    async def change_role(self, user_id: uuid.UUID, data: UserRoleUpdate) -> User:
        """
        Change a user's role and access level.

        Requires ``elevated`` access; granting ``super_admin`` requires
        ``super_admin``. Non-administrators never keep an access level.
        """
        require_admin_level(self.actor, AccessLevel.ELEVATED)
        user = await self._get_active(User, user_id, "User")
        if user.id == self.actor.id:
            raise BusinessRuleException(
                "Administrators cannot change their own role", rule_name="self_role_change"
            )

        role = UserRole(data.role)
        if role == UserRole.ADMINISTRATOR:
            access_level = AccessLevel(data.access_level or AccessLevel.STANDARD)
            self._check_can_grant(access_level)
        else:
            access_level = None

        user.role = role
        user.access_level = access_level
        user.updated_by = self.actor.id
        await self.session.flush()
        self.logger.info(f"User {user.id} role changed to {role.value} by {self.actor.id}")
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Soft delete a user. Requires ``elevated`` access."""
        require_admin_level(self.actor, AccessLevel.ELEVATED)
        user = await self._get_active(User, user_id, "User")
        if user.id == self.actor.id:
            raise BusinessRuleException(
                "Administrators cannot delete their own account", rule_name="self_delete"
            )
        user.soft_delete(deleted_by=self.actor.id)
        await self.session.flush()
        self.logger.info(f"User {user.id} deleted by {self.actor.id}")

    async def change_password(self, data: PasswordChange) -> None:
        """
        Change the actor's password and send the ``password_changed``
        notification.

        Raises:
            AuthenticationException: If the current password is wrong
        """
        if not verify_password(data.current_password, self.actor.password_hash):
            raise AuthenticationException("Current password is incorrect")

        self.actor.password_hash = hash_password(data.new_password)
        self.actor.updated_by = self.actor.id
        await self.session.flush()

        await self.notifications.notify_password_changed(self.actor.id, self.actor.email)

    async def _email_taken(self, email: str) -> bool:
        # Soft-deleted accounts still hold their address.
        result = await self.session.execute(
            select(User.id).where(User.email == email.lower())
        )
        return result.first() is not None

    def _check_can_grant(self, access_level: AccessLevel) -> None:
        if access_level == AccessLevel.SUPER_ADMIN:
            require_admin_level(self.actor, AccessLevel.SUPER_ADMIN)

"""
Shared plumbing for the CRUD services.
"""

import logging
import uuid
from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import DuplicateResourceException, NotFoundException
from ..models.base import BaseModel
from ..models.pet import Pet
from ..models.user import User
from ..notifications.service import NotificationService
from ..security.access import ensure_pet_access

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class BaseService:
    """
    Base class for services acting on behalf of a user.

    Args:
        session: Session shared with the caller; services flush but never commit
        actor: The authenticated user performing the operations
        notifications: Notification service; one bound to ``session`` is
            created when omitted
    """

    def __init__(
        self,
        session: AsyncSession,
        actor: Optional[User],
        notifications: Optional[NotificationService] = None,
    ) -> None:
        self.session = session
        self.actor = actor
        self.notifications = notifications or NotificationService(session)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _get_active(
        self, model: Type[ModelT], record_id: uuid.UUID, resource: str
    ) -> ModelT:
        """
        Load a non-deleted row by id.

        Raises:
            NotFoundException: If the row does not exist or is soft deleted
        """
        result = await self.session.execute(
            select(model).where(model.id == record_id, model.create_query_filter_active())
        )
        instance = result.scalar_one_or_none()
        if instance is None:
            raise NotFoundException(resource, record_id)
        return instance

    async def _get_pet(self, pet_id: uuid.UUID, write: bool = False) -> Pet:
        """Load a pet and check the actor may access it."""
        pet = await self._get_active(Pet, pet_id, "Pet")
        ensure_pet_access(self.actor, pet, write=write)
        return pet

    async def _flush(self, resource: str, field: str, value=None) -> None:
        """
        Flush pending changes, mapping a uniqueness violation to
        ``DuplicateResourceException``.
        """
        try:
            await self.session.flush()
        except IntegrityError as e:
            self.logger.warning(f"Integrity error writing {resource}: {e.orig}")
            raise DuplicateResourceException(resource, field, value)


def page_bounds(page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> tuple:
    """Return ``(limit, offset)`` for a 1-based page, capping the page size."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    page = max(1, page)
    return limit, (page - 1) * limit

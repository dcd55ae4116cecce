"""
Base model class for all SQLAlchemy models in the petcare-core package.

Every entity in the clinic backend inherits from ``BaseModel`` and gets:

- a UUID primary key
- ``created_at`` / ``updated_at`` audit timestamps (UTC)
- optional ``created_by`` / ``updated_by`` user references
- soft delete through ``is_deleted`` and ``deleted_at``

Example:
    >>> from petcare_core.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class Kennel(BaseModel):
    ...     __tablename__ = "kennels"
    ...     name: Mapped[str] = mapped_column(String(100))

    >>> kennel = Kennel(name="North wing")
    >>> kennel.soft_delete()
    >>> kennel.is_deleted
    True
"""

import enum
import uuid
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy import Boolean, DateTime, Enum, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from ..utils.datetime_utils import get_current_utc

# Type variable for model classes
T = TypeVar("T", bound="BaseModel")


def enum_column(enum_class: Type[enum.Enum], name: str) -> Enum:
    """
    Build an ``Enum`` column type that stores the member values.

    The stored strings match the values used by the API layer
    (``pet_owner``, ``appointment_reminder``...) rather than member names.
    """
    return Enum(
        enum_class,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """
    Base declarative class for all SQLAlchemy models.

    Attributes:
        type_annotation_map: Maps Python types to SQLAlchemy column types
    """

    type_annotation_map = {
        uuid.UUID: UUID(as_uuid=True),
    }


class BaseModel(Base):
    """
    Abstract base model class providing common functionality for all entities.

    Attributes:
        id (UUID): Primary key, automatically generated UUID4
        created_at (datetime): Timestamp when record was created (UTC)
        updated_at (datetime): Timestamp when record was last updated (UTC)
        created_by (UUID, optional): ID of user who created the record
        updated_by (UUID, optional): ID of user who last updated the record
        deleted_at (datetime, optional): Timestamp when record was soft deleted
        is_deleted (bool): Flag indicating if record is soft deleted

    Note:
        This is an abstract base class and cannot be instantiated directly.
        All concrete models must define a __tablename__ attribute.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Audit fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc,
        server_default=func.now(),
        onupdate=get_current_utc,
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )

    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )

    # Soft delete fields
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self, exclude_deleted: bool = True) -> Dict[str, Any]:
        """
        Convert model instance to a JSON-serializable dictionary.

        Dates and datetimes become ISO strings, UUIDs become strings and
        enum members become their values.

        Args:
            exclude_deleted: If True, returns empty dict for soft-deleted records.

        Returns:
            Dictionary with column names as keys and serialized values.
        """
        if exclude_deleted and self.is_deleted:
            return {}

        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date, time)):
                result[column.key] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.key] = str(value)
            elif isinstance(value, enum.Enum):
                result[column.key] = value.value
            else:
                result[column.key] = value
        return result

    def soft_delete(self, deleted_by: Optional[uuid.UUID] = None) -> None:
        """
        Mark the record as deleted without removing it from the database.

        Args:
            deleted_by: UUID of the user performing the deletion.

        Note:
            This method only modifies the instance. You must commit the
            transaction to persist changes to the database.
        """
        self.is_deleted = True
        self.deleted_at = get_current_utc()
        if deleted_by:
            self.updated_by = deleted_by

    def restore(self, restored_by: Optional[uuid.UUID] = None) -> None:
        """Restore a soft-deleted record to active status."""
        self.is_deleted = False
        self.deleted_at = None
        if restored_by:
            self.updated_by = restored_by

    @classmethod
    def get_table_name(cls) -> str:
        return cls.__tablename__

    @classmethod
    def create_query_filter_active(cls):
        """
        Create a filter expression for active (non-deleted) records.

        Example:
            >>> from sqlalchemy import select
            >>> stmt = select(Pet).where(Pet.create_query_filter_active())
        """
        return cls.is_deleted.is_(False)

    @classmethod
    def create_query_filter_deleted(cls):
        """Create a filter expression for soft-deleted records."""
        return cls.is_deleted.is_(True)

    def update_fields(self, **kwargs) -> None:
        """
        Update multiple fields on the model instance in a single operation.

        Raises:
            AttributeError: If any field name doesn't exist on the model.
        """
        for field, value in kwargs.items():
            if hasattr(self, field):
                setattr(self, field, value)
            else:
                raise AttributeError(
                    f"'{self.__class__.__name__}' has no attribute '{field}'"
                )

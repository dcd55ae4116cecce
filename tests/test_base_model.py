"""
Tests for the base model functionality.
"""

import uuid
from datetime import date, datetime, time

import pytest
from sqlalchemy import Date, String, Time, select
from sqlalchemy.orm import Mapped, mapped_column

from petcare_core.models import AppointmentStatus, Pet
from petcare_core.models.base import BaseModel, enum_column


class SampleRecord(BaseModel):
    """Concrete model for exercising BaseModel behaviour."""

    __tablename__ = "sample_records"

    label: Mapped[str] = mapped_column(String(50), default="sample")
    status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus, "sample_status"),
        default=AppointmentStatus.SCHEDULED,
    )
    day: Mapped[date] = mapped_column(Date, nullable=True)
    at: Mapped[time] = mapped_column(Time, nullable=True)


class TestBaseModel:
    """Test cases for BaseModel functionality."""

    def test_model_repr(self):
        """Test string representation of model."""
        model = SampleRecord()
        model.id = uuid.uuid4()

        repr_str = repr(model)
        assert "SampleRecord" in repr_str
        assert str(model.id) in repr_str

    def test_to_dict_serializes_values(self):
        model = SampleRecord(
            id=uuid.uuid4(),
            label="x",
            status=AppointmentStatus.COMPLETED,
            day=date(2024, 2, 1),
            at=time(9, 30),
            created_at=datetime(2024, 2, 1, 8, 0),
            is_deleted=False,
        )

        result = model.to_dict()

        assert isinstance(result["id"], str)
        assert result["status"] == "completed"
        assert result["day"] == "2024-02-01"
        assert result["at"] == "09:30:00"
        assert result["created_at"].startswith("2024-02-01T08:00")

    def test_to_dict_hides_soft_deleted(self):
        model = SampleRecord(id=uuid.uuid4(), is_deleted=False)
        model.soft_delete()

        assert model.to_dict() == {}
        assert model.to_dict(exclude_deleted=False)["is_deleted"] is True

    def test_soft_delete_and_restore(self):
        """Test soft delete functionality."""
        model = SampleRecord()
        user_id = uuid.uuid4()

        model.soft_delete(deleted_by=user_id)

        assert model.is_deleted is True
        assert model.deleted_at is not None
        assert model.updated_by == user_id

        model.restore()

        assert model.is_deleted is False
        assert model.deleted_at is None

    def test_update_fields(self):
        model = SampleRecord()
        model.update_fields(label="updated")
        assert model.label == "updated"

        with pytest.raises(AttributeError):
            model.update_fields(not_a_column="nope")

    def test_table_name(self):
        assert SampleRecord.get_table_name() == "sample_records"


class TestPersistedDefaults:
    """Defaults applied by the database layer."""

    @pytest.mark.asyncio
    async def test_defaults_on_flush(self, async_session):
        model = SampleRecord()
        async_session.add(model)
        await async_session.flush()

        assert isinstance(model.id, uuid.UUID)
        assert model.created_at is not None
        assert model.updated_at is not None
        assert model.is_deleted is False

    @pytest.mark.asyncio
    async def test_active_filter_excludes_soft_deleted(
        self, async_session, pet_factory, pet_owner
    ):
        kept = await pet_factory.create(async_session, owner=pet_owner, name="Kept")
        gone = await pet_factory.create(async_session, owner=pet_owner, name="Gone")
        gone.soft_delete()
        await async_session.flush()

        result = await async_session.execute(
            select(Pet).where(Pet.create_query_filter_active())
        )
        names = {pet.name for pet in result.scalars()}
        assert names == {kept.name}

        deleted = await async_session.execute(
            select(Pet).where(Pet.create_query_filter_deleted())
        )
        assert [pet.id for pet in deleted.scalars()] == [gone.id]

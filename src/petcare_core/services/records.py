"""
Per-pet records: medical history, clinical visits, vaccinations and
medications.

All four share one access model:

- pet owners read the records of their own pets,
- veterinarians read every record and create or update them,
- administrators additionally delete them.
"""

import uuid
from datetime import timedelta
from typing import Any, Dict, List, Type

from pydantic import BaseModel as Schema
from sqlalchemy import select

from ..exceptions import BusinessRuleException, NotFoundException
from ..models.appointment import Appointment
from ..models.base import BaseModel
from ..models.medical_record import ClinicalRecord, MedicalRecord
from ..models.medication import Medication
from ..models.notification import NotificationType
from ..models.pet import Pet
from ..models.user import UserRole
from ..models.vaccination import Vaccination
from ..security.access import ensure_clinical_writer, require_role
from ..utils.datetime_utils import utc_today
from .base import BaseService


class PetRecordService(BaseService):
    """
    CRUD for one kind of per-pet record.

    Subclasses set ``model`` and ``resource`` and may extend :meth:`_prepare`
    and the ``_after_create``, ``_after_update`` and ``_after_delete`` hooks.
    """

    model: Type[BaseModel]
    resource: str = "Record"

    async def list_for_pet(self, pet_id: uuid.UUID) -> List[BaseModel]:
        """Records of one pet, most recent first."""
        await self._get_pet(pet_id)
        stmt = (
            select(self.model)
            .where(self.model.pet_id == pet_id, self.model.create_query_filter_active())
            .order_by(self._order_column().desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def get_record(self, record_id: uuid.UUID) -> BaseModel:
        record = await self._get_active(self.model, record_id, self.resource)
        await self._get_pet(record.pet_id)
        return record

    async def create_record(self, data: Schema) -> BaseModel:
        ensure_clinical_writer(self.actor)
        pet = await self._get_active(Pet, data.pet_id, "Pet")

        fields = data.model_dump()
        fields = await self._prepare(pet, fields)
        record = self.model(created_by=self.actor.id, **fields)
        self.session.add(record)
        await self.session.flush()
        self.logger.info(f"Created {self.resource.lower()} {record.id} for pet {pet.id}")

        await self._after_create(pet, record)
        return record

    async def update_record(self, record_id: uuid.UUID, data: Schema) -> BaseModel:
        ensure_clinical_writer(self.actor)
        record = await self._get_active(self.model, record_id, self.resource)
        changes = data.model_dump(exclude_unset=True)
        self._validate_update(record, changes)
        changed = {k: v for k, v in changes.items() if getattr(record, k) != v}
        record.update_fields(**changes)
        record.updated_by = self.actor.id
        await self.session.flush()

        await self._after_update(record, changed)
        return record

    async def delete_record(self, record_id: uuid.UUID) -> None:
        require_role(self.actor, UserRole.ADMINISTRATOR)
        record = await self._get_active(self.model, record_id, self.resource)
        record.soft_delete(deleted_by=self.actor.id)
        await self.session.flush()
        await self._after_delete(record)

    def _order_column(self):
        return self.model.date

    async def _prepare(self, pet: Pet, fields: Dict[str, Any]) -> Dict[str, Any]:
        return fields

    async def _after_create(self, pet: Pet, record: BaseModel) -> None:
        pass

    async def _after_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        pass

    async def _after_delete(self, record: BaseModel) -> None:
        pass

    def _validate_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        pass


class MedicalRecordService(PetRecordService):
    model = MedicalRecord
    resource = "Medical record"

    async def _prepare(self, pet: Pet, fields: Dict[str, Any]) -> Dict[str, Any]:
        if not fields.get("veterinarian_name"):
            fields["veterinarian_name"] = self.actor.full_name
        if self.actor.is_veterinarian():
            fields["veterinarian_id"] = self.actor.id
        return fields


class ClinicalRecordService(PetRecordService):
    """Clinical visit notes; creating one tells the owner their records changed."""

    model = ClinicalRecord
    resource = "Clinical record"

    async def _prepare(self, pet: Pet, fields: Dict[str, Any]) -> Dict[str, Any]:
        appointment_id = fields.get("appointment_id")
        if appointment_id is not None:
            result = await self.session.execute(
                select(Appointment).where(
                    Appointment.id == appointment_id,
                    Appointment.create_query_filter_active(),
                )
            )
            appointment = result.scalar_one_or_none()
            if appointment is None:
                raise NotFoundException("Appointment", appointment_id)
            if appointment.pet_id != pet.id:
                raise BusinessRuleException(
                    "Appointment belongs to a different pet", rule_name="appointment_pet"
                )
        fields["veterinarian_id"] = self.actor.id
        return fields

    async def _after_create(self, pet: Pet, record: BaseModel) -> None:
        await self.notifications.notify_medical_update(
            pet.owner_id, pet.id, pet.name, self.actor.display_name
        )

    def _validate_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        follow_up = changes.get("follow_up_date")
        if follow_up is not None and follow_up < record.date:
            raise BusinessRuleException(
                "Follow-up date cannot be before the visit date", rule_name="follow_up_date"
            )


class VaccinationService(PetRecordService):
    """
    Vaccinations; a ``next_due`` date schedules the owner's reminder, and
    changing or deleting the vaccination replaces or withdraws it.
    """

    model = Vaccination
    resource = "Vaccination record"

    async def _prepare(self, pet: Pet, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields["administered_by"] = self.actor.id
        return fields

    async def _after_create(self, pet: Pet, record: BaseModel) -> None:
        if record.next_due is not None:
            await self.notifications.schedule_vaccination_reminder(record.id)

    async def _after_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        if changes.keys() & {"next_due", "vaccine"}:
            await self.notifications.schedule_vaccination_reminder(record.id)

    async def _after_delete(self, record: BaseModel) -> None:
        await self.notifications.cancel_pending_reminders(
            record.id, NotificationType.VACCINATION_DUE
        )

    def _validate_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        given = changes.get("date", record.date)
        next_due = changes.get("next_due", record.next_due)
        if next_due is not None and next_due < given:
            raise BusinessRuleException(
                "Next due date cannot be before the vaccination date",
                rule_name="vaccination_next_due",
            )

    async def list_upcoming(self, days: int = 30) -> List[Vaccination]:
        """
        Vaccinations falling due in the next ``days`` days, soonest first.
        Pet owners only see their own pets.
        """
        today = utc_today()
        stmt = (
            select(Vaccination)
            .join(Pet, Pet.id == Vaccination.pet_id)
            .where(
                Vaccination.create_query_filter_active(),
                Pet.create_query_filter_active(),
                Vaccination.next_due.is_not(None),
                Vaccination.next_due >= today,
                Vaccination.next_due <= today + timedelta(days=days),
            )
            .order_by(Vaccination.next_due.asc())
        )
        if self.actor.is_pet_owner():
            stmt = stmt.where(Pet.owner_id == self.actor.id)
        return list((await self.session.execute(stmt)).scalars().all())


class MedicationService(PetRecordService):
    model = Medication
    resource = "Medication record"

    def _order_column(self):
        return Medication.start_date

    async def _prepare(self, pet: Pet, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields["prescribed_by"] = self.actor.id
        return fields

    def _validate_update(self, record: BaseModel, changes: Dict[str, Any]) -> None:
        start = changes.get("start_date", record.start_date)
        end = changes.get("end_date", record.end_date)
        if end is not None and end < start:
            raise BusinessRuleException(
                "End date cannot be before the start date", rule_name="medication_dates"
            )

    async def list_active(self) -> List[Medication]:
        """Active medications not past their end date; owners see their own pets."""
        today = utc_today()
        stmt = (
            select(Medication)
            .join(Pet, Pet.id == Medication.pet_id)
            .where(
                Medication.create_query_filter_active(),
                Pet.create_query_filter_active(),
                Medication.active.is_(True),
                (Medication.end_date.is_(None)) | (Medication.end_date >= today),
            )
            .order_by(Medication.start_date.desc())
        )
        if self.actor.is_pet_owner():
            stmt = stmt.where(Pet.owner_id == self.actor.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def deactivate(self, medication_id: uuid.UUID) -> Medication:
        ensure_clinical_writer(self.actor)
        medication = await self._get_active(Medication, medication_id, self.resource)
        medication.discontinue()
        medication.updated_by = self.actor.id
        await self.session.flush()
        return medication

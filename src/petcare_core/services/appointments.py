"""
Appointment booking and lifecycle.
"""

import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import select

from ..exceptions import AuthorizationException, BusinessRuleException
from ..models.appointment import Appointment, AppointmentStatus
from ..models.notification import NotificationType
from ..models.pet import Pet
from ..models.user import User, UserRole
from ..schemas.appointment import AppointmentCreate, AppointmentUpdate
from ..security.access import ensure_appointment_access, require_role
from .base import BaseService

# Fields each role may change on an existing appointment.
OWNER_FIELDS = {"date", "time", "reason", "notes", "status"}
VETERINARIAN_FIELDS = {"notes", "status"}


class AppointmentService(BaseService):
    """
    Appointment operations.

    Pet owners book, reschedule and cancel their own appointments.
    Veterinarians see and update the appointments booked with them.
    Administrators do everything.
    """

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """
        Book an appointment and create its reminder.

        Raises:
            AuthorizationException: If the actor may not book for this pet
            BusinessRuleException: If the veterinarian is not a veterinarian
                or the pet does not belong to the given owner
        """
        require_role(self.actor, UserRole.PET_OWNER, UserRole.ADMINISTRATOR)

        pet = await self._get_active(Pet, data.pet_id, "Pet")
        if self.actor.is_pet_owner() and pet.owner_id != self.actor.id:
            raise AuthorizationException("Pet not found or access denied")
        if data.owner_id is not None and data.owner_id != pet.owner_id:
            raise BusinessRuleException(
                "Pet does not belong to the given owner", rule_name="pet_ownership"
            )

        vet = await self._get_active(User, data.veterinarian_id, "Veterinarian")
        if not vet.is_veterinarian():
            raise BusinessRuleException(
                "Invalid veterinarian", rule_name="veterinarian_role"
            )

        appointment = Appointment(
            pet_id=pet.id,
            owner_id=pet.owner_id,
            veterinarian_id=vet.id,
            appointment_type=data.appointment_type,
            date=data.date,
            time=data.time,
            reason=data.reason,
            notes=data.notes,
            created_by=self.actor.id,
        )
        self.session.add(appointment)
        await self.session.flush()
        self.logger.info(f"Booked appointment {appointment.id} for pet {pet.id}")

        await self.notifications.schedule_appointment_reminder(appointment.id)
        return appointment

    async def get_appointment(self, appointment_id: uuid.UUID) -> Appointment:
        appointment = await self._get_active(Appointment, appointment_id, "Appointment")
        ensure_appointment_access(self.actor, appointment)
        return appointment

    async def list_appointments(
        self,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[dt.date] = None,
        pet_id: Optional[uuid.UUID] = None,
    ) -> List[Appointment]:
        """Appointments visible to the actor, latest first."""
        stmt = (
            select(Appointment)
            .join(Pet, Pet.id == Appointment.pet_id)
            .where(
                Appointment.create_query_filter_active(),
                Pet.create_query_filter_active(),
            )
        )
        if self.actor.is_pet_owner():
            stmt = stmt.where(Appointment.owner_id == self.actor.id)
        elif self.actor.is_veterinarian():
            stmt = stmt.where(Appointment.veterinarian_id == self.actor.id)

        if status is not None:
            stmt = stmt.where(Appointment.status == AppointmentStatus(status))
        if on_date is not None:
            stmt = stmt.where(Appointment.date == on_date)
        if pet_id is not None:
            stmt = stmt.where(Appointment.pet_id == pet_id)

        stmt = stmt.order_by(Appointment.date.desc(), Appointment.time.desc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def update_appointment(
        self, appointment_id: uuid.UUID, data: AppointmentUpdate
    ) -> Appointment:
        """
        Apply changes to an appointment.

        A status change to ``cancelled`` sends ``appointment_cancelled``; a new
        date sends ``appointment_rescheduled``. A new date or time replaces the
        pending reminder, and closing the appointment withdraws it.

        Raises:
            AuthorizationException: If the actor may not change these fields
            BusinessRuleException: If the appointment is no longer scheduled
        """
        appointment = await self.get_appointment(appointment_id)
        changes = data.model_dump(exclude_unset=True)
        self._check_fields(changes)

        old_date, old_time = appointment.date, appointment.time
        new_status = changes.pop("status", None)
        new_date = changes.pop("date", None)
        new_time = changes.pop("time", None)

        try:
            if new_date is not None or new_time is not None:
                appointment.reschedule(new_date or appointment.date, new_time)
            if new_status is not None:
                self._apply_status(appointment, AppointmentStatus(new_status))
        except ValueError as e:
            raise BusinessRuleException(str(e), rule_name="appointment_status")

        appointment.update_fields(**changes)
        appointment.updated_by = self.actor.id
        await self.session.flush()

        if new_status == AppointmentStatus.CANCELLED.value:
            await self._notify_cancelled(appointment)
        elif appointment.status != AppointmentStatus.SCHEDULED:
            await self._withdraw_reminders(appointment)
        else:
            if new_date is not None and new_date != old_date:
                await self._notify_rescheduled(appointment, old_date)
            if (appointment.date, appointment.time) != (old_date, old_time):
                await self.notifications.schedule_appointment_reminder(appointment.id)
        return appointment

    async def cancel_appointment(
        self, appointment_id: uuid.UUID, reason: Optional[str] = None
    ) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        try:
            appointment.cancel(reason)
        except ValueError as e:
            raise BusinessRuleException(str(e), rule_name="appointment_status")
        appointment.updated_by = self.actor.id
        await self.session.flush()
        await self._notify_cancelled(appointment)
        return appointment

    async def delete_appointment(self, appointment_id: uuid.UUID) -> None:
        require_role(self.actor, UserRole.ADMINISTRATOR)
        appointment = await self._get_active(Appointment, appointment_id, "Appointment")
        appointment.soft_delete(deleted_by=self.actor.id)
        await self.session.flush()
        await self._withdraw_reminders(appointment)

    def _check_fields(self, changes: dict) -> None:
        if self.actor.is_administrator():
            return
        allowed = OWNER_FIELDS if self.actor.is_pet_owner() else VETERINARIAN_FIELDS
        forbidden = set(changes) - allowed
        if forbidden:
            raise AuthorizationException(
                f"Cannot update fields: {', '.join(sorted(forbidden))}"
            )
        if (
            self.actor.is_pet_owner()
            and changes.get("status") not in (None, AppointmentStatus.CANCELLED.value)
        ):
            raise AuthorizationException("Pet owners can only cancel appointments")

    @staticmethod
    def _apply_status(appointment: Appointment, status: AppointmentStatus) -> None:
        if status == appointment.status:
            return
        if status == AppointmentStatus.CANCELLED:
            appointment.cancel()
        elif status == AppointmentStatus.COMPLETED:
            appointment.complete()
        else:
            raise ValueError("Appointments cannot return to scheduled")

    async def _names(self, appointment: Appointment) -> tuple:
        row = (
            await self.session.execute(
                select(Pet.name, User.full_name)
                .select_from(Appointment)
                .join(Pet, Pet.id == Appointment.pet_id)
                .join(User, User.id == Appointment.veterinarian_id)
                .where(Appointment.id == appointment.id)
            )
        ).one()
        return row[0], row[1]

    async def _withdraw_reminders(self, appointment: Appointment) -> None:
        await self.notifications.cancel_pending_reminders(
            appointment.id, NotificationType.APPOINTMENT_REMINDER
        )

    async def _notify_cancelled(self, appointment: Appointment) -> None:
        await self._withdraw_reminders(appointment)
        pet_name, vet_name = await self._names(appointment)
        await self.notifications.notify_appointment_cancelled(
            appointment.owner_id, appointment.id, pet_name, vet_name, appointment.date
        )

    async def _notify_rescheduled(
        self, appointment: Appointment, old_date: dt.date
    ) -> None:
        pet_name, _ = await self._names(appointment)
        await self.notifications.notify_appointment_rescheduled(
            appointment.owner_id, appointment.id, pet_name, old_date, appointment.date
        )

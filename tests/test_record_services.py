"""
Tests for the per-pet record services.
"""

import uuid
from datetime import timedelta

import pytest

from petcare_core.exceptions import (
    AuthorizationException,
    BusinessRuleException,
    NotFoundException,
)
from petcare_core.models import NotificationType
from petcare_core.schemas import (
    ClinicalRecordCreate,
    ClinicalRecordUpdate,
    MedicalRecordCreate,
    MedicationCreate,
    MedicationUpdate,
    VaccinationCreate,
    VaccinationUpdate,
)
from petcare_core.services import (
    ClinicalRecordService,
    MedicalRecordService,
    MedicationService,
    VaccinationService,
)
from petcare_core.utils.datetime_utils import format_date


@pytest.fixture
def services(async_session, notification_service):
    def build(service_class, actor):
        return service_class(async_session, actor, notification_service)

    return build


def medical_record(pet, day, **kwargs) -> MedicalRecordCreate:
    data = {
        "pet_id": pet.id,
        "date": day,
        "record_type": "exam",
        "description": "Annual exam",
    }
    data.update(kwargs)
    return MedicalRecordCreate(**data)


def clinical_record(pet, day, **kwargs) -> ClinicalRecordCreate:
    data = {
        "pet_id": pet.id,
        "date": day,
        "symptoms": "Coughing",
        "diagnosis": "Kennel cough",
        "treatment": "Rest and fluids",
    }
    data.update(kwargs)
    return ClinicalRecordCreate(**data)


class TestMedicalRecords:
    @pytest.mark.asyncio
    async def test_veterinarian_creates(self, services, pet, veterinarian, today):
        record = await services(MedicalRecordService, veterinarian).create_record(
            medical_record(pet, today)
        )

        assert record.veterinarian_id == veterinarian.id
        assert record.veterinarian_name == "Dr. Smith"
        assert record.created_by == veterinarian.id

    @pytest.mark.asyncio
    async def test_admin_names_the_veterinarian(self, services, pet, admin, today):
        record = await services(MedicalRecordService, admin).create_record(
            medical_record(pet, today, veterinarian_name="Dr. Jones")
        )

        assert record.veterinarian_id is None
        assert record.veterinarian_name == "Dr. Jones"

    @pytest.mark.asyncio
    async def test_owners_read_but_do_not_write(
        self, services, pet, pet_owner, other_owner, veterinarian, today
    ):
        writer = services(MedicalRecordService, veterinarian)
        older = await writer.create_record(
            medical_record(pet, today - timedelta(days=30))
        )
        newer = await writer.create_record(medical_record(pet, today))

        reader = services(MedicalRecordService, pet_owner)
        assert [r.id for r in await reader.list_for_pet(pet.id)] == [
            newer.id,
            older.id,
        ]
        assert (await reader.get_record(older.id)) is older

        with pytest.raises(AuthorizationException):
            await reader.create_record(medical_record(pet, today))
        with pytest.raises(AuthorizationException):
            await services(MedicalRecordService, other_owner).list_for_pet(pet.id)

    @pytest.mark.asyncio
    async def test_delete_is_admin_only(self, services, pet, veterinarian, admin, today):
        record = await services(MedicalRecordService, veterinarian).create_record(
            medical_record(pet, today)
        )

        with pytest.raises(AuthorizationException):
            await services(MedicalRecordService, veterinarian).delete_record(record.id)

        await services(MedicalRecordService, admin).delete_record(record.id)
        with pytest.raises(NotFoundException):
            await services(MedicalRecordService, admin).get_record(record.id)


class TestClinicalRecords:
    @pytest.mark.asyncio
    async def test_create_notifies_owner(
        self,
        async_session,
        services,
        notification_service,
        appointment_factory,
        pet,
        pet_owner,
        veterinarian,
        today,
    ):
        appointment = await appointment_factory.create(
            async_session, pet, veterinarian, date=today
        )

        record = await services(ClinicalRecordService, veterinarian).create_record(
            clinical_record(
                pet, today, appointment_id=appointment.id, medications=["Doxycycline"]
            )
        )

        assert record.veterinarian_id == veterinarian.id
        assert record.medications == ["Doxycycline"]
        notifications = await notification_service.get_user_notifications(
            pet_owner.id
        )
        assert [n.type for n in notifications] == [NotificationType.MEDICAL_UPDATE]
        assert notifications[0].message.startswith(
            "Dr. Smith has updated Buddy's medical records."
        )

    @pytest.mark.asyncio
    async def test_appointment_must_match_pet(
        self,
        async_session,
        services,
        appointment_factory,
        pet_factory,
        pet,
        other_owner,
        veterinarian,
        today,
    ):
        other_pet = await pet_factory.create(async_session, owner=other_owner)
        other_visit = await appointment_factory.create(
            async_session, other_pet, veterinarian
        )
        service = services(ClinicalRecordService, veterinarian)

        with pytest.raises(BusinessRuleException, match="different pet"):
            await service.create_record(
                clinical_record(pet, today, appointment_id=other_visit.id)
            )
        with pytest.raises(NotFoundException):
            await service.create_record(
                clinical_record(pet, today, appointment_id=uuid.uuid4())
            )

    @pytest.mark.asyncio
    async def test_follow_up_update_checked(self, services, pet, veterinarian, today):
        service = services(ClinicalRecordService, veterinarian)
        record = await service.create_record(clinical_record(pet, today))

        with pytest.raises(BusinessRuleException, match="Follow-up"):
            await service.update_record(
                record.id,
                ClinicalRecordUpdate(follow_up_date=today - timedelta(days=1)),
            )

        updated = await service.update_record(
            record.id, ClinicalRecordUpdate(follow_up_date=today + timedelta(days=7))
        )
        assert updated.follow_up_date == today + timedelta(days=7)
        assert updated.updated_by == veterinarian.id


class TestVaccinations:
    @pytest.mark.asyncio
    async def test_next_due_schedules_reminder(
        self, services, notification_service, pet, pet_owner, veterinarian, today
    ):
        vaccination = await services(VaccinationService, veterinarian).create_record(
            VaccinationCreate(
                pet_id=pet.id,
                vaccine="Rabies",
                date=today,
                next_due=today + timedelta(days=365),
            )
        )

        assert vaccination.administered_by == veterinarian.id
        reminders = await notification_service.get_user_notifications(pet_owner.id)
        assert [n.related_entity_id for n in reminders] == [vaccination.id]
        assert reminders[0].sent is False

    @pytest.mark.asyncio
    async def test_no_reminder_without_next_due(
        self, services, notification_service, pet, pet_owner, veterinarian, today
    ):
        await services(VaccinationService, veterinarian).create_record(
            VaccinationCreate(pet_id=pet.id, vaccine="Bordetella", date=today)
        )

        assert await notification_service.get_user_notifications(pet_owner.id) == []

    @pytest.mark.asyncio
    async def test_update_keeps_dates_ordered(
        self, async_session, services, vaccination_factory, pet, veterinarian, today
    ):
        vaccination = await vaccination_factory.create(async_session, pet)
        service = services(VaccinationService, veterinarian)

        with pytest.raises(BusinessRuleException, match="Next due"):
            await service.update_record(
                vaccination.id,
                VaccinationUpdate(next_due=vaccination.date - timedelta(days=1)),
            )

        updated = await service.update_record(
            vaccination.id, VaccinationUpdate(next_due=today + timedelta(days=90))
        )
        assert updated.next_due == today + timedelta(days=90)

    @pytest.mark.asyncio
    async def test_new_due_date_replaces_reminder(
        self, services, notification_service, pet, pet_owner, veterinarian, today
    ):
        service = services(VaccinationService, veterinarian)
        vaccination = await service.create_record(
            VaccinationCreate(
                pet_id=pet.id,
                vaccine="Rabies",
                date=today,
                next_due=today + timedelta(days=365),
            )
        )
        [original] = await notification_service.get_user_notifications(pet_owner.id)

        new_due = today + timedelta(days=180)
        await service.update_record(vaccination.id, VaccinationUpdate(next_due=new_due))

        [reminder] = await notification_service.get_user_notifications(pet_owner.id)
        assert reminder.id != original.id
        assert reminder.related_entity_id == vaccination.id
        assert f"due on {format_date(new_due)}." in reminder.message

        await service.update_record(
            vaccination.id, VaccinationUpdate(date=today - timedelta(days=1))
        )
        [unchanged] = await notification_service.get_user_notifications(pet_owner.id)
        assert unchanged.id == reminder.id

    @pytest.mark.asyncio
    async def test_delete_withdraws_reminder(
        self, services, notification_service, pet, pet_owner, veterinarian, admin, today
    ):
        vaccination = await services(VaccinationService, veterinarian).create_record(
            VaccinationCreate(
                pet_id=pet.id,
                vaccine="Rabies",
                date=today,
                next_due=today + timedelta(days=365),
            )
        )

        await services(VaccinationService, admin).delete_record(vaccination.id)

        assert await notification_service.get_user_notifications(pet_owner.id) == []

    @pytest.mark.asyncio
    async def test_list_upcoming(
        self,
        async_session,
        services,
        vaccination_factory,
        pet_factory,
        pet,
        pet_owner,
        other_owner,
        veterinarian,
        today,
    ):
        other_pet = await pet_factory.create(async_session, owner=other_owner)
        soon = await vaccination_factory.create(
            async_session, pet, next_due=today + timedelta(days=5)
        )
        later = await vaccination_factory.create(
            async_session, pet, vaccine="Parvo", next_due=today + timedelta(days=25)
        )
        await vaccination_factory.create(
            async_session, pet, vaccine="Lepto", next_due=today + timedelta(days=90)
        )
        theirs = await vaccination_factory.create(
            async_session, other_pet, next_due=today + timedelta(days=10)
        )

        owner_view = await services(VaccinationService, pet_owner).list_upcoming()
        assert [v.id for v in owner_view] == [soon.id, later.id]

        vet_view = await services(VaccinationService, veterinarian).list_upcoming(
            days=14
        )
        assert [v.id for v in vet_view] == [soon.id, theirs.id]


class TestMedications:
    @pytest.mark.asyncio
    async def test_list_active(
        self, async_session, services, medication_factory, pet, pet_owner, today
    ):
        current = await medication_factory.create(async_session, pet)
        await medication_factory.create(
            async_session,
            pet,
            name="Old course",
            start_date=today - timedelta(days=10),
            end_date=today - timedelta(days=1),
        )
        await medication_factory.create(async_session, pet, name="Stopped", active=False)

        active = await services(MedicationService, pet_owner).list_active()

        assert [m.id for m in active] == [current.id]

    @pytest.mark.asyncio
    async def test_deactivate(
        self, async_session, services, medication_factory, pet, pet_owner, veterinarian
    ):
        medication = await medication_factory.create(async_session, pet)

        with pytest.raises(AuthorizationException):
            await services(MedicationService, pet_owner).deactivate(medication.id)

        stopped = await services(MedicationService, veterinarian).deactivate(
            medication.id
        )
        assert stopped.active is False
        assert stopped.updated_by == veterinarian.id

    @pytest.mark.asyncio
    async def test_create_and_update_dates(
        self, async_session, services, medication_factory, pet, veterinarian, today
    ):
        medication = await medication_factory.create(async_session, pet)
        service = services(MedicationService, veterinarian)

        with pytest.raises(BusinessRuleException, match="End date"):
            await service.update_record(
                medication.id,
                MedicationUpdate(end_date=medication.start_date - timedelta(days=1)),
            )

        updated = await service.update_record(
            medication.id, MedicationUpdate(dosage="50mg once daily")
        )
        assert updated.dosage == "50mg once daily"

    @pytest.mark.asyncio
    async def test_prescriber_recorded(self, services, pet, veterinarian, today):
        medication = await services(MedicationService, veterinarian).create_record(
            MedicationCreate(
                pet_id=pet.id, name="Carprofen", dosage="75mg", start_date=today
            )
        )

        assert medication.prescribed_by == veterinarian.id
        assert medication.active is True

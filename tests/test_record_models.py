"""
Tests for vaccination, medication and clinical record models.
"""

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from petcare_core.models import ClinicalRecord, Medication, Vaccination

TODAY = date(2024, 6, 15)


class TestVaccination:
    @pytest.mark.parametrize(
        "offset, expected", [(-1, False), (0, True), (7, True), (8, False)]
    )
    def test_is_due_within(self, offset, expected):
        vaccination = Vaccination(
            pet_id=uuid.uuid4(),
            vaccine="Rabies",
            date=TODAY - timedelta(days=365),
            next_due=TODAY + timedelta(days=offset),
        )
        assert vaccination.is_due_within(TODAY, 7) is expected

    def test_without_next_due(self):
        vaccination = Vaccination(pet_id=uuid.uuid4(), vaccine="Rabies", date=TODAY)
        assert vaccination.is_due_within(TODAY, 30) is False

    @pytest.mark.asyncio
    async def test_next_due_cannot_precede_date(
        self, async_session, vaccination_factory, pet
    ):
        with pytest.raises(IntegrityError):
            await vaccination_factory.create(
                async_session,
                pet,
                date=TODAY,
                next_due=TODAY - timedelta(days=1),
            )


class TestMedication:
    def make(self, **kwargs) -> Medication:
        defaults = {
            "pet_id": uuid.uuid4(),
            "name": "Carprofen",
            "dosage": "75mg",
            "start_date": TODAY - timedelta(days=3),
            "end_date": TODAY + timedelta(days=3),
        }
        defaults.update(kwargs)
        return Medication(**defaults)

    def test_active_by_default(self):
        assert self.make().active is True

    def test_is_current(self):
        medication = self.make()

        assert medication.is_current(TODAY)
        assert not medication.is_current(TODAY - timedelta(days=4))
        assert not medication.is_current(TODAY + timedelta(days=4))

    def test_open_ended_course(self):
        assert self.make(end_date=None).is_current(TODAY + timedelta(days=400))

    def test_discontinue(self):
        medication = self.make()

        medication.discontinue(on=TODAY)

        assert medication.active is False
        assert medication.end_date == TODAY
        assert medication.is_current(TODAY) is False


class TestClinicalRecord:
    def test_medications_default_to_empty_list(self):
        record = ClinicalRecord(
            pet_id=uuid.uuid4(),
            veterinarian_id=uuid.uuid4(),
            date=TODAY,
            symptoms="Cough",
            diagnosis="Kennel cough",
            treatment="Rest",
        )
        assert record.medications == []

    def test_needs_follow_up(self):
        record = ClinicalRecord(
            pet_id=uuid.uuid4(),
            veterinarian_id=uuid.uuid4(),
            date=TODAY,
            symptoms="Limp",
            diagnosis="Sprain",
            treatment="Rest",
            follow_up_date=TODAY + timedelta(days=14),
        )

        assert record.needs_follow_up(TODAY) is True
        assert record.needs_follow_up(TODAY + timedelta(days=15)) is False

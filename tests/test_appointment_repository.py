"""Tests for the SQLite appointment repository and timestamp handling."""

from datetime import datetime, timedelta, timezone

import pytest

from clinic_desk.errors import PersistenceError
from clinic_desk.store.appointment_repository import (
    Appointment,
    AppointmentStatus,
    appointment_from_record,
    appointment_to_record,
    from_store_timestamp,
    to_store_timestamp,
)
from clinic_desk.store.connection import get_connection


def local(*args) -> datetime:
    return datetime(*args).astimezone()


def slot(patient_id, start, procedure="كشف") -> Appointment:
    return Appointment(patient_id=patient_id, start_time=start, end_time=start + timedelta(minutes=30), procedure=procedure)


class TestTimestamps:
    """Tests for stored timestamp format."""

    def test_stored_as_utc(self):
        moment = datetime(2024, 3, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_store_timestamp(moment) == "2024-03-15T12:00:00+00:00"

    def test_read_back_as_local(self):
        moment = from_store_timestamp("2024-03-15T12:00:00+00:00")
        assert moment == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
        assert moment.utcoffset() == datetime(2024, 3, 15, 12, 0).astimezone().utcoffset()

    def test_zulu_suffix(self):
        assert from_store_timestamp("2024-03-15T12:00:00Z") == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    def test_naive_stored_value_taken_as_utc(self):
        assert from_store_timestamp("2024-03-15T12:00:00") == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class TestRecordConversion:
    """Tests for appointment records."""

    def test_to_record(self):
        record = appointment_to_record(slot("p1", datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)))
        assert record == {
            "patient_id": "p1",
            "start_time": "2024-03-15T12:00:00+00:00",
            "end_time": "2024-03-15T12:30:00+00:00",
            "procedure": "كشف",
            "status": "scheduled",
            "notes": "",
        }

    def test_from_record_with_join(self):
        appointment = appointment_from_record({
            "id": "a1",
            "patient_id": "p1",
            "start_time": "2024-03-15T12:00:00+00:00",
            "end_time": "2024-03-15T12:30:00+00:00",
            "procedure": "حشو",
            "status": "cancelled",
            "notes": None,
            "patients": {"full_name": "Sara", "file_number": 12, "phone": "0111"},
        })
        assert appointment.status == AppointmentStatus.CANCELLED
        assert appointment.notes == ""
        assert appointment.patient.full_name == "Sara"
        assert appointment.patient.file_number == "12"
        assert appointment.patient.id == "p1"

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            appointment_from_record({
                "patient_id": "p1",
                "start_time": "2024-03-15T12:00:00+00:00",
                "end_time": "2024-03-15T12:30:00+00:00",
                "status": "no_show",
            })


class TestAppointmentRepository:
    """Tests for appointment queries."""

    def test_insert_assigns_id(self, appointment_repo, saved_patient):
        booked = appointment_repo.insert_appointment(slot(saved_patient.id, local(2024, 3, 15, 14, 0)))
        assert booked.id
        assert booked.created_at
        assert booked.status == AppointmentStatus.SCHEDULED

    def test_stored_in_utc(self, appointment_repo, saved_patient):
        start = local(2024, 3, 15, 14, 0)
        booked = appointment_repo.insert_appointment(slot(saved_patient.id, start))

        conn = get_connection()
        raw = conn.execute("SELECT start_time FROM appointments WHERE id = ?", (booked.id,)).fetchone()[0]
        conn.close()
        assert raw == to_store_timestamp(start)
        assert raw.endswith("+00:00")

    def test_query_inclusive_bounds(self, appointment_repo, saved_patient):
        start = local(2024, 3, 15, 9, 0)
        end = local(2024, 3, 15, 17, 0)
        for moment in (start, end, end + timedelta(minutes=1)):
            appointment_repo.insert_appointment(slot(saved_patient.id, moment))

        found = appointment_repo.query_appointments(start, end, ordered=True)
        assert [a.start_time for a in found] == [start, end]

    def test_query_without_patient(self, appointment_repo, saved_patient):
        moment = local(2024, 3, 15, 9, 0)
        appointment_repo.insert_appointment(slot(saved_patient.id, moment))
        found = appointment_repo.query_appointments(moment, moment, with_patient=False)
        assert found[0].patient is None

    def test_unknown_patient_rejected(self, appointment_repo):
        with pytest.raises(PersistenceError):
            appointment_repo.insert_appointment(slot("no-such-patient", local(2024, 3, 15, 9, 0)))

    def test_get_by_id_not_found(self, appointment_repo):
        assert appointment_repo.get_by_id("missing") is None

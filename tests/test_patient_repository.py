"""Tests for the SQLite patient repository."""

import json

import pytest

from clinic_desk.errors import PersistenceError
from clinic_desk.store.connection import get_connection
from clinic_desk.store.patient_repository import (
    MedicalHistory,
    Medications,
    Patient,
    Visit,
    patient_from_record,
    patient_to_record,
)


class TestRecordConversion:
    """Tests for converting between Patient and stored records."""

    def test_flag_groups_use_camel_case_keys(self):
        record = patient_to_record(Patient(
            full_name="X",
            medical_history=MedicalHistory(high_blood_pressure=True),
            medications=Medications(blood_thinners=True, other="Aspirin"),
        ))
        assert record["medical_history"]["highBloodPressure"] is True
        assert record["medical_history"]["pregnancyOrNursing"] is False
        assert record["medications"] == {
            "bloodPressure": False, "diabetes": False, "bloodThinners": True, "other": "Aspirin",
        }

    def test_store_assigned_fields_left_out(self):
        record = patient_to_record(Patient(id="p1", file_number="7", full_name="X", created_at="now"))
        assert "id" not in record
        assert "file_number" not in record
        assert "created_at" not in record

    def test_missing_flags_default_false(self):
        patient = patient_from_record({"id": "p1", "full_name": "X", "medical_history": {"diabetes": True}})
        assert patient.medical_history.diabetes
        assert not patient.medical_history.hepatitis
        assert not patient.questions.heart_problems
        assert patient.medications.other == ""

    def test_unknown_flags_ignored(self):
        patient = patient_from_record({"full_name": "X", "questions": {"somethingNew": True}})
        assert patient.questions.checked() == []

    def test_numeric_file_number_becomes_text(self):
        assert patient_from_record({"full_name": "X", "file_number": 42}).file_number == "42"

    def test_null_cost_preserved(self):
        assert patient_from_record({"full_name": "X", "total_cost": None}).total_cost is None

    def test_visits_parsed(self):
        patient = patient_from_record({
            "full_name": "X",
            "visits": [{"id": "v1", "visit_date": "2024-03-01", "procedure": "كشف", "paid_amount": 200}],
        })
        assert patient.visits == [Visit(id="v1", visit_date="2024-03-01", procedure="كشف", paid_amount=200)]


class TestPatientCRUD:
    """Tests for patient CRUD operations."""

    def test_insert_assigns_identity(self, patient_repo, saved_patient):
        assert saved_patient.id is not None
        assert saved_patient.file_number == "1"
        assert saved_patient.created_at is not None

    def test_get_by_id(self, patient_repo, saved_patient):
        patient = patient_repo.get_by_id(saved_patient.id)
        assert patient.full_name == "Test Fixture"
        assert patient.email == "test.fixture@email.com"

    def test_get_by_id_not_found(self, patient_repo):
        assert patient_repo.get_by_id("nonexistent-id") is None

    def test_update_fields(self, patient_repo, saved_patient):
        patient_repo.update_patient(saved_patient.id, {"phone": "0199", "total_cost": 1500})
        patient = patient_repo.get_by_id(saved_patient.id)
        assert patient.phone == "0199"
        assert patient.total_cost == 1500

    def test_update_visits_stored_as_json(self, patient_repo, saved_patient):
        visits = [{"id": "v1", "visit_date": "2024-03-01", "procedure": "خلع", "paid_amount": 300}]
        patient_repo.update_patient(saved_patient.id, {"visits": visits})

        conn = get_connection()
        raw = conn.execute("SELECT visits FROM patients WHERE id = ?", (saved_patient.id,)).fetchone()[0]
        conn.close()
        assert json.loads(raw) == visits

    def test_update_unknown_field(self, patient_repo, saved_patient):
        with pytest.raises(ValueError):
            patient_repo.update_patient(saved_patient.id, {"file_number": "99"})

    def test_update_missing_patient(self, patient_repo):
        with pytest.raises(PersistenceError):
            patient_repo.update_patient("nonexistent-id", {"phone": "1"})

    def test_delete(self, patient_repo, saved_patient):
        patient_repo.delete_patient(saved_patient.id)
        assert patient_repo.get_by_id(saved_patient.id) is None

    def test_list_orders(self, patient_repo, saved_patient):
        second = patient_repo.insert_patient(Patient(full_name="Another"))
        newest_first = patient_repo.list_patients()
        assert [p.id for p in newest_first] == [second.id, saved_patient.id]
        by_name = patient_repo.list_patients(order_by="full_name", descending=False)
        assert [p.full_name for p in by_name] == ["Another", "Test Fixture"]

    def test_list_rejects_unknown_order(self, patient_repo):
        with pytest.raises(ValueError):
            patient_repo.list_patients(order_by="phone; DROP TABLE patients")

    def test_search_escapes_wildcards(self, patient_repo, saved_patient):
        assert patient_repo.search("%", limit=5) == []
        assert patient_repo.search("Test_Fixture", limit=5) == []

    def test_database_error_becomes_persistence_error(self, patient_repo):
        conn = get_connection()
        conn.execute("DROP TABLE appointments")
        conn.execute("DROP TABLE patients")
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceError) as exc:
            patient_repo.list_patients()
        assert "no such table" in str(exc.value)

"""Shared pytest fixtures."""

import pytest
from unittest.mock import MagicMock

from clinic_desk.errors import PersistenceError
from clinic_desk.store import connection
from clinic_desk.store import AppointmentRepository, PatientRepository, init_database
from clinic_desk.store.patient_repository import Patient


@pytest.fixture(autouse=True)
def temp_database(tmp_path, monkeypatch):
    """Point the SQLite store at a fresh file for every test."""
    monkeypatch.setattr(connection, "DB_PATH", tmp_path / "clinic_test.db")
    init_database()
    yield tmp_path / "clinic_test.db"


@pytest.fixture
def patient_repo():
    return PatientRepository()


@pytest.fixture
def appointment_repo():
    return AppointmentRepository()


@pytest.fixture
def saved_patient(patient_repo):
    """A registered patient with an empty ledger."""
    return patient_repo.insert_patient(Patient(
        full_name="Test Fixture",
        dob="1990-01-01",
        phone="01000000001",
        email="test.fixture@email.com",
    ))


@pytest.fixture
def failing_repo():
    """A patient store whose writes always fail."""
    repo = MagicMock()
    repo.update_patient.side_effect = PersistenceError("connection reset by peer")
    repo.insert_patient.side_effect = PersistenceError("connection reset by peer")
    repo.insert_appointment.side_effect = PersistenceError("connection reset by peer")
    return repo

from clinic_desk import config

from .appointment_repository import Appointment, AppointmentRepository, AppointmentStatus, PatientRef
from .connection import get_connection, init_database
from .patient_repository import (
    MedicalHistory,
    MedicalQuestions,
    Medications,
    Patient,
    PatientRepository,
    Visit,
)
from .rest_gateway import RestAppointmentRepository, RestClient, RestPatientRepository

__all__ = [
    "get_connection", "init_database",
    "Patient", "Visit", "MedicalHistory", "MedicalQuestions", "Medications",
    "PatientRepository", "Appointment", "AppointmentStatus", "PatientRef",
    "AppointmentRepository", "RestClient", "RestPatientRepository", "RestAppointmentRepository",
    "open_repositories",
]


def open_repositories(backend: str | None = None):
    """Return (patient_repo, appointment_repo) for the configured backend."""
    backend = (backend or config.STORE_BACKEND).lower()
    if backend == "rest":
        client = RestClient(config.STORE_URL, config.STORE_KEY, timeout=config.STORE_TIMEOUT)
        return RestPatientRepository(client), RestAppointmentRepository(client)
    if backend == "sqlite":
        init_database()
        return PatientRepository(), AppointmentRepository()
    raise ValueError(f"Unknown store backend: {backend!r}")

"""Patient directory: registration, listing, search and verified deletion."""

import logging

from pydantic import BaseModel, Field, field_validator

from clinic_desk import config
from clinic_desk.errors import ValidationError, VerificationError
from clinic_desk.store.patient_repository import (
    MedicalHistory,
    MedicalQuestions,
    Medications,
    Patient,
)

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def search_by_prefix(repo, term: str, limit: int | None = None) -> list[Patient]:
    """Store-side lookup used when picking a patient for a booking.

    Terms shorter than two characters return nothing without querying.
    """
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []
    return repo.search(term, limit=limit or config.SEARCH_LIMIT)


def filter_local(patients: list[Patient], term: str) -> list[Patient]:
    """Case-insensitive substring match on name, phone or file number."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(patients)
    return [
        p for p in patients
        if needle in (p.full_name or "").lower()
        or needle in (p.phone or "").lower()
        or needle in (p.file_number or "").lower()
    ]


class PatientDraft(BaseModel):
    """Registration form contents. The store fills in id and file number."""

    full_name: str = ""
    dob: str = ""
    job: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    medical_history: dict[str, bool] = Field(default_factory=dict)
    questions: dict[str, bool] = Field(default_factory=dict)
    medications: dict[str, bool] = Field(default_factory=dict)
    other_medication: str = ""

    @field_validator("full_name", "dob", "job", "address", "phone", "email", "other_medication", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    def to_patient(self) -> Patient:
        """Build the Patient to insert. Flag names outside each group are rejected."""
        medications = _build_flags(Medications, self.medications, "medications")
        medications.other = self.other_medication
        return Patient(
            full_name=self.full_name,
            dob=self.dob,
            job=self.job,
            address=self.address,
            phone=self.phone,
            email=self.email,
            medical_history=_build_flags(MedicalHistory, self.medical_history, "medical_history"),
            questions=_build_flags(MedicalQuestions, self.questions, "questions"),
            medications=medications,
            total_cost=0.0,
            visits=[],
        )


def _build_flags(group, values: dict[str, bool], section: str):
    unknown = set(values) - set(group.RECORD_KEYS)
    if unknown:
        raise ValidationError(section, f"Unknown {section} flags: {', '.join(sorted(unknown))}")
    return group(**{name: bool(flag) for name, flag in values.items()})


class PatientDirectory:
    """The loaded patient list plus the operations that change it."""

    def __init__(self, repo):
        self.repo = repo
        self.patients: list[Patient] = []

    def load(self) -> list[Patient]:
        """Fetch every patient, newest registration first."""
        self.patients = self.repo.list_patients(order_by="created_at", descending=True)
        return self.patients

    def filter(self, term: str) -> list[Patient]:
        return filter_local(self.patients, term)

    def search(self, term: str) -> list[Patient]:
        return search_by_prefix(self.repo, term)

    def find_by_file_number(self, file_number: str) -> Patient | None:
        file_number = (file_number or "").strip().lstrip("#")
        return next((p for p in self.patients if p.file_number == file_number), None)

    def register(self, draft: PatientDraft) -> Patient:
        """Insert a new patient and put it at the top of the list."""
        if not draft.full_name:
            raise ValidationError("full_name", "Full name is required")
        patient = self.repo.insert_patient(draft.to_patient())
        self.patients.insert(0, patient)
        return patient

    def replace(self, patient: Patient) -> None:
        """Swap an updated copy of a patient into the loaded list."""
        self.patients = [patient if p.id == patient.id else p for p in self.patients]

    def delete(self, patient_id: str) -> None:
        """Delete a patient, then read it back to make sure it is really gone.

        Store permission policies can turn a delete into a silent no-op, so
        the loaded list only changes once the read-back comes back empty.
        """
        self.repo.delete_patient(patient_id)

        if self.repo.get_by_id(patient_id) is not None:
            logger.warning("Patient %s still present after delete", patient_id)
            raise VerificationError(
                "Deletion was not applied. Check the store's permission policies."
            )

        self.patients = [p for p in self.patients if p.id != patient_id]
        logger.info("Deleted patient %s", patient_id)

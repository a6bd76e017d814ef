"""Patient records and the SQLite patient repository."""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from clinic_desk.errors import PersistenceError

from .connection import open_connection

logger = logging.getLogger(__name__)


class _FlagGroup:
    """Fixed set of boolean flags stored as a JSON object with camelCase keys."""

    # field name -> stored key
    RECORD_KEYS: ClassVar[dict[str, str]] = {}

    @classmethod
    def from_record(cls, record: dict | None):
        record = record or {}
        return cls(**{name: bool(record.get(key, False)) for name, key in cls.RECORD_KEYS.items()})

    def to_record(self) -> dict:
        return {key: bool(getattr(self, name)) for name, key in self.RECORD_KEYS.items()}

    def checked(self) -> list[str]:
        """Names of the flags that are set."""
        return [name for name in self.RECORD_KEYS if getattr(self, name)]


@dataclass
class MedicalHistory(_FlagGroup):
    RECORD_KEYS: ClassVar[dict[str, str]] = {
        "high_blood_pressure": "highBloodPressure",
        "diabetes": "diabetes",
        "stomach_ulcer": "stomachUlcer",
        "rheumatic_fever": "rheumaticFever",
        "hepatitis": "hepatitis",
        "pregnancy_or_nursing": "pregnancyOrNursing",
    }

    high_blood_pressure: bool = False
    diabetes: bool = False
    stomach_ulcer: bool = False
    rheumatic_fever: bool = False
    hepatitis: bool = False
    pregnancy_or_nursing: bool = False


@dataclass
class MedicalQuestions(_FlagGroup):
    RECORD_KEYS: ClassVar[dict[str, str]] = {
        "antibiotic_allergy": "antibioticAllergy",
        "anesthesia_allergy": "anesthesiaAllergy",
        "heart_problems": "heartProblems",
        "kidney_problems": "kidneyProblems",
        "liver_problems": "liverProblems",
        "regular_medication": "regularMedication",
    }

    antibiotic_allergy: bool = False
    anesthesia_allergy: bool = False
    heart_problems: bool = False
    kidney_problems: bool = False
    liver_problems: bool = False
    regular_medication: bool = False


@dataclass
class Medications(_FlagGroup):
    RECORD_KEYS: ClassVar[dict[str, str]] = {
        "blood_pressure": "bloodPressure",
        "diabetes": "diabetes",
        "blood_thinners": "bloodThinners",
    }

    blood_pressure: bool = False
    diabetes: bool = False
    blood_thinners: bool = False
    other: str = ""

    @classmethod
    def from_record(cls, record: dict | None) -> "Medications":
        meds = super().from_record(record)
        meds.other = (record or {}).get("other") or ""
        return meds

    def to_record(self) -> dict:
        record = super().to_record()
        record["other"] = self.other
        return record


@dataclass
class Visit:
    id: str
    visit_date: str
    procedure: str
    paid_amount: float = 0.0

    @classmethod
    def from_record(cls, record: dict) -> "Visit":
        return cls(
            id=record.get("id") or "",
            visit_date=record.get("visit_date") or "",
            procedure=record.get("procedure") or "",
            paid_amount=record.get("paid_amount", 0),
        )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "visit_date": self.visit_date,
            "procedure": self.procedure,
            "paid_amount": self.paid_amount,
        }


@dataclass
class Patient:
    id: str | None = None
    file_number: str | None = None
    full_name: str = ""
    dob: str = ""
    job: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    medical_history: MedicalHistory = field(default_factory=MedicalHistory)
    questions: MedicalQuestions = field(default_factory=MedicalQuestions)
    medications: Medications = field(default_factory=Medications)
    total_cost: float | None = 0.0
    visits: list[Visit] = field(default_factory=list)
    created_at: str | None = None


# Plain text columns shared by both store backends
TEXT_FIELDS = ["full_name", "dob", "job", "address", "phone", "email"]

# Columns holding JSON documents
JSON_FIELDS = ["medical_history", "questions", "medications", "visits"]

# Fields that can be updated
PATIENT_FIELDS = TEXT_FIELDS + JSON_FIELDS + ["total_cost"]


def patient_from_record(record: dict) -> Patient:
    """Build a Patient from a store record (JSON columns already decoded)."""
    file_number = record.get("file_number")
    return Patient(
        id=record.get("id"),
        file_number=str(file_number) if file_number is not None else None,
        full_name=record.get("full_name") or "",
        dob=record.get("dob") or "",
        job=record.get("job") or "",
        address=record.get("address") or "",
        phone=record.get("phone") or "",
        email=record.get("email") or "",
        medical_history=MedicalHistory.from_record(record.get("medical_history")),
        questions=MedicalQuestions.from_record(record.get("questions")),
        medications=Medications.from_record(record.get("medications")),
        total_cost=record.get("total_cost", 0),
        visits=[Visit.from_record(v) for v in record.get("visits") or []],
        created_at=record.get("created_at"),
    )


def patient_to_record(patient: Patient) -> dict:
    """Insert payload for a patient. Store-assigned fields are left out."""
    record = {name: getattr(patient, name) for name in TEXT_FIELDS}
    record.update({
        "medical_history": patient.medical_history.to_record(),
        "questions": patient.questions.to_record(),
        "medications": patient.medications.to_record(),
        "total_cost": patient.total_cost or 0,
        "visits": [v.to_record() for v in patient.visits],
    })
    return record


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PatientRepository:
    """SQLite-backed patient store."""

    ORDERABLE = {"created_at", "full_name", "file_number"}

    def list_patients(self, order_by: str = "created_at", descending: bool = True) -> list[Patient]:
        """Get all patients, newest registrations first by default."""
        if order_by not in self.ORDERABLE:
            raise ValueError(f"Cannot order patients by {order_by!r}")
        direction = "DESC" if descending else "ASC"
        with open_connection() as conn:
            # rowid breaks ties between rows created in the same instant
            rows = conn.execute(
                f"SELECT * FROM patients ORDER BY {order_by} {direction}, rowid {direction}"
            ).fetchall()
        return [self._row_to_patient(row) for row in rows]

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        with open_connection() as conn:
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return self._row_to_patient(row) if row else None

    def search(self, term: str, limit: int = 5) -> list[Patient]:
        """Name or phone containing term, or file number equal to term."""
        pattern = f"%{_escape_like(term.casefold())}%"
        with open_connection() as conn:
            rows = conn.execute(
                """SELECT * FROM patients
                   WHERE CASEFOLD(full_name) LIKE ? ESCAPE '\\'
                      OR file_number = ?
                      OR CASEFOLD(phone) LIKE ? ESCAPE '\\'
                   ORDER BY created_at DESC
                   LIMIT ?""",
                (pattern, term, pattern, limit),
            ).fetchall()
        return [self._row_to_patient(row) for row in rows]

    def insert_patient(self, patient: Patient) -> Patient:
        """Insert a patient. The store assigns id, file_number and created_at."""
        record = patient_to_record(patient)
        patient_id = str(uuid.uuid4())
        now = datetime.now().isoformat()

        with open_connection() as conn:
            conn.execute("""
                INSERT INTO patients (
                    id, file_number, full_name, dob, job, address, phone, email,
                    medical_history, questions, medications, total_cost, visits, created_at
                ) VALUES (
                    ?,
                    (SELECT CAST(COALESCE(MAX(CAST(file_number AS INTEGER)), 0) + 1 AS TEXT) FROM patients),
                    ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?
                )
            """, (
                patient_id, record["full_name"], record["dob"], record["job"],
                record["address"], record["phone"], record["email"],
                json.dumps(record["medical_history"]), json.dumps(record["questions"]),
                json.dumps(record["medications"]), record["total_cost"],
                json.dumps(record["visits"], ensure_ascii=False), now,
            ))
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()

        logger.info("Registered patient %s as file #%s", patient_id, row["file_number"])
        return self._row_to_patient(row)

    def update_patient(self, patient_id: str, fields: dict) -> None:
        """Overwrite the given fields. JSON fields are passed in record form."""
        unknown = set(fields) - set(PATIENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown patient fields: {sorted(unknown)}")
        if not fields:
            return

        values = [
            json.dumps(value, ensure_ascii=False) if name in JSON_FIELDS else value
            for name, value in fields.items()
        ]
        set_clause = ", ".join(f"{name} = ?" for name in fields)

        with open_connection() as conn:
            cursor = conn.execute(
                f"UPDATE patients SET {set_clause} WHERE id = ?",
                values + [patient_id],
            )
            updated = cursor.rowcount

        if updated == 0:
            logger.error("Update of missing patient %s", patient_id)
            raise PersistenceError(f"Patient {patient_id} not found")

    def delete_patient(self, patient_id: str) -> None:
        """Delete a patient and, through the foreign key, their appointments."""
        with open_connection() as conn:
            conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))

    # Private helpers

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        record = dict(row)
        for name in JSON_FIELDS:
            raw = record.get(name)
            record[name] = json.loads(raw) if raw else None
        return patient_from_record(record)

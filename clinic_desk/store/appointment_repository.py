"""Appointment records and the SQLite appointment repository."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from .connection import open_connection

logger = logging.getLogger(__name__)


class AppointmentStatus(Enum):
    """Lifecycle of an appointment. Only SCHEDULED is produced today."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class PatientRef:
    """Patient display fields joined onto an appointment."""
    id: str | None
    full_name: str
    file_number: str | None = None
    phone: str = ""


@dataclass
class Appointment:
    patient_id: str
    start_time: datetime
    end_time: datetime
    procedure: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: str = ""
    id: str | None = None
    patient: PatientRef | None = None
    created_at: str | None = None


def to_store_timestamp(moment: datetime) -> str:
    """Serialize an instant as a UTC ISO-8601 string (second precision).

    Naive datetimes are taken as host local time.
    """
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_store_timestamp(value: str) -> datetime:
    """Parse a stored timestamp into an aware datetime in host local time."""
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone()


def appointment_from_record(record: dict) -> Appointment:
    """Build an Appointment from a store record, with the optional `patients` join."""
    joined = record.get("patients")
    patient = None
    if joined:
        file_number = joined.get("file_number")
        patient = PatientRef(
            id=joined.get("id") or record.get("patient_id"),
            full_name=joined.get("full_name") or "",
            file_number=str(file_number) if file_number is not None else None,
            phone=joined.get("phone") or "",
        )
    return Appointment(
        id=record.get("id"),
        patient_id=record["patient_id"],
        start_time=from_store_timestamp(record["start_time"]),
        end_time=from_store_timestamp(record["end_time"]),
        procedure=record.get("procedure") or "",
        status=AppointmentStatus(record.get("status") or "scheduled"),
        notes=record.get("notes") or "",
        patient=patient,
        created_at=record.get("created_at"),
    )


def appointment_to_record(appointment: Appointment) -> dict:
    """Insert payload for an appointment. The store assigns id and created_at."""
    return {
        "patient_id": appointment.patient_id,
        "start_time": to_store_timestamp(appointment.start_time),
        "end_time": to_store_timestamp(appointment.end_time),
        "procedure": appointment.procedure,
        "status": appointment.status.value,
        "notes": appointment.notes,
    }


class AppointmentRepository:
    """SQLite-backed appointment store."""

    def query_appointments(
        self,
        start: datetime,
        end: datetime,
        with_patient: bool = True,
        ordered: bool = False,
    ) -> list[Appointment]:
        """Appointments whose start_time lies in [start, end]."""
        query = """SELECT a.*, p.full_name AS p_full_name, p.file_number AS p_file_number,
                          p.phone AS p_phone
                   FROM appointments a
                   LEFT JOIN patients p ON p.id = a.patient_id
                   WHERE a.start_time >= ? AND a.start_time <= ?"""
        if ordered:
            query += " ORDER BY a.start_time ASC"

        with open_connection() as conn:
            rows = conn.execute(query, (to_store_timestamp(start), to_store_timestamp(end))).fetchall()

        return [self._row_to_appointment(row, with_patient) for row in rows]

    def get_by_id(self, appointment_id: str) -> Appointment | None:
        """Get an appointment by ID."""
        with open_connection() as conn:
            row = conn.execute(
                """SELECT a.*, p.full_name AS p_full_name, p.file_number AS p_file_number,
                          p.phone AS p_phone
                   FROM appointments a
                   LEFT JOIN patients p ON p.id = a.patient_id
                   WHERE a.id = ?""",
                (appointment_id,),
            ).fetchone()
        return self._row_to_appointment(row, True) if row else None

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        """Insert an appointment. No overlap check is made."""
        record = appointment_to_record(appointment)
        appointment_id = str(uuid.uuid4())
        now = datetime.now().isoformat()

        with open_connection() as conn:
            conn.execute("""
                INSERT INTO appointments (id, patient_id, start_time, end_time, status, procedure, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                appointment_id, record["patient_id"], record["start_time"], record["end_time"],
                record["status"], record["procedure"], record["notes"], now,
            ))

        logger.info("Booked appointment %s at %s", appointment_id, record["start_time"])
        return self.get_by_id(appointment_id)

    def _row_to_appointment(self, row, with_patient: bool) -> Appointment:
        """Convert a joined database row to an Appointment object."""
        record = {key: row[key] for key in row.keys() if not key.startswith("p_")}
        if with_patient and row["p_full_name"] is not None:
            record["patients"] = {
                "id": row["patient_id"],
                "full_name": row["p_full_name"],
                "file_number": row["p_file_number"],
                "phone": row["p_phone"],
            }
        return appointment_from_record(record)

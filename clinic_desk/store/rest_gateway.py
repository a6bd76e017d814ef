"""Remote record store over a PostgREST-style HTTP API."""

import logging
from datetime import datetime

import requests

from clinic_desk.errors import PersistenceError

from .appointment_repository import (
    Appointment,
    appointment_from_record,
    appointment_to_record,
    to_store_timestamp,
)
from .patient_repository import PATIENT_FIELDS, Patient, patient_from_record, patient_to_record

logger = logging.getLogger(__name__)

PATIENT_JOIN = "patients(full_name,file_number,phone)"


class RestClient:
    """Issues table requests against `{base_url}/rest/v1/<table>`."""

    def __init__(self, base_url: str, api_key: str, timeout: float | None = None):
        if not base_url:
            raise PersistenceError("CLINIC_STORE_URL is not set")
        if not api_key:
            raise PersistenceError("CLINIC_STORE_KEY is not set")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        payload=None,
        returning: bool = False,
    ):
        """Send one request and return the decoded JSON body (or None)."""
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"

        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = requests.request(
                method, url, params=params, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error("%s %s timed out", method, table)
            raise PersistenceError("Store request timed out", e) from e
        except requests.exceptions.ConnectionError as e:
            logger.error("%s %s could not connect: %s", method, table, e)
            raise PersistenceError("Failed to connect to store", e) from e
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, table, e)
            raise PersistenceError(f"Store request failed: {e}", e) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error("%s %s returned %s: %s", method, table, response.status_code, message)
            raise PersistenceError(message)

        if not response.content:
            return None
        return response.json()


def _error_message(response) -> str:
    """Pull the store's own error text out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"Store error: {response.status_code}"


def _quote(value: str) -> str:
    """Double-quote a filter value so commas and parentheses stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class RestPatientRepository:
    """Patient collection on the remote store."""

    def __init__(self, client: RestClient):
        self.client = client

    def list_patients(self, order_by: str = "created_at", descending: bool = True) -> list[Patient]:
        direction = "desc" if descending else "asc"
        rows = self.client.request(
            "GET", "patients", params=[("select", "*"), ("order", f"{order_by}.{direction}")]
        )
        return [patient_from_record(row) for row in rows or []]

    def get_by_id(self, patient_id: str) -> Patient | None:
        rows = self.client.request("GET", "patients", params=[("select", "*"), ("id", f"eq.{patient_id}")])
        return patient_from_record(rows[0]) if rows else None

    def search(self, term: str, limit: int = 5) -> list[Patient]:
        term = term.replace("*", "")
        match = (
            f"(full_name.ilike.{_quote(f'*{term}*')},"
            f"file_number.eq.{_quote(term)},"
            f"phone.ilike.{_quote(f'*{term}*')})"
        )
        rows = self.client.request(
            "GET", "patients", params=[("select", "*"), ("or", match), ("limit", str(limit))]
        )
        return [patient_from_record(row) for row in rows or []]

    def insert_patient(self, patient: Patient) -> Patient:
        rows = self.client.request("POST", "patients", payload=[patient_to_record(patient)], returning=True)
        if not rows:
            raise PersistenceError("Store did not return the inserted patient")
        return patient_from_record(rows[0])

    def update_patient(self, patient_id: str, fields: dict) -> None:
        unknown = set(fields) - set(PATIENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown patient fields: {sorted(unknown)}")
        rows = self.client.request(
            "PATCH", "patients", params=[("id", f"eq.{patient_id}")], payload=fields, returning=True
        )
        if not rows:
            raise PersistenceError(f"Patient {patient_id} not found")

    def delete_patient(self, patient_id: str) -> None:
        self.client.request("DELETE", "patients", params=[("id", f"eq.{patient_id}")])


class RestAppointmentRepository:
    """Appointment collection on the remote store."""

    def __init__(self, client: RestClient):
        self.client = client

    def query_appointments(
        self,
        start: datetime,
        end: datetime,
        with_patient: bool = True,
        ordered: bool = False,
    ) -> list[Appointment]:
        params = [
            ("select", f"*,{PATIENT_JOIN}" if with_patient else "*"),
            ("start_time", f"gte.{to_store_timestamp(start)}"),
            ("start_time", f"lte.{to_store_timestamp(end)}"),
        ]
        if ordered:
            params.append(("order", "start_time.asc"))
        rows = self.client.request("GET", "appointments", params=params)
        return [appointment_from_record(row) for row in rows or []]

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        rows = self.client.request(
            "POST", "appointments", payload=[appointment_to_record(appointment)], returning=True
        )
        if not rows:
            raise PersistenceError("Store did not return the inserted appointment")
        return appointment_from_record(rows[0])

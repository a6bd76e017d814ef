"""Patient financial ledger: agreed cost, visit payments and running balance."""

import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import date

from pydantic import BaseModel, Field, field_validator

from clinic_desk.errors import ValidationError
from clinic_desk.store.patient_repository import Patient, Visit

logger = logging.getLogger(__name__)


def parse_amount(value) -> float:
    """Coerce a money amount to a float. Anything unparsable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


@dataclass(frozen=True)
class LedgerTotals:
    total_paid: float
    remaining: float


def compute_totals(patient: Patient) -> LedgerTotals:
    """Paid-to-date and remaining balance. Overpayment gives a negative remainder."""
    total_paid = sum((parse_amount(v.paid_amount) for v in patient.visits or []), 0.0)
    remaining = parse_amount(patient.total_cost) - total_paid
    return LedgerTotals(total_paid=total_paid, remaining=remaining)


class VisitDraft(BaseModel):
    """Visit entry as typed at the desk, before it gets an id."""

    procedure: str = ""
    visit_date: str = Field(default_factory=lambda: date.today().isoformat())
    paid_amount: float = 0.0

    @field_validator("procedure", mode="before")
    @classmethod
    def strip_procedure(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("visit_date", mode="before")
    @classmethod
    def normalize_visit_date(cls, v):
        """Accept date objects; blank means today."""
        if isinstance(v, date):
            return v.isoformat()
        if not v:
            return date.today().isoformat()
        return str(v).strip()

    @field_validator("paid_amount", mode="before")
    @classmethod
    def coerce_paid_amount(cls, v):
        return parse_amount(v)


class PatientLedger:
    """Ledger mutations. Each one writes through the patient store and returns a new Patient.

    The patient passed in is never modified, so a failed write leaves the
    caller's copy as it was.
    """

    def __init__(self, repo):
        self.repo = repo

    def set_agreed_cost(self, patient: Patient, new_cost) -> Patient:
        """Persist a new total_cost. Blank input means 0."""
        patient_id = self._require_id(patient)
        cost = self._parse_cost(new_cost)

        self.repo.update_patient(patient_id, {"total_cost": cost})
        logger.info("Agreed cost for patient %s set to %s", patient_id, cost)
        return replace(patient, total_cost=cost)

    def add_visit(self, patient: Patient, draft: VisitDraft) -> Patient:
        """Prepend a visit and rewrite the whole visit list."""
        patient_id = self._require_id(patient)
        if not draft.procedure:
            raise ValidationError("procedure", "Procedure is required")
        if not draft.visit_date:
            raise ValidationError("visit_date", "Visit date is required")

        visit = Visit(
            id=str(uuid.uuid4()),
            visit_date=draft.visit_date,
            procedure=draft.procedure,
            paid_amount=draft.paid_amount,
        )
        visits = [visit] + list(patient.visits or [])

        self.repo.update_patient(patient_id, {"visits": [v.to_record() for v in visits]})
        logger.info("Added visit %s to patient %s", visit.id, patient_id)
        return replace(patient, visits=visits)

    def remove_visit(self, patient: Patient, visit_id: str) -> Patient:
        """Drop the visit with visit_id and rewrite the list, even if nothing matched."""
        patient_id = self._require_id(patient)
        visits = [v for v in patient.visits or [] if v.id != visit_id]
        if len(visits) == len(patient.visits or []):
            logger.warning("Visit %s not found on patient %s", visit_id, patient_id)

        self.repo.update_patient(patient_id, {"visits": [v.to_record() for v in visits]})
        logger.info("Removed visit %s from patient %s", visit_id, patient_id)
        return replace(patient, visits=visits)

    # Private helpers

    def _require_id(self, patient: Patient) -> str:
        if not patient.id:
            raise ValidationError("id", "Patient has not been saved yet")
        return patient.id

    def _parse_cost(self, value) -> float:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0.0
        try:
            cost = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            raise ValidationError("total_cost", f"Agreed cost must be a number, got {value!r}")
        if not math.isfinite(cost):
            raise ValidationError("total_cost", f"Agreed cost must be a number, got {value!r}")
        if cost < 0:
            raise ValidationError("total_cost", "Agreed cost cannot be negative")
        return cost

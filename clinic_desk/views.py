"""View models handed to the presentation layer."""

from dataclasses import dataclass, field
from datetime import date

from clinic_desk.ledger import LedgerTotals, compute_totals
from clinic_desk.scheduler import (
    AppointmentScheduler,
    YearMonth,
    appointments_for_day,
    layout_month,
)
from clinic_desk.store.appointment_repository import Appointment
from clinic_desk.store.patient_repository import Patient


@dataclass
class PatientDetail:
    patient: Patient
    totals: LedgerTotals

    @classmethod
    def of(cls, patient: Patient) -> "PatientDetail":
        return cls(patient=patient, totals=compute_totals(patient))


@dataclass
class DayCell:
    day_number: int
    appointments: list[Appointment]
    is_today: bool = False


@dataclass
class MonthGrid:
    year_month: YearMonth
    leading_blank_count: int
    days: list[DayCell] = field(default_factory=list)


def build_month_grid(year_month: YearMonth, appointments: list[Appointment], today: date | None = None) -> MonthGrid:
    """Lay out a month and drop each appointment into its day cell."""
    today = today or date.today()
    layout = layout_month(year_month)
    is_current = YearMonth.containing(today) == year_month
    days = [
        DayCell(
            day_number=day,
            appointments=appointments_for_day(appointments, day),
            is_today=is_current and day == today.day,
        )
        for day in range(1, layout.day_count + 1)
    ]
    return MonthGrid(year_month=year_month, leading_blank_count=layout.leading_blank_count, days=days)


class CalendarBoard:
    """State of the calendar screen: the month being browsed and today's list.

    Today's list is fetched separately so it stays visible while other months
    are browsed. Responses are applied in the order they arrive; an older
    month's result that lands late overwrites a newer one.
    """

    def __init__(self, scheduler: AppointmentScheduler, today: date | None = None):
        self.scheduler = scheduler
        self.today = today or date.today()
        self.current_month = YearMonth.containing(self.today)
        self.month_appointments: list[Appointment] = []
        self.todays_appointments: list[Appointment] = []

    def refresh_today(self) -> list[Appointment]:
        self.todays_appointments = self.scheduler.todays_appointments(self.today)
        return self.todays_appointments

    def show_month(self, year_month: YearMonth) -> MonthGrid:
        self.current_month = year_month
        self.receive_month(self.scheduler.month_appointments(year_month))
        return self.grid()

    def receive_month(self, appointments: list[Appointment]) -> None:
        """Store a month fetch result. No check that it matches current_month."""
        self.month_appointments = appointments

    def next_month(self) -> MonthGrid:
        return self.show_month(self.current_month.next())

    def previous_month(self) -> MonthGrid:
        return self.show_month(self.current_month.previous())

    def grid(self) -> MonthGrid:
        return build_month_grid(self.current_month, self.month_appointments, self.today)

    def book(self, patient_id, day: date, time_of_day, procedure: str, notes: str = "") -> Appointment:
        """Book, then refresh both the month and today's list."""
        appointment = self.scheduler.book(patient_id, day, time_of_day, procedure, notes=notes)
        self.show_month(self.current_month)
        self.refresh_today()
        return appointment

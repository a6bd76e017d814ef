"""Appointment scheduling: day/month windows, month grid layout and booking."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from clinic_desk import config
from clinic_desk.errors import ValidationError
from clinic_desk.store.appointment_repository import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

# Calendar header, week starts on Saturday
WEEKDAY_HEADER = ("Saturday", "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
WEEKDAY_HEADER_AR = ("السبت", "الأحد", "الإثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة")


@dataclass(frozen=True)
class YearMonth:
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month out of range: {self.month}")

    @classmethod
    def containing(cls, day: date) -> "YearMonth":
        return cls(day.year, day.month)

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        """Parse "YYYY-MM"."""
        try:
            year, month = value.strip().split("-")
            return cls(int(year), int(month))
        except ValueError:
            raise ValidationError("month", f"Expected YYYY-MM, got {value!r}")

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def next(self) -> "YearMonth":
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def previous(self) -> "YearMonth":
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class MonthLayout:
    leading_blank_count: int
    day_count: int


def _local(moment: datetime) -> datetime:
    """Attach the host's local timezone to a naive local datetime."""
    return moment.astimezone()


def day_window(day: date) -> tuple[datetime, datetime]:
    """Inclusive local midnight-to-midnight range for day."""
    start = _local(datetime.combine(day, time.min))
    end = _local(datetime.combine(day, time.max))
    return start, end


def last_day_of_month(year_month: YearMonth) -> date:
    # "day 0" of the next month
    return year_month.next().first_day() - timedelta(days=1)


def days_in_month(year_month: YearMonth) -> int:
    return last_day_of_month(year_month).day


def month_window(year_month: YearMonth) -> tuple[datetime, datetime]:
    """First instant of day 1 through the last instant of the month's last day."""
    start = _local(datetime.combine(year_month.first_day(), time.min))
    end = _local(datetime.combine(last_day_of_month(year_month), time.max))
    return start, end


def layout_month(year_month: YearMonth) -> MonthLayout:
    """Blank cells before day 1 and number of days, for a Saturday-first grid."""
    # date.weekday() is Monday=0; shift to Sunday=0 numbering
    sunday_based = (year_month.first_day().weekday() + 1) % 7
    leading = (sunday_based + 1) % 7
    return MonthLayout(leading_blank_count=leading, day_count=days_in_month(year_month))


def appointments_for_day(appointments: list[Appointment], day: int) -> list[Appointment]:
    """Appointments falling on day-of-month `day` (local time), earliest first."""
    matches = [a for a in appointments if a.start_time.astimezone().day == day]
    return sorted(matches, key=lambda a: a.start_time)


def parse_time_of_day(value) -> time:
    """Accept a datetime.time or an "HH:MM" string."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        hours, minutes = str(value).strip().split(":")
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise ValidationError("time", f"Expected HH:MM, got {value!r}")


class AppointmentScheduler:
    """Range queries and booking against the appointment store."""

    def __init__(self, repo):
        self.repo = repo

    def list_in_range(self, window: tuple[datetime, datetime], ordered: bool = False) -> list[Appointment]:
        start, end = window
        return self.repo.query_appointments(start, end, with_patient=True, ordered=ordered)

    def todays_appointments(self, today: date | None = None) -> list[Appointment]:
        return self.list_in_range(day_window(today or date.today()), ordered=True)

    def month_appointments(self, year_month: YearMonth) -> list[Appointment]:
        return self.list_in_range(month_window(year_month))

    def book(
        self,
        patient_id: str | None,
        day: date,
        time_of_day,
        procedure: str,
        duration_minutes: int | None = None,
        notes: str = "",
    ) -> Appointment:
        """Book a slot for a patient. Overlapping bookings are allowed."""
        if not patient_id:
            raise ValidationError("patient_id", "Select a patient first")
        procedure = (procedure or "").strip()
        if not procedure:
            raise ValidationError("procedure", "Procedure is required")
        if day is None:
            raise ValidationError("date", "Date is required")

        duration = duration_minutes if duration_minutes is not None else config.SLOT_MINUTES
        start = _local(datetime.combine(day, parse_time_of_day(time_of_day)))
        appointment = Appointment(
            patient_id=patient_id,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            procedure=procedure,
            status=AppointmentStatus.SCHEDULED,
            notes=notes,
        )
        booked = self.repo.insert_appointment(appointment)
        logger.info("Booked %s for patient %s at %s", procedure, patient_id, start.isoformat())
        return booked

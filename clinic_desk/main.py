"""Clinic front desk console."""

import logging
import shlex
import sys
from dataclasses import dataclass
from datetime import date

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from clinic_desk import config
from clinic_desk.directory import PatientDirectory, PatientDraft
from clinic_desk.errors import ClinicDeskError, ValidationError
from clinic_desk.ledger import PatientLedger, VisitDraft, parse_amount
from clinic_desk.scheduler import WEEKDAY_HEADER, AppointmentScheduler, YearMonth
from clinic_desk.store import open_repositories
from clinic_desk.store.appointment_repository import Appointment
from clinic_desk.store.patient_repository import MedicalHistory, MedicalQuestions, Medications, Patient
from clinic_desk.views import CalendarBoard, MonthGrid, PatientDetail

logger = logging.getLogger(__name__)

console = Console()

# Display labels for the flag groups
FLAG_LABELS = {
    "high_blood_pressure": "High blood pressure",
    "diabetes": "Diabetes",
    "stomach_ulcer": "Stomach ulcer",
    "rheumatic_fever": "Rheumatic fever",
    "hepatitis": "Hepatitis",
    "pregnancy_or_nursing": "Pregnancy or nursing",
    "antibiotic_allergy": "Antibiotic allergy",
    "anesthesia_allergy": "Local anesthesia allergy",
    "heart_problems": "Heart problems",
    "kidney_problems": "Kidney problems",
    "liver_problems": "Liver problems",
    "regular_medication": "Takes medication regularly",
    "blood_pressure": "Blood pressure treatment",
    "blood_thinners": "Blood thinners",
}

HELP_TEXT = """\
[bold]today[/bold]                 today's appointments
[bold]month[/bold] [YYYY-MM]       monthly calendar ([bold]next[/bold] / [bold]prev[/bold] to browse)
[bold]book[/bold] YYYY-MM-DD       book an appointment on a day
[bold]patients[/bold] [term]       list patients, optionally filtered by name/phone/file number
[bold]register[/bold]              register a new patient
[bold]show[/bold] FILE_NO          open a patient's record and ledger
[bold]cost[/bold] [AMOUNT]         set the open patient's agreed cost (blank = 0)
[bold]visit[/bold]                 add a visit to the open patient
[bold]unvisit[/bold] VISIT_ID      remove a visit from the open patient
[bold]delete[/bold] FILE_NO        delete a patient
[bold]quit[/bold]                  leave"""


@dataclass
class DeskSession:
    """Everything the console keeps between commands."""
    directory: PatientDirectory
    ledger: PatientLedger
    board: CalendarBoard
    selected: Patient | None = None


def open_session(backend: str | None = None, today: date | None = None) -> DeskSession:
    patient_repo, appointment_repo = open_repositories(backend)
    return DeskSession(
        directory=PatientDirectory(patient_repo),
        ledger=PatientLedger(patient_repo),
        board=CalendarBoard(AppointmentScheduler(appointment_repo), today=today),
    )


def parse_command(line: str) -> tuple[str, list[str]]:
    """Split a command line into a lowercase command and its arguments."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        raise ValidationError("command", f"Could not read command: {e}")
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("date", f"Expected YYYY-MM-DD, got {value!r}")


def format_amount(amount: float) -> str:
    """Whole amounts without decimals; negative balances keep their sign."""
    if amount == int(amount):
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def format_clock(appointment: Appointment) -> str:
    return appointment.start_time.astimezone().strftime("%H:%M")


# Rendering

def render_appointments(title: str, appointments: list[Appointment]) -> Table:
    table = Table(title=f"{title} ({len(appointments)})")
    table.add_column("Time", style="cyan")
    table.add_column("Patient", style="bold")
    table.add_column("File #")
    table.add_column("Phone")
    table.add_column("Procedure")
    for appointment in appointments:
        patient = appointment.patient
        table.add_row(
            format_clock(appointment),
            patient.full_name if patient else appointment.patient_id,
            patient.file_number if patient else "",
            patient.phone if patient else "",
            appointment.procedure,
        )
    return table


def render_month(grid: MonthGrid) -> Table:
    table = Table(title=str(grid.year_month), show_lines=True)
    for name in WEEKDAY_HEADER:
        table.add_column(name[:3], vertical="top")

    cells = [""] * grid.leading_blank_count
    for day in grid.days:
        number = f"[reverse]{day.day_number}[/reverse]" if day.is_today else f"[bold]{day.day_number}[/bold]"
        lines = [number] + [
            f"{format_clock(a)} {a.patient.full_name if a.patient else ''}".rstrip()
            for a in day.appointments
        ]
        cells.append("\n".join(lines))
    while len(cells) % 7:
        cells.append("")

    for row_start in range(0, len(cells), 7):
        table.add_row(*cells[row_start:row_start + 7])
    return table


def render_patients(patients: list[Patient]) -> Table:
    table = Table(title=f"Patients ({len(patients)})")
    table.add_column("File #", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Phone")
    table.add_column("Registered")
    for patient in patients:
        table.add_row(patient.file_number or "", patient.full_name, patient.phone, (patient.created_at or "")[:10])
    return table


def _flag_line(group) -> str:
    checked = [FLAG_LABELS.get(name, name) for name in group.checked()]
    return ", ".join(checked) if checked else "none"


def render_patient(detail: PatientDetail) -> Panel:
    patient = detail.patient
    totals = detail.totals
    remaining_style = "red" if totals.remaining > 0 else "green"

    info = Table.grid(padding=(0, 2))
    info.add_row("Date of birth", patient.dob)
    info.add_row("Job", patient.job)
    info.add_row("Address", patient.address)
    info.add_row("Phone", patient.phone)
    info.add_row("Email", patient.email)
    info.add_row("Medical history", _flag_line(patient.medical_history))
    info.add_row("Questions", _flag_line(patient.questions))
    medications = _flag_line(patient.medications)
    if patient.medications.other:
        medications += f" (other: {patient.medications.other})"
    info.add_row("Medications", medications)
    info.add_row("Agreed cost", format_amount(parse_amount(patient.total_cost)))
    info.add_row("Paid", f"[green]{format_amount(totals.total_paid)}[/green]")
    info.add_row("Remaining", f"[{remaining_style}]{format_amount(totals.remaining)}[/{remaining_style}]")

    visits = Table(title="Visits")
    visits.add_column("Id", style="dim")
    visits.add_column("Date")
    visits.add_column("Procedure")
    visits.add_column("Paid", justify="right")
    for visit in patient.visits:
        visits.add_row(visit.id[:8], visit.visit_date, visit.procedure, format_amount(parse_amount(visit.paid_amount)))

    body = Table.grid()
    body.add_row(info)
    body.add_row(visits)
    return Panel(body, title=f"#{patient.file_number} {patient.full_name}")


# Command handlers

def _require_selected(session: DeskSession) -> Patient:
    if session.selected is None:
        raise ValidationError("patient", "Open a patient first: show FILE_NO")
    return session.selected


def _require_arg(args: list[str], name: str) -> str:
    if not args:
        raise ValidationError(name, f"Missing {name}")
    return args[0]


def _lookup(session: DeskSession, file_number: str) -> Patient:
    if not session.directory.patients:
        session.directory.load()
    patient = session.directory.find_by_file_number(file_number)
    if patient is None:
        raise ValidationError("file_number", f"No patient with file number {file_number}")
    return patient


def _store_patient(session: DeskSession, patient: Patient) -> None:
    session.selected = patient
    session.directory.replace(patient)


def handle_today(session: DeskSession, args: list[str]):
    return render_appointments("Today's appointments", session.board.refresh_today())


def handle_month(session: DeskSession, args: list[str]):
    year_month = YearMonth.parse(args[0]) if args else session.board.current_month
    return render_month(session.board.show_month(year_month))


def handle_next(session: DeskSession, args: list[str]):
    return render_month(session.board.next_month())


def handle_prev(session: DeskSession, args: list[str]):
    return render_month(session.board.previous_month())


def handle_patients(session: DeskSession, args: list[str]):
    session.directory.load()
    return render_patients(session.directory.filter(" ".join(args)))


def handle_show(session: DeskSession, args: list[str]):
    session.directory.load()
    session.selected = _lookup(session, _require_arg(args, "file number"))
    return render_patient(PatientDetail.of(session.selected))


def handle_cost(session: DeskSession, args: list[str]):
    patient = _require_selected(session)
    _store_patient(session, session.ledger.set_agreed_cost(patient, args[0] if args else ""))
    return render_patient(PatientDetail.of(session.selected))


def handle_visit(session: DeskSession, args: list[str]):
    patient = _require_selected(session)
    draft = VisitDraft(
        procedure=Prompt.ask("Procedure", console=console),
        visit_date=Prompt.ask("Visit date", default=date.today().isoformat(), console=console),
        paid_amount=Prompt.ask("Paid amount", default="0", console=console),
    )
    _store_patient(session, session.ledger.add_visit(patient, draft))
    return render_patient(PatientDetail.of(session.selected))


def handle_unvisit(session: DeskSession, args: list[str]):
    patient = _require_selected(session)
    prefix = _require_arg(args, "visit id")
    matches = [v for v in patient.visits if v.id.startswith(prefix)]
    if len(matches) > 1:
        raise ValidationError("visit_id", f"Visit id {prefix!r} is ambiguous")
    visit_id = matches[0].id if matches else prefix
    if not Confirm.ask("Delete this visit record? This cannot be undone", console=console):
        return "Cancelled."
    _store_patient(session, session.ledger.remove_visit(patient, visit_id))
    return render_patient(PatientDetail.of(session.selected))


def handle_book(session: DeskSession, args: list[str]):
    day = parse_day(_require_arg(args, "date"))
    term = Prompt.ask("Search patient (name, phone or file number)", console=console)
    candidates = session.directory.search(term)
    if not candidates:
        raise ValidationError("patient_id", "No matching patient")
    for index, patient in enumerate(candidates, start=1):
        console.print(f"  {index}. {patient.full_name}  #{patient.file_number}  {patient.phone}")
    choice = Prompt.ask(
        "Patient", choices=[str(i) for i in range(1, len(candidates) + 1)], default="1", console=console
    )
    patient = candidates[int(choice) - 1]
    time_of_day = Prompt.ask("Time", default="12:00", console=console)
    procedure = Prompt.ask("Procedure", console=console)

    appointment = session.board.book(patient.id, day, time_of_day, procedure)
    return f"Booked {patient.full_name} on {day.isoformat()} at {format_clock(appointment)}."


def _ask_flags(group) -> dict[str, bool]:
    return {
        name: Confirm.ask(FLAG_LABELS.get(name, name), default=False, console=console)
        for name in group.RECORD_KEYS
    }


def handle_register(session: DeskSession, args: list[str]):
    draft = PatientDraft(
        full_name=Prompt.ask("Full name", console=console),
        dob=Prompt.ask("Date of birth", default="", console=console),
        job=Prompt.ask("Job", default="", console=console),
        address=Prompt.ask("Address", default="", console=console),
        phone=Prompt.ask("Phone", default="", console=console),
        email=Prompt.ask("Email", default="", console=console),
        medical_history=_ask_flags(MedicalHistory),
        questions=_ask_flags(MedicalQuestions),
        medications=_ask_flags(Medications),
        other_medication=Prompt.ask("Other medication", default="", console=console),
    )
    patient = session.directory.register(draft)
    return f"Registered {patient.full_name} as file #{patient.file_number}."


def handle_delete(session: DeskSession, args: list[str]):
    patient = _lookup(session, _require_arg(args, "file number"))
    if not Confirm.ask(f"Delete {patient.full_name} permanently? This cannot be undone", console=console):
        return "Cancelled."
    session.directory.delete(patient.id)
    if session.selected is not None and session.selected.id == patient.id:
        session.selected = None
    return f"Deleted {patient.full_name}."


def handle_help(session: DeskSession, args: list[str]):
    return HELP_TEXT


COMMAND_HANDLERS = {
    "today": handle_today,
    "month": handle_month,
    "next": handle_next,
    "prev": handle_prev,
    "patients": handle_patients,
    "show": handle_show,
    "cost": handle_cost,
    "visit": handle_visit,
    "unvisit": handle_unvisit,
    "book": handle_book,
    "register": handle_register,
    "delete": handle_delete,
    "help": handle_help,
}


def process_command(session: DeskSession, line: str):
    """Run one command line and return something printable."""
    command, args = parse_command(line)
    handler = COMMAND_HANDLERS.get(command)
    if handler is None:
        raise ValidationError("command", f"Unknown command {command!r}. Type 'help'.")
    return handler(session, args)


def main():
    """Main console loop."""
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    try:
        session = open_session()
    except ClinicDeskError as e:
        logger.error("Could not open the store: %s", e)
        console.print(f"[bold red]Could not open the store:[/bold red] {e}")
        return

    console.print("[bold blue]Clinic front desk[/bold blue]")
    console.print("Type 'help' for commands, 'quit' to leave.\n")
    try:
        console.print(handle_today(session, []))
    except ClinicDeskError as e:
        console.print(f"[bold red]Error:[/bold red] {e}\n")

    is_tty = sys.stdin.isatty()

    while True:
        try:
            line = console.input("[bold green]desk>[/bold green] ").strip()
            # Echo input when stdin is piped (not interactive)
            if not is_tty and line:
                console.print(f"[dim]{line}[/dim]")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[bold blue]Goodbye![/bold blue]")
            break

        if not line:
            continue

        if line.lower() in ("quit", "exit"):
            console.print("[bold blue]Goodbye![/bold blue]")
            break

        try:
            console.print(process_command(session, line), "\n")
        except ClinicDeskError as e:
            console.print(f"[bold red]Error:[/bold red] {e}\n")
        except Exception as e:
            logger.exception("Command failed: %s", line)
            console.print(f"[bold red]Error:[/bold red] {e}\n")


if __name__ == "__main__":
    main()

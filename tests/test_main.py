"""Tests for the front desk console commands."""

from datetime import date
from unittest.mock import patch

import pytest
from rich.panel import Panel
from rich.table import Table

from clinic_desk import main as desk
from clinic_desk.directory import PatientDraft
from clinic_desk.errors import PersistenceError, ValidationError
from clinic_desk.main import format_amount, open_session, parse_command, parse_day, process_command
from clinic_desk.scheduler import YearMonth

TODAY = date(2024, 3, 15)


@pytest.fixture
def session():
    return open_session("sqlite", today=TODAY)


@pytest.fixture
def sara(session):
    return session.directory.register(PatientDraft(full_name="Sara Hassan", phone="01112222222"))


class TestParsing:
    """Tests for command line parsing helpers."""

    def test_parse_command(self):
        assert parse_command("SHOW 12") == ("show", ["12"])

    def test_quoted_arguments(self):
        assert parse_command('patients "sara hassan"') == ("patients", ["sara hassan"])

    def test_blank_line(self):
        assert parse_command("   ") == ("", [])

    def test_unbalanced_quotes(self):
        with pytest.raises(ValidationError):
            parse_command('patients "sara')

    def test_parse_day(self):
        assert parse_day("2024-03-15") == TODAY

    def test_parse_day_invalid(self):
        with pytest.raises(ValidationError):
            parse_day("15/03/2024")

    @pytest.mark.parametrize("amount, expected", [
        (500, "500"),
        (1500.0, "1,500"),
        (250.5, "250.50"),
        (-150, "-150"),
    ])
    def test_format_amount(self, amount, expected):
        assert format_amount(amount) == expected


class TestCommands:
    """Tests for command dispatch against a local store."""

    def test_unknown_command(self, session):
        with pytest.raises(ValidationError):
            process_command(session, "fly")

    def test_help(self, session):
        assert "register" in process_command(session, "help")

    def test_month(self, session):
        assert isinstance(process_command(session, "month 2024-02"), Table)
        assert session.board.current_month == YearMonth(2024, 2)
        process_command(session, "next")
        assert session.board.current_month == YearMonth(2024, 3)

    def test_show_selects_patient(self, session, sara):
        assert isinstance(process_command(session, f"show {sara.file_number}"), Panel)
        assert session.selected.id == sara.id

    def test_show_unknown_file_number(self, session, sara):
        with pytest.raises(ValidationError):
            process_command(session, "show 99")

    def test_cost_requires_open_patient(self, session):
        with pytest.raises(ValidationError):
            process_command(session, "cost 100")

    def test_cost_and_visit(self, session, sara):
        process_command(session, f"show {sara.file_number}")
        process_command(session, "cost 1000")

        with patch("clinic_desk.main.Prompt.ask", side_effect=["كشف", "2024-03-15", "300"]):
            process_command(session, "visit")

        patient = session.selected
        assert patient.total_cost == 1000
        assert [v.procedure for v in patient.visits] == ["كشف"]
        assert session.directory.find_by_file_number(sara.file_number).visits == patient.visits

    def test_book(self, session, sara):
        with patch("clinic_desk.main.Prompt.ask", side_effect=["sara", "1", "14:00", "كشف"]):
            message = process_command(session, "book 2024-03-15")

        assert "14:00" in message
        assert [a.patient.full_name for a in session.board.todays_appointments] == ["Sara Hassan"]

    def test_book_without_match(self, session):
        with patch("clinic_desk.main.Prompt.ask", side_effect=["nobody"]):
            with pytest.raises(ValidationError):
                process_command(session, "book 2024-03-15")

    def test_delete_cancelled(self, session, sara):
        with patch("clinic_desk.main.Confirm.ask", return_value=False):
            assert process_command(session, f"delete {sara.file_number}") == "Cancelled."
        assert session.directory.repo.get_by_id(sara.id) is not None

    def test_delete_confirmed(self, session, sara):
        process_command(session, f"show {sara.file_number}")
        with patch("clinic_desk.main.Confirm.ask", return_value=True):
            process_command(session, f"delete {sara.file_number}")
        assert session.directory.repo.get_by_id(sara.id) is None
        assert session.selected is None


class TestStartup:
    """Tests for the console entry point when the store misbehaves."""

    @patch("clinic_desk.main.console.input", side_effect=EOFError)
    @patch("clinic_desk.views.CalendarBoard.refresh_today", side_effect=PersistenceError("network down"))
    @patch("clinic_desk.main.open_session")
    def test_failing_today_list_reaches_loop(self, mock_open, mock_refresh, mock_input, session):
        mock_open.return_value = session

        desk.main()

        mock_refresh.assert_called_once()
        mock_input.assert_called_once()

    @patch("clinic_desk.main.console.input")
    @patch("clinic_desk.main.open_session", side_effect=PersistenceError("CLINIC_STORE_URL is not set"))
    def test_unopenable_store_exits_cleanly(self, mock_open, mock_input):
        desk.main()

        mock_open.assert_called_once()
        mock_input.assert_not_called()

"""
Pydantic model validation tests.

Ensures all models validate correctly and reject invalid data.

Run with: pytest tests/unit/test_models.py -v
"""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)


class TestTicketCreate:
    """Test TicketCreate model validation."""

    def test_valid_ticket_create(self):
        """Values are trimmed and severity stays optional."""
        from models.ticket import CallType, TicketCreate

        data = TicketCreate(
            asset_id="  LAP-001 ",
            call_type="network",
            problem_description="No connectivity on floor 2",
            location="Admin Block",
        )
        assert data.asset_id == "LAP-001"
        assert data.call_type == CallType.NETWORK
        assert data.severity is None

    @pytest.mark.parametrize("field", ["asset_id", "problem_description", "location"])
    def test_blank_fields_rejected(self, field):
        from models.ticket import TicketCreate

        payload = {
            "asset_id": "LAP-001",
            "call_type": "hardware",
            "problem_description": "Broken",
            "location": "Admin Block",
        }
        payload[field] = "   "
        with pytest.raises(ValidationError) as exc_info:
            TicketCreate(**payload)
        assert exc_info.value.error_count() == 1

    def test_unknown_call_type(self):
        from models.ticket import TicketCreate

        with pytest.raises(ValidationError):
            TicketCreate(
                asset_id="LAP-001",
                call_type="plumbing",
                problem_description="Leak",
                location="Admin Block",
            )

    def test_description_length_limit(self):
        from models.ticket import TicketCreate

        with pytest.raises(ValidationError):
            TicketCreate(
                asset_id="LAP-001",
                call_type="other",
                problem_description="x" * 1001,
                location="Admin Block",
            )


class TestTicket:
    """Test ticket document behaviour."""

    def _ticket(self, **overrides):
        from models.ticket import Ticket

        fields = dict(
            id="t-1",
            ticket_id="TKT-0001",
            asset_id="LAP-001",
            call_type="software",
            problem_description="Office fails to start",
            location="Admin Block",
            raised_by="u-user",
            created_at=NOW,
            updated_at=NOW,
        )
        fields.update(overrides)
        return Ticket(**fields)

    def test_defaults(self):
        from models.ticket import Severity, TicketStatus

        ticket = self._ticket()
        assert ticket.status == TicketStatus.OPEN
        assert ticket.severity == Severity.MEDIUM
        assert ticket.action_logs == []
        assert ticket.reassign_request is None
        assert ticket.has_pending_reassign is False

    def test_work_log_count_ignores_system_entries(self):
        from models.ticket import ActionLogEntry, LogKind

        ticket = self._ticket(
            action_logs=[
                ActionLogEntry(action="Ticket created", performed_by="u-user", timestamp=NOW),
                ActionLogEntry(
                    action="Checked cabling", performed_by="u-e1", timestamp=NOW, kind=LogKind.WORK
                ),
            ]
        )
        assert ticket.work_log_count == 1

    def test_reassign_request_discriminated_by_status(self):
        from models.ticket import ApprovedReassign, PendingReassign, Ticket

        pending = self._ticket(
            reassign_request={
                "status": "pending",
                "requested_by": "u-e1",
                "requested_to": "u-e2",
                "reason": "Needs a developer",
                "requested_at": NOW,
            }
        )
        assert isinstance(pending.reassign_request, PendingReassign)
        assert pending.has_pending_reassign is True

        approved = Ticket.model_validate_json(
            self._ticket(
                reassign_request=ApprovedReassign(
                    requested_by="u-e1",
                    requested_to="u-e2",
                    reason="Needs a developer",
                    requested_at=NOW,
                    decided_by="u-admin",
                    decided_at=NOW,
                )
            ).model_dump_json()
        )
        assert isinstance(approved.reassign_request, ApprovedReassign)
        assert approved.has_pending_reassign is False

    def test_decided_request_requires_decider(self):
        with pytest.raises(ValidationError):
            self._ticket(
                reassign_request={
                    "status": "rejected",
                    "requested_by": "u-e1",
                    "requested_to": "u-e2",
                    "reason": "Needs a developer",
                    "requested_at": NOW,
                }
            )


class TestRosterModels:
    """Test roster date handling and shift invariants."""

    def test_date_normalization(self):
        from models.roster import as_calendar_date

        assert as_calendar_date("2026-03-04") == date(2026, 3, 4)
        assert as_calendar_date("2026-03-04T23:30:00Z") == date(2026, 3, 4)
        assert as_calendar_date("2026-03-04T23:30:00-05:00") == date(2026, 3, 5)
        assert as_calendar_date(datetime(2026, 3, 4, 23, 30)) == date(2026, 3, 4)
        with pytest.raises(ValueError):
            as_calendar_date("04/03/2026")

    def test_timestamps_use_site_calendar_from_context(self):
        from zoneinfo import ZoneInfo

        from models.roster import RosterCreate, ShiftUpdate, as_calendar_date

        kolkata = ZoneInfo("Asia/Kolkata")
        assert as_calendar_date("2026-03-03T18:30:00.000Z", kolkata) == date(2026, 3, 4)
        assert as_calendar_date("2026-03-03", kolkata) == date(2026, 3, 3)

        update = ShiftUpdate.model_validate(
            {"date": "2026-03-03T18:30:00.000Z", "shift_type": "G-Shift"},
            context={"tz": kolkata},
        )
        assert update.date == date(2026, 3, 4)

        created = RosterCreate.model_validate(
            {
                "week_start_date": "2026-03-01T18:30:00Z",
                "week_end_date": "2026-03-07T18:30:00Z",
                "engineers": [
                    {
                        "engineer_name": "Bikash Engineer",
                        "job_role": "ITFM Engineer",
                        "location": "Numaligarh",
                        "contact_no": "N/A",
                        "shifts": [{"date": "2026-03-03T18:30:00Z", "shift_type": "A-Shift"}],
                    }
                ],
            },
            context={"tz": kolkata},
        )
        assert (created.week_start_date, created.week_end_date) == (date(2026, 3, 2), date(2026, 3, 8))
        assert created.engineers[0].shifts[0].date == date(2026, 3, 4)

    def test_shift_type_round_trips_exactly(self):
        from models.roster import ShiftEntry

        entry = ShiftEntry(date="2026-03-04", shift_type="Township")
        assert entry.model_dump(mode="json") == {"date": "2026-03-04", "shift_type": "Township"}

    def test_unknown_shift_type(self):
        from models.roster import ShiftEntry

        with pytest.raises(ValidationError):
            ShiftEntry(date="2026-03-04", shift_type="C-Shift")

    def test_duplicate_shift_dates_rejected(self):
        from models.roster import RosterEngineer

        with pytest.raises(ValidationError):
            RosterEngineer(
                engineer_name="Bikash Engineer",
                job_role="ITFM Engineer",
                location="Numaligarh",
                contact_no="N/A",
                shifts=[
                    {"date": "2026-03-04", "shift_type": "G-Shift"},
                    {"date": "2026-03-04T12:00:00Z", "shift_type": "WO"},
                ],
            )

    def test_entry_ids_are_unique(self):
        from models.roster import RosterEngineer

        rows = [
            RosterEngineer(
                engineer_name="Manual", job_role="Technician", location="Township", contact_no="N/A"
            )
            for _ in range(2)
        ]
        assert rows[0].entry_id != rows[1].entry_id

    def test_overlap_is_inclusive(self):
        from models.roster import DutyRoster

        roster = DutyRoster(
            id="r-1",
            week_start_date=date(2026, 3, 2),
            week_end_date=date(2026, 3, 8),
            created_by="u-admin",
            created_at=NOW,
            updated_at=NOW,
        )
        assert roster.title == "Duty Roster"
        assert roster.covers(date(2026, 3, 8))
        assert not roster.covers(date(2026, 3, 9))
        assert roster.overlaps(date(2026, 3, 8), date(2026, 3, 14))
        assert not roster.overlaps(date(2026, 3, 9), date(2026, 3, 15))


class TestUser:
    def test_role_helpers(self):
        from models.user import Role, User

        admin = User(id="u-1", name="Admin", email="a@itfm.test", role="admin")
        engineer = User(id="u-2", name="Eng", email="e@itfm.test", role=Role.ENGINEER)
        assert admin.is_admin and not admin.is_engineer
        assert engineer.is_engineer and not engineer.is_admin
        assert User(id="u-3", name="Plain", email="p@itfm.test").role == Role.USER


class TestApiResponse:
    def test_envelope_defaults(self):
        from models.response import ApiResponse

        response = ApiResponse(data={"id": "t-1"})
        assert response.success is True
        assert response.count is None

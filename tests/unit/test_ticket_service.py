"""
Ticket lifecycle tests against an in-memory SQLite store.

Run with: pytest tests/unit/test_ticket_service.py -v
"""

import pytest

from models.notification import NotificationType
from models.ticket import (
    ApprovedReassign,
    CallType,
    LogKind,
    PendingReassign,
    RejectedReassign,
    Severity,
    TicketCreate,
    TicketStatus,
)
from models.user import Role
from utils.error_handling import (
    AuthorizationError,
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def _raise(service, user, **overrides):
    payload = dict(
        asset_id="PC-0042",
        call_type="hardware",
        problem_description="Monitor flickers after boot",
        location="Admin Block, Room 12",
    )
    payload.update(overrides)
    return service.create_ticket(TicketCreate(**payload), user)


@pytest.fixture
def assigned(ticket_service, people):
    ticket = _raise(ticket_service, people["user"])
    return ticket_service.assign_ticket(ticket.id, people["e1"].id, people["admin"])


class TestCreateTicket:
    def test_defaults_and_initial_log(self, ticket_service, people, clock):
        ticket = _raise(ticket_service, people["user"])

        assert ticket.ticket_id == "TKT-0001"
        assert ticket.status == TicketStatus.OPEN
        assert ticket.severity == Severity.MEDIUM
        assert ticket.call_type == CallType.HARDWARE
        assert ticket.assigned_to is None
        assert ticket.resolved_at is None
        assert ticket.created_at == clock.now
        assert len(ticket.action_logs) == 1
        entry = ticket.action_logs[0]
        assert entry.action == "Ticket created"
        assert entry.details == "Ticket raised for hardware"
        assert entry.kind == LogKind.SYSTEM

    def test_ticket_codes_are_sequential(self, ticket_service, people):
        codes = [_raise(ticket_service, people["user"]).ticket_id for _ in range(3)]
        assert codes == ["TKT-0001", "TKT-0002", "TKT-0003"]

    def test_explicit_severity_is_kept(self, ticket_service, people):
        ticket = _raise(ticket_service, people["user"], severity="critical")
        assert ticket.severity == Severity.CRITICAL

    def test_critical_ticket_alerts_admins(self, ticket_service, people, sent):
        _raise(ticket_service, people["user"], severity="critical")

        assert [n.type for n in sent()] == [NotificationType.NEW_TICKET, NotificationType.CRITICAL]
        assert sent()[1].for_role == Role.ADMIN

    def test_notifies_admin_role(self, ticket_service, people, sent):
        ticket = _raise(ticket_service, people["user"])

        (notification,) = sent()
        assert notification.type == NotificationType.NEW_TICKET
        assert notification.for_role == Role.ADMIN
        assert notification.for_user is None
        assert notification.ticket == ticket.id
        assert notification.message == "Ticket TKT-0001 raised by Esha User"

    def test_notification_failure_does_not_undo_creation(
        self, ticket_service, people, notification_store
    ):
        notification_store.put.side_effect = RuntimeError("table unavailable")

        ticket = _raise(ticket_service, people["user"])

        assert ticket_service.get_ticket(ticket.id, people["admin"]).ticket_id == "TKT-0001"


class TestAssign:
    def test_assign_sets_engineer_status_and_severity(self, ticket_service, people, sent):
        ticket = _raise(ticket_service, people["user"])
        result = ticket_service.assign_ticket(
            ticket.id, people["e1"].id, people["admin"], severity="high"
        )

        assert result.status == TicketStatus.ASSIGNED
        assert result.assigned_to == people["e1"].id
        assert result.severity == Severity.HIGH
        assert result.action_logs[-1].action == "Ticket assigned"
        assert result.action_logs[-1].details == "Assigned to Bikash Engineer (E001)"

        assigned_note, raiser_note = sent()[-2:]
        assert assigned_note.type == NotificationType.ASSIGNED
        assert assigned_note.for_user == people["e1"].id
        assert raiser_note.type == NotificationType.ACTION_UPDATE
        assert raiser_note.for_user == people["user"].id

    def test_escalation_to_critical_flags_engineer_notice(self, ticket_service, people, sent):
        ticket = _raise(ticket_service, people["user"])
        ticket_service.assign_ticket(ticket.id, people["e1"].id, people["admin"], severity="critical")

        engineer_note = sent()[-2]
        assert engineer_note.type == NotificationType.CRITICAL
        assert engineer_note.title == "Critical Ticket Assigned"

    def test_assign_requires_admin(self, ticket_service, people):
        ticket = _raise(ticket_service, people["user"])
        with pytest.raises(AuthorizationError):
            ticket_service.assign_ticket(ticket.id, people["e1"].id, people["e2"])

    @pytest.mark.parametrize("engineer_key", ["inactive", "user"])
    def test_assign_rejects_inactive_or_non_engineer(self, ticket_service, people, engineer_key):
        ticket = _raise(ticket_service, people["user"])
        with pytest.raises(NotFoundError):
            ticket_service.assign_ticket(ticket.id, people[engineer_key].id, people["admin"])
        assert ticket_service.get_ticket(ticket.id, people["admin"]).status == TicketStatus.OPEN

    def test_assign_unknown_ticket(self, ticket_service, people):
        with pytest.raises(NotFoundError):
            ticket_service.assign_ticket("missing", people["e1"].id, people["admin"])

    def test_assign_rejects_bad_severity(self, ticket_service, people):
        ticket = _raise(ticket_service, people["user"])
        with pytest.raises(ValidationError):
            ticket_service.assign_ticket(ticket.id, people["e1"].id, people["admin"], severity="urgent")

    def test_assign_clears_pending_reassignment(self, ticket_service, people, assigned):
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Out of my area", people["e1"])

        result = ticket_service.assign_ticket(assigned.id, people["e2"].id, people["admin"])

        assert result.reassign_request is None
        assert result.assigned_to == people["e2"].id


class TestStatusAndLogs:
    def test_resolve_requires_work_log(self, ticket_service, people, assigned):
        with pytest.raises(ConflictError):
            ticket_service.update_status(assigned.id, "resolved", people["e1"])

        stored = ticket_service.get_ticket(assigned.id, people["admin"])
        assert stored.status == TicketStatus.ASSIGNED
        assert stored.resolved_at is None

    def test_resolve_shortcut_uses_same_guard(self, ticket_service, people, assigned):
        with pytest.raises(ConflictError):
            ticket_service.resolve_ticket(assigned.id, people["admin"])

    def test_end_to_end_resolution(self, ticket_service, people, assigned, clock, sent):
        ticket_service.add_action_log(assigned.id, "Diagnosed issue", people["e1"])
        clock.set(2026, 3, 4, 11, 30)

        result = ticket_service.update_status(assigned.id, "resolved", people["e1"])

        assert result.status == TicketStatus.RESOLVED
        assert result.resolved_at == clock.now
        assert result.action_logs[-1].action == "Status changed to resolved"
        last = sent()[-1]
        assert last.type == NotificationType.RESOLVED
        assert last.for_user == people["user"].id

    def test_leaving_resolved_clears_resolved_at(self, ticket_service, people, assigned):
        ticket_service.add_action_log(assigned.id, "Replaced cable", people["e1"])
        ticket_service.resolve_ticket(assigned.id, people["e1"])

        reopened = ticket_service.update_status(assigned.id, "in-progress", people["admin"])

        assert reopened.status == TicketStatus.IN_PROGRESS
        assert reopened.resolved_at is None

    def test_status_update_by_other_engineer_is_rejected(self, ticket_service, people, assigned):
        with pytest.raises(AuthorizationError):
            ticket_service.update_status(assigned.id, "in-progress", people["e2"])

    def test_invalid_status_is_validation_error(self, ticket_service, people, assigned):
        with pytest.raises(ValidationError):
            ticket_service.update_status(assigned.id, "closed", people["e1"])

    def test_identical_logs_are_both_kept(self, ticket_service, people, assigned):
        ticket_service.add_action_log(assigned.id, "Checked cabling", people["e1"], details="same")
        result = ticket_service.add_action_log(
            assigned.id, "Checked cabling", people["e1"], details="same"
        )

        work = [entry for entry in result.action_logs if entry.kind == LogKind.WORK]
        assert len(work) == 2
        assert result.status == TicketStatus.ASSIGNED

    def test_add_log_requires_assignee_or_admin(self, ticket_service, people, assigned):
        with pytest.raises(AuthorizationError):
            ticket_service.add_action_log(assigned.id, "Drive-by fix", people["user"])

    def test_add_log_rejects_blank_action(self, ticket_service, people, assigned):
        with pytest.raises(ValidationError):
            ticket_service.add_action_log(assigned.id, "   ", people["e1"])

    @pytest.mark.parametrize("action", [5, ["Rebooted"], {"text": "Rebooted"}])
    def test_add_log_rejects_non_text_action(self, ticket_service, people, assigned, action):
        with pytest.raises(ValidationError) as exc_info:
            ticket_service.add_action_log(assigned.id, action, people["e1"])
        assert exc_info.value.message == "action must be a string"
        assert ticket_service.get_ticket(assigned.id, people["admin"]).work_log_count == 0


class TestReassignment:
    @pytest.mark.parametrize("reason", [None, "  ", 42])
    def test_request_needs_text_reason(self, ticket_service, people, assigned, reason):
        with pytest.raises(ValidationError):
            ticket_service.request_reassign(assigned.id, people["e2"].id, reason, people["e1"])
        assert ticket_service.get_ticket(assigned.id, people["admin"]).reassign_request is None

    def test_request_then_approve(self, ticket_service, people, assigned, sent):
        requested = ticket_service.request_reassign(
            assigned.id, people["e2"].id, "Needs a developer", people["e1"]
        )
        assert isinstance(requested.reassign_request, PendingReassign)
        assert sent()[-1].type == NotificationType.REASSIGN_REQUEST
        assert sent()[-1].for_role == Role.ADMIN

        result = ticket_service.handle_reassign_request(assigned.id, "approve", people["admin"])

        assert result.assigned_to == people["e2"].id
        assert isinstance(result.reassign_request, ApprovedReassign)
        assert result.reassign_request.status == "approved"
        assert result.reassign_request.decided_by == people["admin"].id
        assert result.action_logs[-1].details == "Reassigned from Bikash Engineer to Chitra Engineer"
        new_note, previous_note = sent()[-2:]
        assert new_note.type == NotificationType.REASSIGNED
        assert new_note.for_user == people["e2"].id
        assert previous_note.for_user == people["e1"].id

    def test_request_then_reject(self, ticket_service, people, assigned, sent):
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Busy", people["e1"])

        result = ticket_service.handle_reassign_request(assigned.id, "reject", people["admin"])

        assert result.assigned_to == people["e1"].id
        assert isinstance(result.reassign_request, RejectedReassign)
        assert result.reassign_request.status == "rejected"
        assert sent()[-1].for_user == people["e1"].id
        assert sent()[-1].title == "Reassignment Rejected"

    def test_second_pending_request_is_rejected(self, ticket_service, people, assigned):
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Busy", people["e1"])
        with pytest.raises(ConflictError):
            ticket_service.request_reassign(assigned.id, people["e2"].id, "Still busy", people["e1"])

    def test_new_request_allowed_after_rejection(self, ticket_service, people, assigned):
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Busy", people["e1"])
        ticket_service.handle_reassign_request(assigned.id, "reject", people["admin"])

        result = ticket_service.request_reassign(assigned.id, people["e2"].id, "Please", people["e1"])

        assert isinstance(result.reassign_request, PendingReassign)

    def test_only_assignee_may_request(self, ticket_service, people, assigned):
        with pytest.raises(AuthorizationError):
            ticket_service.request_reassign(assigned.id, people["e2"].id, "Mine now", people["admin"])

    def test_candidate_must_be_active_engineer(self, ticket_service, people, assigned):
        with pytest.raises(NotFoundError):
            ticket_service.request_reassign(
                assigned.id, people["inactive"].id, "Try Dev", people["e1"]
            )

    def test_decision_without_pending_request(self, ticket_service, people, assigned):
        with pytest.raises(ConflictError):
            ticket_service.handle_reassign_request(assigned.id, "approve", people["admin"])

    def test_decision_requires_admin_and_known_action(self, ticket_service, people, assigned):
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Busy", people["e1"])
        with pytest.raises(AuthorizationError):
            ticket_service.handle_reassign_request(assigned.id, "approve", people["e1"])
        with pytest.raises(ValidationError):
            ticket_service.handle_reassign_request(assigned.id, "escalate", people["admin"])


class TestVisibility:
    def test_list_is_filtered_per_role(self, ticket_service, people):
        mine = _raise(ticket_service, people["user"])
        theirs = _raise(ticket_service, people["other_user"])
        ticket_service.assign_ticket(theirs.id, people["e2"].id, people["admin"])

        assert {t.id for t in ticket_service.list_tickets(people["admin"])} == {mine.id, theirs.id}
        assert [t.id for t in ticket_service.list_tickets(people["user"])] == [mine.id]
        assert [t.id for t in ticket_service.list_tickets(people["e2"])] == [theirs.id]
        assert ticket_service.list_tickets(people["e1"]) == []

    def test_get_ticket_checks_access(self, ticket_service, people):
        ticket = _raise(ticket_service, people["user"])
        with pytest.raises(AuthorizationError):
            ticket_service.get_ticket(ticket.id, people["other_user"])
        with pytest.raises(NotFoundError):
            ticket_service.get_ticket("nope", people["admin"])


class TestReporting:
    def test_stats(self, ticket_service, people, assigned):
        _raise(ticket_service, people["user"], call_type="network", severity="low")
        ticket_service.request_reassign(assigned.id, people["e2"].id, "Busy", people["e1"])

        stats = ticket_service.get_stats(people["admin"])

        assert stats.total == 2
        assert stats.by_status["open"] == 1
        assert stats.by_status["assigned"] == 1
        assert stats.by_status["resolved"] == 0
        assert stats.pending_reassignments == 1
        assert stats.by_call_type == {"hardware": 1, "network": 1}
        assert stats.by_severity == {"medium": 1, "low": 1}

    def test_workload_counts_unresolved(self, ticket_service, people, assigned):
        workload = {w.id: w.active_tickets for w in ticket_service.get_workload(people["admin"])}
        assert workload == {people["e1"].id: 1, people["e2"].id: 0}

    def test_reporting_is_admin_only(self, ticket_service, people):
        with pytest.raises(AuthorizationError):
            ticket_service.get_stats(people["user"])


class TestOptimisticLocking:
    def test_stale_write_is_retried(self, ticket_service, people, assigned, monkeypatch):
        repo = ticket_service.tickets
        real_save = repo.save
        calls = {"n": 0}

        def flaky_save(ticket):
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConcurrentModificationError("lost race")
            return real_save(ticket)

        monkeypatch.setattr(repo, "save", flaky_save)

        result = ticket_service.add_action_log(assigned.id, "Retried entry", people["e1"])

        assert calls["n"] == 2
        assert [e.action for e in result.action_logs].count("Retried entry") == 1

    def test_gives_up_after_retry_budget(self, ticket_service, people, assigned, monkeypatch):
        def always_stale(ticket):
            raise ConcurrentModificationError("lost race")

        monkeypatch.setattr(ticket_service.tickets, "save", always_stale)

        with pytest.raises(ConcurrentModificationError):
            ticket_service.add_action_log(assigned.id, "Never lands", people["e1"])

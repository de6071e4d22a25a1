"""
Ticket lifecycle service.

Owns the ticket state machine: creation, assignment, status changes,
the append-only action log and the engineer-initiated reassignment
workflow. Every mutation is a read-modify-write against one ticket,
retried on optimistic-lock conflicts; notifications go out only after
the write has committed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from models.notification import NotificationType
from models.ticket import (
    ActionLogEntry,
    ApprovedReassign,
    CallType,
    EngineerWorkload,
    LogKind,
    PendingReassign,
    RejectedReassign,
    Severity,
    Ticket,
    TicketCreate,
    TicketStats,
    TicketStatus,
)
from models.user import Role, User
from repositories.ticket_repo import TicketRepository
from repositories.user_repo import UserRepository
from services.notification_service import NotificationService
from utils.error_handling import (
    AuthorizationError,
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from utils.logging_config import get_logger
from utils.validators import ensure_text, parse_enum

logger = get_logger(__name__)

REASSIGN_ACTIONS = ("approve", "reject")


def can_view(user: User, ticket: Ticket) -> bool:
    """Admins see everything; others see tickets they raised or are assigned."""
    if user.is_admin:
        return True
    return user.id in (ticket.raised_by, ticket.assigned_to)


def can_work(user: User, ticket: Ticket) -> bool:
    """Admins and the currently assigned engineer may change a ticket."""
    return user.is_admin or (
        ticket.assigned_to is not None and ticket.assigned_to == user.id
    )


@dataclass
class _Outcome:
    """What a mutation learned while applying, used for notifications after commit."""

    previous_assignee: Optional[User] = None
    new_assignee: Optional[User] = None
    notes: dict = field(default_factory=dict)


class TicketService:
    """Encapsulates ticket lifecycle rules."""

    def __init__(
        self,
        tickets: TicketRepository,
        users: UserRepository,
        notifications: NotificationService,
        clock: Optional[Callable[[], datetime]] = None,
        ticket_id_prefix: str = "TKT",
        ticket_id_width: int = 4,
        max_write_retries: int = 3,
    ):
        self.tickets = tickets
        self.users = users
        self.notifications = notifications
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.ticket_id_prefix = ticket_id_prefix
        self.ticket_id_width = ticket_id_width
        self.max_write_retries = max(1, max_write_retries)

    # Reads

    def get_ticket(self, ticket_id: str, actor: User) -> Ticket:
        ticket = self._load(ticket_id)
        if not can_view(actor, ticket):
            raise AuthorizationError("Not authorized to access this ticket")
        return ticket

    def list_tickets(self, actor: User) -> List[Ticket]:
        """Newest first, filtered through ``can_view``."""
        return [t for t in self.tickets.list_all() if can_view(actor, t)]

    def get_stats(self, actor: User) -> TicketStats:
        self._require_admin(actor)
        by_status = {s.value: 0 for s in TicketStatus}
        by_status.update(self.tickets.count_by("status"))
        reassign = self.tickets.count_by("reassign_status")
        return TicketStats(
            total=sum(by_status.values()),
            by_status=by_status,
            pending_reassignments=reassign.get("pending", 0),
            by_severity=self.tickets.count_by("severity"),
            by_call_type=self.tickets.count_by("call_type"),
        )

    def get_workload(self, actor: User) -> List[EngineerWorkload]:
        self._require_admin(actor)
        return [
            EngineerWorkload(
                id=engineer.id,
                employee_id=engineer.employee_id,
                name=engineer.name,
                department=engineer.department,
                active_tickets=self.tickets.count_active_for(engineer.id),
            )
            for engineer in self.users.list_active_engineers()
        ]

    # Mutations

    def create_ticket(self, data: TicketCreate, actor: User) -> Ticket:
        """Raise a ticket; any authenticated user may do this."""
        now = self.clock()
        severity = data.severity or Severity.MEDIUM
        call_type = CallType(data.call_type)

        def build(number: int) -> Ticket:
            return Ticket(
                id=uuid.uuid4().hex,
                ticket_id=self._format_ticket_id(number),
                asset_id=data.asset_id,
                call_type=call_type,
                problem_description=data.problem_description,
                location=data.location,
                raised_by=actor.id,
                status=TicketStatus.OPEN,
                severity=severity,
                action_logs=[
                    ActionLogEntry(
                        action="Ticket created",
                        details=f"Ticket raised for {call_type.value}",
                        performed_by=actor.id,
                        timestamp=now,
                    )
                ],
                created_at=now,
                updated_at=now,
            )

        ticket = self.tickets.create(build)
        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.ticket_id, "raised_by": actor.id},
        )
        self.notifications.notify_role(
            Role.ADMIN,
            NotificationType.NEW_TICKET,
            "New Ticket Raised",
            f"Ticket {ticket.ticket_id} raised by {actor.name}",
            ticket,
        )
        if ticket.severity == Severity.CRITICAL:
            self.notifications.notify_role(
                Role.ADMIN,
                NotificationType.CRITICAL,
                "Critical Ticket Raised",
                f"Critical ticket {ticket.ticket_id} at {ticket.location}: {ticket.asset_id}",
                ticket,
            )
        return ticket

    def assign_ticket(
        self,
        ticket_id: str,
        engineer_id: str,
        actor: User,
        severity: Optional[str] = None,
    ) -> Ticket:
        """Admin assigns an active engineer; clears any reassignment request."""
        self._require_admin(actor)
        engineer = self.users.get_active_engineer(engineer_id)
        if engineer is None:
            raise NotFoundError("Engineer not found")
        new_severity = parse_enum(Severity, severity, "severity") if severity else None

        def apply(ticket: Ticket, outcome: _Outcome) -> None:
            ticket.assigned_to = engineer.id
            self._set_status(ticket, TicketStatus.ASSIGNED)
            if new_severity is not None:
                ticket.severity = new_severity
            label = f"{engineer.name} ({engineer.employee_id})" if engineer.employee_id else engineer.name
            self._log(ticket, actor, "Ticket assigned", f"Assigned to {label}")
            ticket.reassign_request = None

        ticket, _ = self._mutate(ticket_id, apply)
        logger.info(
            "Ticket assigned",
            extra={"ticket_id": ticket.ticket_id, "engineer_id": engineer.id, "actor": actor.id},
        )
        critical = ticket.severity == Severity.CRITICAL
        self.notifications.notify_user(
            engineer.id,
            NotificationType.CRITICAL if critical else NotificationType.ASSIGNED,
            "Critical Ticket Assigned" if critical else "New Ticket Assigned",
            f"Ticket {ticket.ticket_id} has been assigned to you",
            ticket,
        )
        self.notifications.notify_user(
            ticket.raised_by,
            NotificationType.ACTION_UPDATE,
            "Ticket Assigned",
            f"Your ticket {ticket.ticket_id} has been assigned to {engineer.name}",
            ticket,
        )
        return ticket

    def update_status(self, ticket_id: str, status, actor: User) -> Ticket:
        """
        Set the status directly.

        Any status may be set by an admin or the assigned engineer; reaching
        ``resolved`` additionally needs at least one work log entry.
        """
        new_status = parse_enum(TicketStatus, status, "status")

        def apply(ticket: Ticket, outcome: _Outcome) -> None:
            if not can_work(actor, ticket):
                raise AuthorizationError("Not authorized to update this ticket")
            if new_status == TicketStatus.RESOLVED and ticket.work_log_count == 0:
                raise ConflictError(
                    "At least one action log entry is required before resolving the ticket"
                )
            self._set_status(ticket, new_status)
            self._log(ticket, actor, f"Status changed to {new_status.value}", "Ticket status updated")

        ticket, _ = self._mutate(ticket_id, apply)
        logger.info(
            "Ticket status updated",
            extra={"ticket_id": ticket.ticket_id, "status": new_status.value, "actor": actor.id},
        )
        resolved = new_status == TicketStatus.RESOLVED
        self.notifications.notify_user(
            ticket.raised_by,
            NotificationType.RESOLVED if resolved else NotificationType.ACTION_UPDATE,
            "Ticket Resolved" if resolved else "Ticket Updated",
            f"Your ticket {ticket.ticket_id} status is now: {new_status.value}",
            ticket,
        )
        return ticket

    def resolve_ticket(self, ticket_id: str, actor: User) -> Ticket:
        return self.update_status(ticket_id, TicketStatus.RESOLVED, actor)

    def add_action_log(
        self,
        ticket_id: str,
        action: str,
        actor: User,
        details: Optional[str] = None,
    ) -> Ticket:
        """Append a work entry; never merges identical entries."""
        action = ensure_text(action, "action")

        def apply(ticket: Ticket, outcome: _Outcome) -> None:
            if not can_work(actor, ticket):
                raise AuthorizationError("Not authorized to update this ticket")
            self._log(ticket, actor, action, details, kind=LogKind.WORK)

        ticket, _ = self._mutate(ticket_id, apply)
        logger.info(
            "Action logged",
            extra={"ticket_id": ticket.ticket_id, "actor": actor.id},
        )
        return ticket

    def request_reassign(
        self,
        ticket_id: str,
        candidate_id: str,
        reason: str,
        actor: User,
    ) -> Ticket:
        """The assigned engineer proposes handing the ticket to a colleague."""
        reason = ensure_text(reason, "reason")
        candidate = self.users.get_active_engineer(candidate_id)

        def apply(ticket: Ticket, outcome: _Outcome) -> None:
            if ticket.assigned_to is None or ticket.assigned_to != actor.id:
                raise AuthorizationError("Only the assigned engineer can request reassignment")
            if candidate is None:
                raise NotFoundError("Requested engineer not found")
            if candidate.id == ticket.assigned_to:
                raise ValidationError("Ticket is already assigned to the requested engineer")
            if ticket.has_pending_reassign:
                raise ConflictError("A reassignment request is already pending for this ticket")
            ticket.reassign_request = PendingReassign(
                requested_by=actor.id,
                requested_to=candidate.id,
                reason=reason,
                requested_at=self.clock(),
            )
            self._log(
                ticket, actor, "Reassignment requested", f"Requested reassignment to {candidate.name}"
            )

        ticket, _ = self._mutate(ticket_id, apply)
        logger.info(
            "Reassignment requested",
            extra={"ticket_id": ticket.ticket_id, "candidate_id": candidate.id, "actor": actor.id},
        )
        self.notifications.notify_role(
            Role.ADMIN,
            NotificationType.REASSIGN_REQUEST,
            "Reassignment Request",
            f"{actor.name} requested reassignment for ticket {ticket.ticket_id}",
            ticket,
        )
        return ticket

    def handle_reassign_request(self, ticket_id: str, action: str, actor: User) -> Ticket:
        """Admin approves or rejects the pending request in place."""
        self._require_admin(actor)
        if action not in REASSIGN_ACTIONS:
            raise ValidationError("Invalid action. Use approve or reject")

        def apply(ticket: Ticket, outcome: _Outcome) -> None:
            request = ticket.reassign_request
            if not isinstance(request, PendingReassign):
                raise ConflictError("No pending reassignment request")
            outcome.previous_assignee = self.users.get(ticket.assigned_to)
            previous_name = self._display_name(outcome.previous_assignee, ticket.assigned_to)
            decided = dict(
                request.model_dump(exclude={"status"}),
                decided_by=actor.id,
                decided_at=self.clock(),
            )
            outcome.notes["previous_id"] = ticket.assigned_to
            if action == "approve":
                outcome.new_assignee = self.users.get(request.requested_to)
                new_name = self._display_name(outcome.new_assignee, request.requested_to)
                ticket.assigned_to = request.requested_to
                ticket.reassign_request = ApprovedReassign(**decided)
                self._log(
                    ticket,
                    actor,
                    "Reassignment approved",
                    f"Reassigned from {previous_name} to {new_name}",
                )
            else:
                ticket.reassign_request = RejectedReassign(**decided)
                self._log(
                    ticket,
                    actor,
                    "Reassignment rejected",
                    "Reassignment request was rejected by admin",
                )

        ticket, outcome = self._mutate(ticket_id, apply)
        logger.info(
            "Reassignment decided",
            extra={"ticket_id": ticket.ticket_id, "decision": action, "actor": actor.id},
        )
        previous_id = outcome.notes.get("previous_id")
        if action == "approve":
            self.notifications.notify_user(
                ticket.assigned_to,
                NotificationType.REASSIGNED,
                "Ticket Reassigned to You",
                f"Ticket {ticket.ticket_id} has been reassigned to you",
                ticket,
            )
            self.notifications.notify_user(
                previous_id,
                NotificationType.ACTION_UPDATE,
                "Reassignment Approved",
                f"Your reassignment request for {ticket.ticket_id} was approved",
                ticket,
            )
        else:
            self.notifications.notify_user(
                previous_id,
                NotificationType.ACTION_UPDATE,
                "Reassignment Rejected",
                f"Your reassignment request for {ticket.ticket_id} was rejected",
                ticket,
            )
        return ticket

    # Internals

    def _mutate(
        self, ticket_id: str, apply: Callable[[Ticket, _Outcome], None]
    ) -> Tuple[Ticket, _Outcome]:
        """Load, apply and save with optimistic locking, re-reading on conflicts."""
        for attempt in range(1, self.max_write_retries + 1):
            ticket = self._load(ticket_id)
            outcome = _Outcome()
            apply(ticket, outcome)
            ticket.updated_at = self.clock()
            try:
                return self.tickets.save(ticket), outcome
            except ConcurrentModificationError:
                if attempt == self.max_write_retries:
                    raise
                logger.info(
                    "Ticket write conflict; retrying",
                    extra={"ticket_id": ticket.ticket_id, "attempt": attempt},
                )
        raise ConcurrentModificationError(f"Ticket {ticket_id} could not be updated")

    def _load(self, ticket_id: str) -> Ticket:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def _set_status(self, ticket: Ticket, status: TicketStatus) -> None:
        ticket.status = status
        # resolved_at is present exactly while the ticket is resolved
        ticket.resolved_at = self.clock() if status == TicketStatus.RESOLVED else None

    def _log(
        self,
        ticket: Ticket,
        actor: User,
        action: str,
        details: Optional[str],
        kind: LogKind = LogKind.SYSTEM,
    ) -> None:
        ticket.action_logs.append(
            ActionLogEntry(
                action=action,
                details=details,
                performed_by=actor.id,
                timestamp=self.clock(),
                kind=kind,
            )
        )

    def _format_ticket_id(self, number: int) -> str:
        return f"{self.ticket_id_prefix}-{number:0{self.ticket_id_width}d}"

    @staticmethod
    def _display_name(user: Optional[User], fallback: Optional[str]) -> str:
        return user.name if user else (fallback or "unassigned")

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin role required")

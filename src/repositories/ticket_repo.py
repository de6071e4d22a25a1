"""Ticket persistence with atomic code reservation and optimistic writes."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from sqlalchemy import func, insert, select

from models.ticket import Ticket, TicketStatus
from repositories.postgres_repo import (
    TICKET_COUNTER,
    PostgresRepository,
    tickets_table,
)


def _row(ticket: Ticket) -> dict:
    return {
        "ticket_id": ticket.ticket_id,
        "status": ticket.status.value,
        "severity": ticket.severity.value,
        "call_type": ticket.call_type.value,
        "raised_by": ticket.raised_by,
        "assigned_to": ticket.assigned_to,
        "reassign_status": (
            ticket.reassign_request.status if ticket.reassign_request else None
        ),
        "created_at": ticket.created_at,
        "version": ticket.version,
        "document": ticket.model_dump_json(),
    }


class TicketRepository(PostgresRepository):
    """Stores tickets as versioned JSON documents."""

    def create(self, build: Callable[[int], Ticket]) -> Ticket:
        """
        Reserve the next ticket number and insert the ticket built from it.

        Reservation and insert share one transaction, so a failed insert
        does not burn a number.
        """
        with self.engine.begin() as conn:
            number = self.next_counter_value(conn, TICKET_COUNTER)
            ticket = build(number)
            conn.execute(insert(tickets_table).values(id=ticket.id, **_row(ticket)))
        return ticket

    def get(self, ticket_id: str) -> Optional[Ticket]:
        with self.engine.connect() as conn:
            document = self.fetch_document(conn, tickets_table, ticket_id)
        return Ticket.model_validate_json(document) if document else None

    def save(self, ticket: Ticket) -> Ticket:
        """Persist a mutated ticket read at ``ticket.version``; returns the stored copy."""
        stored = ticket.model_copy(update={"version": ticket.version + 1})
        with self.engine.begin() as conn:
            self.update_versioned(
                conn, tickets_table, ticket.id, ticket.version, _row(stored)
            )
        return stored

    def list_all(self) -> List[Ticket]:
        stmt = select(tickets_table.c.document).order_by(tickets_table.c.created_at.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).scalars().all()
        return [Ticket.model_validate_json(row) for row in rows]

    def count_by(self, column_name: str) -> Dict[str, int]:
        column = tickets_table.c[column_name]
        stmt = select(column, func.count()).group_by(column)
        with self.engine.connect() as conn:
            return {key: count for key, count in conn.execute(stmt) if key is not None}

    def count_active_for(self, engineer_id: str) -> int:
        stmt = select(func.count()).where(
            tickets_table.c.assigned_to == engineer_id,
            tickets_table.c.status != TicketStatus.RESOLVED.value,
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

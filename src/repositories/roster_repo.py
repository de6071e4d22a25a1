"""Duty roster persistence guarding the single-published-roster invariant."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection

from models.roster import DutyRoster, RosterStatus
from repositories.postgres_repo import (
    ROSTER_PUBLISH_GUARD,
    PostgresRepository,
    rosters_table,
)
from utils.error_handling import ConflictError


def _row(roster: DutyRoster) -> dict:
    return {
        "week_start_date": roster.week_start_date,
        "week_end_date": roster.week_end_date,
        "status": roster.status.value,
        "version": roster.version,
        "document": roster.model_dump_json(),
    }


class RosterRepository(PostgresRepository):
    """Stores rosters as versioned JSON documents."""

    def insert(self, roster: DutyRoster) -> DutyRoster:
        with self.engine.begin() as conn:
            if roster.status == RosterStatus.PUBLISHED:
                self._ensure_publishable(conn, roster)
            conn.execute(insert(rosters_table).values(id=roster.id, **_row(roster)))
        return roster

    def save(self, roster: DutyRoster) -> DutyRoster:
        """Persist a mutated roster read at ``roster.version``; returns the stored copy."""
        stored = roster.model_copy(update={"version": roster.version + 1})
        with self.engine.begin() as conn:
            if stored.status == RosterStatus.PUBLISHED:
                self._ensure_publishable(conn, stored)
            self.update_versioned(
                conn, rosters_table, roster.id, roster.version, _row(stored)
            )
        return stored

    def get(self, roster_id: str) -> Optional[DutyRoster]:
        with self.engine.connect() as conn:
            document = self.fetch_document(conn, rosters_table, roster_id)
        return DutyRoster.model_validate_json(document) if document else None

    def delete(self, roster_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(delete(rosters_table).where(rosters_table.c.id == roster_id))
        return result.rowcount == 1

    def list(self, status: Optional[RosterStatus] = None) -> List[DutyRoster]:
        stmt = select(rosters_table.c.document).order_by(rosters_table.c.week_start_date.desc())
        if status is not None:
            stmt = stmt.where(rosters_table.c.status == status.value)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).scalars().all()
        return [DutyRoster.model_validate_json(row) for row in rows]

    def find_published_covering(self, day: date) -> Optional[DutyRoster]:
        stmt = (
            select(rosters_table.c.document)
            .where(
                rosters_table.c.status == RosterStatus.PUBLISHED.value,
                rosters_table.c.week_start_date <= day,
                rosters_table.c.week_end_date >= day,
            )
            .order_by(rosters_table.c.week_start_date.desc())
            .limit(1)
        )
        with self.engine.connect() as conn:
            document = conn.execute(stmt).scalar_one_or_none()
        return DutyRoster.model_validate_json(document) if document else None

    def find_overlapping_published(
        self,
        conn: Connection,
        start: date,
        end: date,
        exclude_id: Optional[str] = None,
    ) -> Optional[str]:
        """Id of a published roster whose inclusive range meets [start, end]."""
        stmt = select(rosters_table.c.id).where(
            rosters_table.c.status == RosterStatus.PUBLISHED.value,
            rosters_table.c.week_start_date <= end,
            rosters_table.c.week_end_date >= start,
        )
        if exclude_id is not None:
            stmt = stmt.where(rosters_table.c.id != exclude_id)
        return conn.execute(stmt.limit(1)).scalar_one_or_none()

    def _ensure_publishable(self, conn: Connection, roster: DutyRoster) -> None:
        # Bumping the guard row serializes publishers until this transaction ends.
        self.next_counter_value(conn, ROSTER_PUBLISH_GUARD)
        conflict = self.find_overlapping_published(
            conn, roster.week_start_date, roster.week_end_date, exclude_id=roster.id
        )
        if conflict:
            raise ConflictError(
                f"A published roster ({conflict}) already covers part of "
                f"{roster.week_start_date.isoformat()}..{roster.week_end_date.isoformat()}"
            )

"""
Duty roster service.

Weekly schedules go through draft -> published -> archived. At most one
published roster may cover any date; the repository re-checks that inside
the write transaction, so concurrent publishers fail instead of both
succeeding. Roster engineers are addressed either by position or by their
stable ``entry_id``.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from models.roster import (
    Department,
    DutyRoster,
    RosterCreate,
    RosterEngineer,
    RosterEngineerCreate,
    RosterStatus,
    RosterUpdate,
    ShiftEntry,
    ShiftType,
)
from models.user import User
from repositories.roster_repo import RosterRepository
from repositories.user_repo import UserRepository
from services.shift_calendar import (
    default_shift_for,
    iter_dates,
    shift_types_payload,
    site_tz,
    to_site_time,
)
from utils.error_handling import (
    AuthorizationError,
    ConcurrentModificationError,
    NotFoundError,
    ValidationError,
)
from utils.logging_config import get_logger
from utils.validators import parse_calendar_date, parse_enum

logger = get_logger(__name__)

EngineerRef = Union[int, str]


def _validate_range(start: date, end: date) -> None:
    if end <= start:
        raise ValidationError("week_end_date must be after week_start_date")


class RosterService:
    """Roster CRUD plus the publish/clone workflow."""

    def __init__(
        self,
        rosters: RosterRepository,
        users: UserRepository,
        clock: Optional[Callable[[], datetime]] = None,
        site_timezone: str = "UTC",
        default_location: str = "Numaligarh",
        max_write_retries: int = 3,
    ):
        self.rosters = rosters
        self.users = users
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.tz = site_tz(site_timezone)
        self.default_location = default_location
        self.max_write_retries = max(1, max_write_retries)

    # Reads

    def today(self) -> date:
        return to_site_time(self.clock(), self.tz).date()

    def get_roster(self, roster_id: str) -> DutyRoster:
        roster = self.rosters.get(roster_id)
        if roster is None:
            raise NotFoundError("Roster not found")
        return roster

    def list_rosters(self, status: Optional[str] = None) -> List[DutyRoster]:
        parsed = parse_enum(RosterStatus, status, "roster status") if status else None
        return self.rosters.list(parsed)

    def find_published_on(self, day: date) -> Optional[DutyRoster]:
        return self.rosters.find_published_covering(day)

    def find_current(self) -> Optional[DutyRoster]:
        """Published roster whose range contains today's site date, if any."""
        return self.find_published_on(self.today())

    def get_current_roster(self) -> DutyRoster:
        roster = self.find_current()
        if roster is None:
            raise NotFoundError("No roster found for current week")
        return roster

    def get_roster_for_date(self, day) -> DutyRoster:
        target = parse_calendar_date(day, "date", self.tz)
        roster = self.rosters.find_published_covering(target)
        if roster is None:
            raise NotFoundError("No roster found for this week")
        return roster

    def shift_types(self) -> dict:
        return shift_types_payload()

    # Mutations

    def create_roster(self, data: RosterCreate, actor: User) -> DutyRoster:
        self._require_admin(actor)
        _validate_range(data.week_start_date, data.week_end_date)
        engineers = list(data.engineers)
        if data.prepopulate and not engineers:
            engineers = self._default_engineers(data.week_start_date, data.week_end_date)

        now = self.clock()
        roster = DutyRoster(
            id=uuid.uuid4().hex,
            title=data.title or "Duty Roster",
            week_start_date=data.week_start_date,
            week_end_date=data.week_end_date,
            status=data.status,
            engineers=engineers,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        roster = self.rosters.insert(roster)
        logger.info(
            "Roster created",
            extra={
                "roster_id": roster.id,
                "status": roster.status.value,
                "week_start": roster.week_start_date.isoformat(),
                "actor": actor.id,
            },
        )
        return roster

    def update_roster(self, roster_id: str, data: RosterUpdate, actor: User) -> DutyRoster:
        """Partial update; moving to published re-runs the overlap check."""
        self._require_admin(actor)

        def apply(roster: DutyRoster) -> None:
            if data.week_start_date is not None:
                roster.week_start_date = data.week_start_date
            if data.week_end_date is not None:
                roster.week_end_date = data.week_end_date
            _validate_range(roster.week_start_date, roster.week_end_date)
            if data.title:
                roster.title = data.title
            if data.engineers is not None:
                roster.engineers = list(data.engineers)
            if data.status is not None:
                roster.status = data.status

        return self._mutate(roster_id, actor, apply, "Roster updated")

    def publish_roster(self, roster_id: str, actor: User) -> DutyRoster:
        self._require_admin(actor)

        def apply(roster: DutyRoster) -> None:
            roster.status = RosterStatus.PUBLISHED

        return self._mutate(roster_id, actor, apply, "Roster published")

    def archive_roster(self, roster_id: str, actor: User) -> DutyRoster:
        self._require_admin(actor)

        def apply(roster: DutyRoster) -> None:
            roster.status = RosterStatus.ARCHIVED

        return self._mutate(roster_id, actor, apply, "Roster archived")

    def delete_roster(self, roster_id: str, actor: User) -> None:
        self._require_admin(actor)
        if not self.rosters.delete(roster_id):
            raise NotFoundError("Roster not found")
        logger.info("Roster deleted", extra={"roster_id": roster_id, "actor": actor.id})

    def add_engineer(
        self, roster_id: str, data: RosterEngineerCreate, actor: User
    ) -> DutyRoster:
        self._require_admin(actor)
        entry = RosterEngineer(**data.model_dump())

        def apply(roster: DutyRoster) -> None:
            roster.engineers.append(entry)

        return self._mutate(roster_id, actor, apply, "Roster engineer added")

    def remove_engineer(self, roster_id: str, ref: EngineerRef, actor: User) -> DutyRoster:
        self._require_admin(actor)

        def apply(roster: DutyRoster) -> None:
            index = self._locate(roster, ref)
            del roster.engineers[index]

        return self._mutate(roster_id, actor, apply, "Roster engineer removed")

    def update_engineer_shift(
        self,
        roster_id: str,
        ref: EngineerRef,
        shift_date,
        shift_type,
        actor: User,
    ) -> DutyRoster:
        """Replace the engineer's shift on that calendar date, or append one."""
        self._require_admin(actor)
        parsed_type = parse_enum(ShiftType, shift_type, "shift type")
        day = parse_calendar_date(shift_date, "shift date", self.tz)

        def apply(roster: DutyRoster) -> None:
            engineer = roster.engineers[self._locate(roster, ref)]
            existing = engineer.shift_on(day)
            if existing is not None:
                existing.shift_type = parsed_type
            else:
                engineer.shifts.append(ShiftEntry(date=day, shift_type=parsed_type))

        return self._mutate(roster_id, actor, apply, "Roster shift updated")

    def clone_roster(self, source_id: str, new_start_date, actor: User) -> DutyRoster:
        """
        Copy a roster to a new week as a draft.

        Each shift keeps its own day offset from the source week start, so
        irregular patterns survive the move intact.
        """
        self._require_admin(actor)
        source = self.rosters.get(source_id)
        if source is None:
            raise NotFoundError("Source roster not found")
        start = parse_calendar_date(new_start_date, "start date", self.tz)
        end = start + (source.week_end_date - source.week_start_date)

        engineers = []
        for engineer in source.engineers:
            shifts = [
                ShiftEntry(
                    date=start + timedelta(days=(shift.date - source.week_start_date).days),
                    shift_type=shift.shift_type,
                )
                for shift in engineer.shifts
            ]
            engineers.append(
                RosterEngineer(
                    **engineer.model_dump(exclude={"entry_id", "shifts"}),
                    shifts=shifts,
                )
            )

        clone = self.create_roster(
            RosterCreate(
                week_start_date=start,
                week_end_date=end,
                title=source.title,
                engineers=engineers,
                status=RosterStatus.DRAFT,
            ),
            actor,
        )
        logger.info(
            "Roster cloned", extra={"source_id": source.id, "roster_id": clone.id}
        )
        return clone

    # Internals

    def _default_engineers(self, start: date, end: date) -> List[RosterEngineer]:
        """One row per active engineer; weekdays on the general shift, weekends off."""
        dates = list(iter_dates(start, end))
        entries = []
        for user in self.users.list_active_engineers():
            department = (
                Department.SOFTWARE_DEVELOPMENT
                if user.engineer_type == "Software Developer"
                else Department.ITFM
            )
            entries.append(
                RosterEngineer(
                    engineer_ref=user.id,
                    engineer_name=user.name,
                    job_role=user.designation or user.engineer_type or "ITFM Engineer",
                    department=department,
                    location=user.location or self.default_location,
                    contact_no=user.phone or "N/A",
                    shifts=[ShiftEntry(date=d, shift_type=default_shift_for(d)) for d in dates],
                )
            )
        return entries

    @staticmethod
    def _locate(roster: DutyRoster, ref: EngineerRef) -> int:
        if isinstance(ref, int):
            if 0 <= ref < len(roster.engineers):
                return ref
            raise NotFoundError(f"Engineer index {ref} not found in roster")
        for index, engineer in enumerate(roster.engineers):
            if engineer.entry_id == ref:
                return index
        raise NotFoundError(f"Engineer entry {ref} not found in roster")

    def _mutate(
        self,
        roster_id: str,
        actor: User,
        apply: Callable[[DutyRoster], None],
        message: str,
    ) -> DutyRoster:
        for attempt in range(1, self.max_write_retries + 1):
            roster = self.get_roster(roster_id)
            apply(roster)
            roster.updated_by = actor.id
            roster.updated_at = self.clock()
            try:
                stored = self.rosters.save(roster)
            except ConcurrentModificationError:
                if attempt == self.max_write_retries:
                    raise
                logger.info(
                    "Roster write conflict; retrying",
                    extra={"roster_id": roster_id, "attempt": attempt},
                )
                continue
            logger.info(
                message,
                extra={"roster_id": stored.id, "status": stored.status.value, "actor": actor.id},
            )
            return stored
        raise ConcurrentModificationError(f"Roster {roster_id} could not be updated")

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin role required")

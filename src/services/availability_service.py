"""
Availability resolver.

Combines the current published roster, the shift calendar and the clock
into a ranked list of active engineers: on duty now, then working today
on another shift, then everyone else. Names break ties within a bucket.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from models.availability import AvailabilityReport, EngineerAvailability
from models.roster import RosterEngineer
from models.user import User
from repositories.user_repo import UserRepository
from services.roster_service import RosterService
from services.shift_calendar import evaluate_shift, minute_of_day, site_tz, to_site_time
from utils.error_handling import AuthorizationError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _rank(item: EngineerAvailability):
    if item.is_on_duty:
        bucket = 0
    elif item.is_working_today:
        bucket = 1
    else:
        bucket = 2
    name = item.engineer.name
    return bucket, name.casefold(), name


class AvailabilityService:
    """Annotates engineers with their on-duty state at the current instant."""

    def __init__(
        self,
        rosters: RosterService,
        users: UserRepository,
        clock: Optional[Callable[[], datetime]] = None,
        site_timezone: Optional[str] = None,
    ):
        self.rosters = rosters
        self.users = users
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        # Shares the roster calendar unless told otherwise
        self.tz = site_tz(site_timezone) if site_timezone else rosters.tz

    def get_engineers_with_availability(self, actor: User) -> AvailabilityReport:
        if not actor.is_admin:
            raise AuthorizationError("Admin role required")

        instant = self.clock()
        local = to_site_time(instant, self.tz)
        today = local.date()
        minute = minute_of_day(local)

        roster = self.rosters.find_published_on(today)
        by_ref: Dict[str, RosterEngineer] = {}
        if roster is not None:
            for entry in roster.engineers:
                if entry.engineer_ref and entry.engineer_ref not in by_ref:
                    by_ref[entry.engineer_ref] = entry

        results = [
            self._resolve(engineer, by_ref.get(engineer.id), today, minute)
            for engineer in self.users.list_active_engineers()
        ]
        results.sort(key=_rank)

        logger.info(
            "Availability resolved",
            extra={
                "has_roster": roster is not None,
                "engineers": len(results),
                "on_duty": sum(1 for r in results if r.is_on_duty),
            },
        )
        return AvailabilityReport(
            has_roster=roster is not None,
            roster_id=roster.id if roster else None,
            evaluated_at=instant,
            today=today,
            engineers=results,
        )

    @staticmethod
    def _resolve(
        engineer: User, entry: Optional[RosterEngineer], today, minute: int
    ) -> EngineerAvailability:
        """Engineers without a roster row or a shift today count as not in roster."""
        if entry is None:
            return EngineerAvailability(engineer=engineer)
        shift = entry.shift_on(today)
        if shift is None:
            return EngineerAvailability(engineer=engineer)
        state = evaluate_shift(shift.shift_type, minute)
        return EngineerAvailability(
            engineer=engineer,
            in_roster=True,
            shift_type=shift.shift_type,
            is_working_today=state.is_working_today,
            is_on_duty=state.is_on_duty,
        )

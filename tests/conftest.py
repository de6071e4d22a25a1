"""
Pytest configuration: puts src/ on sys.path and provides in-memory backends.

Imports such as `from services.ticket_service import TicketService` mirror
the Lambda layout, where src/ is the root of the deployed code.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest


def _ensure_src_on_sys_path() -> None:
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_src_on_sys_path()

# Offline-friendly defaults so nothing reaches AWS during tests.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("SITE_TIMEZONE", "UTC")

from models.user import Role, User  # noqa: E402
from repositories.postgres_repo import build_engine, create_schema  # noqa: E402
from repositories.roster_repo import RosterRepository  # noqa: E402
from repositories.ticket_repo import TicketRepository  # noqa: E402
from repositories.user_repo import UserRepository  # noqa: E402
from services.availability_service import AvailabilityService  # noqa: E402
from services.notification_service import NotificationService  # noqa: E402
from services.roster_service import RosterService  # noqa: E402
from services.ticket_service import TicketService  # noqa: E402


class FakeClock:
    """Settable clock; every service in a test shares one instance."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args) -> None:
        self.now = datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def people():
    return {
        "admin": User(id="u-admin", name="Asha Admin", email="admin@itfm.test", role=Role.ADMIN),
        "e1": User(
            id="u-e1",
            name="Bikash Engineer",
            email="bikash@itfm.test",
            role=Role.ENGINEER,
            employee_id="E001",
            designation="Network Engineer",
            phone="9000000001",
        ),
        "e2": User(
            id="u-e2",
            name="Chitra Engineer",
            email="chitra@itfm.test",
            role=Role.ENGINEER,
            employee_id="E002",
            engineer_type="Software Developer",
        ),
        "inactive": User(
            id="u-e3",
            name="Dev Inactive",
            email="dev@itfm.test",
            role=Role.ENGINEER,
            is_active=False,
        ),
        "user": User(id="u-user", name="Esha User", email="esha@itfm.test", role=Role.USER),
        "other_user": User(id="u-user2", name="Farhan User", email="farhan@itfm.test"),
    }


@pytest.fixture
def user_repo(engine, people):
    repo = UserRepository(engine)
    for person in people.values():
        repo.put(person)
    return repo


@pytest.fixture
def notification_store():
    """Stands in for the DynamoDB notification table."""
    return MagicMock()


@pytest.fixture
def notifier(notification_store, clock):
    return NotificationService(notification_store, clock=clock)


@pytest.fixture
def ticket_service(engine, user_repo, notifier, clock):
    return TicketService(TicketRepository(engine), user_repo, notifier, clock=clock)


@pytest.fixture
def roster_service(engine, user_repo, clock):
    return RosterService(RosterRepository(engine), user_repo, clock=clock)


@pytest.fixture
def availability_service(roster_service, user_repo, clock):
    return AvailabilityService(roster_service, user_repo, clock=clock)


@pytest.fixture
def sent(notification_store):
    """Callable returning the notifications handed to the store, in order."""
    return lambda: [call.args[0] for call in notification_store.put.call_args_list]

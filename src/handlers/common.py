"""
Shared plumbing for the HTTP handlers.

Services are built lazily once per warm container. Errors are mapped to
responses in one place so every route reports them the same way.
"""

from __future__ import annotations

import functools
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from models.response import ApiResponse
from models.user import User
from utils.error_handling import AppError, AuthenticationError, ValidationError, to_response
from utils.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything a handler needs, wired from one Settings instance."""

    users: Any
    tickets: Any
    rosters: Any
    availability: Any


_services: Optional[ServiceContainer] = None


def build_services(settings=None) -> ServiceContainer:
    """Wire repositories and services for the configured backends."""
    from config.settings import Settings
    from repositories.dynamodb_repo import NotificationRepository
    from repositories.postgres_repo import create_schema, get_db_engine, resolve_database_url
    from repositories.roster_repo import RosterRepository
    from repositories.ticket_repo import TicketRepository
    from repositories.user_repo import UserRepository
    from services.availability_service import AvailabilityService
    from services.notification_service import NotificationService
    from services.roster_service import RosterService
    from services.ticket_service import TicketService

    settings = settings or Settings.from_environment()
    configure_logging(settings.log_level)
    engine = get_db_engine(
        resolve_database_url(
            settings.database_url, settings.db_secret_arn, region_name=settings.aws_region
        )
    )
    create_schema(engine)

    users = UserRepository(engine)
    notifications = NotificationService(
        NotificationRepository(
            settings.notifications_table,
            ttl_days=settings.notification_ttl_days,
            region_name=settings.aws_region,
        )
    )
    rosters = RosterService(
        RosterRepository(engine),
        users,
        site_timezone=settings.site_timezone,
        default_location=settings.default_location,
        max_write_retries=settings.max_write_retries,
    )
    return ServiceContainer(
        users=users,
        tickets=TicketService(
            TicketRepository(engine),
            users,
            notifications,
            ticket_id_prefix=settings.ticket_id_prefix,
            ticket_id_width=settings.ticket_id_width,
            max_write_retries=settings.max_write_retries,
        ),
        rosters=rosters,
        availability=AvailabilityService(rosters, users),
    )


def get_services() -> ServiceContainer:
    """Lazy-load the service container."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def json_response(status: int, body: Any) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": body.model_dump_json() if isinstance(body, BaseModel) else json.dumps(body),
    }


def ok(data: Any, status: int = 200, message: Optional[str] = None) -> Dict:
    """Wrap data in the standard envelope."""
    if isinstance(data, list):
        envelope = ApiResponse(count=len(data), data=[_dump(item) for item in data], message=message)
    else:
        envelope = ApiResponse(data=_dump(data), message=message)
    return json_response(status, envelope)


def _dump(item: Any) -> Any:
    return item.model_dump(mode="json") if isinstance(item, BaseModel) else item


def parse_body(event: Dict) -> Dict:
    raw = event.get("body") or "{}"
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def path_param(event: Dict, name: str) -> str:
    value = (event.get("pathParameters") or {}).get(name)
    if not value:
        raise ValidationError(f"{name} is required")
    return value


def acting_user(event: Dict) -> User:
    """Resolve the caller from the JWT authorizer's ``sub`` claim."""
    claims = (
        event.get("requestContext", {})
        .get("authorizer", {})
        .get("jwt", {})
        .get("claims", {})
    )
    user = get_services().users.get(claims.get("sub"))
    if user is None or not user.is_active:
        raise AuthenticationError()
    return user


def api_handler(func: Callable[[Dict, Any], Dict]) -> Callable[[Dict, Any], Dict]:
    """Map domain and payload errors to HTTP responses."""

    @functools.wraps(func)
    def wrapper(event, context):
        try:
            return func(event, context)
        except AppError as exc:
            logger.info(
                "Request rejected",
                extra={"handler": func.__name__, "error_type": exc.error_type, "error": exc.message},
            )
            return to_response(exc)
        except PydanticValidationError as exc:
            return json_response(
                422,
                {
                    "message": "Invalid request",
                    "status": "error",
                    "error_type": "validation_error",
                    "errors": json.loads(exc.json(include_url=False)),
                },
            )
        except Exception as exc:
            logger.exception(
                "Unhandled handler failure",
                extra={"handler": func.__name__, "error": str(exc)},
            )
            return json_response(500, {"message": "Internal server error", "status": "error"})

    return wrapper

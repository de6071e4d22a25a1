"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Routes are matched in order against "METHOD /path"; named groups become
path parameters, so literal segments such as /tickets/stats must come
before the /tickets/{id} patterns.
"""

import json
import re
from typing import Callable, Dict, Tuple

from . import engineers, health_check, rosters, tickets


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _route_table() -> Tuple[Tuple[str, str, Callable], ...]:
    # Resolved per call so tests can monkeypatch handler functions.
    return (
        ("GET", r"/health", health_check.lambda_handler),
        ("GET", r"/tickets/stats", tickets.stats_handler),
        ("GET", r"/tickets", tickets.list_handler),
        ("POST", r"/tickets", tickets.create_handler),
        ("GET", r"/tickets/(?P<id>[^/]+)", tickets.get_handler),
        ("PUT", r"/tickets/(?P<id>[^/]+)/assign", tickets.assign_handler),
        ("PUT", r"/tickets/(?P<id>[^/]+)/status", tickets.status_handler),
        ("PUT", r"/tickets/(?P<id>[^/]+)/resolve", tickets.resolve_handler),
        ("POST", r"/tickets/(?P<id>[^/]+)/logs", tickets.logs_handler),
        ("POST", r"/tickets/(?P<id>[^/]+)/reassign-request", tickets.reassign_request_handler),
        ("PUT", r"/tickets/(?P<id>[^/]+)/reassign-request", tickets.handle_reassign_handler),
        ("GET", r"/duty-roster/shift-types", rosters.shift_types_handler),
        ("GET", r"/duty-roster/current", rosters.current_handler),
        ("GET", r"/duty-roster/week/(?P<date>[^/]+)", rosters.week_handler),
        ("GET", r"/duty-roster", rosters.list_handler),
        ("POST", r"/duty-roster", rosters.create_handler),
        ("GET", r"/duty-roster/(?P<id>[^/]+)", rosters.get_handler),
        ("PUT", r"/duty-roster/(?P<id>[^/]+)", rosters.update_handler),
        ("DELETE", r"/duty-roster/(?P<id>[^/]+)", rosters.delete_handler),
        ("PATCH", r"/duty-roster/(?P<id>[^/]+)/publish", rosters.publish_handler),
        ("PATCH", r"/duty-roster/(?P<id>[^/]+)/archive", rosters.archive_handler),
        ("POST", r"/duty-roster/(?P<id>[^/]+)/clone", rosters.clone_handler),
        ("POST", r"/duty-roster/(?P<id>[^/]+)/engineer", rosters.add_engineer_handler),
        (
            "DELETE",
            r"/duty-roster/(?P<id>[^/]+)/engineer/(?P<ref>[^/]+)",
            rosters.remove_engineer_handler,
        ),
        (
            "PATCH",
            r"/duty-roster/(?P<id>[^/]+)/engineer/(?P<ref>[^/]+)/shift",
            rosters.update_shift_handler,
        ),
        ("GET", r"/users/engineers/availability", engineers.availability_handler),
        ("GET", r"/users/workload", engineers.workload_handler),
    )


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler and merge captured path segments into ``pathParameters``.
    """
    http = event.get("requestContext", {}).get("http", {})
    method = http.get("method", "").upper()
    path = http.get("path", "")
    if len(path) > 1:
        path = path.rstrip("/")

    for route_method, pattern, handler in _route_table():
        if route_method != method:
            continue
        match = re.fullmatch(pattern, path)
        if match:
            params = dict(event.get("pathParameters") or {})
            params.update(match.groupdict())
            return handler({**event, "pathParameters": params}, context)

    return _response(404, {"message": "Route not found", "route": f"{method} {path}"})

"""Handlers for /tickets routes."""

from models.ticket import TicketCreate

from .common import acting_user, api_handler, get_services, ok, parse_body, path_param


@api_handler
def create_handler(event, context):
    """POST /tickets"""
    user = acting_user(event)
    data = TicketCreate.model_validate(parse_body(event))
    ticket = get_services().tickets.create_ticket(data, user)
    return ok(ticket, status=201)


@api_handler
def list_handler(event, context):
    """GET /tickets"""
    user = acting_user(event)
    return ok(get_services().tickets.list_tickets(user))


@api_handler
def get_handler(event, context):
    """GET /tickets/{id}"""
    user = acting_user(event)
    return ok(get_services().tickets.get_ticket(path_param(event, "id"), user))


@api_handler
def stats_handler(event, context):
    """GET /tickets/stats"""
    user = acting_user(event)
    return ok(get_services().tickets.get_stats(user))


@api_handler
def assign_handler(event, context):
    """PUT /tickets/{id}/assign"""
    user = acting_user(event)
    body = parse_body(event)
    ticket = get_services().tickets.assign_ticket(
        path_param(event, "id"),
        body.get("engineer_id"),
        user,
        severity=body.get("severity"),
    )
    return ok(ticket)


@api_handler
def status_handler(event, context):
    """PUT /tickets/{id}/status"""
    user = acting_user(event)
    body = parse_body(event)
    ticket = get_services().tickets.update_status(
        path_param(event, "id"), body.get("status"), user
    )
    return ok(ticket)


@api_handler
def resolve_handler(event, context):
    """PUT /tickets/{id}/resolve"""
    user = acting_user(event)
    return ok(get_services().tickets.resolve_ticket(path_param(event, "id"), user))


@api_handler
def logs_handler(event, context):
    """POST /tickets/{id}/logs"""
    user = acting_user(event)
    body = parse_body(event)
    ticket = get_services().tickets.add_action_log(
        path_param(event, "id"), body.get("action"), user, details=body.get("details")
    )
    return ok(ticket)


@api_handler
def reassign_request_handler(event, context):
    """POST /tickets/{id}/reassign-request"""
    user = acting_user(event)
    body = parse_body(event)
    ticket = get_services().tickets.request_reassign(
        path_param(event, "id"), body.get("engineer_id"), body.get("reason"), user
    )
    return ok(ticket)


@api_handler
def handle_reassign_handler(event, context):
    """PUT /tickets/{id}/reassign-request"""
    user = acting_user(event)
    body = parse_body(event)
    ticket = get_services().tickets.handle_reassign_request(
        path_param(event, "id"), body.get("action"), user
    )
    return ok(ticket)

"""Handlers for /users engineer views."""

from .common import acting_user, api_handler, get_services, ok


@api_handler
def availability_handler(event, context):
    """GET /users/engineers/availability"""
    user = acting_user(event)
    return ok(get_services().availability.get_engineers_with_availability(user))


@api_handler
def workload_handler(event, context):
    """GET /users/workload"""
    user = acting_user(event)
    return ok(get_services().tickets.get_workload(user))

"""Handlers for /duty-roster routes."""

from models.roster import RosterCreate, RosterEngineerCreate, RosterUpdate, ShiftUpdate

from .common import acting_user, api_handler, get_services, ok, parse_body, path_param


def _engineer_ref(event):
    """Digits address a row by position; anything else is an entry id."""
    ref = path_param(event, "ref")
    return int(ref) if ref.isdigit() else ref


def _date_context():
    """Payload dates are read on the site calendar the services use."""
    return {"tz": get_services().rosters.tz}


@api_handler
def list_handler(event, context):
    """GET /duty-roster"""
    acting_user(event)
    status = (event.get("queryStringParameters") or {}).get("status")
    return ok(get_services().rosters.list_rosters(status))


@api_handler
def get_handler(event, context):
    """GET /duty-roster/{id}"""
    acting_user(event)
    return ok(get_services().rosters.get_roster(path_param(event, "id")))


@api_handler
def current_handler(event, context):
    """GET /duty-roster/current"""
    acting_user(event)
    return ok(get_services().rosters.get_current_roster())


@api_handler
def week_handler(event, context):
    """GET /duty-roster/week/{date}"""
    acting_user(event)
    return ok(get_services().rosters.get_roster_for_date(path_param(event, "date")))


@api_handler
def shift_types_handler(event, context):
    """GET /duty-roster/shift-types"""
    return ok(get_services().rosters.shift_types())


@api_handler
def create_handler(event, context):
    """POST /duty-roster"""
    user = acting_user(event)
    data = RosterCreate.model_validate(parse_body(event), context=_date_context())
    return ok(get_services().rosters.create_roster(data, user), status=201)


@api_handler
def update_handler(event, context):
    """PUT /duty-roster/{id}"""
    user = acting_user(event)
    data = RosterUpdate.model_validate(parse_body(event), context=_date_context())
    return ok(get_services().rosters.update_roster(path_param(event, "id"), data, user))


@api_handler
def delete_handler(event, context):
    """DELETE /duty-roster/{id}"""
    user = acting_user(event)
    get_services().rosters.delete_roster(path_param(event, "id"), user)
    return ok(None, message="Roster deleted successfully")


@api_handler
def publish_handler(event, context):
    """PATCH /duty-roster/{id}/publish"""
    user = acting_user(event)
    return ok(get_services().rosters.publish_roster(path_param(event, "id"), user))


@api_handler
def archive_handler(event, context):
    """PATCH /duty-roster/{id}/archive"""
    user = acting_user(event)
    return ok(get_services().rosters.archive_roster(path_param(event, "id"), user))


@api_handler
def clone_handler(event, context):
    """POST /duty-roster/{id}/clone"""
    user = acting_user(event)
    body = parse_body(event)
    roster = get_services().rosters.clone_roster(
        path_param(event, "id"), body.get("new_start_date"), user
    )
    return ok(roster, status=201)


@api_handler
def add_engineer_handler(event, context):
    """POST /duty-roster/{id}/engineer"""
    user = acting_user(event)
    data = RosterEngineerCreate.model_validate(parse_body(event), context=_date_context())
    return ok(get_services().rosters.add_engineer(path_param(event, "id"), data, user))


@api_handler
def remove_engineer_handler(event, context):
    """DELETE /duty-roster/{id}/engineer/{ref}"""
    user = acting_user(event)
    roster = get_services().rosters.remove_engineer(
        path_param(event, "id"), _engineer_ref(event), user
    )
    return ok(roster)


@api_handler
def update_shift_handler(event, context):
    """PATCH /duty-roster/{id}/engineer/{ref}/shift"""
    user = acting_user(event)
    data = ShiftUpdate.model_validate(parse_body(event), context=_date_context())
    roster = get_services().rosters.update_engineer_shift(
        path_param(event, "id"), _engineer_ref(event), data.date, data.shift_type, user
    )
    return ok(roster)

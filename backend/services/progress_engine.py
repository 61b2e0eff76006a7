"""Ticket and progress mutations for a sprint.

Every operation reads the sprint it is given and returns a new ticket list
(or a partial sprint update for lifecycle changes) without modifying its
input. The caller persists the result; if persisting fails the mutation did
not happen.

Derived fields are re-established on every write:
    - typeScope always follows the ticket type
    - timeLogged is the sum of the ticket's daily logs
    - Bug and Buffer tickets carry estimation == timeLogged
    - completionDate is stamped when a ticket moves into Done and removed
      when it moves out
"""

import copy
import logging
import threading
from typing import Optional

from services.errors import NotFoundError, SprintLockedError, ValidationError
from services.sprint_model import (
    BUILD, DEFAULT_TEAM, DONE, NEW_TICKET, STATUSES, TICKET_TYPES,
    day_date_map, match_team, parse_day_token, split_tags, sum_logged_hours,
    to_hours, today_string, tracks_logged_time, type_scope_for
)

logger = logging.getLogger(__name__)


def _ensure_editable(sprint: dict):
    if sprint.get("status") == "Completed":
        raise SprintLockedError(
            f"Sprint '{sprint.get('name') or sprint.get('id')}' is completed and can no longer be edited",
            field="status"
        )


def _copy_tickets(sprint: dict) -> list:
    return copy.deepcopy(sprint.get("tickets") or [])


def _find_ticket(tickets: list, ticket_id: str) -> Optional[dict]:
    for ticket in tickets:
        if ticket.get("id") == ticket_id:
            return ticket
    return None


def _require_type(ticket_type) -> str:
    if ticket_type not in TICKET_TYPES:
        raise ValidationError(f"Unknown ticket type: {ticket_type}", field="type")
    return ticket_type


def _require_status(status) -> str:
    if status not in STATUSES:
        raise ValidationError(f"Unknown ticket status: {status}", field="status")
    return status


def _require_hours(value, field: str) -> float:
    if value is None or value == "":
        return 0.0
    hours = to_hours(value, default=-1)
    if hours < 0:
        raise ValidationError(f"{field} must be a non-negative number", field=field)
    return hours


def _valid_estimation(value) -> bool:
    try:
        _require_hours(value, "estimation")
    except ValidationError:
        return False
    return True


def _is_out_of_scope(sprint: dict, type_scope: str) -> bool:
    return sprint.get("status") == "Active" and type_scope == BUILD


def resync_ticket(ticket: dict) -> dict:
    """Recompute timeLogged from the daily logs and mirror it for Bug/Buffer."""
    ticket["typeScope"] = type_scope_for(ticket.get("type"))
    ticket["timeLogged"] = sum_logged_hours(ticket.get("dailyLogs"))
    if tracks_logged_time(ticket.get("type")):
        ticket["estimation"] = ticket["timeLogged"]
    return ticket


def _add_hours(ticket: dict, log_date: str, hours: float):
    logs = ticket.setdefault("dailyLogs", [])
    for log in logs:
        if log.get("date") == log_date:
            log["loggedHours"] += hours
            break
    else:
        logs.append({"date": log_date, "loggedHours": hours})
    logs.sort(key=lambda log: log["date"])


def _apply_status(ticket: dict, status: str, on_date: str, was_done: bool):
    ticket["status"] = status
    is_done = status == DONE
    if is_done and not was_done:
        ticket["completionDate"] = on_date
    elif was_done and not is_done:
        ticket.pop("completionDate", None)


def _new_ticket(sprint: dict, ticket_id: str, fields: dict, platform: str, creation_date: str,
                status: str = "To Do", assignees: Optional[dict] = None) -> dict:
    ticket_type = fields.get("type")
    type_scope = type_scope_for(ticket_type)
    return {
        "id": ticket_id,
        "title": fields.get("title") or ticket_id,
        "description": fields.get("description"),
        "platform": platform,
        "type": ticket_type,
        "typeScope": type_scope,
        "estimation": _require_hours(fields.get("estimation"), "estimation"),
        "timeLogged": 0,
        "status": status,
        "dailyLogs": [],
        "creationDate": creation_date,
        "isInitialScope": bool(fields.get("isInitialScope", False)),
        "isOutOfScope": _is_out_of_scope(sprint, type_scope),
        "assignee": fields.get("assignee") or (assignees or {}).get(platform),
        "tags": split_tags(fields.get("tags")),
    }


def add_task(sprint: dict, draft: dict, today=None, assignees: Optional[dict] = None) -> list:
    """Add a ticket created today. Build work added to an active sprint is out of scope."""
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)

    ticket_id = str(draft.get("id") or "").strip()
    if not ticket_id:
        raise ValidationError("Ticket id is required", field="id")
    if _find_ticket(tickets, ticket_id):
        raise ValidationError(f"Ticket {ticket_id} already exists in this sprint", field="id")
    _require_type(draft.get("type"))
    if not draft.get("platform"):
        raise ValidationError("Platform is required", field="platform")
    status = _require_status(draft.get("status") or "To Do")
    _require_hours(draft.get("estimation", 0), "estimation")

    ticket = _new_ticket(sprint, ticket_id, draft, draft["platform"], today_string(today),
                         status=status, assignees=assignees)
    if status == DONE:
        ticket["completionDate"] = ticket["creationDate"]
    tickets.append(resync_ticket(ticket))
    return tickets


def update_task(sprint: dict, changes: dict, today=None) -> list:
    """Replace a ticket's editable fields, re-deriving everything computed."""
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)

    ticket_id = changes.get("id")
    existing = _find_ticket(tickets, ticket_id)
    if existing is None:
        raise NotFoundError(f"Ticket {ticket_id} not found in sprint")

    was_done = existing.get("status") == DONE
    updated = dict(existing)
    updated.update(changes)
    _require_type(updated.get("type"))
    status = _require_status(updated.get("status"))
    updated["estimation"] = _require_hours(updated.get("estimation", 0), "estimation")
    updated["title"] = updated.get("title") or ticket_id
    updated["tags"] = split_tags(updated.get("tags"))

    updated.pop("completionDate", None)
    if existing.get("completionDate"):
        updated["completionDate"] = existing["completionDate"]
    _apply_status(updated, status, today_string(today), was_done)
    resync_ticket(updated)

    return [updated if t.get("id") == ticket_id else t for t in tickets]


def delete_task(sprint: dict, ticket_id: str) -> list:
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)
    if _find_ticket(tickets, ticket_id) is None:
        raise NotFoundError(f"Ticket {ticket_id} not found in sprint")
    return [t for t in tickets if t.get("id") != ticket_id]


def log_progress(sprint: dict, entry: dict, assignees: Optional[dict] = None) -> list:
    """Log hours against a ticket on a sprint day and update its status.

    ``entry`` carries: ticketId (or "new-ticket" with newTicketId, type,
    platform, estimation, newTicketTitle, newTicketDescription,
    newTicketTags), day ("D<n>"), loggedHours and status.
    Hours logged twice on the same date are added together.
    """
    _ensure_editable(sprint)

    day_token = entry.get("day")
    log_date = day_date_map(sprint).get(parse_day_token(day_token))
    if not log_date:
        logger.error(f"Cannot log progress on sprint {sprint.get('id')}: day {day_token} is not a sprint day")
        raise ValidationError(f"Day {day_token} is not part of this sprint", field="day")

    hours = to_hours(entry.get("loggedHours"), default=0)
    if hours <= 0:
        raise ValidationError("Logged hours must be greater than 0", field="loggedHours")
    status = _require_status(entry.get("status"))

    tickets = _copy_tickets(sprint)

    if entry.get("ticketId") == NEW_TICKET:
        ticket_id = str(entry.get("newTicketId") or "").strip()
        if not ticket_id:
            raise ValidationError("A new ticket needs an id", field="newTicketId")
        if _find_ticket(tickets, ticket_id):
            raise ValidationError(f"Ticket {ticket_id} already exists in this sprint", field="newTicketId")
        _require_type(entry.get("type"))
        if not entry.get("platform"):
            raise ValidationError("Platform is required for a new ticket", field="platform")

        fields = {
            "type": entry.get("type"),
            "estimation": entry.get("estimation"),
            "title": entry.get("newTicketTitle"),
            "description": entry.get("newTicketDescription"),
            "tags": entry.get("newTicketTags"),
        }
        ticket = _new_ticket(sprint, ticket_id, fields, entry["platform"], log_date,
                             status=status, assignees=assignees)
        _add_hours(ticket, log_date, hours)
        _apply_status(ticket, status, log_date, was_done=False)
        tickets.append(resync_ticket(ticket))
        return tickets

    ticket_id = entry.get("ticketId")
    ticket = _find_ticket(tickets, ticket_id)
    if ticket is None:
        raise NotFoundError(f"Ticket {ticket_id} not found in sprint")

    was_done = ticket.get("status") == DONE
    _add_hours(ticket, log_date, hours)
    _apply_status(ticket, status, log_date, was_done)
    resync_ticket(ticket)
    return tickets


def bulk_upload_tasks(sprint: dict, rows: list, today=None, teams=None,
                      default_team: str = DEFAULT_TEAM, assignees: Optional[dict] = None) -> tuple:
    """Create tickets from uploaded rows.

    Rows whose id already exists (in the sprint or earlier in the upload),
    or that lack an id, a known type or a valid estimation, are skipped.

    Returns:
        Tuple of (tickets, skipped row count)
    """
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)
    known_ids = {t.get("id") for t in tickets}
    creation_date = today_string(today)
    skipped = 0

    for row in rows or []:
        ticket_id = str(row.get("id") or "").strip()
        if not ticket_id or ticket_id in known_ids or row.get("type") not in TICKET_TYPES \
                or not _valid_estimation(row.get("estimation")):
            skipped += 1
            continue

        platform = match_team(row.get("platform") or row.get("scope"), teams, default_team)
        ticket = _new_ticket(sprint, ticket_id, row, platform, creation_date, assignees=assignees)
        tickets.append(resync_ticket(ticket))
        known_ids.add(ticket_id)

    if skipped:
        logger.warning(f"Bulk task upload for sprint {sprint.get('id')}: skipped {skipped} of {len(rows or [])} rows")

    return tickets, skipped


def bulk_log_progress(sprint: dict, rows: list, teams=None, default_team: str = DEFAULT_TEAM,
                      assignees: Optional[dict] = None) -> tuple:
    """Apply uploaded progress rows in day order.

    Each row needs ticketId, day, loggedHours and status. Unknown ticket ids
    create a ticket when the row also has platform, type and a valid
    estimation. Rows that cannot
    be applied are skipped.

    Returns:
        Tuple of (tickets, skipped row count)
    """
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)
    by_id = {t.get("id"): t for t in tickets}
    dates = day_date_map(sprint)
    touched = set()
    skipped = 0

    # Stable sort so repeated logs to the same ticket accumulate in upload order within a day
    ordered = sorted(rows or [], key=lambda r: parse_day_token(r.get("day")) or 0)

    for row in ordered:
        ticket_id = str(row.get("ticketId") or "").strip()
        hours = to_hours(row.get("loggedHours"))
        status = row.get("status")
        log_date = dates.get(parse_day_token(row.get("day")))

        if not ticket_id or hours <= 0 or status not in STATUSES or not log_date:
            skipped += 1
            continue

        ticket = by_id.get(ticket_id)
        if ticket is None:
            if not row.get("platform") or row.get("type") not in TICKET_TYPES \
                    or not _valid_estimation(row.get("estimation")):
                skipped += 1
                continue
            fields = dict(row)
            if not to_hours(fields.get("estimation")) and tracks_logged_time(row.get("type")):
                fields["estimation"] = hours
            platform = match_team(row.get("platform"), teams, default_team)
            ticket = _new_ticket(sprint, ticket_id, fields, platform, log_date, assignees=assignees)
            tickets.append(ticket)
            by_id[ticket_id] = ticket

        was_done = bool(ticket.get("completionDate"))
        _add_hours(ticket, log_date, hours)
        _apply_status(ticket, status, log_date, was_done)
        touched.add(ticket_id)

    for ticket in tickets:
        if ticket.get("id") in touched:
            resync_ticket(ticket)

    if skipped:
        logger.warning(f"Bulk progress upload for sprint {sprint.get('id')}: skipped {skipped} of {len(rows or [])} rows")

    return tickets, skipped


def finalize_scope(sprint: dict) -> dict:
    """Freeze the current tickets as the initial scope and activate the sprint."""
    _ensure_editable(sprint)
    tickets = _copy_tickets(sprint)
    for ticket in tickets:
        ticket["isInitialScope"] = True
    return {"status": "Active", "tickets": tickets}


def revert_scope(sprint: dict) -> dict:
    """Return an active sprint to Scoping. Initial-scope stamps are kept."""
    _ensure_editable(sprint)
    return {"status": "Scoping"}


def complete_sprint(sprint: dict) -> dict:
    return {"status": "Completed"}


def clear_sprint_data(sprint: dict) -> dict:
    """Remove every ticket, log and report reference from the sprint."""
    _ensure_editable(sprint)
    return {"tickets": [], "reportFilePaths": [], "isSyncedToFirebase": False}


class UndoSlots:
    """One undo snapshot per sprint.

    A bulk operation records the ticket list it started from; the next bulk
    operation overwrites it and any other mutation discards it. Restoring
    hands the snapshot back once.
    """

    def __init__(self):
        self._snapshots = {}
        self._lock = threading.Lock()

    def record(self, sprint_id: str, tickets: list):
        with self._lock:
            self._snapshots[sprint_id] = copy.deepcopy(tickets or [])

    def clear(self, sprint_id: str):
        with self._lock:
            self._snapshots.pop(sprint_id, None)

    def has_snapshot(self, sprint_id: str) -> bool:
        with self._lock:
            return sprint_id in self._snapshots

    def restore(self, sprint_id: str) -> list:
        with self._lock:
            if sprint_id not in self._snapshots:
                raise NotFoundError("Nothing to undo for this sprint")
            return self._snapshots.pop(sprint_id)

"""Ticket and progress logging API endpoints."""

from flask import Blueprint, request, jsonify

from app import get_store, get_teams_config, get_undo_slots, mutate_sprint
from services import progress_engine

bp = Blueprint("tickets", __name__, url_prefix="/api/sprints")


def get_json_body():
    """Get the JSON request body, or None when it is missing."""
    data = request.get_json(silent=True)
    return data if data else None


def get_rows(data):
    rows = data.get("rows") if isinstance(data, dict) else data
    return rows if isinstance(rows, list) else None


@bp.route("/<sprint_id>/tickets", methods=["POST"])
def add_ticket(sprint_id):
    """Add a ticket to the sprint.

    Expects JSON body with:
        - id, type, platform (required)
        - title, description, estimation, status, tags, assignee (optional)
    """
    data = get_json_body()

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    assignees = get_teams_config()["assignees"]
    sprint = mutate_sprint(
        sprint_id,
        lambda s: {"tickets": progress_engine.add_task(s, data, assignees=assignees)}
    )
    return jsonify({"data": sprint}), 201


@bp.route("/<sprint_id>/tickets/<ticket_id>", methods=["PUT"])
def update_ticket(sprint_id, ticket_id):
    """Update a ticket's fields."""
    data = get_json_body()

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    changes = dict(data, id=ticket_id)
    sprint = mutate_sprint(
        sprint_id,
        lambda s: {"tickets": progress_engine.update_task(s, changes)}
    )
    return jsonify({"data": sprint})


@bp.route("/<sprint_id>/tickets/<ticket_id>", methods=["DELETE"])
def delete_ticket(sprint_id, ticket_id):
    """Delete a ticket and its logged hours."""
    sprint = mutate_sprint(
        sprint_id,
        lambda s: {"tickets": progress_engine.delete_task(s, ticket_id)}
    )
    return jsonify({"data": sprint})


@bp.route("/<sprint_id>/progress", methods=["POST"])
def log_progress(sprint_id):
    """Log hours on a ticket for one sprint day.

    Expects JSON body with:
        - ticketId: Existing ticket id, or "new-ticket" together with
          newTicketId, type, platform and optional estimation,
          newTicketTitle, newTicketDescription, newTicketTags
        - day: Sprint day token ("D1", "D2", ...)
        - loggedHours: Hours worked (> 0)
        - status: Ticket status after this log
    """
    data = get_json_body()

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    assignees = get_teams_config()["assignees"]
    sprint = mutate_sprint(
        sprint_id,
        lambda s: {"tickets": progress_engine.log_progress(s, data, assignees=assignees)}
    )
    return jsonify({"data": sprint})


def _bulk(sprint_id, operation):
    data = request.get_json(silent=True)
    rows = get_rows(data)

    if rows is None:
        return jsonify({"error": "Expected a list of rows"}), 400

    config = get_teams_config()
    result = {}

    def change(sprint):
        tickets, skipped = operation(
            sprint, rows,
            teams=config["teams"],
            default_team=config["defaultTeam"],
            assignees=config["assignees"]
        )
        result["skipped"] = skipped
        return {"tickets": tickets}

    sprint = mutate_sprint(sprint_id, change, record_undo=True)
    return jsonify({
        "data": {
            "sprint": sprint,
            "applied": len(rows) - result["skipped"],
            "skipped": result["skipped"]
        }
    })


@bp.route("/<sprint_id>/bulk/tasks", methods=["POST"])
def bulk_upload_tasks(sprint_id):
    """Create tickets from uploaded rows.

    Expects a JSON list (or {"rows": [...]}) of {id, title, type, platform,
    estimation, description, tags}. Rows with an id already in the sprint
    are skipped.
    """
    return _bulk(sprint_id, progress_engine.bulk_upload_tasks)


@bp.route("/<sprint_id>/bulk/progress", methods=["POST"])
def bulk_log_progress(sprint_id):
    """Apply uploaded progress rows of {ticketId, day, loggedHours, status,
    platform, type, estimation, title}."""
    return _bulk(sprint_id, progress_engine.bulk_log_progress)


@bp.route("/<sprint_id>/undo", methods=["POST"])
def undo_bulk(sprint_id):
    """Restore the tickets as they were before the last bulk upload."""
    store = get_store()
    undo_slots = get_undo_slots()

    with store.lock(sprint_id):
        store.get_sprint(sprint_id)
        tickets = undo_slots.restore(sprint_id)
        try:
            sprint = store.update_sprint(sprint_id, {"tickets": tickets})
        except Exception:
            # Save failed: keep the snapshot so the undo can be retried
            undo_slots.record(sprint_id, tickets)
            raise

    return jsonify({"data": sprint})

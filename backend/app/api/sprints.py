"""Sprint lifecycle API endpoints."""

from flask import Blueprint, request, jsonify

from app import get_store, get_teams_config, get_undo_slots, mutate_sprint
from services import progress_engine
from services.capacity import build_sprint_draft, person_days_from_capacity

bp = Blueprint("sprints", __name__, url_prefix="/api/sprints")


@bp.route("", methods=["GET"])
def list_sprints():
    """List all sprints, most recent start date first."""
    return jsonify({"data": get_store().get_sprints()})


@bp.route("", methods=["POST"])
def create_sprint():
    """Create a sprint in Scoping status.

    Expects JSON body with:
        - name: Sprint name
        - startDate, endDate: YYYY-MM-DD (inclusive)
        - teamPersonDays: Optional {team: personDays}; defaults to one
          person-day per working day for every configured team
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    draft = build_sprint_draft(
        data.get("name"),
        data.get("startDate"),
        data.get("endDate"),
        team_person_days=data.get("teamPersonDays"),
        teams=get_teams_config()["teams"]
    )
    sprint = get_store().add_sprint(draft)
    return jsonify({"data": sprint}), 201


@bp.route("/<sprint_id>", methods=["GET"])
def get_sprint(sprint_id):
    """Get a sprint with its latest report and whether a bulk upload can be undone."""
    sprint, report = get_store().get_sprint_with_report(sprint_id)
    return jsonify({
        "data": {
            "sprint": sprint,
            "reportContent": report,
            "canUndo": get_undo_slots().has_snapshot(sprint_id)
        }
    })


@bp.route("/<sprint_id>", methods=["PATCH"])
def edit_sprint(sprint_id):
    """Edit a sprint's name, dates or person-days.

    Sprint days and team capacity are recalculated from the new values;
    tickets and status are left untouched.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    teams = get_teams_config()["teams"]

    def change(sprint):
        person_days = data.get("teamPersonDays") or person_days_from_capacity(sprint)
        draft = build_sprint_draft(
            data.get("name", sprint.get("name")),
            data.get("startDate", sprint.get("startDate")),
            data.get("endDate", sprint.get("endDate")),
            team_person_days=person_days,
            teams=teams
        )
        keep = ("name", "startDate", "endDate", "sprintDays", "teamPersonDays", "teamCapacity",
                "buildCapacity", "runCapacity", "totalCapacity")
        return {key: draft[key] for key in keep}

    return jsonify({"data": mutate_sprint(sprint_id, change)})


@bp.route("/<sprint_id>", methods=["DELETE"])
def delete_sprint(sprint_id):
    """Delete a sprint and its reports."""
    store = get_store()
    with store.lock(sprint_id):
        store.delete_sprint(sprint_id)
    get_undo_slots().clear(sprint_id)
    return jsonify({"data": {"deleted": True}})


@bp.route("/<sprint_id>/finalize", methods=["POST"])
def finalize_scope(sprint_id):
    """Freeze the current tickets as initial scope and start the sprint."""
    return jsonify({"data": mutate_sprint(sprint_id, progress_engine.finalize_scope)})


@bp.route("/<sprint_id>/revert-scope", methods=["POST"])
def revert_scope(sprint_id):
    """Send an active sprint back to Scoping."""
    return jsonify({"data": mutate_sprint(sprint_id, progress_engine.revert_scope)})


@bp.route("/<sprint_id>/complete", methods=["POST"])
def complete_sprint(sprint_id):
    """Mark the sprint Completed. Its tickets become read-only."""
    return jsonify({"data": mutate_sprint(sprint_id, progress_engine.complete_sprint)})


@bp.route("/<sprint_id>/clear", methods=["POST"])
def clear_sprint(sprint_id):
    """Remove all tickets, logs and report references from the sprint."""
    return jsonify({"data": mutate_sprint(sprint_id, progress_engine.clear_sprint_data)})

"""Sprint metrics API endpoints."""

from flask import Blueprint, request, jsonify

from app import get_store, get_teams_config
from services.burndown import build_burndown
from services.capacity import capacity_totals
from services.distribution import (
    daily_progress_totals, daily_team_progress, scope_distribution,
    work_by_team, work_distribution
)
from services.team_performance import (
    sprint_warnings, summarize_sprint, team_performance, team_totals,
    velocity_change, velocity_trend
)

bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


def get_flag(name: str, default: bool = False) -> bool:
    """Read a boolean query param ("true", "1", "yes")."""
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def get_team():
    """Get the optional team filter; "all" means no filter."""
    team = request.args.get("team", "").strip()
    if not team or team.lower() == "all":
        return None
    return team


@bp.route("/<sprint_id>/burndown", methods=["GET"])
def get_burndown(sprint_id):
    """Get the burn-down series for a sprint.

    Query params:
        - team: Optional team filter
        - scope: "Total" (default), "Build" or "Run"
        - perspective: "creation" (default) or "initial"
        - baseline: Prepend a Day 0 point (default false)
        - projection: Include days after today (default true)
    """
    sprint = get_store().get_sprint(sprint_id)
    series = build_burndown(
        sprint,
        team=get_team(),
        scope=request.args.get("scope", "Total"),
        perspective=request.args.get("perspective", "creation"),
        include_baseline=get_flag("baseline"),
        show_projection=get_flag("projection", default=True)
    )
    return jsonify({"data": series})


@bp.route("/<sprint_id>/team-performance", methods=["GET"])
def get_team_performance(sprint_id):
    """Get planned vs delivered hours per team.

    Query params:
        - include_inactive: Also list teams with nothing planned or delivered
    """
    sprint = get_store().get_sprint(sprint_id)
    rows = team_performance(
        sprint,
        teams=get_teams_config()["teams"],
        include_inactive=get_flag("include_inactive")
    )
    return jsonify({"data": {"teams": rows, "totals": team_totals(rows)}})


@bp.route("/<sprint_id>/velocity", methods=["GET"])
def get_velocity(sprint_id):
    """Get the velocity trend of recent completed sprints plus this one."""
    store = get_store()
    sprint = store.get_sprint(sprint_id)
    trend = velocity_trend(sprint, store.get_sprints())

    velocity_data = {"trend": trend}
    velocity_data.update(velocity_change(trend))
    return jsonify({"data": velocity_data})


@bp.route("/<sprint_id>/distribution", methods=["GET"])
def get_distribution(sprint_id):
    """Get estimated and logged hours split by type scope and by team."""
    sprint = get_store().get_sprint(sprint_id)
    tickets = sprint.get("tickets") or []
    return jsonify({
        "data": {
            "scope": scope_distribution(tickets),
            "work": work_distribution(tickets),
            "byTeam": work_by_team(tickets, get_teams_config()["teams"])
        }
    })


@bp.route("/<sprint_id>/daily-progress", methods=["GET"])
def get_daily_progress(sprint_id):
    """Get Build/Run/Buffer hours logged per team for every sprint day."""
    sprint = get_store().get_sprint(sprint_id)
    days = daily_team_progress(sprint, get_teams_config()["teams"])
    return jsonify({"data": {"days": days, "totals": daily_progress_totals(days)}})


@bp.route("/<sprint_id>/summary", methods=["GET"])
def get_summary(sprint_id):
    """Get headline progress numbers, capacity totals and warnings."""
    sprint = get_store().get_sprint(sprint_id)
    summary = summarize_sprint(sprint)
    summary.update(capacity_totals(sprint.get("teamCapacity")))
    summary["warnings"] = sprint_warnings(sprint, summary)
    return jsonify({"data": summary})

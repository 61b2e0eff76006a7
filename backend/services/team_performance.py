"""Team performance, velocity and sprint health calculations."""

from typing import Optional

from services.capacity import capacity_totals
from services.sprint_model import (
    BUILD, RUN, BUFFER_SCOPE, DONE, OUT_OF_SCOPE_TEAM, TEAMS, parse_date
)

VELOCITY_HISTORY_LIMIT = 5


def performance_status(planned: float, delivered: float) -> str:
    """Band a team's delivery against its plan."""
    if planned == 0:
        return "Inactive" if delivered == 0 else "Bonus"

    efficiency = delivered / planned * 100
    if efficiency >= 95:
        return "Excellent"
    if efficiency >= 80:
        return "Good"
    if efficiency >= 60:
        return "Behind"
    return "Critical"


def delivered_build(tickets: list) -> float:
    """Build work counts its estimation once the ticket is Done."""
    return sum(
        t.get("estimation", 0) or 0
        for t in tickets
        if t.get("typeScope") == BUILD and t.get("status") == DONE
    )


def _logged_for_scope(tickets: list, type_scope: str) -> float:
    return sum(t.get("timeLogged", 0) or 0 for t in tickets if t.get("typeScope") == type_scope)


def _sprint_teams(sprint: dict, teams=None) -> list:
    ordered = list(teams or TEAMS)
    seen = set(ordered)
    extra = list((sprint.get("teamCapacity") or {}).keys())
    extra += [t.get("platform") for t in sprint.get("tickets") or []]
    for team in extra:
        if team and team not in seen:
            seen.add(team)
            ordered.append(team)
    return [team for team in ordered if team != OUT_OF_SCOPE_TEAM]


def team_performance(sprint: dict, teams=None, include_inactive: bool = False) -> list:
    """Planned vs delivered hours per team for one sprint.

    Build delivery is the estimation of Done Build tickets; Run delivery is
    the time logged on Run tickets. Buffer time is reported separately and
    left out of the totals.
    """
    capacity = sprint.get("teamCapacity") or {}
    tickets = sprint.get("tickets") or []
    duration = len(sprint.get("sprintDays") or [])

    rows = []
    for team in _sprint_teams(sprint, teams):
        team_tickets = [t for t in tickets if t.get("platform") == team]
        team_capacity = capacity.get(team) or {}

        planned_build = team_capacity.get("plannedBuild", 0) or 0
        planned_run = team_capacity.get("plannedRun", 0) or 0
        built = delivered_build(team_tickets)
        run = _logged_for_scope(team_tickets, RUN)
        buffer = _logged_for_scope(team_tickets, BUFFER_SCOPE)

        total_planned = planned_build + planned_run
        total_delivered = built + run

        if total_planned == 0 and total_delivered == 0 and not include_inactive:
            continue

        efficiency = total_delivered / total_planned * 100 if total_planned > 0 else 0
        velocity = total_delivered / duration if duration > 0 else 0
        issues = sum(
            1 for t in team_tickets
            if t.get("status") == "Blocked"
            or (t.get("estimation", 0) > 0 and t.get("timeLogged", 0) > t.get("estimation", 0))
        )

        rows.append({
            "team": team,
            "plannedBuild": planned_build,
            "plannedRun": planned_run,
            "deliveredBuild": built,
            "deliveredRun": run,
            "deliveredBuffer": buffer,
            "totalPlanned": total_planned,
            "totalDelivered": total_delivered,
            "efficiency": round(efficiency, 1),
            "velocity": round(velocity, 2),
            "status": performance_status(total_planned, total_delivered),
            "isOverCapacity": planned_run > 0 and run > planned_run,
            "issues": issues
        })

    return rows


def team_totals(rows: list) -> dict:
    planned = sum(r["totalPlanned"] for r in rows)
    delivered = sum(r["totalDelivered"] for r in rows)
    return {
        "planned": planned,
        "delivered": delivered,
        "efficiency": round(delivered / planned * 100, 1) if planned > 0 else 0
    }


def _start_key(sprint: dict):
    return parse_date(sprint.get("startDate")) or parse_date("1970-01-01")


def _planned_build(sprint: dict) -> float:
    if sprint.get("buildCapacity") is not None:
        return sprint["buildCapacity"]
    return capacity_totals(sprint.get("teamCapacity"))["buildCapacity"]


def velocity_trend(current: dict, all_sprints: list, limit: int = VELOCITY_HISTORY_LIMIT) -> list:
    """Velocity of the last ``limit`` completed sprints plus the current one.

    Sprints are ordered by start date, oldest first.
    """
    history = sorted(
        [s for s in all_sprints or [] if s.get("status") == "Completed" and s.get("id") != current.get("id")],
        key=_start_key
    )[-limit:] if limit > 0 else []

    trend = []
    for sprint in sorted(history + [current], key=_start_key):
        completed = delivered_build(sprint.get("tickets") or [])
        duration = len(sprint.get("sprintDays") or [])
        trend.append({
            "sprintId": sprint.get("id"),
            "sprint": (sprint.get("name") or "").split("(")[0].strip(),
            "planned": _planned_build(sprint),
            "completed": completed,
            "velocity": round(completed / duration, 1) if duration > 0 else 0
        })

    return trend


def velocity_change(trend: list) -> dict:
    """Compare the latest velocity with the one before it."""
    current = trend[-1]["velocity"] if trend else 0
    previous = trend[-2]["velocity"] if len(trend) > 1 else 0
    change = abs((current - previous) / previous * 100) if previous > 0 else 0
    return {
        "currentVelocity": current,
        "previousVelocity": previous,
        "velocityTrend": "up" if current >= previous else "down",
        "velocityChange": round(change, 1)
    }


def summarize_sprint(sprint: dict) -> dict:
    """Headline scope and progress numbers for a sprint."""
    tickets = sprint.get("tickets") or []
    total_scope = sum(
        t.get("estimation", 0) or 0 for t in tickets if t.get("typeScope") in (BUILD, RUN)
    )
    completed_work = sum(t.get("timeLogged", 0) or 0 for t in tickets)
    percentage = completed_work / total_scope * 100 if total_scope > 0 else 0

    return {
        "totalScope": total_scope,
        "completedWork": completed_work,
        "remainingWork": total_scope - completed_work,
        "percentageComplete": round(percentage, 1)
    }


def sprint_warnings(sprint: dict, summary: Optional[dict] = None) -> list:
    """Scope creep and Run overrun alerts for the dashboard."""
    summary = summary or summarize_sprint(sprint)
    totals = capacity_totals(sprint.get("teamCapacity"))
    total_capacity = sprint.get("totalCapacity", totals["totalCapacity"]) or 0
    run_capacity = sprint.get("runCapacity", totals["runCapacity"]) or 0

    warnings = []
    if total_capacity > 0 and summary["totalScope"] > total_capacity:
        warnings.append({
            "title": "Scope Creep Alert",
            "description": (
                f"Total scope ({summary['totalScope']:.1f}h) exceeds the sprint's "
                f"capacity ({total_capacity:.1f}h)."
            )
        })

    run_effort = _logged_for_scope(sprint.get("tickets") or [], RUN)
    if run_capacity > 0 and run_effort > run_capacity:
        warnings.append({
            "title": "Run Capacity Exceeded",
            "description": (
                f"Total time logged on 'Run' activities ({run_effort:.1f}h) has exceeded "
                f"the planned 'Run' capacity ({run_capacity:.1f}h)."
            )
        })

    return warnings

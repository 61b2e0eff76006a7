"""Burn-down series calculation.

Turns a sprint's tickets and daily logs into one point per sprint day:
remaining scope (total, Build, Run) against a straight-line ideal burn from
the initial scope to zero. Work added after the sprint starts raises the
remaining line on the day it is created; logged hours lower it on the day
they are logged.
"""

from datetime import timedelta
from typing import Optional

from services.errors import ValidationError
from services.sprint_model import BUILD, BUFFER_SCOPE, format_date, parse_date, today_string

SCOPE_FILTERS = ("Total", "Build", "Run")
PERSPECTIVES = ("creation", "initial")


def _filter_tickets(tickets: list, team: Optional[str], scope: str) -> list:
    if team:
        tickets = [t for t in tickets if t.get("platform") == team]

    if scope == "Total":
        # Buffer work never counts towards burn-down scope
        return [t for t in tickets if t.get("typeScope") != BUFFER_SCOPE]
    return [t for t in tickets if t.get("typeScope") == scope]


def _is_initial(ticket: dict, perspective: str, sprint_start: str) -> bool:
    if perspective == "initial":
        return bool(ticket.get("isInitialScope"))
    created = format_date(ticket.get("creationDate"))
    return not created or created <= sprint_start


def build_burndown(sprint: dict, team: Optional[str] = None, scope: str = "Total",
                   perspective: str = "creation", include_baseline: bool = False,
                   today=None, show_projection: bool = True) -> list:
    """Calculate the burn-down series for a sprint.

    Args:
        sprint: Sprint document
        team: Only count tickets of this platform (None for all teams)
        scope: "Total" (Build + Run), "Build" or "Run"
        perspective: "creation" treats tickets created on or before the first
            sprint day as initial scope; "initial" uses the isInitialScope
            flags stamped when the scope was finalized
        include_baseline: Prepend a "Day 0" point dated the day before the
            first sprint day, holding the full initial scope; the ideal
            line then reaches zero on Day n-1 and stays there on Day n
        today: Reference date for dropping future points
        show_projection: When False, points dated after ``today`` are dropped

    Returns:
        List of {day, date, ideal, actual, build, run, outOfScope}
    """
    if scope not in SCOPE_FILTERS:
        raise ValidationError(f"Unknown burn-down scope: {scope}", field="scope")
    if perspective not in PERSPECTIVES:
        raise ValidationError(f"Unknown burn-down perspective: {perspective}", field="perspective")

    sprint_days = sprint.get("sprintDays") or []
    if not sprint_days:
        return []

    sprint_start = sprint_days[0]["date"]
    tickets = _filter_tickets(sprint.get("tickets") or [], team, scope)

    initial_build = 0.0
    initial_run = 0.0
    delta = {d["date"]: {"newBuild": 0.0, "newRun": 0.0, "loggedBuild": 0.0, "loggedRun": 0.0}
             for d in sprint_days}

    for ticket in tickets:
        estimation = ticket.get("estimation", 0) or 0
        is_build = ticket.get("typeScope") == BUILD

        if _is_initial(ticket, perspective, sprint_start):
            if is_build:
                initial_build += estimation
            else:
                initial_run += estimation
        else:
            day_delta = delta.get(format_date(ticket.get("creationDate")))
            if day_delta:
                day_delta["newBuild" if is_build else "newRun"] += estimation

        for log in ticket.get("dailyLogs") or []:
            day_delta = delta.get(log.get("date"))
            if day_delta:
                day_delta["loggedBuild" if is_build else "loggedRun"] += log.get("loggedHours", 0) or 0

    initial_scope = initial_build + initial_run
    ideal_burn_per_day = initial_scope / max(len(sprint_days) - 1, 1)

    points = []
    if include_baseline:
        first_day = parse_date(sprint_start)
        points.append({
            "day": "Day 0",
            "date": (first_day - timedelta(days=1)).isoformat(),
            "ideal": round(initial_scope, 2),
            "actual": round(initial_scope, 2),
            "build": round(initial_build, 2),
            "run": round(initial_run, 2),
            "outOfScope": 0
        })

    remaining_build = initial_build
    remaining_run = initial_run
    out_of_scope = 0.0

    for day in sprint_days:
        day_delta = delta[day["date"]]
        remaining_build += day_delta["newBuild"] - day_delta["loggedBuild"]
        remaining_run += day_delta["newRun"] - day_delta["loggedRun"]
        out_of_scope += day_delta["newBuild"]

        step = len(points)
        ideal = initial_scope - step * ideal_burn_per_day
        actual = remaining_build + remaining_run

        points.append({
            "day": f"Day {day['day']}",
            "date": day["date"],
            "ideal": round(max(ideal, 0), 2),
            "actual": round(max(actual, 0), 2),
            "build": round(max(remaining_build, 0), 2),
            "run": round(max(remaining_run, 0), 2),
            "outOfScope": round(out_of_scope, 2)
        })

    if not show_projection:
        cutoff = today_string(today)
        points = [p for p in points if p["date"] <= cutoff]

    return points

"""Scope and work distribution by type scope, team and day."""

from services.sprint_model import BUILD, RUN, BUFFER_SCOPE, TEAMS, TYPE_SCOPES


def _format_distribution(values: dict) -> dict:
    total = sum(values.values())
    if total <= 0:
        return {"total": 0, "items": []}

    items = [
        {"name": name, "value": value, "percent": round(value / total * 100, 1)}
        for name, value in values.items()
        if value > 0
    ]
    return {"total": total, "items": items}


def _by_type_scope(tickets: list, field: str) -> dict:
    values = {scope: 0 for scope in TYPE_SCOPES}
    for ticket in tickets or []:
        scope = ticket.get("typeScope")
        if scope in values:
            values[scope] += ticket.get(field, 0) or 0
    return _format_distribution(values)


def scope_distribution(tickets: list) -> dict:
    """Estimated hours split by Build / Run / Sprint."""
    return _by_type_scope(tickets, "estimation")


def work_distribution(tickets: list) -> dict:
    """Logged hours split by Build / Run / Sprint."""
    return _by_type_scope(tickets, "timeLogged")


def work_by_team(tickets: list, teams=None) -> dict:
    """Logged hours split by team; tickets of unknown teams are ignored."""
    values = {team: 0 for team in teams or TEAMS}
    for ticket in tickets or []:
        platform = ticket.get("platform")
        if platform in values:
            values[platform] += ticket.get("timeLogged", 0) or 0
    return _format_distribution(values)


def _empty_progress(teams) -> dict:
    return {team: {"build": 0, "run": 0, "buffer": 0} for team in teams}


def daily_team_progress(sprint: dict, teams=None) -> list:
    """Build/Run/Buffer hours logged per team for every sprint day."""
    teams = list(teams or TEAMS)
    by_date = {}
    bucket_for = {BUILD: "build", RUN: "run", BUFFER_SCOPE: "buffer"}

    for ticket in sprint.get("tickets") or []:
        platform = ticket.get("platform")
        bucket = bucket_for.get(ticket.get("typeScope"))
        if platform not in teams or not bucket:
            continue
        for log in ticket.get("dailyLogs") or []:
            day = by_date.setdefault(log.get("date"), _empty_progress(teams))
            day[platform][bucket] += log.get("loggedHours", 0) or 0

    return [
        {
            "day": day["day"],
            "date": day["date"],
            "progress": by_date.get(day["date"]) or _empty_progress(teams)
        }
        for day in sprint.get("sprintDays") or []
    ]


def daily_progress_totals(days: list) -> dict:
    """Per-team and overall totals for a daily progress table."""
    team_totals = {}
    grand = {"build": 0, "run": 0, "buffer": 0}

    for day in days:
        for team, hours in day["progress"].items():
            totals = team_totals.setdefault(team, {"build": 0, "run": 0, "buffer": 0})
            for key in grand:
                totals[key] += hours[key]
                grand[key] += hours[key]

    grand["total"] = grand["build"] + grand["run"] + grand["buffer"]
    active_teams = [
        team for team, totals in team_totals.items()
        if totals["build"] > 0 or totals["run"] > 0 or totals["buffer"] > 0
    ]
    return {"teams": team_totals, "activeTeams": active_teams, "grandTotal": grand}

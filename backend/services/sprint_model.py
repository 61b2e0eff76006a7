"""Sprint and ticket data model.

Sprints and tickets travel as JSON-shaped dicts with camelCase keys, the same
shape the store persists and the API returns:

    Ticket: id, title, platform, type, typeScope, estimation, timeLogged,
            status, dailyLogs [{date, loggedHours}], creationDate,
            completionDate, isInitialScope, isOutOfScope, description,
            assignee, tags
    Sprint: id, name, startDate, endDate, status, sprintDays [{day, date}],
            teamCapacity {team: {plannedBuild, plannedRun}}, teamPersonDays,
            totalCapacity, buildCapacity, runCapacity, tickets,
            reportFilePaths, lastUpdatedAt, isSyncedToFirebase

This module holds the enum values and the small helpers every other service
relies on. It carries no aggregation logic.
"""

import math
from datetime import date, datetime
from typing import Optional

TEAMS = ["Backend", "iOS", "Web", "Android", "Mobile"]
DEFAULT_TEAM = "Web"
OUT_OF_SCOPE_TEAM = "Out of Scope"

TICKET_TYPES = ["User story", "Bug", "Task", "Buffer"]
TYPE_SCOPES = ["Build", "Run", "Sprint"]
STATUSES = ["To Do", "In Progress", "Doing", "Done", "Blocked"]
SPRINT_STATUSES = ["Scoping", "Active", "Completed"]

BUILD = "Build"
RUN = "Run"
BUFFER_SCOPE = "Sprint"
DONE = "Done"

# Estimation tracks time spent for these types
LOGGED_ESTIMATION_TYPES = {"Bug", "Buffer"}

NEW_TICKET = "new-ticket"

_TYPE_SCOPE_BY_TYPE = {
    "User story": BUILD,
    "Task": BUILD,
    "Bug": RUN,
    "Buffer": BUFFER_SCOPE,
}


def type_scope_for(ticket_type: Optional[str]) -> str:
    """Map a ticket type to its type scope (Bug→Run, Buffer→Sprint, else Build)."""
    return _TYPE_SCOPE_BY_TYPE.get(ticket_type, BUILD)


def tracks_logged_time(ticket_type: Optional[str]) -> bool:
    """True when the ticket's estimation must mirror its logged time."""
    return ticket_type in LOGGED_ESTIMATION_TYPES


def parse_date(value) -> Optional[date]:
    """Parse a date, ISO datetime string or datetime into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    formats = [
        "%Y-%m-%d",
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
    ]
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def format_date(value) -> Optional[str]:
    """Format anything parse_date accepts as YYYY-MM-DD."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def today_string(today=None) -> str:
    return format_date(today) if today else date.today().isoformat()


def parse_day_token(token) -> Optional[int]:
    """Turn a day token like "D3" (or 3) into its day number."""
    if token is None:
        return None
    if isinstance(token, int):
        return token
    text = str(token).strip().upper()
    if text.startswith("D"):
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        return None


def day_date_map(sprint: dict) -> dict:
    """Map day number to date for the sprint's working days."""
    return {d["day"]: d["date"] for d in sprint.get("sprintDays") or []}


def sum_logged_hours(daily_logs) -> float:
    return sum(log.get("loggedHours", 0) for log in daily_logs or [])


def to_hours(value, default: float = 0.0) -> float:
    """Coerce a user-supplied hours value to a float.

    Missing, non-numeric and non-finite (nan, inf) values give ``default``.
    """
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return default
    return hours if math.isfinite(hours) else default


def match_team(name: Optional[str], teams=None, default: str = DEFAULT_TEAM) -> str:
    """Case-insensitive lookup of a team name, falling back to ``default``."""
    if name:
        wanted = str(name).strip().lower()
        for team in teams or TEAMS:
            if team.lower() == wanted:
                return team
    return default


def split_tags(value) -> list:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return [tag.strip() for tag in str(value).split(",") if tag.strip()]

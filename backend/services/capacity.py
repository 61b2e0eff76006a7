"""Team capacity calculation and sprint day generation."""

import logging
import math
from datetime import timedelta
from typing import Optional

from services.errors import ValidationError
from services.sprint_model import TEAMS, parse_date

logger = logging.getLogger(__name__)

BUILD_HOURS_PER_DAY = 6
RUN_HOURS_PER_DAY = 2
# Fixed Run overhead per team per sprint
RUN_OVERHEAD_HOURS = 8


def _working_dates(start_date, end_date) -> list:
    start = parse_date(start_date)
    end = parse_date(end_date)

    if not start or not end:
        raise ValidationError("Start and end dates are required", field="startDate" if not start else "endDate")
    if end < start:
        raise ValidationError("End date must be after start date", field="endDate")

    dates = []
    current = start
    # Both ends are inclusive
    while current <= end:
        if current.weekday() < 5:  # Monday = 0, Friday = 4
            dates.append(current)
        current += timedelta(days=1)
    return dates


def count_work_days(start_date, end_date) -> int:
    """Count weekdays between two dates, both inclusive."""
    return len(_working_dates(start_date, end_date))


def generate_sprint_days(start_date, end_date) -> list:
    """Build the sprint's numbered working days (weekends excluded)."""
    return [
        {"day": index + 1, "date": day.isoformat()}
        for index, day in enumerate(_working_dates(start_date, end_date))
    ]


def default_person_days(sprint_days: list, teams=None) -> dict:
    """Pre-fill every team with one person-day per working day."""
    work_days = len(sprint_days or [])
    return {team: work_days for team in teams or TEAMS}


def person_days_from_capacity(sprint: dict, teams=None) -> dict:
    """Recover person-days from stored capacity for editing a sprint.

    Prefers the stored ``teamPersonDays``; otherwise derives them from the
    planned Build hours and falls back to the sprint's working-day count.
    """
    stored = sprint.get("teamPersonDays")
    if stored:
        return dict(stored)

    work_days = len(sprint.get("sprintDays") or [])
    capacity = sprint.get("teamCapacity") or {}
    result = {}
    for team in teams or list(capacity.keys()) or TEAMS:
        planned_build = (capacity.get(team) or {}).get("plannedBuild", 0)
        result[team] = planned_build / BUILD_HOURS_PER_DAY if planned_build > 0 else work_days
    return result


def calculate_team_capacity(team_person_days: dict) -> dict:
    """Derive Build/Run hour capacity per team from person-days.

    Raises ValidationError naming every team whose Run capacity would be
    negative; nothing is returned for the other teams in that case.
    """
    capacity = {}
    invalid = []

    for team, person_days in (team_person_days or {}).items():
        if isinstance(person_days, bool):
            raise ValidationError(f"Person-days for {team} must be a number", field=team)
        try:
            days = float(person_days)
        except (TypeError, ValueError):
            raise ValidationError(f"Person-days for {team} must be a number", field=team)
        if not math.isfinite(days):
            raise ValidationError(f"Person-days for {team} must be a number", field=team)
        if days < 0:
            raise ValidationError(f"Person-days for {team} must be non-negative", field=team)
        if days.is_integer():
            days = int(days)

        planned_build = days * BUILD_HOURS_PER_DAY
        planned_run = days * RUN_HOURS_PER_DAY - RUN_OVERHEAD_HOURS

        if planned_run < 0:
            invalid.append((team, planned_run))
            continue

        capacity[team] = {"plannedBuild": planned_build, "plannedRun": planned_run}

    if invalid:
        details = ", ".join(f"{team} ({run}h)" for team, run in invalid)
        logger.warning(f"Rejected capacity with negative Run hours: {details}")
        raise ValidationError(
            f"Run capacity is negative for {details}. Please adjust person-days.",
            field=invalid[0][0]
        )

    return capacity


def capacity_totals(team_capacity: dict) -> dict:
    """Sum Build and Run capacity across teams."""
    build = sum((c or {}).get("plannedBuild", 0) for c in (team_capacity or {}).values())
    run = sum((c or {}).get("plannedRun", 0) for c in (team_capacity or {}).values())
    return {
        "buildCapacity": build,
        "runCapacity": run,
        "totalCapacity": build + run
    }


def build_sprint_draft(name: str, start_date, end_date, team_person_days: Optional[dict] = None,
                       sprint_days: Optional[list] = None, teams=None) -> dict:
    """Assemble a new sprint document in Scoping status.

    ``sprint_days`` overrides the generated working days (used when a sprint's
    calendar was edited by hand).
    """
    if not name or not str(name).strip():
        raise ValidationError("Sprint name is required", field="name")

    generated = generate_sprint_days(start_date, end_date)
    days = sprint_days if sprint_days is not None else generated
    if sprint_days is None and team_person_days is None:
        team_person_days = default_person_days(days, teams)

    team_capacity = calculate_team_capacity(team_person_days or {})

    draft = {
        "name": str(name).strip(),
        "startDate": parse_date(start_date).isoformat(),
        "endDate": parse_date(end_date).isoformat(),
        "status": "Scoping",
        "sprintDays": days,
        "teamPersonDays": dict(team_person_days or {}),
        "teamCapacity": team_capacity,
        "tickets": [],
        "reportFilePaths": [],
        "isSyncedToFirebase": False,
    }
    draft.update(capacity_totals(team_capacity))
    return draft

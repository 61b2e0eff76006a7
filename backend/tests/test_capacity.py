"""Tests for capacity calculation and sprint days."""

from datetime import date

import pytest

from services.capacity import (
    build_sprint_draft, calculate_team_capacity, capacity_totals,
    count_work_days, default_person_days, generate_sprint_days,
    person_days_from_capacity
)
from services.errors import ValidationError


class TestSprintDays:
    """Test working day generation."""

    def test_weekends_excluded(self):
        """Two calendar weeks should give ten working days."""
        days = generate_sprint_days("2024-01-01", "2024-01-14")
        assert len(days) == 10
        assert days[0] == {"day": 1, "date": "2024-01-01"}
        assert days[-1] == {"day": 10, "date": "2024-01-12"}
        assert "2024-01-06" not in [d["date"] for d in days]

    def test_both_ends_inclusive(self):
        """Start and end dates should both count when they are weekdays."""
        assert count_work_days("2024-01-01", "2024-01-01") == 1
        assert count_work_days("2024-01-01", "2024-01-05") == 5

    def test_weekend_only_range(self):
        """A Saturday to Sunday range has no working days."""
        assert generate_sprint_days("2024-01-06", "2024-01-07") == []

    def test_accepts_dates_and_iso_datetimes(self):
        """Should accept date objects and ISO datetime strings."""
        assert count_work_days(date(2024, 1, 1), "2024-01-05T00:00:00.000Z") == 5

    def test_end_before_start_rejected(self):
        """Should reject an end date before the start date."""
        with pytest.raises(ValidationError) as exc:
            generate_sprint_days("2024-01-10", "2024-01-01")
        assert exc.value.field == "endDate"

    def test_missing_date_rejected(self):
        """Should reject a missing start date."""
        with pytest.raises(ValidationError) as exc:
            count_work_days(None, "2024-01-01")
        assert exc.value.field == "startDate"


class TestTeamCapacity:
    """Test Build/Run capacity from person-days."""

    def test_four_person_days_boundary_accepted(self):
        """Run capacity of exactly zero should be accepted."""
        capacity = calculate_team_capacity({"Web": 4})
        assert capacity["Web"] == {"plannedBuild": 24, "plannedRun": 0}

    def test_three_person_days_rejected(self):
        """Negative Run capacity should reject the whole commit."""
        with pytest.raises(ValidationError) as exc:
            calculate_team_capacity({"Backend": 10, "Web": 3})
        assert exc.value.field == "Web"
        assert "Web" in exc.value.message

    def test_all_offending_teams_named(self):
        """Every team with negative Run capacity should be named."""
        with pytest.raises(ValidationError) as exc:
            calculate_team_capacity({"Web": 1, "iOS": 2, "Backend": 10})
        assert "Web" in exc.value.message
        assert "iOS" in exc.value.message
        assert "Backend" not in exc.value.message

    def test_fractional_person_days(self):
        """Fractional person-days should scale linearly."""
        capacity = calculate_team_capacity({"Web": 4.5})
        assert capacity["Web"] == {"plannedBuild": 27, "plannedRun": 1}

    def test_numeric_strings_accepted(self):
        """Form values arrive as strings."""
        assert calculate_team_capacity({"Web": "5"})["Web"]["plannedBuild"] == 30

    @pytest.mark.parametrize("value", [-1, "abc", None, True, "nan", float("inf")])
    def test_invalid_person_days_rejected(self, value):
        """Should reject negative or non-numeric person-days."""
        with pytest.raises(ValidationError):
            calculate_team_capacity({"Web": value})

    def test_totals(self, team_capacity):
        """Totals should sum across teams."""
        totals = capacity_totals(team_capacity)
        assert totals == {"buildCapacity": 90, "runCapacity": 6, "totalCapacity": 96}

    def test_totals_empty(self):
        """No teams means no capacity."""
        assert capacity_totals({}) == {"buildCapacity": 0, "runCapacity": 0, "totalCapacity": 0}


class TestPersonDays:
    """Test person-day defaults and recovery."""

    def test_default_person_days(self, sprint_days):
        """Every team should default to the working-day count."""
        assert default_person_days(sprint_days, ["Web", "iOS"]) == {"Web": 5, "iOS": 5}

    def test_recovers_stored_person_days(self, sample_sprint):
        """Stored person-days should be returned as-is."""
        assert person_days_from_capacity(sample_sprint) == {"Web": 5, "Backend": 5, "iOS": 5}

    def test_derives_from_planned_build(self, scoping_sprint):
        """Without stored person-days, derive them from plannedBuild."""
        scoping_sprint["teamCapacity"]["Web"]["plannedBuild"] = 24
        person_days = person_days_from_capacity(scoping_sprint)
        assert person_days["Web"] == 4
        assert person_days["Backend"] == 5


class TestSprintDraft:
    """Test new sprint assembly."""

    def test_draft_in_scoping(self):
        """A new sprint starts in Scoping with computed capacity."""
        draft = build_sprint_draft("Sprint 9", "2024-01-01", "2024-01-12", {"Web": 10, "Backend": 8})

        assert draft["status"] == "Scoping"
        assert len(draft["sprintDays"]) == 10
        assert draft["teamCapacity"]["Backend"] == {"plannedBuild": 48, "plannedRun": 8}
        assert draft["buildCapacity"] == 108
        assert draft["runCapacity"] == 20
        assert draft["totalCapacity"] == 128
        assert draft["tickets"] == []

    def test_default_capacity_for_all_teams(self):
        """Without person-days every configured team gets one per working day."""
        draft = build_sprint_draft("Sprint 9", "2024-01-01", "2024-01-12", teams=["Web", "iOS"])
        assert draft["teamPersonDays"] == {"Web": 10, "iOS": 10}
        assert draft["teamCapacity"]["iOS"] == {"plannedBuild": 60, "plannedRun": 12}

    def test_name_required(self):
        """Should reject a blank sprint name."""
        with pytest.raises(ValidationError) as exc:
            build_sprint_draft("  ", "2024-01-01", "2024-01-12", {"Web": 5})
        assert exc.value.field == "name"

    def test_negative_run_rejects_draft(self):
        """No draft is produced when any team's capacity is invalid."""
        with pytest.raises(ValidationError):
            build_sprint_draft("Sprint 9", "2024-01-01", "2024-01-12", {"Web": 10, "iOS": 3})

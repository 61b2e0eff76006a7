"""Tests for burn-down series calculation."""

import pytest

from services.burndown import build_burndown
from services.errors import ValidationError


@pytest.fixture
def two_day_sprint():
    """Two sprint days and one untouched 10h Build ticket."""
    return {
        "id": "s",
        "status": "Active",
        "sprintDays": [{"day": 1, "date": "2024-01-01"}, {"day": 2, "date": "2024-01-02"}],
        "tickets": [{
            "id": "T-1",
            "platform": "Web",
            "type": "User story",
            "typeScope": "Build",
            "estimation": 10,
            "timeLogged": 0,
            "status": "To Do",
            "dailyLogs": [],
            "creationDate": "2024-01-01",
            "isInitialScope": True
        }]
    }


class TestBurndownScenarios:
    """Test the basic burn-down shape."""

    def test_two_day_sprint_with_baseline(self, two_day_sprint):
        """Day 0 and Day 1 should hold the full scope; the ideal reaches zero on Day 1."""
        points = build_burndown(two_day_sprint, include_baseline=True)

        assert [p["day"] for p in points] == ["Day 0", "Day 1", "Day 2"]
        assert points[0]["date"] == "2023-12-31"
        assert points[0]["ideal"] == 10
        assert points[0]["actual"] == 10
        assert points[1]["ideal"] == 0
        assert points[1]["actual"] == 10

    def test_baseline_ideal_reaches_zero_before_last_day(self, two_day_sprint):
        """With a baseline the ideal hits zero on the second-to-last day and stays there."""
        two_day_sprint["sprintDays"] = [
            {"day": i, "date": f"2024-01-0{i}"} for i in range(1, 6)
        ]
        points = build_burndown(two_day_sprint, include_baseline=True)
        assert [p["ideal"] for p in points] == [10, 7.5, 5, 2.5, 0, 0]

    def test_two_day_sprint_without_baseline(self, two_day_sprint):
        """Without a baseline the ideal runs from full scope on Day 1 to zero on the last day."""
        points = build_burndown(two_day_sprint)
        assert [p["ideal"] for p in points] == [10, 0]
        assert [p["actual"] for p in points] == [10, 10]

    def test_single_day_sprint(self, two_day_sprint):
        """A one-day sprint should not divide by zero."""
        two_day_sprint["sprintDays"] = two_day_sprint["sprintDays"][:1]
        points = build_burndown(two_day_sprint)
        assert points == [{
            "day": "Day 1", "date": "2024-01-01", "ideal": 10, "actual": 10,
            "build": 10, "run": 0, "outOfScope": 0
        }]

    def test_no_sprint_days(self, two_day_sprint):
        """Zero sprint days gives an empty series."""
        two_day_sprint["sprintDays"] = []
        assert build_burndown(two_day_sprint) == []

    def test_no_tickets(self, sample_sprint):
        """An empty sprint burns nothing."""
        sample_sprint["tickets"] = []
        points = build_burndown(sample_sprint)
        assert len(points) == 5
        assert all(p["ideal"] == 0 and p["actual"] == 0 for p in points)


class TestBurndownAccounting:
    """Test logged hours, added scope and filters."""

    def test_total_series(self, sample_sprint):
        """Logged hours lower the line; scope added mid-sprint raises it."""
        points = build_burndown(sample_sprint)

        assert [p["actual"] for p in points] == [15, 6, 11, 11, 11]
        assert [p["ideal"] for p in points] == [19, 14.25, 9.5, 4.75, 0]
        assert [p["outOfScope"] for p in points] == [0, 0, 5, 5, 5]
        assert points[1]["build"] == 6
        assert points[1]["run"] == 0

    def test_buffer_excluded(self, sample_sprint):
        """Buffer tickets never enter the burn-down."""
        totals = build_burndown(sample_sprint)
        sample_sprint["tickets"] = [t for t in sample_sprint["tickets"] if t["type"] != "Buffer"]
        assert build_burndown(sample_sprint) == totals

    def test_build_scope_filter(self, sample_sprint):
        """Build filter keeps only Build tickets."""
        points = build_burndown(sample_sprint, scope="Build")
        assert [p["actual"] for p in points] == [12, 6, 11, 11, 11]
        assert points[0]["ideal"] == 16

    def test_run_scope_filter(self, sample_sprint):
        """Run filter keeps only Run tickets."""
        points = build_burndown(sample_sprint, scope="Run")
        assert [p["actual"] for p in points] == [3, 0, 0, 0, 0]

    def test_team_filter(self, sample_sprint):
        """Team filter keeps only that team's tickets."""
        points = build_burndown(sample_sprint, team="Backend")
        assert points[0]["ideal"] == 3
        assert points[1]["actual"] == 0

    def test_never_negative(self, two_day_sprint):
        """Logging more than the estimate clamps remaining work at zero."""
        ticket = two_day_sprint["tickets"][0]
        ticket["dailyLogs"] = [{"date": "2024-01-01", "loggedHours": 14}]
        ticket["timeLogged"] = 14
        points = build_burndown(two_day_sprint)
        assert [p["actual"] for p in points] == [0, 0]

    def test_logs_outside_sprint_ignored(self, two_day_sprint):
        """Logs dated outside the sprint days do not move the line."""
        two_day_sprint["tickets"][0]["dailyLogs"] = [{"date": "2024-02-01", "loggedHours": 4}]
        assert [p["actual"] for p in build_burndown(two_day_sprint)] == [10, 10]

    def test_idempotent(self, sample_sprint):
        """Aggregating the same sprint twice gives identical output."""
        assert build_burndown(sample_sprint) == build_burndown(sample_sprint)

    def test_monotonic_without_new_scope(self, sample_sprint):
        """Remaining work never rises when no scope is added."""
        sample_sprint["tickets"] = [t for t in sample_sprint["tickets"] if t["id"] != "WEB-3"]
        actuals = [p["actual"] for p in build_burndown(sample_sprint)]
        assert all(later <= earlier for earlier, later in zip(actuals, actuals[1:]))


class TestBurndownOptions:
    """Test perspective, baseline and projection options."""

    def test_initial_scope_perspective(self, sample_sprint):
        """The initial perspective uses the finalized scope flags."""
        late = sample_sprint["tickets"][4]
        late["isInitialScope"] = True

        by_creation = build_burndown(sample_sprint)
        by_flag = build_burndown(sample_sprint, perspective="initial")

        assert by_creation[0]["ideal"] == 19
        assert by_flag[0]["ideal"] == 24
        assert by_flag[2]["outOfScope"] == 0

    def test_baseline_ideal_slope(self, sample_sprint):
        """With a baseline, Day k sits k steps down the ideal line."""
        points = build_burndown(sample_sprint, include_baseline=True)
        assert len(points) == 6
        assert [p["ideal"] for p in points] == [19, 14.25, 9.5, 4.75, 0, 0]
        assert points[0]["build"] == 16
        assert points[0]["run"] == 3

    def test_future_points_dropped(self, sample_sprint):
        """Points after today are dropped when projection is off."""
        points = build_burndown(sample_sprint, show_projection=False, today="2024-01-02")
        assert [p["date"] for p in points] == ["2024-01-01", "2024-01-02"]

    def test_projection_kept_by_default(self, sample_sprint):
        """All days are returned when projection is on."""
        assert len(build_burndown(sample_sprint, today="2024-01-02")) == 5

    def test_invalid_scope(self, sample_sprint):
        """Should reject an unknown scope filter."""
        with pytest.raises(ValidationError):
            build_burndown(sample_sprint, scope="Sprint")

    def test_invalid_perspective(self, sample_sprint):
        """Should reject an unknown perspective."""
        with pytest.raises(ValidationError):
            build_burndown(sample_sprint, perspective="final")

"""Shared fixtures for Sprint Tracker tests."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def team_capacity():
    """Capacity for three teams at 5 person-days each."""
    return {
        "Web": {"plannedBuild": 30, "plannedRun": 2},
        "Backend": {"plannedBuild": 30, "plannedRun": 2},
        "iOS": {"plannedBuild": 30, "plannedRun": 2}
    }


@pytest.fixture
def sprint_days():
    """One working week, Monday to Friday."""
    return [
        {"day": 1, "date": "2024-01-01"},
        {"day": 2, "date": "2024-01-02"},
        {"day": 3, "date": "2024-01-03"},
        {"day": 4, "date": "2024-01-04"},
        {"day": 5, "date": "2024-01-05"}
    ]


@pytest.fixture
def sample_tickets():
    """Tickets covering every type, with logs on the first three days."""
    return [
        {
            "id": "WEB-1",
            "title": "Checkout page",
            "platform": "Web",
            "type": "User story",
            "typeScope": "Build",
            "estimation": 10,
            "timeLogged": 4,
            "status": "In Progress",
            "dailyLogs": [{"date": "2024-01-01", "loggedHours": 4}],
            "creationDate": "2024-01-01",
            "isInitialScope": True,
            "isOutOfScope": False
        },
        {
            "id": "BE-7",
            "title": "Payment timeout",
            "platform": "Backend",
            "type": "Bug",
            "typeScope": "Run",
            "estimation": 3,
            "timeLogged": 3,
            "status": "Done",
            "dailyLogs": [{"date": "2024-01-02", "loggedHours": 3}],
            "creationDate": "2024-01-01",
            "completionDate": "2024-01-02",
            "isInitialScope": True,
            "isOutOfScope": False
        },
        {
            "id": "WEB-2",
            "title": "Cart API wiring",
            "platform": "Web",
            "type": "Task",
            "typeScope": "Build",
            "estimation": 6,
            "timeLogged": 6,
            "status": "Done",
            "dailyLogs": [{"date": "2024-01-02", "loggedHours": 6}],
            "creationDate": "2024-01-01",
            "completionDate": "2024-01-02",
            "isInitialScope": True,
            "isOutOfScope": False
        },
        {
            "id": "IOS-BUF",
            "title": "Release support",
            "platform": "iOS",
            "type": "Buffer",
            "typeScope": "Sprint",
            "estimation": 2,
            "timeLogged": 2,
            "status": "In Progress",
            "dailyLogs": [{"date": "2024-01-03", "loggedHours": 2}],
            "creationDate": "2024-01-01",
            "isInitialScope": True,
            "isOutOfScope": False
        },
        {
            "id": "WEB-3",
            "title": "Promo banner",
            "platform": "Web",
            "type": "User story",
            "typeScope": "Build",
            "estimation": 5,
            "timeLogged": 0,
            "status": "To Do",
            "dailyLogs": [],
            "creationDate": "2024-01-03",
            "isInitialScope": False,
            "isOutOfScope": True
        }
    ]


@pytest.fixture
def sample_sprint(sprint_days, team_capacity, sample_tickets):
    """Active sprint with scope added mid-sprint."""
    return {
        "id": "sprint-1",
        "name": "Sprint 1 (Jan)",
        "startDate": "2024-01-01",
        "endDate": "2024-01-05",
        "status": "Active",
        "sprintDays": sprint_days,
        "teamCapacity": team_capacity,
        "teamPersonDays": {"Web": 5, "Backend": 5, "iOS": 5},
        "buildCapacity": 90,
        "runCapacity": 6,
        "totalCapacity": 96,
        "tickets": sample_tickets,
        "reportFilePaths": [],
        "isSyncedToFirebase": False
    }


@pytest.fixture
def scoping_sprint(sprint_days, team_capacity):
    """Empty sprint still in Scoping."""
    return {
        "id": "sprint-2",
        "name": "Sprint 2",
        "startDate": "2024-01-01",
        "endDate": "2024-01-05",
        "status": "Scoping",
        "sprintDays": sprint_days,
        "teamCapacity": team_capacity,
        "tickets": [],
        "reportFilePaths": []
    }


@pytest.fixture
def sprint_payload():
    """Request body for creating a sprint."""
    return {
        "name": "Sprint 42",
        "startDate": "2024-01-01",
        "endDate": "2024-01-12",
        "teamPersonDays": {"Web": 10, "Backend": 8}
    }


@pytest.fixture
def app(tmp_path):
    """Create Flask test app backed by a temporary data directory."""
    from app import create_app
    app = create_app({
        "TESTING": True,
        "SPRINT_DATA_DIR": str(tmp_path / "data"),
        "TEAMS_CONFIG_PATH": str(tmp_path / "missing-config.json"),
        "REPORT_API_URL": "https://llm.example.com/v1",
        "REPORT_API_KEY": "test-key"
    })
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def store(app):
    """The app's sprint store."""
    return app.extensions["sprint_store"]

"""Flask application factory."""

import json
import os
from flask import Flask, current_app, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from services.errors import NotFoundError, SprintLockedError, ValidationError
from services.progress_engine import UndoSlots
from services.sprint_model import DEFAULT_TEAM, TEAMS
from services.sprint_store import SprintStore

CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "teams-config.json"
)


def load_teams_config(app):
    """Load team names, the default team and assignees from the config file."""
    config_path = app.config.get("TEAMS_CONFIG_PATH", CONFIG_PATH)
    teams_config = {"teams": list(TEAMS), "defaultTeam": DEFAULT_TEAM, "assignees": {}}

    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                config = json.load(f)
                teams_config["teams"] = config.get("teams") or teams_config["teams"]
                teams_config["defaultTeam"] = config.get("defaultTeam") or DEFAULT_TEAM
                teams_config["assignees"] = config.get("assignees") or {}
                app.logger.info(
                    f"Loaded {len(teams_config['teams'])} teams and "
                    f"{len(teams_config['assignees'])} assignees"
                )
        except (json.JSONDecodeError, IOError) as e:
            app.logger.warning(f"Failed to load teams config: {e}")
    else:
        app.logger.info("No teams-config.json found, using default teams")

    app.config["TEAMS_CONFIG"] = teams_config


def get_teams_config() -> dict:
    return current_app.config["TEAMS_CONFIG"]


def get_store() -> SprintStore:
    return current_app.extensions["sprint_store"]


def get_undo_slots() -> UndoSlots:
    return current_app.extensions["undo_slots"]


def register_error_handlers(app):
    """Map service errors to JSON error responses."""

    @app.errorhandler(SprintLockedError)
    def sprint_locked(e):
        return jsonify({"error": e.message, "field": e.field}), 409

    @app.errorhandler(ValidationError)
    def validation_error(e):
        return jsonify({"error": e.message, "field": e.field}), 400

    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(Exception)
    def unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        app.logger.exception(f"Unhandled error: {e}")
        return jsonify({"error": str(e)}), 500


def create_app(config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config["SPRINT_DATA_DIR"] = os.environ.get("SPRINT_DATA_DIR")
    app.config["REPORT_API_URL"] = os.environ.get("REPORT_API_URL", "https://api.openai.com/v1")
    app.config["REPORT_API_KEY"] = os.environ.get("REPORT_API_KEY")
    app.config["REPORT_MODEL"] = os.environ.get("REPORT_MODEL")
    if config:
        app.config.update(config)

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Report-Server", "X-Report-Token"]
        }
    })

    load_teams_config(app)
    app.extensions["sprint_store"] = SprintStore(app.config["SPRINT_DATA_DIR"])
    app.extensions["undo_slots"] = UndoSlots()
    register_error_handlers(app)

    # Register blueprints
    from app.api import sprints, tickets, metrics, reports
    app.register_blueprint(sprints.bp)
    app.register_blueprint(tickets.bp)
    app.register_blueprint(metrics.bp)
    app.register_blueprint(reports.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app


def mutate_sprint(sprint_id: str, change, record_undo: bool = False) -> dict:
    """Apply ``change(sprint) -> partial`` to a stored sprint under its lock.

    Bulk operations pass ``record_undo`` so the tickets they started from can
    be restored; every other mutation discards the sprint's undo snapshot.
    The snapshot is only touched once the update has been saved.
    """
    store = get_store()
    undo_slots = get_undo_slots()

    with store.lock(sprint_id):
        sprint = store.get_sprint(sprint_id)
        partial = change(sprint)
        updated = store.update_sprint(sprint_id, partial)
        if record_undo:
            undo_slots.record(sprint_id, sprint.get("tickets"))
        else:
            undo_slots.clear(sprint_id)

    return updated

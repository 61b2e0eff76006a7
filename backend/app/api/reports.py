"""Sprint report API endpoints."""

from flask import Blueprint, current_app, request, jsonify
import requests

from app import get_store
from services.report_client import SprintReportClient

bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def get_report_settings():
    """Report API settings, with request headers overriding the app config."""
    server = request.headers.get("X-Report-Server") or current_app.config.get("REPORT_API_URL") or ""
    token = request.headers.get("X-Report-Token") or current_app.config.get("REPORT_API_KEY")
    return server.rstrip("/"), token


@bp.route("/<sprint_id>", methods=["GET"])
def get_report(sprint_id):
    """Get the latest report for a sprint (null if none was generated)."""
    sprint, report = get_store().get_sprint_with_report(sprint_id)
    return jsonify({
        "data": {
            "sprintId": sprint["id"],
            "reportContent": report,
            "reportCount": len(sprint.get("reportFilePaths") or [])
        }
    })


@bp.route("/<sprint_id>/generate", methods=["POST"])
def generate_report(sprint_id):
    """Generate a report with the configured model and store it with the sprint."""
    server, token = get_report_settings()

    if not server:
        return jsonify({"error": "Missing report API server"}), 401

    store = get_store()
    sprint = store.get_sprint(sprint_id)
    all_sprints = store.get_sprints()

    try:
        client = SprintReportClient(server, token, current_app.config.get("REPORT_MODEL"))
        report = client.generate_report(sprint, all_sprints)
    except requests.exceptions.Timeout:
        return jsonify({"error": "Report generation timed out"}), 504
    except requests.exceptions.RequestException as e:
        return jsonify({"error": f"Report API error: {e}"}), 502
    except ValueError as e:
        return jsonify({"error": str(e)}), 502

    with store.lock(sprint_id):
        updated = store.save_report(sprint_id, report)

    return jsonify({"data": {"sprint": updated, "reportContent": report}})

"""Sprint report generation through an OpenAI-compatible chat completions API."""

import json
import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

REPORT_INSTRUCTIONS = """You are a project manager writing a sprint report in Markdown.
Use only the JSON data provided. When a section lacks data, say
"Not enough data to generate this section." and name what is missing.
A ticket's "platform" is the team responsible for it.

Sections, as Markdown headings:
## 1. Executive Summary
## 2. Team Performance
## 3. Highlights & Achievements
## 4. Challenges & Learnings
## 5. Recommendations

Use the historical sprints for trend comparisons when there is more than one."""


class SprintReportClient:
    """Generates Markdown sprint reports from sprint data."""

    def __init__(self, server: str, token: Optional[str] = None,
                 model: Optional[str] = None, timeout: int = 120):
        self.server = server.rstrip("/")
        self.token = token
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout

    def _request(self, endpoint: str, payload: dict) -> dict:
        """Make an authenticated POST to the completions API."""
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = requests.post(
            f"{self.server}{endpoint}",
            headers=headers,
            json=payload,
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _history(self, sprint: dict, all_sprints: list) -> list:
        # Reports only need each past sprint's headline numbers and tickets
        keep = ("id", "name", "startDate", "endDate", "status", "teamCapacity",
                "buildCapacity", "runCapacity", "totalCapacity", "tickets")
        return [
            {key: s.get(key) for key in keep}
            for s in all_sprints or []
            if s.get("id") != sprint.get("id")
        ]

    def build_messages(self, sprint: dict, all_sprints: list) -> list:
        current = {k: v for k, v in sprint.items() if k != "reportFilePaths"}
        data = (
            "Current sprint:\n```json\n"
            f"{json.dumps(current, indent=2)}\n```\n\n"
            "Historical sprints:\n```json\n"
            f"{json.dumps(self._history(sprint, all_sprints), indent=2)}\n```"
        )
        return [
            {"role": "system", "content": REPORT_INSTRUCTIONS},
            {"role": "user", "content": data},
        ]

    def generate_report(self, sprint: dict, all_sprints: list) -> str:
        """Ask the model for a report on ``sprint``.

        Raises:
            requests.exceptions.RequestException: The API call failed
            ValueError: The response carried no report text
        """
        logger.info(f"Generating report for sprint {sprint.get('id')} with {self.model}")
        result = self._request("/chat/completions", {
            "model": self.model,
            "messages": self.build_messages(sprint, all_sprints),
            "temperature": 0.2
        })

        choices = result.get("choices") or []
        content = ((choices[0] if choices else {}).get("message") or {}).get("content")
        if not content:
            raise ValueError("Report service returned an empty report")
        return content.strip()

"""
Project Checklist task API client.

Thin ``requests`` wrapper over the ``/api/v1/projects/<pid>/tasks`` endpoints
for scripts, other services and integration tests.

Rules:
  - Task ids are reduced with ``normalize_task_id`` before they go into a
    path. The server still resolves identity on its own.
  - Every response must be JSON. Anything else (an HTML proxy page, an empty
    502 body) raises ``TaskApiProtocolError`` instead of being parsed.
  - JSON error bodies raise ``TaskApiError`` carrying the HTTP status and the
    server's machine-readable ``error`` code.

Testability: pass a mock ``session`` instead of letting the client create a
real requests.Session.

Usage:
    client = TaskApiClient("http://localhost:5000")
    task = client.update_task(project_id, raw_id, {"completed": True})
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from app.utils.task_ids import normalize_task_id

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10
_API_PREFIX = "/api/v1"


class TaskApiError(Exception):
    """The server answered with a JSON error body (or could not be reached).

    Attributes:
        status_code: HTTP status (None for network-level failures).
        code:        Server error code, e.g. "TASK_NOT_FOUND".
        details:     Optional structured payload from the error body.
    """

    def __init__(self, message: str, *, status_code: int | None, code: str,
                 details: dict | None = None) -> None:
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class TaskApiProtocolError(TaskApiError):
    """The server answered with something other than JSON."""


class TaskApiClient:
    """HTTP client for the project task endpoints."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: int | float = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: requests.Session | None = session

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── URL building ─────────────────────────────────────────────────────────

    def _tasks_url(self, project_id: str) -> str:
        return f"{self.base_url}{_API_PREFIX}/projects/{quote(str(project_id), safe='')}/tasks"

    def _task_url(self, project_id: str, raw_id: str) -> str:
        task_id = normalize_task_id(raw_id)
        return f"{self._tasks_url(project_id)}/{quote(task_id, safe='')}"

    # ── Core request dispatcher ──────────────────────────────────────────────

    def _request(self, method: str, url: str, *, json_body=None, params=None):
        try:
            resp = self.session.request(
                method,
                url,
                json=json_body,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Task API %s %s failed: %s", method, url, exc)
            raise TaskApiError(
                f"{method} {url} failed: {exc}", status_code=None, code="TRANSPORT_ERROR"
            ) from exc

        content_type = resp.headers.get("Content-Type", "")
        if "application/json" not in content_type.lower():
            logger.error(
                "Task API %s %s returned non-JSON response (status=%s content-type=%r)",
                method, url, resp.status_code, content_type,
            )
            raise TaskApiProtocolError(
                f"Expected JSON from {method} {url}, got {content_type or 'no content-type'}",
                status_code=resp.status_code,
                code="NON_JSON_RESPONSE",
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise TaskApiProtocolError(
                f"Malformed JSON from {method} {url}",
                status_code=resp.status_code,
                code="MALFORMED_JSON",
            ) from exc

        if not resp.ok:
            body = body if isinstance(body, dict) else {}
            raise TaskApiError(
                body.get("message") or f"{method} {url} returned {resp.status_code}",
                status_code=resp.status_code,
                code=body.get("error") or "HTTP_ERROR",
                details=body.get("details"),
            )

        logger.debug("Task API %s %s → %s", method, url, resp.status_code)
        return body

    # ── Public API ───────────────────────────────────────────────────────────

    def list_tasks(self, project_id: str, **filters) -> list[dict]:
        """List tasks; ``filters`` may contain stage, origin, completed."""
        params = {}
        for key, value in filters.items():
            if value is None:
                continue
            params[key] = str(value).lower() if isinstance(value, bool) else value
        return self._request("GET", self._tasks_url(project_id), params=params or None)

    def create_task(self, project_id: str, fields: dict) -> dict:
        return self._request("POST", self._tasks_url(project_id), json_body=fields)

    def update_task(self, project_id: str, raw_id: str, updates: dict) -> dict:
        """PUT a partial update; returns the task with unchanged identity fields."""
        return self._request("PUT", self._task_url(project_id, raw_id), json_body=updates)

    def delete_task(self, project_id: str, raw_id: str) -> bool:
        body = self._request("DELETE", self._task_url(project_id, raw_id))
        return bool(body.get("success"))

    def seed_templates(self, project_id: str) -> int:
        """Clone canonical templates into the project; returns rows inserted."""
        body = self._request("POST", f"{self._tasks_url(project_id)}/seed")
        return int(body.get("inserted", 0))

"""
Backend API client.

Thin wrapper around requests that:
- talks to the planner backend (base URL + user id from PlannerConfig)
- turns HTTP/transport failures into the error hierarchy in errors.py
  so the mutation coordinator knows what is worth retrying
- exposes the mutating calls as coroutines (blocking I/O runs in a worker
  thread), ready to be handed to MutationCoordinator.mutate()
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import requests

from myplanner.config import PlannerConfig, get_config
from myplanner.errors import (
    AuthorizationError,
    NonRetryableOperationError,
    RetryableOperationError,
    ValidationError,
)
from myplanner.logging import get_logger
from myplanner.model import Course, OcrCandidateCourse, WeeklySlot, course_from_backend

logger = get_logger(__name__)

_RETRYABLE_STATUS = {408, 429}


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


def classify_response(response: requests.Response) -> None:
    """
    Raise the matching OperationError for a non-2xx response.
    """
    status = response.status_code
    if status < 400:
        return
    message = _error_message(response)
    if status in (401, 403):
        raise AuthorizationError(message, status)
    if status in _RETRYABLE_STATUS or status >= 500:
        raise RetryableOperationError(message, status)
    raise NonRetryableOperationError(message, status)


def _unwrap(data: Any) -> Any:
    # Some endpoints wrap the entity as {"data": {...}}
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        return data["data"]
    return data


class PlannerApi:
    def __init__(
        self,
        base_url: str,
        user_id: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Optional[PlannerConfig] = None) -> PlannerApi:
        cfg = config or get_config()
        return cls(cfg.api_base_url, cfg.user_id, timeout=cfg.request_timeout)

    def _request(self, method: str, endpoint: str, payload: Any = None, params: Optional[dict] = None) -> Any:
        """
        Perform one HTTP call and return the decoded body (None for empty bodies).
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"X-Line-User-Id": self.user_id}
        if "ngrok-free.app" in self.base_url:
            headers["ngrok-skip-browser-warning"] = "true"

        logger.debug("api_request", method=method, url=url)
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise RetryableOperationError(f"network error: {exc}") from exc

        classify_response(response)

        if response.status_code == 204 or not response.content:
            return None
        if "application/json" not in response.headers.get("Content-Type", ""):
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            raise NonRetryableOperationError("invalid JSON in response", response.status_code) from exc

    async def _call(self, method: str, endpoint: str, payload: Any = None) -> Any:
        return await asyncio.to_thread(self._request, method, endpoint, payload)

    # --- reads ---------------------------------------------------------------------

    def list_courses(self) -> list[Course]:
        data = self._request("GET", "/web/courses/list/", params={"line_user_id": self.user_id})
        inner = _unwrap(data)
        raw = inner.get("courses", []) if isinstance(inner, dict) else []
        courses: list[Course] = []
        for record in raw:
            if not isinstance(record, dict):
                continue
            try:
                courses.append(course_from_backend(record))
            except ValidationError as exc:
                logger.warning("course_record_skipped", record_id=record.get("id"), error=str(exc))
        return courses

    # --- mutations (awaitable, for MutationCoordinator) -----------------------------

    async def update_assignment_status(self, assignment_id: str, status: str) -> Any:
        data = await self._call(
            "POST",
            f"/assignments/{assignment_id}/status/",
            {"status": status, "line_user_id": self.user_id},
        )
        return _unwrap(data)

    async def update_exam_status(self, exam_id: str, status: str) -> Any:
        data = await self._call("POST", f"/exams/{exam_id}/status/", {"status": status})
        return _unwrap(data)

    async def update_custom_todo(self, todo_id: str, fields: dict[str, Any]) -> Any:
        data = await self._call("PATCH", f"/custom-todos/{todo_id}/", fields)
        return _unwrap(data)

    async def set_course_schedule(self, course_id: str, slots: list[WeeklySlot]) -> Any:
        schedules = []
        for s in slots:
            # Backend stores seconds as well
            entry = s.to_backend()
            entry["start_time"] = f"{s.start_time}:00"
            entry["end_time"] = f"{s.end_time}:00"
            schedules.append(entry)
        payload = {"line_user_id": self.user_id, "course_id": course_id, "schedules": schedules}
        return _unwrap(await self._call("POST", "/web/courses/schedule/", payload))

    async def confirm_timetable_import(self, candidates: list[OcrCandidateCourse]) -> Any:
        payload = {"courses": [c.to_backend() for c in candidates]}
        return _unwrap(await self._call("POST", "/files/confirm-timetable-import/", payload))

    def status_sender(self, kind: str):
        """
        Return the send(item_id, status) coroutine function for a to-do kind.
        """
        if kind == "assignment":
            return self.update_assignment_status
        if kind == "exam":
            return self.update_exam_status
        if kind == "custom_todo":

            async def send(todo_id: str, status: str) -> Any:
                return await self.update_custom_todo(todo_id, {"status": status})

            return send
        raise ValueError(f"unknown kind: {kind!r}")

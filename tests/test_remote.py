"""
Tests for the backend API client.

No network: requests.Session is replaced with a mock that returns prepared
requests.Response objects. The focus is the error classification the
mutation coordinator relies on.
"""

import json
import unittest
from unittest import mock

import requests

from myplanner.errors import AuthorizationError, NonRetryableOperationError, RetryableOperationError
from myplanner.model import OcrCandidateCourse, WeeklySlot
from myplanner.remote import PlannerApi


def make_response(status: int, body=None, content_type: str = "application/json") -> requests.Response:
    r = requests.Response()
    r.status_code = status
    if body is None:
        r._content = b""
    else:
        r._content = json.dumps(body).encode("utf-8") if content_type == "application/json" else body.encode()
        r.headers["Content-Type"] = content_type
    return r


class ApiTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = mock.Mock(spec=requests.Session)
        self.api = PlannerApi("http://backend.test/api/v2/", "u-1", timeout=3, session=self.session)

    def last_call(self) -> tuple:
        args, kwargs = self.session.request.call_args
        return args[0], args[1], kwargs


class TestClassification(ApiTestCase):
    async def test_server_error_is_retryable(self) -> None:
        self.session.request.return_value = make_response(503, {"message": "maintenance"})
        with self.assertRaises(RetryableOperationError) as ctx:
            await self.api.update_exam_status("e1", "completed")
        self.assertEqual(str(ctx.exception), "maintenance")
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_rate_limit_is_retryable(self) -> None:
        self.session.request.return_value = make_response(429)
        with self.assertRaises(RetryableOperationError):
            await self.api.update_exam_status("e1", "completed")

    async def test_client_error_is_not_retryable(self) -> None:
        self.session.request.return_value = make_response(409, {"detail": "already completed"})
        with self.assertRaises(NonRetryableOperationError) as ctx:
            await self.api.update_exam_status("e1", "completed")
        self.assertNotIsInstance(ctx.exception, RetryableOperationError)
        self.assertEqual(str(ctx.exception), "already completed")

    async def test_forbidden_is_authorization_error(self) -> None:
        self.session.request.return_value = make_response(403)
        with self.assertRaises(AuthorizationError) as ctx:
            await self.api.update_exam_status("e1", "completed")
        self.assertEqual(str(ctx.exception), "HTTP 403")

    async def test_connection_error_is_retryable(self) -> None:
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(RetryableOperationError):
            await self.api.update_exam_status("e1", "completed")

    async def test_timeout_is_retryable(self) -> None:
        self.session.request.side_effect = requests.Timeout("slow")
        with self.assertRaises(RetryableOperationError):
            await self.api.update_exam_status("e1", "completed")


class TestEndpoints(ApiTestCase):
    async def test_update_assignment_status(self) -> None:
        self.session.request.return_value = make_response(200, {"data": {"id": "a1", "status": "completed"}})

        result = await self.api.update_assignment_status("a1", "completed")

        self.assertEqual(result, {"id": "a1", "status": "completed"})
        method, url, kwargs = self.last_call()
        self.assertEqual((method, url), ("POST", "http://backend.test/api/v2/assignments/a1/status/"))
        self.assertEqual(kwargs["json"], {"status": "completed", "line_user_id": "u-1"})
        self.assertEqual(kwargs["headers"]["X-Line-User-Id"], "u-1")
        self.assertEqual(kwargs["timeout"], 3)

    async def test_custom_todo_sender_patches_status(self) -> None:
        self.session.request.return_value = make_response(204)
        send = self.api.status_sender("custom_todo")

        self.assertIsNone(await send("t9", "pending"))
        method, url, kwargs = self.last_call()
        self.assertEqual((method, url), ("PATCH", "http://backend.test/api/v2/custom-todos/t9/"))
        self.assertEqual(kwargs["json"], {"status": "pending"})

    async def test_set_course_schedule_sends_seconds(self) -> None:
        self.session.request.return_value = make_response(200, {"ok": True})
        await self.api.set_course_schedule("c1", [WeeklySlot(0, "09:00", "10:30", location="R1")])
        _, url, kwargs = self.last_call()
        self.assertTrue(url.endswith("/web/courses/schedule/"))
        self.assertEqual(
            kwargs["json"]["schedules"],
            [{"day_of_week": 0, "start_time": "09:00:00", "end_time": "10:30:00", "location": "R1"}],
        )

    async def test_confirm_timetable_import(self) -> None:
        self.session.request.return_value = make_response(201, {"created": 1})
        cand = OcrCandidateCourse(title="Physics", schedule=[WeeklySlot(2, "08:00", "09:00")])

        self.assertEqual(await self.api.confirm_timetable_import([cand]), {"created": 1})
        _, url, kwargs = self.last_call()
        self.assertTrue(url.endswith("/files/confirm-timetable-import/"))
        self.assertEqual(kwargs["json"]["courses"][0]["schedule"], [{"day_of_week": 2, "start": "08:00", "end": "09:00"}])

    def test_list_courses(self) -> None:
        self.session.request.return_value = make_response(
            200,
            {"data": {"courses": [{"id": 1, "title": "Art", "schedules": [{"day_of_week": 3, "start_time": "13:00:00", "end_time": "15:00:00"}]}]}},
        )
        courses = self.api.list_courses()
        self.assertEqual([(c.id, c.name) for c in courses], [("1", "Art")])
        self.assertEqual(courses[0].schedule, [WeeklySlot(3, "13:00", "15:00")])
        _, _, kwargs = self.last_call()
        self.assertEqual(kwargs["params"], {"line_user_id": "u-1"})

    def test_list_courses_skips_malformed_records(self) -> None:
        good = {"id": 1, "title": "Art", "schedules": [{"day_of_week": 3, "start_time": "13:00", "end_time": "15:00"}]}
        bad = {"id": 2, "title": "Broken", "schedules": [{"day_of_week": 1, "start_time": None, "end_time": "10:00"}]}
        self.session.request.return_value = make_response(200, {"courses": [good, bad]})

        courses = self.api.list_courses()
        self.assertEqual([c.name for c in courses], ["Art"])

    def test_plain_text_body(self) -> None:
        self.session.request.return_value = make_response(200, "pong", content_type="text/plain")
        self.assertEqual(self.api._request("GET", "/ping/"), "pong")

    def test_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            self.api.status_sender("note")


if __name__ == "__main__":
    unittest.main()

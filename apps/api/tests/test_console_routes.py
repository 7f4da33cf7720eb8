"""Console API contract tests over a live session backed by a fake jobs API."""

from __future__ import annotations

import os
import time
import unittest

from fastapi.testclient import TestClient

from fake_flyer_api import FakeFlyerApi
from flyer_retry.adapters.feed import InMemoryChangeFeed
from flyer_retry.core.config import get_settings
from flyer_retry.main import create_app
from flyer_retry.schemas.flyer import CanonicalStatus
from flyer_retry.services.session import RetrySession

_CALLBACK_HEADERS = {"X-Callback-Secret": "test-callback-secret"}


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "FLYER_RETRY_API_BASE_URL",
        "FLYER_RETRY_CALLBACK_SECRET",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["FLYER_RETRY_API_BASE_URL"] = "https://flyers.example.test"
        os.environ["FLYER_RETRY_CALLBACK_SECRET"] = "test-callback-secret"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class ConsoleRouteTests(_SettingsEnvCase):
    def setUp(self) -> None:
        super().setUp()
        self.api = FakeFlyerApi(
            [
                {
                    "request_id": "REQ-001-2025",
                    "store_name": "Downtown Electronics",
                    "date": "2025-10-01",
                    "error_notes": "timeout",
                    "status": "error",
                },
                {"request_id": "REQ-002-2025", "store_name": "Urban Fashion Hub", "date": "2025-10-02"},
            ]
        )
        self.session = RetrySession(
            client=self.api.client(),
            feed=InMemoryChangeFeed(),
            feed_table="flyer_requests",
            reconnect_delay_seconds=0.01,
        )
        self.client = TestClient(create_app(session=self.session))
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        super().tearDown()

    def _statuses(self) -> dict[str, str]:
        body = self.client.get("/api/v1/flyer-requests").json()
        return {item["request_id"]: item["status"] for item in body["items"]}

    def _wait_for_status(self, request_id: str, expected: str, timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._statuses().get(request_id) == expected:
                return
            time.sleep(0.01)
        self.fail(f"{request_id} never reached {expected}; last={self._statuses().get(request_id)}")

    def test_list_renders_snapshot_in_order(self) -> None:
        response = self.client.get("/api/v1/flyer-requests")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["generation"], 1)
        self.assertIsNone(body["load_error"])
        self.assertEqual(
            body["items"][0],
            {
                "request_id": "REQ-001-2025",
                "store_name": "Downtown Electronics",
                "date": "2025-10-01",
                "error_notes": "timeout",
                "status": "Failed",
            },
        )
        self.assertEqual(body["items"][1]["status"], "Pending")

    def test_retry_one_returns_settled_status(self) -> None:
        response = self.client.post("/api/v1/flyer-requests/REQ-001-2025/retry")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"request_id": "REQ-001-2025", "status": "RetrySuccessful", "stale": False},
        )
        self.assertEqual(self._statuses()["REQ-001-2025"], "RetrySuccessful")

    def test_retry_one_failure_settles_to_failed(self) -> None:
        self.api.retry_responses["REQ-002-2025"] = (200, {"response": "error"})

        response = self.client.post("/api/v1/flyer-requests/REQ-002-2025/retry")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "Failed")

    def test_retry_one_unknown_request_is_not_found(self) -> None:
        response = self.client.post("/api/v1/flyer-requests/REQ-404/retry")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"code": "RESOURCE_NOT_FOUND", "message": "Resource not found"})
        self.assertEqual(self.api.calls_to("/retry"), [])

    def test_retry_one_rejects_terminal_or_in_flight_requests(self) -> None:
        self.session.store.set_status("REQ-001-2025", CanonicalStatus.RETRY_SUCCESSFUL)
        self.session.store.set_status("REQ-002-2025", CanonicalStatus.RETRYING)

        for request_id, current in (("REQ-001-2025", "RetrySuccessful"), ("REQ-002-2025", "Retrying")):
            with self.subTest(request_id=request_id):
                response = self.client.post(f"/api/v1/flyer-requests/{request_id}/retry")
                self.assertEqual(response.status_code, 409)
                self.assertEqual(response.json()["code"], "RETRY_NOT_ALLOWED_STATE")
                self.assertEqual(response.json()["details"], {"current_status": current})
        self.assertEqual(self.api.calls_to("/retry"), [])

    def test_retry_all_accepted(self) -> None:
        response = self.client.post("/api/v1/flyer-requests/retry-all")

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"accepted": True, "retrying": 2})
        self.assertEqual(set(self._statuses().values()), {"Retrying"})

    def test_retry_all_failure_reloads_and_reports_bad_gateway(self) -> None:
        self.api.retry_all_status_code = 500

        response = self.client.post("/api/v1/flyer-requests/retry-all")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "RETRY_ALL_FAILED")
        self.assertEqual(response.json()["details"], {"reloaded": True})
        body = self.client.get("/api/v1/flyer-requests").json()
        self.assertEqual(body["generation"], 2)
        self.assertEqual([item["status"] for item in body["items"]], ["Failed", "Pending"])

    def test_reload_failure_keeps_store_and_exposes_load_error(self) -> None:
        self.api.list_status_code = 503

        response = self.client.post("/api/v1/flyer-requests/reload")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["code"], "SNAPSHOT_FETCH_FAILED")
        self.assertEqual(response.json()["details"], {"reason": "SNAPSHOT_HTTP_ERROR"})
        body = self.client.get("/api/v1/flyer-requests").json()
        self.assertEqual(body["generation"], 1)
        self.assertEqual(len(body["items"]), 2)
        self.assertIsNotNone(body["load_error"])

    def test_change_feed_webhook_updates_status(self) -> None:
        response = self.client.post(
            "/api/v1/internal/change-feed",
            headers=_CALLBACK_HEADERS,
            json={
                "type": "UPDATE",
                "table": "flyer_requests",
                "record": {"request_id": "REQ-002-2025", "status": "success"},
            },
        )

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"published": True})
        self._wait_for_status("REQ-002-2025", "RetrySuccessful")

    def test_change_feed_webhook_inserts_new_failure_at_front(self) -> None:
        self.client.post(
            "/api/v1/internal/change-feed",
            headers=_CALLBACK_HEADERS,
            json={
                "type": "UPDATE",
                "table": "flyer_requests",
                "record": {"request_id": "REQ-003-2025", "store_name": "Tech Solutions Pro", "status": "error"},
            },
        )

        self._wait_for_status("REQ-003-2025", "Failed")
        items = self.client.get("/api/v1/flyer-requests").json()["items"]
        self.assertEqual(items[0]["request_id"], "REQ-003-2025")
        self.assertEqual(items[0]["store_name"], "Tech Solutions Pro")

    def test_change_feed_webhook_requires_callback_secret(self) -> None:
        for headers in ({}, {"X-Callback-Secret": "wrong"}):
            with self.subTest(headers=headers):
                response = self.client.post(
                    "/api/v1/internal/change-feed",
                    headers=headers,
                    json={"type": "UPDATE", "table": "flyer_requests", "record": {"request_id": "REQ-001-2025"}},
                )
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["code"], "UNAUTHORIZED")

    def test_change_feed_webhook_rejects_invalid_payload(self) -> None:
        response = self.client.post(
            "/api/v1/internal/change-feed",
            headers=_CALLBACK_HEADERS,
            json={"type": "TRUNCATE", "table": "flyer_requests"},
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"code": "VALIDATION_ERROR", "message": "Invalid change event payload"})


if __name__ == "__main__":
    unittest.main()

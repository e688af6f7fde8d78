"""Tests for the Flask status page."""
from __future__ import annotations

import json
import time
import unittest
from datetime import datetime, timezone

from netpinger.models import Record
from netpinger.store import RecordStore
from netpinger.web_ui import create_web_app


class WebUiTest(unittest.TestCase):
    def setUp(self) -> None:
        self.store = RecordStore(":memory:")
        self.store.migrate()
        self.client = create_web_app(self.store).test_client()

    def tearDown(self) -> None:
        self.store.close()

    def _add(self, record_id: str, second: int, failure: bool, description: str) -> None:
        self.store.create_record(
            Record(
                id=record_id,
                timestamp=datetime(2024, 6, 1, 0, 0, second, tzinfo=timezone.utc),
                failure=failure,
                description=description,
            )
        )

    def test_index_without_records(self) -> None:
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn("No last error", body)
        self.assertIn("No transitions recorded yet", body)

    def test_index_lists_transitions_and_last_failure(self) -> None:
        self._add("a", 1, True, "failed to reach google.com: timeout")
        self._add("b", 2, False, "successfully reached google.com: 204 No Content")
        body = self.client.get("/").get_data(as_text=True)
        self.assertIn("failed to reach google.com: timeout", body)
        self.assertIn("successfully reached google.com", body)
        self.assertIn("&#34;id&#34;: &#34;a&#34;", body)
        self.assertLess(body.index("timeout</td>"), body.index("204 No Content</td>"))

    def test_api_records_and_last_failure(self) -> None:
        self.assertEqual(self.client.get("/api/records/last-failure").status_code, 404)
        self._add("a", 1, True, "down")
        records = json.loads(self.client.get("/api/records").get_data(as_text=True))
        self.assertEqual([r["id"] for r in records], ["a"])
        last = self.client.get("/api/records/last-failure")
        self.assertEqual(last.status_code, 200)
        self.assertEqual(last.get_json()["description"], "down")

    def test_api_health_reports_unix_time(self) -> None:
        before = time.time()
        payload = self.client.get("/api/health").get_json()
        self.assertEqual(payload["status"], "ok")
        self.assertIsInstance(payload["time"], float)
        self.assertGreaterEqual(payload["time"], before)


if __name__ == "__main__":
    unittest.main()

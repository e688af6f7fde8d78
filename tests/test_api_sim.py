"""Integration-style tests for the FastAPI layer using an in-memory store."""
from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi.testclient import TestClient

from netpinger.api import create_app
from netpinger.config import Settings
from netpinger.models import Record
from netpinger.store import RecordStore

START = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


class _FakeMonitor:
    instances: List["_FakeMonitor"] = []

    def __init__(self) -> None:
        self.stop_event = asyncio.Event()
        self.run_calls = 0
        self.stopped = False
        _FakeMonitor.instances.append(self)

    async def run(self, runtime: Optional[float] = None) -> None:
        self.run_calls += 1
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            pass

    def request_stop(self) -> None:
        self.stopped = True
        self.stop_event.set()

    def status(self) -> dict:
        return {"status": "running", "probes": 3, "records": 1, "store_errors": 0}


class ApiSimulationTest(unittest.TestCase):
    def setUp(self) -> None:
        self.store = RecordStore(":memory:")
        self.store.migrate()
        self.app = create_app(store=self.store, start_monitor=False)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self.store.close()
        _FakeMonitor.instances.clear()

    def _add(self, n: int, failure: bool) -> Record:
        record = Record(
            id=f"id-{n}",
            timestamp=START + timedelta(seconds=n),
            failure=failure,
            description=f"transition {n}",
        )
        self.store.create_record(record)
        return record

    def test_health_endpoint_returns_ok(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "ok")
        self.assertIn("time", payload)

    def test_records_endpoint_lists_oldest_first(self) -> None:
        self._add(2, False)
        self._add(1, True)
        response = self.client.get("/records")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual([item["id"] for item in payload], ["id-1", "id-2"])
        self.assertEqual(
            payload[0],
            {
                "id": "id-1",
                "ts": "2024-03-01T08:30:01.000+00:00",
                "failure": True,
                "description": "transition 1",
            },
        )

    def test_last_failure_returns_404_when_none(self) -> None:
        self._add(1, False)
        response = self.client.get("/records/last-failure")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "No last error")

    def test_last_failure_returns_newest_failure(self) -> None:
        self._add(1, True)
        self._add(2, False)
        self._add(3, True)
        self._add(4, False)
        response = self.client.get("/records/last-failure")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], "id-3")

    def test_monitor_status_returns_idle_when_not_running(self) -> None:
        response = self.client.get("/monitor/status")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "idle")

    def test_lifespan_starts_and_stops_monitor(self) -> None:
        monitor = _FakeMonitor()
        app = create_app(store=self.store, monitor=monitor)  # type: ignore[arg-type]
        with TestClient(app) as client:
            response = client.get("/monitor/status")
            self.assertEqual(response.json()["status"], "running")
            self.assertNotIn("failing", response.json())
        self.assertEqual(monitor.run_calls, 1)
        self.assertTrue(monitor.stopped)

    def test_create_app_from_settings_migrates_store(self) -> None:
        settings = Settings(
            app_env="development",
            db_path=":memory:",
            api_host="127.0.0.1",
            api_port=3000,
            web_host="127.0.0.1",
            web_port=5000,
        )
        app = create_app(settings, start_monitor=False)
        with TestClient(app) as client:
            self.assertEqual(client.get("/records").json(), [])

    def test_create_app_requires_settings_or_store(self) -> None:
        with self.assertRaises(ValueError):
            create_app()


if __name__ == "__main__":
    unittest.main()

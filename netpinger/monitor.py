"""Perpetual probe loop feeding the transition detector and record store."""
from __future__ import annotations

import asyncio
import logging
import threading
from time import monotonic
from typing import Any, Dict, Optional

from netpinger.detector import TransitionDetector
from netpinger.models import NetworkError, Outcome, Record
from netpinger.prober import Prober
from netpinger.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_PROBE_INTERVAL = 1.0


class Monitor:
    """Probe on a fixed cadence and persist state transitions.

    Runs until the process exits. ``runtime`` and :meth:`request_stop` exist
    so hosting servers can shut down cleanly; normal operation never uses
    them. Errors from the store or the prober are logged and the loop keeps
    going, so a failed write loses that one record and nothing else.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        prober: Optional[Prober] = None,
        detector: Optional[TransitionDetector] = None,
        interval: float = DEFAULT_PROBE_INTERVAL,
        seed_from_store: bool = False,
    ) -> None:
        self.store = store
        self.prober = prober or Prober()
        self.detector = detector or TransitionDetector()
        self.interval = max(0.0, interval)
        self.seed_from_store = seed_from_store

        self.probes = 0
        self.records = 0
        self.store_errors = 0
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def running(self) -> bool:
        return self._running

    def status(self) -> Dict[str, Any]:
        return {
            "status": "running" if self._running else "idle",
            "probes": self.probes,
            "records": self.records,
            "store_errors": self.store_errors,
        }

    async def run(self, runtime: Optional[float] = None) -> None:
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._loop = asyncio.get_running_loop()
        deadline = monotonic() + runtime if runtime else None
        self._running = True

        if self.seed_from_store:
            await self._seed()

        logger.info("Monitor started (target=%s, interval=%ss)", self.prober.url, self.interval)
        try:
            while not stop_event.is_set():
                if deadline and monotonic() >= deadline:
                    break
                await self.tick()
                await self._sleep_with_stop(self.interval, stop_event, deadline)
        finally:
            self._running = False
            stop_event.set()
            logger.info("Monitor stopped after %d probes", self.probes)

    async def tick(self) -> Optional[Record]:
        """Run one probe/observe/persist cycle."""
        outcome = await self._probe()
        self.probes += 1
        record = self.detector.observe(outcome)
        if record is not None:
            await self._persist(record)
        return record

    def request_stop(self) -> None:
        stop_event = self._stop_event
        if stop_event is None:
            return
        loop = self._loop
        if loop is not None and loop.is_running():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is not loop:
                loop.call_soon_threadsafe(stop_event.set)
                return
        stop_event.set()

    async def _probe(self) -> Outcome:
        try:
            return await self.prober.probe_async()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Probe raised unexpectedly")
            return NetworkError(f"probe failed: {exc}")

    async def _persist(self, record: Record) -> None:
        try:
            await asyncio.to_thread(self.store.create_record, record)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.store_errors += 1
            logger.exception("Failed to persist record %s (failure=%s)", record.id, record.failure)
        else:
            self.records += 1

    async def _seed(self) -> None:
        try:
            latest = await asyncio.to_thread(self.store.get_latest_record)
        except Exception:
            logger.exception("Could not read latest record; starting from healthy state")
            return
        self.detector.seed(latest)

    async def _sleep_with_stop(
        self,
        duration: float,
        stop_event: asyncio.Event,
        deadline: Optional[float],
    ) -> None:
        if duration <= 0:
            await asyncio.sleep(0)
            return
        wait_time = duration
        if deadline:
            wait_time = min(wait_time, max(0.0, deadline - monotonic()))
            if wait_time <= 0:
                return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=wait_time)
        except asyncio.TimeoutError:
            pass


def start_in_thread(monitor: Monitor, *, name: str = "netpinger-monitor") -> threading.Thread:
    """Run ``monitor`` on its own event loop in a daemon thread."""

    def _target() -> None:
        try:
            asyncio.run(monitor.run())
        except Exception:
            logger.exception("Monitor thread exited with an error")

    thread = threading.Thread(target=_target, name=name, daemon=True)
    thread.start()
    return thread


__all__ = ["Monitor", "DEFAULT_PROBE_INTERVAL", "start_in_thread"]

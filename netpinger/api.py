from __future__ import annotations
import asyncio
import contextlib
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request

from netpinger.config import Settings
from netpinger.monitor import Monitor
from netpinger.store import RecordStore, open_store

logger = logging.getLogger("netpinger.api")


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[RecordStore] = None,
    monitor: Optional[Monitor] = None,
    start_monitor: bool = True,
) -> FastAPI:
    """Build the JSON API.

    Either ``settings`` or ``store`` must be given. When ``start_monitor`` is
    true the monitor runs as a background task for the app's lifetime.
    """
    if store is None:
        if settings is None:
            raise ValueError("create_app needs settings or a store")
        store = open_store(settings.db_path)
    if monitor is None and start_monitor:
        monitor = Monitor(store, seed_from_store=bool(settings and settings.seed_state))

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task: Optional[asyncio.Task] = None
        if start_monitor and monitor is not None:
            task = asyncio.create_task(monitor.run())
        try:
            yield
        finally:
            if task is not None:
                monitor.request_stop()
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception:
                    logger.exception("monitor stop encountered error")

    app = FastAPI(title="NetPinger API", version="0.1.0", lifespan=lifespan)
    app.state.store = store
    app.state.monitor = monitor

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "time": time.time()}

    @app.get("/records")
    async def records(request: Request) -> List[Dict[str, Any]]:
        rows = await asyncio.to_thread(request.app.state.store.list_records)
        return [row.to_dict() for row in rows]

    @app.get("/records/last-failure")
    async def last_failure(request: Request) -> Dict[str, Any]:
        record = await asyncio.to_thread(request.app.state.store.get_most_recent_failure)
        if record is None:
            raise HTTPException(status_code=404, detail="No last error")
        return record.to_dict()

    @app.get("/monitor/status")
    async def monitor_status(request: Request) -> Dict[str, Any]:
        current: Optional[Monitor] = request.app.state.monitor
        if current is None:
            return {"status": "idle", "probes": 0, "records": 0, "store_errors": 0}
        return current.status()

    return app


__all__ = ["create_app"]

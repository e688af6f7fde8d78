"""Flask status page over the transition history."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Optional

from flask import Flask, jsonify, render_template_string

from netpinger.monitor import Monitor, start_in_thread
from netpinger.store import RecordStore


logger = logging.getLogger("netpinger.web_ui")


TEMPLATE_INDEX = """
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>NetPinger</title>
  <style>
    body { font-family: Arial; margin: 30px; }
    table { border-collapse: collapse; width: 100%; margin-top: 10px; }
    th, td { border: 1px solid #ccc; padding: 8px; }
    th { background: #f0f0f0; }
    .down { color: #b00020; }
    .up { color: #1b5e20; }
    pre { background: #f7f7f7; padding: 8px; white-space: pre-wrap; }
  </style>
</head>
<body>
  <h1>NetPinger</h1>
  <h2>Last failure</h2>
  <pre>{{ last_failed }}</pre>
  <h2>Transitions</h2>
  {% if records %}
  <table>
    <thead><tr><th>Timestamp (UTC)</th><th>State</th><th>Description</th></tr></thead>
    <tbody>
    {% for r in records %}
      <tr>
        <td>{{ r.ts }}</td>
        {% if r.failure %}<td class="down">Down</td>{% else %}<td class="up">Up</td>{% endif %}
        <td>{{ r.description }}</td>
      </tr>
    {% endfor %}
    </tbody>
  </table>
  {% else %}
  <p>No transitions recorded yet.</p>
  {% endif %}
</body>
</html>
"""


def create_web_app(store: RecordStore, monitor: Optional[Monitor] = None) -> Flask:
    """Build the read-only view; start ``monitor`` in a daemon thread if given."""
    app = Flask(__name__)
    app.config["NETPINGER_STORE"] = store
    app.config["NETPINGER_MONITOR"] = monitor

    @app.get("/")
    def index():
        records = store.list_records()
        last = store.get_most_recent_failure()
        last_failed = json.dumps(last.to_dict()) if last is not None else "No last error"
        return render_template_string(TEMPLATE_INDEX, records=records, last_failed=last_failed)

    @app.get("/api/health")
    def api_health():
        return jsonify({"status": "ok", "time": time.time()})

    @app.get("/api/records")
    def api_records():
        return jsonify([record.to_dict() for record in store.list_records()])

    @app.get("/api/records/last-failure")
    def api_last_failure():
        record = store.get_most_recent_failure()
        if record is None:
            return jsonify({"detail": "No last error"}), 404
        return jsonify(record.to_dict())

    if monitor is not None:
        thread: threading.Thread = start_in_thread(monitor)
        app.config["NETPINGER_MONITOR_THREAD"] = thread
        logger.info("Monitor thread started")

    return app


def serve_in_thread(app: Flask, host: str, port: int) -> threading.Thread:
    """Serve ``app`` with the werkzeug server from a daemon thread."""
    thread = threading.Thread(
        target=lambda: app.run(host=host, port=port, debug=False, use_reloader=False),
        name="netpinger-web",
        daemon=True,
    )
    thread.start()
    return thread


__all__ = ["create_web_app", "serve_in_thread", "TEMPLATE_INDEX"]

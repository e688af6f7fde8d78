"""NetPinger command-line interface."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import uvicorn
from rich.console import Console
from rich.table import Table

from netpinger.config import ConfigError, Settings, load_settings
from netpinger.logging_setup import configure_logging
from netpinger.models import Outcome, Record
from netpinger.monitor import Monitor
from netpinger.prober import Prober
from netpinger.store import open_store

logger = logging.getLogger("netpinger")


def _outcome_to_dict(outcome: Outcome) -> Dict[str, Any]:
	return {
		"kind": type(outcome).__name__,
		"failing": outcome.failing,
		"message": outcome.message,
		"status_code": getattr(outcome, "status_code", None),
	}


def _print_records(records: List[Record], *, as_json: bool, title: str) -> None:
	data = [record.to_dict() for record in records]
	if as_json:
		json.dump(data, sys.stdout, indent=2)
		sys.stdout.write("\n")
		return
	table = Table(title=title, show_lines=False)
	for column in ("ts", "state", "description"):
		table.add_column(column.upper())
	for entry in data:
		table.add_row(entry["ts"], "DOWN" if entry["failure"] else "UP", entry["description"])
	Console().print(table)


def _cmd_probe(args: argparse.Namespace, settings: Optional[Settings]) -> int:
	prober = Prober()
	try:
		outcome = prober.probe()
	finally:
		prober.close()
	data = _outcome_to_dict(outcome)
	if args.json:
		json.dump(data, sys.stdout, indent=2)
		sys.stdout.write("\n")
	else:
		style = "red" if outcome.failing else "green"
		Console().print(f"[{style}]{data['kind']}[/{style}] {outcome.message}")
	return 1 if outcome.failing else 0


def _cmd_history(args: argparse.Namespace, settings: Optional[Settings]) -> int:
	if settings is None:
		raise ConfigError("APP_DB undefined")
	store = open_store(settings.db_path)
	try:
		if args.last_failure:
			record = store.get_most_recent_failure()
			if record is None:
				sys.stdout.write("No last error\n")
				return 0
			_print_records([record], as_json=args.json, title="Last failure")
		else:
			_print_records(store.list_records(), as_json=args.json, title="NetPinger transitions")
	finally:
		store.close()
	return 0


def _cmd_serve(args: argparse.Namespace, settings: Optional[Settings]) -> int:
	if settings is None:
		raise ConfigError("APP_DB undefined")
	# Imported lazily so `probe` and `history` do not pay for the web stacks.
	from netpinger.api import create_app
	from netpinger.web_ui import create_web_app, serve_in_thread

	store = open_store(settings.db_path)
	try:
		if args.mode == "web":
			monitor = Monitor(store, seed_from_store=settings.seed_state)
			web = create_web_app(store, monitor)
			logger.info("NetPinger web UI listening on %s:%d (env=%s)", settings.web_host, settings.web_port, settings.app_env)
			web.run(host=settings.web_host, port=settings.web_port, debug=False, use_reloader=False)
			return 0

		if args.mode == "both":
			serve_in_thread(create_web_app(store), settings.web_host, settings.web_port)
			logger.info("NetPinger web UI listening on %s:%d", settings.web_host, settings.web_port)

		app = create_app(settings, store=store)
		logger.info("NetPinger listening on %s:%d (env=%s)", settings.api_host, settings.api_port, settings.app_env)
		uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)
	finally:
		store.close()
	return 0


def _build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="NetPinger connectivity monitor")
	parser.add_argument("--db", help="SQLite database path (overrides APP_DB)")
	sub = parser.add_subparsers(dest="command", required=True)

	serve = sub.add_parser("serve", help="Run the monitor and serve the transition history")
	serve.add_argument(
		"--mode",
		choices=["api", "web", "both"],
		default="api",
		help="api: FastAPI JSON API, web: Flask status page, both: API plus read-only page",
	)
	serve.set_defaults(handler=_cmd_serve, needs_store=True)

	probe = sub.add_parser("probe", help="Run a single reachability probe")
	probe.add_argument("--json", action="store_true", help="Output JSON")
	probe.set_defaults(handler=_cmd_probe, needs_store=False)

	history = sub.add_parser("history", help="Print recorded transitions")
	history.add_argument("--json", action="store_true", help="Output JSON")
	history.add_argument("--last-failure", action="store_true", help="Only the most recent failure")
	history.set_defaults(handler=_cmd_history, needs_store=True)

	return parser


def main(argv: Optional[List[str]] = None) -> int:
	parser = _build_parser()
	args = parser.parse_args(argv)
	settings: Optional[Settings] = None
	try:
		settings = load_settings(db_path=args.db)
	except ConfigError as exc:
		if args.needs_store:
			parser.error(str(exc))
	configure_logging(settings.app_env if settings else "development")
	return args.handler(args, settings)


if __name__ == "__main__":
	sys.exit(main())

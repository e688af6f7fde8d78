"""Configuration settings from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_APP_ENV = "development"
DEFAULT_API_ADDR = ":3000"
DEFAULT_WEB_ADDR = ":5000"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True)
class Settings:
    """Application configuration."""

    app_env: str
    db_path: str
    api_host: str
    api_port: int
    web_host: str
    web_port: int
    seed_state: bool = False

    @property
    def production(self) -> bool:
        return self.app_env == "production"


def parse_addr(raw: str, *, name: str) -> Tuple[str, int]:
    """Split ``host:port``; an empty host binds every interface."""
    host, sep, port = raw.strip().rpartition(":")
    if not sep:
        raise ConfigError(f"{name} must look like host:port, got {raw!r}")
    try:
        port_num = int(port)
    except ValueError as exc:
        raise ConfigError(f"{name} has an invalid port: {raw!r}") from exc
    if not 0 < port_num < 65536:
        raise ConfigError(f"{name} port out of range: {raw!r}")
    return host or "0.0.0.0", port_num


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
    db_path: Optional[str] = None,
) -> Settings:
    """Load settings from the environment.

    A ``.env`` file is read first when ``environ`` is not given; variables
    already set in the process environment take precedence over it.

    Required environment variables:
        APP_DB: SQLite database path (``db_path`` overrides it)

    Optional environment variables:
        APP_ENV: ``production`` switches to JSON logging (default: development)
        APP_ADDR: JSON API listen address (default: :3000)
        APP_WEB_ADDR: HTML view listen address (default: :5000)
        APP_SEED_STATE: start from the newest stored record (default: false)

    Raises:
        ConfigError: If APP_DB is missing or an address is malformed.
    """
    if environ is None:
        load_dotenv(env_file or Path(".env"), override=False)
        environ = os.environ

    app_env = environ.get("APP_ENV") or DEFAULT_APP_ENV
    api_host, api_port = parse_addr(environ.get("APP_ADDR") or DEFAULT_API_ADDR, name="APP_ADDR")
    web_host, web_port = parse_addr(environ.get("APP_WEB_ADDR") or DEFAULT_WEB_ADDR, name="APP_WEB_ADDR")

    db = db_path or environ.get("APP_DB")
    if not db:
        raise ConfigError("APP_DB undefined")

    return Settings(
        app_env=app_env,
        db_path=db,
        api_host=api_host,
        api_port=api_port,
        web_host=web_host,
        web_port=web_port,
        seed_state=(environ.get("APP_SEED_STATE") or "").strip().lower() in _TRUTHY,
    )


__all__ = ["ConfigError", "Settings", "load_settings", "parse_addr"]

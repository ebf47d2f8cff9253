"""
Request correlation and logging configuration state.

The request id lives in a ContextVar so each HTTP request (and any
deferred bookkeeping task it schedules) logs with its own id. The rest
is process-wide state owned by configure_logging().

Environment Variables:
    - VOISO_LOG_LEVEL: Log level (1-4 or a level name)
    - VOISO_LOG_DIR: Directory for the JSONL log file
    - VOISO_JSONL_FILE: JSONL filename (default voiso.jsonl)
    - VOISO_LOG_ROTATE_BYTES: Max JSONL size before rotation
    - VOISO_LOG_ROTATE_BACKUP: Rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Request id of the current context, "-" outside a request."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _read_settings_section() -> Dict[str, Any]:
    """Read the logging section of the settings file, if there is one."""
    path = os.getenv("VOISO_SETTINGS", "config/settings.yaml")
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    section = raw.get("logging") if isinstance(raw, dict) else None
    return dict(section) if isinstance(section, dict) else {}


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging configuration.

    Priority (highest first): VOISO_* environment variables, the
    ``logging`` section of settings.yaml, built-in defaults.
    """
    cfg = _read_settings_section()

    if os.getenv("VOISO_LOG_LEVEL"):
        cfg["level"] = os.environ["VOISO_LOG_LEVEL"]
    if os.getenv("VOISO_LOG_DIR"):
        cfg["log_dir"] = os.environ["VOISO_LOG_DIR"]
    if os.getenv("VOISO_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["VOISO_JSONL_FILE"]
    for env_name, key in (
        ("VOISO_LOG_ROTATE_BYTES", "rotate_max_bytes"),
        ("VOISO_LOG_ROTATE_BACKUP", "rotate_backup_count"),
    ):
        value = os.getenv(env_name)
        if value and value.isdigit():
            cfg[key] = int(value)

    return cfg

"""Structured logging helpers for the draft editor.

Draft values are whatever the user typed, so anything attached to a record
through ``extra_payload`` is scrubbed of email addresses and credential-like
strings before it is written.
"""

from __future__ import annotations

import json
import logging
import logging.config
import re
from datetime import datetime, timezone
from typing import Any, Mapping

PLAIN_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
ROOT_LOGGER = "nestform"

_EMAIL = re.compile(r"[\w.%+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}")
_CREDENTIAL = re.compile(r"\bsk-[A-Za-z0-9-]{16,}|\b[A-Za-z0-9]{24,}\b")
_CREDENTIAL_KEYS = frozenset(
    {"api_key", "apikey", "auth", "authorization", "password", "secret", "token"}
)


def _scrub_text(text: str) -> str:
    return _CREDENTIAL.sub("[REDACTED_SECRET]", _EMAIL.sub("[REDACTED_EMAIL]", text))


def _scrub_item(key: str, value: Any) -> Any:
    if isinstance(value, str):
        return "[REDACTED]" if key.lower() in _CREDENTIAL_KEYS else _scrub_text(value)
    if isinstance(value, Mapping):
        return scrub(value)
    if isinstance(value, (list, tuple, set)):
        return [_scrub_item(key, item) for item in value]
    return value


def scrub(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``payload`` that is safe to write to a log."""

    return {str(key): _scrub_item(str(key), value) for key, value in payload.items()}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object, merging scrubbed ``extra_payload``."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, Mapping):
            entry.update(scrub(extra))
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def build_logging_config(level: str = "INFO", *, json_logs: bool = True) -> dict[str, Any]:
    """Return a ``dictConfig`` mapping routing ``nestform`` loggers to stderr."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "plain": {"format": PLAIN_FORMAT},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "plain",
            }
        },
        "loggers": {
            ROOT_LOGGER: {"handlers": ["stderr"], "level": level, "propagate": False},
        },
    }


def configure_logging(level: str = "INFO", *, json_logs: bool = True) -> None:
    logging.config.dictConfig(build_logging_config(level, json_logs=json_logs))


__all__ = ["JsonFormatter", "ROOT_LOGGER", "build_logging_config", "configure_logging", "scrub"]

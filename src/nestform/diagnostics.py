"""Diagnostics sink for rejected UI intents and failed commits."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .persistence.atomic import write_json_atomic

# Detail keys that may carry what the user typed into the form.
_REDACTED_KEY_PARTS = ("value", "fields", "email", "path", "note")
_UNSAFE_SLUG_CHARS = re.compile(r"[^a-z0-9_]+")


@dataclass
class DiagnosticLogger:
    """Write one JSON document per event into ``directory``."""

    directory: Path

    def log(
        self,
        *,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> Path:
        now = datetime.now(tz=timezone.utc)
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._free_path(f"{now.strftime('%Y%m%dT%H%M%S%fZ')}_{_slug(code)}")
        write_json_atomic(
            path,
            {
                "timestamp": now.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
                "code": code,
                "message": message,
                "details": {key: _redact(key, value) for key, value in (details or {}).items()},
            },
        )
        return path

    def _free_path(self, stem: str) -> Path:
        candidate = self.directory / f"{stem}.json"
        suffix = 0
        while candidate.exists():
            suffix += 1
            candidate = self.directory / f"{stem}_{suffix}.json"
        return candidate


def _slug(code: str) -> str:
    return _UNSAFE_SLUG_CHARS.sub("-", code.lower()).strip("-") or "diagnostic"


def _redact(key: str, value: Any) -> Any:
    if value is None:
        return None
    lowered = key.lower()
    if any(part in lowered for part in _REDACTED_KEY_PARTS):
        return "[REDACTED]"
    if isinstance(value, dict):
        return {str(inner): _redact(str(inner), item) for inner, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(key, item) for item in value]
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


__all__ = ["DiagnosticLogger"]

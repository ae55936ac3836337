"""Atomic JSON file helpers shared by the record store and the diagnostics sink."""

from __future__ import annotations

import errno
import json
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Iterator

# Sharing violations raised by Windows while another handle has the target open.
_RETRYABLE_ERRNOS = frozenset({errno.EACCES, errno.EPERM})
_RETRYABLE_WINERRORS = frozenset({5, 32})


class _PathLockRegistry:
    """Hand out one re-entrant lock per file path for the life of the process."""

    def __init__(self) -> None:
        self._locks: dict[str, RLock] = {}
        self._guard = Lock()

    def lock_for(self, target: Path) -> RLock:
        with self._guard:
            return self._locks.setdefault(str(target), RLock())


_LOCKS = _PathLockRegistry()


@contextmanager
def locked_path(target: Path) -> Iterator[None]:
    """Hold the in-process lock for ``target`` while the block runs."""

    with _LOCKS.lock_for(target):
        yield


def _is_retryable(exc: OSError) -> bool:
    return exc.errno in _RETRYABLE_ERRNOS or getattr(exc, "winerror", None) in _RETRYABLE_WINERRORS


def _rename_with_retry(source: Path, target: Path, *, attempts: int = 5, backoff: float = 0.05) -> None:
    for attempt in range(1, attempts + 1):
        try:
            os.replace(source, target)
            return
        except OSError as exc:
            if attempt == attempts or not _is_retryable(exc):
                raise
            time.sleep(backoff * attempt)


def write_json_atomic(path: Path, payload: dict[str, Any], *, durable: bool = True) -> None:
    """Serialise ``payload`` next to ``path`` and rename it into place.

    Readers see either the previous document or the new one, never a partial
    write. Read-modify-write callers hold :func:`locked_path` around the whole
    sequence; the lock is re-entrant.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    with locked_path(path):
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        temp_path = Path(handle.name)
        try:
            with handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
                handle.flush()
                if durable:
                    os.fsync(handle.fileno())
            _rename_with_retry(temp_path, path)
        finally:
            temp_path.unlink(missing_ok=True)


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


__all__ = ["locked_path", "read_json", "write_json_atomic"]

"""File-backed draft store: one JSON document per parent record."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors import PersistenceError, RecordNotFound, StaleDraftError
from ..models.commit import CommitPayload
from ..models.draft import PersistedId
from ..models.records import ChildRecord, LoadedRecord, ParentRecord
from .atomic import locked_path, read_json, write_json_atomic
from .reconcile import reconcile_children

LOGGER = logging.getLogger(__name__)

_SEQUENCE_FILE = "sequence.json"
_RECORDS_DIR = "records"


def validate_record_id(value: PersistedId) -> str:
    """Return ``value`` as a safe single path segment."""

    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError("Record ID must be an integer or string.")

    candidate = str(value)
    if candidate == "":
        raise ValueError("Record ID must not be empty.")
    if candidate.strip() != candidate:
        raise ValueError("Record ID must not contain leading or trailing whitespace.")
    if candidate in {".", ".."}:
        raise ValueError("Record ID is invalid.")

    separators = {os.sep}
    if os.altsep:
        separators.add(os.altsep)
    if any(sep in candidate for sep in separators):
        raise ValueError("Record ID must not contain path separators.")
    if any(ord(char) < 32 for char in candidate):
        raise ValueError("Record ID contains invalid control characters.")
    return candidate


@dataclass
class JsonDraftStore:
    """Persist each parent and its children in ``<base_dir>/records/<id>.json``.

    A commit rewrites the whole document with one atomic rename, so the parent
    upsert and the child reconciliation land together or not at all.
    """

    base_dir: Path
    durable_writes: bool = True

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir)

    @property
    def records_dir(self) -> Path:
        return self.base_dir / _RECORDS_DIR

    def load(self, parent_id: PersistedId) -> LoadedRecord:
        path = self._record_path(parent_id)
        with locked_path(path):
            document = self._read_document(path, parent_id)
        return _document_to_record(document, path)

    def commit(self, payload: CommitPayload) -> ParentRecord:
        if payload.parent_id is None:
            parent_id: PersistedId = self._allocate_parent_id()
            path = self._record_path(parent_id)
            with locked_path(path):
                return self._write(path, parent_id, 0, [], 1, payload)

        path = self._record_path(payload.parent_id)
        with locked_path(path):
            document = self._read_document(path, payload.parent_id)
            current = _document_to_record(document, path)
            current_version = current.parent.version
            if payload.expected_version is not None and payload.expected_version != current_version:
                raise StaleDraftError(
                    "Record was modified after the draft was loaded.",
                    details={
                        "parent_id": payload.parent_id,
                        "expected_version": payload.expected_version,
                        "current_version": current_version,
                    },
                )
            next_child_id = _stored_counter(
                document, "next_child_id", _next_id(current.children), path
            )
            return self._write(
                path, current.parent.id, current_version, current.children, next_child_id, payload
            )

    def _write(
        self,
        path: Path,
        parent_id: PersistedId,
        base_version: int,
        existing: list[ChildRecord],
        next_child_id: int,
        payload: CommitPayload,
    ) -> ParentRecord:
        def allocate() -> int:
            nonlocal next_child_id
            allocated = next_child_id
            next_child_id += 1
            return allocated

        reconciliation = reconcile_children(existing, payload.children, allocate)
        parent = ParentRecord(id=parent_id, version=base_version + 1, fields=payload.fields)
        updated_document = {
            "id": parent.id,
            "version": parent.version,
            "fields": parent.model_dump(mode="json")["fields"],
            "children": [child.model_dump(mode="json") for child in reconciliation.children],
            "next_child_id": next_child_id,
        }
        try:
            write_json_atomic(path, updated_document, durable=self.durable_writes)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(
                "Failed to write record.",
                details={"parent_id": parent.id, "error": str(exc)},
            ) from exc

        LOGGER.info(
            "Wrote record %s v%d (+%d ~%d -%d)",
            parent.id,
            parent.version,
            len(reconciliation.inserted),
            len(reconciliation.updated),
            len(reconciliation.deleted),
        )
        return parent

    def _allocate_parent_id(self) -> int:
        sequence_path = self.base_dir / _SEQUENCE_FILE
        with locked_path(sequence_path):
            state: Any = {"next_parent_id": 1}
            if sequence_path.exists():
                try:
                    state = read_json(sequence_path)
                except (OSError, json.JSONDecodeError) as exc:
                    raise PersistenceError(
                        "Failed to read record sequence.",
                        details={"error": str(exc)},
                    ) from exc
            if not isinstance(state, dict):
                raise PersistenceError(
                    "Record sequence is malformed.",
                    details={"record": sequence_path.stem},
                )
            parent_id = _stored_counter(state, "next_parent_id", 1, sequence_path)
            while self._record_path(parent_id).exists():
                parent_id += 1
            try:
                write_json_atomic(
                    sequence_path,
                    {"next_parent_id": parent_id + 1},
                    durable=self.durable_writes,
                )
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceError(
                    "Failed to update record sequence.",
                    details={"error": str(exc)},
                ) from exc
        return parent_id

    def _record_path(self, parent_id: PersistedId) -> Path:
        try:
            segment = validate_record_id(parent_id)
        except ValueError as exc:
            raise RecordNotFound(parent_id) from exc
        return self.records_dir / f"{segment}.json"

    @staticmethod
    def _read_document(path: Path, parent_id: PersistedId) -> dict[str, Any]:
        if not path.exists():
            raise RecordNotFound(parent_id)
        try:
            document = read_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(
                "Failed to read record.",
                details={"parent_id": parent_id, "error": str(exc)},
            ) from exc
        if not isinstance(document, dict):
            raise PersistenceError("Record document is malformed.", details={"parent_id": parent_id})
        return document


def _document_to_record_children(document: dict[str, Any], path: Path) -> list[ChildRecord]:
    try:
        return [ChildRecord.model_validate(item) for item in document.get("children", [])]
    except (TypeError, ValidationError) as exc:
        raise PersistenceError(
            "Record document is malformed.",
            details={"record": path.stem, "error": str(exc)},
        ) from exc


def _document_to_record(document: dict[str, Any], path: Path) -> LoadedRecord:
    try:
        parent = ParentRecord(
            id=document["id"],
            version=document.get("version", 1),
            fields=document.get("fields", {}),
        )
    except (KeyError, ValidationError) as exc:
        raise PersistenceError(
            "Record document is malformed.",
            details={"record": path.stem, "error": str(exc)},
        ) from exc
    return LoadedRecord(parent=parent, children=_document_to_record_children(document, path))


def _stored_counter(document: dict[str, Any], key: str, default: int, path: Path) -> int:
    value = document.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise PersistenceError(
            f"Stored counter {key!r} is malformed.",
            details={"record": path.stem, "key": key},
        )
    return value


def _next_id(children: list[ChildRecord]) -> int:
    numeric = [child.id for child in children if isinstance(child.id, int)]
    return max(numeric, default=0) + 1


__all__ = ["JsonDraftStore", "validate_record_id"]

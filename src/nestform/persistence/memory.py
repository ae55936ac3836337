"""In-process draft store used for tests and single-process embedding."""

from __future__ import annotations

import copy
import itertools
import logging
from threading import Lock
from typing import Any, Iterable, Mapping

from ..errors import RecordNotFound, StaleDraftError
from ..models.commit import CommitPayload
from ..models.draft import PersistedId
from ..models.records import ChildRecord, LoadedRecord, ParentRecord
from .reconcile import reconcile_children

LOGGER = logging.getLogger(__name__)


class InMemoryDraftStore:
    """Keep parents and their child collections in a dictionary."""

    def __init__(self) -> None:
        self._records: dict[PersistedId, LoadedRecord] = {}
        self._parent_ids = itertools.count(1)
        self._child_ids = itertools.count(1)
        self._lock = Lock()

    def seed(
        self,
        fields: Mapping[str, Any],
        children: Iterable[Mapping[str, Any]] = (),
    ) -> LoadedRecord:
        """Insert a record directly, bypassing drafts."""

        with self._lock:
            parent = ParentRecord(id=next(self._parent_ids), fields=copy.deepcopy(dict(fields)))
            child_records = [
                ChildRecord(id=next(self._child_ids), fields=copy.deepcopy(dict(item)))
                for item in children
            ]
            record = LoadedRecord(parent=parent, children=child_records)
            self._records[parent.id] = record
        return record.model_copy(deep=True)

    def load(self, parent_id: PersistedId) -> LoadedRecord:
        with self._lock:
            record = self._records.get(parent_id)
            if record is None:
                raise RecordNotFound(parent_id)
            return record.model_copy(deep=True)

    def commit(self, payload: CommitPayload) -> ParentRecord:
        with self._lock:
            if payload.parent_id is None:
                parent_id: PersistedId = next(self._parent_ids)
                existing: list[ChildRecord] = []
                version = 1
            else:
                current = self._records.get(payload.parent_id)
                if current is None:
                    raise RecordNotFound(payload.parent_id)
                if (
                    payload.expected_version is not None
                    and payload.expected_version != current.parent.version
                ):
                    raise StaleDraftError(
                        "Record was modified after the draft was loaded.",
                        details={
                            "parent_id": payload.parent_id,
                            "expected_version": payload.expected_version,
                            "current_version": current.parent.version,
                        },
                    )
                parent_id = payload.parent_id
                existing = current.children
                version = current.parent.version + 1

            reconciliation = reconcile_children(existing, payload.children, lambda: next(self._child_ids))
            parent = ParentRecord(id=parent_id, version=version, fields=copy.deepcopy(payload.fields))
            self._records[parent_id] = LoadedRecord(parent=parent, children=reconciliation.children)

        LOGGER.debug(
            "Stored record %s v%d (+%d ~%d -%d)",
            parent_id,
            version,
            len(reconciliation.inserted),
            len(reconciliation.updated),
            len(reconciliation.deleted),
        )
        return parent.model_copy(deep=True)


__all__ = ["InMemoryDraftStore"]

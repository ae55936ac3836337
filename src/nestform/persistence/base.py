"""Persistence collaborator protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models.commit import CommitPayload
from ..models.draft import PersistedId
from ..models.records import LoadedRecord, ParentRecord


@runtime_checkable
class DraftStore(Protocol):
    """Load records for editing and apply validated commit payloads.

    ``commit`` upserts the parent and replaces its child collection with the
    payload's children in a single atomic step: rows with a ``persisted_id``
    are updated, rows without one are inserted and stored rows missing from
    the payload are deleted.
    """

    def load(self, parent_id: PersistedId) -> LoadedRecord:
        ...

    def commit(self, payload: CommitPayload) -> ParentRecord:
        ...


__all__ = ["DraftStore"]

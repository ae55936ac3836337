"""Apply a full-replacement child set to a stored child collection."""

from __future__ import annotations

import copy
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from ..errors import StaleDraftError
from ..models.commit import ChildUpsert
from ..models.draft import PersistedId
from ..models.records import ChildRecord


@dataclass(slots=True)
class ChildReconciliation:
    """New ordered child collection plus the per-row changes it implies."""

    children: list[ChildRecord] = field(default_factory=list)
    inserted: list[PersistedId] = field(default_factory=list)
    updated: list[PersistedId] = field(default_factory=list)
    unchanged: list[PersistedId] = field(default_factory=list)
    deleted: list[PersistedId] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated or self.deleted)


def reconcile_children(
    existing: Sequence[ChildRecord],
    entries: Sequence[ChildUpsert],
    allocate_id: Callable[[], PersistedId],
) -> ChildReconciliation:
    """Diff ``entries`` against ``existing`` and build the replacement collection.

    Entries keep their payload order. An update naming a row that is not in
    ``existing`` (or naming it twice) means the draft was built from a
    different version of the record and raises :class:`StaleDraftError`.
    """

    existing_by_id = {record.id: record for record in existing}
    result = ChildReconciliation()
    claimed: set[PersistedId] = set()

    for entry in entries:
        fields = copy.deepcopy(dict(entry.fields))
        if entry.is_insert:
            new_id = allocate_id()
            result.children.append(ChildRecord(id=new_id, fields=fields))
            result.inserted.append(new_id)
            continue

        persisted_id = entry.persisted_id
        current = existing_by_id.get(persisted_id)
        if current is None or persisted_id in claimed:
            raise StaleDraftError(
                f"Child row {persisted_id!r} is not part of the stored collection.",
                details={"persisted_id": persisted_id},
            )
        claimed.add(persisted_id)
        result.children.append(ChildRecord(id=persisted_id, fields=fields))
        if current.fields == fields:
            result.unchanged.append(persisted_id)
        else:
            result.updated.append(persisted_id)

    result.deleted = [record.id for record in existing if record.id not in claimed]
    return result


__all__ = ["ChildReconciliation", "reconcile_children"]

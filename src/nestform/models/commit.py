"""Commit payload handed to the persistence collaborator."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .draft import PersistedId


class ChildUpsert(BaseModel):
    """A child row in the full replacement set: an update or an insert."""

    model_config = ConfigDict(frozen=True)

    persisted_id: PersistedId | None = None
    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_insert(self) -> bool:
        return self.persisted_id is None

    def as_dict(self) -> dict[str, Any]:
        if self.is_insert:
            return {"fields": dict(self.fields)}
        return {"persisted_id": self.persisted_id, "fields": dict(self.fields)}


class CommitPayload(BaseModel):
    """Validated parent values plus the complete desired child collection.

    ``children`` is always present. Persisted rows absent from it are deleted
    by the store.
    """

    model_config = ConfigDict(frozen=True)

    parent_id: PersistedId | None = None
    expected_version: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    children: list[ChildUpsert] = Field(default_factory=list)

    @property
    def inserts(self) -> list[ChildUpsert]:
        return [child for child in self.children if child.is_insert]

    @property
    def updates(self) -> list[ChildUpsert]:
        return [child for child in self.children if not child.is_insert]

    def as_dict(self) -> dict[str, Any]:
        return {
            "parent_id": self.parent_id,
            "expected_version": self.expected_version,
            "fields": dict(self.fields),
            "children": [child.as_dict() for child in self.children],
        }


__all__ = ["ChildUpsert", "CommitPayload"]

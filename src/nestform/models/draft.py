"""Draft models: the in-memory working copy of a parent and its child rows."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .schema import PARENT_SCOPE

PersistedId = Union[int, str]


class ChildDraft(BaseModel):
    """One editable child row.

    ``draft_id`` is the only key used to correlate a UI row with its edits and
    validation errors. ``persisted_id`` is set only for rows loaded from the
    store and is never used as a correlation key.
    """

    model_config = ConfigDict(frozen=True)

    draft_id: str = Field(min_length=1)
    persisted_id: PersistedId | None = None
    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_new(self) -> bool:
        return self.persisted_id is None


class ParentDraft(BaseModel):
    """Working copy of a parent record plus its ordered child rows.

    Editor operations never hand back a draft that shares ``fields`` dicts or
    child rows with its predecessor, so mutating one draft cannot leak into
    another.
    """

    model_config = ConfigDict(frozen=True)

    parent_id: PersistedId | None = None
    base_version: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    children: tuple[ChildDraft, ...] = ()
    committed: bool = False

    @model_validator(mode="after")
    def _validate_draft_ids(self) -> "ParentDraft":
        seen: set[str] = set()
        for child in self.children:
            if child.draft_id == PARENT_SCOPE:
                raise ValueError(f"Draft id {PARENT_SCOPE!r} is reserved for the parent scope.")
            if child.draft_id in seen:
                raise ValueError(f"Duplicate draft id {child.draft_id!r}.")
            seen.add(child.draft_id)
        return self

    @property
    def is_new(self) -> bool:
        return self.parent_id is None

    @property
    def draft_ids(self) -> list[str]:
        return [child.draft_id for child in self.children]

    def child(self, draft_id: str) -> ChildDraft | None:
        for child in self.children:
            if child.draft_id == draft_id:
                return child
        return None

    def has_scope(self, scope: str) -> bool:
        return scope == PARENT_SCOPE or self.child(scope) is not None


__all__ = ["ChildDraft", "ParentDraft", "PersistedId"]

"""Shapes exchanged with persistence collaborators."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .draft import PersistedId


class ChildRecord(BaseModel):
    """A persisted child row."""

    model_config = ConfigDict(frozen=True)

    id: PersistedId
    fields: dict[str, Any] = Field(default_factory=dict)


class ParentRecord(BaseModel):
    """A persisted parent record."""

    model_config = ConfigDict(frozen=True)

    id: PersistedId
    version: int = Field(default=1, ge=1)
    fields: dict[str, Any] = Field(default_factory=dict)


class LoadedRecord(BaseModel):
    """A parent with its eagerly loaded, ordered child collection."""

    model_config = ConfigDict(frozen=True)

    parent: ParentRecord
    children: list[ChildRecord] = Field(default_factory=list)


__all__ = ["ChildRecord", "LoadedRecord", "ParentRecord"]

"""Persistence collaborators for committed drafts."""

from __future__ import annotations

from .atomic import locked_path, read_json, write_json_atomic
from .base import DraftStore
from .json_store import JsonDraftStore, validate_record_id
from .memory import InMemoryDraftStore
from .reconcile import ChildReconciliation, reconcile_children

__all__ = [
    "ChildReconciliation",
    "DraftStore",
    "InMemoryDraftStore",
    "JsonDraftStore",
    "locked_path",
    "read_json",
    "reconcile_children",
    "validate_record_id",
    "write_json_atomic",
]

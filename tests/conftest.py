"""Pytest configuration for the nestform test suite."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent
ORDER_SCHEMA_PATH = REPO_ROOT / "schemas" / "order.yaml"

CHECKLIST_SCHEMA: dict[str, Any] = {
    "name": "checklist",
    "parent": {"fields": [{"name": "title", "required": True, "max_length": 40}]},
    "children": {
        "fields": [
            {"name": "name", "required": True},
            {"name": "quantity", "type": "integer", "default": 1, "minimum": 1},
        ]
    },
}


def _ensure_src_on_path() -> None:
    """Add the ``src`` directory to ``sys.path`` for in-place runs."""

    src_dir = REPO_ROOT / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()


@pytest.fixture()
def checklist_schema():
    from nestform.schema_loader import parse_form_schema

    return parse_form_schema(CHECKLIST_SCHEMA)


@pytest.fixture()
def order_schema():
    from nestform.schema_loader import load_form_schema

    return load_form_schema(ORDER_SCHEMA_PATH)


@pytest.fixture()
def editor(checklist_schema):
    from nestform.editor import DraftEditor

    return DraftEditor(checklist_schema)


@pytest.fixture()
def order_editor(order_schema):
    from nestform.editor import DraftEditor

    return DraftEditor(order_schema)


@pytest.fixture()
def memory_store():
    from nestform.persistence import InMemoryDraftStore

    return InMemoryDraftStore()

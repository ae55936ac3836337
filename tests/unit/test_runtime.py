"""Tests for :func:`nestform.runtime.create_runtime`."""

from __future__ import annotations

from pathlib import Path

import pytest

from nestform.config import EditorSettings
from nestform.errors import SchemaError
from nestform.persistence import InMemoryDraftStore, JsonDraftStore
from nestform.runtime import build_store, create_runtime

ORDER_SCHEMA_PATH = Path(__file__).resolve().parents[2] / "schemas" / "order.yaml"


def _settings(**overrides) -> EditorSettings:
    return EditorSettings(_env_file=None, **overrides)


def test_build_store_defaults_to_memory() -> None:
    assert isinstance(build_store(_settings()), InMemoryDraftStore)


def test_build_store_uses_json_directory(tmp_path: Path) -> None:
    store = build_store(_settings(store_dir=tmp_path, durable_writes=False))

    assert isinstance(store, JsonDraftStore)
    assert store.base_dir == tmp_path
    assert store.durable_writes is False


def test_create_runtime_loads_configured_schema(tmp_path: Path) -> None:
    runtime = create_runtime(
        _settings(schema_path=ORDER_SCHEMA_PATH, diagnostics_dir=tmp_path / "diag")
    )

    assert runtime.schema.name == "order"
    assert runtime.editor.schema is runtime.schema
    assert runtime.registry.editor is runtime.editor
    view = runtime.registry.open_new()
    assert view.session_id in runtime.registry


def test_create_runtime_requires_a_schema() -> None:
    with pytest.raises(SchemaError, match="NESTFORM_SCHEMA_PATH"):
        create_runtime(_settings())


def test_create_runtime_accepts_overrides(checklist_schema, memory_store) -> None:
    runtime = create_runtime(_settings(), schema=checklist_schema, store=memory_store)

    assert runtime.store is memory_store
    assert runtime.schema is checklist_schema

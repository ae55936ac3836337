"""Wire settings, schema, store and session registry together."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .config import EditorSettings, get_settings
from .diagnostics import DiagnosticLogger
from .editor import DraftEditor
from .errors import SchemaError
from .logging_config import configure_logging
from .models.schema import FormSchema
from .persistence import DraftStore, InMemoryDraftStore, JsonDraftStore
from .schema_loader import load_form_schema
from .sessions import DraftSessionRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class EditorRuntime:
    """Everything a UI layer needs to drive editing sessions."""

    settings: EditorSettings
    schema: FormSchema
    editor: DraftEditor
    store: DraftStore
    registry: DraftSessionRegistry


def build_store(settings: EditorSettings) -> DraftStore:
    if settings.store_dir is None:
        return InMemoryDraftStore()
    return JsonDraftStore(settings.store_dir, durable_writes=settings.durable_writes)


def create_runtime(
    settings: EditorSettings | None = None,
    *,
    schema: FormSchema | None = None,
    references: Mapping[str, Sequence[Any]] | None = None,
    store: DraftStore | None = None,
    setup_logging: bool = False,
) -> EditorRuntime:
    """Build an :class:`EditorRuntime` from settings, with optional overrides."""

    resolved = settings or get_settings()
    if setup_logging:
        configure_logging(resolved.log_level, json_logs=resolved.json_logs)

    if schema is None:
        if resolved.schema_path is None:
            raise SchemaError("No form schema configured; set NESTFORM_SCHEMA_PATH.")
        schema = load_form_schema(resolved.schema_path)

    editor = DraftEditor(schema, references=references)
    active_store = store if store is not None else build_store(resolved)
    diagnostics = (
        DiagnosticLogger(resolved.diagnostics_dir) if resolved.diagnostics_dir is not None else None
    )
    registry = DraftSessionRegistry(editor, active_store, diagnostics=diagnostics)
    LOGGER.info(
        "Draft editor ready for form %s using %s",
        schema.name,
        type(active_store).__name__,
    )
    return EditorRuntime(
        settings=resolved,
        schema=schema,
        editor=editor,
        store=active_store,
        registry=registry,
    )


__all__ = ["EditorRuntime", "build_store", "create_runtime"]

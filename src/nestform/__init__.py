"""Draft editing of parent records with nested child collections."""

from __future__ import annotations

from .editor import CommitOutcome, CommitPreparation, DraftEditor, DraftIdAllocator
from .errors import (
    CommitInProgress,
    DraftContractError,
    FieldNotDeclared,
    NestformError,
    PersistenceError,
    RecordNotFound,
    SchemaError,
    ScopeNotFound,
    SessionNotFound,
    StaleDraftError,
    describe_error,
    describe_report,
)
from .models import (
    PARENT_SCOPE,
    ChildDraft,
    ChildRecord,
    ChildUpsert,
    CommitPayload,
    FormSchema,
    ParentDraft,
    ParentRecord,
    ValidationReport,
)
from .runtime import EditorRuntime, create_runtime
from .schema_loader import dump_form_schema, load_form_schema, parse_form_schema
from .sessions import DraftSessionRegistry, DraftView

__version__ = "0.1.0"

__all__ = [
    "ChildDraft",
    "ChildRecord",
    "ChildUpsert",
    "CommitInProgress",
    "CommitOutcome",
    "CommitPayload",
    "CommitPreparation",
    "DraftContractError",
    "DraftEditor",
    "DraftIdAllocator",
    "DraftSessionRegistry",
    "DraftView",
    "EditorRuntime",
    "FieldNotDeclared",
    "FormSchema",
    "NestformError",
    "PARENT_SCOPE",
    "ParentDraft",
    "ParentRecord",
    "PersistenceError",
    "RecordNotFound",
    "SchemaError",
    "ScopeNotFound",
    "SessionNotFound",
    "StaleDraftError",
    "ValidationReport",
    "create_runtime",
    "describe_error",
    "describe_report",
    "dump_form_schema",
    "load_form_schema",
    "parse_form_schema",
]

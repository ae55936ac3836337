"""Pydantic models for drafts, schemas, reports and persisted records."""

from .commit import ChildUpsert, CommitPayload
from .draft import ChildDraft, ParentDraft, PersistedId
from .errors import ErrorResponse
from .records import ChildRecord, LoadedRecord, ParentRecord
from .report import ValidationReport
from .schema import (
    COLLECTION_FIELD,
    PARENT_SCOPE,
    ChildCollectionSchema,
    ComparisonRule,
    FieldSpec,
    FormSchema,
    ScopeSchema,
)

__all__ = [
    "COLLECTION_FIELD",
    "ChildCollectionSchema",
    "ChildDraft",
    "ChildRecord",
    "ChildUpsert",
    "CommitPayload",
    "ComparisonRule",
    "ErrorResponse",
    "FieldSpec",
    "FormSchema",
    "LoadedRecord",
    "PARENT_SCOPE",
    "ParentDraft",
    "ParentRecord",
    "PersistedId",
    "ScopeSchema",
    "ValidationReport",
]

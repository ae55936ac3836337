"""Draft collection editor: pure operations over parent drafts."""

from __future__ import annotations

import copy
import itertools
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from threading import Lock
from typing import Any

from .errors import FieldNotDeclared, SchemaError, ScopeNotFound
from .models.commit import ChildUpsert, CommitPayload
from .models.draft import ChildDraft, ParentDraft
from .models.records import ChildRecord, ParentRecord
from .models.report import ValidationReport
from .models.schema import PARENT_SCOPE, FormSchema
from .persistence.base import DraftStore
from .validation import DraftValidator

LOGGER = logging.getLogger(__name__)


class DraftIdAllocator:
    """Issue process-local row identifiers that are never handed out twice."""

    def __init__(self, prefix: str = "tmp_") -> None:
        if not prefix or prefix == PARENT_SCOPE:
            raise ValueError("Draft id prefix must be non-empty and distinct from the parent scope.")
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = Lock()

    def allocate(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"{self._prefix}{sequence}"


_DEFAULT_ALLOCATOR = DraftIdAllocator()


@dataclass(slots=True)
class CommitPreparation:
    """Either a commit payload (report empty) or the blocking report."""

    report: ValidationReport
    payload: CommitPayload | None = None

    @property
    def ok(self) -> bool:
        return self.payload is not None


@dataclass(slots=True)
class CommitOutcome:
    """Result of :meth:`DraftEditor.commit`."""

    draft: ParentDraft
    report: ValidationReport
    record: ParentRecord | None = None

    @property
    def committed(self) -> bool:
        return self.record is not None


class DraftEditor:
    """Add, remove and edit child rows of a draft; validate and prepare commits.

    Every operation returns a new :class:`ParentDraft` and leaves its input
    untouched, so a failed operation never leaves a half-applied draft behind.
    """

    def __init__(
        self,
        schema: FormSchema,
        *,
        references: Mapping[str, Sequence[Any]] | None = None,
        allocator: DraftIdAllocator | None = None,
    ) -> None:
        self._schema = schema
        self._validator = DraftValidator(schema, references)
        self._allocator = allocator or _DEFAULT_ALLOCATOR

        missing = self._validator.missing_references()
        if missing:
            raise SchemaError(
                "Form schema references unknown catalogs.",
                details={"catalogs": sorted(missing)},
            )

    @property
    def schema(self) -> FormSchema:
        return self._schema

    def start(self) -> ParentDraft:
        """Return a draft for a new, never persisted record."""

        children = tuple(self._new_child() for _ in range(self._schema.children.initial_children))
        return ParentDraft(fields=self._schema.parent.defaults(), children=children)

    def hydrate(
        self,
        parent: ParentRecord | Mapping[str, Any],
        children: Iterable[ChildRecord | Mapping[str, Any]],
    ) -> ParentDraft:
        """Build a draft from a loaded parent and its ordered child collection."""

        parent_record = _as_parent_record(parent)
        child_drafts = tuple(
            ChildDraft(
                draft_id=self._allocator.allocate(),
                persisted_id=record.id,
                fields=self._with_defaults(self._schema.children.defaults(), record.fields),
            )
            for record in (_as_child_record(item) for item in children)
        )
        draft = ParentDraft(
            parent_id=parent_record.id,
            base_version=parent_record.version,
            fields=self._with_defaults(self._schema.parent.defaults(), parent_record.fields),
            children=child_drafts,
        )
        LOGGER.debug("Hydrated draft for record %s with %d rows", parent_record.id, len(child_drafts))
        return draft

    def add_child(self, draft: ParentDraft) -> ParentDraft:
        child = self._new_child()
        LOGGER.debug("Added draft row %s", child.draft_id)
        return _derive(draft, children=(*draft.children, child))

    def remove_child(self, draft: ParentDraft, draft_id: str) -> ParentDraft:
        remaining = tuple(child for child in draft.children if child.draft_id != draft_id)
        if len(remaining) == len(draft.children):
            LOGGER.debug("Ignoring removal of unknown draft row %s", draft_id)
            return draft
        LOGGER.debug("Removed draft row %s", draft_id)
        return _derive(draft, children=remaining)

    def apply_field_change(
        self,
        draft: ParentDraft,
        scope: str,
        field_name: str,
        value: Any,
    ) -> ParentDraft:
        """Set one field of the parent or of the child row ``scope``."""

        if scope == PARENT_SCOPE:
            if self._schema.parent.get(field_name) is None:
                raise FieldNotDeclared(scope, field_name)
            fields = {**draft.fields, field_name: value}
            return _derive(draft, fields=fields)

        target = draft.child(scope)
        if target is None:
            raise ScopeNotFound(scope)
        if self._schema.children.get(field_name) is None:
            raise FieldNotDeclared(scope, field_name)

        updated = target.model_copy(
            update={"fields": {**target.fields, field_name: value}}
        )
        children = tuple(updated if child.draft_id == scope else child for child in draft.children)
        return _derive(draft, children=children)

    def validate(self, draft: ParentDraft) -> ValidationReport:
        return self._validator.validate(draft)

    def prepare_commit(self, draft: ParentDraft) -> CommitPreparation:
        """Validate ``draft`` and build the full-replacement commit payload."""

        report = self._validator.validate(draft)
        if not report.is_valid:
            return CommitPreparation(report=report)

        children = [
            ChildUpsert(persisted_id=child.persisted_id, fields=copy.deepcopy(child.fields))
            for child in draft.children
        ]
        payload = CommitPayload(
            parent_id=draft.parent_id,
            expected_version=draft.base_version,
            fields=copy.deepcopy(draft.fields),
            children=children,
        )
        return CommitPreparation(report=report, payload=payload)

    def commit(self, draft: ParentDraft, store: DraftStore) -> CommitOutcome:
        """Validate and hand the payload to ``store``.

        :class:`~nestform.errors.PersistenceError` raised by the store
        propagates unchanged; ``draft`` is left as it was so it can be retried.
        """

        preparation = self.prepare_commit(draft)
        if preparation.payload is None:
            return CommitOutcome(draft=draft, report=preparation.report)

        payload = preparation.payload
        record = store.commit(payload)
        LOGGER.info(
            "Committed record %s (version %s): %d inserts, %d updates",
            record.id,
            record.version,
            len(payload.inserts),
            len(payload.updates),
        )
        committed = _derive(draft, committed=True, parent_id=record.id)
        return CommitOutcome(draft=committed, report=preparation.report, record=record)

    def cancel(self, draft: ParentDraft) -> None:
        LOGGER.debug("Discarded draft for record %s", draft.parent_id)

    def _new_child(self) -> ChildDraft:
        return ChildDraft(
            draft_id=self._allocator.allocate(),
            fields=self._schema.children.defaults(),
        )

    @staticmethod
    def _with_defaults(defaults: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(defaults)
        merged.update(copy.deepcopy(dict(source)))
        return merged


def _derive(draft: ParentDraft, **changes: Any) -> ParentDraft:
    """Return a validated successor of ``draft`` that shares no mutable state with it."""

    state = {name: value for name, value in draft}
    state.update(changes)
    return ParentDraft.model_validate(copy.deepcopy(state))


def _as_parent_record(parent: ParentRecord | Mapping[str, Any]) -> ParentRecord:
    if isinstance(parent, ParentRecord):
        return parent
    return ParentRecord.model_validate(dict(parent))


def _as_child_record(child: ChildRecord | Mapping[str, Any]) -> ChildRecord:
    if isinstance(child, ChildRecord):
        return child
    return ChildRecord.model_validate(dict(child))


__all__ = [
    "CommitOutcome",
    "CommitPreparation",
    "DraftEditor",
    "DraftIdAllocator",
]

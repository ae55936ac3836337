"""Session-scoped owners of drafts, driven by discrete UI intents."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Iterator
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .diagnostics import DiagnosticLogger
from .editor import DraftEditor
from .errors import (
    CommitInProgress,
    DraftContractError,
    NestformError,
    PersistenceError,
    SessionNotFound,
)
from .models.draft import ParentDraft, PersistedId
from .models.records import ParentRecord
from .models.report import ScopeErrors, ValidationReport
from .models.schema import PARENT_SCOPE
from .persistence.base import DraftStore

LOGGER = logging.getLogger(__name__)


class DraftRowView(BaseModel):
    """Read-only rendering data for one child row."""

    model_config = ConfigDict(frozen=True)

    draft_id: str
    persisted_id: PersistedId | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    errors: ScopeErrors = Field(default_factory=dict)


class DraftView(BaseModel):
    """Snapshot of a session for the UI layer to render."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    parent_id: PersistedId | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    errors: ScopeErrors = Field(default_factory=dict)
    rows: list[DraftRowView] = Field(default_factory=list)
    report: ValidationReport = Field(default_factory=ValidationReport)
    committed: bool = False

    def row(self, draft_id: str) -> DraftRowView | None:
        for row in self.rows:
            if row.draft_id == draft_id:
                return row
        return None


@dataclass
class SubmitResult:
    view: DraftView
    record: ParentRecord | None = None

    @property
    def committed(self) -> bool:
        return self.record is not None


@dataclass
class DraftSession:
    """A single editing session: one draft, one writer."""

    session_id: str
    draft: ParentDraft
    report: ValidationReport = field(default_factory=ValidationReport)
    show_errors: bool = False
    commit_in_flight: bool = False
    lock: Lock = field(default_factory=Lock, repr=False)

    def view(self) -> DraftView:
        rows = [
            DraftRowView(
                draft_id=child.draft_id,
                persisted_id=child.persisted_id,
                fields=dict(child.fields),
                errors=self.report.for_scope(child.draft_id),
            )
            for child in self.draft.children
        ]
        return DraftView(
            session_id=self.session_id,
            parent_id=self.draft.parent_id,
            fields=dict(self.draft.fields),
            errors=self.report.for_scope(PARENT_SCOPE),
            rows=rows,
            report=self.report,
            committed=self.draft.committed,
        )


class DraftSessionRegistry:
    """Own editing sessions and route UI intents to the :class:`DraftEditor`.

    Errors are not shown until the user has asked for validation (a field
    change, an explicit validate, or a submit); from then on every intent
    re-runs validation against the current draft.
    """

    def __init__(
        self,
        editor: DraftEditor,
        store: DraftStore,
        *,
        diagnostics: DiagnosticLogger | None = None,
    ) -> None:
        self._editor = editor
        self._store = store
        self._diagnostics = diagnostics
        self._sessions: dict[str, DraftSession] = {}
        self._guard = Lock()

    @property
    def editor(self) -> DraftEditor:
        return self._editor

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return session_id in self._sessions

    def open_new(self) -> DraftView:
        return self._register(self._editor.start()).view()

    def open_existing(self, parent_id: PersistedId) -> DraftView:
        loaded = self._store.load(parent_id)
        draft = self._editor.hydrate(loaded.parent, loaded.children)
        return self._register(draft).view()

    def view(self, session_id: str) -> DraftView:
        session = self._get(session_id)
        with session.lock:
            return session.view()

    def add_child(self, session_id: str) -> DraftView:
        return self._mutate(session_id, self._editor.add_child)

    def remove_child(self, session_id: str, draft_id: str) -> DraftView:
        return self._mutate(session_id, lambda draft: self._editor.remove_child(draft, draft_id))

    def change_field(self, session_id: str, scope: str, field_name: str, value: Any) -> DraftView:
        return self._mutate(
            session_id,
            lambda draft: self._editor.apply_field_change(draft, scope, field_name, value),
            show_errors=True,
        )

    def validate(self, session_id: str) -> DraftView:
        return self._mutate(session_id, lambda draft: draft, show_errors=True)

    def submit(self, session_id: str) -> SubmitResult:
        """Validate and commit; the session ends only when the commit succeeds."""

        session = self._get(session_id)
        with session.lock:
            self._ensure_idle(session)
            session.commit_in_flight = True
            draft = session.draft

        try:
            outcome = self._editor.commit(draft, self._store)
        except PersistenceError as exc:
            LOGGER.warning(
                "Commit failed for session %s: %s",
                session_id,
                exc.message,
                extra={"extra_payload": {"code": exc.code, "parent_id": draft.parent_id}},
            )
            self._record_diagnostic(exc, session_id)
            raise
        finally:
            with session.lock:
                session.commit_in_flight = False

        with session.lock:
            session.show_errors = True
            session.report = outcome.report
            if outcome.committed:
                session.draft = outcome.draft
            view = session.view()

        if outcome.committed:
            self._discard(session_id)
        return SubmitResult(view=view, record=outcome.record)

    def cancel(self, session_id: str) -> None:
        session = self._get(session_id)
        with session.lock:
            self._ensure_idle(session)
            self._editor.cancel(session.draft)
        self._discard(session_id)

    def _register(self, draft: ParentDraft) -> DraftSession:
        session = DraftSession(session_id=f"ses_{uuid4().hex}", draft=draft)
        with self._guard:
            self._sessions[session.session_id] = session
        LOGGER.debug("Opened session %s for record %s", session.session_id, draft.parent_id)
        return session

    def _discard(self, session_id: str) -> None:
        with self._guard:
            self._sessions.pop(session_id, None)

    def _get(self, session_id: str) -> DraftSession:
        with self._guard:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @staticmethod
    def _ensure_idle(session: DraftSession) -> None:
        if session.commit_in_flight:
            raise CommitInProgress(session.session_id)

    def _mutate(
        self,
        session_id: str,
        operation: Callable[[ParentDraft], ParentDraft],
        *,
        show_errors: bool = False,
    ) -> DraftView:
        session = self._get(session_id)
        with session.lock:
            self._ensure_idle(session)
            with self._contract_guard(session_id):
                draft = operation(session.draft)
            session.draft = draft
            if show_errors:
                session.show_errors = True
            session.report = (
                self._editor.validate(draft) if session.show_errors else ValidationReport()
            )
            return session.view()

    @contextmanager
    def _contract_guard(self, session_id: str) -> Iterator[None]:
        try:
            yield
        except DraftContractError as exc:
            LOGGER.warning(
                "Rejected intent for session %s: %s",
                session_id,
                exc.message,
                extra={"extra_payload": {"code": exc.code, "scope": exc.details.get("scope")}},
            )
            self._record_diagnostic(exc, session_id)
            raise

    def _record_diagnostic(self, exc: NestformError, session_id: str) -> None:
        if self._diagnostics is None:
            return
        details = dict(exc.details)
        details.setdefault("session_id", session_id)
        try:
            self._diagnostics.log(code=exc.code, message=exc.message, details=details)
        except OSError:
            LOGGER.exception("Failed to write diagnostic for session %s", session_id)


__all__ = [
    "DraftRowView",
    "DraftSession",
    "DraftSessionRegistry",
    "DraftView",
    "SubmitResult",
]

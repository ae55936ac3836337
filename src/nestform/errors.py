"""Central error definitions and exception types for the draft editor."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, ClassVar, Dict

from .models.errors import ErrorResponse
from .models.report import ValidationReport


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal error.", HTTPStatus.INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", HTTPStatus.UNPROCESSABLE_ENTITY),
    "SCOPE_NOT_FOUND": ErrorDefinition("SCOPE_NOT_FOUND", "Draft row does not exist.", HTTPStatus.CONFLICT),
    "FIELD_NOT_DECLARED": ErrorDefinition("FIELD_NOT_DECLARED", "Field is not declared by the form schema.", HTTPStatus.BAD_REQUEST),
    "SESSION_NOT_FOUND": ErrorDefinition("SESSION_NOT_FOUND", "Editing session does not exist.", HTTPStatus.NOT_FOUND),
    "COMMIT_IN_PROGRESS": ErrorDefinition("COMMIT_IN_PROGRESS", "A commit is already outstanding for this session.", HTTPStatus.CONFLICT),
    "PERSISTENCE_FAILED": ErrorDefinition("PERSISTENCE_FAILED", "Persisting the draft failed.", HTTPStatus.SERVICE_UNAVAILABLE),
    "RECORD_NOT_FOUND": ErrorDefinition("RECORD_NOT_FOUND", "Record does not exist.", HTTPStatus.NOT_FOUND),
    "STALE_DRAFT": ErrorDefinition("STALE_DRAFT", "Record changed since the draft was loaded.", HTTPStatus.CONFLICT),
    "SCHEMA_INVALID": ErrorDefinition("SCHEMA_INVALID", "Form schema is invalid.", HTTPStatus.INTERNAL_SERVER_ERROR),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "UNEXPECTED_ERROR",
    "Unexpected error occurred.",
    HTTPStatus.INTERNAL_SERVER_ERROR,
)


def get_error_definition(code: str) -> ErrorDefinition:
    return ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)


class NestformError(Exception):
    """Base class for structured editor errors."""

    code: ClassVar[str] = "INTERNAL"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        definition = get_error_definition(self.code)
        self.message = message or definition.message
        self.details: dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return int(get_error_definition(self.code).status_code)


class DraftContractError(NestformError):
    """Raised when the UI layer sends an intent the draft cannot honour."""


class ScopeNotFound(DraftContractError):
    """A field change addressed a child row that is not in the draft."""

    code = "SCOPE_NOT_FOUND"

    def __init__(self, scope: str) -> None:
        super().__init__(f"No draft row with id {scope!r}.", details={"scope": scope})
        self.scope = scope


class FieldNotDeclared(DraftContractError):
    """A field change named a field the schema does not declare for the scope."""

    code = "FIELD_NOT_DECLARED"

    def __init__(self, scope: str, field_name: str) -> None:
        super().__init__(
            f"Field {field_name!r} is not declared for scope {scope!r}.",
            details={"scope": scope, "field": field_name},
        )
        self.scope = scope
        self.field_name = field_name


class SessionError(NestformError):
    """Base class for session registry failures."""


class SessionNotFound(SessionError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No editing session {session_id!r}.", details={"session_id": session_id})
        self.session_id = session_id


class CommitInProgress(SessionError):
    code = "COMMIT_IN_PROGRESS"

    def __init__(self, session_id: str) -> None:
        super().__init__(details={"session_id": session_id})
        self.session_id = session_id


class PersistenceError(NestformError):
    """Opaque failure raised by a persistence collaborator during load or commit."""

    code = "PERSISTENCE_FAILED"


class RecordNotFound(PersistenceError):
    code = "RECORD_NOT_FOUND"

    def __init__(self, parent_id: Any) -> None:
        super().__init__(f"No record with id {parent_id!r}.", details={"parent_id": parent_id})
        self.parent_id = parent_id


class StaleDraftError(PersistenceError):
    """The stored record no longer matches the state the draft was hydrated from."""

    code = "STALE_DRAFT"


class SchemaError(NestformError):
    code = "SCHEMA_INVALID"


def describe_error(exc: NestformError) -> ErrorResponse:
    """Render an editor exception as a serialisable error payload."""

    return ErrorResponse(
        code=exc.code,
        message=exc.message,
        details=_sanitize_details(exc.details),
        status_code=exc.status_code,
    )


def describe_report(report: ValidationReport) -> ErrorResponse:
    """Render a non-empty validation report as an error payload."""

    definition = get_error_definition("VALIDATION")
    return ErrorResponse(
        code=definition.code,
        message=definition.message,
        details={"errors": report.as_dict()},
        status_code=int(definition.status_code),
    )


def _sanitize_details(details: Any) -> Any:
    """Convert exception instances inside details into serialisable values."""

    if isinstance(details, Exception):
        return str(details)
    if isinstance(details, dict):
        return {key: _sanitize_details(value) for key, value in details.items()}
    if isinstance(details, list):
        return [_sanitize_details(item) for item in details]
    return details


__all__ = [
    "CommitInProgress",
    "DEFAULT_ERROR_DEFINITION",
    "DraftContractError",
    "ERROR_DEFINITIONS",
    "ErrorDefinition",
    "FieldNotDeclared",
    "NestformError",
    "PersistenceError",
    "RecordNotFound",
    "SchemaError",
    "ScopeNotFound",
    "SessionError",
    "SessionNotFound",
    "StaleDraftError",
    "describe_error",
    "describe_report",
    "get_error_definition",
]

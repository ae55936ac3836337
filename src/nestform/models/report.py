"""Validation report model keyed by scope and field."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .schema import PARENT_SCOPE

ScopeErrors = dict[str, list[str]]


class ValidationReport(BaseModel):
    """Errors for one validation pass.

    Only scopes and fields with at least one message are present. Scopes are
    ordered parent first, then child rows in draft order.
    """

    model_config = ConfigDict(frozen=True)

    errors: dict[str, ScopeErrors] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _reject_empty_entries(self) -> "ValidationReport":
        for scope, fields in self.errors.items():
            if not fields:
                raise ValueError(f"Scope {scope!r} has no field errors.")
            for field_name, messages in fields.items():
                if not messages:
                    raise ValueError(f"Field {scope}.{field_name} has no messages.")
        return self

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def scopes(self) -> list[str]:
        return list(self.errors)

    @property
    def child_scopes(self) -> list[str]:
        return [scope for scope in self.errors if scope != PARENT_SCOPE]

    @property
    def error_count(self) -> int:
        return sum(len(messages) for fields in self.errors.values() for messages in fields.values())

    def for_scope(self, scope: str) -> ScopeErrors:
        return {name: list(messages) for name, messages in self.errors.get(scope, {}).items()}

    def messages(self, scope: str, field_name: str) -> list[str]:
        return list(self.errors.get(scope, {}).get(field_name, []))

    def as_dict(self) -> dict[str, ScopeErrors]:
        return {scope: self.for_scope(scope) for scope in self.errors}


__all__ = ["ScopeErrors", "ValidationReport"]

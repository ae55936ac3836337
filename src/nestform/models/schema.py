"""Pydantic models describing the declared parent and child field schema."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PARENT_SCOPE = "parent"
COLLECTION_FIELD = "children"

FieldType = Literal["string", "integer", "number", "boolean", "date"]
ComparisonOp = Literal["<", "<=", ">", ">=", "==", "!="]

_FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FieldSpec(BaseModel):
    """Declaration of a single editable field and its rules."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    type: FieldType = "string"
    label: str | None = None
    required: bool = False
    default: Any = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=1)
    minimum: float | None = None
    maximum: float | None = None
    pattern: str | None = None
    choices: list[Any] | None = None
    reference: str | None = None
    unique: bool = False

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not _FIELD_NAME_RE.match(value):
            raise ValueError(f"Invalid field name {value!r}.")
        return value

    @field_validator("pattern")
    @classmethod
    def _validate_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid pattern {value!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _validate_bounds(self) -> "FieldSpec":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(f"Field {self.name}: min_length exceeds max_length.")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"Field {self.name}: minimum exceeds maximum.")
        if self.type != "string" and (self.min_length is not None or self.max_length is not None):
            raise ValueError(f"Field {self.name}: length bounds apply to string fields only.")
        if self.type not in ("integer", "number") and (
            self.minimum is not None or self.maximum is not None
        ):
            raise ValueError(f"Field {self.name}: numeric bounds apply to numeric fields only.")
        return self


class ComparisonRule(BaseModel):
    """Cross-field rule comparing two fields of the same scope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str
    op: ComparisonOp
    other: str
    message: str | None = None


class ScopeSchema(BaseModel):
    """Fields and cross-field rules declared for one scope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fields: list[FieldSpec] = Field(default_factory=list)
    rules: list[ComparisonRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_scope(self) -> "ScopeSchema":
        names = [spec.name for spec in self.fields]
        seen: set[str] = set()
        for name in names:
            if name in seen:
                raise ValueError(f"Field {name!r} is declared more than once.")
            seen.add(name)

        for rule in self.rules:
            for referenced in (rule.field, rule.other):
                if referenced not in seen:
                    raise ValueError(f"Rule references undeclared field {referenced!r}.")
        return self

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    def get(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def defaults(self) -> dict[str, Any]:
        """Return a fresh mapping of every declared field to its default."""

        return {spec.name: _copy_default(spec.default) for spec in self.fields}


class ChildCollectionSchema(ScopeSchema):
    """Child row declaration plus collection-level bounds."""

    association: str = "children"
    min_children: int = Field(default=0, ge=0)
    max_children: int | None = Field(default=None, ge=0)
    initial_children: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ChildCollectionSchema":
        if self.max_children is not None and self.min_children > self.max_children:
            raise ValueError("min_children exceeds max_children.")
        if self.max_children is not None and self.initial_children > self.max_children:
            raise ValueError("initial_children exceeds max_children.")
        return self


class FormSchema(BaseModel):
    """Complete form declaration: parent fields plus one child collection."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    parent: ScopeSchema = Field(default_factory=ScopeSchema)
    children: ChildCollectionSchema = Field(default_factory=ChildCollectionSchema)
    references: dict[str, list[Any]] = Field(default_factory=dict)

    @field_validator("references")
    @classmethod
    def _validate_references(cls, value: dict[str, list[Any]]) -> dict[str, list[Any]]:
        for name, entries in value.items():
            for entry in entries:
                try:
                    hash(entry)
                except TypeError:
                    raise ValueError(
                        f"Reference catalog {name!r} holds a non-scalar entry {entry!r}."
                    ) from None
        return value

    @model_validator(mode="after")
    def _validate_form(self) -> "FormSchema":
        if self.parent.get(COLLECTION_FIELD) is not None:
            raise ValueError(f"Parent field name {COLLECTION_FIELD!r} is reserved.")
        for spec in self.parent.fields:
            if spec.unique:
                raise ValueError(f"Field {spec.name}: unique applies to child fields only.")
        return self

    def scope_schema(self, scope: str) -> ScopeSchema:
        return self.parent if scope == PARENT_SCOPE else self.children

    def referenced_catalogs(self) -> set[str]:
        names: set[str] = set()
        for spec in [*self.parent.fields, *self.children.fields]:
            if spec.reference:
                names.add(spec.reference)
        return names


def _copy_default(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


__all__ = [
    "COLLECTION_FIELD",
    "ChildCollectionSchema",
    "ComparisonOp",
    "ComparisonRule",
    "FieldSpec",
    "FieldType",
    "FormSchema",
    "PARENT_SCOPE",
    "ScopeSchema",
]

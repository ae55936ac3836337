"""Field-level and cross-field validation for parent drafts.

Every pass walks the draft itself (parent fields, then ``draft.children`` in
order) and builds a new report, so errors for rows that no longer exist can
never survive into the next pass.
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from .errors import SchemaError
from .models.draft import ChildDraft, ParentDraft
from .models.report import ScopeErrors, ValidationReport
from .models.schema import (
    COLLECTION_FIELD,
    PARENT_SCOPE,
    ComparisonRule,
    FieldSpec,
    FormSchema,
    ScopeSchema,
)

BLANK_MESSAGE = "can't be blank"
TAKEN_MESSAGE = "has already been taken"

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})

_COMPARATORS: dict[str, tuple[Callable[[Any, Any], bool], str]] = {
    "<": (operator.lt, "must be less than"),
    "<=": (operator.le, "must be less than or equal to"),
    ">": (operator.gt, "must be greater than"),
    ">=": (operator.ge, "must be greater than or equal to"),
    "==": (operator.eq, "must be equal to"),
    "!=": (operator.ne, "must not be equal to"),
}


class InvalidValue(ValueError):
    """Raised by :func:`coerce_value` with a user-facing message."""


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Convert a raw UI value to the declared type or raise :class:`InvalidValue`."""

    if spec.type == "string":
        if not isinstance(value, str):
            raise InvalidValue("is invalid")
        return value

    if spec.type == "integer":
        if isinstance(value, bool):
            raise InvalidValue("must be a whole number")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
            return int(value.strip())
        raise InvalidValue("must be a whole number")

    if spec.type == "number":
        if isinstance(value, bool):
            raise InvalidValue("must be a number")
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise InvalidValue("must be a number") from None
        else:
            raise InvalidValue("must be a number")
        if isinstance(number, float) and not math.isfinite(number):
            raise InvalidValue("must be a number")
        return number

    if spec.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            candidate = value.strip().lower()
            if candidate in _TRUE_STRINGS:
                return True
            if candidate in _FALSE_STRINGS:
                return False
        raise InvalidValue("must be true or false")

    if spec.type == "date":
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                raise InvalidValue("must be a date (YYYY-MM-DD)") from None
        raise InvalidValue("must be a date (YYYY-MM-DD)")

    raise InvalidValue("is invalid")  # pragma: no cover - FieldType is a closed literal


@dataclass(slots=True)
class ScopeResult:
    """Errors for one scope plus the coerced values of its well-formed fields."""

    errors: ScopeErrors = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)
    valid_fields: set[str] = field(default_factory=set)

    def add(self, field_name: str, message: str) -> None:
        self.errors.setdefault(field_name, []).append(message)
        self.valid_fields.discard(field_name)


class DraftValidator:
    """Evaluate a draft against a form schema and a reference catalog."""

    def __init__(
        self,
        schema: FormSchema,
        references: Mapping[str, Sequence[Any]] | None = None,
    ) -> None:
        self._schema = schema
        catalog = {**schema.references, **(references or {})}
        self._references = {name: _as_catalog(name, values) for name, values in catalog.items()}

    @property
    def schema(self) -> FormSchema:
        return self._schema

    def missing_references(self) -> set[str]:
        return self._schema.referenced_catalogs() - set(self._references)

    def validate(self, draft: ParentDraft) -> ValidationReport:
        """Build a fresh report from the current parent fields and rows."""

        parent_result = self._evaluate_scope(self._schema.parent, draft.fields)
        self._check_collection_bounds(draft.children, parent_result)

        child_results = [
            self._evaluate_scope(self._schema.children, child.fields) for child in draft.children
        ]
        self._check_uniqueness(child_results)

        errors: dict[str, ScopeErrors] = {}
        if parent_result.errors:
            errors[PARENT_SCOPE] = parent_result.errors
        for child, result in zip(draft.children, child_results):
            if result.errors:
                errors[child.draft_id] = result.errors

        return ValidationReport(errors=errors)

    def _evaluate_scope(self, scope: ScopeSchema, raw: Mapping[str, Any]) -> ScopeResult:
        result = ScopeResult()
        for spec in scope.fields:
            value = raw.get(spec.name)
            if is_blank(value):
                if spec.required:
                    result.add(spec.name, BLANK_MESSAGE)
                continue

            try:
                coerced = coerce_value(spec, value)
            except InvalidValue as exc:
                result.add(spec.name, str(exc))
                continue

            messages = self._check_constraints(spec, coerced)
            for message in messages:
                result.add(spec.name, message)
            result.values[spec.name] = coerced
            if not messages:
                result.valid_fields.add(spec.name)

        for rule in scope.rules:
            self._check_rule(rule, result)
        return result

    def _check_constraints(self, spec: FieldSpec, value: Any) -> list[str]:
        messages: list[str] = []
        if isinstance(value, str):
            length = len(value)
            if spec.min_length is not None and length < spec.min_length:
                messages.append(f"should be at least {spec.min_length} character(s)")
            if spec.max_length is not None and length > spec.max_length:
                messages.append(f"should be at most {spec.max_length} character(s)")
            if spec.pattern is not None and not re.fullmatch(spec.pattern, value):
                messages.append("has invalid format")
        if spec.type in ("integer", "number"):
            if spec.minimum is not None and value < spec.minimum:
                messages.append(f"must be greater than or equal to {_format_bound(spec.minimum)}")
            if spec.maximum is not None and value > spec.maximum:
                messages.append(f"must be less than or equal to {_format_bound(spec.maximum)}")
        if spec.choices is not None and value not in spec.choices:
            messages.append("is not included in the list")
        if spec.reference is not None and value not in self._references.get(spec.reference, ()):
            messages.append("does not exist")
        return messages

    @staticmethod
    def _check_rule(rule: ComparisonRule, result: ScopeResult) -> None:
        if rule.field not in result.valid_fields or rule.other not in result.valid_fields:
            return
        left = result.values[rule.field]
        right = result.values[rule.other]
        compare, phrase = _COMPARATORS[rule.op]
        try:
            satisfied = compare(left, right)
        except TypeError:
            satisfied = False
        if not satisfied:
            result.add(rule.field, rule.message or f"{phrase} {rule.other}")

    def _check_collection_bounds(self, children: Sequence[ChildDraft], result: ScopeResult) -> None:
        bounds = self._schema.children
        count = len(children)
        if count < bounds.min_children:
            result.add(COLLECTION_FIELD, f"should have at least {bounds.min_children} item(s)")
        if bounds.max_children is not None and count > bounds.max_children:
            result.add(COLLECTION_FIELD, f"should have at most {bounds.max_children} item(s)")

    def _check_uniqueness(self, results: list[ScopeResult]) -> None:
        for spec in self._schema.children.fields:
            if not spec.unique:
                continue
            seen: set[Any] = set()
            for result in results:
                if spec.name not in result.valid_fields:
                    continue
                key = _unique_key(result.values[spec.name])
                if key in seen:
                    result.add(spec.name, TAKEN_MESSAGE)
                else:
                    seen.add(key)


def _as_catalog(name: str, values: Iterable[Any]) -> frozenset[Any]:
    try:
        return frozenset(values)
    except TypeError as exc:
        raise SchemaError(
            f"Reference catalog {name!r} must list scalar values.",
            details={"catalog": name},
        ) from exc


def _unique_key(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().casefold()
    return value


def _format_bound(bound: float) -> str:
    if float(bound).is_integer():
        return str(int(bound))
    return str(bound)


__all__ = [
    "BLANK_MESSAGE",
    "DraftValidator",
    "InvalidValue",
    "TAKEN_MESSAGE",
    "coerce_value",
    "is_blank",
]

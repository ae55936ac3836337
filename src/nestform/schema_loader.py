"""Load form schemas declared in YAML documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .errors import SchemaError
from .models.schema import FormSchema

LOGGER = logging.getLogger(__name__)


def parse_form_schema(document: Mapping[str, Any]) -> FormSchema:
    """Validate a decoded schema document.

    The document mirrors :class:`FormSchema`: a ``name``, a ``parent`` block
    and a ``children`` block, each listing ``fields`` and optional ``rules``.
    """

    if not isinstance(document, Mapping):
        raise SchemaError("Form schema document must be a mapping.")
    try:
        return FormSchema.model_validate(dict(document))
    except ValidationError as exc:
        raise SchemaError(
            "Form schema failed validation.",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def load_form_schema(path: Path) -> FormSchema:
    """Read and validate a YAML schema file."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaError(
            f"Unable to read form schema: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc

    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise SchemaError(
            f"Form schema is not valid YAML: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc

    if document is None:
        raise SchemaError(f"Form schema is empty: {path}", details={"path": str(path)})

    schema = parse_form_schema(document)
    LOGGER.info(
        "Loaded form schema %s (%d parent fields, %d child fields)",
        schema.name,
        len(schema.parent.fields),
        len(schema.children.fields),
    )
    return schema


def dump_form_schema(schema: FormSchema) -> str:
    """Serialise a schema back to YAML, omitting unset options."""

    payload = schema.model_dump(mode="json", exclude_defaults=True)
    payload.setdefault("name", schema.name)
    serialized = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, indent=2)
    if not serialized.endswith("\n"):
        serialized = f"{serialized}\n"
    return serialized


__all__ = ["dump_form_schema", "load_form_schema", "parse_form_schema"]

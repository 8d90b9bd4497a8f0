# File: modelschema/loader.py
"""
ModelSchema - Document Loading
===============================
Turns text or files into mappings, and core mappings into ``Schema``
objects.

Supported inputs:
    - YAML (``.yaml`` / ``.yml``)
    - JSON (``.json``)
    - anything else: JSON first, then YAML

``build_schema`` is the construction gate: when given a ``TypeResolver``
every field type must resolve to a plugin or a built-in (aliases are
rewritten to their canonical id), otherwise ``UnknownTypeError`` is raised
before any generation happens.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from modelschema.exceptions import SchemaParseError, UnknownTypeError
from modelschema.models import Field, Schema
from modelschema.resolver import TypeResolver

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.loader")

FORMATS: Tuple[str, ...] = ("json", "yaml")


# ---------------------------------------------------------------------------
# Text / file parsing
# ---------------------------------------------------------------------------


def _as_mapping(data: Any, source: Optional[str]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaParseError(
            f"Top-level document must be a mapping, got {type(data).__name__}.", source
        )
    return data


def _parse_json(text: str, source: Optional[str]) -> Dict[str, Any]:
    try:
        return _as_mapping(json.loads(text), source)
    except json.JSONDecodeError as exc:
        raise SchemaParseError(f"Invalid JSON: {exc}", source) from exc


def _parse_yaml(text: str, source: Optional[str]) -> Dict[str, Any]:
    try:
        return _as_mapping(yaml.safe_load(text), source)
    except yaml.YAMLError as exc:
        raise SchemaParseError(f"Invalid YAML: {exc}", source) from exc


def parse_text(text: str, fmt: str = "auto", source: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse a JSON or YAML document into a mapping.

    Args:
        text: Document text.
        fmt: ``"json"``, ``"yaml"`` or ``"auto"`` (JSON first, then YAML).
        source: Optional label used in error messages.

    Raises:
        SchemaParseError: malformed text or a non-mapping top level.
    """
    if fmt == "json":
        return _parse_json(text, source)
    if fmt == "yaml":
        return _parse_yaml(text, source)
    if fmt != "auto":
        raise ValueError(f"Unsupported document format '{fmt}'.")
    try:
        return _parse_json(text, source)
    except SchemaParseError:
        return _parse_yaml(text, source)


def load_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema document from disk, dispatching on the file extension.

    Raises:
        SchemaParseError: missing / unreadable file or malformed content.
    """
    path = Path(path)
    if not path.exists():
        raise SchemaParseError(f"Schema file not found: {path}")
    if not path.is_file():
        raise SchemaParseError(f"Schema path is not a file: {path}")

    try:
        text: str = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SchemaParseError(f"Cannot read schema file: {exc}", str(path)) from exc

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return parse_text(text, "yaml", str(path))
    if suffix == ".json":
        return parse_text(text, "json", str(path))
    logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
    return parse_text(text, "auto", str(path))


# ---------------------------------------------------------------------------
# Schema construction
# ---------------------------------------------------------------------------


def build_schema(
    core: Mapping[str, Any],
    resolver: Optional[TypeResolver] = None,
    name: Optional[str] = None,
) -> Schema:
    """
    Construct a ``Schema`` from a core document.

    Raises:
        SchemaConstructionError: structural problems (zero fields, duplicates, ...).
        UnknownTypeError: a field type does not resolve (only with ``resolver``).
    """
    schema: Schema = Schema.from_dict(core, name)
    if resolver is None:
        return schema

    fields: Dict[str, Field] = {}
    changed: bool = False
    for field_name, fld in schema.fields.items():
        canonical: Optional[str] = resolver.canonical(fld.type)
        if canonical is None:
            raise UnknownTypeError(fld.type, field_name)
        if canonical != fld.type:
            logger.debug("Field '%s': type '%s' -> '%s'.", field_name, fld.type, canonical)
            changed = True
        fields[field_name] = fld.with_type(canonical)

    if changed:
        schema = schema.model_copy(update={"fields": fields})
    logger.info(
        "Built schema %s (%d fields, %d relationships).",
        schema.name,
        len(schema.fields),
        len(schema.relationships),
    )
    return schema


def dump_schema(schema: Schema, fmt: str = "yaml") -> str:
    """Serialise ``schema`` back into its flat document form."""
    document: Dict[str, Any] = schema.to_dict()
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False)
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True, default_flow_style=False)
    raise ValueError(f"Unsupported document format '{fmt}'.")


__all__: List[str] = ["FORMATS", "parse_text", "load_file", "build_schema", "dump_schema"]

logger.debug("modelschema.loader loaded, %d public symbols.", len(__all__))

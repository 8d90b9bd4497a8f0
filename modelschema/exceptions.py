# File: modelschema/exceptions.py
"""
ModelSchema - Exception Hierarchy
==================================

Everything the pipeline *raises* lives here.  Problems that are reported
as data (attribute validation messages, structural validation issues,
per-generator failures inside a batch) are deliberately absent: those
travel through ``FieldRules.errors``, ``ValidationResult`` and
``GenerationOutcome`` instead.

    ModelSchemaError
    ├── SchemaParseError          (also a ValueError)
    ├── SchemaConstructionError   (also a ValueError)
    │   └── UnknownTypeError
    ├── DuplicateTypeError
    ├── PluginDependencyError
    ├── PluginLoadError
    └── UnknownGeneratorError     (also a KeyError)
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

logger: logging.Logger = logging.getLogger("modelschema.exceptions")


class ModelSchemaError(Exception):
    """Base class for every error raised by the modelschema package."""


class SchemaParseError(ModelSchemaError, ValueError):
    """The input document could not be read or decoded into a mapping."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        self.source: Optional[str] = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)


class SchemaConstructionError(ModelSchemaError, ValueError):
    """A parsed document does not describe a constructible Schema."""

    def __init__(self, message: str, problems: Optional[Sequence[str]] = None) -> None:
        self.problems: List[str] = list(problems or [])
        super().__init__(message)


class UnknownTypeError(SchemaConstructionError):
    """A field type resolves to neither a plugin nor a built-in type."""

    def __init__(self, type_id: str, field_name: Optional[str] = None) -> None:
        self.type_id: str = type_id
        self.field_name: Optional[str] = field_name
        where: str = f" in field '{field_name}'" if field_name else ""
        super().__init__(f"Unknown field type '{type_id}'{where}.")


class DuplicateTypeError(ModelSchemaError):
    """A plugin type identifier or alias is already registered."""

    def __init__(self, identifier: str, owner: str) -> None:
        self.identifier: str = identifier
        self.owner: str = owner
        super().__init__(
            f"Type identifier '{identifier}' is already registered by {owner}."
        )


class PluginDependencyError(ModelSchemaError):
    """A plugin depends on field types that are not available."""

    def __init__(self, type_id: str, missing: Sequence[str]) -> None:
        self.type_id: str = type_id
        self.missing: List[str] = list(missing)
        super().__init__(
            f"Plugin '{type_id}' has unresolved dependencies: {', '.join(self.missing)}."
        )


class PluginLoadError(ModelSchemaError):
    """A plugin module or class could not be imported or instantiated."""


class UnknownGeneratorError(ModelSchemaError, KeyError):
    """No generator is registered under the requested name."""

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name: str = name
        self.available: List[str] = list(available)
        super().__init__(name)

    def __str__(self) -> str:
        hint: str = ""
        if self.available:
            hint = f" Available: {', '.join(self.available)}."
        return f"Unknown generator '{self.name}'.{hint}"


__all__: List[str] = [
    "ModelSchemaError",
    "SchemaParseError",
    "SchemaConstructionError",
    "UnknownTypeError",
    "DuplicateTypeError",
    "PluginDependencyError",
    "PluginLoadError",
    "UnknownGeneratorError",
]

# File: modelschema/fragments.py
"""
ModelSchema - Fragments & Generator Contract
=============================================
A ``Fragment`` is one generator's output for one schema::

    {"<generator name>": {...structured data...}}

It is stored as two serialisations (JSON and YAML) that decode to the same
tree.  The tree itself is rebuilt from the JSON text on every access, so
callers can never mutate a Fragment they were handed.  Run metadata
(generator, model, table, ``generated_at`` timestamp, options) lives next
to the tree, never inside it: two runs over the same input produce
byte-identical ``json`` / ``yaml`` text.

``BaseGenerator`` is the contract every concrete generator implements:
subclasses declare ``name`` / ``options_class`` and implement ``build``.
"""

from __future__ import annotations

import abc
import json
import logging
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

import yaml

from modelschema.config import GenerationSettings, GeneratorOptions
from modelschema.exceptions import SchemaParseError
from modelschema.models import Schema
from modelschema.resolver import TypeResolver
from modelschema.validation import AutoValidationService

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.fragments")


# ---------------------------------------------------------------------------
# Fragment
# ---------------------------------------------------------------------------


class Fragment:
    """Immutable generator output with interchangeable JSON / YAML forms."""

    __slots__ = ("name", "_json", "_yaml", "_metadata")

    def __init__(
        self,
        name: str,
        body: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
        json_indent: int = 2,
        yaml_indent: int = 2,
    ) -> None:
        self.name: str = name
        # Normalised through JSON so both forms see identical scalars and keys.
        tree: Dict[str, Any] = json.loads(json.dumps({name: body}, default=str))
        self._json: str = json.dumps(tree, indent=json_indent, ensure_ascii=False)
        self._yaml: str = yaml.safe_dump(
            tree,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            indent=yaml_indent,
        )
        self._metadata: Dict[str, Any] = json.loads(json.dumps(dict(metadata or {}), default=str))

    # -- Views --------------------------------------------------------------

    @property
    def tree(self) -> Dict[str, Any]:
        """Fresh copy of ``{name: body}``."""
        return json.loads(self._json)

    @property
    def body(self) -> Dict[str, Any]:
        return self.tree[self.name]

    @property
    def json(self) -> str:
        return self._json

    @property
    def yaml(self) -> str:
        return self._yaml

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)

    def text(self, fmt: str = "json") -> str:
        if fmt == "json":
            return self._json
        if fmt == "yaml":
            return self._yaml
        raise ValueError(f"Unsupported fragment format '{fmt}' (expected json or yaml).")

    def to_dict(self) -> Dict[str, Any]:
        return {"fragment": self.tree, "metadata": self.metadata}

    # -- Decoding -----------------------------------------------------------

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any], metadata: Optional[Mapping[str, Any]] = None) -> "Fragment":
        if not isinstance(tree, Mapping) or len(tree) != 1:
            raise SchemaParseError("A fragment document must be a mapping with exactly one key.")
        name, body = next(iter(tree.items()))
        if not isinstance(body, Mapping):
            raise SchemaParseError(f"Fragment '{name}' body must be a mapping.")
        return cls(str(name), body, metadata)

    @classmethod
    def from_json(cls, text: str, metadata: Optional[Mapping[str, Any]] = None) -> "Fragment":
        try:
            tree: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaParseError(f"Invalid fragment JSON: {exc}") from exc
        return cls.from_tree(tree, metadata)

    @classmethod
    def from_yaml(cls, text: str, metadata: Optional[Mapping[str, Any]] = None) -> "Fragment":
        try:
            tree: Any = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaParseError(f"Invalid fragment YAML: {exc}") from exc
        return cls.from_tree(tree, metadata)

    # -- Dunder -------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fragment):
            return NotImplemented
        return self.name == other.name and self._json == other._json

    def __hash__(self) -> int:
        return hash((self.name, self._json))

    def __repr__(self) -> str:
        return f"<Fragment {self.name} {len(self._json)} chars>"


# ---------------------------------------------------------------------------
# Generator contract
# ---------------------------------------------------------------------------


class BaseGenerator(abc.ABC):
    """
    Contract for a generator.

    ``generate`` is pure over ``(schema, options)`` apart from the
    ``generated_at`` metadata entry.  Generators read the schema and the
    rule service; they never mutate either.
    """

    name: ClassVar[str] = ""
    aliases: ClassVar[Tuple[str, ...]] = ()
    description: ClassVar[str] = ""
    options_class: ClassVar[Type[GeneratorOptions]] = GeneratorOptions

    def __init__(
        self,
        validation: Optional[AutoValidationService] = None,
        settings: Optional[GenerationSettings] = None,
    ) -> None:
        if validation is None:
            validation = AutoValidationService(settings=settings)
        self.validation: AutoValidationService = validation
        self.settings: GenerationSettings = settings or validation.settings

    @property
    def resolver(self) -> TypeResolver:
        return self.validation.resolver

    def generate(self, schema: Schema, options: Any = None) -> Fragment:
        opts: GeneratorOptions = self.options_class.from_options(options)
        logger.debug("Generator '%s' building fragment for %s.", self.name, schema.name)
        body: Dict[str, Any] = self.build(schema, opts)
        return Fragment(
            self.name,
            body,
            metadata=self._metadata(schema, opts),
            json_indent=self.settings.json_indent,
            yaml_indent=self.settings.yaml_indent,
        )

    @abc.abstractmethod
    def build(self, schema: Schema, options: Any) -> Dict[str, Any]:
        """Structured fragment body for ``schema``."""

    def _metadata(self, schema: Schema, options: GeneratorOptions) -> Dict[str, Any]:
        return {
            "generator": self.name,
            "model_name": schema.name,
            "table_name": schema.table,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "options": options.model_dump(mode="json"),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


__all__: List[str] = ["Fragment", "BaseGenerator"]

logger.debug("modelschema.fragments loaded, %d public symbols.", len(__all__))

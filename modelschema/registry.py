# File: modelschema/registry.py
"""
ModelSchema - Built-in Field Type Registry
===========================================
Static lookup from a built-in type identifier (or one of its aliases) to a
``BaseTypeDescriptor``: default validation rules, storage mapping, cast,
API wire type and synthetic-value hints.

The registry is read-only.  Extension types are contributed through the
``PluginManager`` (see ``plugins.py``), which consults this registry only
to refuse identifiers that would shadow a built-in.

Rule templates may contain two placeholders resolved per field:

    {table}   foreign-key target table (``references.table`` attribute,
              else the plural of the field name minus ``_id``)
    {values}  comma-joined ``values`` attribute (enum types)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from modelschema.exceptions import UnknownTypeError
from modelschema.models import Field
from modelschema.utils import to_plural

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.registry")


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StorageMapping:
    """How a type is persisted: migration method, abstract primitive, defaults."""

    method: str
    primitive: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    unsigned: bool = False


@dataclass(frozen=True, slots=True)
class BaseTypeDescriptor:
    """Default behaviour bundle of one built-in type."""

    type_id: str
    category: str
    base_rules: Tuple[str, ...]
    storage: StorageMapping
    cast: Optional[str] = None
    api_type: str = "string"
    api_format: Optional[str] = None
    faker: str = "fake()->word()"
    sample: Any = None
    aliases: Tuple[str, ...] = ()

    def rules_for(self, field: Field) -> List[str]:
        """Base rules with placeholders resolved against ``field``."""
        return [resolve_rule_placeholders(rule, field) for rule in self.base_rules]

    def cast_for(self, field: Field) -> Optional[str]:
        if self.cast and "{scale}" in self.cast:
            return self.cast.replace("{scale}", str(field.scale if field.scale is not None else 2))
        return self.cast

    def faker_for(self, field: Field) -> str:
        return resolve_rule_placeholders(self.faker, field, quote_values=True)

    def sample_for(self, field: Field) -> Any:
        if self.sample is None:
            values: List[str] = enum_values(field)
            return values[0] if values else f"Sample {field.name}"
        if isinstance(self.sample, str):
            return self.sample.replace("{name}", field.name)
        return self.sample


# ---------------------------------------------------------------------------
# Placeholder helpers
# ---------------------------------------------------------------------------


def foreign_table(field: Field) -> str:
    """Target table of a foreign-key field."""
    references: Any = field.attributes.get("references")
    if isinstance(references, dict) and references.get("table"):
        return str(references["table"])
    if isinstance(references, str) and references:
        return references
    if field.name.endswith("_id") and len(field.name) > 3:
        return to_plural(field.name[:-3])
    return "unknown_table"


def enum_values(field: Field) -> List[str]:
    values: Any = field.attributes.get("values", field.attributes.get("options"))
    if isinstance(values, (list, tuple)):
        return [str(v) for v in values]
    return []


def resolve_rule_placeholders(template: str, field: Field, quote_values: bool = False) -> str:
    if "{table}" in template:
        template = template.replace("{table}", foreign_table(field))
    if "{values}" in template:
        values: List[str] = enum_values(field)
        joined: str = ", ".join(f"'{v}'" for v in values) if quote_values else ",".join(values)
        template = template.replace("{values}", joined)
    return template


# ---------------------------------------------------------------------------
# Built-in table
# ---------------------------------------------------------------------------


def _d(
    type_id: str,
    category: str,
    rules: Sequence[str],
    storage: StorageMapping,
    *,
    cast: Optional[str] = None,
    api_type: str = "string",
    api_format: Optional[str] = None,
    faker: str = "fake()->word()",
    sample: Any = None,
    aliases: Sequence[str] = (),
) -> BaseTypeDescriptor:
    return BaseTypeDescriptor(
        type_id=type_id,
        category=category,
        base_rules=tuple(rules),
        storage=storage,
        cast=cast,
        api_type=api_type,
        api_format=api_format,
        faker=faker,
        sample=sample,
        aliases=tuple(aliases),
    )


_BUILTIN_TYPES: Tuple[BaseTypeDescriptor, ...] = (
    # String family
    _d("string", "string", ["string"], StorageMapping("string", "varchar", length=255),
       faker="fake()->sentence()", sample="Sample {name}", aliases=["varchar", "char"]),
    _d("text", "string", ["string"], StorageMapping("text", "text"),
       faker="fake()->paragraph()", sample="Sample {name} content"),
    _d("mediumText", "string", ["string"], StorageMapping("mediumText", "text"),
       faker="fake()->paragraph()", sample="Sample {name} content", aliases=["mediumtext"]),
    _d("longText", "string", ["string"], StorageMapping("longText", "text"),
       faker="fake()->paragraphs(3, true)", sample="Sample {name} content", aliases=["longtext"]),
    _d("email", "string", ["email"], StorageMapping("string", "varchar", length=255),
       api_format="email", faker="fake()->safeEmail()", sample="sample@example.com",
       aliases=["email_address"]),
    _d("binary", "binary", ["string"], StorageMapping("binary", "blob"),
       faker="fake()->sha256()", sample="Sample {name}", aliases=["blob"]),
    # Integer family
    _d("integer", "integer", ["integer"], StorageMapping("integer", "int32"),
       cast="integer", api_type="integer", faker="fake()->numberBetween(1, 1000)", sample=1,
       aliases=["int"]),
    _d("tinyInteger", "integer", ["integer"], StorageMapping("tinyInteger", "int8"),
       cast="integer", api_type="integer", faker="fake()->numberBetween(0, 127)", sample=1,
       aliases=["tinyint"]),
    _d("smallInteger", "integer", ["integer"], StorageMapping("smallInteger", "int16"),
       cast="integer", api_type="integer", faker="fake()->numberBetween(1, 1000)", sample=1,
       aliases=["smallint"]),
    _d("mediumInteger", "integer", ["integer"], StorageMapping("mediumInteger", "int24"),
       cast="integer", api_type="integer", faker="fake()->numberBetween(1, 1000)", sample=1,
       aliases=["mediumint"]),
    _d("bigInteger", "integer", ["integer"], StorageMapping("bigInteger", "int64"),
       cast="integer", api_type="integer", faker="fake()->numberBetween(1, 1000)", sample=1,
       aliases=["bigint", "long"]),
    _d("unsignedBigInteger", "integer", ["integer", "min:0"],
       StorageMapping("unsignedBigInteger", "uint64", unsigned=True),
       cast="integer", api_type="integer", faker="fake()->numberBetween(0, 1000)", sample=1,
       aliases=["unsigned_big_integer", "unsigned_bigint"]),
    # Numeric family
    _d("decimal", "numeric", ["numeric"], StorageMapping("decimal", "decimal", precision=8, scale=2),
       cast="decimal:{scale}", api_type="float", api_format="decimal",
       faker="fake()->randomFloat(2, 0, 1000)", sample=10.5, aliases=["numeric", "money"]),
    _d("float", "numeric", ["numeric"], StorageMapping("float", "float"),
       cast="float", api_type="float", faker="fake()->randomFloat(2, 0, 1000)", sample=10.5,
       aliases=["real"]),
    _d("double", "numeric", ["numeric"], StorageMapping("double", "double"),
       cast="float", api_type="float", faker="fake()->randomFloat(2, 0, 1000)", sample=10.5,
       aliases=["double_precision"]),
    _d("boolean", "boolean", ["boolean"], StorageMapping("boolean", "boolean"),
       cast="boolean", api_type="boolean", faker="fake()->boolean()", sample=True,
       aliases=["bool"]),
    # Temporal family
    _d("date", "temporal", ["date"], StorageMapping("date", "date"),
       cast="date", api_format="date", faker="fake()->date()", sample="2024-01-01"),
    _d("datetime", "temporal", ["date"], StorageMapping("dateTime", "datetime"),
       cast="datetime", api_format="datetime", faker="fake()->dateTime()",
       sample="2024-01-01 00:00:00", aliases=["dateTime", "date_time"]),
    _d("timestamp", "temporal", ["date"], StorageMapping("timestamp", "datetime"),
       cast="datetime", api_format="datetime", faker="fake()->dateTime()",
       sample="2024-01-01 00:00:00"),
    _d("time", "temporal", ["date_format:H:i:s"], StorageMapping("time", "time"),
       api_format="time", faker="fake()->time()", sample="12:00:00"),
    # Structured
    _d("json", "structured", ["json"], StorageMapping("json", "json"),
       cast="array", api_type="array", api_format="json",
       faker="fake()->randomElement([[], ['key' => 'value']])", sample={"sample": "data"},
       aliases=["jsonb"]),
    _d("uuid", "identifier", ["uuid"], StorageMapping("uuid", "uuid"),
       cast="string", api_format="uuid", faker="fake()->uuid()",
       sample="123e4567-e89b-12d3-a456-426614174000", aliases=["guid"]),
    _d("enum", "choice", ["string", "in:{values}"], StorageMapping("enum", "enum"),
       faker="fake()->randomElement([{values}])", aliases=["enumeration"]),
    _d("set", "choice", ["array"], StorageMapping("set", "set"),
       cast="array", api_type="array", faker="fake()->randomElements([{values}])",
       sample=[], aliases=["multi_select", "multiple_choice"]),
    # Relational
    _d("foreignId", "relation", ["integer", "exists:{table},id"],
       StorageMapping("foreignId", "uint64", unsigned=True),
       cast="integer", api_type="integer", faker="fake()->numberBetween(1, 100)", sample=1,
       aliases=["foreign_id", "fk"]),
    _d("morphs", "relation", ["string"], StorageMapping("morphs", "morphs"),
       faker="fake()->word()", sample="Sample {name}", aliases=["polymorphic"]),
    # Spatial
    _d("point", "spatial", ["string"], StorageMapping("point", "spatial"),
       faker="fake()->latitude() . ',' . fake()->longitude()", sample="0,0"),
    _d("geometry", "spatial", ["string"], StorageMapping("geometry", "spatial"),
       sample="POINT(0 0)"),
    _d("polygon", "spatial", ["string"], StorageMapping("polygon", "spatial"),
       sample="POLYGON((0 0, 1 0, 1 1, 0 0))"),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TypeRegistry:
    """
    Read-only lookup of built-in field types.

    Lookup is case-sensitive on canonical ids (``bigInteger``) and falls
    back to a case-insensitive alias match (``BIGINT`` → ``bigInteger``).
    """

    __slots__ = ("_types", "_aliases", "_folded")

    def __init__(self, descriptors: Sequence[BaseTypeDescriptor] = _BUILTIN_TYPES) -> None:
        self._types: Dict[str, BaseTypeDescriptor] = {}
        self._aliases: Dict[str, str] = {}
        self._folded: Dict[str, str] = {}
        for desc in descriptors:
            self._types[desc.type_id] = desc
            self._folded.setdefault(desc.type_id.lower(), desc.type_id)
            for alias in desc.aliases:
                self._aliases[alias] = desc.type_id
                self._folded.setdefault(alias.lower(), desc.type_id)
        logger.debug(
            "TypeRegistry built with %d types and %d aliases.",
            len(self._types),
            len(self._aliases),
        )

    # -- Lookup -------------------------------------------------------------

    def canonical(self, type_id: str) -> Optional[str]:
        """Canonical id for ``type_id`` or one of its aliases, else None."""
        if type_id in self._types:
            return type_id
        if type_id in self._aliases:
            return self._aliases[type_id]
        return self._folded.get(type_id.lower())

    def get(self, type_id: str) -> Optional[BaseTypeDescriptor]:
        canonical: Optional[str] = self.canonical(type_id)
        return self._types[canonical] if canonical else None

    def resolve(self, type_id: str) -> BaseTypeDescriptor:
        """
        Return the descriptor for ``type_id``.

        Raises:
            UnknownTypeError: when neither an id nor an alias matches.
        """
        desc: Optional[BaseTypeDescriptor] = self.get(type_id)
        if desc is None:
            raise UnknownTypeError(type_id)
        return desc

    def has(self, type_id: str) -> bool:
        return self.canonical(type_id) is not None

    def owner_of(self, identifier: str) -> Optional[str]:
        """Built-in id that already claims ``identifier`` (exact or alias)."""
        if identifier in self._types:
            return identifier
        if identifier in self._aliases:
            return self._aliases[identifier]
        return self._folded.get(identifier.lower())

    # -- Introspection ------------------------------------------------------

    def type_ids(self) -> List[str]:
        return list(self._types)

    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    def by_category(self, category: str) -> List[str]:
        return [t for t, d in self._types.items() if d.category == category]

    def __contains__(self, type_id: object) -> bool:
        return isinstance(type_id, str) and self.has(type_id)

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"<TypeRegistry types={len(self._types)} aliases={len(self._aliases)}>"


__all__: List[str] = [
    "StorageMapping",
    "BaseTypeDescriptor",
    "TypeRegistry",
    "foreign_table",
    "enum_values",
    "resolve_rule_placeholders",
]

logger.debug("modelschema.registry loaded, %d public symbols.", len(__all__))

# File: modelschema/models.py
"""
ModelSchema - Core Data Models
===============================
Pydantic V2 value objects for the entity description that every other
module consumes: ``Field``, ``Relationship`` and ``Schema``.

All three are frozen after construction.  They know nothing about type
resolution, plugins or generation; the ``loader`` module wires them to a
``TypeResolver`` when a document is turned into a Schema.

Document form accepted by the ``from_dict`` constructors::

    model: Post
    table: posts
    fields:
      title:   {type: string, length: 255}
      email:   {type: email, unique: true}
      status:  {type: enum, values: [draft, published]}
    relationships:
      author:  {type: belongsTo, model: User}
      tags:    {type: belongsToMany, model: Tag, pivot_table: post_tag}
    options:
      timestamps: true
      soft_deletes: false
"""

from __future__ import annotations

import copy
import logging
import re
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from pydantic import ValidationError, field_validator, model_validator

from modelschema.exceptions import SchemaConstructionError
from modelschema.utils import model_to_table, to_plural, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RelationshipKind(str, Enum):
    """Closed set of relationship kinds."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    HAS_ONE_THROUGH = "hasOneThrough"
    HAS_MANY_THROUGH = "hasManyThrough"
    MORPH_TO = "morphTo"
    MORPH_ONE = "morphOne"
    MORPH_MANY = "morphMany"
    MORPH_TO_MANY = "morphToMany"

    @classmethod
    def parse(cls, value: Any) -> "RelationshipKind":
        """
        Accept the canonical camelCase spelling as well as snake/dashed
        spellings and cardinality synonyms (``many_to_many`` etc.).
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Relationship kind must be a non-empty string, got {value!r}.")
        key: str = re.sub(r"[^a-z]", "", value.lower())
        kind: Optional[RelationshipKind] = _KIND_SYNONYMS.get(key)
        if kind is None:
            allowed: str = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown relationship kind '{value}'. Allowed: {allowed}.")
        return kind

    @property
    def is_many(self) -> bool:
        return self in _MANY_KINDS

    @property
    def is_polymorphic(self) -> bool:
        return self in _POLYMORPHIC_KINDS

    @property
    def is_through(self) -> bool:
        return self in (RelationshipKind.HAS_ONE_THROUGH, RelationshipKind.HAS_MANY_THROUGH)

    @property
    def uses_pivot(self) -> bool:
        return self in (RelationshipKind.BELONGS_TO_MANY, RelationshipKind.MORPH_TO_MANY)


_KIND_SYNONYMS: Dict[str, RelationshipKind] = {
    "belongsto": RelationshipKind.BELONGS_TO,
    "belongstoone": RelationshipKind.BELONGS_TO,
    "manytoone": RelationshipKind.BELONGS_TO,
    "hasone": RelationshipKind.HAS_ONE,
    "onetoone": RelationshipKind.HAS_ONE,
    "hasmany": RelationshipKind.HAS_MANY,
    "onetomany": RelationshipKind.HAS_MANY,
    "belongstomany": RelationshipKind.BELONGS_TO_MANY,
    "manytomany": RelationshipKind.BELONGS_TO_MANY,
    "hasonethrough": RelationshipKind.HAS_ONE_THROUGH,
    "hasmanythrough": RelationshipKind.HAS_MANY_THROUGH,
    "morphto": RelationshipKind.MORPH_TO,
    "morphone": RelationshipKind.MORPH_ONE,
    "morphmany": RelationshipKind.MORPH_MANY,
    "morphtomany": RelationshipKind.MORPH_TO_MANY,
}

_MANY_KINDS: FrozenSet[RelationshipKind] = frozenset(
    {
        RelationshipKind.HAS_MANY,
        RelationshipKind.BELONGS_TO_MANY,
        RelationshipKind.HAS_MANY_THROUGH,
        RelationshipKind.MORPH_MANY,
        RelationshipKind.MORPH_TO_MANY,
    }
)

_POLYMORPHIC_KINDS: FrozenSet[RelationshipKind] = frozenset(
    {
        RelationshipKind.MORPH_TO,
        RelationshipKind.MORPH_ONE,
        RelationshipKind.MORPH_MANY,
        RelationshipKind.MORPH_TO_MANY,
    }
)

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)

# Field-document keys that map onto Field attributes rather than the bag
_FIELD_DOCUMENT_KEYS: FrozenSet[str] = frozenset(
    {
        "type", "nullable", "unique", "index", "default", "length",
        "precision", "scale", "comment", "attributes", "rules", "validation",
        "explicit_rules",
    }
)

# Standard attributes that may also be written inside ``attributes``
_LIFTABLE_ATTRIBUTES: Tuple[str, ...] = ("unique", "index", "length", "precision", "scale")

# Columns managed by the framework, never mass-assignable
_GUARDED_COLUMNS: FrozenSet[str] = frozenset({"id", "created_at", "updated_at", "deleted_at"})


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------


class Field(BaseModel):
    """
    A single entity attribute.

    ``type`` is kept as written; resolving it against the plugin manager
    and the built-in registry is the ``TypeResolver``'s job.  ``attributes``
    is an open bag holding standard extras (``references``, ``values``) as
    well as plugin custom attributes.

    Freezing is shallow: container members are private deep copies of
    the input and must be treated as read-only.
    """

    model_config = _SHARED_CONFIG

    name: str = PydanticField(..., min_length=1, description="Field identifier.")
    type: str = PydanticField(default="string", min_length=1, description="Type id or alias.")
    nullable: bool = PydanticField(default=False, description="Whether NULL is accepted.")
    unique: bool = PydanticField(default=False, description="Uniqueness constraint.")
    index: bool = PydanticField(default=False, description="Single-column index.")
    default: Any = PydanticField(default=None, description="Default value.")
    length: Optional[int] = PydanticField(default=None, ge=1, description="Max length.")
    precision: Optional[int] = PydanticField(default=None, ge=1, description="Numeric precision.")
    scale: Optional[int] = PydanticField(default=None, ge=0, description="Numeric scale.")
    comment: Optional[str] = PydanticField(default=None, description="Column comment.")
    attributes: Dict[str, Any] = PydanticField(
        default_factory=dict, description="Open attribute bag (standard + custom)."
    )
    explicit_rules: Optional[List[str]] = PydanticField(
        default=None,
        alias="rules",
        description="Caller-supplied validation rules; overrides derivation.",
    )

    @model_validator(mode="before")
    @classmethod
    def _lift_standard_attributes(cls, data: Any) -> Any:
        """``attributes: {unique: true}`` is equivalent to ``unique: true``."""
        if not isinstance(data, dict):
            return data
        attributes: Any = data.get("attributes")
        if not isinstance(attributes, dict):
            return data
        if not any(key in attributes for key in _LIFTABLE_ATTRIBUTES):
            return data
        data = dict(data)
        bag: Dict[str, Any] = dict(attributes)
        for key in _LIFTABLE_ATTRIBUTES:
            if key in bag and data.get(key) is None:
                data[key] = bag.pop(key)
        data["attributes"] = bag
        return data

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field name must not be blank.")
        return v

    @field_validator("attributes", "explicit_rules", "default")
    @classmethod
    def _detach(cls, v: Any) -> Any:
        return copy.deepcopy(v)

    @model_validator(mode="after")
    def _check_numeric_layout(self) -> "Field":
        if self.precision is not None and self.scale is not None and self.scale > self.precision:
            raise ValueError(
                f"Field '{self.name}': scale ({self.scale}) exceeds precision ({self.precision})."
            )
        return self

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_dict(cls, name: str, config: Any) -> "Field":
        """
        Build a Field from its document form.

        ``config`` may be a mapping or a bare type string (``email: email``).
        Unknown keys are folded into ``attributes``.
        """
        if config is None:
            config = {}
        elif isinstance(config, str):
            config = {"type": config}
        elif not isinstance(config, Mapping):
            raise SchemaConstructionError(
                f"Field '{name}' must be a mapping or a type string, got {type(config).__name__}."
            )

        attributes: Dict[str, Any] = dict(config.get("attributes") or {})
        for key, value in config.items():
            if key not in _FIELD_DOCUMENT_KEYS and key != "name":
                attributes[key] = value

        data: Dict[str, Any] = {
            "name": name,
            "attributes": attributes,
        }
        for key in ("type", "nullable", "unique", "index", "length", "precision", "scale", "comment"):
            if key in config and config[key] is not None:
                data[key] = config[key]
        if "default" in config:
            data["default"] = config["default"]

        rules: Any = config.get("rules", config.get("validation", config.get("explicit_rules")))
        if rules is not None:
            data["rules"] = _normalise_rule_list(rules)

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SchemaConstructionError(f"Invalid field '{name}': {exc}") from exc

    # -- Derived helpers ----------------------------------------------------

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    @property
    def is_unique(self) -> bool:
        return self.unique

    def with_type(self, type_id: str) -> "Field":
        """Copy of this field with ``type`` replaced (used to canonicalise aliases)."""
        if type_id == self.type:
            return self
        return self.model_copy(update={"type": type_id})

    def with_rules(self, rules: Iterable[str]) -> "Field":
        return self.model_copy(update={"explicit_rules": list(rules)})

    def to_dict(self) -> Dict[str, Any]:
        """Re-emit the document form (without the ``name`` key)."""
        out: Dict[str, Any] = {"type": self.type}
        if self.nullable:
            out["nullable"] = True
        if self.unique:
            out["unique"] = True
        if self.index:
            out["index"] = True
        if self.has_default:
            out["default"] = self.default
        for key in ("length", "precision", "scale", "comment"):
            value: Any = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.explicit_rules is not None:
            out["rules"] = list(self.explicit_rules)
        if self.attributes:
            out["attributes"] = dict(self.attributes)
        return out

    def __repr__(self) -> str:
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        return f"<Field {self.name} {self.type}{null_flag}>"


def _normalise_rule_list(rules: Any) -> List[str]:
    """Accept ``"required|email"`` or a list of rule strings."""
    if isinstance(rules, str):
        return [r.strip() for r in rules.split("|") if r.strip()]
    if isinstance(rules, (list, tuple)):
        return [str(r) for r in rules]
    raise SchemaConstructionError(f"Validation rules must be a list or a '|' string, got {rules!r}.")


# ---------------------------------------------------------------------------
# Relationship
# ---------------------------------------------------------------------------


class Relationship(BaseModel):
    """
    A link from the schema's entity to another entity.

    Referential existence of ``target`` is never checked; the related
    entity may be described elsewhere or not at all.
    """

    model_config = _SHARED_CONFIG

    name: str = PydanticField(..., min_length=1, description="Relationship (method) name.")
    kind: RelationshipKind = PydanticField(
        default=RelationshipKind.BELONGS_TO, alias="type", description="Relationship kind."
    )
    target: str = PydanticField(default="", alias="model", description="Related entity.")
    foreign_key: Optional[str] = PydanticField(default=None, description="Foreign key column.")
    local_key: Optional[str] = PydanticField(default=None, description="Local key column.")
    pivot_table: Optional[str] = PydanticField(default=None, description="Pivot table (many-to-many).")
    pivot_fields: List[str] = PydanticField(default_factory=list, description="Extra pivot columns.")
    with_timestamps: bool = PydanticField(default=False, description="Pivot has timestamps.")
    through: Optional[str] = PydanticField(default=None, description="Intermediate entity.")
    morph_name: Optional[str] = PydanticField(default=None, description="Polymorphic name.")
    attributes: Dict[str, Any] = PydanticField(default_factory=dict, description="Extra settings.")

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, v: Any) -> RelationshipKind:
        return RelationshipKind.parse(v)

    @model_validator(mode="after")
    def _check_target(self) -> "Relationship":
        if not self.target and self.kind is not RelationshipKind.MORPH_TO:
            raise ValueError(f"Relationship '{self.name}' ({self.kind.value}) needs a target model.")
        if self.kind.is_through and not self.through:
            raise ValueError(f"Relationship '{self.name}' ({self.kind.value}) needs a 'through' model.")
        return self

    @classmethod
    def from_dict(cls, name: str, config: Any) -> "Relationship":
        """Build a Relationship from its document form (camelCase keys accepted)."""
        if config is None or not isinstance(config, Mapping):
            raise SchemaConstructionError(
                f"Relationship '{name}' must be a mapping, got {type(config).__name__}."
            )
        aliases: Dict[str, str] = {
            "foreignKey": "foreign_key",
            "localKey": "local_key",
            "pivotTable": "pivot_table",
            "pivotFields": "pivot_fields",
            "withTimestamps": "with_timestamps",
            "morphName": "morph_name",
            "kind": "type",
            "target": "model",
        }
        known: FrozenSet[str] = frozenset(
            {
                "type", "model", "foreign_key", "local_key", "pivot_table",
                "pivot_fields", "with_timestamps", "through", "morph_name",
                "attributes",
            }
        )
        data: Dict[str, Any] = {"name": name}
        attributes: Dict[str, Any] = dict(config.get("attributes") or {})
        for key, value in config.items():
            canonical: str = aliases.get(key, key)
            if canonical == "attributes" or key == "name":
                continue
            if canonical in known:
                if value is not None:
                    data[canonical] = value
            else:
                attributes[key] = value
        data["attributes"] = attributes
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SchemaConstructionError(f"Invalid relationship '{name}': {exc}") from exc

    # -- Derived helpers ----------------------------------------------------

    @property
    def target_table(self) -> str:
        return model_to_table(self.target) if self.target else ""

    def resolved_foreign_key(self, owner: str = "") -> str:
        """Foreign key column, defaulted by convention when not given."""
        if self.foreign_key:
            return self.foreign_key
        if self.kind is RelationshipKind.BELONGS_TO:
            return f"{to_snake_case(self.name)}_id"
        if self.kind.is_polymorphic:
            return f"{self.morph_name or to_snake_case(self.name)}_id"
        return f"{to_snake_case(owner)}_id" if owner else "id"

    @property
    def resolved_local_key(self) -> str:
        return self.local_key or "id"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.kind.value}
        if self.target:
            out["model"] = self.target
        for key in ("foreign_key", "local_key", "pivot_table", "through", "morph_name"):
            value: Any = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.pivot_fields:
            out["pivot_fields"] = list(self.pivot_fields)
        if self.with_timestamps:
            out["with_timestamps"] = True
        if self.attributes:
            out["attributes"] = dict(self.attributes)
        return out

    def __repr__(self) -> str:
        return f"<Relationship {self.name} {self.kind.value} -> {self.target or '*'}>"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class SchemaOptions(BaseModel):
    """Storage options; unknown keys are preserved for host packages."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    timestamps: bool = PydanticField(default=True, description="created_at / updated_at columns.")
    soft_deletes: bool = PydanticField(default=False, description="deleted_at column.")
    namespace: str = PydanticField(default="App\\Models", description="Model namespace.")


class Schema(BaseModel):
    """
    The validated, immutable description of one entity.

    ``fields`` keeps insertion order; every generator walks it in that
    order, so it directly drives output ordering.
    Like ``Field``, freezing is shallow; generators read the mappings
    and never write to them.
    """

    model_config = _SHARED_CONFIG

    name: str = PydanticField(..., min_length=1, description="Entity (model) name.")
    table: str = PydanticField(default="", description="Storage identifier.")
    fields: Dict[str, Field] = PydanticField(..., description="Ordered field mapping.")
    relationships: Dict[str, Relationship] = PydanticField(
        default_factory=dict, description="Relationship mapping."
    )
    options: SchemaOptions = PydanticField(default_factory=SchemaOptions)
    metadata: Dict[str, Any] = PydanticField(default_factory=dict, description="Free-form metadata.")

    @field_validator("metadata")
    @classmethod
    def _detach_metadata(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return copy.deepcopy(v)

    @model_validator(mode="before")
    @classmethod
    def _default_table(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("table") and data.get("name"):
            data = dict(data)
            data["table"] = to_snake_case(to_plural(str(data["name"])))
        return data

    @model_validator(mode="after")
    def _check_fields(self) -> "Schema":
        if not self.fields:
            raise ValueError(f"Schema '{self.name}' must have at least one field.")
        for key, fld in self.fields.items():
            if key != fld.name:
                raise ValueError(f"Field key '{key}' does not match field name '{fld.name}'.")
        for key, rel in self.relationships.items():
            if key != rel.name:
                raise ValueError(
                    f"Relationship key '{key}' does not match relationship name '{rel.name}'."
                )
        return self

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_dict(cls, config: Mapping[str, Any], name: Optional[str] = None) -> "Schema":
        """
        Build a Schema from a core document.

        ``fields`` / ``relationships`` may be mappings (name → config) or
        lists of configs carrying a ``name`` key.  ``relations`` is accepted
        as an alias of ``relationships``.

        Raises:
            SchemaConstructionError: for any structural problem.
        """
        model_name: Optional[str] = config.get("model") or config.get("name") or name
        if not model_name or not isinstance(model_name, str):
            raise SchemaConstructionError("Schema document has no model name ('model' or 'name').")

        fields: Dict[str, Field] = {}
        for field_name, field_config in _iter_named(config.get("fields"), "field"):
            if field_name in fields:
                raise SchemaConstructionError(
                    f"Duplicate field '{field_name}' in schema '{model_name}'."
                )
            fields[field_name] = Field.from_dict(field_name, field_config)

        relationships: Dict[str, Relationship] = {}
        raw_relationships: Any = config.get("relationships")
        if raw_relationships is None:
            raw_relationships = config.get("relations")
        for rel_name, rel_config in _iter_named(raw_relationships, "relationship"):
            if rel_name in relationships:
                raise SchemaConstructionError(
                    f"Duplicate relationship '{rel_name}' in schema '{model_name}'."
                )
            relationships[rel_name] = Relationship.from_dict(rel_name, rel_config)

        options: Any = config.get("options") or {}
        metadata: Any = config.get("metadata") or {}
        if not isinstance(options, Mapping) or not isinstance(metadata, Mapping):
            raise SchemaConstructionError(
                f"Schema '{model_name}': 'options' and 'metadata' must be mappings."
            )

        try:
            return cls(
                name=model_name,
                table=config.get("table") or "",
                fields=fields,
                relationships=relationships,
                options=SchemaOptions.model_validate(dict(options)),
                metadata=dict(metadata),
            )
        except ValidationError as exc:
            raise SchemaConstructionError(f"Invalid schema '{model_name}': {exc}") from exc

    # -- Queries ------------------------------------------------------------

    @property
    def model_class(self) -> str:
        return f"{self.options.namespace}\\{self.name}"

    @property
    def has_timestamps(self) -> bool:
        return self.options.timestamps

    @property
    def has_soft_deletes(self) -> bool:
        return self.options.soft_deletes

    def field(self, name: str) -> Optional[Field]:
        return self.fields.get(name)

    def all_fields(self) -> List[Field]:
        """
        Declared fields plus an implicit nullable integer column for every
        belongsTo relationship whose foreign key is not declared.
        """
        result: Dict[str, Field] = dict(self.fields)
        for rel in self.relationships.values():
            if rel.kind is not RelationshipKind.BELONGS_TO:
                continue
            fk: str = rel.resolved_foreign_key(self.name)
            if fk not in result:
                result[fk] = Field(name=fk, type="integer", nullable=True)
        return list(result.values())

    def fillable_fields(self) -> List[Field]:
        return [f for f in self.all_fields() if f.name not in _GUARDED_COLUMNS]

    def relationships_of(self, *kinds: RelationshipKind) -> List[Relationship]:
        return [r for r in self.relationships.values() if r.kind in kinds]

    def to_dict(self) -> Dict[str, Any]:
        """Re-emit the flat document form (round-trips through ``from_dict``)."""
        out: Dict[str, Any] = {
            "model": self.name,
            "table": self.table,
            "fields": {name: f.to_dict() for name, f in self.fields.items()},
        }
        if self.relationships:
            out["relationships"] = {name: r.to_dict() for name, r in self.relationships.items()}
        out["options"] = self.options.model_dump()
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    def __repr__(self) -> str:
        return (
            f"<Schema {self.name} table={self.table} "
            f"fields={len(self.fields)} relationships={len(self.relationships)}>"
        )


def _iter_named(section: Any, label: str) -> List[Tuple[str, Any]]:
    """Normalise a mapping- or list-shaped section into (name, config) pairs."""
    if section is None:
        return []
    if isinstance(section, Mapping):
        return [(str(k), v) for k, v in section.items()]
    if isinstance(section, list):
        pairs: List[Tuple[str, Any]] = []
        for idx, item in enumerate(section):
            if not isinstance(item, Mapping) or not item.get("name"):
                raise SchemaConstructionError(f"{label.capitalize()} #{idx} has no 'name'.")
            config: Dict[str, Any] = {k: v for k, v in item.items() if k != "name"}
            pairs.append((str(item["name"]), config))
        return pairs
    raise SchemaConstructionError(
        f"{label.capitalize()} section must be a mapping or a list, got {type(section).__name__}."
    )


__all__: List[str] = [
    "RelationshipKind",
    "Field",
    "Relationship",
    "SchemaOptions",
    "Schema",
]

logger.debug("modelschema.models loaded, %d public symbols.", len(__all__))

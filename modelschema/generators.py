# File: modelschema/generators.py
"""
ModelSchema - Data-Layer Generators
====================================
Generators whose fragments describe the persistence and transport layer of
one entity:

    model       class name, fillable, casts, hidden, dates, relationships
    migration   one entry per column (resolved storage), indexes, FKs
    requests    store / update validation requests (derived rules)
    resources   API transform: wire types, conditional fields, pagination
    factory     synthetic value generator per fillable column
    seeder      seeding plan, dependencies, optional sample data set

Every generator resolves field types through the shared ``TypeResolver``
(plugin → built-in → fallback) and takes rules from the shared
``AutoValidationService``; none of them touches the Schema.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from modelschema.config import (
    FactoryOptions,
    MigrationOptions,
    ModelOptions,
    RequestOptions,
    ResourceOptions,
    SeederOptions,
)
from modelschema.fragments import BaseGenerator
from modelschema.models import Field, Relationship, RelationshipKind, Schema
from modelschema.registry import enum_values, foreign_table
from modelschema.resolver import SOURCE_FALLBACK, ResolvedType
from modelschema.utils import class_basename, to_pascal_case
from modelschema.validation import RuleContext, RuleSet

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.generators")

HIDDEN_FIELDS: Tuple[str, ...] = ("password", "remember_token")
TIMESTAMP_FIELDS: Tuple[str, ...] = ("created_at", "updated_at")

# Resolved type ids the collection resource may filter / sort on
_FILTERABLE_TYPES: Tuple[str, ...] = ("string", "integer", "boolean", "date", "datetime")
_SORTABLE_TYPES: Tuple[str, ...] = ("string", "integer", "date", "datetime")

# Ordered name-substring → faker overrides for string-like columns
_NAME_FAKERS: Tuple[Tuple[str, str], ...] = (
    ("email", "fake()->safeEmail()"),
    ("url", "fake()->url()"),
    ("slug", "fake()->slug()"),
    ("phone", "fake()->phoneNumber()"),
    ("address", "fake()->address()"),
    ("title", "fake()->sentence(3)"),
    ("description", "fake()->paragraph()"),
    ("name", "fake()->name()"),
)


def describe_relationship(rel: Relationship, owner: str) -> Dict[str, Any]:
    """Common relationship entry (method name, kind, related model, keys)."""
    return {
        "name": rel.name,
        "type": rel.kind.value,
        "model": rel.target or None,
        "foreign_key": rel.resolved_foreign_key(owner),
        "local_key": rel.resolved_local_key,
        "pivot_table": rel.pivot_table,
    }


def _belongs_to_keys(schema: Schema) -> Dict[str, Relationship]:
    return {
        rel.resolved_foreign_key(schema.name): rel
        for rel in schema.relationships_of(RelationshipKind.BELONGS_TO)
    }


# ---------------------------------------------------------------------------
# model
# ---------------------------------------------------------------------------


class ModelGenerator(BaseGenerator):
    name = "model"
    aliases = ("models",)
    description = "Model class description: fillable, casts, hidden, dates, relationships."
    options_class = ModelOptions

    def build(self, schema: Schema, options: ModelOptions) -> Dict[str, Any]:
        namespace: str = options.model_namespace or schema.options.namespace
        fields: List[Field] = schema.all_fields()
        names: List[str] = [f.name for f in fields]

        casts: Dict[str, str] = {}
        dates: List[str] = []
        for fld in fields:
            resolved: ResolvedType = self.resolver.for_field(fld)
            cast: Optional[str] = resolved.cast(fld)
            if cast:
                casts[fld.name] = cast
            if resolved.category == "temporal":
                dates.append(fld.name)
        if schema.has_timestamps:
            dates += [c for c in TIMESTAMP_FIELDS if c not in dates]
        if schema.has_soft_deletes and "deleted_at" not in dates:
            dates.append("deleted_at")

        rules: RuleSet = self.validation.rules_for_schema(schema)
        return {
            "name": schema.name,
            "class_name": schema.name,
            "namespace": namespace,
            "model_class": f"{namespace}\\{schema.name}",
            "table": schema.table,
            "fillable": [f.name for f in schema.fillable_fields()],
            "casts": casts,
            "hidden": [h for h in options.hidden if h in names],
            "dates": dates,
            "relationships": [
                describe_relationship(rel, schema.name) for rel in schema.relationships.values()
            ],
            "options": {
                "timestamps": schema.has_timestamps,
                "soft_deletes": schema.has_soft_deletes,
            },
            "validation_rules": rules.rules(),
        }


# ---------------------------------------------------------------------------
# migration
# ---------------------------------------------------------------------------


class MigrationGenerator(BaseGenerator):
    name = "migration"
    aliases = ("migrations",)
    description = "Table description: one entry per column plus indexes and foreign keys."
    options_class = MigrationOptions

    def build(self, schema: Schema, options: MigrationOptions) -> Dict[str, Any]:
        timestamps: bool = (
            schema.has_timestamps if options.include_timestamps is None else options.include_timestamps
        )
        soft_deletes: bool = (
            schema.has_soft_deletes
            if options.include_soft_deletes is None
            else options.include_soft_deletes
        )
        fields: List[Field] = schema.all_fields()
        return {
            "table": schema.table,
            "class_name": f"Create{to_pascal_case(schema.table)}Table",
            "fields": [self._column(fld) for fld in fields],
            "indexes": [
                {"type": "index", "columns": [fld.name], "name": None}
                for fld in fields
                if fld.index and not fld.unique
            ],
            "foreign_keys": self._foreign_keys(schema, fields, options),
            "options": {"timestamps": timestamps, "soft_deletes": soft_deletes},
        }

    def _column(self, fld: Field) -> Dict[str, Any]:
        resolved: ResolvedType = self.resolver.for_field(fld)
        storage = resolved.storage(fld)
        return {
            "name": fld.name,
            "type": resolved.type_id,
            "migration_type": storage.method,
            "storage": storage.primitive,
            "nullable": fld.nullable,
            "unique": fld.unique,
            "index": fld.index,
            "default": fld.default,
            "length": fld.length if fld.length is not None else storage.length,
            "precision": fld.precision if fld.precision is not None else storage.precision,
            "scale": fld.scale if fld.scale is not None else storage.scale,
            "unsigned": storage.unsigned,
            "comment": fld.comment,
        }

    def _foreign_keys(
        self, schema: Schema, fields: List[Field], options: MigrationOptions
    ) -> List[Dict[str, Any]]:
        keys: List[Dict[str, Any]] = []
        linked: Dict[str, Relationship] = _belongs_to_keys(schema)
        for column, rel in linked.items():
            keys.append(
                {
                    "column": column,
                    "references": rel.resolved_local_key,
                    "on": rel.target_table,
                    "onDelete": options.on_delete,
                    "onUpdate": options.on_update,
                    "relationship": rel.name,
                }
            )
        # foreignId columns not covered by a belongsTo relationship
        for fld in fields:
            if fld.name in linked:
                continue
            resolved: ResolvedType = self.resolver.for_field(fld)
            if resolved.type_id != "foreignId":
                continue
            keys.append(
                {
                    "column": fld.name,
                    "references": "id",
                    "on": foreign_table(fld),
                    "onDelete": options.on_delete,
                    "onUpdate": options.on_update,
                    "relationship": None,
                }
            )
        return keys


# ---------------------------------------------------------------------------
# requests
# ---------------------------------------------------------------------------


class RequestGenerator(BaseGenerator):
    name = "requests"
    aliases = ("request",)
    description = "Store / update form requests with derived validation rules."
    options_class = RequestOptions

    def build(self, schema: Schema, options: RequestOptions) -> Dict[str, Any]:
        fillable: List[str] = [f.name for f in schema.fillable_fields()]
        create: RuleSet = self.validation.rules_for_schema(schema, RuleContext.CREATE)
        update: RuleSet = self.validation.rules_for_schema(schema, RuleContext.UPDATE)

        store_rules: Dict[str, Any] = {k: v for k, v in create.rules().items() if k in fillable}
        store_rules.update(options.custom_validation_rules.get("store", {}))
        update_rules: Dict[str, Any] = {k: v for k, v in update.rules().items() if k in fillable}
        update_rules.update(options.custom_validation_rules.get("update", {}))

        messages: Dict[str, str] = self.validation.messages(schema, create)
        messages.update(options.custom_messages)
        namespace: str = options.requests_namespace

        if not options.enhanced:
            return {
                "store_request": {
                    "name": f"Store{schema.name}Request",
                    "namespace": namespace,
                    "validation_rules": store_rules,
                    "messages": messages,
                },
                "update_request": {
                    "name": f"Update{schema.name}Request",
                    "namespace": namespace,
                    "validation_rules": update_rules,
                    "messages": messages,
                },
                "attribute_errors": create.errors,
            }

        relationship_rules: Dict[str, List[str]] = self._relationship_rules(schema)
        body: Dict[str, Any] = {}
        for action, rules in (("store", store_rules), ("update", update_rules)):
            body[action] = {
                "name": f"{action.capitalize()}{schema.name}Request",
                "namespace": namespace,
                "validation_rules": rules,
                "messages": messages,
                "authorization": self._authorization(schema, action, options),
                "custom_methods": self._custom_methods(),
                "relationships_validation": relationship_rules,
                "conditional_rules": self._conditional_rules(schema),
            }

        for request_name, config in options.custom_requests.items():
            body[request_name] = {
                "name": config.get("class_name", f"{to_pascal_case(request_name)}{schema.name}Request"),
                "namespace": config.get("namespace", namespace),
                "validation_rules": config.get("validation_rules", {}),
                "messages": config.get("messages", messages),
                "authorization": config.get(
                    "authorization", self._authorization(schema, request_name, options)
                ),
                "custom_methods": config.get("custom_methods", {}),
                "conditional_rules": config.get("conditional_rules", {}),
            }

        body["attribute_errors"] = create.errors
        return body

    def _authorization(self, schema: Schema, action: str, options: RequestOptions) -> Dict[str, Any]:
        if not options.enable_authorization:
            return {"enabled": False, "method": "authorize", "logic": ["return true;"]}
        subject: str = schema.name.lower()
        if action in options.custom_authorization:
            logic: List[str] = list(options.custom_authorization[action])
        elif action == "store":
            logic = [
                f"// Check if user can create {subject}",
                f'return $this->user()->can("create", {schema.name}::class);',
            ]
        elif action == "update":
            logic = [
                f"// Check if user can update this {subject}",
                f'return $this->user()->can("update", $this->route("{subject}"));',
            ]
        else:
            logic = [
                f"// Custom authorization for {action}",
                "return true; // Implement your authorization logic here",
            ]
        return {"enabled": True, "method": "authorize", "logic": logic}

    @staticmethod
    def _custom_methods() -> Dict[str, Any]:
        return {
            "transformData": {
                "visibility": "protected",
                "return_type": "array",
                "parameters": [],
                "body": ["$data = $this->validated();", "", "return $data;"],
            },
            "prepareForValidation": {
                "visibility": "protected",
                "return_type": "void",
                "parameters": [],
                "body": ["// Normalise input before the rules run"],
            },
        }

    @staticmethod
    def _relationship_rules(schema: Schema) -> Dict[str, List[str]]:
        rules: Dict[str, List[str]] = {}
        for rel in schema.relationships.values():
            exists: str = f"exists:{rel.target_table},id"
            if rel.kind is RelationshipKind.BELONGS_TO:
                rules[rel.resolved_foreign_key(schema.name)] = ["nullable", exists]
            elif rel.kind is RelationshipKind.BELONGS_TO_MANY:
                rules[rel.name] = ["sometimes", "array"]
                rules[f"{rel.name}.*"] = ["integer", exists]
            elif rel.kind is RelationshipKind.HAS_MANY:
                rules[rel.name] = ["sometimes", "array"]
                rules[f"{rel.name}.*.id"] = ["integer", exists]
        return rules

    def _conditional_rules(self, schema: Schema) -> Dict[str, Any]:
        conditional: Dict[str, Any] = {}
        for fld in schema.fields.values():
            values: List[str] = enum_values(fld)
            if not values or self.resolver.for_field(fld).type_id != "enum":
                continue
            conditional[fld.name] = {
                "method": "Rule::when",
                "condition": f"filled:{fld.name}",
                "rules": ["required", "in:" + ",".join(values)],
            }
        return conditional


# ---------------------------------------------------------------------------
# resources
# ---------------------------------------------------------------------------


class ResourceGenerator(BaseGenerator):
    name = "resources"
    aliases = ("resource",)
    description = "API transform: wire types, conditional fields, relationship loading."
    options_class = ResourceOptions

    def build(self, schema: Schema, options: ResourceOptions) -> Dict[str, Any]:
        namespace: str = options.namespace
        resource: Dict[str, Any] = {
            "name": f"{schema.name}Resource",
            "namespace": namespace,
            "model": schema.model_class,
            "fields": self._fields(schema, options),
            "relationships": self._relationships(schema, options),
        }
        collection: Dict[str, Any] = {
            "name": f"{schema.name}Collection",
            "namespace": namespace,
            "resource_class": f"{schema.name}Resource",
        }
        if not options.enhanced:
            return {"resource": resource, "collection": collection}

        resource["conditional_fields"] = self._conditional_fields(schema, options)
        collection["pagination"] = {
            "enabled": True,
            "per_page": options.per_page,
            "max_per_page": options.max_per_page,
            "page_name": "page",
            "per_page_name": "per_page",
            "show_links": True,
            "show_meta": True,
            "meta_fields": {
                "total": "Total number of records",
                "per_page": "Records per page",
                "current_page": "Current page number",
                "last_page": "Last page number",
            },
        }
        filterable: List[str] = self._fields_of_types(schema, _FILTERABLE_TYPES)
        collection["filtering"] = {"enabled": options.enable_filtering, "fields": filterable}
        collection["sorting"] = {
            "enabled": options.enable_sorting,
            "fields": self._fields_of_types(schema, _SORTABLE_TYPES),
            "default": options.default_sort,
            "direction": options.default_direction,
        }
        return {
            "main_resource": resource,
            "collection_resource": collection,
            "partial_resources": self._partials(schema),
            "relationship_resources": self._relationship_resources(schema, options),
        }

    def _api_entry(self, fld: Field) -> Tuple[ResolvedType, Dict[str, Any]]:
        resolved: ResolvedType = self.resolver.for_field(fld)
        api_type, api_format = resolved.api(fld)
        entry: Dict[str, Any] = {"type": api_type}
        if api_format:
            entry["format"] = api_format
        return resolved, entry

    def _fields(self, schema: Schema, options: ResourceOptions) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for fld in schema.all_fields():
            hidden: bool = fld.name in HIDDEN_FIELDS
            if hidden and not options.include_hidden:
                continue
            if fld.name in TIMESTAMP_FIELDS and not options.include_timestamps:
                continue
            resolved, entry = self._api_entry(fld)
            entry.update(
                {
                    "original_type": fld.type,
                    "cast": resolved.cast(fld),
                    "nullable": fld.nullable,
                    "hidden": hidden,
                    "transform": options.field_transformations.get(fld.name),
                }
            )
            if resolved.type_id in ("timestamp", "datetime"):
                entry["date_format"] = "Y-m-d H:i:s"
                entry["timezone"] = resolved.type_id == "timestamp"
            elif resolved.type_id == "date":
                entry["date_format"] = "Y-m-d"
            elif resolved.type_id == "decimal":
                entry["decimal_places"] = fld.scale if fld.scale is not None else 2
            fields[fld.name] = entry

        if schema.has_timestamps and options.include_timestamps:
            for column in TIMESTAMP_FIELDS:
                fields.setdefault(
                    column,
                    {
                        "type": "string",
                        "format": "datetime",
                        "original_type": "timestamp",
                        "cast": "datetime",
                        "nullable": True,
                        "hidden": False,
                        "transform": None,
                        "date_format": "Y-m-d H:i:s",
                        "timezone": True,
                    },
                )
        return fields

    def _conditional_fields(self, schema: Schema, options: ResourceOptions) -> Dict[str, Any]:
        conditional: Dict[str, Any] = {}
        for fld in schema.all_fields():
            if fld.name in HIDDEN_FIELDS and not options.include_hidden:
                continue
            if not fld.nullable or fld.name in (*TIMESTAMP_FIELDS, "deleted_at"):
                continue
            _, entry = self._api_entry(fld)
            conditional[fld.name] = {"condition": "when_not_null", **entry}
        return conditional

    def _relationships(self, schema: Schema, options: ResourceOptions) -> Dict[str, Any]:
        relationships: Dict[str, Any] = {}
        for rel in schema.relationships.values():
            entry: Dict[str, Any] = {
                "type": rel.kind.value,
                "model": rel.target or None,
                "resource": f"{class_basename(rel.target)}Resource" if rel.target else None,
                "load_condition": "whenLoaded",
                "conditionally_load": rel.kind is not RelationshipKind.BELONGS_TO,
            }
            if rel.kind.is_many:
                entry["with_count"] = True
                entry["paginated"] = True
                entry["limit"] = options.relation_limit
            if rel.kind.uses_pivot:
                entry["with_pivot"] = True
                entry["pivot_fields"] = list(rel.pivot_fields)
            if rel.kind in (RelationshipKind.BELONGS_TO, RelationshipKind.HAS_ONE):
                entry["always_load"] = rel.kind is RelationshipKind.BELONGS_TO
            if rel.kind.is_polymorphic:
                entry["polymorphic"] = True
            relationships[rel.name] = entry
        return relationships

    def _relationship_resources(self, schema: Schema, options: ResourceOptions) -> Dict[str, Any]:
        resources: Dict[str, Any] = {}
        for rel in schema.relationships.values():
            entry: Dict[str, Any] = {
                "type": rel.kind.value,
                "model": rel.target or None,
                "resource": f"{class_basename(rel.target)}Resource" if rel.target else None,
                "loading": options.eager_load,
                "nested_loading": True,
                "eager_load": rel.kind in (RelationshipKind.BELONGS_TO, RelationshipKind.HAS_ONE),
                "with_count": True,
            }
            if rel.kind.uses_pivot:
                entry["with_pivot"] = True
                entry["pivot_fields"] = list(rel.pivot_fields)
            resources[rel.name] = entry
        return resources

    def _partials(self, schema: Schema) -> Dict[str, Any]:
        listed: List[str] = [
            f.name for f in schema.all_fields() if f.name in ("name", "title", "email", "status")
        ]
        basic: Dict[str, Any] = {"id": {"type": "integer"}}
        for column in listed:
            _, basic[column] = self._api_entry(schema.fields[column])
        summary: Dict[str, Any] = dict(basic)
        if schema.has_timestamps:
            basic["created_at"] = {"type": "string", "format": "datetime"}
            summary["created_at"] = {"type": "string", "format": "datetime"}
            summary["updated_at"] = {"type": "string", "format": "datetime"}
        return {
            "basic": {"name": f"{schema.name}BasicResource", "fields": basic},
            "summary": {"name": f"{schema.name}SummaryResource", "fields": summary},
            "detailed": {
                "name": f"{schema.name}DetailedResource",
                "include_all_fields": True,
                "include_all_relationships": True,
                "relationships": list(schema.relationships),
            },
        }

    def _fields_of_types(self, schema: Schema, types: Tuple[str, ...]) -> List[str]:
        return [
            fld.name
            for fld in schema.all_fields()
            if self.resolver.for_field(fld).type_id in types
        ]


# ---------------------------------------------------------------------------
# factory
# ---------------------------------------------------------------------------


class FactoryGenerator(BaseGenerator):
    name = "factory"
    aliases = ("factories",)
    description = "Factory definition: synthetic value generator per fillable column."
    options_class = FactoryOptions

    def build(self, schema: Schema, options: FactoryOptions) -> Dict[str, Any]:
        linked: Dict[str, Relationship] = _belongs_to_keys(schema)
        fields: Dict[str, str] = {}
        for fld in schema.fillable_fields():
            rel: Optional[Relationship] = linked.get(fld.name)
            if rel is not None:
                fields[fld.name] = f"{class_basename(rel.target)}::factory()"
            else:
                fields[fld.name] = self.faker_for(fld)
        return {
            "name": f"{schema.name}Factory",
            "namespace": options.factory_namespace,
            "model_class": schema.model_class,
            "fields": fields,
            "states": self._states(schema),
        }

    def faker_for(self, fld: Field) -> str:
        resolved: ResolvedType = self.resolver.for_field(fld)
        string_like: bool = resolved.type_id in ("string", "text") or resolved.source == SOURCE_FALLBACK
        if resolved.plugin is None and string_like:
            lowered: str = fld.name.lower()
            for needle, faker in _NAME_FAKERS:
                if needle in lowered:
                    return faker
            if resolved.type_id == "string" and fld.length is not None and fld.length <= 50:
                return "fake()->word()"
        return resolved.faker(fld)

    def _states(self, schema: Schema) -> Dict[str, Any]:
        states: Dict[str, Any] = {}
        for fld in schema.all_fields():
            resolved: ResolvedType = self.resolver.for_field(fld)
            if fld.name in ("status", "active", "is_active") and resolved.type_id == "boolean":
                states["inactive"] = {fld.name: False}
                break
        status: Optional[Field] = schema.field("status")
        if status is not None and self.resolver.for_field(status).type_id == "enum":
            for value in enum_values(status):
                states.setdefault(value, {"status": value})
        return states


# ---------------------------------------------------------------------------
# seeder
# ---------------------------------------------------------------------------


class SeederGenerator(BaseGenerator):
    name = "seeder"
    aliases = ("seeders",)
    description = "Seeding plan: count, dependencies and data sets."
    options_class = SeederOptions

    SAMPLE_COUNT: int = 3

    def build(self, schema: Schema, options: SeederOptions) -> Dict[str, Any]:
        dependencies: List[str] = []
        for rel in schema.relationships_of(RelationshipKind.BELONGS_TO):
            seeder: str = f"{class_basename(rel.target)}Seeder"
            if seeder not in dependencies and rel.target != schema.name:
                dependencies.append(seeder)

        data_sets: Dict[str, Any] = {
            "default": {"method": "factory", "count": options.seeder_count, "using_factory": True}
        }
        if options.create_sample_data:
            data_sets["sample"] = {
                "method": "create",
                "count": self.SAMPLE_COUNT,
                "using_factory": False,
                "data": {
                    fld.name: self.resolver.for_field(fld).sample(fld)
                    for fld in schema.fillable_fields()
                },
            }
        return {
            "name": f"{schema.name}Seeder",
            "namespace": options.seeder_namespace,
            "model_class": schema.model_class,
            "factory_class": f"{schema.name}Factory",
            "count": options.seeder_count,
            "dependencies": dependencies,
            "data_sets": data_sets,
        }


DATA_GENERATORS: Tuple[type, ...] = (
    ModelGenerator,
    MigrationGenerator,
    RequestGenerator,
    ResourceGenerator,
    FactoryGenerator,
    SeederGenerator,
)

__all__: List[str] = [
    "ModelGenerator",
    "MigrationGenerator",
    "RequestGenerator",
    "ResourceGenerator",
    "FactoryGenerator",
    "SeederGenerator",
    "DATA_GENERATORS",
    "HIDDEN_FIELDS",
    "describe_relationship",
]

logger.debug("modelschema.generators loaded, %d public symbols.", len(__all__))

# File: modelschema/scaffolding.py
"""
ModelSchema - Business-Logic Generators
========================================
Structural descriptions of the classes that sit around an entity:

    controllers  API / web controller, resource routes, middleware
    policies     authorization methods, gates, ownership hints
    observers    one hook per enabled lifecycle event
    services     CRUD + query methods, caching properties
    actions      single-purpose action classes (CRUD, bulk, status, custom)
    rules        custom validation rule classes (unique, exists, business)

Method ``logic`` entries are placeholder line lists; they only have to be
structurally complete and carry the right names, never to execute.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from modelschema.config import (
    OBSERVER_EVENTS,
    SOFT_DELETE_EVENTS,
    ActionOptions,
    ControllerOptions,
    ObserverOptions,
    PolicyOptions,
    RuleOptions,
    ServiceOptions,
)
from modelschema.fragments import BaseGenerator
from modelschema.models import Field, RelationshipKind, Schema
from modelschema.registry import foreign_table
from modelschema.resolver import ResolvedType
from modelschema.utils import class_basename, to_camel_case, to_pascal_case
from modelschema.validation import RuleContext

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.scaffolding")

OWNERSHIP_FIELDS: Tuple[str, ...] = ("user_id", "owner_id", "author_id", "created_by")
PUBLISHABLE_FIELDS: Tuple[str, ...] = ("published_at", "status", "is_published")
STATUS_FIELDS: Tuple[str, ...] = ("status", "is_active", "active", "state")


def _method(
    description: str,
    parameters: List[str],
    return_type: str,
    logic: List[str],
    visibility: Optional[str] = None,
) -> Dict[str, Any]:
    method: Dict[str, Any] = {
        "description": description,
        "parameters": parameters,
        "return_type": return_type,
        "logic": logic,
    }
    if visibility:
        method["visibility"] = visibility
    return method


def _has_any_field(schema: Schema, names: Tuple[str, ...]) -> bool:
    return any(name in schema.fields for name in names)


def _variable(schema: Schema) -> str:
    return to_camel_case(schema.name)


# ---------------------------------------------------------------------------
# controllers
# ---------------------------------------------------------------------------


class ControllerGenerator(BaseGenerator):
    name = "controllers"
    aliases = ("controller",)
    description = "API and web controllers with routes, middleware and policy references."
    options_class = ControllerOptions

    def build(self, schema: Schema, options: ControllerOptions) -> Dict[str, Any]:
        body: Dict[str, Any] = {"api_controller": self._api_controller(schema, options)}
        if options.include_web:
            body["web_controller"] = self._web_controller(schema, options)
        body["resource_routes"] = self._routes(schema, options)
        body["middleware"] = self._middleware(schema, options)
        body["policies"] = {
            "class": f"{schema.name}Policy",
            "abilities": ["viewAny", "view", "create", "update", "delete"]
            + (["restore", "forceDelete"] if schema.has_soft_deletes else []),
        }
        return body

    def _api_controller(self, schema: Schema, options: ControllerOptions) -> Dict[str, Any]:
        var: str = _variable(schema)
        methods: Dict[str, Any] = {
            "index": {
                "description": "Display a listing of the resource.",
                "parameters": ["request"],
                "return_type": "JsonResponse",
                "features": ["pagination", "filtering", "sorting"],
                "response_codes": [200],
            },
            "show": {
                "description": "Display the specified resource.",
                "parameters": [var],
                "return_type": "JsonResponse",
                "features": ["resource_loading", "relationship_loading"],
                "response_codes": [200, 404],
            },
            "store": {
                "description": "Store a newly created resource.",
                "parameters": ["request"],
                "return_type": "JsonResponse",
                "features": ["validation", "creation", "resource_response"],
                "response_codes": [201, 422],
            },
            "update": {
                "description": "Update the specified resource.",
                "parameters": ["request", var],
                "return_type": "JsonResponse",
                "features": ["validation", "updating", "resource_response"],
                "response_codes": [200, 404, 422],
            },
            "destroy": {
                "description": "Remove the specified resource.",
                "parameters": [var],
                "return_type": "JsonResponse",
                "features": ["deletion"],
                "response_codes": [204, 404],
            },
        }
        if schema.has_soft_deletes:
            methods["restore"] = {
                "description": "Restore the specified soft-deleted resource.",
                "parameters": ["id"],
                "return_type": "JsonResponse",
                "features": ["soft_delete_restoration"],
                "response_codes": [200, 404],
            }
            methods["forceDestroy"] = {
                "description": "Permanently delete the specified resource.",
                "parameters": [var],
                "return_type": "JsonResponse",
                "features": ["permanent_deletion"],
                "response_codes": [204, 404],
            }
        return {
            "name": f"{schema.name}ApiController",
            "namespace": options.api_controller_namespace,
            "extends": "Controller",
            "traits": ["AuthorizesRequests"] if options.authorization_enabled else [],
            "model": schema.model_class,
            "resource": {
                "class": f"{schema.name}Resource",
                "collection": f"{schema.name}Collection",
            },
            "requests": {
                "store": f"Store{schema.name}Request",
                "update": f"Update{schema.name}Request",
            },
            "methods": methods,
            "validation": self._validation(schema),
            "filters": self._filters(schema),
            "relationships": {
                rel.name: {
                    "type": rel.kind.value,
                    "model": rel.target or None,
                    "eager_load": rel.kind is RelationshipKind.BELONGS_TO,
                    "load_count": rel.kind.is_many,
                }
                for rel in schema.relationships.values()
            },
        }

    def _web_controller(self, schema: Schema, options: ControllerOptions) -> Dict[str, Any]:
        var: str = _variable(schema)
        views: str = schema.table
        prefix: str = options.route_prefix or schema.table

        def page(description: str, parameters: List[str], view: str) -> Dict[str, Any]:
            return {
                "description": description,
                "parameters": parameters,
                "return_type": "View",
                "view": f"{views}.{view}",
            }

        def redirect(description: str, parameters: List[str], target: str) -> Dict[str, Any]:
            return {
                "description": description,
                "parameters": parameters,
                "return_type": "RedirectResponse",
                "redirect_to": f"{prefix}.{target}",
            }

        return {
            "name": f"{schema.name}Controller",
            "namespace": options.web_controller_namespace,
            "extends": "Controller",
            "traits": ["AuthorizesRequests"] if options.authorization_enabled else [],
            "model": schema.model_class,
            "views": {
                "prefix": views,
                "layout": "layouts.app",
                "pages": {v: f"{views}.{v}" for v in ("index", "create", "show", "edit")},
                "partials": {p: f"{views}._{p}" for p in ("form", "table", "card")},
            },
            "methods": {
                "index": page("Display a listing of the resource.", ["request"], "index"),
                "create": page("Show the form for creating a new resource.", [], "create"),
                "store": redirect("Store a newly created resource.", ["request"], "show"),
                "show": page("Display the specified resource.", [var], "show"),
                "edit": page("Show the form for editing the specified resource.", [var], "edit"),
                "update": redirect("Update the specified resource.", ["request", var], "show"),
                "destroy": redirect("Remove the specified resource.", [var], "index"),
            },
            "flash_messages": {
                "created": f"{schema.name} created successfully.",
                "updated": f"{schema.name} updated successfully.",
                "deleted": f"{schema.name} deleted successfully.",
            },
        }

    def _routes(self, schema: Schema, options: ControllerOptions) -> Dict[str, Any]:
        prefix: str = options.route_prefix.strip("/")
        parameter: Dict[str, str] = {schema.table: _variable(schema)}
        routes: Dict[str, Any] = {
            "api_routes": {
                "prefix": f"{prefix}/api" if prefix else "api",
                "name": f"api.{schema.table}",
                "resource": schema.table,
                "controller": f"{schema.name}ApiController",
                "methods": ["index", "show", "store", "update", "destroy"],
                "middleware": ["api", "auth:sanctum"],
                "parameters": parameter,
            },
        }
        if options.include_web:
            routes["web_routes"] = {
                "prefix": prefix,
                "name": schema.table,
                "resource": schema.table,
                "controller": f"{schema.name}Controller",
                "methods": ["index", "create", "store", "show", "edit", "update", "destroy"],
                "middleware": ["web", "auth"],
                "parameters": parameter,
            }
        additional: Dict[str, Any] = {}
        if schema.has_soft_deletes:
            additional["trashed"] = {
                "method": "GET",
                "uri": f"{schema.table}/trashed",
                "action": "trashed",
                "name": f"{schema.table}.trashed",
            }
            additional["restore"] = {
                "method": "PATCH",
                "uri": f"{schema.table}/{{id}}/restore",
                "action": "restore",
                "name": f"{schema.table}.restore",
            }
        routes["additional_routes"] = additional
        return routes

    def _middleware(self, schema: Schema, options: ControllerOptions) -> Dict[str, Any]:
        var: str = _variable(schema)
        authorization: Dict[str, str] = {}
        if options.authorization_enabled:
            authorization = {
                "index": f"can:viewAny,{schema.model_class}",
                "show": f"can:view,{var}",
                "store": f"can:create,{schema.model_class}",
                "update": f"can:update,{var}",
                "destroy": f"can:delete,{var}",
            }
        return {
            "global": {"api": ["api", "throttle:api"], "web": ["web"]},
            "authentication": {"api": "auth:sanctum", "web": "auth"},
            "authorization": authorization,
        }

    def _validation(self, schema: Schema) -> Dict[str, Any]:
        fillable: List[str] = [f.name for f in schema.fillable_fields()]
        rules: Dict[str, Any] = {}
        for action, context in (("store", RuleContext.CREATE), ("update", RuleContext.UPDATE)):
            derived: Dict[str, List[str]] = self.validation.rules_for_schema(schema, context).rules()
            rules[action] = {name: derived.get(name, []) for name in fillable}
        return rules

    def _filters(self, schema: Schema) -> Dict[str, Any]:
        filters: Dict[str, Any] = {}
        comparisons: List[str] = ["=", ">", "<", ">=", "<="]
        for fld in schema.all_fields():
            resolved: ResolvedType = self.resolver.for_field(fld)
            if resolved.category == "string":
                filters[fld.name] = {"type": "search", "operator": "like"}
            elif resolved.category in ("integer", "numeric"):
                filters[fld.name] = {"type": "range", "operators": comparisons}
            elif resolved.category == "temporal":
                filters[fld.name] = {"type": "date_range", "operators": comparisons}
            elif resolved.category == "boolean":
                filters[fld.name] = {"type": "boolean", "operator": "="}
            elif resolved.category == "choice":
                filters[fld.name] = {"type": "in", "operator": "in"}
        return filters


# ---------------------------------------------------------------------------
# policies
# ---------------------------------------------------------------------------


class PolicyGenerator(BaseGenerator):
    name = "policies"
    aliases = ("policy",)
    description = "Authorization policy: abilities, gates and ownership hints."
    options_class = PolicyOptions

    def build(self, schema: Schema, options: PolicyOptions) -> Dict[str, Any]:
        policy: str = f"{schema.name}Policy"
        ownership: Optional[str] = next(
            (name for name in OWNERSHIP_FIELDS if name in schema.fields), None
        )
        publishable: bool = _has_any_field(schema, PUBLISHABLE_FIELDS)
        return {
            policy: {
                "class_name": policy,
                "model": schema.name,
                "namespace": options.policy_namespace,
                "model_class": schema.model_class,
                "methods": self._methods(schema, ownership, publishable),
                "middleware": list(options.middleware),
                "gates": self._gates(schema) if options.include_gates else {},
                "authorization_logic": {
                    "ownership_field": ownership,
                    "ownership_check": ownership is not None,
                    "patterns": ["ownership", "role_based", "permission_based"],
                    "supports_soft_deletes": schema.has_soft_deletes,
                    "supports_publishing": publishable,
                },
            }
        }

    def _methods(self, schema: Schema, ownership: Optional[str], publishable: bool) -> Dict[str, Any]:
        model: str = schema.name
        var: str = _variable(schema)
        table: str = schema.table
        subject: List[str] = ["User $user", f"{model} ${var}"]
        owner_check: str = f" || $user->id === ${var}->{ownership}" if ownership else ""

        methods: Dict[str, Any] = {
            "viewAny": _method(
                f"Determine whether the user can view any {table}.",
                ["User $user"],
                "bool",
                [f"return $user->hasPermission('{table}.viewAny');"],
            ),
            "view": _method(
                f"Determine whether the user can view the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.view'){owner_check};"],
            ),
            "create": _method(
                f"Determine whether the user can create {table}.",
                ["User $user"],
                "bool",
                [f"return $user->hasPermission('{table}.create');"],
            ),
            "update": _method(
                f"Determine whether the user can update the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.update'){owner_check};"],
            ),
            "delete": _method(
                f"Determine whether the user can delete the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.delete'){owner_check};"],
            ),
        }
        if schema.has_soft_deletes:
            methods["restore"] = _method(
                f"Determine whether the user can restore the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.restore');"],
            )
            methods["forceDelete"] = _method(
                f"Determine whether the user can permanently delete the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.forceDelete');"],
            )
        if publishable:
            methods["publish"] = _method(
                f"Determine whether the user can publish the {model}.",
                subject,
                "bool",
                [f"return $user->hasPermission('{table}.publish');"],
            )
        return methods

    @staticmethod
    def _gates(schema: Schema) -> Dict[str, str]:
        key: str = to_camel_case(schema.name)
        return {
            f"{key}.viewAny": f"Can view any {schema.table}",
            f"{key}.view": f"Can view specific {schema.name}",
            f"{key}.create": f"Can create {schema.table}",
            f"{key}.update": f"Can update {schema.name}",
            f"{key}.delete": f"Can delete {schema.name}",
        }


# ---------------------------------------------------------------------------
# observers
# ---------------------------------------------------------------------------

_EVENT_LOGIC: Dict[str, List[str]] = {
    "retrieved": ["// Log retrieval or update statistics"],
    "creating": ["// Validate data, set defaults", "// Return false to cancel creation"],
    "created": ["// Send notifications, log creation"],
    "updating": ["// Validate changes", "// Return false to cancel update"],
    "updated": ["// Clear caches, log changes"],
    "saving": ["// Shared create / update logic", "// Return false to cancel save"],
    "saved": ["// Clear caches, update search indexes"],
    "deleting": ["// Check constraints", "// Return false to cancel deletion"],
    "deleted": ["// Clean up related data"],
    "restoring": ["// Return false to cancel restoration"],
    "restored": ["// Clear caches"],
    "forceDeleted": ["// Permanent cleanup"],
}

# Events whose handler may cancel the operation
_CANCELLABLE_EVENTS: Tuple[str, ...] = ("creating", "updating", "saving", "deleting", "restoring")


class ObserverGenerator(BaseGenerator):
    name = "observers"
    aliases = ("observer",)
    description = "Model observer with one hook per enabled lifecycle event."
    options_class = ObserverOptions

    def build(self, schema: Schema, options: ObserverOptions) -> Dict[str, Any]:
        observer: str = f"{schema.name}Observer"
        candidates: List[str] = list(OBSERVER_EVENTS)
        if schema.has_soft_deletes:
            candidates += SOFT_DELETE_EVENTS
        events: List[str] = [e for e in candidates if options.observes(e)]
        var: str = _variable(schema)

        methods: Dict[str, Any] = {}
        for event in events:
            label: str = "force deleted" if event == "forceDeleted" else event
            methods[event] = _method(
                f'Handle the {schema.name} "{label}" event.',
                [f"{schema.name} ${var}"],
                "bool|void" if event in _CANCELLABLE_EVENTS else "void",
                list(_EVENT_LOGIC.get(event, [f"// Handle the {event} event"])),
            )
        return {
            observer: {
                "class_name": observer,
                "namespace": options.observer_namespace,
                "model_class": schema.model_class,
                "events": events,
                "imports": [schema.model_class],
                "methods": methods,
            }
        }


# ---------------------------------------------------------------------------
# services
# ---------------------------------------------------------------------------


class ServiceGenerator(BaseGenerator):
    name = "services"
    aliases = ("service",)
    description = "Service class: CRUD and query methods with optional caching."
    options_class = ServiceOptions

    def build(self, schema: Schema, options: ServiceOptions) -> Dict[str, Any]:
        service: str = f"{schema.name}Service"
        imports: List[str] = [
            schema.model_class,
            "Illuminate\\Database\\Eloquent\\Builder",
            "Illuminate\\Database\\Eloquent\\Collection",
            "Illuminate\\Pagination\\LengthAwarePaginator",
        ]
        properties: Dict[str, Any] = {}
        dependencies: List[Dict[str, str]] = []
        repository: Optional[str] = None

        if options.repository_class:
            imports.append(options.repository_class)
            repository = to_camel_case(class_basename(options.repository_class))
            properties[repository] = {
                "type": class_basename(options.repository_class),
                "visibility": "protected",
                "description": f"The {schema.name} repository instance.",
            }
            dependencies.append(
                {
                    "type": options.repository_class,
                    "variable": repository,
                    "description": f"The {schema.name} repository instance.",
                }
            )
        if options.enable_caching:
            imports.append("Illuminate\\Support\\Facades\\Cache")
            properties["cachePrefix"] = {
                "type": "string",
                "visibility": "protected",
                "value": schema.table,
                "description": "Cache prefix for this service.",
            }
            properties["cacheTtl"] = {
                "type": "int",
                "visibility": "protected",
                "value": options.cache_ttl,
                "description": "Cache TTL in seconds.",
            }

        return {
            service: {
                "class_name": service,
                "namespace": options.service_namespace,
                "model_class": schema.model_class,
                "repository_class": options.repository_class,
                "implements": list(options.implements),
                "imports": imports,
                "properties": properties,
                "methods": self._methods(schema, repository, options.enable_caching),
                "dependencies": dependencies,
            }
        }

    @staticmethod
    def _methods(schema: Schema, repository: Optional[str], caching: bool) -> Dict[str, Any]:
        model: str = schema.name
        var: str = _variable(schema)
        source: str = f"$this->{repository}->" if repository else f"{model}::"
        clear_all: List[str] = ["$this->clearCache();"] if caching else []
        clear_one: List[str] = [f"$this->clearCache(${var}->id);"] if caching else []

        find: List[str] = [f"return {source}find($id);"]
        if caching:
            find = [
                "$cacheKey = $this->cachePrefix . '.find.' . $id;",
                f"return Cache::remember($cacheKey, $this->cacheTtl, fn () => {source}find($id));",
            ]

        methods: Dict[str, Any] = {
            "create": _method(
                f"Create a new {model}.",
                ["array $data"],
                model,
                ["$this->validateData($data, 'create');", f"${var} = {source}create($data);"]
                + clear_all
                + [f"return ${var};"],
            ),
            "update": _method(
                f"Update an existing {model}.",
                [f"{model} ${var}", "array $data"],
                model,
                [f"$this->validateData($data, 'update', ${var});", f"${var}->update($data);"]
                + clear_one
                + [f"return ${var};"],
            ),
            "delete": _method(
                f"Delete a {model}.",
                [f"{model} ${var}"],
                "bool",
                [f"$result = ${var}->delete();"] + clear_one + ["return $result;"],
            ),
            "findById": _method(f"Find a {model} by ID.", ["int $id"], f"{model}|null", find),
            "getAll": _method(
                f"Get all {model} records.",
                ["array $filters = []"],
                "Collection",
                [
                    f"$query = {model}::query();",
                    "$this->applyFilters($query, $filters);",
                    "return $query->get();",
                ],
            ),
            "paginate": _method(
                f"Get paginated {model} records.",
                ["int $perPage = 15", "array $filters = []"],
                "LengthAwarePaginator",
                [
                    f"$query = {model}::query();",
                    "$this->applyFilters($query, $filters);",
                    "return $query->paginate($perPage);",
                ],
            ),
            "validateData": _method(
                f"Validate {model} data.",
                ["array $data", "string $context = 'create'", f"?{model} ${var} = null"],
                "void",
                [
                    "// Apply the rules for the given context",
                    "// Throw ValidationException if validation fails",
                ],
                "protected",
            ),
            "applyFilters": _method(
                f"Apply filters to a {model} query.",
                ["Builder $query", "array $filters"],
                "void",
                [
                    "foreach ($filters as $column => $value) {",
                    "    $query->where($column, $value);",
                    "}",
                ],
                "protected",
            ),
        }
        if caching:
            methods["clearCache"] = _method(
                f"Clear {model} related caches.",
                ["?int $id = null"],
                "void",
                [
                    "if ($id !== null) {",
                    "    Cache::forget($this->cachePrefix . '.find.' . $id);",
                    "}",
                    "Cache::tags([$this->cachePrefix])->flush();",
                ],
                "protected",
            )
        return methods


# ---------------------------------------------------------------------------
# actions
# ---------------------------------------------------------------------------

_EXECUTE_SIGNATURES: Dict[str, Tuple[str, ...]] = {
    "create": ("array $data",),
    "update": ("{model} ${var}", "array $data"),
    "delete": ("{model} ${var}",),
    "bulk_update": ("array $ids", "array $data"),
    "export": ("array $filters = []",),
    "import": ("UploadedFile $file",),
    "activate": ("{model} ${var}",),
    "deactivate": ("{model} ${var}",),
}

_EXECUTE_RETURNS: Dict[str, str] = {
    "create": "{model}",
    "update": "{model}",
    "delete": "bool",
    "bulk_update": "int",
    "export": "string",
    "import": "array",
    "activate": "bool",
    "deactivate": "bool",
}

_EXECUTE_LOGIC: Dict[str, Tuple[str, ...]] = {
    "create": ("${var} = {model}::create($data);", "return ${var};"),
    "update": ("${var}->update($data);", "return ${var};"),
    "delete": ("return ${var}->delete();",),
    "bulk_update": ("return {model}::whereIn('id', $ids)->update($data);",),
    "export": ("// Build the export for the filtered query", "return $path;"),
    "import": ("// Read and persist rows in batches", "return $summary;"),
    "activate": ("return ${var}->update(['{status}' => {on}]);",),
    "deactivate": ("return ${var}->update(['{status}' => {off}]);",),
}


class ActionGenerator(BaseGenerator):
    name = "actions"
    aliases = ("action",)
    description = "Single-purpose action classes: CRUD, bulk, status and custom actions."
    options_class = ActionOptions

    def build(self, schema: Schema, options: ActionOptions) -> Dict[str, Any]:
        model: str = schema.name
        planned: List[Tuple[str, str, str, List[str]]] = [
            (f"Create{model}Action", "create", f"Action for creating a new {model}", []),
            (f"Update{model}Action", "update", f"Action for updating an existing {model}", []),
            (f"Delete{model}Action", "delete", f"Action for deleting a {model}", []),
        ]
        if options.include_bulk_actions:
            planned += [
                (f"{model}BulkUpdateAction", "bulk_update",
                 f"Action for bulk updating {model} records", ["ShouldQueue"]),
                (f"{model}ExportAction", "export", f"Action for exporting {model} data", ["ShouldQueue"]),
                (f"{model}ImportAction", "import", f"Action for importing {model} data", ["ShouldQueue"]),
            ]
        status: Optional[str] = next((n for n in STATUS_FIELDS if n in schema.fields), None)
        if status is not None:
            planned += [
                (f"Activate{model}Action", "activate", f"Action for activating a {model}", []),
                (f"Deactivate{model}Action", "deactivate", f"Action for deactivating a {model}", []),
            ]
        for custom in options.custom_actions:
            planned.append(
                (
                    str(custom.get("name") or f"{model}CustomAction"),
                    "custom",
                    str(custom.get("description") or f"Custom action for {model}"),
                    list(custom.get("implements") or []),
                )
            )

        actions: Dict[str, Any] = {}
        for class_name, kind, text, implements in planned:
            actions[class_name] = {
                "class_name": class_name,
                "namespace": options.action_namespace,
                "model_class": schema.model_class,
                "type": kind,
                "description": text,
                "implements": implements,
                "properties": self._properties(kind, implements),
                "methods": {"execute": self._execute(schema, kind, status)},
            }
        return actions

    @staticmethod
    def _properties(kind: str, implements: List[str]) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        if "ShouldQueue" in implements:
            properties["queue"] = {"type": "string", "visibility": "public", "value": "default"}
            properties["timeout"] = {"type": "int", "visibility": "public", "value": 300}
        if kind == "export":
            properties["chunkSize"] = {"type": "int", "visibility": "protected", "value": 1000}
        elif kind == "import":
            properties["batchSize"] = {"type": "int", "visibility": "protected", "value": 500}
        return properties

    def _execute(self, schema: Schema, kind: str, status: Optional[str]) -> Dict[str, Any]:
        names: Dict[str, str] = {"model": schema.name, "var": _variable(schema), "status": status or "status"}
        status_field: Optional[Field] = schema.field(status) if status else None
        boolean: bool = (
            status_field is not None and self.resolver.for_field(status_field).type_id == "boolean"
        )
        names["on"] = "true" if boolean else "'active'"
        names["off"] = "false" if boolean else "'inactive'"

        if kind not in _EXECUTE_SIGNATURES:
            return _method(
                f"Execute the {schema.name} action.",
                ["array $data = []"],
                "mixed",
                ["// Implement custom action logic", "return true;"],
            )
        return _method(
            f"Execute the {kind.replace('_', ' ')} {schema.name} action.",
            [p.format(**names) for p in _EXECUTE_SIGNATURES[kind]],
            _EXECUTE_RETURNS[kind].format(**names),
            [line.format(**names) for line in _EXECUTE_LOGIC[kind]],
        )


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


class RuleGenerator(BaseGenerator):
    name = "rules"
    aliases = ("rule",)
    description = "Custom validation rule classes: unique, exists, business and custom rules."
    options_class = RuleOptions

    def build(self, schema: Schema, options: RuleOptions) -> Dict[str, Any]:
        model: str = schema.name
        rules: Dict[str, Any] = {}

        for fld in schema.fields.values():
            if not fld.unique:
                continue
            class_name: str = f"Unique{model}{to_pascal_case(fld.name)}Rule"
            rules[class_name] = self._rule(
                schema, options, class_name, "unique",
                f"Validation rule for unique {fld.name} in {model}",
                field=fld.name, related_table=schema.table,
                passes=[f"return ! {model}::where('{fld.name}', $value)->exists();"],
                message="The :attribute has already been taken.",
            )

        for column, table in self._foreign_keys(schema):
            stem: str = column[:-3] if column.endswith("_id") else column
            class_name = f"{to_pascal_case(stem)}ExistsRule"
            rules[class_name] = self._rule(
                schema, options, class_name, "exists",
                f"Validation rule for {column} existence in {table}",
                field=column, related_table=table,
                passes=[f"return DB::table('{table}')->where('id', $value)->exists();"],
                message="The selected :attribute is invalid.",
            )

        if options.include_business_rules:
            if _has_any_field(schema, STATUS_FIELDS):
                class_name = f"{model}StatusRule"
                rules[class_name] = self._rule(
                    schema, options, class_name, "status",
                    f"Business validation rule for {model} status transitions",
                    passes=["// Check the requested status transition is allowed", "return true;"],
                    message="The :attribute transition is not allowed.",
                )
            class_name = f"{model}PermissionRule"
            rules[class_name] = self._rule(
                schema, options, class_name, "permission",
                f"Permission validation rule for {model}",
                passes=[f"return auth()->user()?->can('update', {model}::class) ?? false;"],
                message="You are not allowed to set :attribute.",
            )

        for custom in options.custom_rules:
            class_name = str(custom.get("name") or f"{model}CustomRule")
            logic: Any = custom.get("logic")
            rules[class_name] = self._rule(
                schema, options, class_name, "custom",
                str(custom.get("description") or f"Custom validation rule for {model}"),
                passes=[str(logic)] if logic else ["// Implement custom validation", "return true;"],
                message=str(custom.get("message") or "The :attribute is invalid."),
                implements=list(custom.get("implements") or ["Rule"]),
            )
        return rules

    def _foreign_keys(self, schema: Schema) -> List[Tuple[str, str]]:
        keys: Dict[str, str] = {
            rel.resolved_foreign_key(schema.name): rel.target_table
            for rel in schema.relationships_of(RelationshipKind.BELONGS_TO)
        }
        for fld in schema.fields.values():
            if fld.name in keys:
                continue
            if self.resolver.for_field(fld).type_id == "foreignId":
                keys[fld.name] = foreign_table(fld)
        return list(keys.items())

    @staticmethod
    def _rule(
        schema: Schema,
        options: RuleOptions,
        class_name: str,
        kind: str,
        text: str,
        *,
        passes: List[str],
        message: str,
        field: Optional[str] = None,
        related_table: Optional[str] = None,
        implements: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        return {
            "class_name": class_name,
            "namespace": options.rule_namespace,
            "model_class": schema.model_class,
            "type": kind,
            "field": field,
            "related_table": related_table,
            "description": text,
            "implements": implements or ["Rule"],
            "methods": {
                "passes": _method(
                    "Determine if the validation rule passes.",
                    ["string $attribute", "mixed $value"],
                    "bool",
                    passes,
                ),
                "message": _method(
                    "Get the validation error message.", [], "string", [f"return '{message}';"]
                ),
            },
        }


SCAFFOLD_GENERATORS: Tuple[type, ...] = (
    ControllerGenerator,
    PolicyGenerator,
    ObserverGenerator,
    ServiceGenerator,
    ActionGenerator,
    RuleGenerator,
)

__all__: List[str] = [
    "ControllerGenerator",
    "PolicyGenerator",
    "ObserverGenerator",
    "ServiceGenerator",
    "ActionGenerator",
    "RuleGenerator",
    "SCAFFOLD_GENERATORS",
]

logger.debug("modelschema.scaffolding loaded, %d public symbols.", len(__all__))

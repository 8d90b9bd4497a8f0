# File: modelschema/builtin_plugins.py
"""
ModelSchema - Reference Field Type Plugins
===========================================
Two ready-to-register plugins that double as examples of the plugin
contract:

    url          web addresses with scheme / domain restrictions
    json_schema  JSON columns validated against an inline JSON Schema

Neither is registered automatically; hosts opt in with
``PluginManager.register(UrlFieldTypePlugin())`` or ``register_builtin_plugins``.
"""

from __future__ import annotations

import logging
import re
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple

from modelschema.models import Field
from modelschema.plugins import (
    AttributeValueType,
    CustomAttributeSpec,
    FieldTypePlugin,
    PluginManager,
)
from modelschema.registry import StorageMapping

logger: logging.Logger = logging.getLogger("modelschema.builtin_plugins")

_DOMAIN_RE: re.Pattern[str] = re.compile(
    r"^(\*\.)?([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$", re.IGNORECASE
)

_JSON_SCHEMA_TYPES: FrozenSet[str] = frozenset(
    {"object", "array", "string", "number", "integer", "boolean", "null"}
)


# ---------------------------------------------------------------------------
# Attribute validators (pure)
# ---------------------------------------------------------------------------


def validate_domains(value: Any) -> List[str]:
    errors: List[str] = []
    for domain in value:
        if not isinstance(domain, str) or not _DOMAIN_RE.match(domain):
            errors.append(f"'{domain}' is not a valid domain name")
    return errors


def validate_json_schema(value: Any, path: str = "$") -> List[str]:
    """Structural check of a JSON Schema document (subset: type/properties/items/required)."""
    errors: List[str] = []
    schema_type: Any = value.get("type")
    if schema_type is not None and schema_type not in _JSON_SCHEMA_TYPES:
        errors.append(f"{path}: unsupported type '{schema_type}'")

    properties: Any = value.get("properties")
    if properties is not None:
        if not isinstance(properties, Mapping):
            errors.append(f"{path}.properties must be a mapping")
        else:
            for name, sub in properties.items():
                if not isinstance(sub, Mapping):
                    errors.append(f"{path}.properties.{name} must be a mapping")
                else:
                    errors.extend(validate_json_schema(sub, f"{path}.properties.{name}"))

    required: Any = value.get("required")
    if required is not None:
        if not isinstance(required, list):
            errors.append(f"{path}.required must be a list")
        elif isinstance(properties, Mapping):
            for name in required:
                if name not in properties:
                    errors.append(f"{path}.required names unknown property '{name}'")

    items: Any = value.get("items")
    if items is not None:
        if isinstance(items, Mapping):
            errors.extend(validate_json_schema(items, f"{path}.items"))
        else:
            errors.append(f"{path}.items must be a mapping")
    return errors


def _domain_rule(rule: str):
    def build(value: Any) -> List[str]:
        return [f"{rule}:{','.join(value)}"] if value else []

    return build


# ---------------------------------------------------------------------------
# url
# ---------------------------------------------------------------------------


class UrlFieldTypePlugin(FieldTypePlugin):
    """URL field type: ``url`` / ``max:2048`` rules plus scheme and domain controls."""

    default_metadata: ClassVar[Dict[str, Any]] = {
        "version": "1.0.0",
        "author": "ModelSchema",
        "description": "URL field type with scheme, redirect and domain validation.",
    }

    ALLOWED_SCHEMES: ClassVar[Tuple[str, ...]] = ("http", "https", "ftp", "ftps", "file")

    def type_id(self) -> str:
        return "url"

    def aliases(self) -> List[str]:
        return ["website", "link", "uri"]

    def custom_attribute_specs(self) -> Dict[str, CustomAttributeSpec]:
        return {
            "schemes": CustomAttributeSpec(
                value_type=AttributeValueType.ARRAY,
                default=["http", "https"],
                allowed_values=self.ALLOWED_SCHEMES,
                transform=lambda v: sorted({str(s).lower() for s in v}),
                rules=lambda v: ["url"],
                description="Accepted URL schemes.",
            ),
            "verify_ssl": CustomAttributeSpec(
                value_type=AttributeValueType.BOOLEAN,
                default=True,
                description="Verify TLS certificates when probing the URL.",
            ),
            "allow_query_params": CustomAttributeSpec(
                value_type=AttributeValueType.BOOLEAN,
                default=True,
                description="Whether query strings are accepted.",
            ),
            "max_redirects": CustomAttributeSpec(
                value_type=AttributeValueType.INTEGER,
                default=3,
                min=0,
                max=10,
                description="Maximum redirects followed when probing.",
            ),
            "timeout": CustomAttributeSpec(
                value_type=AttributeValueType.INTEGER,
                default=30,
                min=1,
                max=300,
                description="Probe timeout in seconds.",
            ),
            "domain_whitelist": CustomAttributeSpec(
                value_type=AttributeValueType.ARRAY,
                validator=validate_domains,
                transform=lambda v: [str(d).lower() for d in v],
                rules=_domain_rule("domain_whitelist"),
                description="Only these domains are accepted.",
            ),
            "domain_blacklist": CustomAttributeSpec(
                value_type=AttributeValueType.ARRAY,
                validator=validate_domains,
                transform=lambda v: [str(d).lower() for d in v],
                rules=_domain_rule("domain_blacklist"),
                description="These domains are rejected.",
            ),
        }

    def base_rules(self, field: Field) -> List[str]:
        return ["url", "max:2048"]

    def storage_mapping(self, field: Field) -> StorageMapping:
        return StorageMapping("string", "varchar", length=field.length or 255)

    def cast_type(self, field: Field) -> Optional[str]:
        return "string"

    def api_type(self, field: Field) -> Tuple[str, Optional[str]]:
        return "string", "url"

    def faker(self, field: Field) -> str:
        return "fake()->url()"

    def sample_value(self, field: Field) -> Any:
        return "https://example.com"


# ---------------------------------------------------------------------------
# json_schema
# ---------------------------------------------------------------------------


class JsonSchemaFieldTypePlugin(FieldTypePlugin):
    """JSON column whose content is described by an inline JSON Schema."""

    default_metadata: ClassVar[Dict[str, Any]] = {
        "version": "1.0.0",
        "author": "ModelSchema",
        "description": "JSON field validated against an inline JSON Schema.",
    }

    def type_id(self) -> str:
        return "json_schema"

    def aliases(self) -> List[str]:
        return ["jsonschema", "structured_json"]

    def custom_attribute_specs(self) -> Dict[str, CustomAttributeSpec]:
        return {
            "schema": CustomAttributeSpec(
                value_type=AttributeValueType.OBJECT,
                validator=validate_json_schema,
                rules=lambda v: ["json_schema"],
                description="JSON Schema the stored document must satisfy.",
            ),
            "strict_validation": CustomAttributeSpec(
                value_type=AttributeValueType.BOOLEAN,
                default=False,
                description="Reject properties the schema does not declare.",
            ),
        }

    def base_rules(self, field: Field) -> List[str]:
        return ["json"]

    def storage_mapping(self, field: Field) -> StorageMapping:
        return StorageMapping("json", "json")

    def cast_type(self, field: Field) -> Optional[str]:
        return "array"

    def api_type(self, field: Field) -> Tuple[str, Optional[str]]:
        return "array", "json"

    def faker(self, field: Field) -> str:
        return "fake()->randomElement([[], ['key' => 'value']])"

    def sample_value(self, field: Field) -> Any:
        return {}


def register_builtin_plugins(manager: PluginManager) -> List[str]:
    """Register both reference plugins, skipping any already present."""
    registered: List[str] = []
    for plugin in (UrlFieldTypePlugin(), JsonSchemaFieldTypePlugin()):
        if plugin.type_id() in manager:
            continue
        manager.register(plugin)
        registered.append(plugin.type_id())
    return registered


__all__: List[str] = [
    "UrlFieldTypePlugin",
    "JsonSchemaFieldTypePlugin",
    "register_builtin_plugins",
    "validate_domains",
    "validate_json_schema",
]

logger.debug("modelschema.builtin_plugins loaded, %d public symbols.", len(__all__))

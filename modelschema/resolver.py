# File: modelschema/resolver.py
"""
ModelSchema - Type Resolution
==============================
Single place that turns a field's ``type`` string into behaviour.

Resolution order (generators and rule derivation both depend on it):

    1. PluginManager  (enabled plugins, by id or alias)
    2. TypeRegistry   (built-in ids and aliases)
    3. fallback       treat the type as ``string`` and log a warning,
                      or raise ``UnknownTypeError`` in strict mode
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from modelschema.exceptions import UnknownTypeError
from modelschema.models import Field
from modelschema.plugins import FieldTypePlugin, PluginManager
from modelschema.registry import BaseTypeDescriptor, StorageMapping, TypeRegistry

logger: logging.Logger = logging.getLogger("modelschema.resolver")

SOURCE_PLUGIN: str = "plugin"
SOURCE_BUILTIN: str = "builtin"
SOURCE_FALLBACK: str = "fallback"


@dataclass(frozen=True, slots=True)
class ResolvedType:
    """Uniform view over a plugin or a built-in descriptor."""

    type_id: str
    source: str
    plugin: Optional[FieldTypePlugin] = None
    descriptor: Optional[BaseTypeDescriptor] = None

    @property
    def category(self) -> str:
        if self.descriptor is not None and self.source == SOURCE_BUILTIN:
            return self.descriptor.category
        return "plugin" if self.plugin is not None else "string"

    def base_rules(self, field: Field) -> List[str]:
        if self.plugin is not None:
            return list(self.plugin.base_rules(field))
        return self.descriptor.rules_for(field) if self.descriptor else ["string"]

    def storage(self, field: Field) -> StorageMapping:
        if self.plugin is not None:
            return self.plugin.storage_mapping(field)
        return self.descriptor.storage if self.descriptor else StorageMapping("string", "varchar", 255)

    def cast(self, field: Field) -> Optional[str]:
        if self.plugin is not None:
            return self.plugin.cast_type(field)
        return self.descriptor.cast_for(field) if self.descriptor else None

    def api(self, field: Field) -> Tuple[str, Optional[str]]:
        if self.plugin is not None:
            return self.plugin.api_type(field)
        if self.descriptor is None:
            return "string", None
        return self.descriptor.api_type, self.descriptor.api_format

    def faker(self, field: Field) -> str:
        if self.plugin is not None:
            return self.plugin.faker(field)
        return self.descriptor.faker_for(field) if self.descriptor else "fake()->word()"

    def sample(self, field: Field) -> Any:
        if self.plugin is not None:
            return self.plugin.sample_value(field)
        return self.descriptor.sample_for(field) if self.descriptor else f"Sample {field.name}"


class TypeResolver:
    """Resolve type ids against plugins, then built-ins, then the fallback."""

    def __init__(
        self,
        plugins: Optional[PluginManager] = None,
        registry: Optional[TypeRegistry] = None,
        *,
        strict: bool = False,
    ) -> None:
        self.registry: TypeRegistry = registry or (plugins.registry if plugins else TypeRegistry())
        self.plugins: PluginManager = plugins or PluginManager(self.registry)
        self.strict: bool = strict

    def lookup(self, type_id: str) -> Optional[ResolvedType]:
        """Plugin or built-in resolution without the fallback step."""
        plugin: Optional[FieldTypePlugin] = self.plugins.resolve(type_id)
        if plugin is not None:
            return ResolvedType(plugin.type_id(), SOURCE_PLUGIN, plugin=plugin)
        desc: Optional[BaseTypeDescriptor] = self.registry.get(type_id)
        if desc is not None:
            return ResolvedType(desc.type_id, SOURCE_BUILTIN, descriptor=desc)
        return None

    def resolve(self, type_id: str, field_name: Optional[str] = None) -> ResolvedType:
        """
        Resolve ``type_id``; unknown types fall back to ``string``.

        Raises:
            UnknownTypeError: only when ``strict`` is set.
        """
        found: Optional[ResolvedType] = self.lookup(type_id)
        if found is not None:
            return found
        if self.strict:
            raise UnknownTypeError(type_id, field_name)
        logger.warning(
            "Unknown field type '%s'%s; treating it as string.",
            type_id,
            f" (field '{field_name}')" if field_name else "",
        )
        return ResolvedType(type_id, SOURCE_FALLBACK, descriptor=self.registry.get("string"))

    def for_field(self, field: Field) -> ResolvedType:
        return self.resolve(field.type, field.name)

    def is_known(self, type_id: str) -> bool:
        return self.lookup(type_id) is not None

    def canonical(self, type_id: str) -> Optional[str]:
        found: Optional[ResolvedType] = self.lookup(type_id)
        return found.type_id if found else None

    def supported_types(self) -> List[str]:
        return sorted(set(self.registry.type_ids()) | set(self.plugins.enabled_plugins()))

    def __repr__(self) -> str:
        return f"<TypeResolver strict={self.strict} {self.plugins!r} {self.registry!r}>"


__all__: List[str] = [
    "SOURCE_PLUGIN",
    "SOURCE_BUILTIN",
    "SOURCE_FALLBACK",
    "ResolvedType",
    "TypeResolver",
]

logger.debug("modelschema.resolver loaded, %d public symbols.", len(__all__))

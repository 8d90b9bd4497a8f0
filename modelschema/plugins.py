# File: modelschema/plugins.py
"""
ModelSchema - Field Type Plugins
=================================
Extension mechanism that lets a field *type* carry its own validation,
storage and casting behaviour plus declaratively validated custom
attributes.

Building blocks:

    CustomAttributeSpec   one configurable attribute (value type, bounds,
                          allowed values, validator / transform callables,
                          optional rule-derivation hook)
    FieldTypePlugin       abstract capability bundle registered under a
                          type id and any number of aliases
    PluginManager         alias-aware registry with conflict detection,
                          dependency checks, enable/disable, discovery

Registration is all-or-nothing: every identifier is checked before the
index is touched, so a ``DuplicateTypeError`` leaves the manager exactly
as it was.
"""

from __future__ import annotations

import abc
import glob
import importlib
import importlib.util
import inspect
import logging
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from modelschema.exceptions import (
    DuplicateTypeError,
    PluginDependencyError,
    PluginLoadError,
    UnknownTypeError,
)
from modelschema.models import Field
from modelschema.registry import StorageMapping, TypeRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.plugins")

_TYPE_ID_RE: re.Pattern[str] = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

# Attribute names whose *value* is itself a lower / upper bound rule
_MIN_VALUE_ATTRIBUTES: Tuple[str, ...] = ("min", "min_length", "min_size")
_MAX_VALUE_ATTRIBUTES: Tuple[str, ...] = ("max", "max_length", "max_size")


# ---------------------------------------------------------------------------
# Custom attribute specification
# ---------------------------------------------------------------------------


class AttributeValueType(str, Enum):
    """Value types a custom attribute may declare."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


def _matches_type(value: Any, value_type: AttributeValueType) -> bool:
    if value_type is AttributeValueType.BOOLEAN:
        return isinstance(value, bool)
    if value_type is AttributeValueType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if value_type is AttributeValueType.FLOAT:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type is AttributeValueType.STRING:
        return isinstance(value, str)
    if value_type is AttributeValueType.ARRAY:
        return isinstance(value, (list, tuple))
    return isinstance(value, Mapping)


def format_number(value: Any) -> str:
    """``10`` → ``"10"``, ``10.0`` → ``"10"``, ``2.5`` → ``"2.5"``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True, slots=True)
class CustomAttributeSpec:
    """
    Declarative description of one plugin attribute.

    ``validator`` and ``transform`` must be pure.  When ``required`` is
    true the ``default`` is ignored.  ``rules`` overrides the generic
    value → validation-rule translation done by ``derive_rules``.
    """

    value_type: AttributeValueType = AttributeValueType.STRING
    required: bool = False
    default: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    allowed_values: Optional[Tuple[Any, ...]] = None
    validator: Optional[Callable[[Any], List[str]]] = None
    transform: Optional[Callable[[Any], Any]] = None
    rules: Optional[Callable[[Any], List[str]]] = None
    description: str = ""

    @property
    def effective_default(self) -> Any:
        return None if self.required else self.default

    @property
    def is_numeric(self) -> bool:
        return self.value_type in (AttributeValueType.INTEGER, AttributeValueType.FLOAT)

    def check(self, name: str, value: Any) -> List[str]:
        """Validate ``value``; returns error strings (empty when valid)."""
        vt: AttributeValueType = AttributeValueType(self.value_type)
        if not _matches_type(value, vt):
            return [f"attribute '{name}' must be of type {vt.value}, got {type(value).__name__}"]

        errors: List[str] = []
        if self.is_numeric:
            if self.min is not None and value < self.min:
                errors.append(f"attribute '{name}' must be >= {format_number(self.min)}")
            if self.max is not None and value > self.max:
                errors.append(f"attribute '{name}' must be <= {format_number(self.max)}")

        if self.allowed_values is not None:
            candidates: Sequence[Any] = value if vt is AttributeValueType.ARRAY else [value]
            invalid: List[str] = [str(v) for v in candidates if v not in self.allowed_values]
            if invalid:
                allowed: str = ", ".join(str(v) for v in self.allowed_values)
                errors.append(
                    f"attribute '{name}' has invalid value(s) {', '.join(invalid)}; allowed: {allowed}"
                )

        if not errors and self.validator is not None:
            errors.extend(f"attribute '{name}': {msg}" for msg in self.validator(value))
        return errors

    def normalize(self, value: Any) -> Any:
        return self.transform(value) if self.transform is not None else value

    def derive_rules(self, name: str, value: Any) -> List[str]:
        """Translate a valid attribute value into validation rules."""
        if self.rules is not None:
            return [str(r) for r in self.rules(value)]

        rules: List[str] = []
        numeric_value: bool = isinstance(value, (int, float)) and not isinstance(value, bool)
        if name in _MIN_VALUE_ATTRIBUTES and numeric_value:
            return [f"min:{format_number(value)}"]
        if name in _MAX_VALUE_ATTRIBUTES and numeric_value:
            return [f"max:{format_number(value)}"]

        if AttributeValueType(self.value_type) is AttributeValueType.BOOLEAN:
            rules.append("boolean")
        if self.is_numeric:
            if self.min is not None:
                rules.append(f"min:{format_number(self.min)}")
            if self.max is not None:
                rules.append(f"max:{format_number(self.max)}")
        if self.allowed_values and AttributeValueType(self.value_type) is not AttributeValueType.ARRAY:
            rules.append("in:" + ",".join(str(v) for v in self.allowed_values))
        return rules

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe summary (callables reported as flags)."""
        out: Dict[str, Any] = {
            "type": AttributeValueType(self.value_type).value,
            "required": self.required,
            "description": self.description,
        }
        if not self.required and self.default is not None:
            out["default"] = self.default
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        if self.allowed_values is not None:
            out["enum"] = list(self.allowed_values)
        out["has_validator"] = self.validator is not None
        out["has_transform"] = self.transform is not None
        return out


# ---------------------------------------------------------------------------
# Plugin contract
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PluginMetadata:
    """Descriptive, non-behavioural plugin information."""

    version: str = "1.0.0"
    author: str = ""
    description: str = ""
    enabled: bool = True
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "enabled": self.enabled,
            "dependencies": list(self.dependencies),
        }


class FieldTypePlugin(abc.ABC):
    """
    Base class for field type plugins.

    Subclasses must implement ``type_id`` and ``base_rules``; everything
    else has a string-like default.  ``config`` is free-form per-instance
    configuration (``PluginManager.load_from_config`` passes it through).
    """

    default_metadata: ClassVar[Dict[str, Any]] = {}

    def __init__(
        self,
        metadata: Optional[PluginMetadata] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._metadata: PluginMetadata = metadata or PluginMetadata(**self.default_metadata)
        self._config: Dict[str, Any] = dict(config or {})

    # -- Identity -----------------------------------------------------------

    @abc.abstractmethod
    def type_id(self) -> str:
        """Canonical type identifier."""

    def aliases(self) -> List[str]:
        return []

    def identifiers(self) -> List[str]:
        return [self.type_id(), *self.aliases()]

    # -- Behaviour hooks ----------------------------------------------------

    def custom_attribute_specs(self) -> Dict[str, CustomAttributeSpec]:
        return {}

    @abc.abstractmethod
    def base_rules(self, field: Field) -> List[str]:
        """Validation rules every field of this type gets."""

    def storage_mapping(self, field: Field) -> StorageMapping:
        return StorageMapping("string", "varchar", length=field.length or 255)

    def cast_type(self, field: Field) -> Optional[str]:
        return None

    def api_type(self, field: Field) -> Tuple[str, Optional[str]]:
        """(wire type, format) used by the API-transform generator."""
        return "string", None

    def faker(self, field: Field) -> str:
        return "fake()->word()"

    def sample_value(self, field: Field) -> Any:
        return f"Sample {field.name}"

    def resolve_attributes(self, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        """Attributes with spec defaults filled in and transforms applied."""
        resolved: Dict[str, Any] = dict(attributes)
        for name, spec in self.custom_attribute_specs().items():
            if name in resolved:
                resolved[name] = spec.normalize(resolved[name])
            elif spec.effective_default is not None:
                resolved[name] = spec.effective_default
        return resolved

    def validate_plugin(self) -> List[str]:
        """Self-check; returns error strings (empty when the plugin is sound)."""
        errors: List[str] = []
        type_id: str = self.type_id()
        if not type_id or not _TYPE_ID_RE.match(type_id):
            errors.append(f"Invalid type id {type_id!r}.")
        idents: List[str] = self.identifiers()
        if len(set(idents)) != len(idents):
            errors.append(f"Plugin '{type_id}' repeats an identifier in its aliases.")
        for alias in self.aliases():
            if not _TYPE_ID_RE.match(alias):
                errors.append(f"Invalid alias {alias!r} for plugin '{type_id}'.")
        for name, spec in self.custom_attribute_specs().items():
            if spec.min is not None and spec.max is not None and spec.min > spec.max:
                errors.append(f"Attribute '{name}': min is greater than max.")
            default: Any = spec.effective_default
            if default is not None and spec.check(name, default):
                errors.append(f"Attribute '{name}': default {default!r} fails its own spec.")
        return errors

    # -- Metadata -----------------------------------------------------------

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    @property
    def enabled(self) -> bool:
        return self._metadata.enabled

    @property
    def config(self) -> Dict[str, Any]:
        return dict(self._config)

    def config_value(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def describe(self) -> Dict[str, Any]:
        return {
            "type": self.type_id(),
            "aliases": self.aliases(),
            "class": f"{type(self).__module__}.{type(self).__qualname__}",
            **self._metadata.to_dict(),
            "custom_attributes": {
                name: spec.to_dict() for name, spec in self.custom_attribute_specs().items()
            },
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} type={self.type_id()!r} aliases={self.aliases()!r}>"


# ---------------------------------------------------------------------------
# Plugin manager
# ---------------------------------------------------------------------------


class PluginManager:
    """
    Alias-aware plugin registry.

    Usage::

        manager = PluginManager()
        manager.register(UrlFieldTypePlugin())
        manager.resolve("website")   # -> the url plugin
    """

    def __init__(self, registry: Optional[TypeRegistry] = None) -> None:
        self._registry: TypeRegistry = registry or TypeRegistry()
        self._plugins: Dict[str, FieldTypePlugin] = {}
        self._index: Dict[str, str] = {}
        logger.debug("PluginManager initialised.")

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    # -- Registration -------------------------------------------------------

    def register(self, plugin: FieldTypePlugin) -> FieldTypePlugin:
        """
        Register ``plugin`` under its type id and aliases.

        Raises:
            DuplicateTypeError: an identifier is already taken by a plugin
                or a built-in type, or the plugin repeats one itself.
            PluginDependencyError: a declared dependency does not resolve.
            PluginLoadError: the plugin fails its own ``validate_plugin``.
        """
        type_id: str = plugin.type_id()
        identifiers: List[str] = plugin.identifiers()

        seen: Dict[str, str] = {}
        for ident in identifiers:
            folded: str = ident.lower()
            if folded in seen:
                raise DuplicateTypeError(ident, f"plugin '{type_id}' itself")
            seen[folded] = ident
            owner: Optional[str] = self._index.get(folded)
            if owner is not None:
                raise DuplicateTypeError(ident, f"plugin '{owner}'")
            builtin: Optional[str] = self._registry.owner_of(ident)
            if builtin is not None:
                raise DuplicateTypeError(ident, f"built-in type '{builtin}'")

        problems: List[str] = plugin.validate_plugin()
        if problems:
            raise PluginLoadError(f"Plugin '{type_id}' is invalid: {'; '.join(problems)}")

        missing: List[str] = [
            dep for dep in plugin.metadata.dependencies
            if dep.lower() not in self._index and not self._registry.has(dep)
        ]
        if missing:
            raise PluginDependencyError(type_id, missing)

        self._plugins[type_id] = plugin
        for ident in identifiers:
            self._index[ident.lower()] = type_id

        logger.info(
            "Registered field type plugin '%s' (aliases: %s).",
            type_id,
            ", ".join(plugin.aliases()) or "none",
        )
        return plugin

    def unregister(self, type_id: str) -> FieldTypePlugin:
        """Remove a plugin and all of its aliases; returns the plugin."""
        canonical: Optional[str] = self._index.get(type_id.lower())
        if canonical is None:
            raise UnknownTypeError(type_id)
        dependants: List[str] = [
            other for other, p in self._plugins.items()
            if other != canonical and canonical in p.metadata.dependencies
        ]
        if dependants:
            raise PluginDependencyError(", ".join(dependants), [canonical])
        plugin: FieldTypePlugin = self._plugins.pop(canonical)
        for ident in plugin.identifiers():
            self._index.pop(ident.lower(), None)
        logger.info("Unregistered field type plugin '%s'.", canonical)
        return plugin

    # -- Lookup -------------------------------------------------------------

    def get(self, identifier: str) -> Optional[FieldTypePlugin]:
        """Plugin for ``identifier`` regardless of its enabled flag."""
        canonical: Optional[str] = self._index.get(identifier.lower())
        return self._plugins.get(canonical) if canonical else None

    def resolve(self, identifier: str) -> Optional[FieldTypePlugin]:
        """Enabled plugin registered under ``identifier`` (id or alias), else None."""
        plugin: Optional[FieldTypePlugin] = self.get(identifier)
        if plugin is None or not plugin.enabled:
            return None
        return plugin

    def has(self, identifier: str) -> bool:
        return self.resolve(identifier) is not None

    def plugins(self) -> Dict[str, FieldTypePlugin]:
        return dict(self._plugins)

    def enabled_plugins(self) -> Dict[str, FieldTypePlugin]:
        return {k: p for k, p in self._plugins.items() if p.enabled}

    def _require(self, type_id: str) -> FieldTypePlugin:
        plugin: Optional[FieldTypePlugin] = self.get(type_id)
        if plugin is None:
            raise UnknownTypeError(type_id)
        return plugin

    def enable(self, type_id: str) -> None:
        self._require(type_id).metadata.enabled = True
        logger.debug("Plugin '%s' enabled.", type_id)

    def disable(self, type_id: str) -> None:
        self._require(type_id).metadata.enabled = False
        logger.debug("Plugin '%s' disabled.", type_id)

    def metadata(self, type_id: str) -> Dict[str, Any]:
        return self._require(type_id).describe()

    def all_metadata(self) -> Dict[str, Dict[str, Any]]:
        return {type_id: plugin.describe() for type_id, plugin in self._plugins.items()}

    # -- Discovery ----------------------------------------------------------

    def discover(self, patterns: Sequence[str]) -> List[str]:
        """
        Import modules and register every concrete plugin class they define.

        Each pattern is either a dotted module name (``myapp.field_types``)
        or a filesystem glob of ``.py`` files (``plugins/*.py``).  Plugins
        whose type id is already registered are skipped.

        Returns:
            Type ids registered by this call, in discovery order.

        Raises:
            PluginLoadError: a module cannot be imported or a class cannot
                be instantiated without arguments.
        """
        registered: List[str] = []
        for pattern in patterns:
            for module in self._import_pattern(pattern):
                for plugin_cls in _plugin_classes(module):
                    try:
                        plugin: FieldTypePlugin = plugin_cls()
                    except TypeError as exc:
                        raise PluginLoadError(
                            f"Cannot instantiate plugin class {plugin_cls.__qualname__}: {exc}"
                        ) from exc
                    if self.get(plugin.type_id()) is not None:
                        logger.debug("Plugin '%s' already registered, skipping.", plugin.type_id())
                        continue
                    self.register(plugin)
                    registered.append(plugin.type_id())
        logger.info("Plugin discovery registered %d plugin(s).", len(registered))
        return registered

    def _import_pattern(self, pattern: str) -> List[ModuleType]:
        if pattern.endswith(".py") or any(ch in pattern for ch in "*?[/\\"):
            paths: List[str] = sorted(glob.glob(pattern))
            if Path(pattern).is_dir():
                paths = sorted(glob.glob(str(Path(pattern) / "*.py")))
            return [_import_file(Path(p)) for p in paths if not Path(p).name.startswith("_")]
        try:
            return [importlib.import_module(pattern)]
        except ImportError as exc:
            raise PluginLoadError(f"Cannot import plugin module '{pattern}': {exc}") from exc

    def load_from_config(self, entries: Sequence[Mapping[str, Any]]) -> List[str]:
        """
        Register plugins described as configuration entries::

            - class: "myapp.types:MoneyFieldTypePlugin"
              enabled: true
              config: {currency: EUR}

        Returns the registered type ids.
        """
        registered: List[str] = []
        for entry in entries:
            ref: Any = entry.get("class")
            if not isinstance(ref, str) or not ref:
                raise PluginLoadError(f"Plugin entry without a 'class' reference: {dict(entry)!r}")
            plugin_cls: type = _import_class(ref)
            metadata: PluginMetadata = PluginMetadata(
                **{**getattr(plugin_cls, "default_metadata", {}), **dict(entry.get("metadata") or {})}
            )
            metadata.enabled = bool(entry.get("enabled", metadata.enabled))
            try:
                plugin: FieldTypePlugin = plugin_cls(metadata=metadata, config=entry.get("config"))
            except TypeError as exc:
                raise PluginLoadError(f"Cannot instantiate plugin '{ref}': {exc}") from exc
            self.register(plugin)
            registered.append(plugin.type_id())
        return registered

    # -- Dunder -------------------------------------------------------------

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.get(identifier) is not None

    def __iter__(self) -> Iterator[FieldTypePlugin]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        return f"<PluginManager plugins={len(self._plugins)} identifiers={len(self._index)}>"


# ---------------------------------------------------------------------------
# Import helpers
# ---------------------------------------------------------------------------


def _plugin_classes(module: ModuleType) -> List[type]:
    """Concrete FieldTypePlugin subclasses defined in ``module`` itself."""
    found: List[type] = []
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if (
            issubclass(obj, FieldTypePlugin)
            and obj is not FieldTypePlugin
            and not inspect.isabstract(obj)
            and obj.__module__ == module.__name__
        ):
            found.append(obj)
    return found


def _import_file(path: Path) -> ModuleType:
    module_name: str = f"modelschema_plugin_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Cannot load plugin file {path}.")
    module: ModuleType = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise PluginLoadError(f"Error while executing plugin file {path}: {exc}") from exc
    logger.debug("Imported plugin file %s as %s.", path, module_name)
    return module


def _import_class(ref: str) -> type:
    """Import ``pkg.mod:Cls`` or ``pkg.mod.Cls``."""
    module_name, _, class_name = ref.partition(":") if ":" in ref else ref.rpartition(".")
    if not module_name or not class_name:
        raise PluginLoadError(f"Malformed plugin class reference '{ref}'.")
    try:
        module: ModuleType = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginLoadError(f"Cannot import plugin module '{module_name}': {exc}") from exc
    plugin_cls: Any = getattr(module, class_name, None)
    if not (inspect.isclass(plugin_cls) and issubclass(plugin_cls, FieldTypePlugin)):
        raise PluginLoadError(f"'{ref}' is not a FieldTypePlugin subclass.")
    return plugin_cls


__all__: List[str] = [
    "AttributeValueType",
    "CustomAttributeSpec",
    "PluginMetadata",
    "FieldTypePlugin",
    "PluginManager",
    "format_number",
]

logger.debug("modelschema.plugins loaded, %d public symbols.", len(__all__))

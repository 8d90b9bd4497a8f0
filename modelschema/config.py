# File: modelschema/config.py
"""
ModelSchema - Generation Settings & Options
============================================
Typed replacements for the loose option maps generators receive.

``GenerationSettings`` holds engine-wide policy (strict type resolution,
update-rule placeholder, serialisation indents).  Every generator family
owns a small options struct; all of them ignore unknown keys so a single
flat ``options`` mapping can be handed to a whole batch::

    service.generate_all(schema, options={"seeder_count": 25, "enhanced": False})

Values that do not validate raise ``pydantic.ValidationError`` from inside
the generator, where ``GenerationService.generate_all`` isolates them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.config")

_OPTIONS_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

OptionsT = TypeVar("OptionsT", bound="GeneratorOptions")


# ---------------------------------------------------------------------------
# Engine-wide settings
# ---------------------------------------------------------------------------


class GenerationSettings(BaseModel):
    """Policy shared by rule derivation, generators and serialisation."""

    model_config = ConfigDict(strict=False, frozen=True, extra="forbid")

    strict_types: bool = Field(
        default=False,
        description="Raise UnknownTypeError instead of treating unknown types as string.",
    )
    update_placeholder: str = Field(
        default="{id}",
        min_length=1,
        description="Token appended to unique rules in update context.",
    )
    json_indent: int = Field(default=2, ge=0, le=8, description="JSON fragment indent.")
    yaml_indent: int = Field(default=2, ge=2, le=8, description="YAML fragment indent.")


# ---------------------------------------------------------------------------
# Per-family options
# ---------------------------------------------------------------------------


class GeneratorOptions(BaseModel):
    """Base class; ``from_options`` accepts None, a mapping or an instance."""

    model_config = _OPTIONS_CONFIG

    @classmethod
    def from_options(cls: Type[OptionsT], options: Any = None) -> OptionsT:
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, BaseModel):
            options = options.model_dump()
        if not isinstance(options, Mapping):
            raise TypeError(
                f"{cls.__name__} expects a mapping of options, got {type(options).__name__}."
            )
        return cls.model_validate(dict(options))


class ModelOptions(GeneratorOptions):
    model_namespace: Optional[str] = Field(
        default=None, description="Overrides the schema's own namespace."
    )
    hidden: List[str] = Field(
        default_factory=lambda: ["password", "remember_token"],
        description="Attributes hidden from serialisation when present.",
    )


class MigrationOptions(GeneratorOptions):
    include_timestamps: Optional[bool] = Field(
        default=None, description="None follows the schema's timestamps option."
    )
    include_soft_deletes: Optional[bool] = Field(
        default=None, description="None follows the schema's soft_deletes option."
    )
    on_delete: str = Field(default="cascade", description="FK ON DELETE action.")
    on_update: str = Field(default="cascade", description="FK ON UPDATE action.")


class RequestOptions(GeneratorOptions):
    requests_namespace: str = Field(default="App\\Http\\Requests")
    enhanced: bool = Field(default=True, description="Full structure vs. simple pair.")
    enable_authorization: bool = Field(default=True)
    custom_validation_rules: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="{'store': {field: rules}, 'update': {field: rules}} overrides.",
    )
    custom_messages: Dict[str, str] = Field(default_factory=dict)
    custom_authorization: Dict[str, List[str]] = Field(
        default_factory=dict, description="Per-request authorize() body override."
    )
    custom_requests: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Extra request classes keyed by request name."
    )


class ResourceOptions(GeneratorOptions):
    namespace: str = Field(default="App\\Http\\Resources")
    enhanced: bool = Field(default=True, description="Full structure vs. simple pair.")
    include_hidden: bool = Field(default=False)
    include_timestamps: bool = Field(default=True)
    field_transformations: Dict[str, Any] = Field(default_factory=dict)
    relation_limit: int = Field(default=10, ge=1)
    per_page: int = Field(default=15, ge=1)
    max_per_page: int = Field(default=100, ge=1)
    enable_filtering: bool = Field(default=True)
    enable_sorting: bool = Field(default=True)
    default_sort: str = Field(default="created_at")
    default_direction: str = Field(default="desc", pattern=r"^(asc|desc)$")
    eager_load: bool = Field(default=False)


class FactoryOptions(GeneratorOptions):
    factory_namespace: str = Field(default="Database\\Factories")


class SeederOptions(GeneratorOptions):
    seeder_namespace: str = Field(default="Database\\Seeders")
    seeder_count: int = Field(default=10, ge=0)
    create_sample_data: bool = Field(default=False)


class ControllerOptions(GeneratorOptions):
    api_controller_namespace: str = Field(default="App\\Http\\Controllers\\Api")
    web_controller_namespace: str = Field(default="App\\Http\\Controllers")
    route_prefix: str = Field(default="")
    authorization_enabled: bool = Field(default=True)
    include_web: bool = Field(default=True)


class PolicyOptions(GeneratorOptions):
    policy_namespace: str = Field(default="App\\Policies")
    middleware: List[str] = Field(default_factory=lambda: ["auth", "verified"])
    include_gates: bool = Field(default=True)


OBSERVER_EVENTS: List[str] = [
    "retrieved",
    "creating",
    "created",
    "updating",
    "updated",
    "saving",
    "saved",
    "deleting",
    "deleted",
]
SOFT_DELETE_EVENTS: List[str] = ["restoring", "restored", "forceDeleted"]


class ObserverOptions(GeneratorOptions):
    observer_namespace: str = Field(default="App\\Observers")
    observe: Dict[str, bool] = Field(
        default_factory=dict,
        description="Per-event switch; events not listed are observed.",
    )

    def observes(self, event: str) -> bool:
        return bool(self.observe.get(event, True))


class ServiceOptions(GeneratorOptions):
    service_namespace: str = Field(default="App\\Services")
    repository_class: Optional[str] = Field(default=None)
    implements: List[str] = Field(default_factory=list)
    enable_caching: bool = Field(default=True)
    cache_ttl: int = Field(default=3600, ge=0)


class ActionOptions(GeneratorOptions):
    action_namespace: str = Field(default="App\\Actions")
    include_bulk_actions: bool = Field(default=True)
    custom_actions: List[Dict[str, Any]] = Field(default_factory=list)


class RuleOptions(GeneratorOptions):
    rule_namespace: str = Field(default="App\\Rules")
    include_business_rules: bool = Field(default=True)
    custom_rules: List[Dict[str, Any]] = Field(default_factory=list)


__all__: List[str] = [
    "GenerationSettings",
    "GeneratorOptions",
    "ModelOptions",
    "MigrationOptions",
    "RequestOptions",
    "ResourceOptions",
    "FactoryOptions",
    "SeederOptions",
    "ControllerOptions",
    "PolicyOptions",
    "ObserverOptions",
    "ServiceOptions",
    "ActionOptions",
    "RuleOptions",
    "OBSERVER_EVENTS",
    "SOFT_DELETE_EVENTS",
]

logger.debug("modelschema.config loaded, %d public symbols.", len(__all__))

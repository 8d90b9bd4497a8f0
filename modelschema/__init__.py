# File: modelschema/__init__.py
"""
ModelSchema - Schema-Driven Fragment Generator
================================================

Turns a model schema (fields, relationships, options) into independently
generated structured fragments: model, migration, requests, resources,
factory, seeder, controllers, policies, observers, services, actions and
rules.  Field types are extensible through plugins that carry their own
validation, storage and casting behaviour plus configurable attributes.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌───────────────────┐
    │  CLI / Entry │────▶│ SchemaPipeline │────▶│ GenerationService │
    │   (cli.py)   │     │ (pipeline.py)  │     │   (service.py)    │
    └──────────────┘     └───────┬────────┘     └─────────┬─────────┘
                                 │                        │
                    ┌────────────┼────────────┐           ▼
                    ▼            ▼            ▼     generators.py
             ┌──────────┐ ┌───────────┐ ┌──────────┐ scaffolding.py
             │ splitter │ │ validation│ │ resolver │
             │ loader   │ │  (.py)    │ │ plugins  │
             └──────────┘ └───────────┘ └──────────┘

Usage::

    # As a library
    from modelschema import GenerationService, Schema
    schema = Schema.from_dict({"model": "Post", "fields": {...}})
    batch = GenerationService().generate_all(schema, ["migration", "requests"])

    # From the command line
    python -m modelschema --schema post.yaml -g migration,requests
"""

from __future__ import annotations

__version__: str = "1.0.0"
__author__: str = "ModelSchema Team"
__license__: str = "MIT"

from modelschema.exceptions import (
    DuplicateTypeError,
    ModelSchemaError,
    PluginDependencyError,
    PluginLoadError,
    SchemaConstructionError,
    SchemaParseError,
    UnknownGeneratorError,
    UnknownTypeError,
)
from modelschema.models import Field, Relationship, RelationshipKind, Schema, SchemaOptions
from modelschema.registry import TypeRegistry
from modelschema.plugins import (
    AttributeValueType,
    CustomAttributeSpec,
    FieldTypePlugin,
    PluginManager,
    PluginMetadata,
)
from modelschema.builtin_plugins import (
    JsonSchemaFieldTypePlugin,
    UrlFieldTypePlugin,
    register_builtin_plugins,
)
from modelschema.resolver import ResolvedType, TypeResolver
from modelschema.config import GenerationSettings
from modelschema.validation import (
    AutoValidationService,
    RuleContext,
    RuleSet,
    ValidationResult,
    validate_schema,
)
from modelschema.fragments import BaseGenerator, Fragment
from modelschema.service import GenerationBatch, GenerationService
from modelschema.splitter import SplitDocument, merge, split
from modelschema.loader import build_schema, load_file, parse_text
from modelschema.pipeline import PipelineReport, SchemaPipeline
from modelschema.exporters import ExportManifest, ExportResult, FragmentExporter

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Errors
    "ModelSchemaError",
    "SchemaParseError",
    "SchemaConstructionError",
    "UnknownTypeError",
    "DuplicateTypeError",
    "PluginDependencyError",
    "PluginLoadError",
    "UnknownGeneratorError",
    # Models
    "Field",
    "Relationship",
    "RelationshipKind",
    "Schema",
    "SchemaOptions",
    # Types & plugins
    "TypeRegistry",
    "AttributeValueType",
    "CustomAttributeSpec",
    "FieldTypePlugin",
    "PluginManager",
    "PluginMetadata",
    "UrlFieldTypePlugin",
    "JsonSchemaFieldTypePlugin",
    "register_builtin_plugins",
    "ResolvedType",
    "TypeResolver",
    # Rules & validation
    "GenerationSettings",
    "AutoValidationService",
    "RuleContext",
    "RuleSet",
    "ValidationResult",
    "validate_schema",
    # Generation
    "BaseGenerator",
    "Fragment",
    "GenerationBatch",
    "GenerationService",
    # Documents
    "SplitDocument",
    "split",
    "merge",
    "build_schema",
    "load_file",
    "parse_text",
    # Pipeline & export
    "PipelineReport",
    "SchemaPipeline",
    "ExportManifest",
    "ExportResult",
    "FragmentExporter",
]

"""
tests/test_pipeline.py
Integration tests for modelschema.loader and modelschema.pipeline.

Tests cover:
- Parsing JSON / YAML text and files, and the errors for bad input
- Schema construction with alias canonicalisation and unknown types
- The full Parse → Split → Construct → Validate → Generate run
- Input errors, validation failures and generation errors in the report
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from modelschema.builtin_plugins import register_builtin_plugins
from modelschema.config import GenerationSettings
from modelschema.exceptions import SchemaParseError, UnknownTypeError
from modelschema.loader import build_schema, dump_schema, load_file, parse_text
from modelschema.models import Schema
from modelschema.pipeline import SchemaPipeline
from modelschema.plugins import PluginManager
from modelschema.resolver import TypeResolver


# ===========================================================================
# Loader
# ===========================================================================


class TestParseText:
    """Tests for parse_text."""

    def test_json(self) -> None:
        assert parse_text('{"model": "Tag"}', "json") == {"model": "Tag"}

    def test_yaml(self) -> None:
        assert parse_text("model: Tag\nfields:\n  label: string\n", "yaml") == {
            "model": "Tag",
            "fields": {"label": "string"},
        }

    def test_auto_falls_back_to_yaml(self) -> None:
        assert parse_text("model: Tag") == {"model": "Tag"}

    def test_malformed(self) -> None:
        with pytest.raises(SchemaParseError):
            parse_text("{broken", "json")
        with pytest.raises(SchemaParseError):
            parse_text("model: [unclosed", "yaml")

    def test_non_mapping_top_level(self) -> None:
        with pytest.raises(SchemaParseError, match="mapping"):
            parse_text("- a\n- b\n")

    def test_unsupported_format(self) -> None:
        with pytest.raises(ValueError):
            parse_text("{}", "toml")


class TestLoadFile:
    """Tests for load_file."""

    def test_yaml_file(self, post_yaml_path: pathlib.Path, post_schema_dict: Dict[str, Any]) -> None:
        assert load_file(post_yaml_path) == post_schema_dict

    def test_json_file(self, tmp_path: pathlib.Path, user_schema_dict: Dict[str, Any]) -> None:
        path = tmp_path / "user.json"
        path.write_text(json.dumps(user_schema_dict), encoding="utf-8")
        assert load_file(path) == user_schema_dict

    def test_unknown_extension(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "tag.schema"
        path.write_text("model: Tag\nfields: {label: string}\n", encoding="utf-8")
        assert load_file(path)["model"] == "Tag"

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SchemaParseError, match="not found"):
            load_file(tmp_path / "nope.yaml")


class TestBuildSchema:
    """Tests for build_schema and dump_schema."""

    def test_aliases_canonicalised(self, resolver: TypeResolver) -> None:
        schema = build_schema(
            {"model": "Profile", "fields": {"age": "INT", "homepage": "website", "bio": "text"}},
            resolver,
        )
        assert [f.type for f in schema.fields.values()] == ["integer", "url", "text"]

    def test_unknown_type_rejected(self, resolver: TypeResolver) -> None:
        with pytest.raises(UnknownTypeError) as exc_info:
            build_schema({"model": "Shape", "fields": {"outline": "hologram"}}, resolver)
        assert exc_info.value.field_name == "outline"

    def test_without_resolver_types_kept(self) -> None:
        schema = build_schema({"model": "Shape", "fields": {"outline": "hologram"}})
        assert schema.fields["outline"].type == "hologram"

    def test_dump_round_trip(self, post_schema: Schema) -> None:
        assert Schema.from_dict(yaml.safe_load(dump_schema(post_schema))) == post_schema
        assert Schema.from_dict(json.loads(dump_schema(post_schema, "json"))) == post_schema
        with pytest.raises(ValueError):
            dump_schema(post_schema, "xml")


# ===========================================================================
# Pipeline
# ===========================================================================


@pytest.fixture()
def pipeline(plugin_manager: PluginManager) -> SchemaPipeline:
    return SchemaPipeline(plugin_manager)


class TestSchemaPipeline:
    """End-to-end pipeline runs."""

    def test_run_file(self, pipeline: SchemaPipeline, post_yaml_path: pathlib.Path) -> None:
        report = pipeline.run_file(post_yaml_path, generators=["migration", "requests"])
        assert report.success, report.summary()
        assert report.schema_name == "Post"
        assert list(report.fragments) == ["migration", "requests"]
        assert [m.step_name for m in report.step_metrics] == [
            "Load Document", "Split Document", "Construct Schema", "Validate Schema", "Generate Fragments",
        ]
        assert all(m.success for m in report.step_metrics)

    def test_aggregate_with_extensions(self, pipeline: SchemaPipeline, post_schema_dict: Dict[str, Any]) -> None:
        document = {"core": post_schema_dict, "ui": {"icon": "pencil"}}
        report = pipeline.run_document(document, generators=["model"])
        aggregate = report.as_dict()
        assert aggregate["extensions"] == {"ui": {"icon": "pencil"}}
        assert aggregate["fragments"]["model"]["class_name"] == "Post"

    def test_run_text_json(self, pipeline: SchemaPipeline, user_schema_dict: Dict[str, Any]) -> None:
        report = pipeline.run_text(json.dumps(user_schema_dict), "json")
        assert report.success
        assert len(report.fragments) == 12

    def test_missing_file_is_input_error(self, pipeline: SchemaPipeline, tmp_path: pathlib.Path) -> None:
        report = pipeline.run_file(tmp_path / "missing.yaml")
        assert not report.success
        assert report.has_input_errors
        assert report.batch is None
        assert report.as_dict() == {"fragments": {}, "extensions": {}}

    def test_malformed_text(self, pipeline: SchemaPipeline) -> None:
        report = pipeline.run_text("{broken", "json")
        assert report.has_input_errors
        assert report.step_metrics[0].success is False

    def test_unknown_type_is_input_error(self, pipeline: SchemaPipeline) -> None:
        report = pipeline.run_document({"model": "Shape", "fields": {"outline": "hologram"}})
        assert not report.success
        assert "Unknown field type 'hologram'" in report.input_errors[0]
        assert report.schema is None

    def test_zero_fields_is_input_error(self, pipeline: SchemaPipeline) -> None:
        report = pipeline.run_document({"model": "Empty", "fields": {}})
        assert report.has_input_errors

    def test_validation_errors_fail_but_still_generate(self, pipeline: SchemaPipeline) -> None:
        document = {"model": "Post", "fields": {"status": "enum"}}
        report = pipeline.run_document(document, generators=["model"])
        assert not report.success
        assert "CHOICE_WITHOUT_VALUES" in report.validation.codes()
        assert "model" in report.fragments

    def test_strict_validation_skips_generation(self, plugin_manager: PluginManager) -> None:
        strict = SchemaPipeline(plugin_manager, strict_validation=True)
        report = strict.run_document({"model": "Post", "fields": {"status": "enum"}})
        assert report.batch is None
        assert report.fragments == {}

    def test_attribute_errors_do_not_fail(self, pipeline: SchemaPipeline) -> None:
        document = {"model": "Profile", "fields": {"homepage": {"type": "url", "timeout": 0}}}
        report = pipeline.run_document(document, generators=["requests"])
        assert report.attribute_errors == {"homepage": ["attribute 'timeout' must be >= 1"]}
        assert report.success
        assert "Attribute Errors (1)" in report.summary()

    def test_generation_errors_reported(self, pipeline: SchemaPipeline, user_schema_dict: Dict[str, Any]) -> None:
        report = pipeline.run_document(user_schema_dict, generators=["model", "unknown_generator"])
        assert not report.success
        assert list(report.generation_errors) == ["unknown_generator"]
        assert "model" in report.fragments

    def test_strict_types_setting(self, user_schema_dict: Dict[str, Any]) -> None:
        manager = PluginManager()
        register_builtin_plugins(manager)
        pipeline = SchemaPipeline(manager, GenerationSettings(strict_types=True))
        assert pipeline.resolver.strict
        assert pipeline.run_document(user_schema_dict, generators=["migration"]).success

    def test_summary(self, pipeline: SchemaPipeline, post_yaml_path: pathlib.Path) -> None:
        summary = pipeline.run_file(post_yaml_path, generators=["model"]).summary()
        assert "SUCCESS" in summary
        assert "Schema:           Post" in summary

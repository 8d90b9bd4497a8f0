"""
tests/test_models.py
Unit tests for modelschema.models.

Tests cover:
- Field document forms (bare type string, folded attributes, rule strings)
- Relationship kind parsing and key conventions
- Schema construction errors (zero fields, duplicates, missing names)
- Implicit belongsTo foreign-key columns and fillable filtering
- Immutability and document round-trips
"""

from __future__ import annotations

from typing import Any, Dict

import pytest
from pydantic import ValidationError

from modelschema.exceptions import SchemaConstructionError
from modelschema.models import Field, Relationship, RelationshipKind, Schema


# ===========================================================================
# Field
# ===========================================================================


class TestField:
    """Tests for Field construction from its document form."""

    def test_bare_type_string(self) -> None:
        fld = Field.from_dict("email", "email")
        assert fld.name == "email"
        assert fld.type == "email"
        assert fld.nullable is False
        assert fld.attributes == {}

    def test_unknown_keys_fold_into_attributes(self) -> None:
        fld = Field.from_dict("status", {"type": "enum", "values": ["a", "b"]})
        assert fld.attributes == {"values": ["a", "b"]}

    def test_standard_attributes_lifted_from_bag(self) -> None:
        fld = Field.from_dict("code", {"type": "string", "attributes": {"unique": True, "length": 12}})
        assert fld.unique is True
        assert fld.length == 12
        assert "unique" not in fld.attributes

    def test_pipe_rule_string_becomes_explicit_rules(self) -> None:
        fld = Field.from_dict("email", {"type": "email", "rules": "required|email"})
        assert fld.explicit_rules == ["required", "email"]

    def test_default_tracked_only_when_given(self) -> None:
        assert Field.from_dict("a", {"type": "boolean", "default": False}).has_default
        assert not Field.from_dict("b", {"type": "boolean"}).has_default

    def test_scale_above_precision_rejected(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Field.from_dict("price", {"type": "decimal", "precision": 2, "scale": 4})

    def test_non_mapping_config_rejected(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Field.from_dict("bad", 42)

    def test_with_type_returns_copy(self) -> None:
        fld = Field.from_dict("n", "int")
        canonical = fld.with_type("integer")
        assert canonical.type == "integer"
        assert fld.type == "int"

    def test_field_is_frozen(self) -> None:
        fld = Field.from_dict("n", "string")
        with pytest.raises(ValidationError):
            fld.nullable = True  # type: ignore[misc]

    def test_attributes_detached_from_input(self) -> None:
        config: Dict[str, Any] = {"type": "enum", "values": ["draft", "published"], "rules": ["required"]}
        fld = Field.from_dict("status", config)
        config["values"].append("archived")
        config["rules"].append("string")
        assert fld.attributes["values"] == ["draft", "published"]
        assert fld.explicit_rules == ["required"]


# ===========================================================================
# Relationship
# ===========================================================================


class TestRelationship:
    """Tests for relationship parsing and key defaults."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("belongsTo", RelationshipKind.BELONGS_TO),
            ("many_to_many", RelationshipKind.BELONGS_TO_MANY),
            ("has-many", RelationshipKind.HAS_MANY),
            ("morphToMany", RelationshipKind.MORPH_TO_MANY),
        ],
    )
    def test_kind_synonyms(self, raw: str, expected: RelationshipKind) -> None:
        assert RelationshipKind.parse(raw) is expected

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Relationship.from_dict("x", {"type": "sortOf", "model": "Thing"})

    def test_target_required_except_morph_to(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Relationship.from_dict("comments", {"type": "hasMany"})
        rel = Relationship.from_dict("commentable", {"type": "morphTo"})
        assert rel.kind is RelationshipKind.MORPH_TO

    def test_belongs_to_foreign_key_convention(self) -> None:
        rel = Relationship.from_dict("author", {"type": "belongsTo", "model": "User"})
        assert rel.resolved_foreign_key("Post") == "author_id"
        assert rel.target_table == "users"

    def test_has_many_foreign_key_uses_owner(self) -> None:
        rel = Relationship.from_dict("comments", {"type": "hasMany", "model": "Comment"})
        assert rel.resolved_foreign_key("BlogPost") == "blog_post_id"

    def test_camel_case_keys_accepted(self) -> None:
        rel = Relationship.from_dict(
            "tags",
            {"type": "belongsToMany", "model": "Tag", "pivotTable": "post_tag", "foreignKey": "post_id"},
        )
        assert rel.pivot_table == "post_tag"
        assert rel.foreign_key == "post_id"

    def test_kind_flags(self) -> None:
        assert RelationshipKind.BELONGS_TO_MANY.is_many
        assert RelationshipKind.BELONGS_TO_MANY.uses_pivot
        assert RelationshipKind.MORPH_MANY.is_polymorphic
        assert not RelationshipKind.BELONGS_TO.is_many


# ===========================================================================
# Schema
# ===========================================================================


class TestSchema:
    """Tests for Schema construction, queries and round-trips."""

    def test_table_defaults_to_plural_snake_case(self, user_schema: Schema) -> None:
        assert user_schema.table == "users"

    def test_field_order_preserved(self, post_schema: Schema) -> None:
        assert list(post_schema.fields) == [
            "title", "slug", "body", "status", "price", "published_at", "category_id",
        ]

    def test_zero_fields_rejected(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Schema.from_dict({"model": "Empty", "fields": {}})

    def test_missing_model_name_rejected(self) -> None:
        with pytest.raises(SchemaConstructionError):
            Schema.from_dict({"fields": {"a": "string"}})

    def test_duplicate_field_in_list_form_rejected(self) -> None:
        doc: Dict[str, Any] = {
            "model": "Dup",
            "fields": [{"name": "a", "type": "string"}, {"name": "a", "type": "integer"}],
        }
        with pytest.raises(SchemaConstructionError, match="Duplicate field"):
            Schema.from_dict(doc)

    def test_relations_alias(self) -> None:
        schema = Schema.from_dict(
            {"model": "Post", "fields": {"title": "string"},
             "relations": {"author": {"type": "belongsTo", "model": "User"}}}
        )
        assert "author" in schema.relationships

    def test_implicit_foreign_key_column(self, post_schema: Schema) -> None:
        names = [f.name for f in post_schema.all_fields()]
        assert names[-1] == "author_id"
        implicit = post_schema.all_fields()[-1]
        assert implicit.type == "integer"
        assert implicit.nullable is True
        assert "author_id" not in post_schema.fields

    def test_declared_foreign_key_not_duplicated(self, post_schema_dict: Dict[str, Any]) -> None:
        post_schema_dict["fields"]["author_id"] = {"type": "foreignId"}
        schema = Schema.from_dict(post_schema_dict)
        names = [f.name for f in schema.all_fields()]
        assert names.count("author_id") == 1

    def test_fillable_excludes_managed_columns(self) -> None:
        schema = Schema.from_dict(
            {"model": "Log", "fields": {"id": "bigInteger", "message": "text", "created_at": "timestamp"}}
        )
        assert [f.name for f in schema.fillable_fields()] == ["message"]

    def test_relationships_of(self, post_schema: Schema) -> None:
        many = post_schema.relationships_of(RelationshipKind.HAS_MANY, RelationshipKind.BELONGS_TO_MANY)
        assert [r.name for r in many] == ["tags", "comments"]

    def test_options_and_model_class(self, post_schema: Schema) -> None:
        assert post_schema.has_timestamps
        assert post_schema.has_soft_deletes
        assert post_schema.model_class == "App\\Models\\Post"

    def test_schema_is_frozen(self, user_schema: Schema) -> None:
        with pytest.raises(ValidationError):
            user_schema.name = "Other"  # type: ignore[misc]

    def test_metadata_detached_from_input(self) -> None:
        doc: Dict[str, Any] = {"model": "Tag", "fields": {"label": "string"}, "metadata": {"tags": ["a"]}}
        schema = Schema.from_dict(doc)
        doc["metadata"]["tags"].append("b")
        assert schema.metadata == {"tags": ["a"]}

    def test_document_round_trip(self, post_schema: Schema) -> None:
        again = Schema.from_dict(post_schema.to_dict())
        assert again.to_dict() == post_schema.to_dict()

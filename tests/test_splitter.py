"""
tests/test_splitter.py
Unit tests for modelschema.splitter.

Tests cover:
- Flat layout split / merge round-trips
- Nested layout (explicit ``core`` wrapper) precedence
- Copy semantics and error cases
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from modelschema.exceptions import SchemaParseError
from modelschema.splitter import (
    CORE_KEYS,
    extract_core,
    extract_extensions,
    merge,
    split,
)


@pytest.fixture()
def flat_document(post_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(post_schema_dict)
    doc["ui"] = {"list_columns": ["title", "status"]}
    doc["permissions"] = ["posts.view"]
    return doc


class TestFlatLayout:
    """Tests for documents with core keys at top level."""

    def test_split(self, flat_document: Dict[str, Any]) -> None:
        parts = split(flat_document)
        assert not parts.nested
        assert set(parts.core) == {"model", "table", "fields", "relationships", "options"}
        assert parts.extensions == {
            "ui": {"list_columns": ["title", "status"]},
            "permissions": ["posts.view"],
        }
        assert parts.has_extensions

    def test_merge_restores_document(self, flat_document: Dict[str, Any]) -> None:
        assert split(flat_document).merge() == flat_document

    def test_core_only_document(self, post_schema_dict: Dict[str, Any]) -> None:
        parts = split(post_schema_dict)
        assert parts.extensions == {}
        assert merge(parts.core, parts.extensions) == post_schema_dict

    def test_split_copies(self, flat_document: Dict[str, Any]) -> None:
        parts = split(flat_document)
        parts.extensions["ui"]["list_columns"].append("body")
        parts.core["fields"]["title"]["length"] = 1
        assert flat_document["ui"]["list_columns"] == ["title", "status"]
        assert flat_document["fields"]["title"]["length"] == 200

    def test_merge_clash(self) -> None:
        with pytest.raises(ValueError, match="fields"):
            merge({"fields": {}}, {"fields": []})

    def test_helpers(self, flat_document: Dict[str, Any]) -> None:
        assert set(extract_core(flat_document)) <= CORE_KEYS
        assert set(extract_extensions(flat_document)) == {"ui", "permissions"}


class TestNestedLayout:
    """Tests for documents with an explicit core wrapper."""

    def test_nested_wins(self) -> None:
        doc: Dict[str, Any] = {
            "core": {"model": "Tag", "fields": {"label": "string"}},
            "fields": {"ignored": "string"},
            "theme": "dark",
        }
        parts = split(doc)
        assert parts.nested
        assert parts.core == {"model": "Tag", "fields": {"label": "string"}}
        assert parts.extensions == {"fields": {"ignored": "string"}, "theme": "dark"}
        assert parts.merge() == doc

    def test_nested_merge(self) -> None:
        merged = merge({"model": "Tag"}, {"model": "other"}, nested=True)
        assert merged == {"core": {"model": "Tag"}, "model": "other"}


class TestErrors:
    """Tests for non-mapping input."""

    @pytest.mark.parametrize("document", [["model", "Post"], "model: Post", None])
    def test_non_mapping(self, document: Any) -> None:
        with pytest.raises(SchemaParseError):
            split(document)

    def test_core_wrapper_must_be_mapping(self) -> None:
        with pytest.raises(SchemaParseError):
            split({"core": ["model"]})

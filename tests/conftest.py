"""
tests/conftest.py
Shared fixtures for the modelschema test suite.

All fixtures are function-scoped and hand out fresh copies, so tests may
mutate them freely.  No external mocking libraries are used; real file
I/O is performed inside temporary directories managed by pytest's
tmp_path fixture.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict

import pytest
import yaml

from modelschema.builtin_plugins import register_builtin_plugins
from modelschema.models import Schema
from modelschema.plugins import PluginManager
from modelschema.resolver import TypeResolver
from modelschema.service import GenerationService
from modelschema.validation import AutoValidationService


# ---------------------------------------------------------------------------
# Raw schema data
# ---------------------------------------------------------------------------

_USER_SCHEMA: Dict[str, Any] = {
    "model": "User",
    "fields": {
        "name": {"type": "string", "length": 255},
        "email": {"type": "email", "unique": True},
        "password": {"type": "string"},
        "is_active": {"type": "boolean", "default": True},
    },
}

_POST_SCHEMA: Dict[str, Any] = {
    "model": "Post",
    "table": "posts",
    "fields": {
        "title": {"type": "string", "length": 200},
        "slug": {"type": "string", "unique": True},
        "body": {"type": "text"},
        "status": {"type": "enum", "values": ["draft", "published", "archived"]},
        "price": {"type": "decimal", "precision": 8, "scale": 2},
        "published_at": {"type": "timestamp", "nullable": True},
        "category_id": {"type": "foreignId", "references": {"table": "categories"}},
    },
    "relationships": {
        "author": {"type": "belongsTo", "model": "User"},
        "tags": {
            "type": "belongsToMany",
            "model": "Tag",
            "pivot_table": "post_tag",
            "pivot_fields": ["order"],
        },
        "comments": {"type": "hasMany", "model": "Comment"},
    },
    "options": {"timestamps": True, "soft_deletes": True},
}


@pytest.fixture()
def user_schema_dict() -> Dict[str, Any]:
    """Small user document: string, unique email, password, boolean flag."""
    return copy.deepcopy(_USER_SCHEMA)


@pytest.fixture()
def post_schema_dict() -> Dict[str, Any]:
    """Richer document with enum, decimal, timestamp, FK and three relationships."""
    return copy.deepcopy(_POST_SCHEMA)


@pytest.fixture()
def user_schema(user_schema_dict: Dict[str, Any]) -> Schema:
    return Schema.from_dict(user_schema_dict)


@pytest.fixture()
def post_schema(post_schema_dict: Dict[str, Any]) -> Schema:
    return Schema.from_dict(post_schema_dict)


@pytest.fixture()
def post_yaml_path(post_schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the post document to a temporary YAML file and return its path."""
    path = tmp_path / "post.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(post_schema_dict, fh, default_flow_style=False, sort_keys=False)
    return path


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def plugin_manager() -> PluginManager:
    """Manager with the url and json_schema reference plugins registered."""
    manager = PluginManager()
    register_builtin_plugins(manager)
    return manager


@pytest.fixture()
def resolver(plugin_manager: PluginManager) -> TypeResolver:
    return TypeResolver(plugin_manager)


@pytest.fixture()
def validation(resolver: TypeResolver) -> AutoValidationService:
    return AutoValidationService(resolver)


@pytest.fixture()
def service(validation: AutoValidationService) -> GenerationService:
    return GenerationService(validation)

"""
tests/test_plugins.py
Unit tests for modelschema.plugins and modelschema.builtin_plugins.

Tests cover:
- CustomAttributeSpec checking and rule derivation
- Registration conflicts (plugin, built-in, self-repeat) leaving the manager untouched
- Dependency and self-validation failures
- Enable / disable / unregister lifecycle
- Discovery from plugin files and configuration entries
- The url and json_schema reference plugins
"""

from __future__ import annotations

import pathlib
import textwrap
from typing import Any, Dict, List

import pytest

from modelschema.builtin_plugins import (
    JsonSchemaFieldTypePlugin,
    UrlFieldTypePlugin,
    validate_json_schema,
)
from modelschema.exceptions import (
    DuplicateTypeError,
    PluginDependencyError,
    PluginLoadError,
    UnknownTypeError,
)
from modelschema.models import Field
from modelschema.plugins import (
    AttributeValueType,
    CustomAttributeSpec,
    FieldTypePlugin,
    PluginManager,
    PluginMetadata,
    format_number,
)


# ---------------------------------------------------------------------------
# Local plugins
# ---------------------------------------------------------------------------


class CurrencyFieldTypePlugin(FieldTypePlugin):
    def type_id(self) -> str:
        return "currency"

    def aliases(self) -> List[str]:
        return ["price_amount"]

    def custom_attribute_specs(self) -> Dict[str, CustomAttributeSpec]:
        return {
            "min": CustomAttributeSpec(value_type=AttributeValueType.FLOAT, min=0),
            "max": CustomAttributeSpec(value_type=AttributeValueType.FLOAT),
            "currency": CustomAttributeSpec(
                value_type=AttributeValueType.STRING,
                allowed_values=("EUR", "USD"),
                default="EUR",
            ),
        }

    def base_rules(self, field: Field) -> List[str]:
        return ["numeric"]


class MoneyAliasPlugin(FieldTypePlugin):
    def type_id(self) -> str:
        return "cash"

    def aliases(self) -> List[str]:
        return ["money"]

    def base_rules(self, field: Field) -> List[str]:
        return ["numeric"]


class EchoPlugin(FieldTypePlugin):
    def type_id(self) -> str:
        return "echo"

    def aliases(self) -> List[str]:
        return ["Echo"]

    def base_rules(self, field: Field) -> List[str]:
        return ["string"]


class BadIdPlugin(FieldTypePlugin):
    def type_id(self) -> str:
        return "9lives"

    def base_rules(self, field: Field) -> List[str]:
        return []


class DependentPlugin(FieldTypePlugin):
    default_metadata = {"dependencies": ["currency"]}

    def type_id(self) -> str:
        return "invoice_total"

    def base_rules(self, field: Field) -> List[str]:
        return ["numeric"]


@pytest.fixture()
def manager() -> PluginManager:
    return PluginManager()


# ===========================================================================
# CustomAttributeSpec
# ===========================================================================


class TestCustomAttributeSpec:
    """Tests for attribute checks and derived rules."""

    def test_type_mismatch(self) -> None:
        spec = CustomAttributeSpec(value_type=AttributeValueType.FLOAT)
        assert spec.check("min", "ten") == ["attribute 'min' must be of type float, got str"]

    def test_bool_is_not_an_integer(self) -> None:
        spec = CustomAttributeSpec(value_type=AttributeValueType.INTEGER)
        assert spec.check("count", True), "Booleans must not pass as integers"

    def test_lower_bound(self) -> None:
        spec = CustomAttributeSpec(value_type=AttributeValueType.FLOAT, min=0)
        assert spec.check("min", -1.5) == ["attribute 'min' must be >= 0"]

    def test_allowed_values(self) -> None:
        spec = CustomAttributeSpec(allowed_values=("EUR", "USD"))
        errors = spec.check("currency", "GBP")
        assert errors == ["attribute 'currency' has invalid value(s) GBP; allowed: EUR, USD"]

    def test_validator_runs_after_structural_checks(self) -> None:
        spec = CustomAttributeSpec(validator=lambda v: ["too short"] if len(v) < 3 else [])
        assert spec.check("code", "ab") == ["attribute 'code': too short"]
        assert spec.check("code", "abc") == []

    def test_required_ignores_default(self) -> None:
        spec = CustomAttributeSpec(required=True, default="x")
        assert spec.effective_default is None

    def test_min_named_attribute_becomes_min_rule(self) -> None:
        spec = CustomAttributeSpec(value_type=AttributeValueType.FLOAT, min=0)
        assert spec.derive_rules("min", 10.0) == ["min:10"]
        assert spec.derive_rules("max", 2.5) == ["max:2.5"]

    def test_generic_rules(self) -> None:
        assert CustomAttributeSpec(value_type=AttributeValueType.BOOLEAN).derive_rules("flag", True) == [
            "boolean"
        ]
        bounded = CustomAttributeSpec(value_type=AttributeValueType.INTEGER, min=1, max=5)
        assert bounded.derive_rules("level", 3) == ["min:1", "max:5"]
        choice = CustomAttributeSpec(allowed_values=("a", "b"))
        assert choice.derive_rules("mode", "a") == ["in:a,b"]

    def test_rules_hook_overrides(self) -> None:
        spec = CustomAttributeSpec(rules=lambda v: ["custom"])
        assert spec.derive_rules("anything", 1) == ["custom"]

    def test_format_number(self) -> None:
        assert format_number(10.0) == "10"
        assert format_number(2.5) == "2.5"
        assert format_number(7) == "7"


# ===========================================================================
# PluginManager registration
# ===========================================================================


class TestPluginRegistration:
    """Tests for register / conflict handling."""

    def test_register_and_resolve_alias(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        assert manager.resolve("price_amount").type_id() == "currency"
        assert manager.resolve("PRICE_AMOUNT") is not None
        assert "currency" in manager
        assert len(manager) == 1

    def test_duplicate_plugin_rejected(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        with pytest.raises(DuplicateTypeError) as exc_info:
            manager.register(CurrencyFieldTypePlugin())
        assert exc_info.value.identifier == "currency"
        assert len(manager) == 1

    def test_builtin_alias_conflict_leaves_manager_unchanged(self, manager: PluginManager) -> None:
        with pytest.raises(DuplicateTypeError, match="built-in type 'decimal'"):
            manager.register(MoneyAliasPlugin())
        assert len(manager) == 0
        assert manager.get("cash") is None, "Partially registered plugin left behind"

    def test_builtin_id_conflict(self, manager: PluginManager) -> None:
        class VarcharPlugin(EchoPlugin):
            def type_id(self) -> str:
                return "varchar"

            def aliases(self) -> List[str]:
                return []

        with pytest.raises(DuplicateTypeError):
            manager.register(VarcharPlugin())

    def test_self_repeat_rejected(self, manager: PluginManager) -> None:
        with pytest.raises(DuplicateTypeError, match="itself"):
            manager.register(EchoPlugin())
        assert len(manager) == 0

    def test_invalid_type_id(self, manager: PluginManager) -> None:
        with pytest.raises(PluginLoadError):
            manager.register(BadIdPlugin())

    def test_missing_dependency(self, manager: PluginManager) -> None:
        with pytest.raises(PluginDependencyError) as exc_info:
            manager.register(DependentPlugin())
        assert exc_info.value.missing == ["currency"]

    def test_dependency_satisfied(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        manager.register(DependentPlugin())
        assert manager.has("invoice_total")

    def test_unregister_blocked_by_dependant(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        manager.register(DependentPlugin())
        with pytest.raises(PluginDependencyError):
            manager.unregister("currency")

    def test_unregister_drops_aliases(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        manager.unregister("price_amount")
        assert manager.get("currency") is None
        assert manager.get("price_amount") is None

    def test_unregister_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(UnknownTypeError):
            manager.unregister("nothing")


# ===========================================================================
# Lifecycle and loading
# ===========================================================================


class TestPluginLifecycle:
    """Tests for enable/disable, metadata, discovery and config loading."""

    def test_disable_hides_from_resolve(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin())
        manager.disable("currency")
        assert manager.resolve("currency") is None
        assert manager.get("currency") is not None
        assert "currency" not in manager.enabled_plugins()
        manager.enable("currency")
        assert manager.has("price_amount")

    def test_enable_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(UnknownTypeError):
            manager.enable("nothing")

    def test_metadata_description(self, manager: PluginManager) -> None:
        manager.register(CurrencyFieldTypePlugin(metadata=PluginMetadata(version="2.1.0")))
        meta = manager.metadata("currency")
        assert meta["version"] == "2.1.0"
        assert meta["aliases"] == ["price_amount"]
        assert meta["custom_attributes"]["currency"]["enum"] == ["EUR", "USD"]

    def test_resolve_attributes_fills_defaults(self) -> None:
        plugin = CurrencyFieldTypePlugin()
        assert plugin.resolve_attributes({"min": 1}) == {"min": 1, "currency": "EUR"}

    def test_discover_from_file(self, manager: PluginManager, tmp_path: pathlib.Path) -> None:
        source = textwrap.dedent(
            """
            from modelschema.plugins import FieldTypePlugin


            class ColourFieldTypePlugin(FieldTypePlugin):
                def type_id(self):
                    return "colour"

                def aliases(self):
                    return ["hex_colour"]

                def base_rules(self, field):
                    return ["string", "regex:/^#[0-9a-f]{6}$/i"]
            """
        )
        plugin_file = tmp_path / "colour_type.py"
        plugin_file.write_text(source, encoding="utf-8")

        registered = manager.discover([str(tmp_path / "*.py")])
        assert registered == ["colour"]
        assert manager.resolve("hex_colour") is not None

        again = manager.discover([str(plugin_file)])
        assert again == [], "Already registered plugins are skipped"

    def test_discover_broken_file(self, manager: PluginManager, tmp_path: pathlib.Path) -> None:
        broken = tmp_path / "broken_type.py"
        broken.write_text("raise RuntimeError('boom')\n", encoding="utf-8")
        with pytest.raises(PluginLoadError):
            manager.discover([str(broken)])

    def test_discover_missing_module(self, manager: PluginManager) -> None:
        with pytest.raises(PluginLoadError):
            manager.discover(["modelschema_no_such_plugins"])

    def test_load_from_config(self, manager: PluginManager) -> None:
        entries: List[Dict[str, Any]] = [
            {
                "class": "modelschema.builtin_plugins:UrlFieldTypePlugin",
                "enabled": False,
                "config": {"probe": True},
            }
        ]
        assert manager.load_from_config(entries) == ["url"]
        plugin = manager.get("url")
        assert plugin is not None
        assert plugin.enabled is False
        assert plugin.config_value("probe") is True

    def test_load_from_config_bad_reference(self, manager: PluginManager) -> None:
        with pytest.raises(PluginLoadError):
            manager.load_from_config([{"class": "modelschema.models:Field"}])
        with pytest.raises(PluginLoadError):
            manager.load_from_config([{"enabled": True}])


# ===========================================================================
# Reference plugins
# ===========================================================================


class TestReferencePlugins:
    """Tests for the url and json_schema plugins."""

    def test_url_identity(self) -> None:
        plugin = UrlFieldTypePlugin()
        assert plugin.identifiers() == ["url", "website", "link", "uri"]
        assert plugin.base_rules(Field(name="homepage", type="url")) == ["url", "max:2048"]
        assert plugin.validate_plugin() == []

    def test_url_domain_whitelist(self) -> None:
        spec = UrlFieldTypePlugin().custom_attribute_specs()["domain_whitelist"]
        assert spec.check("domain_whitelist", ["example.com"]) == []
        assert spec.derive_rules("domain_whitelist", ["example.com"]) == [
            "domain_whitelist:example.com"
        ]
        errors = spec.check("domain_whitelist", ["not a domain"])
        assert errors == ["attribute 'domain_whitelist': 'not a domain' is not a valid domain name"]

    def test_url_schemes_transform(self) -> None:
        plugin = UrlFieldTypePlugin()
        resolved = plugin.resolve_attributes({"schemes": ["HTTPS", "http", "https"]})
        assert resolved["schemes"] == ["http", "https"]
        assert resolved["max_redirects"] == 3

    def test_json_schema_identity(self) -> None:
        plugin = JsonSchemaFieldTypePlugin()
        assert plugin.aliases() == ["jsonschema", "structured_json"]
        assert plugin.base_rules(Field(name="settings", type="json_schema")) == ["json"]
        spec = plugin.custom_attribute_specs()["schema"]
        assert spec.derive_rules("schema", {"type": "object"}) == ["json_schema"]

    def test_json_schema_structure_check(self) -> None:
        assert validate_json_schema({"type": "object", "properties": {"a": {"type": "string"}}}) == []
        errors = validate_json_schema(
            {"type": "thing", "properties": {"a": {"type": "string"}}, "required": ["b"]}
        )
        assert "$: unsupported type 'thing'" in errors
        assert "$.required names unknown property 'b'" in errors

    def test_builtins_registered_once(self, plugin_manager: PluginManager) -> None:
        from modelschema.builtin_plugins import register_builtin_plugins

        assert register_builtin_plugins(plugin_manager) == []
        assert sorted(plugin_manager.plugins()) == ["json_schema", "url"]

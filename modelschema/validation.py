# File: modelschema/validation.py
"""
ModelSchema - Rule Derivation & Schema Validation
==================================================
Two concerns live here:

1. ``AutoValidationService`` derives a per-field validation rule list.
   Precedence, per field:

       1. ``required`` (not nullable) or ``nullable``
       2. base rules of the resolved type (plugin → built-in → fallback)
       3. rules from the plugin's custom attributes present on the field
       4. rules from standard attributes (length, unique, decimal layout)
       5. order-preserving de-duplication

   A field carrying ``explicit_rules`` skips steps 1-4.  In the update
   context ``required`` becomes ``sometimes`` and every ``unique:`` rule
   excludes the current record.

   Custom attribute problems never raise: they are returned as strings on
   ``FieldRules.errors`` so callers decide how severe they are.

2. ``validate_schema`` runs structural checks over a constructed Schema
   and returns a ``ValidationResult`` of issues (again: data, not raises).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from modelschema.config import GenerationSettings
from modelschema.models import Field, RelationshipKind, Schema
from modelschema.registry import enum_values
from modelschema.resolver import ResolvedType, TypeResolver

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.validation")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the checks below."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._items]

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {"error": "✗", "warning": "!", "info": "i"}.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Rule derivation
# ---------------------------------------------------------------------------


class RuleContext(str, Enum):
    """Request context rules are derived for."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class FieldRules:
    """Derived rules for one field plus any custom-attribute errors."""

    field: str
    rules: List[str]
    errors: List[str] = dataclass_field(default_factory=list)
    source: str = "derived"

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_string(self) -> str:
        return "|".join(self.rules)


class RuleSet:
    """Ordered ``field name → FieldRules`` mapping for one schema and context."""

    __slots__ = ("table", "context", "_fields")

    def __init__(self, table: str, context: RuleContext, fields: Iterable[FieldRules] = ()) -> None:
        self.table: str = table
        self.context: RuleContext = context
        self._fields: Dict[str, FieldRules] = {fr.field: fr for fr in fields}

    def add(self, field_rules: FieldRules) -> None:
        self._fields[field_rules.field] = field_rules

    def rules(self) -> Dict[str, List[str]]:
        """``{field: [rule, ...]}`` omitting fields that derived nothing."""
        return {name: list(fr.rules) for name, fr in self._fields.items() if fr.rules}

    def as_strings(self) -> Dict[str, str]:
        """``{field: "required|email"}`` form."""
        return {name: fr.as_string() for name, fr in self._fields.items() if fr.rules}

    @property
    def errors(self) -> Dict[str, List[str]]:
        return {name: list(fr.errors) for name, fr in self._fields.items() if fr.errors}

    def error_messages(self) -> List[str]:
        return [f"{name}: {msg}" for name, msgs in self.errors.items() for msg in msgs]

    @property
    def has_errors(self) -> bool:
        return any(fr.errors for fr in self._fields.values())

    def __getitem__(self, name: str) -> FieldRules:
        return self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FieldRules]:
        return iter(list(self._fields.values()))

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"<RuleSet {self.table} {self.context.value} fields={len(self._fields)}>"


def dedupe(rules: Iterable[str]) -> List[str]:
    """Drop repeated rules, keeping the first occurrence's position."""
    seen: Set[str] = set()
    out: List[str] = []
    for rule in rules:
        if rule not in seen:
            seen.add(rule)
            out.append(rule)
    return out


def rule_name(rule: str) -> str:
    """``"max:255"`` → ``"max"``."""
    return rule.split(":", 1)[0]


def to_update_rules(rules: Sequence[str], placeholder: str = "{id}") -> List[str]:
    """
    Rewrite create-context rules for partial updates.

    ``required`` → ``sometimes``; ``unique:table,column`` gains the record
    placeholder so the record being updated does not collide with itself.
    Rules that already carry an exclusion are left alone.
    """
    out: List[str] = []
    for rule in rules:
        if rule == "required":
            out.append("sometimes")
        elif rule.startswith("unique:") and rule.count(",") == 1:
            out.append(f"{rule},{placeholder}")
        else:
            out.append(rule)
    return dedupe(out)


# rule name → message template ({label} and {param} substituted)
_MESSAGE_TEMPLATES: Dict[str, str] = {
    "required": "The {label} field is required.",
    "email": "The {label} must be a valid email address.",
    "uuid": "The {label} must be a valid UUID.",
    "integer": "The {label} must be an integer.",
    "numeric": "The {label} must be a number.",
    "boolean": "The {label} must be true or false.",
    "json": "The {label} must be valid JSON.",
    "url": "The {label} must be a valid URL.",
    "date": "The {label} must be a valid date.",
    "max": "The {label} may not be greater than {param}.",
    "min": "The {label} must be at least {param}.",
    "unique": "The {label} has already been taken.",
    "exists": "The selected {label} is invalid.",
    "in": "The selected {label} is invalid.",
}


class AutoValidationService:
    """
    Derive validation rules for fields and whole schemas.

    Usage::

        service = AutoValidationService(TypeResolver(plugin_manager))
        service.derive_field_rules(field, "users").rules
        service.rules_for_schema(schema, RuleContext.UPDATE).rules()
    """

    def __init__(
        self,
        resolver: Optional[TypeResolver] = None,
        settings: Optional[GenerationSettings] = None,
    ) -> None:
        self.settings: GenerationSettings = settings or GenerationSettings()
        if resolver is None:
            resolver = TypeResolver(strict=self.settings.strict_types)
        elif self.settings.strict_types and not resolver.strict:
            resolver = TypeResolver(resolver.plugins, resolver.registry, strict=True)
        self.resolver: TypeResolver = resolver

    # -- Single field -------------------------------------------------------

    def derive_field_rules(
        self,
        field: Field,
        table: str,
        context: RuleContext = RuleContext.CREATE,
    ) -> FieldRules:
        """
        Derive the rule list of ``field`` for ``table``.

        Raises:
            UnknownTypeError: unknown type while ``strict_types`` is on.
        """
        context = RuleContext(context)
        if field.explicit_rules is not None:
            rules: List[str] = dedupe(field.explicit_rules)
            errors: List[str] = []
            source: str = "explicit"
        else:
            resolved: ResolvedType = self._resolve(field)
            rules = ["nullable" if field.nullable else "required"]
            rules.extend(resolved.base_rules(field))
            custom_rules, errors = self._custom_attribute_rules(field, resolved)
            rules.extend(custom_rules)
            rules.extend(self._standard_attribute_rules(field, resolved, table))
            rules = dedupe(rules)
            source = resolved.source

        if context is RuleContext.UPDATE:
            rules = to_update_rules(rules, self.settings.update_placeholder)

        logger.debug("Rules for %s.%s (%s): %s", table, field.name, context.value, rules)
        return FieldRules(field=field.name, rules=rules, errors=errors, source=source)

    def derive_rules(
        self,
        field: Field,
        table: str,
        context: RuleContext = RuleContext.CREATE,
    ) -> List[str]:
        """Shortcut returning only the rule list."""
        return list(self.derive_field_rules(field, table, context).rules)

    def validate_custom_attributes(self, field: Field) -> List[str]:
        """Errors for the plugin custom attributes present on ``field``."""
        resolved: ResolvedType = self._resolve(field)
        return self._custom_attribute_rules(field, resolved)[1]

    # -- Whole schema -------------------------------------------------------

    def rules_for_schema(
        self,
        schema: Schema,
        context: RuleContext = RuleContext.CREATE,
    ) -> RuleSet:
        """Rules for every field of ``schema`` (implicit FK columns included)."""
        rule_set: RuleSet = RuleSet(schema.table, RuleContext(context))
        for fld in schema.all_fields():
            rule_set.add(self.derive_field_rules(fld, schema.table, context))
        if rule_set.has_errors:
            logger.warning(
                "Schema '%s': %d custom attribute error(s).",
                schema.name,
                len(rule_set.error_messages()),
            )
        return rule_set

    def messages(self, schema: Schema, rule_set: Optional[RuleSet] = None) -> Dict[str, str]:
        """Human-readable ``"field.rule" → message`` map for the derived rules."""
        rule_set = rule_set or self.rules_for_schema(schema)
        messages: Dict[str, str] = {}
        for fr in rule_set:
            label: str = fr.field.replace("_", " ")
            for rule in fr.rules:
                name, _, param = rule.partition(":")
                template: Optional[str] = _MESSAGE_TEMPLATES.get(name)
                if template is None:
                    continue
                messages[f"{fr.field}.{name}"] = template.format(
                    label=label, param=param.split(",")[0]
                )
        return messages

    # -- Steps --------------------------------------------------------------

    def _resolve(self, field: Field) -> ResolvedType:
        return self.resolver.for_field(field)

    def _custom_attribute_rules(
        self, field: Field, resolved: ResolvedType
    ) -> Tuple[List[str], List[str]]:
        if resolved.plugin is None:
            return [], []
        rules: List[str] = []
        errors: List[str] = []
        for name, spec in resolved.plugin.custom_attribute_specs().items():
            if name not in field.attributes:
                if spec.required:
                    errors.append(f"attribute '{name}' is required for type '{resolved.type_id}'")
                continue
            value: Any = field.attributes[name]
            problems: List[str] = spec.check(name, value)
            if problems:
                errors.extend(problems)
                continue
            rules.extend(spec.derive_rules(name, spec.normalize(value)))
        return rules, errors

    def _standard_attribute_rules(
        self, field: Field, resolved: ResolvedType, table: str
    ) -> List[str]:
        rules: List[str] = []
        if field.length is not None:
            rules.append(f"max:{field.length}")
        if field.is_unique:
            rules.append(f"unique:{table},{field.name}")
        if resolved.type_id == "decimal" and field.precision is not None and field.scale is not None:
            rules.append(f"decimal:0,{field.scale}")
        return rules


# ---------------------------------------------------------------------------
# Structural schema checks
# ---------------------------------------------------------------------------

_SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
_PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")

_CHOICE_TYPES: Tuple[str, ...] = ("enum", "set")


def validate_names(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if not _PASCAL_CASE_RE.match(schema.name):
        result.add_warning(
            "MODEL_NAME_NOT_PASCAL_CASE",
            f"Model name '{schema.name}' is not PascalCase.",
            {"model": schema.name},
        )
    if not _SNAKE_CASE_RE.match(schema.table):
        result.add_warning(
            "TABLE_NAME_NOT_SNAKE_CASE",
            f"Table name '{schema.table}' is not snake_case.",
            {"table": schema.table},
        )
    for name in schema.fields:
        if not _SNAKE_CASE_RE.match(name):
            result.add_warning(
                "FIELD_NAME_NOT_SNAKE_CASE",
                f"Field '{name}' is not snake_case.",
                {"field": name},
            )
    for name in schema.relationships:
        if name in schema.fields:
            result.add_warning(
                "RELATIONSHIP_SHADOWS_FIELD",
                f"Relationship '{name}' has the same name as a field.",
                {"relationship": name},
            )
    return result


def validate_field_types(schema: Schema, resolver: TypeResolver) -> ValidationResult:
    """Unknown types are errors in strict mode, warnings otherwise."""
    result: ValidationResult = ValidationResult()
    for fld in schema.fields.values():
        ctx: Dict[str, Any] = {"field": fld.name, "type": fld.type}
        found: Optional[ResolvedType] = resolver.lookup(fld.type)
        if found is None:
            if resolver.strict:
                result.add_error(
                    "UNKNOWN_FIELD_TYPE",
                    f"Field '{fld.name}' has unknown type '{fld.type}'.",
                    ctx,
                )
            else:
                result.add_warning(
                    "UNKNOWN_FIELD_TYPE",
                    f"Field '{fld.name}' has unknown type '{fld.type}'; it will be treated as string.",
                    ctx,
                )
            continue

        if found.type_id in _CHOICE_TYPES and found.plugin is None and not enum_values(fld):
            result.add_error(
                "CHOICE_WITHOUT_VALUES",
                f"Field '{fld.name}' of type {found.type_id} declares no 'values'.",
                ctx,
            )
        if found.type_id == "decimal" and fld.scale is not None and fld.precision is None:
            result.add_warning(
                "SCALE_WITHOUT_PRECISION",
                f"Field '{fld.name}' sets a scale but no precision; storage default applies.",
                ctx,
            )
        if found.plugin is not None:
            unknown: List[str] = [
                key for key in fld.attributes
                if key not in found.plugin.custom_attribute_specs()
                and key not in ("references", "values", "options")
            ]
            for key in unknown:
                result.add_info(
                    "UNDECLARED_ATTRIBUTE",
                    f"Field '{fld.name}': attribute '{key}' is not declared by plugin '{found.type_id}'.",
                    {**ctx, "attribute": key},
                )
    return result


def validate_relationships(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    foreign_keys: Dict[str, str] = {}
    for rel in schema.relationships.values():
        ctx: Dict[str, Any] = {"relationship": rel.name, "kind": rel.kind.value}
        if rel.kind is RelationshipKind.BELONGS_TO_MANY and not rel.pivot_table:
            result.add_error(
                "MISSING_PIVOT_TABLE",
                f"Relationship '{rel.name}' is many-to-many but declares no pivot_table.",
                ctx,
            )
        if rel.pivot_fields and not rel.kind.uses_pivot:
            result.add_warning(
                "PIVOT_FIELDS_IGNORED",
                f"Relationship '{rel.name}' ({rel.kind.value}) has pivot_fields but no pivot table.",
                ctx,
            )
        if rel.kind is RelationshipKind.BELONGS_TO:
            fk: str = rel.resolved_foreign_key(schema.name)
            if fk in foreign_keys:
                result.add_error(
                    "DUPLICATE_FOREIGN_KEY",
                    f"Relationships '{foreign_keys[fk]}' and '{rel.name}' share foreign key '{fk}'.",
                    {**ctx, "foreign_key": fk},
                )
            foreign_keys[fk] = rel.name
            declared: Optional[Field] = schema.field(fk)
            if declared is not None and declared.type in ("string", "text", "email"):
                result.add_warning(
                    "FOREIGN_KEY_NOT_NUMERIC",
                    f"Foreign key '{fk}' of '{rel.name}' is declared as {declared.type}.",
                    {**ctx, "foreign_key": fk},
                )
    return result


def validate_options(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    managed: List[str] = []
    if schema.has_timestamps:
        managed += ["created_at", "updated_at"]
    if schema.has_soft_deletes:
        managed.append("deleted_at")
    for column in managed:
        if column in schema.fields:
            result.add_warning(
                "MANAGED_COLUMN_DECLARED",
                f"Column '{column}' is managed by the schema options and also declared as a field.",
                {"field": column},
            )
    return result


def validate_schema(schema: Schema, resolver: Optional[TypeResolver] = None) -> ValidationResult:
    """Run every structural check; returns a merged ``ValidationResult``."""
    resolver = resolver or TypeResolver()
    result: ValidationResult = ValidationResult()
    checks: List[Callable[[], ValidationResult]] = [
        lambda: validate_names(schema),
        lambda: validate_field_types(schema, resolver),
        lambda: validate_relationships(schema),
        lambda: validate_options(schema),
    ]
    for check in checks:
        result.merge(check())

    if result.has_errors:
        logger.error("Schema '%s' validation FAILED. %s", schema.name, result.summary())
    else:
        logger.info("Schema '%s' validation passed. %s", schema.name, result.summary())
    return result


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "RuleContext",
    "FieldRules",
    "RuleSet",
    "AutoValidationService",
    "dedupe",
    "rule_name",
    "to_update_rules",
    "validate_names",
    "validate_field_types",
    "validate_relationships",
    "validate_options",
    "validate_schema",
]

logger.debug("modelschema.validation loaded, %d public symbols.", len(__all__))

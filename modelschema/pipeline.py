# File: modelschema/pipeline.py
"""
ModelSchema - End-to-End Pipeline
==================================
Single linear pipeline over one document:

    Parse → Split → Construct → Validate → Generate → Aggregate

Every step is timed and recorded as a ``PipelineStepMetric`` in the
``PipelineReport``.  Parse and construction failures stop the run (no
Schema exists to continue with); validation issues and attribute errors
are collected as data; generator failures are isolated per generator by
``GenerationService.generate_all``.

Usage::

    pipeline = SchemaPipeline(plugins=manager)
    report = pipeline.run_file(Path("post.yaml"), generators=["migration", "requests"])
    print(report.summary())
    report.as_dict()   # {"fragments": {...}, "extensions": {...}}
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from modelschema.config import GenerationSettings
from modelschema.exceptions import SchemaConstructionError, SchemaParseError
from modelschema.fragments import Fragment
from modelschema.loader import build_schema, load_file, parse_text
from modelschema.models import Schema
from modelschema.plugins import PluginManager
from modelschema.resolver import TypeResolver
from modelschema.service import GenerationBatch, GenerationService
from modelschema.splitter import SplitDocument, split
from modelschema.utils import Timer
from modelschema.validation import (
    AutoValidationService,
    RuleSet,
    ValidationResult,
    validate_schema,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.pipeline")


# ---------------------------------------------------------------------------
# Report data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PipelineStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class PipelineReport:
    """
    Everything one pipeline run produced.

    ``fragments`` holds successful fragments only; ``generation_errors``
    maps each failed generator to its message.
    """

    success: bool = False
    schema_name: str = ""
    source: str = ""
    total_elapsed_seconds: float = 0.0

    schema: Optional[Schema] = None
    fragments: Dict[str, Fragment] = field(default_factory=dict)
    extensions: Dict[str, Any] = field(default_factory=dict)
    batch: Optional[GenerationBatch] = None

    step_metrics: List[PipelineStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=ValidationResult)
    attribute_errors: Dict[str, List[str]] = field(default_factory=dict)
    generation_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def validation_errors(self) -> List[str]:
        return [str(issue) for issue in self.validation.errors]

    @property
    def validation_warnings(self) -> List[str]:
        return [str(issue) for issue in self.validation.warnings]

    @property
    def has_input_errors(self) -> bool:
        return bool(self.input_errors)

    def as_dict(self) -> Dict[str, Any]:
        """Aggregated output: fragment bodies (or errors) plus extensions."""
        fragments: Dict[str, Any] = self.batch.as_dict() if self.batch is not None else {}
        return {"fragments": fragments, "extensions": self.extensions}

    def summary(self) -> str:
        """Return a human-readable summary string."""
        rule: str = "─" * 60
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append("=" * 60)
        lines.append("  ModelSchema Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:           {status}")
        lines.append(f"  Schema:           {self.schema_name or '-'}")
        if self.source:
            lines.append(f"  Source:           {self.source}")
        lines.append(f"  Fragments:        {len(self.fragments)}")
        lines.append(f"  Extensions:       {len(self.extensions)}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(rule)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<20s} {step.elapsed_seconds:>7.3f}s  {step.detail}"
                )

        sections: List[tuple] = [
            ("Input Errors", "✗", self.input_errors),
            ("Validation Errors", "✗", self.validation_errors),
            ("Validation Warnings", "!", self.validation_warnings),
            (
                "Attribute Errors",
                "✗",
                [f"{name}: {msg}" for name, msgs in self.attribute_errors.items() for msg in msgs],
            ),
            (
                "Generation Errors",
                "✗",
                [f"{name}: {msg}" for name, msg in self.generation_errors.items()],
            ),
        ]
        for title, icon, items in sections:
            if not items:
                continue
            lines.append(rule)
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class SchemaPipeline:
    """
    Wires loader, splitter, validation and the generation service together.

    Args:
        plugins: Plugin manager consulted before the built-in types.
        settings: Engine-wide settings (strict type mode, indents, ...).
        strict_validation: Stop before generation when validation reports errors.
    """

    def __init__(
        self,
        plugins: Optional[PluginManager] = None,
        settings: Optional[GenerationSettings] = None,
        *,
        strict_validation: bool = False,
        service: Optional[GenerationService] = None,
    ) -> None:
        self.settings: GenerationSettings = settings or GenerationSettings()
        if service is not None:
            self.service: GenerationService = service
            self.validation: AutoValidationService = service.validation
        else:
            resolver: TypeResolver = TypeResolver(plugins, strict=self.settings.strict_types)
            self.validation = AutoValidationService(resolver, self.settings)
            self.service = GenerationService(self.validation, self.settings)
        self._strict_validation: bool = strict_validation

        logger.debug(
            "SchemaPipeline initialised: strict_types=%s, strict_validation=%s.",
            self.settings.strict_types,
            strict_validation,
        )

    @property
    def resolver(self) -> TypeResolver:
        return self.validation.resolver

    # -- Entry points -------------------------------------------------------

    def run_file(
        self,
        path: Path,
        generators: Optional[Sequence[str]] = None,
        options: Any = None,
    ) -> PipelineReport:
        """Load → (text pipeline).  File problems end up in ``input_errors``."""
        report: PipelineReport = PipelineReport(source=str(path))
        start: float = time.perf_counter()
        with Timer("load") as t:
            try:
                document: Dict[str, Any] = load_file(Path(path))
            except SchemaParseError as exc:
                document = {}
                report.input_errors.append(str(exc))
        report.step_metrics.append(
            PipelineStepMetric(
                "Load Document",
                not report.input_errors,
                t.elapsed,
                report.input_errors[0] if report.input_errors else f"from {Path(path).name}",
            )
        )
        if report.input_errors:
            return self._finalise(report, start)
        return self._run(document, generators, options, report, start)

    def run_text(
        self,
        text: str,
        fmt: str = "auto",
        generators: Optional[Sequence[str]] = None,
        options: Any = None,
    ) -> PipelineReport:
        report: PipelineReport = PipelineReport(source=f"<{fmt} text>")
        start: float = time.perf_counter()
        with Timer("parse") as t:
            try:
                document: Dict[str, Any] = parse_text(text, fmt)
            except (SchemaParseError, ValueError) as exc:
                document = {}
                report.input_errors.append(str(exc))
        report.step_metrics.append(
            PipelineStepMetric(
                "Parse Document",
                not report.input_errors,
                t.elapsed,
                report.input_errors[0] if report.input_errors else f"{len(document)} top-level keys",
            )
        )
        if report.input_errors:
            return self._finalise(report, start)
        return self._run(document, generators, options, report, start)

    def run_document(
        self,
        document: Mapping[str, Any],
        generators: Optional[Sequence[str]] = None,
        options: Any = None,
    ) -> PipelineReport:
        report: PipelineReport = PipelineReport(source="<document>")
        return self._run(document, generators, options, report, time.perf_counter())

    # -- Steps --------------------------------------------------------------

    def _run(
        self,
        document: Mapping[str, Any],
        generators: Optional[Sequence[str]],
        options: Any,
        report: PipelineReport,
        start: float,
    ) -> PipelineReport:
        parts: Optional[SplitDocument] = self._step_split(document, report)
        if parts is None:
            return self._finalise(report, start)

        schema: Optional[Schema] = self._step_construct(parts, report)
        if schema is None:
            return self._finalise(report, start)

        valid: bool = self._step_validate(schema, report)
        if not valid and self._strict_validation:
            logger.error("Validation failed for %s; generation skipped.", schema.name)
            return self._finalise(report, start)

        self._step_generate(schema, generators, options, report)
        return self._finalise(report, start)

    def _step_split(self, document: Mapping[str, Any], report: PipelineReport) -> Optional[SplitDocument]:
        with Timer("split") as t:
            try:
                parts: Optional[SplitDocument] = split(document)
            except SchemaParseError as exc:
                parts = None
                report.input_errors.append(str(exc))
        if parts is None:
            report.step_metrics.append(
                PipelineStepMetric("Split Document", False, t.elapsed, report.input_errors[-1])
            )
            return None
        report.extensions = parts.extensions
        layout: str = "nested" if parts.nested else "flat"
        report.step_metrics.append(
            PipelineStepMetric(
                "Split Document",
                True,
                t.elapsed,
                f"{layout}, {len(parts.core)} core key(s), {len(parts.extensions)} extension(s)",
            )
        )
        return parts

    def _step_construct(self, parts: SplitDocument, report: PipelineReport) -> Optional[Schema]:
        with Timer("construct") as t:
            try:
                schema: Optional[Schema] = build_schema(parts.core, self.resolver)
            except SchemaConstructionError as exc:
                schema = None
                report.input_errors.append(str(exc))
        if schema is None:
            logger.error("Schema construction failed: %s", report.input_errors[-1])
            report.step_metrics.append(
                PipelineStepMetric("Construct Schema", False, t.elapsed, report.input_errors[-1])
            )
            return None
        report.schema = schema
        report.schema_name = schema.name
        report.step_metrics.append(
            PipelineStepMetric(
                "Construct Schema",
                True,
                t.elapsed,
                f"{len(schema.fields)} fields, {len(schema.relationships)} relationships",
            )
        )
        return schema

    def _step_validate(self, schema: Schema, report: PipelineReport) -> bool:
        with Timer("validate") as t:
            result: ValidationResult = validate_schema(schema, self.resolver)
            rules: RuleSet = self.validation.rules_for_schema(schema)
        report.validation = result
        report.attribute_errors = rules.errors

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif rules.has_errors:
            detail = f"{len(rules.error_messages())} attribute error(s)"
        elif result.warning_count:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"
        report.step_metrics.append(PipelineStepMetric("Validate Schema", result.is_valid, t.elapsed, detail))

        if result.has_errors:
            logger.error("Validation failed with %d error(s) in %.3fs.", result.error_count, t.elapsed)
        else:
            logger.info("Validation passed in %.3fs (%s).", t.elapsed, detail)
        return result.is_valid

    def _step_generate(
        self,
        schema: Schema,
        generators: Optional[Sequence[str]],
        options: Any,
        report: PipelineReport,
    ) -> None:
        with Timer("generate") as t:
            batch: GenerationBatch = self.service.generate_all(schema, generators, options)
        report.batch = batch
        report.fragments = batch.fragments
        report.generation_errors = batch.errors
        report.step_metrics.append(
            PipelineStepMetric(
                "Generate Fragments",
                batch.all_succeeded,
                t.elapsed,
                f"{len(batch.succeeded)} ok, {len(batch.failed)} failed",
            )
        )

    def _finalise(self, report: PipelineReport, start: float) -> PipelineReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = time.perf_counter() - start
        report.success = (
            not report.input_errors
            and not report.validation.has_errors
            and not report.generation_errors
            and report.batch is not None
        )
        return report


__all__: List[str] = ["PipelineStepMetric", "PipelineReport", "SchemaPipeline"]

logger.debug("modelschema.pipeline loaded, %d public symbols.", len(__all__))

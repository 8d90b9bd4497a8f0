# File: modelschema/cli.py
"""
ModelSchema - Command-Line Interface
=====================================

Thin argparse front-end over ``SchemaPipeline`` and ``FragmentExporter``.

Usage examples::

    # Every generator, aggregated JSON on stdout
    python -m modelschema --schema post.yaml

    # Selected generators written as YAML files
    python -m modelschema -s post.yaml -g migration,requests -f yaml -o ./out

    # Custom plugins and generator options
    python -m modelschema -s post.yaml --plugin myapp.field_types \\
        --option seeder_count=25 --option enhanced=false

    # Validate only
    python -m modelschema -s post.yaml --validate-only

Exit codes:
    0 - success
    1 - validation error
    2 - generation error
    3 - export error
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

import yaml

from modelschema.builtin_plugins import register_builtin_plugins
from modelschema.config import GenerationSettings
from modelschema.exceptions import ModelSchemaError
from modelschema.exporters import ExportResult, FragmentExporter
from modelschema.pipeline import PipelineReport, SchemaPipeline
from modelschema.plugins import PluginManager

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root modelschema logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("modelschema")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from modelschema import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="modelschema",
        description=(
            "ModelSchema - schema-driven fragment generator.\n\n"
            "Reads a model schema (JSON/YAML) and produces structured "
            "fragments for models, migrations, requests, resources and more."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s post.yaml\n"
            "  %(prog)s -s post.yaml -g migration,requests -f yaml -o ./out\n"
            "  %(prog)s -s post.yaml --validate-only\n"
            "  %(prog)s --list-generators\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ModelSchema v{__version__}",
    )

    # --- Input / output ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to the schema file (JSON or YAML).",
    )
    parser.add_argument(
        "-g", "--generators",
        type=str,
        default=None,
        metavar="NAMES",
        help="Comma-separated generator names (default: all).",
    )
    parser.add_argument(
        "-f", "--format",
        dest="fmt",
        type=str,
        default="json",
        choices=["json", "yaml"],
        help="Output format for fragments (default: json).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Write one file per fragment into DIR instead of printing to stdout.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the schema without generating fragments.",
    )
    mode_group.add_argument(
        "--list-generators",
        action="store_true",
        default=False,
        help="List available generators and exit.",
    )

    # --- Behaviour ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--strict-types",
        action="store_true",
        default=False,
        help="Reject unknown field types instead of treating them as string.",
    )
    behaviour_group.add_argument(
        "--plugin",
        action="append",
        default=[],
        metavar="MODULE",
        help="Plugin module or *.py glob to load (repeatable).",
    )
    behaviour_group.add_argument(
        "--option",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Generator option; VALUE is parsed as YAML (repeatable).",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _parse_options(pairs: Sequence[str]) -> Dict[str, Any]:
    """
    Turn ``key=value`` strings into an options mapping.

    Raises:
        ValueError: a pair without ``=`` or with an empty key.
    """
    options: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid option '{pair}' (expected key=value).")
        try:
            options[key] = yaml.safe_load(raw) if raw.strip() else ""
        except yaml.YAMLError:
            options[key] = raw
    return options


def _parse_generators(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    names: List[str] = [n.strip() for n in value.split(",") if n.strip()]
    return names or None


def _build_pipeline(args: argparse.Namespace) -> SchemaPipeline:
    """
    Plugin manager (built-ins plus ``--plugin`` modules) wrapped in a pipeline.

    Raises:
        ModelSchemaError: a plugin module cannot be loaded or registered.
    """
    manager: PluginManager = PluginManager()
    register_builtin_plugins(manager)
    if args.plugin:
        loaded: List[str] = manager.discover(args.plugin)
        logger.info("Loaded plugin type(s): %s", ", ".join(loaded) or "none")
    settings: GenerationSettings = GenerationSettings(strict_types=args.strict_types)
    return SchemaPipeline(manager, settings)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _run_list_generators(pipeline: SchemaPipeline) -> int:
    generators: Dict[str, str] = pipeline.service.available_generators()
    width: int = max((len(name) for name in generators), default=0)
    for name, description in generators.items():
        print(f"  {name:<{width}s}  {description}")
    return EXIT_SUCCESS


def _run_validate_only(pipeline: SchemaPipeline, schema_path: Path) -> int:
    """Validate without generating; returns the exit code."""
    report: PipelineReport = pipeline.run_file(schema_path, generators=[])

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Model:    {report.schema_name or '-'}")
    print(f"  Time:     {report.total_elapsed_seconds:.3f}s")

    if report.has_input_errors:
        print(f"\n  Input Errors ({len(report.input_errors)}):")
        for err in report.input_errors:
            print(f"    ✗ {err}")
        print(f"{'='*50}\n")
        return EXIT_INPUT_ERROR

    valid: bool = report.validation.is_valid and not report.attribute_errors
    print(f"  Valid:    {'Yes' if valid else 'No'}")

    if report.validation_errors:
        print(f"\n  Errors ({len(report.validation_errors)}):")
        for err in report.validation_errors:
            print(f"    ✗ {err}")

    if report.attribute_errors:
        print(f"\n  Attribute Errors ({len(report.attribute_errors)}):")
        for name, messages in report.attribute_errors.items():
            for msg in messages:
                print(f"    ✗ {name}: {msg}")

    if report.validation_warnings:
        print(f"\n  Warnings ({len(report.validation_warnings)}):")
        for warn in report.validation_warnings:
            print(f"    ! {warn}")

    if valid and not report.validation_warnings:
        print("\n  All validations passed.")

    print(f"{'='*50}\n")
    return EXIT_SUCCESS if valid else EXIT_VALIDATION_ERROR


def _run_generation(
    pipeline: SchemaPipeline,
    schema_path: Path,
    args: argparse.Namespace,
    options: Dict[str, Any],
) -> int:
    """Run the pipeline, then print or export; returns the exit code."""
    report: PipelineReport = pipeline.run_file(
        schema_path,
        generators=_parse_generators(args.generators),
        options=options,
    )

    if report.has_input_errors:
        for err in report.input_errors:
            logger.error("%s", err)
        return EXIT_INPUT_ERROR

    if args.output is None:
        print(_render_aggregate(report.as_dict(), args.fmt))
    else:
        exporter: FragmentExporter = FragmentExporter(Path(args.output), args.fmt)
        result: ExportResult = exporter.export(
            report.fragments, schema_name=report.schema_name, extensions=report.extensions
        )
        if not args.quiet:
            print(report.summary(), file=sys.stderr)
        if not result.success:
            for err in result.errors:
                logger.error("%s", err)
            return EXIT_EXPORT_ERROR

    if report.validation.has_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    return EXIT_SUCCESS


def _render_aggregate(aggregate: Dict[str, Any], fmt: str) -> str:
    if fmt == "yaml":
        return yaml.safe_dump(aggregate, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return json.dumps(aggregate, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    try:
        options: Dict[str, Any] = _parse_options(args.option)
        pipeline: SchemaPipeline = _build_pipeline(args)
    except (ValueError, ModelSchemaError) as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    if args.list_generators:
        sys.exit(_run_list_generators(pipeline))

    if args.schema is None:
        logger.error("A schema file is required. Use -s/--schema or --list-generators.")
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    schema_path: Path = Path(args.schema).resolve()
    if not schema_path.is_file():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(pipeline, schema_path))

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", args.output or "<stdout>")

    exit_code: int = _run_generation(pipeline, schema_path, args, options)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation finished with exit code %d.", exit_code)
    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("modelschema.cli loaded.")

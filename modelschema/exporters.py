# File: modelschema/exporters.py
"""
ModelSchema - Fragment Exporter
================================
Writes fragments to disk, one ``<generator>.<json|yaml>`` file each, plus
a ``manifest.json`` with checksums so an export can be verified later.

Every file is written atomically (temp file + rename).  A failing write
is recorded as an error and does not stop the remaining files.
Re-running an export over the same directory is always safe.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from modelschema.fragments import Fragment
from modelschema.loader import FORMATS
from modelschema.utils import Timer, count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.exporters")

MANIFEST_NAME: str = "manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    generator: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Manifest of one export; serialisable to JSON."""

    schema_name: str = ""
    export_format: str = "json"
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_name": self.schema_name,
            "export_format": self.export_format,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "generator": f.generator,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``FragmentExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------


class FragmentExporter:
    """
    Writes a set of fragments under one output directory.

    Usage::

        exporter = FragmentExporter(Path("./out"), fmt="yaml")
        result = exporter.export(report.fragments, schema_name="Post")
        print(result.manifest.to_json())

    Thread-safety: NOT thread-safe.  Use one exporter per output directory.
    """

    def __init__(self, output_dir: Path, fmt: str = "json", *, write_manifest: bool = True) -> None:
        if fmt not in FORMATS:
            raise ValueError(f"Unsupported export format '{fmt}' (expected json or yaml).")
        self._output_dir: Path = Path(output_dir).resolve()
        self._fmt: str = fmt
        self._write_manifest: bool = write_manifest
        self._errors: List[str] = []
        self._records: List[FileRecord] = []

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def export(
        self,
        fragments: Mapping[str, Fragment],
        schema_name: str = "",
        extensions: Optional[Mapping[str, Any]] = None,
    ) -> ExportResult:
        """
        Write every fragment (and, when given, the extension sections).

        Returns:
            ExportResult with success flag, manifest and error details.
        """
        self._errors = []
        self._records = []
        with Timer("export") as timer:
            try:
                self._output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                self._errors.append(f"Failed to create directory {self._output_dir}: {exc}")
            else:
                for name, fragment in fragments.items():
                    self._write(f"{name}.{self._fmt}", name, fragment.text(self._fmt))
                if extensions:
                    self._write(
                        f"extensions.{self._fmt}",
                        "extensions",
                        Fragment("extensions", extensions).text(self._fmt),
                    )

        manifest: ExportManifest = self._build_manifest(schema_name)
        if self._write_manifest and not self._errors:
            try:
                write_file(self._output_dir / MANIFEST_NAME, manifest.to_json())
            except OSError as exc:
                self._errors.append(f"Could not write manifest: {exc}")

        success: bool = not self._errors
        if success:
            logger.info(
                "Export completed: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error("Export completed with %d error(s) in %.3fs.", len(self._errors), timer.elapsed)

        return ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            elapsed_seconds=timer.elapsed,
        )

    def _write(self, rel_path: str, generator: str, content: str) -> None:
        try:
            size: int = write_file(self._output_dir / rel_path, content)
        except OSError as exc:
            message: str = f"Failed to write {rel_path}: {exc}"
            self._errors.append(message)
            logger.error(message)
            return
        self._records.append(
            FileRecord(
                relative_path=rel_path,
                generator=generator,
                size_bytes=size,
                line_count=count_lines(content),
                sha256=sha256_hex(content),
            )
        )

    def _build_manifest(self, schema_name: str) -> ExportManifest:
        return ExportManifest(
            schema_name=schema_name,
            export_format=self._fmt,
            export_timestamp=datetime.now(timezone.utc).isoformat(),
            output_directory=str(self._output_dir),
            total_files=len(self._records),
            total_bytes=sum(r.size_bytes for r in self._records),
            total_lines=sum(r.line_count for r in self._records),
            files=list(self._records),
        )


__all__: List[str] = [
    "MANIFEST_NAME",
    "FileRecord",
    "ExportManifest",
    "ExportResult",
    "FragmentExporter",
]

logger.debug("modelschema.exporters loaded, %d public symbols.", len(__all__))

"""
tests/test_exporters.py
Unit tests for modelschema.exporters.

Tests cover:
- One file per fragment in JSON and YAML form
- Manifest contents and checksums
- Extension sections written alongside the fragments
- Constructor validation and the write_manifest switch
"""

from __future__ import annotations

import hashlib
import json
import pathlib
from typing import Dict

import pytest
import yaml

from modelschema.exporters import MANIFEST_NAME, ExportResult, FragmentExporter
from modelschema.fragments import Fragment
from modelschema.models import Schema
from modelschema.service import GenerationService


@pytest.fixture()
def fragments(service: GenerationService, post_schema: Schema) -> Dict[str, Fragment]:
    return service.generate_all(post_schema, ["model", "migration", "seeder"]).fragments


class TestFragmentExporter:
    """Tests for FragmentExporter.export()."""

    def test_json_files(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        result: ExportResult = FragmentExporter(tmp_path).export(fragments, schema_name="Post")
        assert result.success, result.errors
        written = sorted(p.name for p in tmp_path.iterdir())
        assert written == ["manifest.json", "migration.json", "model.json", "seeder.json"]
        data = json.loads((tmp_path / "migration.json").read_text(encoding="utf-8"))
        assert data["migration"]["table"] == "posts"

    def test_yaml_files(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        result = FragmentExporter(tmp_path, "yaml").export(fragments)
        assert result.success
        assert result.manifest.export_format == "yaml"
        data = yaml.safe_load((tmp_path / "model.yaml").read_text(encoding="utf-8"))
        assert data == fragments["model"].tree

    def test_manifest(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        FragmentExporter(tmp_path).export(fragments, schema_name="Post")
        manifest = json.loads((tmp_path / MANIFEST_NAME).read_text(encoding="utf-8"))
        assert manifest["schema_name"] == "Post"
        assert manifest["total_files"] == 3
        assert [f["generator"] for f in manifest["files"]] == ["model", "migration", "seeder"]
        for record in manifest["files"]:
            raw = (tmp_path / record["relative_path"]).read_bytes()
            assert record["sha256"] == hashlib.sha256(raw).hexdigest()
            assert record["size_bytes"] == len(raw)
        assert manifest["total_bytes"] == sum(f["size_bytes"] for f in manifest["files"])

    def test_extensions_file(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        result = FragmentExporter(tmp_path).export(
            fragments, extensions={"ui": {"icon": "pencil"}}
        )
        assert result.manifest.files[-1].relative_path == "extensions.json"
        data = json.loads((tmp_path / "extensions.json").read_text(encoding="utf-8"))
        assert data == {"extensions": {"ui": {"icon": "pencil"}}}

    def test_without_manifest(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        result = FragmentExporter(tmp_path, write_manifest=False).export(fragments)
        assert result.success
        assert not (tmp_path / MANIFEST_NAME).exists()
        assert result.manifest.total_files == 3

    def test_creates_nested_directory(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        target = tmp_path / "build" / "fragments"
        exporter = FragmentExporter(target)
        assert exporter.output_dir == target.resolve()
        assert exporter.export(fragments).success
        assert (target / "seeder.json").is_file()

    def test_re_export_overwrites(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        exporter = FragmentExporter(tmp_path)
        first = exporter.export(fragments)
        second = exporter.export(fragments)
        assert [f.sha256 for f in first.manifest.files] == [f.sha256 for f in second.manifest.files]
        assert not list(tmp_path.glob("*.tmp"))

    def test_output_dir_is_a_file(self, tmp_path: pathlib.Path, fragments: Dict[str, Fragment]) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        result = FragmentExporter(blocker).export(fragments)
        assert not result.success
        assert result.errors[0].startswith("Failed to create directory")

    def test_unsupported_format(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="xml"):
            FragmentExporter(tmp_path, "xml")

"""Tests for YAML parsing safeguards and source tracking in TrackedLoader."""

from __future__ import annotations

from pathlib import Path

import pytest

from stowage.parser.loader import (
    _MAX_DEPTH,
    _MAX_DOCUMENT_SIZE,
    TrackedLoader,
    YAMLSafetyError,
)
from stowage.service.model_store import ModelStore
from tests.conftest import SAMPLE_ARTIFACTS_YAML, SAMPLE_PROJECT_DIR


class TestAnchorRejection:
    """Artifact documents never need anchors or aliases, so they are rejected."""

    def test_billion_laughs_rejected(self, loader: TrackedLoader) -> None:
        yaml = (
            "a: &a ['lol','lol','lol','lol','lol']\n"
            "b: &b [*a,*a,*a,*a,*a]\n"
            "c: &c [*b,*b,*b,*b,*b]\n"
        )
        with pytest.raises(YAMLSafetyError, match="anchors/aliases"):
            loader.load_string(yaml)

    def test_anchor_in_sequence(self, loader: TrackedLoader) -> None:
        yaml = "artifacts:\n  - &first\n    name: App\n  - *first\n"
        with pytest.raises(YAMLSafetyError, match="anchors/aliases"):
            loader.load_string(yaml)

    def test_ampersand_inside_word_allowed(self, loader: TrackedLoader) -> None:
        raw, _ = loader.load_string("artifacts:\n  - name: R&D\n")
        assert raw["artifacts"][0]["name"] == "R&D"


class TestStructureLimits:
    def test_oversized_document_rejected(self, loader: TrackedLoader) -> None:
        yaml = "key: " + "x" * (_MAX_DOCUMENT_SIZE + 1) + "\n"
        with pytest.raises(YAMLSafetyError, match="maximum size"):
            loader.load_string(yaml)

    def test_deep_nesting_rejected(self, loader: TrackedLoader) -> None:
        levels = _MAX_DEPTH + 5
        yaml = "".join("  " * i + f"level{i}:\n" for i in range(levels))
        yaml += "  " * levels + "value: deep\n"
        with pytest.raises(YAMLSafetyError, match="maximum depth"):
            loader.load_string(yaml)

    def test_node_count_limit(self) -> None:
        data = {"artifacts": [{"name": f"A{i}"} for i in range(10)]}
        with pytest.raises(YAMLSafetyError, match="maximum node count"):
            TrackedLoader._check_structure(data, node_limit=15)
        TrackedLoader._check_structure(data, node_limit=100)

    def test_sample_passes(self, loader: TrackedLoader) -> None:
        raw, _ = loader.load_string(SAMPLE_ARTIFACTS_YAML)
        assert [a["name"] for a in raw["artifacts"]] == ["App", "Lib"]

    def test_empty_document(self, loader: TrackedLoader) -> None:
        raw, source_map = loader.load_string("")
        assert raw == {}
        assert source_map.paths == []


class TestSourceMap:
    def test_positions_recorded(self, loader: TrackedLoader) -> None:
        _, source_map = loader.load_string(SAMPLE_ARTIFACTS_YAML, filename="shop.yaml")
        span = source_map.get("artifacts[1].name")
        assert span is not None
        assert span.file == "shop.yaml"
        assert span.line == 35

    def test_nearest_falls_back_to_ancestor(self, loader: TrackedLoader) -> None:
        _, source_map = loader.load_string(SAMPLE_ARTIFACTS_YAML)
        span = source_map.nearest("artifacts[0].root.children[0].unknownField")
        assert span == source_map.get("artifacts[0].root.children[0]")
        assert source_map.nearest("nowhere") is None

    def test_merge(self) -> None:
        loader = TrackedLoader()
        _, first = loader.load_string("a: 1\n")
        _, second = loader.load_string("b: 2\n")
        first.merge(second)
        assert set(first.paths) == {"a", "b"}


class TestModelDirectory:
    def test_artifact_files_are_appended(self, loader: TrackedLoader) -> None:
        raw, source_map = loader.load_model_directory(SAMPLE_PROJECT_DIR)
        assert [a["name"] for a in raw["artifacts"]] == ["Core", "Bundle", "Docs"]
        span = source_map.get("artifacts[1].root")
        assert span is not None
        assert span.file.endswith("bundle.yaml")

    def test_directory_without_root_file(self, tmp_path: Path, loader: TrackedLoader) -> None:
        (tmp_path / "artifacts").mkdir()
        (tmp_path / "artifacts" / "one.yaml").write_text("name: One\n", encoding="utf-8")
        raw, _ = loader.load_model_directory(tmp_path)
        assert raw == {"artifacts": [{"name": "One"}]}

    def test_empty_directory(self, tmp_path: Path, loader: TrackedLoader) -> None:
        raw, _ = loader.load_model_directory(tmp_path)
        assert raw == {}


class TestModelStoreSafety:
    def test_anchor_reported_as_safety_error(self) -> None:
        store = ModelStore()
        summary = store.validate("artifacts:\n  - &a\n    name: X\n")
        assert not summary.valid
        assert [e.code for e in summary.errors] == ["YAML_SAFETY_ERROR"]

    def test_broken_yaml_reported_as_parse_error(self) -> None:
        store = ModelStore()
        summary = store.validate("artifacts: [unclosed\n")
        assert [e.code for e in summary.errors] == ["YAML_PARSE_ERROR"]

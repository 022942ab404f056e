"""Tests for ArtifactValidator."""

from __future__ import annotations

import pytest

from stowage.models.artifact import Artifact, ArtifactModel
from stowage.models.elements import (
    ArtifactPackagingElement,
    ArtifactRootElement,
    DirectoryPackagingElement,
    LibraryPackagingElement,
    ModuleOutputPackagingElement,
)
from stowage.models.errors import ValidationResult
from stowage.parser.validator import ArtifactValidator, _suggest_similar
from stowage.service.artifact_manager import ArtifactManager
from tests.conftest import archive, context_for, exploded


@pytest.fixture
def validator() -> ArtifactValidator:
    return ArtifactValidator()


def validate(validator: ArtifactValidator, *artifacts: Artifact) -> ValidationResult:
    context = context_for(*artifacts)
    return validator.validate(ArtifactModel(artifacts), context)


def codes(result: ValidationResult) -> tuple[list[str], list[str]]:
    return [e.code for e in result.errors], [w.code for w in result.warnings]


class TestCleanModels:
    def test_sample_is_clean(
        self, validator: ArtifactValidator, sample_manager: ArtifactManager
    ) -> None:
        result = validator.validate(sample_manager, sample_manager.resolving_context)
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_empty_model(self, validator: ArtifactValidator) -> None:
        assert validate(validator).valid


class TestErrors:
    def test_duplicate_names(self, validator: ArtifactValidator) -> None:
        result = validate(validator, exploded("A", output_path="o"), archive("A", output_path="o"))
        assert not result.valid
        assert codes(result)[0] == ["DUPLICATE_ARTIFACT_NAME"]

    def test_nested_output_root(self, validator: ArtifactValidator) -> None:
        bad = exploded(
            "A",
            DirectoryPackagingElement("lib", children=[ArtifactRootElement()]),
            output_path="out/A",
        )
        result = validate(validator, bad)
        assert codes(result) == (["ROOT_ELEMENT_NESTED"], [])
        assert "below 'lib'" in result.errors[0].message


class TestWarnings:
    def test_empty_output_path(self, validator: ArtifactValidator) -> None:
        result = validate(validator, exploded("A"))
        assert result.valid
        assert codes(result) == ([], ["EMPTY_OUTPUT_PATH"])
        assert result.warnings[0].path == "artifacts.A.outputPath"

    def test_unknown_artifact_reference_suggests(self, validator: ArtifactValidator) -> None:
        app = exploded("App", ArtifactPackagingElement("Libb"), output_path="out/App")
        result = validate(validator, app, archive("Lib", output_path="out/Lib"))
        assert codes(result) == ([], ["UNKNOWN_ARTIFACT_REFERENCE"])
        warning = result.warnings[0]
        assert "'Libb'" in warning.message
        assert warning.suggestions[0] == "Lib"

    def test_missing_module_and_library(self, validator: ArtifactValidator) -> None:
        app = exploded(
            "App",
            ModuleOutputPackagingElement("cor"),
            LibraryPackagingElement("guavaa"),
            ModuleOutputPackagingElement("web"),
            output_path="out/App",
        )
        result = validate(validator, app)
        assert codes(result) == ([], ["MISSING_MODULE", "MISSING_LIBRARY"])
        assert result.warnings[0].suggestions[0] == "core"
        assert result.warnings[1].suggestions == ["guava"]

    def test_references_inside_embedded_artifacts_are_checked_once(
        self, validator: ArtifactValidator
    ) -> None:
        lib = archive("Lib", ModuleOutputPackagingElement("ghost"), output_path="out/Lib")
        app = exploded("App", ArtifactPackagingElement("Lib"), output_path="out/App")
        result = validate(validator, app, lib)
        assert codes(result) == ([], ["MISSING_MODULE"])
        assert result.warnings[0].path == "artifacts.Lib.root"

    def test_self_including_artifacts(self, validator: ArtifactValidator) -> None:
        a = exploded("A", ArtifactPackagingElement("B"), output_path="out/A")
        b = exploded("B", ArtifactPackagingElement("A"), output_path="out/B")
        c = exploded("C", ArtifactPackagingElement("C"), output_path="out/C")
        result = validate(validator, a, b, c)
        assert result.valid
        assert codes(result)[1] == ["SELF_INCLUDING_ARTIFACT"] * 3
        messages = [w.message for w in result.warnings]
        assert messages == [
            "Artifact 'A' includes itself",
            "Artifact 'B' includes itself (through 'A')",
            "Artifact 'C' includes itself",
        ]


class TestSuggestSimilar:
    def test_substring_ranks_first(self) -> None:
        assert _suggest_similar("lib", ["Application", "Library", "Tools"])[0] == "Library"

    def test_limit(self) -> None:
        assert len(_suggest_similar("x", ["a", "b", "c", "d"])) == 3

    def test_no_candidates(self) -> None:
        assert _suggest_similar("x", []) == []

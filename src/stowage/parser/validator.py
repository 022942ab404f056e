"""Consistency checks over an artifact model: names, roots, references, self-inclusion."""

from __future__ import annotations

from stowage.models.artifact import Artifact
from stowage.models.elements import (
    ArtifactPackagingElement,
    ArtifactRootElement,
    LibraryPackagingElement,
    ModuleOutputPackagingElement,
    PackagingElement,
)
from stowage.models.errors import PackagingProblem, ValidationResult
from stowage.models.project import ArtifactLookup, PackagingElementResolvingContext
from stowage.packaging.graph import ArtifactGraph, compute_ordering
from stowage.packaging.path import PackagingElementPath
from stowage.packaging.processor import FunctionProcessor, process_artifact_elements


class ArtifactValidator:
    """Reports broken structure as errors and dangling references as warnings."""

    def validate(
        self, model: ArtifactLookup, context: PackagingElementResolvingContext
    ) -> ValidationResult:
        artifacts = model.artifacts
        errors: list[PackagingProblem] = []
        warnings: list[PackagingProblem] = []
        errors.extend(self._check_unique_names(artifacts))
        errors.extend(self._check_root_not_nested(artifacts, context))
        warnings.extend(self._check_output_paths(artifacts))
        warnings.extend(self._check_references(artifacts, context))
        warnings.extend(self._check_self_inclusion(artifacts, context))
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def _check_unique_names(self, artifacts: list[Artifact]) -> list[PackagingProblem]:
        errors: list[PackagingProblem] = []
        seen: set[str] = set()
        for artifact in artifacts:
            if artifact.name in seen:
                errors.append(
                    PackagingProblem(
                        code="DUPLICATE_ARTIFACT_NAME",
                        message=f"Artifact name '{artifact.name}' is used more than once",
                        path=f"artifacts.{artifact.name}",
                    )
                )
            seen.add(artifact.name)
        return errors

    def _check_root_not_nested(
        self, artifacts: list[Artifact], context: PackagingElementResolvingContext
    ) -> list[PackagingProblem]:
        """An artifact root element may only be the root of a tree."""
        errors: list[PackagingProblem] = []
        for artifact in artifacts:
            for element, path in _walk(artifact, context):
                if isinstance(element, ArtifactRootElement) and not path.is_empty:
                    errors.append(
                        PackagingProblem(
                            code="ROOT_ELEMENT_NESTED",
                            message=(
                                f"Artifact '{artifact.name}' contains an output root "
                                f"below '{path.path_string() or '/'}'"
                            ),
                            path=f"artifacts.{artifact.name}.root",
                        )
                    )
        return errors

    def _check_output_paths(self, artifacts: list[Artifact]) -> list[PackagingProblem]:
        return [
            PackagingProblem(
                code="EMPTY_OUTPUT_PATH",
                message=f"Artifact '{artifact.name}' has no output path and will not be built",
                path=f"artifacts.{artifact.name}.outputPath",
            )
            for artifact in artifacts
            if not artifact.output_path
        ]

    def _check_references(
        self, artifacts: list[Artifact], context: PackagingElementResolvingContext
    ) -> list[PackagingProblem]:
        """Embedded artifacts, modules and libraries must resolve."""
        warnings: list[PackagingProblem] = []
        artifact_names = [a.name for a in artifacts]
        for artifact in artifacts:
            path = f"artifacts.{artifact.name}.root"
            for element, _ in _walk(artifact, context):
                if isinstance(element, ArtifactPackagingElement):
                    if element.find_artifact(context) is None:
                        warnings.append(
                            PackagingProblem(
                                code="UNKNOWN_ARTIFACT_REFERENCE",
                                message=(
                                    f"Artifact '{artifact.name}' includes unknown artifact "
                                    f"'{element.artifact_name}'"
                                ),
                                path=path,
                                suggestions=_suggest_similar(element.artifact_name, artifact_names),
                            )
                        )
                elif isinstance(element, ModuleOutputPackagingElement):
                    if element.find_module(context) is None:
                        warnings.append(
                            PackagingProblem(
                                code="MISSING_MODULE",
                                message=(
                                    f"Artifact '{artifact.name}' includes the output of "
                                    f"unknown module '{element.module_name}'"
                                ),
                                path=path,
                                suggestions=_suggest_similar(
                                    element.module_name, list(context.project.modules)
                                ),
                            )
                        )
                elif isinstance(element, LibraryPackagingElement):
                    if element.find_library(context) is None:
                        warnings.append(
                            PackagingProblem(
                                code="MISSING_LIBRARY",
                                message=(
                                    f"Artifact '{artifact.name}' includes unknown library "
                                    f"'{element.library_name}'"
                                ),
                                path=path,
                                suggestions=_suggest_similar(
                                    element.library_name, list(context.project.libraries)
                                ),
                            )
                        )
        return warnings

    def _check_self_inclusion(
        self, artifacts: list[Artifact], context: PackagingElementResolvingContext
    ) -> list[PackagingProblem]:
        ordering = compute_ordering(ArtifactGraph(artifacts, context))
        warnings: list[PackagingProblem] = []
        for name in ordering.sorted_names:
            representative = ordering.self_including.get(name)
            if representative is None:
                continue
            via = "" if representative == name else f" (through '{representative}')"
            warnings.append(
                PackagingProblem(
                    code="SELF_INCLUDING_ARTIFACT",
                    message=f"Artifact '{name}' includes itself{via}",
                    path=f"artifacts.{name}",
                )
            )
        return warnings


def _walk(
    artifact: Artifact, context: PackagingElementResolvingContext
) -> list[tuple[PackagingElement, PackagingElementPath]]:
    """Every element of the artifact's own tree, pre-order, without substitution."""
    found: list[tuple[PackagingElement, PackagingElementPath]] = []

    def collect(element: PackagingElement, path: PackagingElementPath) -> bool:
        found.append((element, path))
        return True

    process_artifact_elements(artifact, None, FunctionProcessor(collect), context, False)
    return found


def _suggest_similar(name: str, candidates: list[str], max_suggestions: int = 3) -> list[str]:
    """Suggest similar names for 'did you mean?' messages."""
    name_lower = name.lower()
    scored = []
    for candidate in candidates:
        candidate_lower = candidate.lower()
        if name_lower in candidate_lower or candidate_lower in name_lower:
            scored.append((0, candidate))
        else:
            common = sum(1 for c in name_lower if c in candidate_lower)
            scored.append((len(name) + len(candidate) - 2 * common, candidate))
    scored.sort(key=lambda x: x[0])
    return [s[1] for s in scored[:max_suggestions]]

"""Builds artifacts and the project structure from a loaded YAML document.

A broken artifact never aborts the read: it is kept as an
:class:`~stowage.models.artifact.InvalidArtifact` carrying its raw fragment
and the reason it could not be loaded, and a warning is reported.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from stowage.models.artifact import Artifact, ArtifactModel, InvalidArtifact
from stowage.models.elements import ArtifactRootElement, CompositePackagingElement
from stowage.models.errors import (
    PackagingProblem,
    UnknownArtifactTypeError,
    UnknownElementTypeError,
    ValidationResult,
)
from stowage.models.project import ProjectStructure
from stowage.packaging.registry import ArtifactTypeRegistry, PackagingElementTypeRegistry
from stowage.parser.loader import SourceMap

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_TYPE = "exploded"


class ArtifactModelReader:
    """Reads the ``artifacts`` section of a document into an :class:`ArtifactModel`."""

    def __init__(
        self,
        element_types: PackagingElementTypeRegistry | None = None,
        artifact_types: ArtifactTypeRegistry | None = None,
    ) -> None:
        self._element_types = element_types or PackagingElementTypeRegistry.with_builtins()
        self._artifact_types = artifact_types or ArtifactTypeRegistry.with_builtins()

    def read(
        self,
        raw: Mapping[str, Any],
        source_map: SourceMap | None = None,
    ) -> tuple[ArtifactModel, ValidationResult]:
        """Return ``(model, result)``; the model holds every named artifact, valid or not."""
        errors: list[PackagingProblem] = []
        warnings: list[PackagingProblem] = []

        def problem(code: str, message: str, path: str) -> PackagingProblem:
            span = source_map.nearest(path) if source_map else None
            return PackagingProblem(code=code, message=message, path=path, span=span)

        raw_artifacts = raw.get("artifacts", [])
        if raw_artifacts is None:
            raw_artifacts = []
        if not isinstance(raw_artifacts, list):
            errors.append(
                problem(
                    "ARTIFACTS_PARSE_ERROR",
                    "'artifacts' must be a YAML list, not a mapping or scalar",
                    "artifacts",
                )
            )
            raw_artifacts = []

        artifacts: list[Artifact] = []
        valid_names: set[str] = set()
        for i, raw_artifact in enumerate(raw_artifacts):
            path = f"artifacts[{i}]"
            if not isinstance(raw_artifact, Mapping):
                errors.append(problem("ARTIFACT_PARSE_ERROR", "Artifact must be a mapping", path))
                continue
            name = raw_artifact.get("name")
            if not isinstance(name, str) or not name:
                reason = "Artifact is missing its 'name'"
                errors.append(problem("ARTIFACT_PARSE_ERROR", reason, path))
                continue

            if name in valid_names:
                reason = f"Duplicate artifact name '{name}'"
                warnings.append(problem("DUPLICATE_ARTIFACT_NAME", reason, f"{path}.name"))
                artifacts.append(InvalidArtifact.from_raw(name, raw_artifact, reason))
                logger.warning("Artifact '%s' is invalid: %s", name, reason)
                continue

            try:
                artifact = self.read_artifact(name, raw_artifact)
            except UnknownArtifactTypeError as exc:
                warnings.append(problem("UNKNOWN_ARTIFACT_TYPE", str(exc), f"{path}.type"))
                artifact = InvalidArtifact.from_raw(name, raw_artifact, str(exc))
            except UnknownElementTypeError as exc:
                warnings.append(problem("UNKNOWN_ELEMENT_TYPE", str(exc), f"{path}.root"))
                artifact = InvalidArtifact.from_raw(name, raw_artifact, str(exc))
            except (ValueError, TypeError) as exc:
                warnings.append(problem("ARTIFACT_PARSE_ERROR", str(exc), path))
                artifact = InvalidArtifact.from_raw(name, raw_artifact, str(exc))

            if isinstance(artifact, InvalidArtifact):
                logger.warning("Artifact '%s' is invalid: %s", name, artifact.error_message)
            else:
                valid_names.add(name)
            artifacts.append(artifact)

        result = ValidationResult(valid=not errors, errors=errors, warnings=warnings)
        return ArtifactModel(artifacts), result

    def read_artifact(self, name: str, raw: Mapping[str, Any]) -> Artifact:
        """Build one artifact; raises on unknown type-ids or malformed fields."""
        artifact_type = self._artifact_types.get(str(raw.get("type", DEFAULT_ARTIFACT_TYPE)))

        raw_root = raw.get("root")
        root: CompositePackagingElement
        if raw_root is None:
            root = artifact_type.create_root_element(name)
        else:
            element = self._element_types.element_from_state(raw_root)
            if not isinstance(element, CompositePackagingElement):
                raise ValueError(
                    f"Root of artifact '{name}' must be a composite element, "
                    f"got '{element.type_id}'"
                )
            root = element
        self._check_no_nested_root(root)

        output_path = raw.get("outputPath")
        if output_path is not None and not isinstance(output_path, str):
            raise ValueError("'outputPath' must be a string")

        raw_properties = raw.get("properties", {}) or {}
        if not isinstance(raw_properties, Mapping) or not all(
            isinstance(v, Mapping) for v in raw_properties.values()
        ):
            raise ValueError("'properties' must map provider ids to mappings")

        return Artifact(
            name=name,
            artifact_type=artifact_type,
            root_element=root,
            build_on_make=bool(raw.get("buildOnMake", False)),
            output_path=output_path,
            properties={str(k): dict(v) for k, v in raw_properties.items()},
        )

    @staticmethod
    def _check_no_nested_root(root: CompositePackagingElement) -> None:
        stack = list(root.children)
        while stack:
            element = stack.pop()
            if isinstance(element, ArtifactRootElement):
                raise ValueError("An artifact root element may only appear as the tree root")
            if isinstance(element, CompositePackagingElement):
                stack.extend(element.children)

    def read_project(
        self,
        raw: Mapping[str, Any],
        source_map: SourceMap | None = None,
    ) -> tuple[ProjectStructure, ValidationResult]:
        """Read ``baseDir``, ``modules`` and ``libraries``; entries are keyed by name."""
        errors: list[PackagingProblem] = []
        data: dict[str, Any] = {}
        if "baseDir" in raw:
            data["baseDir"] = raw["baseDir"]
        if "sourceExtensions" in raw:
            data["sourceExtensions"] = raw["sourceExtensions"]
        for section in ("modules", "libraries"):
            entries = raw.get(section, {}) or {}
            if not isinstance(entries, Mapping):
                errors.append(
                    PackagingProblem(
                        code="PROJECT_PARSE_ERROR",
                        message=f"'{section}' must be a YAML mapping, not a list or scalar",
                        path=section,
                        span=source_map.get(section) if source_map else None,
                    )
                )
                continue
            data[section] = entries
        try:
            for section in ("modules", "libraries"):
                if section in data:
                    data[section] = {
                        str(name): {"name": str(name), **(entry or {})}
                        for name, entry in data[section].items()
                    }
            project = ProjectStructure.model_validate(data)
        except (ValidationError, TypeError) as exc:
            errors.append(
                PackagingProblem(code="PROJECT_PARSE_ERROR", message=str(exc), path="modules")
            )
            project = ProjectStructure()
        return project, ValidationResult(valid=not errors, errors=errors)

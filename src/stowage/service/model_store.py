"""In-memory registry of loaded artifact projects, shared by the REST API."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field

from stowage.models.errors import ModelValidationError, PackagingProblem
from stowage.models.project import ProjectStructure
from stowage.packaging.registry import ArtifactTypeRegistry, PackagingElementTypeRegistry
from stowage.parser.loader import TrackedLoader, YAMLSafetyError
from stowage.parser.reader import ArtifactModelReader
from stowage.parser.validator import ArtifactValidator
from stowage.service.artifact_manager import ArtifactManager
from stowage.settings import Settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LoadResult:
    """Result of loading a document into the store."""

    model_id: str
    artifacts: int
    invalid_artifacts: int
    modules: int
    libraries: int
    warnings: list[str]


@dataclass
class ArtifactInfo:
    """Summary of one artifact."""

    name: str
    type: str
    output_path: str | None
    build_on_make: bool
    includes: list[str]
    self_including: bool


@dataclass
class InvalidArtifactInfo:
    name: str
    error: str


@dataclass
class ModelDescription:
    """Structured summary of a loaded project."""

    model_id: str
    artifacts: list[ArtifactInfo]
    invalid_artifacts: list[InvalidArtifactInfo]
    modules: list[str]
    libraries: list[str]
    build_order: list[str]


@dataclass
class ModelSummary:
    """Short summary for listing models."""

    model_id: str
    artifacts: int
    invalid_artifacts: int


@dataclass
class BuildOrder:
    model_id: str
    build_order: list[str]
    self_including: dict[str, str]


@dataclass
class ErrorInfo:
    """A single validation error or warning."""

    code: str
    message: str
    path: str | None = None
    suggestions: list[str] = field(default_factory=list)

    @classmethod
    def from_problem(cls, problem: PackagingProblem) -> ErrorInfo:
        return cls(
            code=problem.code,
            message=problem.message,
            path=problem.path,
            suggestions=list(problem.suggestions),
        )


@dataclass
class ValidationSummary:
    """Result of validating a document without storing it."""

    valid: bool
    errors: list[ErrorInfo]
    warnings: list[ErrorInfo]


# ---------------------------------------------------------------------------
# ModelStore
# ---------------------------------------------------------------------------


class ModelStore:
    """Thread-safe registry of :class:`ArtifactManager` instances.

    Models are keyed by short UUID (8-char hex). Each loaded document gets its
    own manager; the registries and settings are shared.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._lock = threading.Lock()
        self._managers: dict[str, ArtifactManager] = {}

        self._settings = settings or Settings()
        self._element_types = PackagingElementTypeRegistry.with_builtins()
        self._artifact_types = ArtifactTypeRegistry.with_builtins()
        self._loader = TrackedLoader()
        self._reader = ArtifactModelReader(self._element_types, self._artifact_types)
        self._validator = ArtifactValidator()

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:8]

    def _parse_and_validate(
        self, yaml_str: str
    ) -> tuple[ArtifactManager | None, list[PackagingProblem], list[PackagingProblem]]:
        """Parse YAML, build a manager, run validation.

        Returns ``(manager, errors, warnings)``; ``manager`` is ``None`` when
        the YAML itself could not be read.
        """
        errors: list[PackagingProblem] = []
        warnings: list[PackagingProblem] = []

        try:
            raw, source_map = self._loader.load_string(yaml_str)
        except YAMLSafetyError as exc:
            errors.append(PackagingProblem(code="YAML_SAFETY_ERROR", message=str(exc)))
            return None, errors, warnings
        except Exception as exc:  # ruamel raises a family of unrelated parser errors
            errors.append(PackagingProblem(code="YAML_PARSE_ERROR", message=str(exc)))
            return None, errors, warnings

        project, project_result = self._reader.read_project(raw, source_map)
        errors.extend(project_result.errors)

        manager = self._new_manager(project)
        read_result = manager.load_state(raw, source_map)
        errors.extend(read_result.errors)
        warnings.extend(read_result.warnings)

        validation = self._validator.validate(manager, manager.resolving_context)
        errors.extend(validation.errors)
        warnings.extend(validation.warnings)
        return manager, errors, warnings

    def _new_manager(self, project: ProjectStructure) -> ArtifactManager:
        return ArtifactManager(
            project,
            artifact_types=self._artifact_types,
            element_types=self._element_types,
            settings=self._settings,
        )

    # -- public API ----------------------------------------------------------

    def load_model(self, yaml_str: str) -> LoadResult:
        """Parse, validate, and store a document. Returns id + summary.

        Raises :class:`ModelValidationError` if the document has errors.
        """
        manager, errors, warnings = self._parse_and_validate(yaml_str)
        if errors or manager is None:
            raise ModelValidationError(errors, warnings)

        model_id = self._new_id()
        with self._lock:
            self._managers[model_id] = manager
        logger.info(
            "Loaded model %s with %d artifacts (%d invalid)",
            model_id,
            len(manager.artifacts),
            len(manager.invalid_artifacts),
        )

        return LoadResult(
            model_id=model_id,
            artifacts=len(manager.artifacts),
            invalid_artifacts=len(manager.invalid_artifacts),
            modules=len(manager.project.modules),
            libraries=len(manager.project.libraries),
            warnings=[w.message for w in warnings],
        )

    def get_manager(self, model_id: str) -> ArtifactManager:
        """Look up a loaded model. Raises ``KeyError`` if not found."""
        with self._lock:
            try:
                return self._managers[model_id]
            except KeyError:
                raise KeyError(f"No model loaded with id '{model_id}'") from None

    def describe(self, model_id: str) -> ModelDescription:
        manager = self.get_manager(model_id)
        sorting = manager.sorting_util
        graph = sorting.artifact_graph()
        self_including = sorting.self_including_artifacts()

        artifacts = [
            ArtifactInfo(
                name=artifact.name,
                type=artifact.artifact_type.id,
                output_path=artifact.output_path,
                build_on_make=artifact.build_on_make,
                includes=list(graph.successors(artifact.name)),
                self_including=artifact.name in self_including,
            )
            for artifact in manager.sorted_artifacts()
        ]
        invalid = [
            InvalidArtifactInfo(name=a.name, error=a.error_message)
            for a in manager.invalid_artifacts
        ]
        return ModelDescription(
            model_id=model_id,
            artifacts=artifacts,
            invalid_artifacts=invalid,
            modules=sorted(manager.project.modules),
            libraries=sorted(manager.project.libraries),
            build_order=sorting.build_order(),
        )

    def list_models(self) -> list[ModelSummary]:
        with self._lock:
            items = list(self._managers.items())

        return [
            ModelSummary(
                model_id=mid,
                artifacts=len(m.artifacts),
                invalid_artifacts=len(m.invalid_artifacts),
            )
            for mid, m in items
        ]

    def remove_model(self, model_id: str) -> None:
        """Unload a model. Raises ``KeyError`` if not found."""
        with self._lock:
            try:
                del self._managers[model_id]
            except KeyError:
                raise KeyError(f"No model loaded with id '{model_id}'") from None

    def build_order(self, model_id: str) -> BuildOrder:
        sorting = self.get_manager(model_id).sorting_util
        return BuildOrder(
            model_id=model_id,
            build_order=sorting.build_order(),
            self_including=sorting.self_including_artifacts(),
        )

    def validate(self, yaml_str: str) -> ValidationSummary:
        """Validate a YAML document without storing it."""
        _manager, errors, warnings = self._parse_and_validate(yaml_str)
        return ValidationSummary(
            valid=len(errors) == 0,
            errors=[ErrorInfo.from_problem(e) for e in errors],
            warnings=[ErrorInfo.from_problem(w) for w in warnings],
        )

"""Live artifact model, transactional commits and change notification."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from stowage.models.artifact import (
    Artifact,
    ArtifactModel,
    ArtifactType,
    InvalidArtifact,
    unique_artifact_name,
)
from stowage.models.elements import CompositePackagingElement, PackagingElement
from stowage.models.errors import (
    ArtifactNotFoundError,
    DuplicateArtifactNameError,
    ReentrantCommitError,
    ValidationResult,
)
from stowage.models.project import DefaultResolvingContext, ProjectStructure
from stowage.packaging.graph import ArtifactSortingUtil
from stowage.packaging.registry import ArtifactTypeRegistry, PackagingElementTypeRegistry
from stowage.packaging.util import get_or_create_directory
from stowage.parser.loader import SourceMap
from stowage.parser.reader import ArtifactModelReader
from stowage.parser.writer import ArtifactModelWriter
from stowage.service.modifiable_model import ModifiableArtifactModel
from stowage.settings import Settings

logger = logging.getLogger(__name__)


class ArtifactListener:
    """Receives commit notifications. Override the events you care about."""

    def artifact_removed(self, artifact: Artifact) -> None:
        pass

    def artifact_added(self, artifact: Artifact) -> None:
        pass

    def artifact_changed(self, artifact: Artifact, old_name: str) -> None:
        pass


class ArtifactManager:
    """Owns the committed artifact list of one project.

    Readers use the live queries. Writers take a
    :class:`ModifiableArtifactModel`, edit it, and :meth:`commit` it; a commit
    swaps in the new list, bumps :attr:`modification_count` once, then tells
    listeners about removed, added and changed artifacts, in that order.
    Live :class:`Artifact` objects keep their identity across commits.
    """

    def __init__(
        self,
        project: ProjectStructure | None = None,
        *,
        artifact_types: ArtifactTypeRegistry | None = None,
        element_types: PackagingElementTypeRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.project = project or ProjectStructure()
        self.artifact_types = artifact_types or ArtifactTypeRegistry.with_builtins()
        self.element_types = element_types or PackagingElementTypeRegistry.with_builtins()
        self.settings = settings or Settings()
        self._model = ArtifactModel()
        self._modification_count = 0
        self._inside_commit = False
        self._listeners: list[ArtifactListener] = []
        self.resolving_context = DefaultResolvingContext(self._model, self.project)
        self.sorting_util = ArtifactSortingUtil(self)

    # -- live queries --------------------------------------------------------------

    @property
    def artifacts(self) -> list[Artifact]:
        return self._model.artifacts

    @property
    def all_artifacts_including_invalid(self) -> list[Artifact]:
        return self._model.all_artifacts_including_invalid

    @property
    def invalid_artifacts(self) -> list[InvalidArtifact]:
        return self._model.invalid_artifacts

    def find_artifact(self, name: str) -> Artifact | None:
        return self._model.find_artifact(name)

    def get_artifact(self, name: str) -> Artifact:
        """Like :meth:`find_artifact`, but raises :class:`ArtifactNotFoundError`."""
        artifact = self.find_artifact(name)
        if artifact is None:
            raise ArtifactNotFoundError(name)
        return artifact

    def artifacts_by_type(self, type_id: str) -> list[Artifact]:
        return self._model.artifacts_by_type(type_id)

    def sorted_artifacts(self) -> list[Artifact]:
        return self._model.sorted_artifacts()

    @property
    def modification_count(self) -> int:
        return self._modification_count

    def unique_artifact_name(self, base_name: str) -> str:
        return unique_artifact_name(base_name, self._model.all_artifacts_including_invalid)

    # -- listeners -----------------------------------------------------------------

    def add_listener(self, listener: ArtifactListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ArtifactListener) -> None:
        self._listeners.remove(listener)

    # -- transactions --------------------------------------------------------------

    def create_modifiable_model(self) -> ModifiableArtifactModel:
        return ModifiableArtifactModel(self)

    def commit(self, model: ModifiableArtifactModel) -> None:
        """Apply ``model`` to the live state and publish the differences.

        A model without changes commits nothing: the counter stays put and no
        events fire. Two valid artifacts sharing a name raise
        :class:`DuplicateArtifactNameError` before anything changes. Starting a
        commit from a listener raises :class:`ReentrantCommitError`.
        """
        if self._inside_commit:
            raise ReentrantCommitError("Cannot commit artifacts while a commit is in progress")
        if model.manager is not self:
            raise ValueError("Modifiable model belongs to a different artifact manager")

        self._inside_commit = True
        try:
            if not model.is_modified:
                model.mark_committed()
                logger.debug("Artifact model unchanged; nothing to commit")
                return

            names: set[str] = set()
            for artifact in model.artifacts:
                if artifact.name in names:
                    raise DuplicateArtifactNameError(artifact.name)
                names.add(artifact.name)

            live = self._model.all_artifacts_including_invalid
            remaining = {id(a) for a in live}
            added: list[Artifact] = []
            new_list: list[Artifact] = []
            for artifact in model.all_artifacts_including_invalid:
                original = model.get_original_artifact(artifact)
                new_list.append(original)
                if id(original) in remaining:
                    remaining.discard(id(original))
                else:
                    added.append(original)
            removed = [a for a in live if id(a) in remaining]

            changed: list[tuple[Artifact, str]] = []
            for original, copy in model.modifiable_copies():
                if id(original) in remaining:
                    continue
                if not original.structurally_equal(copy):
                    old_name = original.name
                    original.copy_from(copy)
                    changed.append((original, old_name))

            self._model.replace_all(new_list)
            self._modification_count += 1
            model.mark_committed()
            logger.debug(
                "Committed artifact model #%d: %d removed, %d added, %d changed",
                self._modification_count,
                len(removed),
                len(added),
                len(changed),
            )

            listeners = list(self._listeners)
            for artifact in removed:
                for listener in listeners:
                    listener.artifact_removed(artifact)
            for artifact in added:
                for listener in listeners:
                    listener.artifact_added(artifact)
            for artifact, old_name in changed:
                for listener in listeners:
                    listener.artifact_changed(artifact, old_name)
        finally:
            self._inside_commit = False

    # -- convenience edits -----------------------------------------------------------

    def add_artifact(
        self,
        name: str,
        artifact_type: ArtifactType | str,
        root_element: CompositePackagingElement | None = None,
    ) -> Artifact:
        """Create and commit a new artifact in one step."""
        model = self.create_modifiable_model()
        artifact = model.add_artifact(name, artifact_type, root_element)
        model.commit()
        return artifact

    def add_elements_to_directory(
        self,
        artifact: Artifact,
        relative_path: str,
        elements: Iterable[PackagingElement],
    ) -> None:
        """Add ``elements`` under ``relative_path`` of ``artifact``, creating directories."""
        model = self.create_modifiable_model()
        modifiable = model.get_or_create_modifiable_artifact(artifact)
        directory = get_or_create_directory(modifiable.root_element, relative_path)
        directory.add_or_find_children(elements)
        model.commit()

    # -- persistence -----------------------------------------------------------------

    def load_state(
        self, raw: Mapping[str, Any], source_map: SourceMap | None = None
    ) -> ValidationResult:
        """Replace the live artifacts with those read from ``raw``, as one commit.

        Artifacts whose name survives keep their identity and receive the new
        state; the rest are removed or added.
        """
        reader = ArtifactModelReader(self.element_types, self.artifact_types)
        loaded, result = reader.read(raw, source_map)

        model = self.create_modifiable_model()
        existing = {a.name: a for a in model.all_artifacts_including_invalid if a.is_valid}
        ordered: list[Artifact] = []
        for artifact in loaded.all_artifacts_including_invalid:
            current = existing.pop(artifact.name, None) if artifact.is_valid else None
            if current is None:
                ordered.append(artifact)
                continue
            modifiable = model.get_or_create_modifiable_artifact(current)
            modifiable.copy_from(artifact)
            ordered.append(modifiable)
        model.set_artifacts(ordered)
        model.commit()
        return result

    def get_state(self) -> dict[str, Any]:
        return ArtifactModelWriter().to_dict(self._model)

"""Copy-on-write working copy of an artifact manager's model."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from stowage.models.artifact import (
    Artifact,
    ArtifactType,
    InvalidArtifact,
    sort_key,
    unique_artifact_name,
)
from stowage.models.elements import CompositePackagingElement
from stowage.models.errors import DuplicateArtifactNameError
from stowage.models.project import DefaultResolvingContext

if TYPE_CHECKING:
    from stowage.service.artifact_manager import ArtifactManager


class ModifiableArtifactModel:
    """A private snapshot of the live artifact list, committed through its manager.

    Live artifacts are never mutated here: the first call to
    :meth:`get_or_create_modifiable_artifact` for a live artifact swaps a deep
    copy into this model, and all edits go to that copy. New artifacts are
    private to the model from the start.
    """

    def __init__(self, manager: ArtifactManager) -> None:
        self._manager = manager
        self._original_artifacts: list[Artifact] = manager.all_artifacts_including_invalid
        self._artifacts: list[Artifact] = list(self._original_artifacts)
        self._original_to_copy: dict[Artifact, Artifact] = {}
        self._copy_to_original: dict[Artifact, Artifact] = {}
        self._committed = False
        self.resolving_context = DefaultResolvingContext(self, manager.project)

    @property
    def manager(self) -> ArtifactManager:
        return self._manager

    @property
    def is_committed(self) -> bool:
        return self._committed

    def _assert_writable(self) -> None:
        if self._committed:
            raise RuntimeError("Modifiable artifact model has already been committed")

    # -- reads -----------------------------------------------------------------

    @property
    def all_artifacts_including_invalid(self) -> list[Artifact]:
        return list(self._artifacts)

    @property
    def artifacts(self) -> list[Artifact]:
        return [a for a in self._artifacts if a.is_valid]

    @property
    def invalid_artifacts(self) -> list[InvalidArtifact]:
        return [a for a in self._artifacts if isinstance(a, InvalidArtifact)]

    def find_artifact(self, name: str) -> Artifact | None:
        for artifact in self._artifacts:
            if artifact.is_valid and artifact.name == name:
                return artifact
        return None

    def artifacts_by_type(self, type_id: str) -> list[Artifact]:
        return [a for a in self.artifacts if a.artifact_type.id == type_id]

    def sorted_artifacts(self) -> list[Artifact]:
        return sorted(self.artifacts, key=lambda a: sort_key(a.name))

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.artifacts)

    # -- copy-on-write -------------------------------------------------------------

    def get_or_create_modifiable_artifact(self, artifact: Artifact) -> Artifact:
        """Return the editable version of ``artifact`` (live or already editable)."""
        self._assert_writable()
        if artifact in self._copy_to_original:
            return artifact
        copy = self._original_to_copy.get(artifact)
        if copy is not None:
            return copy
        if not any(a is artifact for a in self._original_artifacts):
            # Added in this model, or foreign: already private.
            return artifact
        copy = artifact.create_copy()
        self._original_to_copy[artifact] = copy
        self._copy_to_original[copy] = artifact
        for i, current in enumerate(self._artifacts):
            if current is artifact:
                self._artifacts[i] = copy
                break
        return copy

    def get_modifiable_copy(self, artifact: Artifact) -> Artifact | None:
        return self._original_to_copy.get(artifact)

    def get_original_artifact(self, artifact: Artifact) -> Artifact:
        return self._copy_to_original.get(artifact, artifact)

    def modifiable_copies(self) -> list[tuple[Artifact, Artifact]]:
        """``(original, copy)`` pairs in creation order."""
        return list(self._original_to_copy.items())

    # -- structural edits ---------------------------------------------------------

    def _check_name_free(self, artifact: Artifact, name: str) -> None:
        if not artifact.is_valid:
            return
        original = self.get_original_artifact(artifact)
        for other in self._artifacts:
            if (
                other.is_valid
                and other.name == name
                and self.get_original_artifact(other) is not original
            ):
                raise DuplicateArtifactNameError(name)

    def add_artifact(
        self,
        name: str,
        artifact_type: ArtifactType | str,
        root_element: CompositePackagingElement | None = None,
    ) -> Artifact:
        """Create a new artifact with a unique name derived from ``name``."""
        self._assert_writable()
        if isinstance(artifact_type, str):
            artifact_type = self._manager.artifact_types.get(artifact_type)
        unique_name = unique_artifact_name(name, self._artifacts)
        if root_element is None:
            root_element = artifact_type.create_root_element(unique_name)
        artifact = Artifact(
            name=unique_name,
            artifact_type=artifact_type,
            root_element=root_element,
            output_path=artifact_type.default_output_path(
                unique_name, self._manager.settings.project_output_root
            ),
        )
        self._artifacts.append(artifact)
        return artifact

    def add_existing(self, artifact: Artifact) -> Artifact:
        """Add an already constructed artifact (e.g. one read from YAML).

        Raises :class:`DuplicateArtifactNameError` if a valid artifact of the
        same name is already in the model.
        """
        self._assert_writable()
        self._check_name_free(artifact, artifact.name)
        self._artifacts.append(artifact)
        return artifact

    def remove_artifact(self, artifact: Artifact) -> None:
        self._assert_writable()
        original = self.get_original_artifact(artifact)
        copy = self._original_to_copy.pop(original, None)
        if copy is not None:
            del self._copy_to_original[copy]
        doomed = {id(artifact), id(original)} | ({id(copy)} if copy is not None else set())
        self._artifacts = [a for a in self._artifacts if id(a) not in doomed]

    def set_artifacts(self, artifacts: Iterable[Artifact]) -> None:
        """Replace the working list; live artifacts left out of it are removed."""
        self._assert_writable()
        self._artifacts = list(artifacts)
        listed = {id(self.get_original_artifact(a)) for a in self._artifacts}
        for original in [o for o in self._original_to_copy if id(o) not in listed]:
            del self._copy_to_original[self._original_to_copy.pop(original)]

    def rename_artifact(self, artifact: Artifact, new_name: str) -> Artifact:
        self._assert_writable()
        self._check_name_free(artifact, new_name)
        modifiable = self.get_or_create_modifiable_artifact(artifact)
        modifiable.name = new_name
        return modifiable

    # -- commit --------------------------------------------------------------------

    @property
    def is_modified(self) -> bool:
        current = [self.get_original_artifact(a) for a in self._artifacts]
        if len(current) != len(self._original_artifacts) or any(
            a is not b for a, b in zip(current, self._original_artifacts, strict=True)
        ):
            return True
        return any(
            not original.structurally_equal(copy)
            for original, copy in self._original_to_copy.items()
        )

    def commit(self) -> None:
        self._assert_writable()
        self._manager.commit(self)

    def mark_committed(self) -> None:
        self._committed = True

"""Artifacts, artifact types, and the name-keyed artifact model."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from stowage.models.elements import (
    ArchivePackagingElement,
    ArtifactRootElement,
    CompositePackagingElement,
    PackagingElement,
    copy_with_children,
    trees_equal,
)

if TYPE_CHECKING:
    from stowage.models.project import PackagingElementResolvingContext

    SubstitutionRule = Callable[
        [Artifact, PackagingElementResolvingContext, ArtifactType | None],
        list[PackagingElement] | None,
    ]

_UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def sanitize_file_name(name: str) -> str:
    """Replace characters that are unsafe in file names with ``_``."""
    return _UNSAFE_FILE_CHARS.sub("_", name)


# ---------------------------------------------------------------------------
# Artifact type strategies
# ---------------------------------------------------------------------------


def inline_root_children(
    artifact: Artifact,
    context: PackagingElementResolvingContext,
    parent_type: ArtifactType | None,
) -> list[PackagingElement] | None:
    """Exploded artifacts contribute their children; anything else contributes its root."""
    root = artifact.root_element
    if isinstance(root, ArtifactRootElement):
        return list(root.children)
    return [root]


def no_substitution(
    artifact: Artifact,
    context: PackagingElementResolvingContext,
    parent_type: ArtifactType | None,
) -> list[PackagingElement] | None:
    """Keep embedded artifacts of this type opaque."""
    return None


def exploded_root(artifact_name: str) -> CompositePackagingElement:
    return ArtifactRootElement()


def archive_root(artifact_name: str) -> CompositePackagingElement:
    return ArchivePackagingElement(f"{sanitize_file_name(artifact_name)}.zip")


def default_output_path(artifact_name: str, output_root: str) -> str:
    return f"{output_root.rstrip('/')}/artifacts/{sanitize_file_name(artifact_name)}"


@dataclass(frozen=True)
class ArtifactType:
    """Behavior table for one kind of artifact, looked up by ``id``."""

    id: str
    presentable_name: str
    create_root: Callable[[str], CompositePackagingElement] = exploded_root
    substitution_rule: SubstitutionRule = inline_root_children
    output_path_rule: Callable[[str, str], str] = default_output_path

    def create_root_element(self, artifact_name: str) -> CompositePackagingElement:
        return self.create_root(artifact_name)

    def get_substitution(
        self,
        artifact: Artifact,
        context: PackagingElementResolvingContext,
        parent_type: ArtifactType | None,
    ) -> list[PackagingElement] | None:
        """Elements standing in for ``artifact`` when embedded in a ``parent_type`` artifact."""
        return self.substitution_rule(artifact, context, parent_type)

    def default_output_path(self, artifact_name: str, output_root: str) -> str:
        return self.output_path_rule(artifact_name, output_root)


EXPLODED = ArtifactType(id="exploded", presentable_name="Exploded directory")
ARCHIVE = ArtifactType(id="archive", presentable_name="Archive", create_root=archive_root)
INVALID = ArtifactType(id="invalid", presentable_name="Invalid", substitution_rule=no_substitution)


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Artifact:
    """A named packaging tree plus its output settings.

    Instances are compared by identity. Long-lived holders keep a reference to
    the same object across commits; commits write new state into it with
    :meth:`copy_from`.
    """

    name: str
    artifact_type: ArtifactType
    root_element: CompositePackagingElement
    build_on_make: bool = False
    output_path: str | None = None
    properties: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return True

    @property
    def output_file_path(self) -> str | None:
        """Where the artifact ends up: the output directory, or the archive inside it."""
        if not self.output_path:
            return None
        if isinstance(self.root_element, ArtifactRootElement):
            return self.output_path
        return f"{self.output_path.rstrip('/')}/{self.root_element.name}"

    def get_properties(self, provider_id: str) -> dict[str, Any] | None:
        return self.properties.get(provider_id)

    def set_properties(self, provider_id: str, properties: Mapping[str, Any] | None) -> None:
        if properties is None:
            self.properties.pop(provider_id, None)
        else:
            self.properties[provider_id] = dict(properties)

    def structurally_equal(self, other: Artifact) -> bool:
        return (
            self.name == other.name
            and self.artifact_type.id == other.artifact_type.id
            and self.build_on_make == other.build_on_make
            and self.output_path == other.output_path
            and self.properties == other.properties
            and trees_equal(self.root_element, other.root_element)
        )

    def create_copy(self) -> Artifact:
        """Deep copy: a new root tree and new properties, same type."""
        return Artifact(
            name=self.name,
            artifact_type=self.artifact_type,
            root_element=copy_with_children(self.root_element),
            build_on_make=self.build_on_make,
            output_path=self.output_path,
            properties=deepcopy(self.properties),
        )

    def copy_from(self, other: Artifact) -> None:
        """Take over the state of ``other`` while keeping this object's identity."""
        self.name = other.name
        self.artifact_type = other.artifact_type
        self.root_element = other.root_element
        self.build_on_make = other.build_on_make
        self.output_path = other.output_path
        self.properties = other.properties


@dataclass(eq=False)
class InvalidArtifact(Artifact):
    """Placeholder for an artifact that failed to load; keeps the raw fragment."""

    error_message: str = ""
    raw_state: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls, name: str, raw_state: Mapping[str, Any], error_message: str
    ) -> InvalidArtifact:
        return cls(
            name=name,
            artifact_type=INVALID,
            root_element=ArtifactRootElement(),
            error_message=error_message,
            raw_state=dict(raw_state),
        )

    @property
    def is_valid(self) -> bool:
        return False

    def create_copy(self) -> InvalidArtifact:
        return InvalidArtifact.from_raw(self.name, deepcopy(self.raw_state), self.error_message)


def sort_key(artifact_name: str) -> tuple[str, str]:
    """Case-insensitive name order, stable for names differing only in case."""
    return artifact_name.casefold(), artifact_name


def unique_artifact_name(base_name: str, artifacts: Iterable[Artifact]) -> str:
    """``base_name``, or ``base_name`` suffixed 2, 3, ... until no artifact uses it.

    Invalid artifacts count too, so their raw fragments stay addressable by name.
    """
    taken = {a.name for a in artifacts}
    name = base_name
    i = 2
    while name in taken:
        name = f"{base_name}{i}"
        i += 1
    return name


class ArtifactModel:
    """An ordered collection of artifacts; invalid ones are hidden from default queries."""

    def __init__(self, artifacts: Iterable[Artifact] = ()) -> None:
        self._artifacts: list[Artifact] = list(artifacts)

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

    def __len__(self) -> int:
        return len(self.artifacts)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find_artifact(name) is not None

    def replace_all(self, artifacts: Iterable[Artifact]) -> None:
        self._artifacts = list(artifacts)

"""Type registries: packaging-element types and artifact types, looked up by id."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from stowage.models.artifact import ARCHIVE, EXPLODED, ArtifactType
from stowage.models.elements import (
    ArchivePackagingElement,
    ArtifactPackagingElement,
    ArtifactRootElement,
    CompositePackagingElement,
    DirectoryCopyPackagingElement,
    DirectoryPackagingElement,
    ExtractedDirectoryPackagingElement,
    FileCopyPackagingElement,
    LibraryPackagingElement,
    ModuleOutputPackagingElement,
    PackagingElement,
)
from stowage.models.errors import UnknownArtifactTypeError, UnknownElementTypeError

BUILTIN_ELEMENT_TYPES: tuple[type[PackagingElement], ...] = (
    ArtifactRootElement,
    DirectoryPackagingElement,
    ArchivePackagingElement,
    FileCopyPackagingElement,
    DirectoryCopyPackagingElement,
    ExtractedDirectoryPackagingElement,
    ArtifactPackagingElement,
    ModuleOutputPackagingElement,
    LibraryPackagingElement,
)

BUILTIN_ARTIFACT_TYPES: tuple[ArtifactType, ...] = (EXPLODED, ARCHIVE)


class PackagingElementTypeRegistry:
    """Maps a stable ``type_id`` to the element class able to hold its state."""

    def __init__(self, element_types: Iterable[type[PackagingElement]] = ()) -> None:
        self._types: dict[str, type[PackagingElement]] = {}
        for element_type in element_types:
            self.register(element_type)

    @classmethod
    def with_builtins(cls) -> PackagingElementTypeRegistry:
        return cls(BUILTIN_ELEMENT_TYPES)

    def register(self, element_type: type[PackagingElement]) -> type[PackagingElement]:
        """Register an element class. Can be used as a decorator."""
        if not element_type.type_id:
            raise ValueError(f"{element_type.__name__} does not declare a type_id")
        self._types[element_type.type_id] = element_type
        return element_type

    def get(self, type_id: str) -> type[PackagingElement]:
        if type_id not in self._types:
            raise UnknownElementTypeError(type_id, available=self.available())
        return self._types[type_id]

    def create_empty(self, type_id: str) -> PackagingElement:
        return self.get(type_id)()

    def create(self, type_id: str, state: Mapping[str, Any]) -> PackagingElement:
        element = self.create_empty(type_id)
        element.load_state(state)
        return element

    def available(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    # -- tree (de)serialization --------------------------------------------------

    def element_from_state(self, raw: Mapping[str, Any]) -> PackagingElement:
        """Build an element subtree from its persisted mapping.

        Raises :class:`UnknownElementTypeError` for any unregistered type-id in
        the subtree, and ``ValueError`` for malformed nodes.
        """
        if not isinstance(raw, Mapping):
            raise ValueError(f"Packaging element must be a mapping, got {type(raw).__name__}")
        type_id = raw.get("type")
        if not isinstance(type_id, str):
            raise ValueError("Packaging element is missing its 'type'")
        state = {k: v for k, v in raw.items() if k not in ("type", "children")}
        element = self.create(type_id, state)
        raw_children = raw.get("children", [])
        if raw_children and not isinstance(element, CompositePackagingElement):
            raise ValueError(f"Packaging element '{type_id}' cannot have children")
        if not isinstance(raw_children, list):
            raise ValueError(f"Children of '{type_id}' must be a list")
        if isinstance(element, CompositePackagingElement):
            element.children = [self.element_from_state(child) for child in raw_children]
        return element


class ArtifactTypeRegistry:
    """Maps an artifact type id to its behavior table."""

    def __init__(self, artifact_types: Iterable[ArtifactType] = ()) -> None:
        self._types: dict[str, ArtifactType] = {}
        for artifact_type in artifact_types:
            self.register(artifact_type)

    @classmethod
    def with_builtins(cls) -> ArtifactTypeRegistry:
        return cls(BUILTIN_ARTIFACT_TYPES)

    def register(self, artifact_type: ArtifactType) -> ArtifactType:
        self._types[artifact_type.id] = artifact_type
        return artifact_type

    def get(self, type_id: str) -> ArtifactType:
        if type_id not in self._types:
            raise UnknownArtifactTypeError(type_id, available=self.available())
        return self._types[type_id]

    def find(self, type_id: str) -> ArtifactType | None:
        return self._types.get(type_id)

    def available(self) -> list[str]:
        return sorted(self._types)

    def __iter__(self) -> Iterator[ArtifactType]:
        return iter(self._types.values())

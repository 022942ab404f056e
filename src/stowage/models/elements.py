"""Packaging elements: the nodes of an artifact's output-composition tree.

Elements are mutable and compared by identity (``eq=False``); structural
comparison goes through :meth:`PackagingElement.is_equal_to` and
:func:`tree_state`. Three families exist:

* leaf copy elements, which copy a file or directory into the output;
* composite elements, which own an ordered list of children;
* complex elements, which produce nothing themselves and instead resolve to
  a list of substitute elements against a resolving context.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, ClassVar

from stowage.models.project import ContentFolderKind

if TYPE_CHECKING:
    from stowage.models.artifact import Artifact, ArtifactType
    from stowage.models.project import Library, Module, PackagingElementResolvingContext


class PackagingElement:
    """Base class for every node of a packaging tree."""

    type_id: ClassVar[str] = ""

    def get_state(self) -> dict[str, Any]:
        """Return the type-specific scalar fields of this element."""
        return {}

    def load_state(self, state: Mapping[str, Any]) -> None:
        """Populate this element from the fields produced by :meth:`get_state`."""

    def is_equal_to(self, other: PackagingElement) -> bool:
        """Same type and same scalar state (children are not compared)."""
        return type(other) is type(self) and other.get_state() == self.get_state()

    @property
    def presentable_name(self) -> str:
        return self.type_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_state()!r})"


# ---------------------------------------------------------------------------
# Composite elements
# ---------------------------------------------------------------------------


@dataclass(eq=False, repr=False)
class CompositePackagingElement(PackagingElement):
    """An element with an ordered list of exclusively owned children."""

    children: list[PackagingElement] = field(default_factory=list, kw_only=True)

    @property
    def name(self) -> str:
        raise NotImplementedError

    def rename(self, new_name: str) -> None:
        raise NotImplementedError

    @property
    def presentable_name(self) -> str:
        return self.name

    def add_or_find_child(self, child: PackagingElement) -> PackagingElement:
        """Append ``child`` unless an equal sibling exists; equal composites are merged."""
        for element in self.children:
            if element.is_equal_to(child):
                if isinstance(element, CompositePackagingElement) and isinstance(
                    child, CompositePackagingElement
                ):
                    element.add_or_find_children(child.children)
                return element
        self.children.append(child)
        return child

    def add_or_find_children(
        self, children: Iterable[PackagingElement]
    ) -> list[PackagingElement]:
        return [self.add_or_find_child(child) for child in list(children)]

    def add_first_child(self, child: PackagingElement) -> None:
        """Insert ``child`` first, absorbing an equal sibling further down the list."""
        self.children.insert(0, child)
        for i in range(1, len(self.children)):
            element = self.children[i]
            if element.is_equal_to(child):
                if isinstance(element, CompositePackagingElement) and isinstance(
                    child, CompositePackagingElement
                ):
                    child.add_or_find_children(element.children)
                del self.children[i]
                break

    def remove_child(self, child: PackagingElement) -> None:
        for i, element in enumerate(self.children):
            if element is child:
                del self.children[i]
                return

    def remove_children(self, children: Iterable[PackagingElement]) -> None:
        doomed = {id(child) for child in children}
        self.children[:] = [c for c in self.children if id(c) not in doomed]

    def remove_all_children(self) -> None:
        self.children.clear()

    def find_composite_child(self, name: str) -> CompositePackagingElement | None:
        for child in self.children:
            if isinstance(child, CompositePackagingElement) and child.name == name:
                return child
        return None


@dataclass(eq=False, repr=False)
class DirectoryPackagingElement(CompositePackagingElement):
    """A plain directory in the output layout."""

    type_id: ClassVar[str] = "directory"

    directory_name: str = ""

    @property
    def name(self) -> str:
        return self.directory_name

    def rename(self, new_name: str) -> None:
        self.directory_name = new_name

    def get_state(self) -> dict[str, Any]:
        return {"name": self.directory_name}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.directory_name = str(state.get("name", ""))


@dataclass(eq=False, repr=False)
class ArchivePackagingElement(CompositePackagingElement):
    """A zip-style archive whose entries are the children."""

    type_id: ClassVar[str] = "archive"

    archive_file_name: str = ""

    @property
    def name(self) -> str:
        return self.archive_file_name

    def rename(self, new_name: str) -> None:
        self.archive_file_name = new_name

    def get_state(self) -> dict[str, Any]:
        return {"name": self.archive_file_name}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.archive_file_name = str(state.get("name", ""))


@dataclass(eq=False, repr=False)
class ArtifactRootElement(CompositePackagingElement):
    """The output directory of an exploded artifact. Only ever a tree root."""

    type_id: ClassVar[str] = "root"

    @property
    def name(self) -> str:
        return ""

    def rename(self, new_name: str) -> None:
        pass

    @property
    def presentable_name(self) -> str:
        return "<output root>"


# ---------------------------------------------------------------------------
# Leaf copy elements
# ---------------------------------------------------------------------------


@dataclass(eq=False, repr=False)
class FileOrDirectoryCopyPackagingElement(PackagingElement):
    """Copies something found at ``file_path`` into the output."""

    file_path: str = ""

    def find_file(self) -> Path | None:
        """Return the source location if it exists on disk."""
        if not self.file_path:
            return None
        path = Path(self.file_path)
        return path if path.exists() else None

    def get_state(self) -> dict[str, Any]:
        return {"path": self.file_path}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.file_path = str(state.get("path", ""))

    @property
    def presentable_name(self) -> str:
        return PurePosixPath(self.file_path).name or self.file_path


@dataclass(eq=False, repr=False)
class FileCopyPackagingElement(FileOrDirectoryCopyPackagingElement):
    type_id: ClassVar[str] = "file-copy"

    rename_output: str | None = None

    @property
    def output_file_name(self) -> str:
        if self.rename_output:
            return self.rename_output
        return PurePosixPath(self.file_path).name

    def get_state(self) -> dict[str, Any]:
        state = super().get_state()
        if self.rename_output:
            state["outputFileName"] = self.rename_output
        return state

    def load_state(self, state: Mapping[str, Any]) -> None:
        super().load_state(state)
        output = state.get("outputFileName")
        self.rename_output = str(output) if output else None

    @property
    def presentable_name(self) -> str:
        return self.output_file_name


@dataclass(eq=False, repr=False)
class DirectoryCopyPackagingElement(FileOrDirectoryCopyPackagingElement):
    type_id: ClassVar[str] = "dir-copy"


@dataclass(eq=False, repr=False)
class ExtractedDirectoryPackagingElement(FileOrDirectoryCopyPackagingElement):
    """Copies a directory found inside an archive (``file_path``) at ``path_in_jar``."""

    type_id: ClassVar[str] = "extracted-dir"

    path_in_jar: str = "/"

    def get_state(self) -> dict[str, Any]:
        state = super().get_state()
        state["pathInJar"] = self.path_in_jar
        return state

    def load_state(self, state: Mapping[str, Any]) -> None:
        super().load_state(state)
        self.path_in_jar = str(state.get("pathInJar", "/"))

    @property
    def presentable_name(self) -> str:
        return f"{super().presentable_name}!{self.path_in_jar}"


# ---------------------------------------------------------------------------
# Complex elements
# ---------------------------------------------------------------------------


class ComplexPackagingElement(PackagingElement):
    """An element standing for other elements, resolved lazily."""

    def get_substitution(
        self, context: PackagingElementResolvingContext, artifact_type: ArtifactType | None
    ) -> list[PackagingElement] | None:
        """Return the substitute elements, or ``None`` when nothing can be substituted."""
        raise NotImplementedError


@dataclass(eq=False, repr=False)
class ArtifactPackagingElement(ComplexPackagingElement):
    """References (does not own) another artifact by name."""

    type_id: ClassVar[str] = "artifact"

    artifact_name: str = ""

    def find_artifact(self, context: PackagingElementResolvingContext) -> Artifact | None:
        return context.find_artifact(self.artifact_name)

    def get_substitution(
        self, context: PackagingElementResolvingContext, artifact_type: ArtifactType | None
    ) -> list[PackagingElement] | None:
        artifact = self.find_artifact(context)
        if artifact is None:
            return None
        # Inlining policy belongs to the type of the embedded artifact.
        return artifact.artifact_type.get_substitution(artifact, context, artifact_type)

    def get_state(self) -> dict[str, Any]:
        return {"artifactName": self.artifact_name}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.artifact_name = str(state.get("artifactName", ""))

    @property
    def presentable_name(self) -> str:
        return f"'{self.artifact_name}' artifact"


@dataclass(eq=False, repr=False)
class ModuleOutputPackagingElement(ComplexPackagingElement):
    """The compiled output of a module, filtered by content kind."""

    type_id: ClassVar[str] = "module-output"

    module_name: str = ""
    content_kind: ContentFolderKind = ContentFolderKind.PRODUCTION

    def find_module(self, context: PackagingElementResolvingContext) -> Module | None:
        return context.find_module(self.module_name)

    def get_substitution(
        self, context: PackagingElementResolvingContext, artifact_type: ArtifactType | None
    ) -> list[PackagingElement] | None:
        return None

    def source_roots(self, context: PackagingElementResolvingContext) -> list[Path]:
        module = self.find_module(context)
        if module is None:
            return []
        roots = module.source_roots_for(self.content_kind)
        return [context.project.resolve_path(root) for root in roots]

    def output_path(self, context: PackagingElementResolvingContext) -> Path | None:
        module = self.find_module(context)
        output = module.output_for(self.content_kind) if module is not None else None
        return context.project.resolve_path(output) if output else None

    def get_state(self) -> dict[str, Any]:
        return {"module": self.module_name, "kind": self.content_kind.value}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.module_name = str(state.get("module", ""))
        self.content_kind = ContentFolderKind(state.get("kind", ContentFolderKind.PRODUCTION))

    @property
    def presentable_name(self) -> str:
        suffix = ""
        if self.content_kind is not ContentFolderKind.PRODUCTION:
            suffix = f" ({self.content_kind})"
        return f"'{self.module_name}' compile output{suffix}"


@dataclass(eq=False, repr=False)
class LibraryPackagingElement(ComplexPackagingElement):
    """Stands for the files of a named library."""

    type_id: ClassVar[str] = "library"

    library_name: str = ""

    def find_library(self, context: PackagingElementResolvingContext) -> Library | None:
        return context.find_library(self.library_name)

    def get_substitution(
        self, context: PackagingElementResolvingContext, artifact_type: ArtifactType | None
    ) -> list[PackagingElement] | None:
        library = self.find_library(context)
        if library is None:
            return None
        elements: list[PackagingElement] = []
        for entry in library.files:
            if entry.endswith("/"):
                elements.append(DirectoryCopyPackagingElement(file_path=entry.rstrip("/")))
            else:
                elements.append(FileCopyPackagingElement(file_path=entry))
        return elements

    def get_state(self) -> dict[str, Any]:
        return {"library": self.library_name}

    def load_state(self, state: Mapping[str, Any]) -> None:
        self.library_name = str(state.get("library", ""))

    @property
    def presentable_name(self) -> str:
        return f"Library files '{self.library_name}'"


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def tree_state(element: PackagingElement) -> dict[str, Any]:
    """Nested plain-dict form of ``element`` and its subtree."""
    state: dict[str, Any] = {"type": element.type_id}
    state.update(element.get_state())
    if isinstance(element, CompositePackagingElement):
        state["children"] = [tree_state(child) for child in element.children]
    return state


def trees_equal(first: PackagingElement, second: PackagingElement) -> bool:
    return tree_state(first) == tree_state(second)


def copy_element(element: PackagingElement) -> PackagingElement:
    """Copy the scalar state of ``element`` into a new element of the same type."""
    copy = type(element)()
    copy.load_state(element.get_state())
    return copy


def copy_with_children(element: PackagingElement) -> PackagingElement:
    """Deep copy of ``element`` and its subtree; child order is preserved."""
    copy = copy_element(element)
    if isinstance(element, CompositePackagingElement) and isinstance(
        copy, CompositePackagingElement
    ):
        copy.children = [copy_with_children(child) for child in element.children]
    return copy

"""Queries and edits over packaging trees and artifact sets.

Lookups by output path, parent walks across embedded artifacts, tree
clean-up helpers, and the small path utilities the rest of the package
shares.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from stowage.models.artifact import Artifact, ArtifactType, default_output_path
from stowage.models.elements import (
    ArchivePackagingElement,
    ArtifactPackagingElement,
    ArtifactRootElement,
    CompositePackagingElement,
    DirectoryCopyPackagingElement,
    DirectoryPackagingElement,
    ExtractedDirectoryPackagingElement,
    FileCopyPackagingElement,
    FileOrDirectoryCopyPackagingElement,
    ModuleOutputPackagingElement,
    PackagingElement,
    copy_element,
    copy_with_children,
)
from stowage.models.project import ContentFolderKind, Module
from stowage.packaging.path import PackagingElementPath
from stowage.packaging.processor import (
    FunctionProcessor,
    ProcessorLike,
    as_processor,
    process_artifact_elements,
    process_elements_with_substitutions,
)

if TYPE_CHECKING:
    from stowage.models.project import PackagingElementResolvingContext
    from stowage.service.artifact_manager import ArtifactManager

__all__ = [
    "ParentElementProcessor",
    "append_to_path",
    "concat_paths",
    "copy_from_root",
    "copy_with_children",
    "default_artifact_output_path",
    "find_by_relative_path",
    "find_containing_artifacts_with_output_paths",
    "find_source_file_by_output_path",
    "find_source_files_by_output_path",
    "get_artifacts_containing_module_output",
    "get_artifacts_with_output_paths",
    "get_modules_included_in_artifacts",
    "get_or_create_directory",
    "process_directory_children",
    "process_elements_by_relative_path",
    "process_parents",
    "remove_children_recursively",
    "remove_duplicates",
    "should_clear_output_before_rebuild",
    "suggest_artifact_file_name",
    "suggest_file_name",
    "trim_forward_slashes",
]

ParentPath = tuple[tuple[Artifact, CompositePackagingElement], ...]


class ParentElementProcessor(Protocol):
    """Callback for :func:`process_parents`.

    ``path_to_element`` lists ``(artifact, composite)`` pairs from the
    element being processed back towards the starting artifact.
    """

    def __call__(
        self,
        element: CompositePackagingElement,
        path_to_element: ParentPath,
        artifact: Artifact,
    ) -> bool: ...


# ---------------------------------------------------------------------------
# Copying and clean-up
# ---------------------------------------------------------------------------


def copy_from_root(old_root: CompositePackagingElement) -> CompositePackagingElement:
    """Copy a root, merging children that turn out to be equal."""
    new_root = copy_element(old_root)
    assert isinstance(new_root, CompositePackagingElement)
    for child in old_root.children:
        new_root.add_or_find_child(copy_with_children(child))
    return new_root


def remove_duplicates(parent: CompositePackagingElement) -> None:
    """Merge equal siblings throughout the subtree; the first occurrence survives."""
    kept: list[PackagingElement] = []
    doomed: list[PackagingElement] = []
    for child in parent.children:
        if isinstance(child, CompositePackagingElement):
            remove_duplicates(child)
        survivor = next((prev for prev in kept if child.is_equal_to(prev)), None)
        if survivor is None:
            kept.append(child)
            continue
        if isinstance(child, CompositePackagingElement) and isinstance(
            survivor, CompositePackagingElement
        ):
            survivor.add_or_find_children(child.children)
        doomed.append(child)
    parent.remove_children(doomed)


def remove_children_recursively(
    element: CompositePackagingElement, condition: Callable[[PackagingElement], bool]
) -> None:
    """Remove leaves matching ``condition`` and any composite left empty."""
    doomed: list[PackagingElement] = []
    for child in element.children:
        if isinstance(child, CompositePackagingElement):
            remove_children_recursively(child, condition)
            if not child.children:
                doomed.append(child)
        elif condition(child):
            doomed.append(child)
    element.remove_children(doomed)


def get_or_create_directory(
    root: CompositePackagingElement, relative_path: str
) -> CompositePackagingElement:
    """Walk ``relative_path`` from ``root``, creating missing directories on the way."""
    current = root
    for name in trim_forward_slashes(relative_path).split("/"):
        if not name:
            continue
        child = current.find_composite_child(name)
        if child is None:
            child = DirectoryPackagingElement(name)
            current.children.append(child)
        current = child
    return current


# ---------------------------------------------------------------------------
# Lookup by output path
# ---------------------------------------------------------------------------


def _split_first(relative_path: str) -> tuple[str, str]:
    head, _, tail = relative_path.partition("/")
    return head, tail


def process_elements_by_relative_path(
    parent: CompositePackagingElement,
    relative_path: str,
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
    parent_path: PackagingElementPath,
    processor: ProcessorLike,
) -> bool:
    """Feed ``processor`` every element whose output location is ``relative_path``.

    Path segments match composite names and file-copy output names;
    complex elements are inlined on the way down.
    """
    relative_path = relative_path.lstrip("/")
    if not relative_path:
        return True
    first_name, tail = _split_first(relative_path)
    target = as_processor(processor)

    def visit(element: PackagingElement, path: PackagingElementPath) -> bool:
        if isinstance(element, CompositePackagingElement):
            matches = element.name == first_name
        elif isinstance(element, FileCopyPackagingElement):
            matches = element.output_file_name == first_name
        else:
            matches = False
        if not matches:
            return True
        if not tail:
            return target.process(element, path)
        if isinstance(element, CompositePackagingElement):
            return process_elements_by_relative_path(
                element, tail, context, artifact_type, path, target
            )
        return True

    return process_elements_with_substitutions(
        parent.children,
        context,
        artifact_type,
        parent_path.append_composite(parent),
        FunctionProcessor(visit),
    )


def find_by_relative_path(
    parent: CompositePackagingElement,
    relative_path: str,
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
) -> list[PackagingElement]:
    result: list[PackagingElement] = []

    def collect(element: PackagingElement, path: PackagingElementPath) -> bool:
        result.append(element)
        return True

    process_elements_by_relative_path(
        parent,
        relative_path,
        context,
        artifact_type,
        PackagingElementPath.EMPTY,
        FunctionProcessor(collect),
    )
    return result


def process_directory_children(
    parent: CompositePackagingElement,
    path_to_parent: PackagingElementPath,
    relative_path: str,
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
    processor: ProcessorLike,
) -> bool:
    """Process the (substituted) children of every directory found at ``relative_path``."""
    target = as_processor(processor)

    def visit(element: PackagingElement, path: PackagingElementPath) -> bool:
        if isinstance(element, DirectoryPackagingElement):
            return process_elements_with_substitutions(
                element.children, context, artifact_type, path.append_composite(element), target
            )
        return True

    return process_elements_by_relative_path(
        parent, relative_path, context, artifact_type, path_to_parent, FunctionProcessor(visit)
    )


def find_source_files_by_output_path(
    parent: CompositePackagingElement,
    output_path: str,
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
) -> list[Path]:
    """Existing source files that end up at ``output_path`` below ``parent``."""
    path = output_path.lstrip("/")
    if not path:
        return []
    first_name, tail = _split_first(path)
    result: list[Path] = []

    def visit(element: PackagingElement, element_path: PackagingElementPath) -> bool:
        if isinstance(element, CompositePackagingElement):
            if element.name == first_name:
                result.extend(
                    find_source_files_by_output_path(element, tail, context, artifact_type)
                )
        elif isinstance(element, FileCopyPackagingElement):
            if element.output_file_name == first_name and not tail:
                found = element.find_file()
                if found is not None:
                    result.append(found)
        elif isinstance(
            element, DirectoryCopyPackagingElement | ExtractedDirectoryPackagingElement
        ):
            source_root = element.find_file()
            if source_root is not None and (source_root / path).exists():
                result.append(source_root / path)
        elif isinstance(element, ModuleOutputPackagingElement):
            for source_root in element.source_roots(context):
                candidate = source_root / path
                if candidate.exists() and context.project.is_resource_file(candidate):
                    result.append(candidate)
        return True

    process_elements_with_substitutions(
        parent.children,
        context,
        artifact_type,
        PackagingElementPath.EMPTY,
        FunctionProcessor(
            visit,
            should_process_substitution=lambda e: not isinstance(e, ModuleOutputPackagingElement),
        ),
    )
    return result


def find_source_file_by_output_path(
    artifact: Artifact, output_path: str, context: PackagingElementResolvingContext
) -> Path | None:
    files = find_source_files_by_output_path(
        artifact.root_element, output_path, context, artifact.artifact_type
    )
    return files[0] if files else None


def _relative_path_in_sources(
    file: Path, element: ModuleOutputPackagingElement, context: PackagingElementResolvingContext
) -> str | None:
    for source_root in element.source_roots(context):
        if file != source_root and file.is_relative_to(source_root):
            return file.relative_to(source_root).as_posix()
    return None


def find_containing_artifacts_with_output_paths(
    file: Path,
    artifacts: Iterable[Artifact],
    context: PackagingElementResolvingContext,
) -> list[tuple[Artifact, PackagingElementPath, str]]:
    """For each artifact copying ``file``, the first element path and the file's path there."""
    is_resource = context.project.is_resource_file(file)
    result: list[tuple[Artifact, PackagingElementPath, str]] = []
    for artifact in artifacts:

        def visit(
            element: PackagingElement, path: PackagingElementPath, artifact: Artifact = artifact
        ) -> bool:
            if isinstance(element, FileOrDirectoryCopyPackagingElement):
                root = element.find_file()
                if root is not None and file.is_relative_to(root):
                    if root == file and isinstance(element, FileCopyPackagingElement):
                        relative = element.output_file_name
                    else:
                        relative = file.relative_to(root).as_posix()
                        relative = "" if relative == "." else relative
                    result.append((artifact, path, relative))
                    return False
            elif is_resource and isinstance(element, ModuleOutputPackagingElement):
                relative_in_sources = _relative_path_in_sources(file, element, context)
                if relative_in_sources is not None:
                    result.append((artifact, path, relative_in_sources))
                    return False
            return True

        process_artifact_elements(artifact, None, FunctionProcessor(visit), context, True)
    return result


# ---------------------------------------------------------------------------
# Parent walk
# ---------------------------------------------------------------------------


def process_parents(
    artifact: Artifact,
    context: PackagingElementResolvingContext,
    processor: ParentElementProcessor,
    max_level: int,
) -> bool:
    """Walk outward from ``artifact`` through every artifact that embeds it.

    ``processor`` sees each composite enclosing the artifact, nearest first,
    crossing into embedding artifacts up to ``max_level`` composites deep.
    Returns ``False`` if the processor stopped the walk.
    """
    return _process_parents(artifact, context, processor, (), max_level, set())


def _process_parents(
    artifact: Artifact,
    context: PackagingElementResolvingContext,
    processor: ParentElementProcessor,
    path_to_element: ParentPath,
    max_level: int,
    processed: set[Artifact],
) -> bool:
    if artifact in processed:
        return True
    processed.add(artifact)

    root = artifact.root_element
    if isinstance(root, ArtifactRootElement):
        path_from_root = path_to_element
    else:
        if not processor(root, path_to_element, artifact):
            return False
        path_from_root = ((artifact, root), *path_to_element)
    if len(path_from_root) > max_level:
        return True

    for embedding in context.artifact_model.artifacts:
        if embedding in processed:
            continue

        def visit(
            element: ArtifactPackagingElement,
            path: PackagingElementPath,
            embedding: Artifact = embedding,
        ) -> bool:
            if element.artifact_name != artifact.name:
                return True
            current_path = path_from_root
            parents = path.parents
            for parent in parents[:-1]:
                if not processor(parent, current_path, embedding):
                    return False
                current_path = ((embedding, parent), *current_path)
                if len(current_path) > max_level:
                    return True
            if parents:
                last_parent = parents[-1]
                if isinstance(last_parent, ArtifactRootElement) and not processor(
                    last_parent, current_path, embedding
                ):
                    return False
            return _process_parents(
                embedding, context, processor, current_path, max_level, processed
            )

        element_processor = FunctionProcessor(
            visit,
            should_process_substitution=lambda e: not isinstance(e, ArtifactPackagingElement),
        )
        if not process_artifact_elements(
            embedding, ArtifactPackagingElement, element_processor, context, True
        ):
            return False
    return True


# ---------------------------------------------------------------------------
# Project-level queries
# ---------------------------------------------------------------------------


def should_clear_output_before_rebuild(artifact: Artifact) -> bool:
    """Only exploded artifacts with an output path own their whole output directory."""
    return bool(artifact.output_path) and isinstance(artifact.root_element, ArtifactRootElement)


def get_modules_included_in_artifacts(
    artifacts: Iterable[Artifact], context: PackagingElementResolvingContext
) -> tuple[list[Module], bool]:
    """Modules whose output any of ``artifacts`` packages, and whether test output is among them."""
    modules: dict[str, Module] = {}
    include_test_scope = False
    for artifact in artifacts:

        def visit(element: PackagingElement, path: PackagingElementPath) -> bool:
            nonlocal include_test_scope
            if isinstance(element, ModuleOutputPackagingElement):
                module = element.find_module(context)
                if module is not None:
                    modules.setdefault(module.name, module)
                    if element.content_kind is ContentFolderKind.TEST:
                        include_test_scope = True
            return True

        process_artifact_elements(artifact, None, FunctionProcessor(visit), context, True)
    return list(modules.values()), include_test_scope


def get_artifacts_containing_module_output(
    module_name: str, manager: ArtifactManager
) -> list[Artifact]:
    """Artifacts (in name order) that package the production output of ``module_name``."""
    context = manager.resolving_context
    result: list[Artifact] = []

    def search(element: PackagingElement) -> bool:
        if (
            isinstance(element, ModuleOutputPackagingElement)
            and element.module_name == module_name
            and element.find_module(context) is not None
            and element.content_kind is ContentFolderKind.PRODUCTION
        ):
            return False
        if isinstance(element, ArtifactPackagingElement):
            embedded = element.find_artifact(context)
            if embedded is not None and any(embedded is a for a in result):
                return False
        return True

    for artifact in manager.sorted_artifacts():
        if not process_artifact_elements(artifact, None, search, context, True):
            result.append(artifact)
    return result


def get_artifacts_with_output_paths(manager: ArtifactManager) -> list[Artifact]:
    return [a for a in manager.sorted_artifacts() if a.output_path]


# ---------------------------------------------------------------------------
# Names and paths
# ---------------------------------------------------------------------------

_INVALID_FILE_NAME_CHARS = re.compile(r'[/\\:*?"<>|\x00-\x1f]')


def suggest_artifact_file_name(artifact_name: str) -> str:
    """Artifact name with characters that are invalid in file names replaced by ``_``."""
    return _INVALID_FILE_NAME_CHARS.sub("_", artifact_name).strip() or "_"


def suggest_file_name(parent: CompositePackagingElement, prefix: str, suffix: str) -> str:
    """First of ``prefix+suffix``, ``prefix2+suffix``, ... not used by a child directory/archive."""

    def taken(name: str) -> bool:
        return any(
            isinstance(child, DirectoryPackagingElement | ArchivePackagingElement)
            and child.name == name
            for child in parent.children
        )

    name = prefix + suffix
    i = 2
    while taken(name):
        name = f"{prefix}{i}{suffix}"
        i += 1
    return name


def default_artifact_output_path(artifact_name: str, output_root: str) -> str:
    return default_output_path(artifact_name, output_root)


def trim_forward_slashes(path: str) -> str:
    return path.lstrip("/\\")


def concat_paths(*paths: str) -> str:
    """Join non-empty parts with single ``/`` separators."""
    result = ""
    for path in paths:
        if not path:
            continue
        if result and not result.endswith(("/", "\\")):
            result += "/"
        result += trim_forward_slashes(path) if result else path
    return result


def append_to_path(base_path: str, relative_path: str) -> str:
    ends_with_slash = base_path.endswith(("/", "\\"))
    starts_with_slash = relative_path.startswith(("/", "\\"))
    if ends_with_slash and starts_with_slash:
        tail = trim_forward_slashes(relative_path)
    elif not ends_with_slash and not starts_with_slash and base_path and relative_path:
        tail = "/" + relative_path
    else:
        tail = relative_path
    return base_path + tail

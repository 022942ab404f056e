"""Visitor-style traversal over packaging trees with substitution and cycle safety."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from stowage.models.elements import (
    ArtifactPackagingElement,
    ComplexPackagingElement,
    CompositePackagingElement,
    DirectoryCopyPackagingElement,
    ExtractedDirectoryPackagingElement,
    FileCopyPackagingElement,
    PackagingElement,
)
from stowage.packaging.path import PackagingElementPath

if TYPE_CHECKING:
    from stowage.models.artifact import Artifact, ArtifactType
    from stowage.models.project import PackagingElementResolvingContext

E = TypeVar("E", bound=PackagingElement)


class PackagingElementProcessor(Generic[E]):
    """Base visitor for packaging-tree traversal.

    Override :meth:`process`; the two gates default to letting everything
    through. Returning ``False`` from :meth:`process` stops the traversal.
    """

    def should_process(self, element: PackagingElement) -> bool:
        return True

    def should_process_substitution(self, element: ComplexPackagingElement) -> bool:
        return True

    def process(self, element: E, path: PackagingElementPath) -> bool:
        raise NotImplementedError


class FunctionProcessor(PackagingElementProcessor[Any]):
    """Processor assembled from plain callables."""

    def __init__(
        self,
        process: Callable[[Any, PackagingElementPath], bool],
        *,
        should_process: Callable[[PackagingElement], bool] | None = None,
        should_process_substitution: Callable[[ComplexPackagingElement], bool] | None = None,
    ) -> None:
        self._process = process
        self._should_process = should_process
        self._should_process_substitution = should_process_substitution

    def should_process(self, element: PackagingElement) -> bool:
        return self._should_process is None or self._should_process(element)

    def should_process_substitution(self, element: ComplexPackagingElement) -> bool:
        if self._should_process_substitution is None:
            return True
        return self._should_process_substitution(element)

    def process(self, element: Any, path: PackagingElementPath) -> bool:
        return self._process(element, path)


ProcessorLike = PackagingElementProcessor[Any] | Callable[[Any], bool]


def as_processor(processor: ProcessorLike) -> PackagingElementProcessor[Any]:
    """Accept either a processor or a one-argument predicate."""
    if isinstance(processor, PackagingElementProcessor):
        return processor
    predicate = processor
    return FunctionProcessor(lambda element, _path: predicate(element))


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def process_packaging_elements(
    root: PackagingElement,
    element_type: type[E] | None,
    processor: ProcessorLike,
    context: PackagingElementResolvingContext,
    process_substitutions: bool,
    artifact_type: ArtifactType | None,
) -> bool:
    """Depth-first, pre-order walk of ``root``.

    Every element identity is visited at most once per call, which also bounds
    substitution chains that lead back into an ancestor. ``element_type``
    restricts which elements reach :meth:`~PackagingElementProcessor.process`
    (``None`` means all). Returns ``False`` if the processor stopped the walk.
    """
    return _process_element(
        root,
        element_type,
        as_processor(processor),
        context,
        process_substitutions,
        artifact_type,
        PackagingElementPath.EMPTY,
        set(),
    )


def process_artifact_elements(
    artifact: Artifact,
    element_type: type[E] | None,
    processor: ProcessorLike,
    context: PackagingElementResolvingContext,
    process_substitutions: bool,
) -> bool:
    """:func:`process_packaging_elements` over an artifact's root, using its type."""
    return process_packaging_elements(
        artifact.root_element,
        element_type,
        processor,
        context,
        process_substitutions,
        artifact.artifact_type,
    )


def _process_elements(
    elements: Iterable[PackagingElement],
    element_type: type[E] | None,
    processor: PackagingElementProcessor[Any],
    context: PackagingElementResolvingContext,
    process_substitutions: bool,
    artifact_type: ArtifactType | None,
    path: PackagingElementPath,
    processed: set[PackagingElement],
) -> bool:
    for element in list(elements):
        if not _process_element(
            element,
            element_type,
            processor,
            context,
            process_substitutions,
            artifact_type,
            path,
            processed,
        ):
            return False
    return True


def _process_element(
    element: PackagingElement,
    element_type: type[E] | None,
    processor: PackagingElementProcessor[Any],
    context: PackagingElementResolvingContext,
    process_substitutions: bool,
    artifact_type: ArtifactType | None,
    path: PackagingElementPath,
    processed: set[PackagingElement],
) -> bool:
    if element in processed:
        return True
    processed.add(element)
    if not processor.should_process(element):
        return True

    if (element_type is None or type(element) is element_type) and not processor.process(
        element, path
    ):
        return False

    if isinstance(element, CompositePackagingElement):
        return _process_elements(
            element.children,
            element_type,
            processor,
            context,
            process_substitutions,
            artifact_type,
            path.append_composite(element),
            processed,
        )
    if (
        isinstance(element, ComplexPackagingElement)
        and process_substitutions
        and processor.should_process_substitution(element)
    ):
        substitution = element.get_substitution(context, artifact_type)
        if substitution is not None:
            return _process_elements(
                substitution,
                element_type,
                processor,
                context,
                process_substitutions,
                artifact_type,
                path.append_complex(element),
                processed,
            )
    return True


def process_elements_with_substitutions(
    elements: Iterable[PackagingElement],
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
    parent_path: PackagingElementPath,
    processor: ProcessorLike,
) -> bool:
    """Walk ``elements`` (not their children), inlining complex elements.

    A complex element whose substitution is allowed is replaced by its
    substitutes and never reaches ``process`` itself; if its substitution
    cannot be resolved it contributes nothing.
    """
    return _process_with_substitutions(
        elements, context, artifact_type, parent_path, as_processor(processor), set()
    )


def _process_with_substitutions(
    elements: Iterable[PackagingElement],
    context: PackagingElementResolvingContext,
    artifact_type: ArtifactType | None,
    parent_path: PackagingElementPath,
    processor: PackagingElementProcessor[Any],
    processed: set[PackagingElement],
) -> bool:
    for element in list(elements):
        if element in processed:
            continue
        processed.add(element)

        if isinstance(element, ComplexPackagingElement) and processor.should_process_substitution(
            element
        ):
            substitution = element.get_substitution(context, artifact_type)
            if substitution is not None and not _process_with_substitutions(
                substitution,
                context,
                artifact_type,
                parent_path.append_complex(element),
                processor,
                processed,
            ):
                return False
        elif not processor.process(element, parent_path):
            return False
    return True


def process_recursively_skipping_included_artifacts(
    artifact: Artifact,
    processor: Callable[[PackagingElement], bool],
    context: PackagingElementResolvingContext,
) -> bool:
    """Visit every element, expanding substitutions except embedded artifacts."""
    return process_packaging_elements(
        artifact.root_element,
        None,
        FunctionProcessor(
            lambda element, _path: processor(element),
            should_process_substitution=lambda e: not isinstance(e, ArtifactPackagingElement),
        ),
        context,
        True,
        artifact.artifact_type,
    )


def process_file_or_directory_copy_elements(
    artifact: Artifact,
    processor: ProcessorLike,
    context: PackagingElementResolvingContext,
    process_substitutions: bool,
) -> None:
    """Visit file copies, then directory copies, then extracted directories."""
    for element_type in (
        FileCopyPackagingElement,
        DirectoryCopyPackagingElement,
        ExtractedDirectoryPackagingElement,
    ):
        process_artifact_elements(artifact, element_type, processor, context, process_substitutions)

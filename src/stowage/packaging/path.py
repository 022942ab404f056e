"""Immutable record of how a traversal reached the current element."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from stowage.models.elements import (
    ArtifactPackagingElement,
    ComplexPackagingElement,
    CompositePackagingElement,
    PackagingElement,
)

if TYPE_CHECKING:
    from stowage.models.artifact import Artifact
    from stowage.models.project import PackagingElementResolvingContext


class PackagingElementPath:
    """Reverse-linked list of the composite and complex ancestors of an element.

    Appending is O(1) and never mutates the receiver, so sibling branches of a
    traversal can share a common prefix safely.
    """

    EMPTY: ClassVar[PackagingElementPath]

    __slots__ = ("_parent_path", "_last_element")

    def __init__(
        self,
        parent_path: PackagingElementPath | None,
        last_element: PackagingElement | None,
    ) -> None:
        self._parent_path = parent_path
        self._last_element = last_element

    def append_composite(self, element: CompositePackagingElement) -> PackagingElementPath:
        return PackagingElementPath(self, element)

    def append_complex(self, element: ComplexPackagingElement) -> PackagingElementPath:
        return PackagingElementPath(self, element)

    @property
    def is_empty(self) -> bool:
        return self._last_element is None

    @property
    def last_element(self) -> PackagingElement | None:
        return self._last_element

    def _nodes(self) -> list[PackagingElement]:
        """Elements nearest first."""
        nodes: list[PackagingElement] = []
        current: PackagingElementPath | None = self
        while current is not None and current._last_element is not None:
            nodes.append(current._last_element)
            current = current._parent_path
        return nodes

    @property
    def parents(self) -> list[CompositePackagingElement]:
        """Composite ancestors, nearest first."""
        return [e for e in self._nodes() if isinstance(e, CompositePackagingElement)]

    @property
    def parents_from_root(self) -> list[CompositePackagingElement]:
        return list(reversed(self.parents))

    @property
    def all_elements(self) -> list[PackagingElement]:
        """Composite and complex ancestors, root first."""
        return list(reversed(self._nodes()))

    @property
    def last_parent(self) -> CompositePackagingElement | None:
        parents = self.parents
        return parents[0] if parents else None

    def parents_from(
        self, ancestor: CompositePackagingElement | None
    ) -> list[CompositePackagingElement]:
        """Composite ancestors nearest first, stopping before ``ancestor``."""
        result: list[CompositePackagingElement] = []
        for parent in self.parents:
            if parent is ancestor:
                break
            result.append(parent)
        return result

    def path_string(self, separator: str = "/") -> str:
        return self.path_string_from(separator, None)

    def path_string_from(
        self, separator: str, ancestor: CompositePackagingElement | None
    ) -> str:
        names = [p.name for p in reversed(self.parents_from(ancestor))]
        return separator.join(name for name in names if name)

    def find_complex_parent(self) -> ComplexPackagingElement | None:
        for element in self._nodes():
            if isinstance(element, ComplexPackagingElement):
                return element
        return None

    def find_last_artifact(self, context: PackagingElementResolvingContext) -> Artifact | None:
        """Resolve the nearest enclosing embedded-artifact element, if any."""
        for element in self._nodes():
            if isinstance(element, ArtifactPackagingElement):
                return element.find_artifact(context)
        return None

    def __len__(self) -> int:
        return len(self._nodes())

    def __repr__(self) -> str:
        names = [e.presentable_name for e in self.all_elements]
        return f"PackagingElementPath({names!r})"


PackagingElementPath.EMPTY = PackagingElementPath(None, None)

"""Traversal, substitution, graph ordering and type registries for packaging trees."""

from stowage.packaging.graph import ArtifactGraph, ArtifactSortingUtil, compute_ordering
from stowage.packaging.path import PackagingElementPath
from stowage.packaging.processor import (
    FunctionProcessor,
    PackagingElementProcessor,
    process_artifact_elements,
    process_elements_with_substitutions,
    process_packaging_elements,
)
from stowage.packaging.registry import ArtifactTypeRegistry, PackagingElementTypeRegistry

__all__ = [
    "ArtifactGraph",
    "ArtifactSortingUtil",
    "ArtifactTypeRegistry",
    "FunctionProcessor",
    "PackagingElementPath",
    "PackagingElementProcessor",
    "PackagingElementTypeRegistry",
    "compute_ordering",
    "process_artifact_elements",
    "process_elements_with_substitutions",
    "process_packaging_elements",
]

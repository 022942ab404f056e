"""Artifact inclusion graph: artifacts as nodes, direct embeddings as edges.

Uses networkx for strongly connected components and topological ordering.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from stowage.models.artifact import Artifact, sort_key
from stowage.models.elements import ArtifactPackagingElement
from stowage.packaging.path import PackagingElementPath
from stowage.packaging.processor import FunctionProcessor, process_artifact_elements

if TYPE_CHECKING:
    from stowage.models.project import PackagingElementResolvingContext
    from stowage.service.artifact_manager import ArtifactManager

logger = logging.getLogger(__name__)


class ArtifactGraph:
    """Directed graph over artifact names; an edge A -> B means A directly embeds B.

    Nodes are ordered case-insensitively by name. Outgoing edges are computed
    on first request and kept for the lifetime of the graph.
    """

    def __init__(
        self, artifacts: Iterable[Artifact], context: PackagingElementResolvingContext
    ) -> None:
        self._artifacts: dict[str, Artifact] = {}
        for artifact in sorted(artifacts, key=lambda a: sort_key(a.name)):
            self._artifacts.setdefault(artifact.name, artifact)
        self._context = context
        self._successors: dict[str, list[str]] = {}

    @property
    def nodes(self) -> list[str]:
        return list(self._artifacts)

    def successors(self, name: str) -> Iterator[str]:
        """Names of the artifacts ``name`` embeds directly; unknown names yield nothing."""
        if name not in self._artifacts:
            return iter(())
        if name not in self._successors:
            self._successors[name] = self._compute_successors(self._artifacts[name])
        return iter(self._successors[name])

    def _compute_successors(self, artifact: Artifact) -> list[str]:
        names: list[str] = []

        def collect(element: ArtifactPackagingElement, path: PackagingElementPath) -> bool:
            target = element.artifact_name
            if target in self._artifacts and target not in names:
                names.append(target)
            return True

        # Nested embeddings are the target node's own edges, so no substitution here.
        process_artifact_elements(
            artifact, ArtifactPackagingElement, FunctionProcessor(collect), self._context, False
        )
        return names

    def has_edge(self, source: str, target: str) -> bool:
        return target in self.successors(source)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return [(name, target) for name in self._artifacts for target in self.successors(name)]

    def to_networkx(self) -> nx.DiGraph[str]:
        graph: nx.DiGraph[str] = nx.DiGraph()
        graph.add_nodes_from(self._artifacts)
        graph.add_edges_from(self.edges)
        return graph


@dataclass(frozen=True)
class ArtifactOrdering:
    """Topological data derived from one :class:`ArtifactGraph` snapshot."""

    sorted_names: list[str]
    components: list[list[str]]
    self_including: dict[str, str] = field(default_factory=dict)

    @property
    def build_order(self) -> list[str]:
        """Embedded artifacts before the artifacts that embed them."""
        return list(reversed(self.sorted_names))


def compute_ordering(graph: ArtifactGraph) -> ArtifactOrdering:
    """Order the graph's nodes and detect self-including artifacts.

    ``sorted_names`` lists every A before B for each edge A -> B outside a
    cycle; members of a cycle are contiguous. Ties, including the order inside
    a cycle, follow the case-insensitive node order.
    """
    nodes = graph.nodes
    index = {name: i for i, name in enumerate(nodes)}
    digraph = graph.to_networkx()

    components = [
        sorted(component, key=index.__getitem__)
        for component in nx.strongly_connected_components(digraph)
    ]
    components.sort(key=lambda component: index[component[0]])
    condensed = nx.condensation(digraph, scc=components)
    component_order = nx.lexicographical_topological_sort(
        condensed, key=lambda c: index[components[c][0]]
    )
    ordered_components = [components[c] for c in component_order]
    sorted_names = [name for component in ordered_components for name in component]

    self_loops = {u for u, v in nx.selfloop_edges(digraph)}
    if len(components) == len(nodes) and not self_loops:
        return ArtifactOrdering(sorted_names, ordered_components)

    self_including: dict[str, str] = {}
    for component in ordered_components:
        if len(component) > 1:
            for name in component:
                self_including[name] = component[0]

    for name in sorted_names:
        if name in self_including:
            continue
        if name in self_loops:
            self_including[name] = name
            continue
        for source in sorted(digraph.predecessors(name), key=index.__getitem__):
            if source in self_including:
                self_including[name] = self_including[source]
                break

    return ArtifactOrdering(sorted_names, ordered_components, self_including)


def build_artifact_graph(manager: ArtifactManager) -> ArtifactGraph:
    """Graph over the valid artifacts of the manager's live model."""
    return ArtifactGraph(manager.artifacts, manager.resolving_context)


class ArtifactSortingUtil:
    """Build order and self-inclusion queries, cached per model modification."""

    def __init__(self, manager: ArtifactManager) -> None:
        self._manager = manager
        self._stamp: int | None = None
        self._graph: ArtifactGraph | None = None
        self._ordering: ArtifactOrdering | None = None

    def _current(self) -> tuple[ArtifactGraph, ArtifactOrdering]:
        stamp = self._manager.modification_count
        if self._graph is None or self._ordering is None or self._stamp != stamp:
            graph = build_artifact_graph(self._manager)
            ordering = compute_ordering(graph)
            logger.debug(
                "Recomputed artifact ordering at modification %d (%d artifacts, %d self-including)",
                stamp,
                len(graph.nodes),
                len(ordering.self_including),
            )
            self._stamp, self._graph, self._ordering = stamp, graph, ordering
        return self._graph, self._ordering

    def artifact_graph(self) -> ArtifactGraph:
        return self._current()[0]

    def sorted_artifact_names(self) -> list[str]:
        return list(self._current()[1].sorted_names)

    def build_order(self) -> list[str]:
        return self._current()[1].build_order

    def self_including_artifacts(self) -> dict[str, str]:
        """Artifact name -> representative of the cycle that makes it self-including."""
        return dict(self._current()[1].self_including)

    def is_self_including(self, artifact_name: str) -> bool:
        return artifact_name in self._current()[1].self_including

"""Tests for packaging-tree traversal."""

from __future__ import annotations

from typing import Any

import pytest

from stowage.models.artifact import Artifact
from stowage.models.elements import (
    ArtifactPackagingElement,
    DirectoryPackagingElement,
    FileCopyPackagingElement,
    LibraryPackagingElement,
    ModuleOutputPackagingElement,
    PackagingElement,
)
from stowage.models.project import DefaultResolvingContext
from stowage.packaging.path import PackagingElementPath
from stowage.packaging.processor import (
    FunctionProcessor,
    PackagingElementProcessor,
    as_processor,
    process_artifact_elements,
    process_elements_with_substitutions,
    process_file_or_directory_copy_elements,
    process_packaging_elements,
    process_recursively_skipping_included_artifacts,
)
from tests.conftest import archive, context_for, exploded


class Collector(PackagingElementProcessor[Any]):
    """Records every processed element with the path it was reached by."""

    def __init__(self, stop_at: str | None = None) -> None:
        self.visited: list[PackagingElement] = []
        self.paths: list[PackagingElementPath] = []
        self._stop_at = stop_at

    def process(self, element: Any, path: PackagingElementPath) -> bool:
        self.visited.append(element)
        self.paths.append(path)
        return element.presentable_name != self._stop_at

    @property
    def names(self) -> list[str]:
        return [e.presentable_name for e in self.visited]


@pytest.fixture
def app_and_context() -> tuple[Artifact, DefaultResolvingContext]:
    """App (exploded) embeds Lib (archive) and the guava library under lib/."""
    lib = archive("Lib", ModuleOutputPackagingElement("core"))
    app = exploded(
        "App",
        DirectoryPackagingElement(
            "lib",
            children=[ArtifactPackagingElement("Lib"), LibraryPackagingElement("guava")],
        ),
        FileCopyPackagingElement(file_path="docs/readme.txt"),
    )
    return app, context_for(app, lib)


# ---------------------------------------------------------------------------
# process_packaging_elements
# ---------------------------------------------------------------------------


class TestPreOrderWalk:
    def test_without_substitutions(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        assert process_artifact_elements(app, None, collector, context, False)
        assert collector.names == [
            "<output root>",
            "lib",
            "'Lib' artifact",
            "Library files 'guava'",
            "readme.txt",
        ]

    def test_with_substitutions(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        assert process_artifact_elements(app, None, collector, context, True)
        assert collector.names == [
            "<output root>",
            "lib",
            "'Lib' artifact",
            "Lib.zip",
            "'core' compile output",
            "Library files 'guava'",
            "guava.jar",
            "ext",
            "readme.txt",
        ]

    def test_substituted_elements_carry_complex_parent(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        process_artifact_elements(app, None, collector, context, True)
        index = collector.names.index("Lib.zip")
        path = collector.paths[index]
        embedded = collector.visited[collector.names.index("'Lib' artifact")]
        assert path.last_element is embedded
        assert path.path_string() == "lib"
        assert path.find_last_artifact(context) is context.find_artifact("Lib")

    def test_element_type_filter_is_exact(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        process_artifact_elements(app, FileCopyPackagingElement, collector, context, True)
        assert collector.names == ["guava.jar", "readme.txt"]

    def test_processor_can_stop_walk(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector(stop_at="lib")
        assert not process_artifact_elements(app, None, collector, context, True)
        assert collector.names == ["<output root>", "lib"]

    def test_should_process_skips_subtree(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        processor = FunctionProcessor(
            collector.process,
            should_process=lambda e: not isinstance(e, DirectoryPackagingElement),
        )
        assert process_artifact_elements(app, None, processor, context, True)
        assert collector.names == ["<output root>", "readme.txt"]

    def test_should_process_substitution_keeps_element_opaque(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        collector = Collector()
        processor = FunctionProcessor(
            collector.process,
            should_process_substitution=lambda e: not isinstance(e, ArtifactPackagingElement),
        )
        process_artifact_elements(app, None, processor, context, True)
        assert "'Lib' artifact" in collector.names
        assert "Lib.zip" not in collector.names
        assert "guava.jar" in collector.names

    def test_shared_element_visited_once(self) -> None:
        shared = FileCopyPackagingElement(file_path="a.txt")
        app = exploded("App", shared, DirectoryPackagingElement("d", children=[shared]))
        collector = Collector()
        process_artifact_elements(app, None, collector, context_for(app), True)
        assert collector.names.count("a.txt") == 1

    def test_unresolved_reference_is_a_leaf(self) -> None:
        app = exploded("App", ArtifactPackagingElement("Missing"))
        collector = Collector()
        assert process_artifact_elements(app, None, collector, context_for(app), True)
        assert collector.names == ["<output root>", "'Missing' artifact"]


class TestCycles:
    def test_mutual_embedding_terminates(self) -> None:
        a = exploded("A", ArtifactPackagingElement("B"))
        b = exploded("B", ArtifactPackagingElement("A"))
        collector = Collector()
        assert process_artifact_elements(a, None, collector, context_for(a, b), True)
        assert collector.names == ["<output root>", "'B' artifact", "'A' artifact"]
        assert len({id(e) for e in collector.visited}) == len(collector.visited)

    def test_self_embedding_terminates(self) -> None:
        a = exploded("A", DirectoryPackagingElement("d", children=[ArtifactPackagingElement("A")]))
        collector = Collector()
        assert process_artifact_elements(a, None, collector, context_for(a), True)
        assert collector.names == ["<output root>", "d", "'A' artifact"]

    def test_long_cycle_visits_each_element_once(self) -> None:
        artifacts = [
            exploded(f"A{i}", ArtifactPackagingElement(f"A{(i + 1) % 5}")) for i in range(5)
        ]
        collector = Collector()
        context = context_for(*artifacts)
        assert process_packaging_elements(
            artifacts[0].root_element, None, collector, context, True, None
        )
        assert len(collector.visited) == 6


# ---------------------------------------------------------------------------
# Other entry points
# ---------------------------------------------------------------------------


class TestProcessWithSubstitutions:
    def test_complex_elements_are_replaced(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        _app, context = app_and_context
        embedded = ArtifactPackagingElement("Lib")
        collector = Collector()
        elements = [embedded, FileCopyPackagingElement(file_path="x.txt")]
        assert process_elements_with_substitutions(
            elements, context, None, PackagingElementPath.EMPTY, collector
        )
        assert collector.names == ["Lib.zip", "x.txt"]
        assert collector.paths[0].last_element is embedded
        assert collector.paths[1].is_empty

    def test_unresolved_complex_contributes_nothing(self) -> None:
        collector = Collector()
        process_elements_with_substitutions(
            [ArtifactPackagingElement("Missing"), ModuleOutputPackagingElement("core")],
            context_for(),
            None,
            PackagingElementPath.EMPTY,
            collector,
        )
        assert collector.visited == []

    def test_opaque_complex_is_processed(self) -> None:
        collector = Collector()
        processor = FunctionProcessor(
            collector.process, should_process_substitution=lambda e: False
        )
        process_elements_with_substitutions(
            [LibraryPackagingElement("guava")],
            context_for(),
            None,
            PackagingElementPath.EMPTY,
            processor,
        )
        assert collector.names == ["Library files 'guava'"]


class TestHelpers:
    def test_skipping_included_artifacts(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        seen: list[str] = []

        def record(element: PackagingElement) -> bool:
            seen.append(element.presentable_name)
            return True

        assert process_recursively_skipping_included_artifacts(app, record, context)
        assert "'Lib' artifact" in seen
        assert "Lib.zip" not in seen
        assert "guava.jar" in seen

    def test_copy_elements_grouped_by_kind(
        self, app_and_context: tuple[Artifact, DefaultResolvingContext]
    ) -> None:
        app, context = app_and_context
        seen: list[str] = []

        def record(element: PackagingElement) -> bool:
            seen.append(element.presentable_name)
            return True

        process_file_or_directory_copy_elements(app, record, context, True)
        assert seen == ["guava.jar", "readme.txt", "ext"]

    def test_as_processor_wraps_predicate(self) -> None:
        processor = as_processor(lambda element: False)
        assert isinstance(processor, FunctionProcessor)
        assert not processor.process(FileCopyPackagingElement(), PackagingElementPath.EMPTY)

    def test_as_processor_passes_processors_through(self) -> None:
        collector = Collector()
        assert as_processor(collector) is collector

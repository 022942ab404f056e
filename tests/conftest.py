"""Shared test fixtures for Stowage."""

from __future__ import annotations

from pathlib import Path

import pytest

from stowage.models.artifact import ARCHIVE, EXPLODED, Artifact, ArtifactModel
from stowage.models.elements import (
    ArchivePackagingElement,
    ArtifactRootElement,
    PackagingElement,
)
from stowage.models.project import DefaultResolvingContext, ProjectStructure
from stowage.parser.loader import TrackedLoader
from stowage.parser.reader import ArtifactModelReader
from stowage.service.artifact_manager import ArtifactListener, ArtifactManager

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_PROJECT_DIR = FIXTURES_DIR / "sample_project"


SAMPLE_ARTIFACTS_YAML = """\
version: 1
baseDir: /work/shop
modules:
  core:
    sourceRoots: [core/src]
    testSourceRoots: [core/test]
    productionOutput: out/production/core
    testOutput: out/test/core
  web:
    sourceRoots: [web/src]
    productionOutput: out/production/web
libraries:
  guava:
    files: [lib/guava.jar]
  assets:
    files: [lib/assets/]

artifacts:
  - name: App
    type: exploded
    outputPath: out/artifacts/App
    buildOnMake: true
    root:
      type: root
      children:
        - type: directory
          name: lib
          children:
            - type: artifact
              artifactName: Lib
            - type: library
              library: guava
        - type: module-output
          module: web
  - name: Lib
    type: archive
    outputPath: out/artifacts/Lib
    root:
      type: archive
      name: lib.zip
      children:
        - type: module-output
          module: core
"""


def make_project() -> ProjectStructure:
    return ProjectStructure.model_validate(
        {
            "baseDir": "/work/shop",
            "modules": {
                "core": {"name": "core", "sourceRoots": ["core/src"]},
                "web": {"name": "web", "sourceRoots": ["web/src"]},
            },
            "libraries": {"guava": {"name": "guava", "files": ["lib/guava.jar", "lib/ext/"]}},
        }
    )


def exploded(name: str, *children: PackagingElement, output_path: str | None = None) -> Artifact:
    """An exploded artifact whose root holds ``children``."""
    return Artifact(
        name=name,
        artifact_type=EXPLODED,
        root_element=ArtifactRootElement(children=list(children)),
        output_path=output_path,
    )


def archive(name: str, *children: PackagingElement, output_path: str | None = None) -> Artifact:
    """An archive artifact named ``<name>.zip`` holding ``children``."""
    return Artifact(
        name=name,
        artifact_type=ARCHIVE,
        root_element=ArchivePackagingElement(f"{name}.zip", children=list(children)),
        output_path=output_path,
    )


def context_for(
    *artifacts: Artifact, project: ProjectStructure | None = None
) -> DefaultResolvingContext:
    return DefaultResolvingContext(ArtifactModel(artifacts), project or make_project())


def names(elements: list[PackagingElement]) -> list[str]:
    return [e.presentable_name for e in elements]


class RecordingListener(ArtifactListener):
    """Collects commit events as ``(kind, name)`` tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []
        self.old_names: list[str] = []

    def artifact_removed(self, artifact: Artifact) -> None:
        self.events.append(("removed", artifact.name))

    def artifact_added(self, artifact: Artifact) -> None:
        self.events.append(("added", artifact.name))

    def artifact_changed(self, artifact: Artifact, old_name: str) -> None:
        self.events.append(("changed", artifact.name))
        self.old_names.append(old_name)


@pytest.fixture
def loader() -> TrackedLoader:
    return TrackedLoader()


@pytest.fixture
def reader() -> ArtifactModelReader:
    return ArtifactModelReader()


@pytest.fixture
def sample_manager(loader: TrackedLoader, reader: ArtifactModelReader) -> ArtifactManager:
    """Manager holding the artifacts of SAMPLE_ARTIFACTS_YAML."""
    raw, source_map = loader.load_string(SAMPLE_ARTIFACTS_YAML)
    project, result = reader.read_project(raw, source_map)
    assert result.valid, f"Sample project has errors: {result.errors}"
    manager = ArtifactManager(project)
    read_result = manager.load_state(raw, source_map)
    assert read_result.valid, f"Sample artifacts have errors: {read_result.errors}"
    return manager


@pytest.fixture
def manager() -> ArtifactManager:
    """Empty manager over :func:`make_project`."""
    return ArtifactManager(make_project())


@pytest.fixture
def listener(manager: ArtifactManager) -> RecordingListener:
    recording = RecordingListener()
    manager.add_listener(recording)
    return recording

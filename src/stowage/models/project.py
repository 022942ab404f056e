"""Project structure (modules, libraries) and the resolving context used by substitutions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from stowage.models.artifact import Artifact


class ContentFolderKind(StrEnum):
    PRODUCTION = "production"
    TEST = "test"


class Module(BaseModel):
    """A compilable project module with its source roots and compiler outputs."""

    name: str
    source_roots: list[str] = Field(default=[], alias="sourceRoots")
    test_source_roots: list[str] = Field(default=[], alias="testSourceRoots")
    production_output: str | None = Field(None, alias="productionOutput")
    test_output: str | None = Field(None, alias="testOutput")

    model_config = {"populate_by_name": True}

    def source_roots_for(self, kind: ContentFolderKind) -> list[str]:
        if kind is ContentFolderKind.TEST:
            return list(self.test_source_roots)
        return list(self.source_roots)

    def output_for(self, kind: ContentFolderKind) -> str | None:
        if kind is ContentFolderKind.TEST:
            return self.test_output
        return self.production_output


class Library(BaseModel):
    """A named library; entries ending with ``/`` are directories, the rest are files."""

    name: str
    files: list[str] = []

    model_config = {"populate_by_name": True}


class ProjectStructure(BaseModel):
    """Modules and libraries of the project owning an artifact model."""

    base_dir: str = Field(".", alias="baseDir")
    modules: dict[str, Module] = {}
    libraries: dict[str, Library] = {}
    source_extensions: list[str] = Field(
        default=[".java", ".kt", ".groovy", ".scala"], alias="sourceExtensions"
    )

    model_config = {"populate_by_name": True}

    def find_module(self, name: str) -> Module | None:
        return self.modules.get(name)

    def find_library(self, name: str) -> Library | None:
        return self.libraries.get(name)

    def resolve_path(self, path: str) -> Path:
        """Resolve a project-relative path against ``base_dir``."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return Path(self.base_dir) / candidate

    def is_resource_file(self, path: str | Path) -> bool:
        """Files that are copied to the output as-is rather than compiled."""
        return PurePosixPath(str(path)).suffix not in self.source_extensions


class ArtifactLookup(Protocol):
    """Anything that can list artifacts and find one by name."""

    @property
    def artifacts(self) -> list[Artifact]: ...

    def find_artifact(self, name: str) -> Artifact | None: ...


class PackagingElementResolvingContext(Protocol):
    """Lookup surface used by complex elements to compute their substitutions."""

    @property
    def artifact_model(self) -> ArtifactLookup: ...

    @property
    def project(self) -> ProjectStructure: ...

    def find_artifact(self, name: str) -> Artifact | None: ...

    def find_module(self, name: str) -> Module | None: ...

    def find_library(self, name: str) -> Library | None: ...


@dataclass
class DefaultResolvingContext:
    """Resolves names against an artifact model and a project structure."""

    artifact_model: ArtifactLookup
    project: ProjectStructure = field(default_factory=ProjectStructure)

    def find_artifact(self, name: str) -> Artifact | None:
        return self.artifact_model.find_artifact(name)

    def find_module(self, name: str) -> Module | None:
        return self.project.find_module(name)

    def find_library(self, name: str) -> Library | None:
        return self.project.find_library(name)

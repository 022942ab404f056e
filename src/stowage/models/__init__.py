"""Domain models: packaging elements, artifacts, project structure and problems."""

from stowage.models.artifact import (
    ARCHIVE,
    EXPLODED,
    Artifact,
    ArtifactModel,
    ArtifactType,
    InvalidArtifact,
)
from stowage.models.elements import (
    ArchivePackagingElement,
    ArtifactPackagingElement,
    ArtifactRootElement,
    ComplexPackagingElement,
    CompositePackagingElement,
    DirectoryCopyPackagingElement,
    DirectoryPackagingElement,
    ExtractedDirectoryPackagingElement,
    FileCopyPackagingElement,
    LibraryPackagingElement,
    ModuleOutputPackagingElement,
    PackagingElement,
)
from stowage.models.errors import PackagingProblem, SourceSpan, ValidationResult
from stowage.models.project import (
    ContentFolderKind,
    DefaultResolvingContext,
    Library,
    Module,
    PackagingElementResolvingContext,
    ProjectStructure,
)

__all__ = [
    "ARCHIVE",
    "EXPLODED",
    "ArchivePackagingElement",
    "Artifact",
    "ArtifactModel",
    "ArtifactPackagingElement",
    "ArtifactRootElement",
    "ArtifactType",
    "ComplexPackagingElement",
    "CompositePackagingElement",
    "ContentFolderKind",
    "DefaultResolvingContext",
    "DirectoryCopyPackagingElement",
    "DirectoryPackagingElement",
    "ExtractedDirectoryPackagingElement",
    "FileCopyPackagingElement",
    "InvalidArtifact",
    "Library",
    "LibraryPackagingElement",
    "Module",
    "ModuleOutputPackagingElement",
    "PackagingElement",
    "PackagingElementResolvingContext",
    "PackagingProblem",
    "ProjectStructure",
    "SourceSpan",
    "ValidationResult",
]

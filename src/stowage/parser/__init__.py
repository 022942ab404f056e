"""YAML persistence with line fidelity for artifact documents."""

from stowage.parser.loader import SourceMap, TrackedLoader, YAMLSafetyError
from stowage.parser.reader import ArtifactModelReader
from stowage.parser.validator import ArtifactValidator
from stowage.parser.writer import ArtifactModelWriter

__all__ = [
    "ArtifactModelReader",
    "ArtifactModelWriter",
    "ArtifactValidator",
    "SourceMap",
    "TrackedLoader",
    "YAMLSafetyError",
]

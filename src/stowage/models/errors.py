"""Structured problem reports with YAML source position tracking."""

from __future__ import annotations

from pydantic import BaseModel


class SourceSpan(BaseModel):
    """Points to exact location in YAML source for error reporting."""

    file: str
    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None


class PackagingProblem(BaseModel):
    """A structured problem with optional source position and suggestions."""

    code: str
    message: str
    path: str | None = None
    span: SourceSpan | None = None
    suggestions: list[str] = []


class ValidationResult(BaseModel):
    """Result of reading or validating an artifact model."""

    valid: bool
    errors: list[PackagingProblem] = []
    warnings: list[PackagingProblem] = []


class UnknownElementTypeError(Exception):
    """Raised when a persisted element carries an unregistered type-id."""

    def __init__(self, type_id: str, available: list[str]) -> None:
        self.type_id = type_id
        self.available = available
        super().__init__(
            f"Unknown packaging element type '{type_id}'. Available: {', '.join(available)}"
        )


class UnknownArtifactTypeError(Exception):
    """Raised when an artifact references an unregistered artifact type."""

    def __init__(self, type_id: str, available: list[str]) -> None:
        self.type_id = type_id
        self.available = available
        super().__init__(f"Unknown artifact type '{type_id}'. Available: {', '.join(available)}")


class ReentrantCommitError(RuntimeError):
    """Raised when a commit is started while another commit is still publishing events."""


class ArtifactNotFoundError(KeyError):
    """Raised when an artifact name does not resolve in a model."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No artifact named '{name}'")


class ModelValidationError(ValueError):
    """Raised by the service layer when a document has validation errors."""

    def __init__(
        self,
        errors: list[PackagingProblem],
        warnings: list[PackagingProblem] | None = None,
    ) -> None:
        self.errors = errors
        self.warnings = warnings or []
        super().__init__("Model validation failed: " + "; ".join(e.message for e in errors))


class DuplicateArtifactNameError(ValueError):
    """Raised when an edit would give two valid artifacts the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"An artifact named '{name}' already exists")

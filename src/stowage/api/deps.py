"""Dependency injection for FastAPI: the ModelStore singleton."""

from __future__ import annotations

from stowage.service.model_store import ModelStore

_model_store: ModelStore | None = None


def init_model_store(store: ModelStore) -> None:
    """Set the global ModelStore (called at app startup)."""
    global _model_store  # noqa: PLW0603
    _model_store = store


def get_model_store() -> ModelStore:
    """FastAPI ``Depends`` provider for ModelStore."""
    if _model_store is None:
        raise RuntimeError("ModelStore not initialised; call init_model_store() first")
    return _model_store


def reset_model_store() -> None:
    """Clear the global ModelStore (for tests)."""
    global _model_store  # noqa: PLW0603
    _model_store = None

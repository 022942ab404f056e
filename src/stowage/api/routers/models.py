"""Model management, build order and validation endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from stowage.api.deps import get_model_store
from stowage.api.schemas import (
    ArtifactStateResponse,
    BuildOrderResponse,
    ErrorDetail,
    ModelDescriptionResponse,
    ModelLoadRequest,
    ModelLoadResponse,
    ModelSummaryResponse,
    ValidateRequest,
    ValidateResponse,
)
from stowage.models.artifact import InvalidArtifact
from stowage.models.errors import ModelValidationError
from stowage.parser.writer import ArtifactModelWriter
from stowage.service.model_store import ModelStore

router = APIRouter()


def _not_found(model_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Model '{model_id}' not found")


@router.post("/models", response_model=ModelLoadResponse, status_code=201, tags=["models"])
async def load_model(
    body: ModelLoadRequest,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> ModelLoadResponse:
    """Load an artifact document."""
    try:
        result = store.load_model(body.model_yaml)
    except ModelValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Invalid artifact document: parsing or validation failed",
                "errors": [
                    {"code": e.code, "message": e.message, "path": e.path} for e in exc.errors
                ],
                "warnings": [
                    {"code": w.code, "message": w.message, "path": w.path} for w in exc.warnings
                ],
            },
        ) from None
    return ModelLoadResponse(**asdict(result))


@router.get("/models", response_model=list[ModelSummaryResponse], tags=["models"])
async def list_models(
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> list[ModelSummaryResponse]:
    return [ModelSummaryResponse(**asdict(m)) for m in store.list_models()]


@router.get("/models/{model_id}", response_model=ModelDescriptionResponse, tags=["models"])
async def describe_model(
    model_id: str,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> ModelDescriptionResponse:
    try:
        desc = store.describe(model_id)
    except KeyError:
        raise _not_found(model_id) from None
    return ModelDescriptionResponse.model_validate(asdict(desc))


@router.delete("/models/{model_id}", status_code=204, tags=["models"])
async def remove_model(
    model_id: str,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> None:
    try:
        store.remove_model(model_id)
    except KeyError:
        raise _not_found(model_id) from None


@router.get(
    "/models/{model_id}/build-order", response_model=BuildOrderResponse, tags=["models"]
)
async def build_order(
    model_id: str,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> BuildOrderResponse:
    """Embedded artifacts first; self-including artifacts are reported alongside."""
    try:
        order = store.build_order(model_id)
    except KeyError:
        raise _not_found(model_id) from None
    return BuildOrderResponse(**asdict(order))


@router.get(
    "/models/{model_id}/artifacts/{name}",
    response_model=ArtifactStateResponse,
    tags=["models"],
)
async def get_artifact(
    model_id: str,
    name: str,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> ArtifactStateResponse:
    """Persisted state of one artifact, preferring a valid one over an invalid namesake.

    Invalid artifacts return their raw fragment.
    """
    try:
        manager = store.get_manager(model_id)
    except KeyError:
        raise _not_found(model_id) from None
    artifact = manager.find_artifact(name) or next(
        (a for a in manager.invalid_artifacts if a.name == name), None
    )
    if artifact is None:
        raise HTTPException(
            status_code=404, detail=f"Artifact '{name}' not found in model '{model_id}'"
        )
    return ArtifactStateResponse(
        name=artifact.name,
        valid=not isinstance(artifact, InvalidArtifact),
        state=ArtifactModelWriter().artifact_to_dict(artifact),
    )


@router.post("/validate", response_model=ValidateResponse, tags=["validation"])
async def validate_model(
    body: ValidateRequest,
    store: ModelStore = Depends(get_model_store),  # noqa: B008
) -> ValidateResponse:
    """Validate an artifact document without storing it."""
    summary = store.validate(body.model_yaml)
    return ValidateResponse(
        valid=summary.valid,
        errors=[ErrorDetail(**asdict(e)) for e in summary.errors],
        warnings=[ErrorDetail(**asdict(w)) for w in summary.warnings],
    )

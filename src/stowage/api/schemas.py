"""API request/response Pydantic schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ModelLoadRequest(BaseModel):
    """Request body for POST /models."""

    model_yaml: str = Field(description="YAML artifact document")


class ModelLoadResponse(BaseModel):
    """Response for POST /models."""

    model_id: str
    artifacts: int
    invalid_artifacts: int
    modules: int
    libraries: int
    warnings: list[str] = []


class ModelSummaryResponse(BaseModel):
    """Short model summary for listing."""

    model_id: str
    artifacts: int
    invalid_artifacts: int


class ArtifactInfoResponse(BaseModel):
    name: str
    type: str
    output_path: str | None = None
    build_on_make: bool = False
    includes: list[str] = []
    self_including: bool = False


class InvalidArtifactResponse(BaseModel):
    name: str
    error: str


class ModelDescriptionResponse(BaseModel):
    """Response for GET /models/{model_id}."""

    model_id: str
    artifacts: list[ArtifactInfoResponse]
    invalid_artifacts: list[InvalidArtifactResponse] = []
    modules: list[str] = []
    libraries: list[str] = []
    build_order: list[str] = []


class BuildOrderResponse(BaseModel):
    """Response for GET /models/{model_id}/build-order.

    ``build_order`` lists embedded artifacts before the artifacts embedding
    them; ``self_including`` maps each self-including artifact to the
    representative of the cycle responsible.
    """

    model_id: str
    build_order: list[str]
    self_including: dict[str, str] = {}


class ArtifactStateResponse(BaseModel):
    """Persisted form of one artifact."""

    name: str
    valid: bool
    state: dict[str, Any]


class ValidateRequest(BaseModel):
    """Request body for POST /validate."""

    model_yaml: str = Field(description="YAML artifact document to validate")


class ErrorDetail(BaseModel):
    """A single validation error detail."""

    code: str
    message: str
    path: str | None = None
    suggestions: list[str] = []


class ValidateResponse(BaseModel):
    """Response body for POST /validate."""

    valid: bool
    errors: list[ErrorDetail] = []
    warnings: list[ErrorDetail] = []


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""

"""Pydantic request/response schemas for the FaceEntry API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EnrollResponse(BaseModel):
    """Result of registering a face."""

    name: str = Field(description="Identity the face was stored under (whitespace stripped)")
    registered: int = Field(description="Total number of registered faces after this enrollment")


class RecognizeResponse(BaseModel):
    """Result of a re-entry check. ``name`` and ``distance`` are null when nothing matched."""

    matched: bool
    name: str | None = None
    distance: float | None = Field(default=None, description="Euclidean distance to the matched embedding")
    threshold: float = Field(description="Distances at or above this value never match")


class CountResponse(BaseModel):
    """Number of registered faces."""

    count: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    device: str
    model: str
    registered_faces: int
    models_loaded: list[str]
    concurrent_requests: int
    queue_depth: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None

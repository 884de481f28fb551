"""
Pydantic response models -- what the gateway returns outside the SSE stream.

Streaming chunks are plain dicts built by panelchat.streaming so that
`finish_reason: null` and omitted delta fields come out exactly as OpenAI
clients expect.
"""

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    id: str
    object: str = "model"
    owned_by: str = "openai"


class ModelsResponse(BaseModel):
    """GET /v1/models"""

    object: str = "list"
    data: list[ModelInfo] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Liveness probe result."""

    status: str
    agents_registered: int
    tasks_tracked: int = 0
    uptime_seconds: float


class ErrorDetail(BaseModel):
    message: str
    type: str = "invalid_request_error"
    code: str | None = None


class ErrorResponse(BaseModel):
    """OpenAI-style error envelope: {"error": {"message", "type", "code"}}"""

    error: ErrorDetail

"""Pydantic models for API request/response contracts."""
from .requests import ChatCompletionRequest, ChatMessageIn
from .responses import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    ModelInfo,
    ModelsResponse,
)

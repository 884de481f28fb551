"""OpenAI-compatible chunk streaming (SSE)."""
from .writer import (
    DONE_EVENT,
    StreamConfig,
    slices,
    sse_encode,
    stream_text,
    stream_tool_calls,
)

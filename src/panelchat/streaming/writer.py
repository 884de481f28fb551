"""
OpenAI streaming emulation -- turns a finished round into
`chat.completion.chunk` objects, paced like a live model.

Text round:
    {"delta": {"content": "<10 chars>"}}  ...        finish_reason: null
    {"delta": {"content": "<!-- task:XXXXXXXX -->"}}  finish_reason: null
    {"delta": {}}                                     finish_reason: "stop"

Tool-call round:
    {"delta": {"role": "assistant", "content": "<!-- task:XXXXXXXX -->"}}
    per call i:
      {"delta": {"tool_calls": [{"index": i, "id", "type": "function",
                                 "function": {"name", "arguments": ""}}]}}
      {"delta": {"tool_calls": [{"index": i, "function": {"arguments": "<50 chars>"}}]}} ...
    {"delta": {}}                                     finish_reason: "tool_calls"

`id` and `created` are fixed for the whole response. Delays may be zero;
chunk order never depends on them.
"""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass

from ..tasks.correlation import task_marker
from ..tasks.models import ToolCall

logger = logging.getLogger(__name__)

DONE_EVENT = "data: [DONE]\n\n"


@dataclass
class StreamConfig:
    text_chunk_size: int = 10
    arg_chunk_size: int = 50
    chunk_delay_ms: int = 5
    arg_delay_ms: int = 1


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def slices(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def sse_encode(chunk: dict) -> str:
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n"


async def _pause(delay_ms: int) -> None:
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)


class _ChunkBuilder:
    """Stamps every chunk of one response with the same id/created/model."""

    def __init__(self, model: str):
        self.id = new_completion_id()
        self.created = int(time.time())
        self.model = model

    def __call__(self, delta: dict, finish_reason: str | None = None) -> dict:
        return {
            "id": self.id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        }


async def stream_text(
    body: str,
    task_id: str,
    model: str,
    config: StreamConfig | None = None,
) -> AsyncIterator[dict]:
    config = config or StreamConfig()
    chunk = _ChunkBuilder(model)

    for piece in slices(body, config.text_chunk_size):
        yield chunk({"content": piece})
        await _pause(config.chunk_delay_ms)

    yield chunk({"content": task_marker(task_id)})
    yield chunk({}, finish_reason="stop")
    logger.debug(f"[StreamWriter] Streamed {len(body)} chars for task {task_id}")


async def stream_tool_calls(
    calls: list[ToolCall],
    task_id: str,
    model: str,
    config: StreamConfig | None = None,
) -> AsyncIterator[dict]:
    config = config or StreamConfig()
    chunk = _ChunkBuilder(model)

    yield chunk({"role": "assistant", "content": task_marker(task_id)})

    for index, call in enumerate(calls):
        yield chunk({
            "tool_calls": [{
                "index": index,
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": ""},
            }]
        })
        for piece in slices(call.arguments, config.arg_chunk_size):
            yield chunk({
                "tool_calls": [{"index": index, "function": {"arguments": piece}}]
            })
            await _pause(config.arg_delay_ms)

    yield chunk({}, finish_reason="tool_calls")
    logger.debug(f"[StreamWriter] Streamed {len(calls)} tool call(s) for task {task_id}")

"""
Streaming Evals -- the chunk sequence is indistinguishable from OpenAI's.
"""

import json

import pytest

from panelchat.streaming import (
    DONE_EVENT,
    StreamConfig,
    sse_encode,
    stream_text,
    stream_tool_calls,
)
from panelchat.tasks import ToolCall

NO_DELAY = StreamConfig(chunk_delay_ms=0, arg_delay_ms=0)


async def _collect(agen):
    return [chunk async for chunk in agen]


def _delta(chunk):
    return chunk["choices"][0]["delta"]


def _finish(chunk):
    return chunk["choices"][0]["finish_reason"]


class TestTextStream:

    @pytest.mark.asyncio
    async def test_ten_char_slices_then_marker_then_stop(self):
        body = "abcdefghijKLMNOPQRSTuvw"
        chunks = await _collect(stream_text(body, "ab12cd34", "gpt-5-nano", NO_DELAY))

        contents = [_delta(c).get("content") for c in chunks]
        assert contents == ["abcdefghij", "KLMNOPQRST", "uvw", "<!-- task:ab12cd34 -->", None]
        assert [_finish(c) for c in chunks] == [None, None, None, None, "stop"]
        assert _delta(chunks[-1]) == {}

    @pytest.mark.asyncio
    async def test_chunk_envelope_is_constant(self):
        chunks = await _collect(stream_text("x" * 25, "ab12cd34", "my-model", NO_DELAY))

        assert len({c["id"] for c in chunks}) == 1
        assert len({c["created"] for c in chunks}) == 1
        first = chunks[0]
        assert first["id"].startswith("chatcmpl-")
        assert first["object"] == "chat.completion.chunk"
        assert first["model"] == "my-model"
        assert first["choices"][0]["index"] == 0

    @pytest.mark.asyncio
    async def test_empty_body_still_carries_marker(self):
        chunks = await _collect(stream_text("", "ab12cd34", "m", NO_DELAY))
        assert [_delta(c).get("content") for c in chunks] == ["<!-- task:ab12cd34 -->", None]


class TestToolCallStream:

    @pytest.mark.asyncio
    async def test_frames_per_call(self):
        long_args = json.dumps({"content": "y" * 80}, separators=(",", ":"))
        calls = [
            ToolCall(id="call_1", name="write_file", arguments='{"target_file":"a.txt"}'),
            ToolCall(id="call_2", name="append", arguments=long_args),
        ]
        chunks = await _collect(stream_tool_calls(calls, "ab12cd34", "m", NO_DELAY))

        assert _delta(chunks[0]) == {"role": "assistant", "content": "<!-- task:ab12cd34 -->"}
        assert _delta(chunks[1]) == {"tool_calls": [{
            "index": 0, "id": "call_1", "type": "function",
            "function": {"name": "write_file", "arguments": ""},
        }]}
        assert _delta(chunks[2]) == {"tool_calls": [{
            "index": 0, "function": {"arguments": '{"target_file":"a.txt"}'},
        }]}
        assert _delta(chunks[3])["tool_calls"][0]["id"] == "call_2"

        arg_frames = [_delta(c)["tool_calls"][0] for c in chunks[4:-1]]
        assert all(f["index"] == 1 for f in arg_frames)
        pieces = [f["function"]["arguments"] for f in arg_frames]
        assert [len(p) for p in pieces[:-1]] == [50] * (len(pieces) - 1)
        assert "".join(pieces) == long_args

        assert _delta(chunks[-1]) == {}
        assert _finish(chunks[-1]) == "tool_calls"
        assert all(_finish(c) is None for c in chunks[:-1])


class TestSSE:

    def test_event_framing(self):
        assert sse_encode({"a": 1}) == 'data: {"a": 1}\n\n'
        assert DONE_EVENT == "data: [DONE]\n\n"

    def test_non_ascii_kept_verbatim(self):
        assert "café" in sse_encode({"content": "café"})

"""Eval test fixtures -- scripted agents, scripted manager, test app."""

import json
from unittest.mock import AsyncMock

import pytest

from panelchat.agents import DEFAULT_ROSTER, AgentDirectory
from panelchat.llm import LLMResponse, StreamEvent
from panelchat.tasks import TaskStore


class ScriptedAgent:
    """Panel member that replays scripted turns instead of calling an LLM.

    Each turn is a list of StreamEvents; an Exception in the list is raised
    at that point. Once the script runs out every turn yields "ok".
    """

    def __init__(self, name, turns=None):
        self._name = name
        self.turns = list(turns or [])
        self.calls = []
        self.closed = 0
        self.finished = 0

    @property
    def name(self):
        return self._name

    @property
    def domain(self):
        return "testing"

    async def stream(self, history, tools):
        self.calls.append({"history": list(history), "tools": list(tools)})
        turn = self.turns.pop(0) if self.turns else [StreamEvent(text="ok")]
        try:
            for event in turn:
                if isinstance(event, Exception):
                    raise event
                yield event
            self.finished += 1
        finally:
            self.closed += 1


def manager_reply(next_agent, reasoning="because"):
    return LLMResponse(content=json.dumps({"nextAgent": next_agent, "reasoning": reasoning}))


def scripted_manager(*replies):
    """Manager LLM double. Strings become LLMResponse; exceptions are raised."""
    client = AsyncMock()
    client.call.side_effect = [
        LLMResponse(content=r) if isinstance(r, str) else r for r in replies
    ]
    return client


def manager_prompts(manager):
    """The user_message of every prompt the manager was sent."""
    return [c.kwargs["prompt"].user_message for c in manager.call.await_args_list]


def extract_chunks(raw_stream):
    """Parse an SSE body into chunk dicts (the [DONE] sentinel is skipped)."""
    chunks = []
    for block in raw_stream.split("\n\n"):
        if not block.strip():
            continue
        for line in block.splitlines():
            if line.startswith("data: ") and line != "data: [DONE]":
                chunks.append(json.loads(line[len("data: "):]))
    return chunks


def reassemble_text(chunks):
    return "".join(
        c["choices"][0]["delta"].get("content") or "" for c in chunks
    )


@pytest.fixture
def agents():
    """One scripted agent per default roster name, keyed by name."""
    return {name: ScriptedAgent(name) for name in DEFAULT_ROSTER}


@pytest.fixture
def directory(agents):
    return AgentDirectory(list(agents.values()))


@pytest.fixture
def store():
    return TaskStore()


@pytest.fixture
def gateway_config():
    from panelchat.config import GatewayConfig

    return GatewayConfig(chunk_delay_ms=0, arg_delay_ms=0, cors_origins=["http://localhost"])


@pytest.fixture
def make_client(directory, store, gateway_config):
    """Build a TestClient around a scripted manager."""
    from fastapi.testclient import TestClient

    from panelchat.api.gateway import create_app

    def _make(manager):
        app = create_app(
            config=gateway_config,
            directory=directory,
            manager_llm=manager,
            store=store,
        )
        return TestClient(app)

    return _make

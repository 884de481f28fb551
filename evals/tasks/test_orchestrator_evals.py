"""
Orchestrator Evals -- persistence happens once, before streaming, and a
cancelled request leaves the stored task untouched.
"""

import asyncio

import pytest

from panelchat.agents import AgentDirectory
from panelchat.orchestration import (
    DeliberationRunner,
    PanelOrchestrator,
    SpeakerScheduler,
)
from panelchat.security import ValidationError
from panelchat.streaming import StreamConfig
from panelchat.tasks import Message, TaskState

from evals.conftest import manager_reply, scripted_manager


class BlockingAgent:
    """Agent whose stream never produces anything."""

    def __init__(self):
        self.started = asyncio.Event()

    @property
    def name(self):
        return "business-analyst"

    @property
    def domain(self):
        return "testing"

    async def stream(self, history, tools):
        self.started.set()
        await asyncio.Event().wait()
        yield  # pragma: no cover


def _orchestrator(store, directory, manager):
    scheduler = SpeakerScheduler(manager, directory, "You are the manager.")
    return PanelOrchestrator(
        store,
        DeliberationRunner(scheduler, directory),
        StreamConfig(chunk_delay_ms=0, arg_delay_ms=0),
    )


class TestPersistence:

    @pytest.mark.asyncio
    async def test_task_persisted_before_first_chunk(self, store, directory):
        orchestrator = _orchestrator(store, directory, scripted_manager("AWAIT_USER"))
        task = await orchestrator.prepare([Message(role="user", content="hi")])

        stream = orchestrator.respond(task, "m")
        first = await stream.__anext__()
        await stream.aclose()

        stored = await store.get(task.id)
        assert stored.state == TaskState.AWAITING_USER
        assert stored.messages[-1].content.endswith(f"<!-- task:{task.id} -->")
        assert first["choices"][0]["delta"]["content"]

    @pytest.mark.asyncio
    async def test_cancelled_round_persists_nothing(self, store):
        agent = BlockingAgent()
        directory = AgentDirectory([agent])
        orchestrator = _orchestrator(store, directory, scripted_manager(manager_reply("business-analyst")))
        task = await orchestrator.prepare([Message(role="user", content="hi")])

        async def consume():
            return [chunk async for chunk in orchestrator.respond(task, "m")]

        consumer = asyncio.create_task(consume())
        await agent.started.wait()
        consumer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await consumer

        stored = await store.get(task.id)
        assert stored.state == TaskState.CREATED
        assert stored.messages == []

    @pytest.mark.asyncio
    async def test_prepare_validates_before_touching_the_store(self, store, directory):
        orchestrator = _orchestrator(store, directory, scripted_manager())

        with pytest.raises(ValidationError):
            await orchestrator.prepare([])
        assert store.count == 0

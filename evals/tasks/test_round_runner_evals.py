"""
Round Runner Evals -- one bounded pass of the panel.

CODE-BASED graders: transcript building, tool-call interruption, terminal
stability, the round bound and graceful degradation on agent failure.
"""

import pytest

from panelchat.agents import AgentDirectory, PanelAgent
from panelchat.llm import StreamEvent
from panelchat.orchestration import (
    DeliberationRunner,
    RunnerConfig,
    SpeakerScheduler,
    TextResult,
    ToolCallResult,
    format_transcript,
)
from panelchat.orchestration.round_runner import COMPLETED_TASK_TEXT
from panelchat.tasks import Message, Task, TaskState

from evals.conftest import manager_prompts, manager_reply, scripted_manager

WRITE_FILE_TOOL = {
    "type": "function",
    "function": {
        "name": "write_file",
        "parameters": {"type": "object", "properties": {"target_file": {"type": "string"}}},
    },
}


def _task(**overrides):
    task = Task(state=TaskState.WORKING, messages=[Message(role="user", content="Build a CLI")])
    for key, value in overrides.items():
        setattr(task, key, value)
    return task


def _runner(directory, manager, max_rounds=20):
    scheduler = SpeakerScheduler(manager, directory, "You are the manager.")
    return DeliberationRunner(scheduler, directory, RunnerConfig(max_rounds=max_rounds))


class TestTerminalStability:
    """Eval: a completed task never reaches the scheduler again."""

    @pytest.mark.asyncio
    async def test_completed_task_short_circuits(self, directory, agents):
        manager = scripted_manager()
        result = await _runner(directory, manager).run(_task(state=TaskState.COMPLETED))

        assert result == TextResult(COMPLETED_TASK_TEXT, complete=True)
        assert manager.call.await_count == 0
        assert all(not a.calls for a in agents.values())


class TestTranscript:
    """Eval: contributions are collected per speaker and shown to the manager."""

    @pytest.mark.asyncio
    async def test_await_user_returns_formatted_transcript(self, directory, agents):
        agents["business-analyst"].turns = [
            [StreamEvent(text="Req "), StreamEvent(text="list. ")],
        ]
        manager = scripted_manager(manager_reply("business-analyst"), "AWAIT_USER")

        result = await _runner(directory, manager).run(_task())

        assert result == TextResult(
            format_transcript([("business-analyst", "Req list.")], complete=False),
            complete=False,
        )
        assert "[business-analyst]: Req list." in manager_prompts(manager)[1]

    @pytest.mark.asyncio
    async def test_speaker_change_flushes(self, directory, agents):
        agents["business-analyst"].turns = [[StreamEvent(text="A")]]
        agents["developer"].turns = [[StreamEvent(text="B")]]
        manager = scripted_manager(
            manager_reply("business-analyst"), manager_reply("developer"), manager_reply("COMPLETE"),
        )

        result = await _runner(directory, manager).run(_task())

        assert result.complete is True
        assert result.body == format_transcript(
            [("business-analyst", "A"), ("developer", "B")], complete=True
        )

    @pytest.mark.asyncio
    async def test_same_speaker_turns_merge(self, directory, agents):
        agents["developer"].turns = [[StreamEvent(text="Part one.")], [StreamEvent(text="Part two.")]]
        manager = scripted_manager(
            manager_reply("developer"), manager_reply("developer"), "AWAIT_USER",
        )

        result = await _runner(directory, manager).run(_task())

        assert result.body == format_transcript(
            [("developer", "Part one.\n\nPart two.")], complete=False
        )

    @pytest.mark.asyncio
    async def test_empty_contributions_are_dropped(self, directory, agents):
        agents["developer"].turns = [[StreamEvent(text="   ")]]
        manager = scripted_manager(manager_reply("developer"), "AWAIT_USER")

        result = await _runner(directory, manager).run(_task())

        assert result.body == format_transcript([], complete=False)

    @pytest.mark.asyncio
    async def test_agent_receives_history_and_tools(self, directory, agents):
        manager = scripted_manager(manager_reply("developer"), "AWAIT_USER")
        task = _task(tools=[WRITE_FILE_TOOL])

        await _runner(directory, manager).run(task)

        call = agents["developer"].calls[0]
        assert call["tools"] == [WRITE_FILE_TOOL]
        assert call["history"][0].content == "Build a CLI"


class TestToolCallRound:
    """Eval: the first tool call ends the pass and cancels the agent stream."""

    @pytest.mark.asyncio
    async def test_tool_call_interrupts_stream(self, directory, agents):
        agents["developer"].turns = [[
            StreamEvent(text="Let me write it."),
            StreamEvent(tool_calls=[
                {"id": None, "name": "write_file", "arguments": {"target_file": "a.txt"}},
            ]),
            StreamEvent(text="never streamed"),
        ]]
        manager = scripted_manager(manager_reply("developer"))

        result = await _runner(directory, manager).run(_task())

        assert isinstance(result, ToolCallResult)
        assert result.agent == "developer"
        call = result.calls[0]
        assert call.id.startswith("call_") and len(call.id) == len("call_") + 32
        assert call.name == "write_file"
        assert call.arguments == '{"target_file":"a.txt"}'
        assert agents["developer"].closed == 1
        assert agents["developer"].finished == 0
        assert manager.call.await_count == 1

    @pytest.mark.asyncio
    async def test_tool_call_fields_are_repaired(self, directory, agents):
        agents["developer"].turns = [[
            StreamEvent(tool_calls=[
                {"id": "call_keep", "name": None, "arguments": ""},
                {"id": "", "name": "run", "arguments": '{"cmd": "ls"}'},
            ]),
        ]]
        manager = scripted_manager(manager_reply("developer"))

        result = await _runner(directory, manager).run(_task())

        first, second = result.calls
        assert (first.id, first.name, first.arguments) == ("call_keep", "unknown", "{}")
        assert second.id.startswith("call_")
        assert second.arguments == '{"cmd": "ls"}'

    @pytest.mark.asyncio
    async def test_resumption_hint_names_last_agent(self, directory):
        manager = scripted_manager(manager_reply("developer"), "AWAIT_USER")
        task = _task(last_active_agent="developer")

        await _runner(directory, manager).run(task)

        prompts = manager_prompts(manager)
        assert "developer requested tool calls" in prompts[0]
        assert "requested tool calls" not in prompts[1]


class TestBoundsAndFailures:
    """Eval: every pass terminates, even when things go wrong."""

    @pytest.mark.asyncio
    async def test_round_bound(self, directory):
        manager = scripted_manager(*[manager_reply("developer")] * 3)

        result = await _runner(directory, manager, max_rounds=3).run(_task())

        assert manager.call.await_count == 3
        assert result == TextResult(
            format_transcript([("developer", "ok\n\nok\n\nok")], complete=False),
            complete=False,
        )

    @pytest.mark.asyncio
    async def test_default_bound_is_twenty_rounds(self, directory):
        manager = scripted_manager(*[manager_reply("developer")] * 20)
        runner = DeliberationRunner(
            SpeakerScheduler(manager, directory, "You are the manager."), directory
        )

        result = await runner.run(_task())

        assert manager.call.await_count == 20
        assert result == TextResult(
            format_transcript([("developer", "\n\n".join(["ok"] * 20))], complete=False),
            complete=False,
        )

    @pytest.mark.asyncio
    async def test_agent_failure_ends_pass_with_partial_transcript(self, directory, agents):
        agents["business-analyst"].turns = [[StreamEvent(text="partial"), RuntimeError("boom")]]
        manager = scripted_manager(manager_reply("business-analyst"))

        result = await _runner(directory, manager).run(_task())

        assert result == TextResult(
            format_transcript([("business-analyst", "partial")], complete=False),
            complete=False,
        )


class FakeStreamingLLM:
    """LLMClient stand-in whose stream records its arguments and its closing."""

    def __init__(self, events):
        self._events = events
        self.kwargs = None
        self.closed = False
        self.emitted = 0

    async def stream(self, **kwargs):
        self.kwargs = kwargs
        try:
            for event in self._events:
                self.emitted += 1
                yield event
        finally:
            self.closed = True


class TestPanelAgentThroughRunner:
    """Eval: the LLM-backed agent forwards its inputs and releases the provider stream."""

    @pytest.mark.asyncio
    async def test_tool_call_closes_provider_stream(self):
        llm = FakeStreamingLLM([
            StreamEvent(tool_calls=[{"id": "call_1", "name": "write_file", "arguments": {"target_file": "a.txt"}}]),
            StreamEvent(text="never sent"),
        ])
        directory = AgentDirectory([PanelAgent("developer", "You write code.", llm)])
        manager = scripted_manager(manager_reply("developer"))
        task = _task(
            messages=[
                Message(role="system", content="client system prompt"),
                Message(role="user", content="Create a.txt"),
            ],
            tools=[WRITE_FILE_TOOL],
        )

        result = await _runner(directory, manager).run(task)

        assert isinstance(result, ToolCallResult)
        assert result.agent == "developer"
        assert [c.id for c in result.calls] == ["call_1"]
        assert llm.closed is True
        assert llm.emitted == 1

        assert llm.kwargs["system"] == "You write code."
        assert llm.kwargs["tools"] == [WRITE_FILE_TOOL]
        assert llm.kwargs["role"] == "developer"
        assert llm.kwargs["messages"] == [{"role": "user", "content": "Create a.txt"}]

    @pytest.mark.asyncio
    async def test_text_turn_drains_and_closes_provider_stream(self):
        llm = FakeStreamingLLM([StreamEvent(text="Done.")])
        directory = AgentDirectory([PanelAgent("developer", "You write code.", llm)])
        manager = scripted_manager(manager_reply("developer"), "AWAIT_USER")

        result = await _runner(directory, manager).run(_task())

        assert result == TextResult(
            format_transcript([("developer", "Done.")], complete=False),
            complete=False,
        )
        assert llm.closed is True

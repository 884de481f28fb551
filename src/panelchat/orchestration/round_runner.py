"""
DeliberationRunner -- one pass of the panel for one request.

Loop (bounded by max_rounds):

  1. Ask the scheduler who speaks next, given the full working history
     (task messages + this pass's contributions so far).
  2. AwaitUser / Complete -> stop and return the transcript as text.
  3. Speak(agent)         -> stream that agent. Text accumulates in the
                             transcript. The first tool-call event closes the
                             stream and ends the pass with ToolCallResult.

A pass returns exactly one RoundResult:
  TextResult(body, complete)      -- formatted transcript for the user
  ToolCallResult(calls, agent)    -- tool calls the client must execute
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from ..tasks.models import Message, Task, ToolCall, encode_arguments, new_call_id
from .formatting import format_transcript
from .scheduler import AwaitUser, Complete, SpeakerScheduler, Speak

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 20
COMPLETED_TASK_TEXT = "Task has been completed successfully! All work has been approved."


@dataclass
class RunnerConfig:
    max_rounds: int = DEFAULT_MAX_ROUNDS


@dataclass
class TextResult:
    body: str
    complete: bool = False


@dataclass
class ToolCallResult:
    calls: list[ToolCall] = field(default_factory=list)
    agent: str = ""


RoundResult = TextResult | ToolCallResult


def normalize_tool_call(raw: dict) -> ToolCall:
    """Repair what providers leave out: id, name, string-encoded arguments."""
    return ToolCall(
        id=raw.get("id") or new_call_id(),
        name=raw.get("name") or "unknown",
        arguments=encode_arguments(raw.get("arguments")),
    )


class _Transcript:
    """Per-pass (agent, text) pairs; the buffer flushes when the speaker changes."""

    def __init__(self):
        self.pairs: list[tuple[str, str]] = []
        self._speaker: str | None = None
        self._buffer: list[str] = []

    def start_turn(self, agent_name: str) -> None:
        if agent_name != self._speaker:
            self.flush()
            self._speaker = agent_name
        elif "".join(self._buffer).strip():
            self._buffer.append("\n\n")

    def add(self, text: str) -> None:
        self._buffer.append(text)

    def flush(self) -> None:
        text = "".join(self._buffer).strip()
        if self._speaker and text:
            self.pairs.append((self._speaker, text))
        self._buffer = []

    def as_messages(self) -> list[Message]:
        """Committed pairs plus the in-progress buffer."""
        pairs = list(self.pairs)
        pending = "".join(self._buffer).strip()
        if self._speaker and pending:
            pairs.append((self._speaker, pending))
        return [Message(role="assistant", content=text, name=agent) for agent, text in pairs]


class DeliberationRunner:
    """
    Usage:
        runner = DeliberationRunner(scheduler, directory, RunnerConfig(max_rounds=20))
        result = await runner.run(task)
    """

    def __init__(
        self,
        scheduler: SpeakerScheduler,
        directory: Any,
        config: RunnerConfig | None = None,
    ):
        self._scheduler = scheduler
        self._directory = directory
        self._config = config or RunnerConfig()

    async def run(self, task: Task) -> RoundResult:
        if task.is_complete:
            logger.info(f"[RoundRunner] Task {task.id} already complete")
            return TextResult(COMPLETED_TASK_TEXT, complete=True)

        transcript = _Transcript()
        hint = self._resume_hint(task)

        for round_number in range(1, self._config.max_rounds + 1):
            history = task.messages + transcript.as_messages()
            decision = await self._scheduler.select_next(history, hint=hint)
            hint = None

            if isinstance(decision, AwaitUser):
                transcript.flush()
                logger.info(f"[RoundRunner] Task {task.id}: awaiting user after {round_number} rounds")
                return TextResult(format_transcript(transcript.pairs, complete=False), complete=False)

            if isinstance(decision, Complete):
                transcript.flush()
                logger.info(f"[RoundRunner] Task {task.id}: complete after {round_number} rounds")
                return TextResult(format_transcript(transcript.pairs, complete=True), complete=True)

            agent = self._directory.get(decision.agent_name) if isinstance(decision, Speak) else None
            if agent is None:
                logger.warning(f"[RoundRunner] No agent for decision {decision!r}, stopping")
                transcript.flush()
                break

            transcript.start_turn(agent.name)
            history = task.messages + transcript.as_messages()

            try:
                calls = await self._stream_agent(agent, history, task.tools, transcript)
            except Exception as e:
                logger.error(
                    f"[RoundRunner] Agent {agent.name} failed on task {task.id}: "
                    f"{type(e).__name__}: {e}"
                )
                transcript.flush()
                return TextResult(format_transcript(transcript.pairs, complete=False), complete=False)

            if calls:
                logger.info(
                    f"[RoundRunner] Task {task.id}: {agent.name} requested "
                    f"{len(calls)} tool call(s): {[c.name for c in calls]}"
                )
                return ToolCallResult(calls=calls, agent=agent.name)
        else:
            logger.warning(
                f"[RoundRunner] Task {task.id}: hit max_rounds={self._config.max_rounds}"
            )

        transcript.flush()
        return TextResult(format_transcript(transcript.pairs, complete=False), complete=False)

    async def _stream_agent(
        self,
        agent: Any,
        history: list[Message],
        tools: list[dict],
        transcript: _Transcript,
    ) -> list[ToolCall]:
        """Stream one agent turn. Returns tool calls (stream closed early) or []."""
        async with aclosing(agent.stream(history, tools)) as events:
            async for event in events:
                if event.tool_calls:
                    return [normalize_tool_call(raw) for raw in event.tool_calls]
                if event.text:
                    transcript.add(event.text)
        return []

    def _resume_hint(self, task: Task) -> str | None:
        if not task.last_active_agent:
            return None
        return (
            f"Note: {task.last_active_agent} requested tool calls and the results "
            f"are now in the conversation. {task.last_active_agent} should usually "
            f"continue its work."
        )

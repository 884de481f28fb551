"""
PanelAgent -- one LLM-backed team member.

An agent is a name, a system prompt and a shared LLM client. Given the
conversation so far and the caller's tool declarations, it streams
StreamEvents: text deltas, and at most one batch of tool calls.

Any object with `name`, `domain` and a matching `stream()` can sit on the
panel (see AgentProtocol); tests use scripted fakes.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Protocol, runtime_checkable

from ..llm import LLMClient, StreamEvent
from ..tasks.models import Message

logger = logging.getLogger(__name__)


@runtime_checkable
class AgentProtocol(Protocol):
    """Interface any panel member must implement.

    Example:
        class MyAgent:
            name = "developer"
            domain = "implementation"

            async def stream(self, history, tools):
                yield StreamEvent(text="Done.")
    """

    @property
    def name(self) -> str: ...

    @property
    def domain(self) -> str: ...

    def stream(
        self, history: list[Message], tools: list[dict]
    ) -> AsyncIterator[StreamEvent]: ...


class PanelAgent:
    """Default AgentProtocol implementation backed by LLMClient.stream()."""

    def __init__(
        self,
        name: str,
        system_prompt: str,
        llm_client: LLMClient,
        domain: str = "",
        temperature: float = 0.5,
    ):
        self._name = name
        self._system_prompt = system_prompt
        self._llm = llm_client
        self._domain = domain or name
        self._temperature = temperature

    @property
    def name(self) -> str:
        return self._name

    @property
    def domain(self) -> str:
        return self._domain

    async def stream(
        self, history: list[Message], tools: list[dict]
    ) -> AsyncIterator[StreamEvent]:
        logger.debug(
            f"[PanelAgent] {self._name}: streaming over {len(history)} messages, "
            f"{len(tools)} tools"
        )
        # Closing this generator must close the provider stream with it.
        events = self._llm.stream(
            system=self._system_prompt,
            messages=[m.to_wire() for m in history if m.role != "system"],
            tools=tools,
            role=self._name,
            temperature=self._temperature,
        )
        async with aclosing(events):
            async for event in events:
                yield event

"""
AgentDirectory -- the panel roster.

Keeps agents in registration order (the first one is the fallback speaker)
and resolves the names the manager produces: case-insensitive, with
underscores treated as hyphens ("SR_DEVELOPER" -> "sr-developer").

Usage:
    directory = AgentDirectory.from_prompts(llm_client)
    agent = directory.get("Sr-Developer")
    fallback = directory.first
"""

import logging
from collections.abc import Mapping
from typing import Any

from .prompts import DEFAULT_PROMPTS, DEFAULT_ROSTER, DOMAINS
from .runtime import PanelAgent

logger = logging.getLogger(__name__)


def normalize_agent_name(name: str) -> str:
    return name.strip().lower().replace("_", "-")


class AgentDirectory:
    """Ordered, case-insensitive name -> agent lookup."""

    def __init__(self, agents: list[Any] | None = None):
        self._agents: dict[str, Any] = {}
        for agent in agents or []:
            self.register(agent)

    @classmethod
    def from_prompts(
        cls,
        llm_client: Any,
        prompts: Mapping[str, str] = DEFAULT_PROMPTS,
        roster: tuple[str, ...] = DEFAULT_ROSTER,
    ) -> "AgentDirectory":
        """Bind one PanelAgent per roster name to its system prompt."""
        directory = cls()
        for name in roster:
            prompt = prompts.get(name)
            if not prompt:
                logger.warning(f"[AgentDirectory] No prompt for '{name}', skipping")
                continue
            directory.register(
                PanelAgent(
                    name=name,
                    system_prompt=prompt,
                    llm_client=llm_client,
                    domain=DOMAINS.get(name, name),
                )
            )
        return directory

    def register(self, agent: Any) -> None:
        if not hasattr(agent, "name") or not hasattr(agent, "stream"):
            raise ValueError("Agent must have a 'name' property and a 'stream' method")
        key = normalize_agent_name(agent.name)
        if key in self._agents:
            logger.warning(f"[AgentDirectory] Replacing existing agent '{agent.name}'")
        self._agents[key] = agent
        logger.info(f"[AgentDirectory] Registered agent: {agent.name}")

    def get(self, name: str | None) -> Any | None:
        if not name:
            return None
        return self._agents.get(normalize_agent_name(name))

    @property
    def first(self) -> Any | None:
        """Fallback speaker: the first registered agent."""
        return next(iter(self._agents.values()), None)

    def get_all(self) -> list:
        return list(self._agents.values())

    @property
    def names(self) -> list[str]:
        return [agent.name for agent in self._agents.values()]

    def list_info(self) -> list[dict]:
        """Serializable roster (for the CLI and health checks)."""
        return [
            {"name": agent.name, "domain": getattr(agent, "domain", "")}
            for agent in self._agents.values()
        ]

    @property
    def count(self) -> int:
        return len(self._agents)

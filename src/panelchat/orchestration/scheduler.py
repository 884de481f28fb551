"""
SpeakerScheduler -- asks the manager LLM who speaks next.

One model call per decision. The reply is parsed strictly (JSON span), then
through a fixed keyword fallback chain, and the result is always a Decision:

    Speak(agent_name)   -- a roster member takes the floor
    AwaitUser           -- stop and hand the conversation back to the user
    Complete            -- all work is approved; the task is finished

The scheduler never raises on a bad reply. Unknown names, malformed output
and manager call failures all degrade to Speak(<first roster agent>).
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from ..llm import CacheablePrompt, extract_json
from ..tasks.models import Message

logger = logging.getLogger(__name__)

AWAIT_USER_TOKEN = "AWAIT_USER"
COMPLETE_TOKEN = "COMPLETE"
DEFAULT_AGENT_TOKEN = "business-analyst"
DEFAULT_REASONING = "No reasoning provided"
FALLBACK_REASONING = "Fallback to default agent"

MAX_CONTENT_CHARS = 500

# First hit wins.
KEYWORD_FALLBACKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (AWAIT_USER_TOKEN, (r"await_user", r"await user")),
    (COMPLETE_TOKEN, (r"complete",)),
    ("sr-developer", (r"sr-developer", r"sr_developer", r"senior developer")),
    (
        "sr-business-analyst",
        (r"sr-business-analyst", r"sr_business_analyst", r"senior business analyst"),
    ),
    (
        "sr-quality-assurance",
        (r"sr-quality-assurance", r"sr_quality_assurance", r"senior qa"),
    ),
    ("developer", (r"developer",)),
    ("business-analyst", (r"business-analyst", r"business analyst")),
    ("quality-assurance", (r"quality-assurance", r"quality assurance", r"\bqa\b")),
)


# =============================================================================
# DECISIONS
# =============================================================================


@dataclass(frozen=True)
class Speak:
    agent_name: str
    reasoning: str = ""


@dataclass(frozen=True)
class AwaitUser:
    reasoning: str = ""


@dataclass(frozen=True)
class Complete:
    reasoning: str = ""


Decision = Speak | AwaitUser | Complete


# =============================================================================
# PROMPT & PARSING
# =============================================================================


def format_history_for_manager(history: list[Message], hint: str | None = None) -> str:
    lines = ["CONVERSATION HISTORY:", "====================="]
    for message in history:
        author = message.name or message.role
        content = message.content or "(no content)"
        if len(content) > MAX_CONTENT_CHARS:
            content = content[:MAX_CONTENT_CHARS] + "... (truncated)"
        lines.append(f"[{author}]: {content}")

    lines.append("")
    if hint:
        lines.append(hint)
    lines.append("Based on the conversation above, decide which agent should speak next.")
    lines.append('Respond with JSON only: {"nextAgent": "...", "reasoning": "..."}')
    return "\n".join(lines) + "\n"


def parse_manager_reply(text: str) -> tuple[str, str]:
    """Return (token, reasoning). Never raises."""
    data = extract_json(text or "")
    if data is not None and "nextAgent" in data:
        token = data.get("nextAgent")
        reasoning = data.get("reasoning")
        return (
            token if isinstance(token, str) and token else DEFAULT_AGENT_TOKEN,
            reasoning if isinstance(reasoning, str) and reasoning else DEFAULT_REASONING,
        )

    logger.warning(
        f"[Scheduler] Could not parse manager reply as JSON: {(text or '')[:200]!r}"
    )
    lower = (text or "").lower()
    for token, patterns in KEYWORD_FALLBACKS:
        if any(re.search(p, lower) for p in patterns):
            return token, f"Detected {token} in response"
    return DEFAULT_AGENT_TOKEN, FALLBACK_REASONING


# =============================================================================
# SCHEDULER
# =============================================================================


class SpeakerScheduler:
    """
    Usage:
        scheduler = SpeakerScheduler(manager_llm, directory, manager_prompt)
        decision = await scheduler.select_next(history)
    """

    def __init__(self, llm_client: Any, directory: Any, manager_prompt: str):
        self._llm = llm_client
        self._directory = directory
        self._manager_prompt = manager_prompt

    async def select_next(
        self, history: list[Message], hint: str | None = None
    ) -> Decision:
        try:
            response = await self._llm.call(
                prompt=CacheablePrompt(
                    system=self._manager_prompt,
                    user_message=format_history_for_manager(history, hint),
                ),
                role="manager",
                temperature=0.0,
            )
        except Exception as e:
            logger.error(
                f"[Scheduler] Manager call failed ({type(e).__name__}: {e}), "
                f"falling back to first agent"
            )
            return self._fallback("Manager call failed")

        token, reasoning = parse_manager_reply(response.content)
        decision = self._resolve(token, reasoning)
        logger.info(f"[Scheduler] Manager decided: {token} - {reasoning}")
        return decision

    def _resolve(self, token: str, reasoning: str) -> Decision:
        if token.strip().upper() == AWAIT_USER_TOKEN:
            return AwaitUser(reasoning)
        if token.strip().upper() == COMPLETE_TOKEN:
            return Complete(reasoning)

        agent = self._directory.get(token)
        if agent is None:
            logger.warning(
                f"[Scheduler] Manager selected unknown agent '{token}', "
                f"falling back to first agent"
            )
            return self._fallback(reasoning)
        return Speak(agent.name, reasoning)

    def _fallback(self, reasoning: str) -> Decision:
        first = self._directory.first
        if first is None:
            logger.error("[Scheduler] No agents configured -- handing back to the user")
            return AwaitUser("No agents configured")
        return Speak(first.name, reasoning)

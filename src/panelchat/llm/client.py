"""
Provider-agnostic LLM client with retries, timeouts and token tracking.

Two entry points:

  call()    -- one-shot completion. The manager uses it to pick the next
               speaker:
                   response = await client.call(prompt=prompt, role="manager", temperature=0.0)
                   response.content  # str

  stream()  -- streaming completion with tool declarations. Panel agents use
               it; it yields StreamEvents:
                   async for event in client.stream(system=..., messages=..., tools=...):
                       event.text        # text delta ("" if none)
                       event.tool_calls  # complete calls, [{"id", "name", "arguments"}]

Tool-call arguments arrive from providers in fragments; stream() assembles
them and emits the calls as ONE event, once the model has finished them.

Supports: OpenAI (GPT/o-series) and Anthropic (Claude). Messages and tools
are passed in OpenAI wire format and translated for Anthropic.

Failures: call() and stream() raise LLMError once retries are exhausted.
"""

import asyncio
import json
import logging
import os
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from ..security.prompt_guard import sanitize_for_prompt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120
DEFAULT_MAX_RETRIES = 2
DEFAULT_MAX_PROMPT_LENGTH = 200_000
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 30.0

ANTHROPIC_COST_PER_1K_INPUT = 0.003
ANTHROPIC_COST_PER_1K_CACHED = 0.0003
ANTHROPIC_COST_PER_1K_OUTPUT = 0.015
OPENAI_COST_PER_1K_INPUT = 0.005
OPENAI_COST_PER_1K_CACHED = 0.0025
OPENAI_COST_PER_1K_OUTPUT = 0.015


# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass
class CacheablePrompt:
    """
    Separates a prompt into its stable and per-call parts.

      - system: persona instructions (cached -- never changes)
      - user_message: the actual request (never cached)
    """

    system: str = ""
    user_message: str = ""


@dataclass
class TokenUsage:
    """Token usage tracking for a single LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cached_input_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    cache_hit: bool = False

    def __post_init__(self):
        self.total_tokens = self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Response from a one-shot LLM call."""

    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""
    provider: str = ""
    latency_ms: float = 0.0
    cached: bool = False


@dataclass
class StreamEvent:
    """One event from a streaming call: a text delta or a batch of tool calls."""

    text: str = ""
    tool_calls: list[dict] = field(default_factory=list)
    # Each: {"id": str | None, "name": str | None, "arguments": str}


class LLMError(RuntimeError):
    """An LLM call failed after all retries (or the client is unusable)."""


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """
    Provider-agnostic LLM client.

    Usage:
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        response = await client.call(prompt="Who speaks next?", role="manager")

        async for event in client.stream(system="You are a developer.", messages=history):
            ...
    """

    def __init__(
        self,
        provider: str = "openai",
        model: str | None = None,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH,
    ):
        self._provider = provider.lower()
        self._model = model or self._default_model()
        self._api_key = api_key or self._load_api_key()
        self._timeout = timeout
        self._max_retries = max_retries
        self._max_prompt_length = max_prompt_length
        self._client: Any = None

        self._init_client()
        logger.info(
            f"[LLM] Initialized {self._provider} client "
            f"(model={self._model}, timeout={self._timeout}s)"
        )

    def _default_model(self) -> str:
        defaults = {
            "anthropic": "claude-sonnet-4-20250514",
            "openai": "gpt-4o-mini",
        }
        return defaults.get(self._provider, "gpt-4o-mini")

    def _load_api_key(self) -> str:
        key_map = {
            "anthropic": "ANTHROPIC_API_KEY",
            "openai": "OPENAI_API_KEY",
        }
        env_var = key_map.get(self._provider, "OPENAI_API_KEY")
        key = os.environ.get(env_var, "")
        if not key:
            logger.warning(f"[LLM] {env_var} not set -- calls will fail")
        return key

    def _init_client(self) -> None:
        """Initialize the provider-specific SDK client."""
        try:
            if self._provider == "anthropic":
                import anthropic

                self._client = anthropic.AsyncAnthropic(
                    api_key=self._api_key, timeout=self._timeout
                )
            elif self._provider == "openai":
                import openai

                self._client = openai.AsyncOpenAI(
                    api_key=self._api_key, timeout=self._timeout
                )
            else:
                raise ValueError(f"Unsupported provider: {self._provider}")
        except ImportError:
            logger.error(
                f"[LLM] {self._provider} SDK not installed. "
                f"Install the package's dependencies."
            )
            self._client = None

    # -------------------------------------------------------------------------
    # One-shot
    # -------------------------------------------------------------------------

    async def call(
        self,
        prompt: str | CacheablePrompt,
        role: str = "assistant",
        temperature: float = 0.5,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """
        Make a one-shot LLM call with retries.

        Args:
            prompt: String or CacheablePrompt. Strings are wrapped as
                    CacheablePrompt(user_message=prompt).
            role: Semantic role hint (e.g., "manager"). Used for logging only.
            temperature: Sampling temperature (0.0 = deterministic).
            max_tokens: Maximum output tokens.

        Raises:
            LLMError: the client is not initialized or every attempt failed.
        """
        if isinstance(prompt, str):
            prompt = CacheablePrompt(user_message=prompt)

        prompt = self._sanitize_prompt(prompt)
        self._require_client()

        start = time.time()
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._call_provider(prompt, temperature, max_tokens)
                response.latency_ms = (time.time() - start) * 1000

                logger.debug(
                    f"[LLM] {self._provider}/{role}: "
                    f"{response.usage.input_tokens}in "
                    f"({response.usage.cached_input_tokens} cached) + "
                    f"{response.usage.output_tokens}out = "
                    f"{response.usage.total_tokens}tok "
                    f"${response.usage.estimated_cost_usd:.4f} "
                    f"({response.latency_ms:.0f}ms)"
                )
                return response

            except Exception as e:
                last_error = e
                if not await self._backoff(e, attempt):
                    break

        logger.error(f"[LLM] Call failed after {attempt + 1} attempts: {last_error}")
        raise LLMError(f"LLM call failed: {type(last_error).__name__}") from last_error

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    async def stream(
        self,
        system: str,
        messages: list[dict],
        tools: list[dict] | None = None,
        role: str = "agent",
        temperature: float = 0.5,
        max_tokens: int = 4096,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion. Yields text deltas as they arrive, and any tool
        calls as a single StreamEvent once the model has finished them.

        Opening the stream is retried; once events have been yielded a
        failure is raised as-is. Closing the generator early (aclose())
        closes the provider stream.

        Raises:
            LLMError: the client is not initialized or the stream could not open.
        """
        self._require_client()
        system = sanitize_for_prompt(system, max_length=self._max_prompt_length // 3)

        provider_stream = await self._open_stream(
            system, messages, tools or [], temperature, max_tokens, role
        )
        try:
            if self._provider == "anthropic":
                async for event in self._iter_anthropic(provider_stream):
                    yield event
            else:
                async for event in self._iter_openai(provider_stream):
                    yield event
        finally:
            close = getattr(provider_stream, "close", None)
            if close is not None:
                await close()

    async def _open_stream(
        self,
        system: str,
        messages: list[dict],
        tools: list[dict],
        temperature: float,
        max_tokens: int,
        role: str,
    ) -> Any:
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                if self._provider == "anthropic":
                    anthropic_kwargs: dict[str, Any] = {
                        "model": self._model,
                        "max_tokens": max_tokens,
                        "temperature": temperature,
                        "system": system,
                        "messages": _to_anthropic_messages(messages),
                        "stream": True,
                    }
                    anthropic_tools = _to_anthropic_tools(tools)
                    if anthropic_tools:
                        anthropic_kwargs["tools"] = anthropic_tools
                    return await self._client.messages.create(**anthropic_kwargs)
                kwargs: dict[str, Any] = {
                    "model": self._model,
                    "messages": [{"role": "system", "content": system}]
                    + [_to_openai_message(m) for m in messages],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                    "stream": True,
                }
                if tools:
                    kwargs["tools"] = tools
                    kwargs["tool_choice"] = "auto"
                return await self._client.chat.completions.create(**kwargs)
            except Exception as e:
                last_error = e
                if not await self._backoff(e, attempt):
                    break

        logger.error(
            f"[LLM] {self._provider}/{role}: stream failed to open: {last_error}"
        )
        raise LLMError(f"LLM stream failed: {type(last_error).__name__}") from last_error

    async def _iter_openai(self, provider_stream: Any) -> AsyncIterator[StreamEvent]:
        calls: dict[int, dict] = {}
        emitted = False

        async for chunk in provider_stream:
            choices = getattr(chunk, "choices", None) or []
            if not choices:
                continue
            choice = choices[0]
            delta = getattr(choice, "delta", None)

            text = getattr(delta, "content", None) if delta else None
            if text:
                yield StreamEvent(text=text)

            for tool_call in (getattr(delta, "tool_calls", None) or []) if delta else []:
                index = getattr(tool_call, "index", None)
                if not isinstance(index, int):
                    index = len(calls)
                entry = calls.setdefault(index, {"id": None, "name": None, "arguments": ""})
                if getattr(tool_call, "id", None):
                    entry["id"] = tool_call.id
                function = getattr(tool_call, "function", None)
                if function is not None:
                    if getattr(function, "name", None):
                        entry["name"] = function.name
                    if getattr(function, "arguments", None):
                        entry["arguments"] += function.arguments

            if getattr(choice, "finish_reason", None) and calls and not emitted:
                emitted = True
                yield StreamEvent(tool_calls=[calls[i] for i in sorted(calls)])

        if calls and not emitted:
            yield StreamEvent(tool_calls=[calls[i] for i in sorted(calls)])

    async def _iter_anthropic(self, provider_stream: Any) -> AsyncIterator[StreamEvent]:
        calls: dict[int, dict] = {}
        emitted = False

        async for event in provider_stream:
            event_type = getattr(event, "type", "")

            if event_type == "content_block_start":
                block = event.content_block
                if getattr(block, "type", "") == "tool_use":
                    calls[event.index] = {"id": block.id, "name": block.name, "arguments": ""}

            elif event_type == "content_block_delta":
                delta = event.delta
                delta_type = getattr(delta, "type", "")
                if delta_type == "text_delta" and delta.text:
                    yield StreamEvent(text=delta.text)
                elif delta_type == "input_json_delta" and event.index in calls:
                    calls[event.index]["arguments"] += delta.partial_json or ""

            elif event_type == "message_delta":
                stop_reason = getattr(event.delta, "stop_reason", None)
                if stop_reason == "tool_use" and calls and not emitted:
                    emitted = True
                    yield StreamEvent(tool_calls=[calls[i] for i in sorted(calls)])

        if calls and not emitted:
            yield StreamEvent(tool_calls=[calls[i] for i in sorted(calls)])

    # -------------------------------------------------------------------------
    # Providers (one-shot)
    # -------------------------------------------------------------------------

    def _sanitize_prompt(self, prompt: CacheablePrompt) -> CacheablePrompt:
        """Enforce size limits and sanitize prompt content."""
        return CacheablePrompt(
            system=sanitize_for_prompt(
                prompt.system, max_length=self._max_prompt_length // 3
            ),
            user_message=sanitize_for_prompt(
                prompt.user_message, max_length=self._max_prompt_length // 3
            ),
        )

    async def _call_provider(
        self,
        prompt: CacheablePrompt,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Dispatch to provider-specific implementation."""
        if self._provider == "anthropic":
            return await self._call_anthropic(prompt, temperature, max_tokens)
        elif self._provider == "openai":
            return await self._call_openai(prompt, temperature, max_tokens)
        else:
            raise ValueError(f"Unsupported provider: {self._provider}")

    async def _call_anthropic(
        self, prompt: CacheablePrompt, temperature: float, max_tokens: int
    ) -> LLMResponse:
        """Anthropic Claude with explicit prompt caching (cache_control)."""
        system_blocks = []
        if prompt.system:
            system_blocks.append({
                "type": "text",
                "text": prompt.system,
                "cache_control": {"type": "ephemeral"},
            })

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt.user_message}],
        }
        if system_blocks:
            kwargs["system"] = system_blocks

        response = await self._client.messages.create(**kwargs)

        usage_data = response.usage
        cached = getattr(usage_data, "cache_read_input_tokens", 0) or 0
        input_tok = getattr(usage_data, "input_tokens", 0)
        output_tok = getattr(usage_data, "output_tokens", 0)

        cost = (
            (input_tok - cached) * ANTHROPIC_COST_PER_1K_INPUT / 1000
            + cached * ANTHROPIC_COST_PER_1K_CACHED / 1000
            + output_tok * ANTHROPIC_COST_PER_1K_OUTPUT / 1000
        )

        text = "".join(
            getattr(block, "text", "") for block in response.content
            if getattr(block, "type", "") == "text"
        )
        return LLMResponse(
            content=text,
            usage=TokenUsage(
                input_tokens=input_tok,
                output_tokens=output_tok,
                cached_input_tokens=cached,
                estimated_cost_usd=round(cost, 6),
                cache_hit=cached > 0,
            ),
            model=self._model,
            provider="anthropic",
            cached=cached > 0,
        )

    async def _call_openai(
        self, prompt: CacheablePrompt, temperature: float, max_tokens: int
    ) -> LLMResponse:
        """OpenAI with automatic prefix caching."""
        messages = []
        if prompt.system:
            messages.append({"role": "system", "content": prompt.system})
        messages.append({"role": "user", "content": prompt.user_message})

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        usage_data = response.usage
        input_tok = usage_data.prompt_tokens if usage_data else 0
        output_tok = usage_data.completion_tokens if usage_data else 0
        cached = getattr(usage_data, "prompt_tokens_details", None)
        cached_tok = (getattr(cached, "cached_tokens", 0) or 0) if cached else 0

        cost = (
            (input_tok - cached_tok) * OPENAI_COST_PER_1K_INPUT / 1000
            + cached_tok * OPENAI_COST_PER_1K_CACHED / 1000
            + output_tok * OPENAI_COST_PER_1K_OUTPUT / 1000
        )

        return LLMResponse(
            content=response.choices[0].message.content or "",
            usage=TokenUsage(
                input_tokens=input_tok,
                output_tokens=output_tok,
                cached_input_tokens=cached_tok,
                estimated_cost_usd=round(cost, 6),
                cache_hit=cached_tok > 0,
            ),
            model=self._model,
            provider="openai",
            cached=cached_tok > 0,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_client(self) -> None:
        if self._client is None:
            raise LLMError(
                f"{self._provider} client not initialized -- check API key and dependencies"
            )

    async def _backoff(self, error: Exception, attempt: int) -> bool:
        """Sleep before the next attempt. Returns False when not worth retrying."""
        if not self._is_retryable(error) or attempt >= self._max_retries:
            return False
        delay = min(RETRY_BASE_DELAY * (2**attempt), RETRY_MAX_DELAY)
        logger.warning(
            f"[LLM] Retryable error (attempt {attempt + 1}): "
            f"{type(error).__name__}. Retrying in {delay:.1f}s"
        )
        await asyncio.sleep(delay)
        return True

    def _is_retryable(self, error: Exception) -> bool:
        """Check if an error is transient and worth retrying."""
        error_type = type(error).__name__
        retryable_types = {
            "RateLimitError",
            "APITimeoutError",
            "InternalServerError",
            "ServiceUnavailableError",
            "APIConnectionError",
            "Timeout",
            "ConnectError",
        }
        return error_type in retryable_types

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model


# =============================================================================
# WIRE TRANSLATION
# =============================================================================


def _to_openai_message(message: dict) -> dict:
    converted = {"role": message.get("role", "user"), "content": message.get("content")}
    if converted["role"] != "assistant" and converted["content"] is None:
        converted["content"] = ""
    if message.get("name") and converted["role"] in ("user", "assistant"):
        converted["name"] = message["name"]
    if message.get("tool_calls"):
        converted["tool_calls"] = message["tool_calls"]
    if message.get("tool_call_id"):
        converted["tool_call_id"] = message["tool_call_id"]
    return converted


def _parse_arguments(arguments: Any) -> dict:
    if isinstance(arguments, dict):
        return arguments
    try:
        parsed = json.loads(arguments or "{}")
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _append_blocks(result: list[dict], role: str, blocks: list[dict]) -> None:
    """Anthropic requires alternating roles -- merge consecutive turns."""
    if result and result[-1]["role"] == role:
        result[-1]["content"].extend(blocks)
    else:
        result.append({"role": role, "content": list(blocks)})


def _to_anthropic_messages(messages: list[dict]) -> list[dict]:
    result: list[dict] = []
    for message in messages:
        role = message.get("role")
        content = message.get("content") or ""

        if role == "system":
            continue
        if role == "tool":
            _append_blocks(result, "user", [{
                "type": "tool_result",
                "tool_use_id": message.get("tool_call_id") or "",
                "content": content,
            }])
        elif role == "assistant":
            blocks: list[dict] = []
            if content.strip():
                blocks.append({"type": "text", "text": content})
            for call in message.get("tool_calls") or []:
                function = call.get("function") or {}
                blocks.append({
                    "type": "tool_use",
                    "id": call.get("id"),
                    "name": function.get("name"),
                    "input": _parse_arguments(function.get("arguments")),
                })
            if blocks:
                _append_blocks(result, "assistant", blocks)
        else:
            _append_blocks(result, "user", [{"type": "text", "text": content or "(empty)"}])

    if not result or result[0]["role"] != "user":
        result.insert(0, {"role": "user", "content": [{"type": "text", "text": "(conversation start)"}]})
    return result


def _to_anthropic_tools(tools: list[dict]) -> list[dict]:
    converted = []
    for tool in tools:
        function = tool.get("function") or {}
        if tool.get("type", "function") != "function" or not function.get("name"):
            continue
        converted.append({
            "name": function["name"],
            "description": function.get("description") or "",
            "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
        })
    return converted


# =============================================================================
# FACTORY
# =============================================================================


def create_client(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    **kwargs,
) -> LLMClient:
    """
    Create an LLM client, auto-detecting provider from environment if not specified.

    Detection order:
      1. Explicit provider argument
      2. OPENAI_API_KEY set -> openai
      3. ANTHROPIC_API_KEY set -> anthropic
      4. Default: openai
    """
    if provider is None:
        if os.environ.get("OPENAI_API_KEY"):
            provider = "openai"
        elif os.environ.get("ANTHROPIC_API_KEY"):
            provider = "anthropic"
        else:
            provider = "openai"
            logger.warning("[LLM] No API key found. Defaulting to openai.")

    return LLMClient(provider=provider, model=model, api_key=api_key, **kwargs)

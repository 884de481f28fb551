"""
LLM Client -- Provider-agnostic wrapper with retries and streaming.

Supports Anthropic (Claude) and OpenAI (GPT).
Handles prompt caching, token tracking, retries, and security sanitization.

Usage:
    from .llm import create_client

    client = create_client()  # Auto-detects provider from env
    response = await client.call(prompt="Who speaks next?", role="manager")
    print(response.content)

    async for event in client.stream(system="You are a developer.", messages=history):
        print(event.text)
"""

from .client import (
    CacheablePrompt,
    LLMClient,
    LLMError,
    LLMResponse,
    StreamEvent,
    TokenUsage,
    create_client,
)
from .json_parser import extract_json

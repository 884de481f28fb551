"""
Gateway configuration -- loaded once from the environment at startup.

Configuration via environment:
  LLM_PROVIDER=openai            (openai | anthropic; default: auto-detect from API keys)
  AGENT_MODEL=gpt-4o-mini        (model behind every panel agent)
  MANAGER_MODEL=gpt-4o-mini      (model that picks the next speaker)
  PANEL_MODEL_ID=gpt-5-nano      (model id advertised on /v1/models)
  PANEL_MODEL_OWNER=openai
  MAX_ROUNDS=20                  (speaker decisions per request)
  STREAM_CHUNK_DELAY_MS=5        (pause between text chunks)
  STREAM_ARG_DELAY_MS=1          (pause between tool-argument chunks)
  CORS_ORIGINS=http://localhost:3000,...
  LOG_LEVEL=INFO
"""

import logging
import os
from dataclasses import asdict, dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "gpt-5-nano"
DEFAULT_MODEL_OWNER = "openai"
DEFAULT_MAX_ROUNDS = 20
DEFAULT_CHUNK_DELAY_MS = 5
DEFAULT_ARG_DELAY_MS = 1

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://localhost:8080",
]


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    """Integer from the environment; invalid values fall back to the default."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"[Config] {name}={raw!r} is not an integer, using {default}")
        return default
    if value < minimum:
        logger.warning(f"[Config] {name}={value} is below {minimum}, using {default}")
        return default
    return value


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "")
    if raw.strip():
        return [item.strip() for item in raw.split(",") if item.strip()]
    return list(default)


@dataclass
class GatewayConfig:
    """Effective settings for one gateway process."""

    llm_provider: str | None = None
    agent_model: str | None = None
    manager_model: str | None = None
    model_id: str = DEFAULT_MODEL_ID
    model_owner: str = DEFAULT_MODEL_OWNER
    max_rounds: int = DEFAULT_MAX_ROUNDS
    chunk_delay_ms: int = DEFAULT_CHUNK_DELAY_MS
    arg_delay_ms: int = DEFAULT_ARG_DELAY_MS
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    def to_dict(self) -> dict:
        return asdict(self)


def load_config() -> GatewayConfig:
    """Build a GatewayConfig from environment variables."""
    return GatewayConfig(
        llm_provider=_env_str("LLM_PROVIDER"),
        agent_model=_env_str("AGENT_MODEL"),
        manager_model=_env_str("MANAGER_MODEL"),
        model_id=_env_str("PANEL_MODEL_ID", DEFAULT_MODEL_ID),
        model_owner=_env_str("PANEL_MODEL_OWNER", DEFAULT_MODEL_OWNER),
        max_rounds=_env_int("MAX_ROUNDS", DEFAULT_MAX_ROUNDS, minimum=1),
        chunk_delay_ms=_env_int("STREAM_CHUNK_DELAY_MS", DEFAULT_CHUNK_DELAY_MS),
        arg_delay_ms=_env_int("STREAM_ARG_DELAY_MS", DEFAULT_ARG_DELAY_MS),
        cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
        log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
    )

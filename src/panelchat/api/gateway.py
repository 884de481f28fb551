"""
API Gateway -- FastAPI application factory.

Creates the FastAPI app with routes, middleware, exception handlers and the
panel wiring (store -> directory -> scheduler -> runner -> orchestrator).
This is the entrypoint for uvicorn:

    uvicorn panelchat.api.gateway:create_app --factory --host 0.0.0.0 --port 8000

or `panelchat serve`.

Security:
  - CORS restricted to configured origins (default: localhost only)
  - All external input validated at boundary
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..agents import DEFAULT_PROMPTS, MANAGER_PROMPT_KEY, AgentDirectory
from ..config import GatewayConfig, load_config
from ..llm import create_client as create_llm_client
from ..metrics import PanelMetrics
from ..orchestration import (
    DeliberationRunner,
    PanelOrchestrator,
    RunnerConfig,
    SpeakerScheduler,
)
from ..streaming import StreamConfig
from ..tasks import TaskStore
from .errors import register_exception_handlers
from .middleware import log_requests
from .routes import chat, health

logger = logging.getLogger(__name__)


def _create_llm(config: GatewayConfig, model: str | None, purpose: str) -> Any:
    try:
        return create_llm_client(provider=config.llm_provider, model=model)
    except Exception as e:
        logger.warning(f"[Gateway] {purpose} LLM client init failed (non-fatal): {e}")
        return None


def create_app(
    config: GatewayConfig | None = None,
    directory: AgentDirectory | None = None,
    manager_llm: Any = None,
    store: TaskStore | None = None,
    prompts: Mapping[str, str] = DEFAULT_PROMPTS,
    metrics: PanelMetrics | None = None,
) -> FastAPI:
    """
    Application factory -- creates and configures the FastAPI app.

    Args:
        config: Gateway settings (loaded from the environment if None).
        directory: Panel roster (one PanelAgent per built-in prompt if None).
        manager_llm: Client the scheduler asks for the next speaker.
        store: Task store (a fresh in-memory store if None).
        prompts: System prompt table; must contain the "manager" key.
        metrics: Prometheus collectors (a fresh registry if None).
    """
    if config is None:
        config = load_config()

    application = FastAPI(
        title="panelchat",
        description="OpenAI-compatible chat endpoint backed by a panel of agents",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    application.middleware("http")(log_requests)
    register_exception_handlers(application)

    if directory is None:
        agent_llm = _create_llm(config, config.agent_model, "Agent")
        directory = AgentDirectory.from_prompts(agent_llm, prompts=prompts)
    if manager_llm is None:
        manager_llm = _create_llm(config, config.manager_model, "Manager")
    if store is None:
        store = TaskStore()
    if metrics is None:
        metrics = PanelMetrics()
    if directory.count == 0:
        logger.warning("[Gateway] No panel agents configured")

    scheduler = SpeakerScheduler(manager_llm, directory, prompts.get(MANAGER_PROMPT_KEY, ""))
    runner = DeliberationRunner(
        scheduler, directory, RunnerConfig(max_rounds=config.max_rounds)
    )
    orchestrator = PanelOrchestrator(
        store,
        runner,
        StreamConfig(
            chunk_delay_ms=config.chunk_delay_ms,
            arg_delay_ms=config.arg_delay_ms,
        ),
        metrics=metrics,
    )

    application.state.config = config
    application.state.directory = directory
    application.state.store = store
    application.state.orchestrator = orchestrator
    application.state.metrics = metrics
    application.state.start_time = time.time()

    application.include_router(health.router, tags=["Health"])
    application.include_router(chat.router, prefix="/v1", tags=["Chat"])

    logger.info(
        f"[Gateway] API gateway initialized "
        f"({directory.count} agents, model id {config.model_id})"
    )
    return application

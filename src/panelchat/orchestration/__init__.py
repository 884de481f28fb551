"""
Multi-agent orchestration.

  - SpeakerScheduler: the manager LLM picks the next speaker (with fallbacks)
  - DeliberationRunner: one bounded pass of the panel for one request
  - PanelOrchestrator: resolve the task, run the pass, persist, stream

All share the AgentDirectory roster and the provider-agnostic LLM client.
"""
from .formatting import clean_agent_name, format_transcript
from .orchestrator import PanelOrchestrator
from .round_runner import (
    DeliberationRunner,
    RunnerConfig,
    TextResult,
    ToolCallResult,
)
from .scheduler import AwaitUser, Complete, Decision, Speak, SpeakerScheduler

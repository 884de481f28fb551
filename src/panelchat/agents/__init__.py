"""
Panel agents.

- prompts.py: built-in, read-only system prompt table and the default roster
- runtime.py: PanelAgent, an LLM-backed team member that streams replies
- directory.py: AgentDirectory, the ordered roster with name resolution
"""

from .directory import AgentDirectory, normalize_agent_name
from .prompts import DEFAULT_PROMPTS, DEFAULT_ROSTER, MANAGER_PROMPT_KEY
from .runtime import AgentProtocol, PanelAgent

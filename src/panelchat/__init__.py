"""
panelchat -- an OpenAI-compatible chat endpoint answered by a panel of agents.

A manager LLM picks the next speaker each round; the caller sees an ordinary
streaming chat completion (text or tool calls) with a task marker that ties
follow-up requests back to the same session.
"""

__version__ = "0.1.0"

"""
Pydantic request models -- the OpenAI chat-completions request contract.

Only the fields the panel uses are modelled. Anything else an OpenAI client
sends (temperature, top_p, max_tokens, tool_choice, user, ...) is accepted
and ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...config import DEFAULT_MODEL_ID
from ...tasks.models import Message


class ChatMessageIn(BaseModel):
    """One message of the conversation history, as sent by the client."""

    model_config = ConfigDict(extra="ignore")

    role: str = Field(..., description="system, user, assistant or tool")
    content: str | list[dict[str, Any]] | None = None
    name: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None

    def text(self) -> str | None:
        """Flatten content-part arrays to their text parts."""
        if isinstance(self.content, list):
            return "".join(
                part.get("text") or "" for part in self.content if part.get("type") == "text"
            )
        return self.content

    def to_message(self) -> Message:
        role = self.role.lower()
        return Message.from_wire({
            # Newer OpenAI clients send instructions as "developer".
            "role": "system" if role == "developer" else role,
            "content": self.text(),
            "name": self.name,
            "tool_calls": self.tool_calls or [],
            "tool_call_id": self.tool_call_id,
        })


class ChatCompletionRequest(BaseModel):
    """POST /v1/chat/completions body."""

    model_config = ConfigDict(extra="ignore")

    model: str = Field(DEFAULT_MODEL_ID, description="Echoed back on every chunk")
    messages: list[ChatMessageIn] = Field(default_factory=list)
    tools: list[dict[str, Any]] | None = Field(
        None, description="Function declarations the panel may call"
    )
    stream: bool = Field(False, description="Must be true -- only streaming is supported")

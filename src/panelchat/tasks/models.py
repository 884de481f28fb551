"""
Task and message model -- the shared types every layer passes around.

A Task is one multi-turn session with the panel. Its `messages` list is the
conversation as the CLIENT last sent it (the client resends full history on
every call), plus the assistant turn this service appended afterwards.

Wire shapes follow the OpenAI chat-completions format:
  Message.to_wire()   -> {"role", "content", "name"?, "tool_calls"?, "tool_call_id"?}
  ToolCall.to_wire()  -> {"id", "type": "function", "function": {"name", "arguments"}}

Invariant: pending_tool_calls is non-empty <=> state == AWAITING_TOOL_RESULT.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

TASK_ID_LENGTH = 8


# =============================================================================
# ENUMS
# =============================================================================


class TaskState(Enum):
    """Lifecycle of a panel session."""

    CREATED = "created"
    WORKING = "working"
    AWAITING_USER = "awaiting_user"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    COMPLETED = "completed"  # Terminal


# =============================================================================
# MESSAGES
# =============================================================================


def encode_arguments(arguments: Any) -> str:
    """Arguments always travel as a JSON string, never a nested object."""
    if isinstance(arguments, str):
        return arguments if arguments.strip() else "{}"
    return json.dumps(arguments or {}, separators=(",", ":"), default=str)


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex}"


@dataclass
class ToolCall:
    """A function call the client is asked to execute."""

    id: str
    name: str
    arguments: str = "{}"
    type: str = "function"

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_wire(cls, data: dict) -> "ToolCall":
        function = data.get("function") or {}
        return cls(
            id=data.get("id") or new_call_id(),
            name=function.get("name") or "unknown",
            arguments=encode_arguments(function.get("arguments")),
            type=data.get("type") or "function",
        )


@dataclass
class Message:
    """One conversation turn."""

    role: str  # "system", "user", "assistant", "tool"
    content: str | None = None
    name: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None

    def to_wire(self) -> dict:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            data["name"] = self.name
        if self.tool_calls:
            data["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_wire(cls, data: dict) -> "Message":
        return cls(
            role=str(data.get("role", "user")).lower(),
            content=data.get("content"),
            name=data.get("name"),
            tool_calls=[ToolCall.from_wire(tc) for tc in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id"),
        )


@dataclass
class PendingToolCall:
    """A tool call sent to the client whose result has not come back yet."""

    call_id: str
    function_name: str
    arguments: str

    @classmethod
    def from_tool_call(cls, call: ToolCall) -> "PendingToolCall":
        return cls(call_id=call.id, function_name=call.name, arguments=call.arguments)


# =============================================================================
# TASK
# =============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id() -> str:
    """Short URL-safe id. Opaque -- never derive numbers from it."""
    return uuid.uuid4().hex[:TASK_ID_LENGTH]


@dataclass
class Task:
    """One multi-turn panel session."""

    id: str = field(default_factory=new_task_id)
    state: TaskState = TaskState.CREATED
    messages: list[Message] = field(default_factory=list)
    pending_tool_calls: list[PendingToolCall] = field(default_factory=list)
    last_active_agent: str | None = None
    tools: list[dict] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_complete(self) -> bool:
        return self.state == TaskState.COMPLETED

    def await_tool_results(self, calls: list[ToolCall], agent: str) -> None:
        """Park the task until the client returns results for `calls`."""
        self.pending_tool_calls = [PendingToolCall.from_tool_call(c) for c in calls]
        self.last_active_agent = agent
        self.state = TaskState.AWAITING_TOOL_RESULT
        self.messages.append(Message(role="assistant", content=None, tool_calls=list(calls)))

    def clear_tool_state(self) -> None:
        self.pending_tool_calls = []
        self.last_active_agent = None

    def summary(self) -> dict:
        """Serializable view for logs and the CLI."""
        return {
            "id": self.id,
            "state": self.state.value,
            "messages": len(self.messages),
            "pending_tool_calls": [p.call_id for p in self.pending_tool_calls],
            "last_active_agent": self.last_active_agent,
            "tools": len(self.tools),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

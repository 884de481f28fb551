"""
Task model, storage, and request-to-task resolution.

A Task is one multi-turn session; the correlation marker embedded in
assistant output is how a stateless client finds its way back to it.
"""
from .correlation import append_marker, extract_task_id, task_marker
from .models import Message, PendingToolCall, Task, TaskState, ToolCall
from .resolver import TaskResolver
from .store import TaskNotFoundError, TaskStore

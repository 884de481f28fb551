"""
TaskResolver -- maps an inbound chat request onto a Task.

  No marker in the history  -> fresh session: new task, seeded with the
                               latest user message.
  Marker found              -> continuation: load the task, then REPLACE its
                               history with the inbound messages.

Chat clients resend the complete conversation on every call, so the
inbound list is the history.
"""

import logging

from ..security.prompt_guard import detect_injection_attempt
from .correlation import extract_task_id
from .models import Message, Task, TaskState
from .store import TaskStore

logger = logging.getLogger(__name__)


class TaskResolver:
    """
    Usage:
        resolver = TaskResolver(store)
        task = await resolver.resolve(messages, tools)
    """

    def __init__(self, store: TaskStore):
        self._store = store

    async def resolve(
        self,
        inbound_messages: list[Message],
        inbound_tools: list[dict] | None = None,
    ) -> Task:
        """
        Return the working copy of the task for this request.

        Raises:
            TaskNotFoundError: the history carries a marker for an unknown task.
        """
        self._scan_user_content(inbound_messages)

        task_id = extract_task_id(inbound_messages)
        if task_id is None:
            return await self._create(inbound_messages, inbound_tools)
        return await self._continue(task_id, inbound_messages, inbound_tools)

    async def _create(
        self, inbound_messages: list[Message], inbound_tools: list[dict] | None
    ) -> Task:
        task = await self._store.create()

        latest_user = next(
            (m for m in reversed(inbound_messages) if m.role == "user"), None
        )
        if latest_user is not None:
            task.messages.append(latest_user)
        task.tools = list(inbound_tools or [])
        task.state = TaskState.WORKING

        logger.info(
            f"[TaskResolver] New task {task.id} "
            f"({len(task.tools)} tools declared)"
        )
        return task

    async def _continue(
        self,
        task_id: str,
        inbound_messages: list[Message],
        inbound_tools: list[dict] | None,
    ) -> Task:
        task = await self._store.require(task_id)

        tool_results = [m for m in inbound_messages if m.role == "tool"]
        logger.info(
            f"[TaskResolver] Resuming task {task.id} in state {task.state.value} "
            f"(tool results: {len(tool_results)})"
        )

        # Authoritative replace -- see module docstring.
        task.messages = [m for m in inbound_messages if m.role != "system"]

        if tool_results and task.state == TaskState.AWAITING_TOOL_RESULT:
            self._check_tool_results(task, tool_results)
            # last_active_agent stays: the scheduler uses it as a hint.
            task.pending_tool_calls = []
        else:
            task.clear_tool_state()

        if inbound_tools:
            task.tools = list(inbound_tools)

        if task.state != TaskState.COMPLETED:
            task.state = TaskState.WORKING
        return task

    def _check_tool_results(self, task: Task, tool_results: list[Message]) -> None:
        pending_ids = {p.call_id for p in task.pending_tool_calls}
        for result in tool_results:
            if result.tool_call_id in pending_ids:
                logger.info(
                    f"[TaskResolver] Task {task.id}: tool result for {result.tool_call_id}"
                )
            else:
                logger.warning(
                    f"[TaskResolver] Task {task.id}: tool result "
                    f"{result.tool_call_id!r} matches no pending call"
                )

    def _scan_user_content(self, messages: list[Message]) -> None:
        for message in messages:
            if message.role == "user" and message.content:
                detect_injection_attempt(message.content)

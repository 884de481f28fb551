"""
PanelOrchestrator -- one chat-completion request, end to end.

  prepare(messages, tools)  -> Task
      Validate input and resolve the task. Raises (ValidationError,
      TaskNotFoundError) BEFORE any byte is streamed, so the HTTP layer can
      still answer with a proper error status.

  respond(task, model)      -> async iterator of chunk dicts
      Run one deliberation pass, record the outcome on the task, persist it
      once, then stream the chunks.

Outcome bookkeeping:
  ToolCallResult -> AWAITING_TOOL_RESULT, pending calls recorded, assistant
                    message with tool_calls appended
  TextResult     -> COMPLETED or AWAITING_USER, assistant message
                    "<body><!-- task:XXXXXXXX -->" appended (exactly what the
                    client reassembles from the stream)

If the client disconnects mid-round the generator is cancelled and nothing
is persisted; the stored task is untouched.

Task creation and completion are counted on the optional PanelMetrics.
"""

import logging
from collections.abc import AsyncIterator

from ..metrics import PanelMetrics
from ..security.validators import validate_in_choices, validate_length, validate_list_size
from ..streaming import StreamConfig, stream_text, stream_tool_calls
from ..tasks.correlation import append_marker, extract_task_id
from ..tasks.models import Message, Task, TaskState
from ..tasks.resolver import TaskResolver
from ..tasks.store import TaskStore
from .round_runner import DeliberationRunner, TextResult, ToolCallResult

logger = logging.getLogger(__name__)

MAX_MESSAGES = 1_000
MAX_MESSAGE_LENGTH = 200_000
VALID_ROLES = ["system", "user", "assistant", "tool"]


class PanelOrchestrator:
    """
    Usage:
        orchestrator = PanelOrchestrator(store, runner)
        task = await orchestrator.prepare(messages, tools)
        async for chunk in orchestrator.respond(task, model="gpt-5-nano"):
            ...
    """

    def __init__(
        self,
        store: TaskStore,
        runner: DeliberationRunner,
        stream_config: StreamConfig | None = None,
        metrics: PanelMetrics | None = None,
    ):
        self._store = store
        self._resolver = TaskResolver(store)
        self._runner = runner
        self._stream_config = stream_config or StreamConfig()
        self._metrics = metrics

    async def prepare(
        self, messages: list[Message], tools: list[dict] | None = None
    ) -> Task:
        validate_list_size(messages, "messages", min_items=1, max_items=MAX_MESSAGES)
        for message in messages:
            validate_in_choices(message.role, VALID_ROLES, "message role")
            if message.content:
                validate_length(message.content, "message content", max_length=MAX_MESSAGE_LENGTH)
        task = await self._resolver.resolve(messages, tools)
        if self._metrics is not None and extract_task_id(messages) is None:
            self._metrics.record_task_created()
        return task

    async def respond(self, task: Task, model: str) -> AsyncIterator[dict]:
        result = await self._runner.run(task)

        if isinstance(result, ToolCallResult):
            task.await_tool_results(result.calls, result.agent)
            await self._store.update(task)
            logger.info(
                f"[Orchestrator] Task {task.id} -> {task.state.value} "
                f"({len(result.calls)} tool call(s) from {result.agent})"
            )
            async for chunk in stream_tool_calls(result.calls, task.id, model, self._stream_config):
                yield chunk
            return

        newly_completed = result.complete and task.state != TaskState.COMPLETED
        self._record_text(task, result)
        await self._store.update(task)
        if newly_completed and self._metrics is not None:
            self._metrics.record_task_completed()
        logger.info(f"[Orchestrator] Task {task.id} -> {task.state.value}")
        logger.debug(f"[Orchestrator] {task.summary()}")
        async for chunk in stream_text(result.body, task.id, model, self._stream_config):
            yield chunk

    def _record_text(self, task: Task, result: TextResult) -> None:
        task.state = TaskState.COMPLETED if result.complete else TaskState.AWAITING_USER
        task.clear_tool_state()
        task.messages.append(
            Message(role="assistant", content=append_marker(result.body, task.id))
        )

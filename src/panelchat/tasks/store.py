"""
TaskStore -- in-memory keyed storage for panel sessions.

Every operation takes the store lock, and tasks go in and out as deep copies:
a request works on its own copy and nothing it changes is visible to other
requests until it calls update(). A cancelled stream therefore never leaves
a half-applied task behind.

Two concurrent requests against the SAME task id are not serialized -- the
last update() wins.

Tasks are never evicted here; retention belongs to whatever backs the store
in production.
"""

import asyncio
import copy
import logging
from datetime import datetime, timezone

from .models import Task, TaskState

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    """A correlation marker referenced a task this store has never seen."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskStore:
    """
    Concurrency-safe create/get/update for Task records.

    Usage:
        store = TaskStore()
        task = await store.create()
        task.state = TaskState.WORKING
        await store.update(task)
    """

    def __init__(self):
        self._tasks: dict[str, Task] = {}
        self._lock = asyncio.Lock()

    async def create(self) -> Task:
        """Create and register a new task in CREATED state."""
        async with self._lock:
            task = Task(state=TaskState.CREATED)
            while task.id in self._tasks:
                task = Task(state=TaskState.CREATED)
            self._tasks[task.id] = copy.deepcopy(task)
        logger.info(f"[TaskStore] Created task {task.id}")
        return task

    async def get(self, task_id: str) -> Task | None:
        async with self._lock:
            stored = self._tasks.get(task_id)
            return copy.deepcopy(stored) if stored else None

    async def require(self, task_id: str) -> Task:
        """Like get(), but a missing task is an error."""
        task = await self.get(task_id)
        if task is None:
            logger.warning(f"[TaskStore] Task {task_id} not found")
            raise TaskNotFoundError(task_id)
        return task

    async def update(self, task: Task) -> None:
        """Persist the task (checkpoint). Stamps updated_at."""
        task.updated_at = datetime.now(timezone.utc)
        async with self._lock:
            self._tasks[task.id] = copy.deepcopy(task)
        logger.debug(f"[TaskStore] Updated task {task.id} (state={task.state.value})")

    @property
    def count(self) -> int:
        return len(self._tasks)

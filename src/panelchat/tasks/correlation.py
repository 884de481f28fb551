"""
Correlation marker -- how a stateless chat client carries the task id.

Every assistant turn ends with an HTML comment:

    <!-- task:ab12cd34 -->

Markdown renderers hide it, but the client resends it with the rest of the
history, so the next request can be matched to its task.
"""

import re

from .models import Message

TASK_MARKER_PATTERN = re.compile(r"<!--\s*task:([a-zA-Z0-9]{8})\s*-->")


def task_marker(task_id: str) -> str:
    return f"<!-- task:{task_id} -->"


def append_marker(text: str, task_id: str) -> str:
    """Text exactly as the client will see it once streaming finishes."""
    return f"{text}{task_marker(task_id)}"


def extract_task_id(messages: list[Message]) -> str | None:
    """
    Find the task id, scanning messages newest-first.

    Within one message the last marker wins. Returns None for a fresh chat.
    """
    for message in reversed(messages):
        if not message.content:
            continue
        found = TASK_MARKER_PATTERN.findall(message.content)
        if found:
            # Last, not first: the marker this service appends always ends the text.
            return found[-1]
    return None

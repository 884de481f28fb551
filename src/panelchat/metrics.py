"""
Prometheus metrics for the gateway.

  chat_completions_total{model}        -- chat completion requests accepted
  chat_completion_duration_seconds     -- request start to end of stream
  panel_tasks_created_total            -- fresh sessions
  panel_tasks_completed_total          -- tasks the manager declared complete

Each PanelMetrics owns its CollectorRegistry, so several apps (tests) can
live in one process without duplicate-registration errors.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

DURATION_BUCKETS = (0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600)


class PanelMetrics:
    """
    Usage:
        metrics = PanelMetrics()
        metrics.record_chat_completion("gpt-5-nano")
        body = metrics.render()
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.chat_completions = Counter(
            "chat_completions_total",
            "Chat completion requests accepted",
            ["model"],
            registry=self.registry,
        )
        self.chat_completion_duration = Histogram(
            "chat_completion_duration_seconds",
            "Chat completion duration, request start to end of stream",
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )
        self.tasks_created = Counter(
            "panel_tasks_created_total",
            "Panel tasks created",
            registry=self.registry,
        )
        self.tasks_completed = Counter(
            "panel_tasks_completed_total",
            "Panel tasks completed",
            registry=self.registry,
        )

    def record_chat_completion(self, model: str) -> None:
        self.chat_completions.labels(model=model).inc()

    def observe_duration(self, seconds: float) -> None:
        self.chat_completion_duration.observe(seconds)

    def record_task_created(self) -> None:
        self.tasks_created.inc()

    def record_task_completed(self) -> None:
        self.tasks_completed.inc()

    def value(self, name: str, labels: dict | None = None) -> float:
        """Current sample value, 0.0 when the sample does not exist yet."""
        return self.registry.get_sample_value(name, labels or {}) or 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)

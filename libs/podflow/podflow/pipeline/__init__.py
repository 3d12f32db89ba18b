"""Workflow orchestration.

Keep imports lazy to avoid circular-import issues between `podflow.pipeline`
and `podflow.stages`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from podflow.pipeline.factory import WorkflowRuntime, create_runtime
    from podflow.pipeline.orchestrator import WorkflowOrchestrator, WorkflowResult
    from podflow.pipeline.retry import RetryService
    from podflow.pipeline.scheduler import FanOutResult, run_tasks

__all__ = [
    "FanOutResult",
    "RetryService",
    "WorkflowOrchestrator",
    "WorkflowResult",
    "WorkflowRuntime",
    "create_runtime",
    "run_tasks",
]


def __getattr__(name: str) -> Any:
    if name in {"WorkflowOrchestrator", "WorkflowResult"}:
        from podflow.pipeline import orchestrator

        return getattr(orchestrator, name)
    if name == "RetryService":
        from podflow.pipeline.retry import RetryService

        return RetryService
    if name in {"FanOutResult", "run_tasks"}:
        from podflow.pipeline import scheduler

        return getattr(scheduler, name)
    if name in {"WorkflowRuntime", "create_runtime"}:
        from podflow.pipeline import factory

        return getattr(factory, name)
    raise AttributeError(name)

"""Parallel fan-out of generation tasks with a settle-all policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from podflow.exceptions import PersistenceError
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.pipeline.steps import StepRunner, error_message
from podflow.stages.base import Artifact, GenerationTask

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    succeeded: dict[TaskName, Artifact] = field(default_factory=dict)
    failed: dict[TaskName, str] = field(default_factory=dict)


@dataclass
class _Slot:
    ok: bool
    value: Artifact | None = None
    error: str | None = None


def step_name(task: TaskName) -> str:
    return f"generate-{task.value}"


async def run_tasks(
    transcript: Transcript,
    task_names: Iterable[TaskName | str],
    tasks: Mapping[TaskName, GenerationTask],
    *,
    steps: StepRunner | None = None,
) -> FanOutResult:
    """Run every named task concurrently and wait for all of them.

    The result partitions `task_names` exactly: each name lands in either
    `succeeded` or `failed`. One task failing never cancels another.
    """
    names = list(dict.fromkeys(TaskName(n) for n in task_names))
    slots: list[_Slot | None] = [None] * len(names)

    async def _run_one(index: int, name: TaskName) -> None:
        task = tasks.get(name)
        if task is None:
            slots[index] = _Slot(ok=False, error=f"no generation task registered for {name.value}")
            return

        if steps is not None:
            outcome = await steps.run_settled(step_name(name), lambda: task.run(transcript))
            slots[index] = _Slot(ok=outcome.ok, value=outcome.value, error=outcome.error)
            return

        try:
            artifact = await task.run(transcript)
        except Exception as exc:
            logger.warning("generation failed (task=%s, error=%s)", name.value, exc)
            slots[index] = _Slot(ok=False, error=error_message(exc))
            return
        slots[index] = _Slot(ok=True, value=artifact)

    raw = await asyncio.gather(
        *(_run_one(i, name) for i, name in enumerate(names)), return_exceptions=True
    )

    result = FanOutResult()
    infra_error: PersistenceError | None = None
    for name, slot, exc in zip(names, slots, raw):
        if isinstance(exc, PersistenceError) and infra_error is None:
            infra_error = exc
        if slot is None:
            message = error_message(exc) if isinstance(exc, BaseException) else "task did not finish"
            slot = _Slot(ok=False, error=message)
        if slot.ok:
            result.succeeded[name] = slot.value  # type: ignore[assignment]
        else:
            result.failed[name] = str(slot.error or "unknown error")

    if infra_error is not None:
        raise infra_error

    logger.info(
        "fan-out settled (requested=%d, succeeded=%d, failed=%d)",
        len(names),
        len(result.succeeded),
        len(result.failed),
    )
    return result

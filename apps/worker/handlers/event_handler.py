"""Trigger event dispatch."""

from __future__ import annotations

import logging

from podflow.events import WorkflowRetryTask, WorkflowStart, decode_event
from podflow.exceptions import (
    ConfigurationError,
    GenerationError,
    NotEntitledError,
    NotFoundError,
    PodFlowError,
)
from podflow.pipeline.factory import WorkflowRuntime

logger = logging.getLogger("podflow.worker")


async def process_event(raw: str, runtime: WorkflowRuntime) -> None:
    """Decode one queued event and run it to completion.

    Domain failures are already recorded on the project by the time they
    reach here, so they are logged and the event is considered handled.
    """
    try:
        event = decode_event(raw)
    except ConfigurationError as exc:
        logger.error("dropping malformed event (error=%s, raw=%r)", exc, raw[:200])
        return

    if isinstance(event, WorkflowStart):
        try:
            result = await runtime.orchestrator.run_with_retries(event)
        except NotFoundError as exc:
            logger.warning("workflow skipped (project_id=%s, error=%s)", event.project_id, exc)
            return
        except PodFlowError:
            logger.exception(
                "workflow failed (project_id=%s, run_id=%s)", event.project_id, event.run_id
            )
            return
        logger.info(
            "workflow finished (project_id=%s, status=%s, failed=%s)",
            result.project_id,
            result.status.value,
            [n.value for n in result.failed],
        )
        return

    if isinstance(event, WorkflowRetryTask):
        try:
            await runtime.retry_service.retry_task(
                event.project_id, event.task_name, event.current_tier, event.original_tier
            )
        except (GenerationError, NotEntitledError, NotFoundError) as exc:
            logger.warning(
                "retry task not completed (project_id=%s, task=%s, error=%s)",
                event.project_id,
                event.task_name.value,
                exc,
            )
        except PodFlowError:
            logger.exception(
                "retry task failed (project_id=%s, task=%s)", event.project_id, event.task_name.value
            )

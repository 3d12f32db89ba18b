"""Retry / upgrade path: regenerate single artifacts from a stored transcript."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping

from podflow.config import Settings
from podflow.entitlements import (
    Tier,
    entitled_tasks,
    infer_original_tier,
    is_entitled,
    minimum_tier_for,
)
from podflow.events import new_run_id
from podflow.exceptions import (
    MissingTranscriptError,
    NotEntitledError,
    NotFoundError,
    NothingToGenerateError,
)
from podflow.models.project import Project, ProjectPatch, TaskName
from podflow.models.transcript import Transcript
from podflow.pipeline.scheduler import step_name
from podflow.pipeline.steps import StepRunner, error_message
from podflow.services.project_store import ProjectGateway
from podflow.stages.base import Artifact, GenerationTask

logger = logging.getLogger(__name__)

# (project_id, task_name, current_tier, original_tier)
RetryDispatch = Callable[[str, TaskName, Tier, Tier], Awaitable[None]]


class RetryService:
    """Re-runs generation tasks without repeating transcription.

    Writes go through the same batched patch primitive as the workflow: a
    success sets the artifact and clears its `jobErrors` entry in one patch,
    a failure sets the entry. Project status is never changed here.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: ProjectGateway,
        tasks: Mapping[TaskName, GenerationTask],
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.tasks = dict(tasks)

    async def _load(self, project_id: str) -> tuple[Project, Transcript]:
        project = await self.gateway.get_project(project_id)
        if project is None:
            raise NotFoundError(f"project not found: {project_id}")
        if project.transcript is None:
            raise MissingTranscriptError(
                f"project has no transcript yet (project_id={project_id}); "
                "transcription must complete before content can be generated"
            )
        return project, project.transcript

    async def retry_task(
        self,
        project_id: str,
        task_name: TaskName | str,
        current_tier: Tier | str,
        original_tier: Tier | str | None = None,
    ) -> Artifact:
        name = TaskName(task_name)
        tier = Tier(current_tier)
        project, transcript = await self._load(project_id)

        if not is_entitled(tier, name):
            raise NotEntitledError(name.value, tier.value, required_tier=minimum_tier_for(name).value)

        original = Tier(original_tier) if original_tier else infer_original_tier(project)
        if original != tier:
            logger.info(
                "plan changed since processing (project_id=%s, task=%s, original_tier=%s, current_tier=%s)",
                project_id,
                name.value,
                original.value,
                tier.value,
            )

        task = self.tasks.get(name)
        if task is None:
            raise NotFoundError(f"no generation task registered for {name.value}")

        steps = StepRunner(None, new_run_id(), self.settings.workflow, project_id=project_id)
        try:
            artifact = await steps.run(step_name(name), lambda: task.run(transcript))
        except Exception as exc:
            message = error_message(exc)
            await self.gateway.patch_project(
                project_id, ProjectPatch(set_job_errors={name.value: message})
            )
            logger.warning(
                "retry failed (project_id=%s, task=%s, error=%s)", project_id, name.value, message
            )
            raise

        await self.gateway.patch_project(
            project_id,
            ProjectPatch(artifacts={name.value: artifact}, clear_job_errors=[name.value]),
        )
        logger.info("retry done (project_id=%s, task=%s)", project_id, name.value)
        return artifact

    async def generate_missing_for_tier(
        self,
        project_id: str,
        tier: Tier | str,
        *,
        dispatch: RetryDispatch | None = None,
    ) -> list[TaskName]:
        """Issue one independent retry per entitled task without an artifact.

        With no `dispatch`, retries run in-process and concurrently; their
        failures are already recorded in `jobErrors` and are only logged here.
        """
        current = Tier(tier)
        project, _ = await self._load(project_id)
        original = infer_original_tier(project)
        missing = [n for n in entitled_tasks(current) if not project.has_artifact(n)]
        if not missing:
            raise NothingToGenerateError(
                "No missing features to generate. All content for your plan already exists."
            )

        logger.info(
            "generating missing content (project_id=%s, tier=%s, tasks=%s)",
            project_id,
            current.value,
            [n.value for n in missing],
        )

        if dispatch is not None:
            await asyncio.gather(*(dispatch(project_id, n, current, original) for n in missing))
            return missing

        results = await asyncio.gather(
            *(self.retry_task(project_id, n, current, original) for n in missing),
            return_exceptions=True,
        )
        for name, res in zip(missing, results):
            if isinstance(res, Exception):
                logger.warning(
                    "missing content failed (project_id=%s, task=%s, error=%s)",
                    project_id,
                    name.value,
                    res,
                )
        return missing

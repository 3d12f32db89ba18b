"""Workflow orchestrator: transcription, fan-out, persistence."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from podflow.config import Settings
from podflow.entitlements import entitled_tasks
from podflow.events import WorkflowStart
from podflow.exceptions import NotFoundError, PersistenceError
from podflow.models.project import (
    PhaseStatus,
    Project,
    ProjectError,
    ProjectPatch,
    ProjectStatus,
    TaskName,
)
from podflow.models.transcript import Transcript
from podflow.pipeline.scheduler import FanOutResult, run_tasks
from podflow.pipeline.steps import StepJournal, StepRunner, error_message
from podflow.services.project_store import ProjectGateway
from podflow.stages.base import GenerationTask
from podflow.stages.transcription import TranscriptionStage

logger = logging.getLogger(__name__)

ProjectUpdateHook = Callable[[Project], Awaitable[None]]

WORKFLOW_STEP = "workflow"


@dataclass
class WorkflowResult:
    project_id: str
    run_id: str
    status: ProjectStatus
    succeeded: list[TaskName] = field(default_factory=list)
    failed: dict[TaskName, str] = field(default_factory=dict)
    error: str | None = None


class WorkflowOrchestrator:
    """Runs one project through transcription and entitled generation tasks.

    Every project write is a named step, so a replay of the same run id
    resumes after the last completed step. Generation failures are recorded
    per task and never fail the project; transcription failure always does.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: ProjectGateway,
        transcription: TranscriptionStage,
        tasks: Mapping[TaskName, GenerationTask],
        journal: StepJournal,
        *,
        on_project_update: ProjectUpdateHook | None = None,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.transcription = transcription
        self.tasks = dict(tasks)
        self.journal = journal
        self._on_project_update = on_project_update

    async def _notify_update(self, project: Project) -> None:
        if self._on_project_update is not None:
            await self._on_project_update(project)

    def _steps(self, event: WorkflowStart) -> StepRunner:
        return StepRunner(
            self.journal, event.run_id, self.settings.workflow, project_id=event.project_id
        )

    async def _patch(self, steps: StepRunner, name: str, project_id: str, patch: ProjectPatch) -> None:
        project = await steps.run(
            name,
            lambda: self.gateway.patch_project(project_id, patch),
            encode=lambda _p: None,
            decode=lambda _v: None,
        )
        if project is not None:
            await self._notify_update(project)

    async def run(self, event: WorkflowStart) -> WorkflowResult:
        """Execute (or resume) one workflow run."""
        project_id = event.project_id
        project = await self.gateway.get_project(project_id)
        if project is None:
            raise NotFoundError(f"project not found: {project_id}")

        steps = self._steps(event)
        logger.info(
            "workflow start (project_id=%s, run_id=%s, tier=%s)",
            project_id,
            event.run_id,
            event.tier.value,
        )

        await self._patch(
            steps,
            "mark-processing",
            project_id,
            ProjectPatch(
                status=ProjectStatus.PROCESSING,
                transcription=PhaseStatus.RUNNING,
                clear_error=True,
            ),
        )

        try:
            transcript = await steps.run(
                "transcribe-audio",
                lambda: self.transcription.transcribe(project_id, event.audio_ref),
                encode=Transcript.to_dict,
                decode=Transcript.from_dict,
            )
        except PersistenceError:
            raise
        except Exception as exc:
            logger.warning(
                "transcription step failed (project_id=%s, run_id=%s, error=%s)",
                project_id,
                event.run_id,
                exc,
            )
            await self.transcription.record_failure(project_id, exc)
            failed = await self.gateway.get_project(project_id)
            if failed is not None:
                await self._notify_update(failed)
            return WorkflowResult(
                project_id=project_id,
                run_id=event.run_id,
                status=ProjectStatus.FAILED,
                error=error_message(exc),
            )

        await self._patch(
            steps,
            "mark-transcription-completed",
            project_id,
            ProjectPatch(
                transcription=PhaseStatus.COMPLETED,
                content_generation=PhaseStatus.RUNNING,
            ),
        )

        names = entitled_tasks(event.tier)
        fan_out: FanOutResult = await run_tasks(transcript, names, self.tasks, steps=steps)

        if fan_out.succeeded:
            await self._patch(
                steps,
                "save-generated-content",
                project_id,
                ProjectPatch(
                    artifacts={name.value: artifact for name, artifact in fan_out.succeeded.items()},
                    clear_job_errors=[name.value for name in fan_out.succeeded],
                ),
            )
        if fan_out.failed:
            await self._patch(
                steps,
                "save-job-errors",
                project_id,
                ProjectPatch(
                    set_job_errors={name.value: message for name, message in fan_out.failed.items()}
                ),
            )

        await self._patch(
            steps,
            "mark-generation-completed",
            project_id,
            ProjectPatch(content_generation=PhaseStatus.COMPLETED),
        )
        await self._patch(
            steps, "mark-completed", project_id, ProjectPatch(status=ProjectStatus.COMPLETED)
        )

        logger.info(
            "workflow done (project_id=%s, run_id=%s, succeeded=%s, failed=%s)",
            project_id,
            event.run_id,
            [n.value for n in fan_out.succeeded],
            [n.value for n in fan_out.failed],
        )
        return WorkflowResult(
            project_id=project_id,
            run_id=event.run_id,
            status=ProjectStatus.COMPLETED,
            succeeded=list(fan_out.succeeded),
            failed=dict(fan_out.failed),
        )

    def _log_workflow_retry(self, event: WorkflowStart) -> Callable[[RetryCallState], None]:
        def _log(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            wait_s = state.next_action.sleep if state.next_action else None
            logger.warning(
                "workflow retrying (project_id=%s, run_id=%s, attempt=%s, wait_s=%s, error=%s)",
                event.project_id,
                event.run_id,
                state.attempt_number,
                wait_s,
                exc,
            )

        return _log

    async def run_with_retries(self, event: WorkflowStart) -> WorkflowResult:
        """Run with whole-workflow retries on infrastructure faults.

        Each attempt reuses the run id, so completed steps are replayed from
        the journal. When attempts are exhausted the project is marked failed
        at the `workflow` step and the error is re-raised.
        """
        cfg = self.settings.workflow
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(PersistenceError),
            stop=stop_after_attempt(int(cfg.workflow_max_attempts)),
            wait=wait_exponential(min=float(cfg.backoff_min_s), max=float(cfg.backoff_max_s)),
            before_sleep=self._log_workflow_retry(event),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self.run(event)
        except NotFoundError:
            raise
        except Exception as exc:
            logger.exception(
                "workflow failed (project_id=%s, run_id=%s)", event.project_id, event.run_id
            )
            await self._record_workflow_failure(event.project_id, exc)
            raise
        raise AssertionError("unreachable")  # pragma: no cover

    async def _record_workflow_failure(self, project_id: str, exc: BaseException) -> None:
        patch = ProjectPatch(
            status=ProjectStatus.FAILED,
            error=ProjectError(
                message=error_message(exc),
                step=WORKFLOW_STEP,
                details={"type": type(exc).__name__},
            ),
        )
        try:
            project = await self.gateway.patch_project(project_id, patch)
        except Exception:
            logger.exception("failed to record workflow failure (project_id=%s)", project_id)
            return
        await self._notify_update(project)

"""Wiring for the workflow runtime."""

from __future__ import annotations

from dataclasses import dataclass

from redis.asyncio import Redis

from podflow.config import Settings
from podflow.pipeline.orchestrator import ProjectUpdateHook, WorkflowOrchestrator
from podflow.pipeline.retry import RetryService
from podflow.pipeline.steps import RedisStepJournal
from podflow.providers import get_llm_provider, get_transcription_provider
from podflow.providers.llm.base import LLMProvider
from podflow.services.project_store import RedisProjectStore
from podflow.stages import TranscriptionStage, create_tasks

_DAY_S = 24 * 3600


@dataclass
class WorkflowRuntime:
    gateway: RedisProjectStore
    orchestrator: WorkflowOrchestrator
    retry_service: RetryService
    transcription: TranscriptionStage
    llm: LLMProvider

    async def close(self) -> None:
        await self.transcription.close()
        await self.llm.close()


def create_runtime(
    settings: Settings,
    redis: Redis,
    *,
    on_project_update: ProjectUpdateHook | None = None,
) -> WorkflowRuntime:
    """Build orchestrator and retry service over Redis and configured providers."""
    gateway = RedisProjectStore(redis)
    journal = RedisStepJournal(redis, ttl_seconds=int(settings.workflow.journal_ttl_days) * _DAY_S)
    transcription = TranscriptionStage(
        get_transcription_provider(settings.transcription_config()), gateway
    )
    llm = get_llm_provider(settings.llm_config())
    tasks = create_tasks(settings, llm)
    orchestrator = WorkflowOrchestrator(
        settings,
        gateway,
        transcription,
        tasks,
        journal,
        on_project_update=on_project_update,
    )
    return WorkflowRuntime(
        gateway=gateway,
        orchestrator=orchestrator,
        retry_service=RetryService(settings, gateway, tasks),
        transcription=transcription,
        llm=llm,
    )

"""Project operations behind the HTTP boundary: limits, persistence, events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from redis.asyncio import Redis

from podflow.config import Settings
from podflow.entitlements import (
    PLAN_LIMITS,
    RedisEntitlementSource,
    Tier,
    UploadCheck,
    check_upload_limits,
    infer_original_tier,
    resolve_tier,
)
from podflow.events import EventPublisher, WorkflowRetryTask, WorkflowStart
from podflow.models.project import FileMetadata, Project, ProjectPatch, TaskName
from podflow.pipeline.retry import RetryService
from podflow.services.project_store import RedisProjectStore

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, redis: Redis, settings: Settings):
        self.redis = redis
        self.settings = settings
        self.store = RedisProjectStore(redis)
        self.publisher = EventPublisher(redis)

    async def tier_for(self, user_id: str) -> Tier:
        return await resolve_tier(RedisEntitlementSource(self.redis, user_id))

    async def check_upload(self, user_id: str, tier: Tier, file: FileMetadata) -> UploadCheck:
        limits = PLAN_LIMITS[tier]
        count = await self.store.count_user_projects(user_id, include_deleted=limits.count_deleted)
        return check_upload_limits(
            tier, file_size=file.file_size, duration_s=file.duration_s, project_count=count
        )

    async def create_project(
        self,
        *,
        user_id: str,
        tier: Tier,
        input_url: str,
        file: FileMetadata,
        display_name: str | None = None,
    ) -> Project:
        project = Project(
            id=f"proj_{uuid4().hex}",
            user_id=user_id,
            input_url=input_url,
            file=file,
            display_name=display_name or file.file_name,
        )
        await self.store.create_project(project)
        await self.publisher.publish(
            WorkflowStart(project_id=project.id, audio_ref=input_url, tier=tier)
        )
        logger.info("workflow queued (project_id=%s, tier=%s)", project.id, tier.value)
        return project

    async def get_project(self, project_id: str, *, user_id: str) -> Project | None:
        project = await self.store.get_project(project_id)
        if project is None or project.user_id != user_id:
            return None
        return project

    async def soft_delete(self, project: Project) -> Project:
        return await self.store.patch_project(
            project.id, ProjectPatch(deleted_at=datetime.now(tz=timezone.utc))
        )

    async def enqueue_retry(self, project: Project, task: TaskName, tier: Tier) -> None:
        await self.publisher.publish(
            WorkflowRetryTask(
                project_id=project.id,
                task_name=task,
                current_tier=tier,
                original_tier=infer_original_tier(project),
            )
        )

    async def generate_missing(self, project_id: str, tier: Tier) -> list[TaskName]:
        async def _dispatch(pid: str, task: TaskName, current: Tier, original: Tier) -> None:
            await self.publisher.publish(
                WorkflowRetryTask(
                    project_id=pid, task_name=task, current_tier=current, original_tier=original
                )
            )

        # Dispatch-only: generation happens in the worker.
        retry = RetryService(self.settings, self.store, tasks={})
        return await retry.generate_missing_for_tier(project_id, tier, dispatch=_dispatch)

"""Project persistence (gateway) backed by Redis."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from podflow.exceptions import NotFoundError, PersistenceError
from podflow.models.project import Project, ProjectPatch

logger = logging.getLogger(__name__)

_MAX_PATCH_ATTEMPTS = 16


class ProjectGateway(ABC):
    """The only write path for project documents.

    `patch_project` applies every field of one patch in a single transaction;
    readers never observe a half-applied patch.
    """

    @abstractmethod
    async def create_project(self, project: Project) -> Project: ...

    @abstractmethod
    async def get_project(self, project_id: str) -> Project | None: ...

    @abstractmethod
    async def patch_project(self, project_id: str, patch: ProjectPatch) -> Project: ...

    @abstractmethod
    async def count_user_projects(self, user_id: str, *, include_deleted: bool) -> int: ...


class RedisProjectStore(ProjectGateway):
    """Project documents never expire; deletion is soft (`deleted_at`)."""

    def __init__(self, redis_client: Redis) -> None:
        self._redis = redis_client

    @staticmethod
    def key(project_id: str) -> str:
        return f"podflow:project:{project_id}"

    @staticmethod
    def user_key(user_id: str) -> str:
        return f"podflow:user:{user_id}:projects"

    def _dump(self, project: Project) -> str:
        return json.dumps(project.to_dict(), ensure_ascii=False)

    async def create_project(self, project: Project) -> Project:
        project.touch()
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self.key(project.id), self._dump(project))
                pipe.sadd(self.user_key(project.user_id), project.id)
                await pipe.execute()
        except RedisError as exc:
            raise PersistenceError(f"create project failed (project_id={project.id}): {exc}") from exc
        logger.info("project created (project_id=%s, user_id=%s)", project.id, project.user_id)
        return project

    async def get_project(self, project_id: str) -> Project | None:
        try:
            raw = await self._redis.get(self.key(project_id))
        except RedisError as exc:
            raise PersistenceError(f"get project failed (project_id={project_id}): {exc}") from exc
        if not raw:
            return None
        return Project.from_dict(json.loads(raw))

    async def patch_project(self, project_id: str, patch: ProjectPatch) -> Project:
        key = self.key(project_id)
        try:
            for _ in range(_MAX_PATCH_ATTEMPTS):
                async with self._redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if not raw:
                        await pipe.unwatch()
                        raise NotFoundError(f"project not found: {project_id}")
                    updated = patch.apply(Project.from_dict(json.loads(raw)))
                    pipe.multi()
                    pipe.set(key, self._dump(updated))
                    try:
                        await pipe.execute()
                    except WatchError:
                        logger.debug("project patch conflict, retrying (project_id=%s)", project_id)
                        continue
                    return updated
        except RedisError as exc:
            raise PersistenceError(f"patch project failed (project_id={project_id}): {exc}") from exc
        raise PersistenceError(
            f"patch project failed (project_id={project_id}): too many concurrent writers"
        )

    async def count_user_projects(self, user_id: str, *, include_deleted: bool) -> int:
        try:
            ids = await self._redis.smembers(self.user_key(user_id))
            if include_deleted:
                return len(ids)
            count = 0
            for project_id in ids:
                project = await self.get_project(str(project_id))
                if project is not None and project.deleted_at is None:
                    count += 1
            return count
        except RedisError as exc:
            raise PersistenceError(f"count projects failed (user_id={user_id}): {exc}") from exc

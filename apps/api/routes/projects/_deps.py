from __future__ import annotations

from fastapi import Header, HTTPException, Request
from redis.asyncio import Redis

from services.project_service import ProjectService
from podflow.config import Settings
from podflow.models.project import Project

from .schemas import ProjectResponse


def service(request: Request) -> ProjectService:
    redis: Redis | None = getattr(request.app.state, "redis", None)
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if redis is None or settings is None:
        raise HTTPException(status_code=500, detail="app state not initialized")
    return ProjectService(redis=redis, settings=settings)


def current_user(x_user_id: str = Header(default="")) -> str:
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="missing X-User-Id header")
    return user_id


async def load_project(svc: ProjectService, project_id: str, user_id: str) -> Project:
    project = await svc.get_project(project_id, user_id=user_id)
    if project is None:
        raise HTTPException(status_code=404, detail="project not found")
    return project


def to_response(project: Project, *, show_speakers: bool) -> ProjectResponse:
    transcript = project.transcript.to_dict() if project.transcript is not None else None
    if transcript is not None and not show_speakers:
        transcript["speakers"] = []
    job_status = project.job_status
    return ProjectResponse(
        id=project.id,
        user_id=project.user_id,
        input_url=project.input_url,
        display_name=project.display_name,
        file=project.file.to_dict(),
        status=project.status.value,
        job_status={
            "transcription": job_status.transcription.value,
            "contentGeneration": job_status.content_generation.value,
        },
        error=project.error.to_dict() if project.error is not None else None,
        job_errors=dict(project.job_errors),
        transcript=transcript,
        artifacts=dict(project.artifacts or {}),
        created_at=project.created_at,
        updated_at=project.updated_at,
        completed_at=project.completed_at,
        deleted_at=project.deleted_at,
    )

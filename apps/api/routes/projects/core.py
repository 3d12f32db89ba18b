from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from podflow.entitlements import can_view_speakers
from podflow.models.project import FileMetadata

from ._deps import current_user, load_project, service, to_response
from .schemas import CreateProjectRequest, ProjectResponse

router = APIRouter()


@router.post("", response_model=ProjectResponse)
async def create_project(
    request: Request, payload: CreateProjectRequest, user_id: str = Depends(current_user)
) -> ProjectResponse:
    svc = service(request)
    tier = await svc.tier_for(user_id)
    file = FileMetadata(
        file_name=payload.file_name,
        file_size=payload.file_size,
        file_format=payload.file_format,
        mime_type=payload.mime_type,
        duration_s=payload.duration_s,
    )
    check = await svc.check_upload(user_id, tier, file)
    if not check.allowed:
        raise HTTPException(
            status_code=403, detail={"reason": check.reason, "message": check.message}
        )
    project = await svc.create_project(
        user_id=user_id,
        tier=tier,
        input_url=payload.input_url,
        file=file,
        display_name=payload.display_name,
    )
    return to_response(project, show_speakers=can_view_speakers(tier))


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    request: Request, project_id: str, user_id: str = Depends(current_user)
) -> ProjectResponse:
    svc = service(request)
    project = await load_project(svc, project_id, user_id)
    tier = await svc.tier_for(user_id)
    return to_response(project, show_speakers=can_view_speakers(tier))


@router.delete("/{project_id}")
async def delete_project(
    request: Request, project_id: str, user_id: str = Depends(current_user)
) -> dict:
    svc = service(request)
    project = await load_project(svc, project_id, user_id)
    if project.deleted_at is None:
        await svc.soft_delete(project)
    return {"deleted": True, "project_id": project_id}

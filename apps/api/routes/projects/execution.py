from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from podflow.entitlements import is_entitled, minimum_tier_for
from podflow.exceptions import (
    MissingTranscriptError,
    NotEntitledError,
    NotFoundError,
    NothingToGenerateError,
)
from podflow.models.project import TaskName

from ._deps import current_user, load_project, service
from .schemas import GenerateMissingResponse, RetryQueuedResponse

router = APIRouter()


@router.post("/{project_id}/retry/{task_name}", response_model=RetryQueuedResponse)
async def retry_task(
    request: Request,
    project_id: str,
    task_name: TaskName,
    user_id: str = Depends(current_user),
) -> RetryQueuedResponse:
    svc = service(request)
    project = await load_project(svc, project_id, user_id)
    if project.transcript is None:
        raise HTTPException(status_code=409, detail="transcript not available yet")

    tier = await svc.tier_for(user_id)
    if not is_entitled(tier, task_name):
        err = NotEntitledError(
            task_name.value, tier.value, required_tier=minimum_tier_for(task_name).value
        )
        raise HTTPException(status_code=403, detail=str(err))

    await svc.enqueue_retry(project, task_name, tier)
    return RetryQueuedResponse(project_id=project_id, task_name=task_name.value)


@router.post("/{project_id}/generate-missing", response_model=GenerateMissingResponse)
async def generate_missing(
    request: Request, project_id: str, user_id: str = Depends(current_user)
) -> GenerateMissingResponse:
    svc = service(request)
    await load_project(svc, project_id, user_id)
    tier = await svc.tier_for(user_id)
    try:
        tasks = await svc.generate_missing(project_id, tier)
    except MissingTranscriptError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NothingToGenerateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return GenerateMissingResponse(project_id=project_id, tasks=[t.value for t in tasks])

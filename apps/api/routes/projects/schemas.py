from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateProjectRequest(_CamelModel):
    input_url: str
    file_name: str
    file_size: int = Field(ge=0)
    file_format: str
    mime_type: str = "application/octet-stream"
    duration_s: float | None = Field(default=None, ge=0)
    display_name: str | None = None


class ProjectResponse(_CamelModel):
    id: str
    user_id: str
    input_url: str
    display_name: str | None = None
    file: dict[str, Any]
    status: str
    job_status: dict[str, str]
    error: dict[str, Any] | None = None
    job_errors: dict[str, str] = Field(default_factory=dict)
    transcript: dict[str, Any] | None = None
    artifacts: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    deleted_at: datetime | None = None


class RetryQueuedResponse(_CamelModel):
    project_id: str
    task_name: str
    queued: bool = True


class GenerateMissingResponse(_CamelModel):
    project_id: str
    tasks: list[str]

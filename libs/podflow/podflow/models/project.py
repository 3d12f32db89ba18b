"""Project model (unit of work) and partial-update patches."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from podflow.models.transcript import Transcript


class ProjectStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PhaseStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskName(str, Enum):
    SUMMARY = "summary"
    SOCIAL_POSTS = "socialPosts"
    TITLES = "titles"
    HASHTAGS = "hashtags"
    KEY_MOMENTS = "keyMoments"
    YOUTUBE_TIMESTAMPS = "youtubeTimestamps"


TASK_ORDER: tuple[TaskName, ...] = (
    TaskName.SUMMARY,
    TaskName.SOCIAL_POSTS,
    TaskName.TITLES,
    TaskName.HASHTAGS,
    TaskName.KEY_MOMENTS,
    TaskName.YOUTUBE_TIMESTAMPS,
)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dt_to_iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


@dataclass
class FileMetadata:
    file_name: str
    file_size: int
    file_format: str
    mime_type: str = "application/octet-stream"
    duration_s: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_size": int(self.file_size),
            "file_format": self.file_format,
            "mime_type": self.mime_type,
            "duration_s": self.duration_s,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileMetadata":
        duration = data.get("duration_s")
        return cls(
            file_name=str(data.get("file_name") or ""),
            file_size=int(data.get("file_size") or 0),
            file_format=str(data.get("file_format") or ""),
            mime_type=str(data.get("mime_type") or "application/octet-stream"),
            duration_s=float(duration) if isinstance(duration, (int, float)) else None,
        )


@dataclass
class JobStatus:
    transcription: PhaseStatus = PhaseStatus.PENDING
    content_generation: PhaseStatus = PhaseStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "transcription": self.transcription.value,
            "content_generation": self.content_generation.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobStatus":
        return cls(
            transcription=PhaseStatus(str(data.get("transcription") or PhaseStatus.PENDING.value)),
            content_generation=PhaseStatus(
                str(data.get("content_generation") or PhaseStatus.PENDING.value)
            ),
        )


@dataclass
class ProjectError:
    message: str
    step: str
    timestamp: datetime = field(default_factory=_utcnow)
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "step": self.step,
            "timestamp": _dt_to_iso(self.timestamp),
            "details": dict(self.details) if self.details else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectError":
        details = data.get("details")
        return cls(
            message=str(data.get("message") or ""),
            step=str(data.get("step") or ""),
            timestamp=_dt_from_iso(data.get("timestamp")) or _utcnow(),
            details=dict(details) if isinstance(details, dict) else None,
        )


@dataclass
class Project:
    id: str
    user_id: str
    input_url: str
    file: FileMetadata
    display_name: str | None = None
    status: ProjectStatus = ProjectStatus.UPLOADED
    job_status: JobStatus = field(default_factory=JobStatus)
    error: ProjectError | None = None
    job_errors: dict[str, str] = field(default_factory=dict)
    transcript: Transcript | None = None
    # Generated artifacts keyed by TaskName value; each value is written whole.
    artifacts: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    deleted_at: datetime | None = None

    def has_artifact(self, task: TaskName | str) -> bool:
        key = task.value if isinstance(task, TaskName) else str(task)
        return self.artifacts.get(key) is not None

    def present_tasks(self) -> set[TaskName]:
        return {t for t in TASK_ORDER if self.has_artifact(t)}

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "input_url": self.input_url,
            "file": self.file.to_dict(),
            "display_name": self.display_name,
            "status": self.status.value,
            "job_status": self.job_status.to_dict(),
            "error": self.error.to_dict() if self.error is not None else None,
            "job_errors": dict(self.job_errors),
            "transcript": self.transcript.to_dict() if self.transcript is not None else None,
            "artifacts": copy.deepcopy(self.artifacts),
            "created_at": _dt_to_iso(self.created_at),
            "updated_at": _dt_to_iso(self.updated_at),
            "completed_at": _dt_to_iso(self.completed_at),
            "deleted_at": _dt_to_iso(self.deleted_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        error_raw = data.get("error")
        transcript_raw = data.get("transcript")
        return cls(
            id=str(data.get("id", "")),
            user_id=str(data.get("user_id", "")),
            input_url=str(data.get("input_url", "")),
            file=FileMetadata.from_dict(dict(data.get("file") or {})),
            display_name=data.get("display_name"),
            status=ProjectStatus(str(data.get("status") or ProjectStatus.UPLOADED.value)),
            job_status=JobStatus.from_dict(dict(data.get("job_status") or {})),
            error=ProjectError.from_dict(error_raw) if isinstance(error_raw, dict) else None,
            job_errors={str(k): str(v) for k, v in dict(data.get("job_errors") or {}).items()},
            transcript=(
                Transcript.from_dict(transcript_raw) if isinstance(transcript_raw, dict) else None
            ),
            artifacts=dict(data.get("artifacts") or {}),
            created_at=_dt_from_iso(data.get("created_at")) or _utcnow(),
            updated_at=_dt_from_iso(data.get("updated_at")) or _utcnow(),
            completed_at=_dt_from_iso(data.get("completed_at")),
            deleted_at=_dt_from_iso(data.get("deleted_at")),
        )


@dataclass
class ProjectPatch:
    """A multi-field update applied to one project as a single transaction.

    Top-level fields replace whole values. `job_status` merges per phase,
    `artifacts` replaces each named artifact whole, and `set_job_errors` /
    `clear_job_errors` touch only the named task keys. `clear_error` drops a
    previous run's `error`; an `error` in the same patch still wins.
    """

    status: ProjectStatus | None = None
    transcription: PhaseStatus | None = None
    content_generation: PhaseStatus | None = None
    error: ProjectError | None = None
    clear_error: bool = False
    transcript: Transcript | None = None
    artifacts: dict[str, Any] = field(default_factory=dict)
    set_job_errors: dict[str, str] = field(default_factory=dict)
    clear_job_errors: list[str] = field(default_factory=list)
    display_name: str | None = None
    deleted_at: datetime | None = None

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.transcription is None
            and self.content_generation is None
            and self.error is None
            and not self.clear_error
            and self.transcript is None
            and not self.artifacts
            and not self.set_job_errors
            and not self.clear_job_errors
            and self.display_name is None
            and self.deleted_at is None
        )

    def apply(self, project: Project) -> Project:
        """Return a copy of `project` with this patch applied."""
        out = copy.deepcopy(project)
        now = _utcnow()
        if self.status is not None:
            out.status = self.status
            if self.status == ProjectStatus.COMPLETED:
                out.completed_at = now
        if self.transcription is not None:
            out.job_status.transcription = self.transcription
        if self.content_generation is not None:
            out.job_status.content_generation = self.content_generation
        if self.clear_error:
            out.error = None
        if self.error is not None:
            out.error = copy.deepcopy(self.error)
        if self.transcript is not None:
            out.transcript = copy.deepcopy(self.transcript)
        for key, value in self.artifacts.items():
            out.artifacts[str(key)] = copy.deepcopy(value)
        for key in self.clear_job_errors:
            out.job_errors.pop(str(key), None)
        for key, message in self.set_job_errors.items():
            out.job_errors[str(key)] = str(message)
        if self.display_name is not None:
            out.display_name = self.display_name.strip()
        if self.deleted_at is not None:
            out.deleted_at = self.deleted_at
        out.updated_at = now
        return out

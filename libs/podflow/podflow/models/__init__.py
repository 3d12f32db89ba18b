"""Core data models for PodFlow."""

from podflow.models.artifacts import (
    Hashtags,
    KeyMoment,
    KeyMoments,
    SocialPosts,
    Summary,
    Titles,
    YouTubeTimestamp,
    YouTubeTimestamps,
    validate_artifact,
)
from podflow.models.project import (
    TASK_ORDER,
    FileMetadata,
    JobStatus,
    PhaseStatus,
    Project,
    ProjectError,
    ProjectPatch,
    ProjectStatus,
    TaskName,
)
from podflow.models.transcript import (
    Chapter,
    SpeakerUtterance,
    Transcript,
    TranscriptSegment,
    Word,
)

__all__ = [
    "Chapter",
    "FileMetadata",
    "Hashtags",
    "JobStatus",
    "KeyMoment",
    "KeyMoments",
    "PhaseStatus",
    "Project",
    "ProjectError",
    "ProjectPatch",
    "ProjectStatus",
    "SocialPosts",
    "SpeakerUtterance",
    "Summary",
    "TASK_ORDER",
    "TaskName",
    "Titles",
    "Transcript",
    "TranscriptSegment",
    "Word",
    "YouTubeTimestamp",
    "YouTubeTimestamps",
    "validate_artifact",
]

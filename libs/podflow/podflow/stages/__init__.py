"""Processing stages: transcription and the generation tasks."""

from __future__ import annotations

from podflow.config import Settings
from podflow.models.project import TaskName
from podflow.providers.llm.base import LLMProvider
from podflow.stages.base import Artifact, GenerationTask
from podflow.stages.base_llm import BaseLLMTask, ChapterLLMTask
from podflow.stages.hashtags import HashtagsTask
from podflow.stages.key_moments import KeyMomentsTask
from podflow.stages.social_posts import SocialPostsTask
from podflow.stages.summary import SummaryTask
from podflow.stages.titles import TitlesTask
from podflow.stages.transcription import TranscriptionStage, normalize_transcript
from podflow.stages.youtube_timestamps import YouTubeTimestampsTask

TASK_CLASSES: dict[TaskName, type[BaseLLMTask]] = {
    TaskName.SUMMARY: SummaryTask,
    TaskName.SOCIAL_POSTS: SocialPostsTask,
    TaskName.TITLES: TitlesTask,
    TaskName.HASHTAGS: HashtagsTask,
    TaskName.KEY_MOMENTS: KeyMomentsTask,
    TaskName.YOUTUBE_TIMESTAMPS: YouTubeTimestampsTask,
}


def create_tasks(settings: Settings, llm: LLMProvider) -> dict[TaskName, GenerationTask]:
    """Instantiate every generation task over one shared LLM provider."""
    return {name: cls(settings, llm) for name, cls in TASK_CLASSES.items()}


__all__ = [
    "Artifact",
    "BaseLLMTask",
    "ChapterLLMTask",
    "GenerationTask",
    "HashtagsTask",
    "KeyMomentsTask",
    "SocialPostsTask",
    "SummaryTask",
    "TASK_CLASSES",
    "TitlesTask",
    "TranscriptionStage",
    "YouTubeTimestampsTask",
    "create_tasks",
    "normalize_transcript",
]

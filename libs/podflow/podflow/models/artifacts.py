"""Generated artifact schemas and pure validation helpers.

Each artifact is stored on the project as a whole value keyed by task name.
Validation only checks shape; how a task asks the provider for the data is
a separate concern (see `podflow.stages`).
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from podflow.exceptions import ValidationError
from podflow.models.project import TaskName


class _Artifact(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Summary(_Artifact):
    full: str = Field(min_length=1, description="Comprehensive overview (200-300 words)")
    bullets: list[str] = Field(
        min_length=5, max_length=7, description="5-7 key bullet points covering main topics"
    )
    insights: list[str] = Field(
        min_length=3, max_length=5, description="3-5 actionable insights or takeaways"
    )
    tldr: str = Field(min_length=1, description="One-sentence summary")


class SocialPosts(_Artifact):
    # twitter is not length-limited here; tasks truncate it after validation.
    twitter: str = Field(description="Twitter/X post (280 chars max)")
    linkedin: str = Field(description="LinkedIn post (professional tone, 1-2 paragraphs)")
    instagram: str = Field(description="Instagram caption (engaging, emoji-rich)")
    tiktok: str = Field(description="TikTok caption (casual tone, short)")
    youtube: str = Field(description="YouTube description (detailed, with calls to action)")
    facebook: str = Field(description="Facebook post (conversational, shareable)")


class Titles(_Artifact):
    youtube_short: list[str] = Field(
        min_length=3, max_length=3, description="3 YouTube short titles (40-60 chars)"
    )
    youtube_long: list[str] = Field(
        min_length=3, max_length=3, description="3 YouTube long titles (70-100 chars)"
    )
    podcast_titles: list[str] = Field(
        min_length=3, max_length=3, description="3 podcast episode titles"
    )
    seo_keywords: list[str] = Field(
        min_length=5, max_length=10, description="5-10 SEO keywords"
    )


class Hashtags(_Artifact):
    youtube: list[str] = Field(min_length=5, max_length=5)
    instagram: list[str] = Field(min_length=6, max_length=8)
    tiktok: list[str] = Field(min_length=5, max_length=6)
    linkedin: list[str] = Field(min_length=5, max_length=5)
    twitter: list[str] = Field(min_length=5, max_length=5)


class KeyMoment(_Artifact):
    time: str
    timestamp: float = Field(ge=0)
    text: str
    description: str


class YouTubeTimestamp(_Artifact):
    timestamp: str
    description: str


class KeyMoments(RootModel[list[KeyMoment]]):
    def to_dict(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self.root]


class YouTubeTimestamps(RootModel[list[YouTubeTimestamp]]):
    def to_dict(self) -> list[dict[str, Any]]:
        return [t.to_dict() for t in self.root]


# Provider-side shapes for the chapter-anchored tasks. The provider only
# labels chapters by index; timing always comes from the transcript.


class ChapterTitle(_Artifact):
    index: int = Field(ge=0)
    title: str


class ChapterTitles(_Artifact):
    titles: list[ChapterTitle] = Field(default_factory=list)


class KeyMomentPick(_Artifact):
    index: int = Field(ge=0)
    text: str
    description: str


class KeyMomentPicks(_Artifact):
    moments: list[KeyMomentPick] = Field(default_factory=list)


ARTIFACT_MODELS: dict[TaskName, type[BaseModel]] = {
    TaskName.SUMMARY: Summary,
    TaskName.SOCIAL_POSTS: SocialPosts,
    TaskName.TITLES: Titles,
    TaskName.HASHTAGS: Hashtags,
    TaskName.KEY_MOMENTS: KeyMoments,
    TaskName.YOUTUBE_TIMESTAMPS: YouTubeTimestamps,
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(exc: PydanticValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors()[:5]:
        loc = ".".join(str(x) for x in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_model(task: TaskName | str, model: type[ModelT], data: Any) -> ModelT:
    """Validate `data` against `model`, raising podflow ValidationError on mismatch."""
    name = task.value if isinstance(task, TaskName) else str(task)
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(name, f"invalid {name} output: {_describe(exc)}") from exc


def validate_artifact(task: TaskName | str, data: Any) -> Any:
    """Validate a stored artifact payload; returns its canonical JSON form."""
    name = TaskName(task)
    model = ARTIFACT_MODELS[name]
    return validate_model(name, model, data).to_dict()  # type: ignore[attr-defined]

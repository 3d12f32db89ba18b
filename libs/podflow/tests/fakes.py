"""In-memory fakes shared by the podflow test modules."""

from __future__ import annotations

import copy
import json
from collections import defaultdict
from collections.abc import Callable

from redis.exceptions import WatchError

from podflow.exceptions import NotFoundError
from podflow.models.project import FileMetadata, Project, ProjectPatch
from podflow.models.transcript import Chapter, Transcript, TranscriptSegment
from podflow.providers.llm.base import LLMProvider, Message, OutputSchema
from podflow.providers.transcription.base import ProviderTranscript, TranscriptionProvider
from podflow.services.project_store import ProjectGateway


class InMemoryProjectStore(ProjectGateway):
    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        self.patches: list[tuple[str, ProjectPatch]] = []

    async def create_project(self, project: Project) -> Project:
        self.projects[project.id] = copy.deepcopy(project)
        return project

    async def get_project(self, project_id: str) -> Project | None:
        project = self.projects.get(project_id)
        return copy.deepcopy(project) if project is not None else None

    async def patch_project(self, project_id: str, patch: ProjectPatch) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundError(f"project not found: {project_id}")
        self.patches.append((project_id, patch))
        updated = patch.apply(project)
        self.projects[project_id] = updated
        return copy.deepcopy(updated)

    async def count_user_projects(self, user_id: str, *, include_deleted: bool) -> int:
        return sum(
            1
            for p in self.projects.values()
            if p.user_id == user_id and (include_deleted or p.deleted_at is None)
        )


Responder = Callable[[list[Message], OutputSchema], str]


class FakeLLM(LLMProvider):
    """Routes structured calls by schema name to canned responses or errors."""

    def __init__(self, responses: dict[str, str | Exception | Responder] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    async def complete(self, messages, temperature=0.7, max_tokens=None) -> str:  # noqa: ANN001
        raise AssertionError("unstructured completion not expected")

    async def complete_structured(self, messages, schema, temperature=0.3) -> str:  # noqa: ANN001
        self.calls.append(schema.name)
        resp = self.responses.get(schema.name)
        if resp is None:
            raise AssertionError(f"no fake response for {schema.name}")
        if isinstance(resp, Exception):
            raise resp
        if callable(resp):
            return resp(messages, schema)
        return resp


class FakeTranscriptionProvider(TranscriptionProvider):
    def __init__(self, result: ProviderTranscript | Exception) -> None:
        self.result = result
        self.calls: list[str] = []

    async def transcribe(self, audio_url: str) -> ProviderTranscript:
        self.calls.append(audio_url)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def make_project(project_id: str = "p1", *, user_id: str = "u1", **kwargs) -> Project:  # noqa: ANN003
    return Project(
        id=project_id,
        user_id=user_id,
        input_url="https://cdn.example.com/ep1.mp3",
        file=FileMetadata(file_name="ep1.mp3", file_size=5_000_000, file_format="mp3", duration_s=300),
        **kwargs,
    )


def make_transcript(*, chapters: bool = True) -> Transcript:
    text = "Welcome to the show. Today we talk about building durable pipelines. " * 5
    return Transcript(
        text=text.strip(),
        segments=[TranscriptSegment(id=0, start=0.0, end=12.5, text="Welcome to the show.")],
        chapters=(
            [
                Chapter(start=0.0, end=65.0, headline="Intro and guest", summary="The host opens."),
                Chapter(start=65.4, end=3700.0, headline="Durable pipelines", summary="Deep dive."),
                Chapter(start=3725.9, end=3800.0, headline="Wrap up", summary="Closing notes."),
            ]
            if chapters
            else []
        ),
    )


SUMMARY_JSON = json.dumps(
    {
        "full": "An episode about durable pipelines.",
        "bullets": ["a", "b", "c", "d", "e"],
        "insights": ["x", "y", "z"],
        "tldr": "Pipelines should resume.",
    }
)

SOCIAL_JSON = json.dumps(
    {
        "twitter": "New episode out now!",
        "linkedin": "We discussed pipelines.",
        "instagram": "Listen now",
        "tiktok": "pipelines!!",
        "youtube": "Full episode description.",
        "facebook": "Join the conversation.",
    }
)

TITLES_JSON = json.dumps(
    {
        "youtubeShort": ["s1", "s2", "s3"],
        "youtubeLong": ["l1", "l2", "l3"],
        "podcastTitles": ["p1", "p2", "p3"],
        "seoKeywords": ["k1", "k2", "k3", "k4", "k5"],
    }
)

HASHTAGS_JSON = json.dumps(
    {
        "youtube": ["#a", "#b", "#c", "#d", "#e"],
        "instagram": ["#a", "#b", "#c", "#d", "#e", "#f"],
        "tiktok": ["#a", "#b", "#c", "#d", "#e"],
        "linkedin": ["#a", "#b", "#c", "#d", "#e"],
        "twitter": ["#a", "#b", "#c", "#d", "#e"],
    }
)

KEY_MOMENTS_JSON = json.dumps(
    {"moments": [{"index": 1, "text": "Resume, don't restart", "description": "Core idea"}]}
)

CHAPTER_TITLES_JSON = json.dumps(
    {"titles": [{"index": 0, "title": "Meet The Guest"}, {"index": 1, "title": "Durable Pipelines"}]}
)

ALL_RESPONSES: dict[str, str] = {
    "summary": SUMMARY_JSON,
    "social_posts": SOCIAL_JSON,
    "titles": TITLES_JSON,
    "hashtags": HASHTAGS_JSON,
    "key_moments": KEY_MOMENTS_JSON,
    "youtube_chapter_titles": CHAPTER_TITLES_JSON,
}


class FakePipeline:
    """Transactional pipeline with optimistic WATCH semantics."""

    def __init__(self, redis: "FakeRedis") -> None:
        self.redis = redis
        self._ops: list[tuple[str, tuple, dict]] = []
        self._watched: dict[str, int] = {}

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:  # noqa: ANN002
        self._ops.clear()
        self._watched.clear()

    async def watch(self, *keys: str) -> None:
        for key in keys:
            self._watched[str(key)] = self.redis.versions.get(str(key), 0)

    async def unwatch(self) -> None:
        self._watched.clear()

    async def get(self, key: str) -> str | None:
        value = await self.redis.get(key)
        if self.redis.interfere > 0:
            self.redis.interfere -= 1
            self.redis.versions[str(key)] = self.redis.versions.get(str(key), 0) + 1
        return value

    def multi(self) -> None:
        return None

    def set(self, key: str, value: str, *, ex: int | None = None) -> "FakePipeline":
        self._ops.append(("set", (key, value), {"ex": ex}))
        return self

    def sadd(self, key: str, *values: str) -> "FakePipeline":
        self._ops.append(("sadd", (key, *values), {}))
        return self

    async def execute(self) -> list:
        for key, version in self._watched.items():
            if self.redis.versions.get(key, 0) != version:
                self._ops.clear()
                raise WatchError(f"watched key changed: {key}")
        results = [await getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self._ops]
        self._ops.clear()
        self._watched.clear()
        self.redis.transactions += 1
        return results


class FakeRedis:
    def __init__(self) -> None:
        self.kv: dict[str, str] = {}
        self.ttl: dict[str, int] = {}
        self.sets: dict[str, set[str]] = defaultdict(set)
        self.hashes: dict[str, dict[str, str]] = defaultdict(dict)
        self.lists: dict[str, list[str]] = defaultdict(list)
        self.versions: dict[str, int] = {}
        self.interfere = 0
        self.transactions = 0

    def pipeline(self, transaction: bool = True) -> FakePipeline:  # noqa: ARG002
        return FakePipeline(self)

    async def get(self, key: str) -> str | None:
        return self.kv.get(str(key))

    async def set(self, key: str, value: str, *, ex: int | None = None) -> bool:
        self.kv[str(key)] = str(value)
        self.versions[str(key)] = self.versions.get(str(key), 0) + 1
        if ex is not None:
            self.ttl[str(key)] = int(ex)
        else:
            self.ttl.pop(str(key), None)
        return True

    async def sadd(self, key: str, *values: str) -> int:
        s = self.sets[str(key)]
        before = len(s)
        s.update(str(v) for v in values)
        return len(s) - before

    async def smembers(self, key: str) -> set[str]:
        return set(self.sets.get(str(key), set()))

    async def sismember(self, key: str, value: str) -> bool:
        return str(value) in self.sets.get(str(key), set())

    async def hget(self, key: str, field: str) -> str | None:
        return self.hashes.get(str(key), {}).get(str(field))

    async def hset(self, key: str, field: str, value: str) -> int:
        existed = str(field) in self.hashes[str(key)]
        self.hashes[str(key)][str(field)] = str(value)
        return 0 if existed else 1

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttl[str(key)] = int(seconds)
        return True

    async def lpush(self, key: str, *values: str) -> int:
        lst = self.lists[str(key)]
        for v in values:
            lst.insert(0, str(v))
        return len(lst)

    async def aclose(self) -> None:
        return None

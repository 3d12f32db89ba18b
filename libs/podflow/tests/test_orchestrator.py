from __future__ import annotations

import pytest

from fakes import (
    ALL_RESPONSES,
    FakeLLM,
    FakeTranscriptionProvider,
    InMemoryProjectStore,
    make_project,
)
from podflow.entitlements import Tier
from podflow.events import WorkflowStart
from podflow.exceptions import NotFoundError, PersistenceError, ProviderError
from podflow.models.project import (
    PhaseStatus,
    Project,
    ProjectError,
    ProjectPatch,
    ProjectStatus,
    TaskName,
)
from podflow.pipeline.orchestrator import WorkflowOrchestrator
from podflow.pipeline.steps import InMemoryStepJournal
from podflow.providers.transcription.base import ProviderTranscript
from podflow.stages import create_tasks
from podflow.stages.transcription import TranscriptionStage


def _raw(*, chapters: bool = True) -> ProviderTranscript:
    return ProviderTranscript(
        text="Welcome to the show. Today we talk about durable pipelines and retries.",
        sentences=[
            {"text": "Welcome to the show.", "start": 0, "end": 2000},
            {"text": "Today we talk about durable pipelines and retries.", "start": 2000, "end": 6000},
        ],
        utterances=[{"speaker": "A", "start": 0, "end": 6000, "text": "Welcome.", "confidence": 0.9}],
        chapters=(
            [
                {"start": 0, "end": 65_000, "headline": "Intro", "summary": "s", "gist": "intro"},
                {"start": 65_000, "end": 200_000, "headline": "Pipelines", "summary": "s", "gist": "p"},
            ]
            if chapters
            else []
        ),
        audio_duration=200.0,
    )


class FlakyStore(InMemoryProjectStore):
    """Fails artifact writes `failures` times before letting them through."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    async def patch_project(self, project_id: str, patch: ProjectPatch) -> Project:
        if patch.artifacts and self.failures > 0:
            self.failures -= 1
            raise PersistenceError("redis unavailable")
        return await super().patch_project(project_id, patch)


def _build(settings, store, llm, provider):  # noqa: ANN001, ANN202
    updates: list[ProjectStatus] = []

    async def _on_update(project: Project) -> None:
        updates.append(project.status)

    orchestrator = WorkflowOrchestrator(
        settings,
        store,
        TranscriptionStage(provider, store),
        create_tasks(settings, llm),
        InMemoryStepJournal(),
        on_project_update=_on_update,
    )
    return orchestrator, updates


def _event(tier: Tier, run_id: str = "run_test") -> WorkflowStart:
    return WorkflowStart(
        project_id="p1", audio_ref="https://cdn.example.com/ep1.mp3", tier=tier, run_id=run_id
    )


@pytest.mark.asyncio
async def test_ultra_run_generates_every_artifact(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    llm = FakeLLM(ALL_RESPONSES)
    orchestrator, updates = _build(settings, store, llm, FakeTranscriptionProvider(_raw()))

    result = await orchestrator.run(_event(Tier.ULTRA))

    project = store.projects["p1"]
    assert result.status == ProjectStatus.COMPLETED
    assert set(result.succeeded) == set(TaskName)
    assert project.status == ProjectStatus.COMPLETED
    assert project.completed_at is not None
    assert project.job_status.transcription == PhaseStatus.COMPLETED
    assert project.job_status.content_generation == PhaseStatus.COMPLETED
    assert project.job_errors == {}
    assert set(project.artifacts) == {t.value for t in TaskName}
    assert project.transcript is not None
    assert updates[0] == ProjectStatus.PROCESSING
    assert updates[-1] == ProjectStatus.COMPLETED


@pytest.mark.asyncio
async def test_free_tier_only_runs_summary(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    llm = FakeLLM(ALL_RESPONSES)
    orchestrator, _ = _build(settings, store, llm, FakeTranscriptionProvider(_raw()))

    await orchestrator.run(_event(Tier.FREE))

    assert llm.calls == ["summary"]
    assert set(store.projects["p1"].artifacts) == {"summary"}


@pytest.mark.asyncio
async def test_transcription_failure_fails_project_without_generation(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    llm = FakeLLM(ALL_RESPONSES)
    provider = FakeTranscriptionProvider(ProviderError("assemblyai", "audio could not be decoded"))
    orchestrator, updates = _build(settings, store, llm, provider)

    result = await orchestrator.run(_event(Tier.ULTRA))

    project = store.projects["p1"]
    assert result.status == ProjectStatus.FAILED
    assert llm.calls == []
    assert project.status == ProjectStatus.FAILED
    assert project.job_status.transcription == PhaseStatus.FAILED
    assert project.error is not None
    assert project.error.step == "transcription"
    assert "audio could not be decoded" in project.error.message
    assert project.artifacts == {}
    assert updates[-1] == ProjectStatus.FAILED


@pytest.mark.asyncio
async def test_rerun_after_failure_clears_previous_error(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    failing = FakeTranscriptionProvider(ProviderError("assemblyai", "audio could not be decoded"))
    first, _ = _build(settings, store, FakeLLM(ALL_RESPONSES), failing)
    await first.run(_event(Tier.FREE, run_id="run_1"))
    assert store.projects["p1"].error is not None

    second, updates = _build(settings, store, FakeLLM(ALL_RESPONSES), FakeTranscriptionProvider(_raw()))
    result = await second.run(_event(Tier.FREE, run_id="run_2"))

    project = store.projects["p1"]
    assert result.status == ProjectStatus.COMPLETED
    assert updates[0] == ProjectStatus.PROCESSING
    assert project.status == ProjectStatus.COMPLETED
    assert project.error is None


def test_clear_error_patch_is_not_empty_and_error_wins() -> None:
    project = make_project(error=ProjectError(message="old", step="transcription"))

    assert not ProjectPatch(clear_error=True).is_empty()
    assert ProjectPatch(clear_error=True).apply(project).error is None
    replaced = ProjectPatch(clear_error=True, error=ProjectError(message="new", step="workflow")).apply(project)
    assert replaced.error is not None
    assert replaced.error.message == "new"


@pytest.mark.asyncio
async def test_generation_failures_never_fail_the_project(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    llm = FakeLLM(
        {
            "summary": "not json at all",
            "social_posts": ProviderError("openai", "HTTP 500"),
            "titles": '{"youtubeShort": ["only one"]}',
            "hashtags": "[]",
        }
    )
    orchestrator, _ = _build(settings, store, llm, FakeTranscriptionProvider(_raw()))

    result = await orchestrator.run(_event(Tier.PRO))

    project = store.projects["p1"]
    assert result.status == ProjectStatus.COMPLETED
    assert result.succeeded == []
    assert project.status == ProjectStatus.COMPLETED
    assert project.job_status.content_generation == PhaseStatus.COMPLETED
    assert project.artifacts == {}
    assert set(project.job_errors) == {"summary", "socialPosts", "titles", "hashtags"}
    assert project.job_errors["socialPosts"] == "openai: HTTP 500"
    assert project.error is None
    assert not any(patch.artifacts for _, patch in store.patches)


@pytest.mark.asyncio
async def test_chapter_tasks_fail_fast_without_chapters(settings) -> None:
    store = InMemoryProjectStore()
    await store.create_project(make_project())
    llm = FakeLLM(ALL_RESPONSES)
    orchestrator, _ = _build(settings, store, llm, FakeTranscriptionProvider(_raw(chapters=False)))

    await orchestrator.run(_event(Tier.ULTRA))

    project = store.projects["p1"]
    assert set(project.job_errors) == {"keyMoments", "youtubeTimestamps"}
    assert "key_moments" not in llm.calls
    assert "youtube_chapter_titles" not in llm.calls
    assert set(project.artifacts) == {"summary", "socialPosts", "titles", "hashtags"}


@pytest.mark.asyncio
async def test_infrastructure_fault_resumes_from_journal(settings) -> None:
    store = FlakyStore(failures=1)
    await store.create_project(make_project())
    llm = FakeLLM(ALL_RESPONSES)
    provider = FakeTranscriptionProvider(_raw())
    orchestrator, _ = _build(settings, store, llm, provider)

    result = await orchestrator.run_with_retries(_event(Tier.PRO))

    assert result.status == ProjectStatus.COMPLETED
    assert len(provider.calls) == 1
    assert sorted(llm.calls) == ["hashtags", "social_posts", "summary", "titles"]
    assert set(store.projects["p1"].artifacts) == {"summary", "socialPosts", "titles", "hashtags"}


@pytest.mark.asyncio
async def test_exhausted_workflow_retries_mark_project_failed(settings) -> None:
    store = FlakyStore(failures=100)
    await store.create_project(make_project())
    orchestrator, updates = _build(
        settings, store, FakeLLM(ALL_RESPONSES), FakeTranscriptionProvider(_raw())
    )

    with pytest.raises(PersistenceError):
        await orchestrator.run_with_retries(_event(Tier.FREE))

    project = store.projects["p1"]
    assert project.status == ProjectStatus.FAILED
    assert project.error is not None
    assert project.error.step == "workflow"
    assert project.error.details == {"type": "PersistenceError"}
    assert updates[-1] == ProjectStatus.FAILED


@pytest.mark.asyncio
async def test_missing_project_is_not_retried(settings) -> None:
    store = InMemoryProjectStore()
    orchestrator, _ = _build(
        settings, store, FakeLLM(ALL_RESPONSES), FakeTranscriptionProvider(_raw())
    )
    with pytest.raises(NotFoundError):
        await orchestrator.run_with_retries(_event(Tier.FREE))
    assert store.patches == []

"""Trigger events consumed by the workflow worker."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from redis.asyncio import Redis

from podflow.entitlements import Tier
from podflow.exceptions import ConfigurationError
from podflow.models.project import TaskName

QUEUE_KEY = "podflow:events:queue"
INFLIGHT_KEY = "podflow:events:inflight"

WORKFLOW_START = "workflow.start"
WORKFLOW_RETRY_TASK = "workflow.retryTask"


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex}"


@dataclass
class WorkflowStart:
    project_id: str
    audio_ref: str
    tier: Tier
    run_id: str = field(default_factory=new_run_id)

    name = WORKFLOW_START

    def to_data(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "audioRef": self.audio_ref,
            "tier": self.tier.value,
            "runId": self.run_id,
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "WorkflowStart":
        return cls(
            project_id=str(data["projectId"]),
            audio_ref=str(data["audioRef"]),
            tier=Tier(str(data.get("tier") or Tier.FREE.value)),
            run_id=str(data.get("runId") or new_run_id()),
        )


@dataclass
class WorkflowRetryTask:
    project_id: str
    task_name: TaskName
    current_tier: Tier
    original_tier: Tier | None = None
    run_id: str = field(default_factory=new_run_id)

    name = WORKFLOW_RETRY_TASK

    def to_data(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "taskName": self.task_name.value,
            "currentTier": self.current_tier.value,
            "originalTier": self.original_tier.value if self.original_tier else None,
            "runId": self.run_id,
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "WorkflowRetryTask":
        original = data.get("originalTier")
        return cls(
            project_id=str(data["projectId"]),
            task_name=TaskName(str(data["taskName"])),
            current_tier=Tier(str(data["currentTier"])),
            original_tier=Tier(str(original)) if original else None,
            run_id=str(data.get("runId") or new_run_id()),
        )


WorkflowEvent = WorkflowStart | WorkflowRetryTask


def encode_event(event: WorkflowEvent) -> str:
    return json.dumps({"name": event.name, "data": event.to_data()}, ensure_ascii=False)


def decode_event(raw: str | bytes) -> WorkflowEvent:
    """Parse a queued event; raises ConfigurationError for malformed payloads."""
    try:
        payload = json.loads(raw)
        name = payload.get("name")
        data = dict(payload.get("data") or {})
        if name == WORKFLOW_START:
            return WorkflowStart.from_data(data)
        if name == WORKFLOW_RETRY_TASK:
            return WorkflowRetryTask.from_data(data)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ConfigurationError(f"malformed event payload: {exc}") from exc
    raise ConfigurationError(f"unknown event: {name!r}")


class EventPublisher:
    def __init__(self, redis: Redis, *, queue_key: str = QUEUE_KEY) -> None:
        self.redis = redis
        self.queue_key = queue_key

    async def publish(self, event: WorkflowEvent) -> None:
        await self.redis.lpush(self.queue_key, encode_event(event))

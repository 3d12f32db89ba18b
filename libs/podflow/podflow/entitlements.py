"""Plan tiers, entitled generation tasks and upload limits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from redis.asyncio import Redis

from podflow.models.project import TASK_ORDER, Project, TaskName

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ULTRA = "ultra"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def includes(self, other: "Tier") -> bool:
        return self.rank >= other.rank


_TIER_RANK = {Tier.FREE: 0, Tier.PRO: 1, Tier.ULTRA: 2}

# Tasks first unlocked at each tier; a tier inherits everything below it.
_UNLOCKED_AT: dict[Tier, frozenset[TaskName]] = {
    Tier.FREE: frozenset({TaskName.SUMMARY}),
    Tier.PRO: frozenset({TaskName.SOCIAL_POSTS, TaskName.TITLES, TaskName.HASHTAGS}),
    Tier.ULTRA: frozenset({TaskName.KEY_MOMENTS, TaskName.YOUTUBE_TIMESTAMPS}),
}


def entitled_tasks(tier: Tier | str) -> tuple[TaskName, ...]:
    """Return the generation tasks unlocked by `tier`, in canonical order."""
    t = Tier(tier)
    unlocked: set[TaskName] = set()
    for level, tasks in _UNLOCKED_AT.items():
        if t.includes(level):
            unlocked |= tasks
    return tuple(name for name in TASK_ORDER if name in unlocked)


def is_entitled(tier: Tier | str, task: TaskName | str) -> bool:
    return TaskName(task) in entitled_tasks(tier)


def minimum_tier_for(task: TaskName | str) -> Tier:
    name = TaskName(task)
    for level in Tier:
        if name in _UNLOCKED_AT[level]:
            return level
    raise KeyError(name)


def can_view_speakers(tier: Tier | str) -> bool:
    """Speaker diarization is always captured; only ultra may display it."""
    return Tier(tier) == Tier.ULTRA


def infer_original_tier(project: Project) -> Tier:
    """Guess which tier produced the artifacts already present on `project`.

    Heuristic: a project partially filled by manual retries can look like a
    higher tier than the one it was processed under.
    """
    present = project.present_tasks()
    if present & _UNLOCKED_AT[Tier.ULTRA]:
        return Tier.ULTRA
    if present & _UNLOCKED_AT[Tier.PRO]:
        return Tier.PRO
    return Tier.FREE


class EntitlementSource(Protocol):
    async def has(self, tier: Tier) -> bool: ...


class RedisEntitlementSource:
    """Subscription state for one user, read from a Redis set of active plans."""

    def __init__(self, redis: Redis, user_id: str) -> None:
        self.redis = redis
        self.user_id = str(user_id)

    def _key(self) -> str:
        return f"podflow:subscriptions:{self.user_id}"

    async def has(self, tier: Tier) -> bool:
        return bool(await self.redis.sismember(self._key(), Tier(tier).value))


class StaticEntitlementSource:
    """Fixed subscription state (local runs and tests)."""

    def __init__(self, tier: Tier | str) -> None:
        self.tier = Tier(tier)

    async def has(self, tier: Tier) -> bool:
        return self.tier == Tier(tier)


async def resolve_tier(source: EntitlementSource) -> Tier:
    """Query the entitlement source afresh; never cached across invocations."""
    if await source.has(Tier.ULTRA):
        return Tier.ULTRA
    if await source.has(Tier.PRO):
        return Tier.PRO
    return Tier.FREE


@dataclass(frozen=True)
class PlanLimits:
    max_projects: int | None
    max_file_size: int
    max_duration_s: float | None
    # free counts every project ever created, pro only non-deleted ones
    count_deleted: bool


_MB = 1024 * 1024

PLAN_LIMITS: dict[Tier, PlanLimits] = {
    Tier.FREE: PlanLimits(
        max_projects=3, max_file_size=10 * _MB, max_duration_s=600, count_deleted=True
    ),
    Tier.PRO: PlanLimits(
        max_projects=30, max_file_size=200 * _MB, max_duration_s=7200, count_deleted=False
    ),
    Tier.ULTRA: PlanLimits(
        max_projects=None, max_file_size=3 * 1024 * _MB, max_duration_s=None, count_deleted=False
    ),
}


@dataclass(frozen=True)
class UploadCheck:
    allowed: bool
    reason: str | None = None
    message: str | None = None


def check_upload_limits(
    tier: Tier | str,
    *,
    file_size: int,
    duration_s: float | None,
    project_count: int,
) -> UploadCheck:
    """Validate an upload against plan limits.

    `project_count` must already follow the plan's counting rule
    (see `PlanLimits.count_deleted`).
    """
    t = Tier(tier)
    limits = PLAN_LIMITS[t]

    if limits.max_projects is not None and project_count >= limits.max_projects:
        scope = "total" if limits.count_deleted else "active"
        return UploadCheck(
            allowed=False,
            reason="project_limit",
            message=f"You've reached your plan limit of {limits.max_projects} {scope} projects",
        )

    if file_size > limits.max_file_size:
        return UploadCheck(
            allowed=False,
            reason="file_size",
            message=(
                f"File size ({file_size / _MB:.1f}MB) exceeds your plan limit of "
                f"{limits.max_file_size // _MB}MB"
            ),
        )

    if (
        limits.max_duration_s is not None
        and duration_s is not None
        and duration_s > limits.max_duration_s
    ):
        return UploadCheck(
            allowed=False,
            reason="duration",
            message=(
                f"Duration ({int(duration_s // 60)} minutes) exceeds your plan limit of "
                f"{int(limits.max_duration_s // 60)} minutes"
            ),
        )

    return UploadCheck(allowed=True)

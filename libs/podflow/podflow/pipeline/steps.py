"""Durable named steps.

A step journal remembers the outcome of every named step of one workflow run.
Replaying a run (after a crash or a workflow-level retry) returns recorded
results instead of executing the step again.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from podflow.config import WorkflowConfig
from podflow.exceptions import GenerationError, PersistenceError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def error_message(exc: BaseException) -> str:
    """Human-readable message for a failed step."""
    if isinstance(exc, GenerationError):
        return str(exc.message or exc)
    return str(exc) or type(exc).__name__


class StepJournal(ABC):
    @abstractmethod
    async def get(self, run_id: str, step: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def put(self, run_id: str, step: str, record: dict[str, Any]) -> None: ...


class InMemoryStepJournal(StepJournal):
    def __init__(self) -> None:
        self._runs: dict[str, dict[str, dict[str, Any]]] = {}

    async def get(self, run_id: str, step: str) -> dict[str, Any] | None:
        record = self._runs.get(run_id, {}).get(step)
        return dict(record) if record is not None else None

    async def put(self, run_id: str, step: str, record: dict[str, Any]) -> None:
        self._runs.setdefault(run_id, {})[step] = dict(record)

    def steps(self, run_id: str) -> list[str]:
        return list(self._runs.get(run_id, {}))


class RedisStepJournal(StepJournal):
    """One Redis hash per run: field = step name, value = JSON record."""

    def __init__(self, redis: Redis, *, ttl_seconds: int) -> None:
        self.redis = redis
        self.ttl_seconds = max(1, int(ttl_seconds))

    @staticmethod
    def key(run_id: str) -> str:
        return f"podflow:steps:{run_id}"

    async def get(self, run_id: str, step: str) -> dict[str, Any] | None:
        try:
            raw = await self.redis.hget(self.key(run_id), step)
        except RedisError as exc:
            raise PersistenceError(f"step journal read failed (run_id={run_id}): {exc}") from exc
        if not raw:
            return None
        return dict(json.loads(raw))

    async def put(self, run_id: str, step: str, record: dict[str, Any]) -> None:
        key = self.key(run_id)
        try:
            await self.redis.hset(key, step, json.dumps(record, ensure_ascii=False))
            await self.redis.expire(key, self.ttl_seconds)
        except RedisError as exc:
            raise PersistenceError(f"step journal write failed (run_id={run_id}): {exc}") from exc


@dataclass
class StepOutcome(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None
    replayed: bool = False


def _identity(value: Any) -> Any:
    return value


class StepRunner:
    """Executes named steps for one run.

    Provider and network failures are retried with exponential backoff up to
    `step_max_attempts`. Everything else fails the step immediately.
    """

    def __init__(
        self,
        journal: StepJournal | None,
        run_id: str,
        config: WorkflowConfig,
        *,
        project_id: str | None = None,
    ) -> None:
        self.journal = journal
        self.run_id = run_id
        self.config = config
        self.project_id = project_id

    def _log_retry(self, step: str) -> Callable[[RetryCallState], None]:
        def _log(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            wait_s = state.next_action.sleep if state.next_action else None
            logger.warning(
                "step retrying (project_id=%s, run_id=%s, step=%s, attempt=%s, wait_s=%s, error=%s)",
                self.project_id,
                self.run_id,
                step,
                state.attempt_number,
                wait_s,
                exc,
            )

        return _log

    async def _execute(self, step: str, fn: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ProviderError),
            stop=stop_after_attempt(int(self.config.step_max_attempts)),
            wait=wait_exponential(
                min=float(self.config.backoff_min_s), max=float(self.config.backoff_max_s)
            ),
            before_sleep=self._log_retry(step),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn()
        raise AssertionError("unreachable")  # pragma: no cover

    async def _recorded(self, step: str) -> dict[str, Any] | None:
        if self.journal is None:
            return None
        record = await self.journal.get(self.run_id, step)
        if record is not None:
            logger.info(
                "step replayed (project_id=%s, run_id=%s, step=%s)", self.project_id, self.run_id, step
            )
        return record

    async def _record(self, step: str, record: dict[str, Any]) -> None:
        if self.journal is not None:
            await self.journal.put(self.run_id, step, record)

    async def run(
        self,
        step: str,
        fn: Callable[[], Awaitable[T]],
        *,
        encode: Callable[[T], Any] = _identity,
        decode: Callable[[Any], T] = _identity,
    ) -> T:
        """Run a step whose failure aborts the caller; only success is journaled."""
        record = await self._recorded(step)
        if record is not None and record.get("ok"):
            return decode(record.get("value"))

        value = await self._execute(step, fn)
        await self._record(step, {"ok": True, "value": encode(value)})
        return value

    async def run_settled(
        self,
        step: str,
        fn: Callable[[], Awaitable[T]],
        *,
        encode: Callable[[T], Any] = _identity,
        decode: Callable[[Any], T] = _identity,
    ) -> StepOutcome[T]:
        """Run a step whose failure is an outcome; both results are journaled."""
        record = await self._recorded(step)
        if record is not None:
            if record.get("ok"):
                return StepOutcome(ok=True, value=decode(record.get("value")), replayed=True)
            return StepOutcome(ok=False, error=str(record.get("error") or ""), replayed=True)

        try:
            value = await self._execute(step, fn)
        except PersistenceError:
            raise
        except Exception as exc:
            message = error_message(exc)
            logger.warning(
                "step failed (project_id=%s, run_id=%s, step=%s, error=%s)",
                self.project_id,
                self.run_id,
                step,
                message,
            )
            await self._record(
                step, {"ok": False, "error": message, "type": type(exc).__name__}
            )
            return StepOutcome(ok=False, error=message)

        await self._record(step, {"ok": True, "value": encode(value)})
        return StepOutcome(ok=True, value=value)

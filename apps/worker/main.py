"""PodFlow Worker"""

import asyncio
import logging

from redis.asyncio import Redis

from podflow.config import Settings
from podflow.events import INFLIGHT_KEY, QUEUE_KEY
from podflow.models.project import Project
from podflow.pipeline.factory import WorkflowRuntime, create_runtime
from podflow.utils.logging_setup import setup_logging
from handlers.event_handler import process_event
from recovery import requeue_inflight_events

logger = logging.getLogger("podflow.worker")


async def _log_project_update(project: Project) -> None:
    logger.debug(
        "project updated (project_id=%s, status=%s, transcription=%s, content_generation=%s)",
        project.id,
        project.status.value,
        project.job_status.transcription.value,
        project.job_status.content_generation.value,
    )


async def consume_one(redis: Redis, runtime: WorkflowRuntime, *, timeout: int = 5) -> bool:
    """Take one event through the in-flight list; returns False on an idle poll."""
    raw = await redis.blmove(QUEUE_KEY, INFLIGHT_KEY, timeout, "RIGHT", "LEFT")
    if raw is None:
        return False
    try:
        await process_event(raw, runtime)
    except Exception:
        logger.exception("event handling crashed (raw=%r)", str(raw)[:200])
    finally:
        await redis.lrem(INFLIGHT_KEY, 1, raw)
    return True


async def main():
    """Worker main entry point."""
    settings = Settings()
    setup_logging(settings, component="worker")
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    runtime = create_runtime(settings, redis, on_project_update=_log_project_update)

    logger.info("Worker starting (redis=%s)", settings.redis_url)

    try:
        try:
            recovered = await requeue_inflight_events(redis)
            if recovered:
                logger.info("startup recovery completed (recovered=%d)", recovered)
        except Exception:
            logger.exception("startup recovery failed")

        while True:
            await consume_one(redis, runtime)
    finally:
        await runtime.close()
        await redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())

"""Worker startup recovery helpers."""

from __future__ import annotations

import logging

from redis.asyncio import Redis

from podflow.events import INFLIGHT_KEY, QUEUE_KEY

logger = logging.getLogger(__name__)


async def requeue_inflight_events(
    redis: Redis, *, queue_key: str = QUEUE_KEY, inflight_key: str = INFLIGHT_KEY
) -> int:
    """Move events left in flight by a crashed worker back onto the queue.

    Recovered events are placed at the consuming end, oldest first, so they run
    before anything queued since. Their workflows resume from the step journal
    because the run id travels with the event.

    Assumes one worker per in-flight list.
    """
    recovered = 0
    while True:
        raw = await redis.lmove(inflight_key, queue_key, "LEFT", "RIGHT")
        if raw is None:
            break
        recovered += 1
    if recovered:
        logger.info("requeued in-flight events (count=%d)", recovered)
    return recovered

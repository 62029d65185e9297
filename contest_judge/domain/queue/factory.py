"""
Queue adapter factory
"""
from typing import Optional

from contest_judge.core.config import settings
from contest_judge.domain.queue.adapters.base import QueueAdapter
from contest_judge.domain.queue.adapters.memory import MemoryQueueAdapter
from contest_judge.domain.queue.adapters.redis import RedisQueueAdapter
from contest_judge.infrastructure.cache.redis_client import RedisClient, redis_client


def create_queue_adapter(redis: Optional[RedisClient] = None) -> QueueAdapter:
    """
    Create the queue adapter for this environment

    - USE_REDIS_QUEUE=True: Redis adapter (production, client must be connected)
    - USE_REDIS_QUEUE=False: in-memory adapter (development/tests)

    Every call returns a new adapter; create one per process and share it.
    """
    if settings.USE_REDIS_QUEUE:
        return RedisQueueAdapter(
            redis or redis_client,
            name=settings.JUDGE_QUEUE_NAME,
            ttl_seconds=settings.JUDGE_QUEUE_RESULT_TTL_SECONDS,
        )
    return MemoryQueueAdapter()

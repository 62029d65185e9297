"""
Redis client
Connection pool plus the list and key-value commands the judge queue uses.
"""
import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from contest_judge.core.config import settings


class RedisClient:
    """Async Redis client wrapper"""

    def __init__(self, url: Optional[str] = None, max_connections: int = 20):
        self.url = url
        self.max_connections = max_connections
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        """Open the pool and ping"""
        self._pool = ConnectionPool.from_url(
            self.url or settings.REDIS_URL,
            max_connections=self.max_connections,
            decode_responses=True,
        )
        self._client = redis.Redis(connection_pool=self._pool)
        await self._client.ping()

    async def close(self):
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    # ===== lists =====

    async def push(self, key: str, value: str) -> int:
        return await self.client.lpush(key, value)

    async def pop(self, key: str, timeout: int = 1) -> Optional[str]:
        """Blocking pop from the tail; None once timeout seconds pass"""
        item = await self.client.brpop(key, timeout=timeout)
        return item[1] if item else None

    async def length(self, key: str) -> int:
        return await self.client.llen(key)

    # ===== key-value =====

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        if ttl_seconds:
            return await self.client.setex(key, ttl_seconds, value)
        return await self.client.set(key, value)

    async def delete(self, *keys: str) -> int:
        return await self.client.delete(*keys)

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        data = await self.get(key)
        return json.loads(data) if data else None

    async def set_json(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(value, ensure_ascii=False), ttl_seconds)


# Process-wide instance
redis_client = RedisClient()

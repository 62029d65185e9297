from contest_judge.infrastructure.cache.redis_client import RedisClient, redis_client

__all__ = ["RedisClient", "redis_client"]

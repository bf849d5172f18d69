"""Redis connection handle shared by sessions and job queues."""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)


def connect_redis(url: str) -> redis.Redis:
    """Create a Redis client for url. Connections are opened lazily by the pool."""
    log.info("Connecting to Redis at %s", url)
    return redis.from_url(url, decode_responses=True)


async def redis_alive(client: redis.Redis) -> bool:
    """True if Redis answers PING."""
    try:
        return bool(await client.ping())
    except RedisError as e:
        log.warning("Redis ping failed: %s", e)
        return False

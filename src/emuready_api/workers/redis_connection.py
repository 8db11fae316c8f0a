"""Redis connection management for the API and Arq workers."""

import redis.asyncio as redis

from arq import create_pool
from arq.connections import ArqRedis
from arq.connections import RedisSettings as ArqRedisSettings

from emuready_api.config.redis import get_redis_settings


def get_arq_redis_settings() -> ArqRedisSettings:
    """Translate application Redis settings into Arq's format."""
    settings = get_redis_settings()
    return ArqRedisSettings(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        password=settings.password,
        max_connections=settings.max_connections,
    )


class RedisConnection:
    """Lazily created Arq pool and plain Redis client."""

    def __init__(self):
        self._pool: ArqRedis | None = None
        self._redis_client: redis.Redis | None = None
        self.settings = get_redis_settings()

    async def get_pool(self) -> ArqRedis:
        """Get or create the Arq pool used to enqueue jobs."""
        if self._pool is None:
            self._pool = await create_pool(get_arq_redis_settings())
        return self._pool

    async def get_redis_client(self) -> redis.Redis:
        """Get or create the Redis client used for caching."""
        if self._redis_client is None:
            self._redis_client = redis.from_url(
                self.settings.redis_url,
                max_connections=self.settings.max_connections,
                retry_on_timeout=self.settings.retry_on_timeout,
                socket_timeout=self.settings.socket_timeout,
                socket_connect_timeout=self.settings.socket_connect_timeout,
                decode_responses=True,
            )
        return self._redis_client

    async def close(self) -> None:
        """Close Redis connections."""
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None

        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None


# Global connection instance
redis_connection = RedisConnection()


async def get_redis_pool() -> ArqRedis:
    """Get Redis pool for enqueueing Arq jobs."""
    return await redis_connection.get_pool()


async def get_redis_client() -> redis.Redis:
    """Get Redis client for direct operations."""
    return await redis_connection.get_redis_client()


async def close_redis_connections() -> None:
    """Close all Redis connections."""
    await redis_connection.close()
